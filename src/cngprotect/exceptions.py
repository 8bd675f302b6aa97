"""Custom exception hierarchy for cngprotect."""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all cngprotect errors."""


class BridgeConfigError(BridgeError):
    """Invalid or missing configuration."""


class LedgerError(BridgeError):
    """Ledger RPC failure, rejected submission, revert or confirmation timeout."""

    def __init__(
        self,
        message: str,
        *,
        tx_hash: str | None = None,
    ) -> None:
        self.tx_hash = tx_hash
        super().__init__(message)


class StorageError(BridgeError):
    """Artifact upload to the storage network failed."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
    ) -> None:
        self.returncode = returncode
        super().__init__(message)


class SubscriptionError(BridgeError):
    """Telemetry stream could not be opened or was cancelled by the server."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message)


class GateStateError(BridgeError):
    """Upload gate released while it was not held.

    Cannot happen on a single event loop; raised so a port to a threaded
    runtime fails loudly instead of admitting overlapping uploads.
    """
