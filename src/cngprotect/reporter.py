"""Incident reporter: one ledger transaction per entry into danger."""

from __future__ import annotations

import logging

from cngprotect._constants import MINT_METHOD
from cngprotect._ledger import LedgerClient
from cngprotect.models.receipts import IncidentReceipt
from cngprotect.sinks import ErrorSink, emit, log_error
from cngprotect.state.events import ErrorSource

_logger = logging.getLogger(__name__)


def encode_gas_level(gas_level: float) -> int:
    """Round a sensor reading to the ``uint256`` recorded on chain."""
    value = int(round(gas_level))
    if value < 0:
        raise ValueError(f"gas level must be non-negative, got {gas_level}")
    return value


class IncidentReporter:
    """Mints an incident record and waits for it to be mined.

    Failures are fire-and-forget: they go to the error sink, the call
    returns ``None``, and nothing is retried. The caller's danger state is
    left as is, so a failed mint is never attempted again for the same
    leak.
    """

    def __init__(self, ledger: LedgerClient, *, error_sink: ErrorSink = log_error) -> None:
        self._ledger = ledger
        self._error_sink = error_sink

    async def report(self, device_id: str, gas_level: float) -> IncidentReceipt | None:
        """Submit ``mintIncidentReport(device_id, gas_level)``.

        The nonce is fetched from the ledger immediately before submission,
        never cached, so it cannot collide with a transaction sent through
        another path.
        """
        try:
            encoded_level = encode_gas_level(gas_level)
            nonce = await self._ledger.get_sequence_number(self._ledger.address)
            handle = await self._ledger.submit_transaction(MINT_METHOD, (device_id, encoded_level), nonce=nonce)
            _logger.info("Incident transaction %s sent (nonce %s), waiting for confirmation", handle.tx_hash, nonce)
            receipt = await handle.wait_for_confirmation()
        except Exception as exc:
            emit(self._error_sink, ErrorSource.LEDGER, exc)
            return None

        block_number = receipt.get("blockNumber")
        result = IncidentReceipt(
            tx_hash=handle.tx_hash,
            block_number=int(block_number) if block_number is not None else None,
            device_id=device_id,
            gas_level=encoded_level,
            nonce=nonce,
            raw=receipt,
        )
        _logger.info("Incident recorded for %s tx=%s block=%s", device_id, result.tx_hash, result.block_number)
        return result
