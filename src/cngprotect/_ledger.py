"""Ledger client: nonce lookup, signed contract calls, receipt waits.

Endpoint code depends on the :class:`LedgerClient` protocol only, so tests
pass fakes while production uses :class:`Web3LedgerClient`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import aiohttp
from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import TimeExhausted, Web3Exception

from cngprotect._constants import INCIDENT_CONTRACT_ABI
from cngprotect.config import BridgeConfig
from cngprotect.exceptions import LedgerError

_logger = logging.getLogger(__name__)


class TxHandle(Protocol):
    """A submitted, not yet confirmed transaction."""

    @property
    def tx_hash(self) -> str: ...

    async def wait_for_confirmation(self) -> dict[str, Any]: ...


class LedgerClient(Protocol):
    """Structural ledger interface used by the incident reporter."""

    @property
    def address(self) -> str: ...

    async def get_sequence_number(self, address: str) -> int: ...

    async def submit_transaction(self, method: str, args: Sequence[Any], *, nonce: int) -> TxHandle: ...


class Web3TxHandle:
    """Pending transaction on an :class:`AsyncWeb3` connection."""

    def __init__(self, w3: AsyncWeb3, tx_hash: bytes, *, timeout: float) -> None:
        self._w3 = w3
        self._raw_hash = tx_hash
        self._tx_hash = Web3.to_hex(tx_hash)
        self._timeout = timeout

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    async def wait_for_confirmation(self) -> dict[str, Any]:
        """Wait until the transaction is mined.

        Raises
        ------
        LedgerError
            On timeout, RPC failure, or a reverted receipt (``status == 0``).
        """
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(self._raw_hash, timeout=self._timeout)
        except TimeExhausted as exc:
            raise LedgerError(
                f"Transaction {self._tx_hash} not confirmed within {self._timeout:.0f}s",
                tx_hash=self._tx_hash,
            ) from exc
        except (Web3Exception, aiohttp.ClientError, ValueError) as exc:
            raise LedgerError(
                f"Receipt lookup for {self._tx_hash} failed: {exc}",
                tx_hash=self._tx_hash,
            ) from exc

        result = dict(receipt)
        if result.get("status") == 0:
            raise LedgerError(f"Transaction {self._tx_hash} reverted", tx_hash=self._tx_hash)
        return result


class Web3LedgerClient:
    """Signs and submits incident-contract calls through a JSON-RPC endpoint.

    Transactions are signed locally with the configured private key, so
    the RPC node never sees it.
    """

    def __init__(self, config: BridgeConfig, *, w3: AsyncWeb3 | None = None) -> None:
        self._config = config
        self._w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.evm_rpc_url))
        self._account = Account.from_key(config.private_key)
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(config.contract_address),
            abi=INCIDENT_CONTRACT_ABI,
        )

    @property
    def address(self) -> str:
        """Checksummed public address of the signer."""
        return str(self._account.address)

    async def get_sequence_number(self, address: str) -> int:
        """Next usable nonce for *address*, counting transactions still pending."""
        try:
            return int(await self._w3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending"))
        except (Web3Exception, aiohttp.ClientError, ValueError) as exc:
            raise LedgerError(f"Nonce lookup for {address} failed: {exc}") from exc

    async def submit_transaction(self, method: str, args: Sequence[Any], *, nonce: int) -> Web3TxHandle:
        """Build, sign and broadcast a call to *method* on the incident contract."""
        try:
            function = getattr(self._contract.functions, method)(*args)
            tx = await function.build_transaction({"from": self.address, "nonce": nonce})
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, aiohttp.ClientError, ValueError, TypeError) as exc:
            raise LedgerError(f"Submitting {method} with nonce {nonce} failed: {exc}") from exc

        _logger.debug("Submitted %s nonce=%s tx=%s", method, nonce, Web3.to_hex(tx_hash))
        return Web3TxHandle(self._w3, tx_hash, timeout=self._config.tx_confirmation_timeout)
