from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from _fakes import make_config
from cngprotect._ledger import Web3LedgerClient, Web3TxHandle
from cngprotect.exceptions import LedgerError

PRIVATE_KEY = "0x" + "11" * 32
TX_HASH = bytes.fromhex("aa" * 32)


class _FakeFunction:
    def __init__(self, calls: list[tuple[tuple[Any, ...], dict[str, Any]]], args: tuple[Any, ...]) -> None:
        self._calls = calls
        self._args = args

    async def build_transaction(self, params: dict[str, Any]) -> dict[str, Any]:
        self._calls.append((self._args, params))
        return {
            "to": Web3.to_checksum_address("0xd74dd42d21e4784232e85a38485d7ed8af3d7beb"),
            "data": "0x",
            "value": 0,
            "gas": 100_000,
            "gasPrice": 1_000_000_000,
            "chainId": 16600,
            **params,
        }


class _FakeFunctions:
    def __init__(self) -> None:
        self.calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

    def mintIncidentReport(self, *args: Any) -> _FakeFunction:  # noqa: N802
        return _FakeFunction(self.calls, args)


class _FakeContract:
    def __init__(self) -> None:
        self.functions = _FakeFunctions()


class _FakeEth:
    def __init__(self) -> None:
        self.contract_obj = _FakeContract()
        self.count_calls: list[tuple[str, str]] = []
        self.sent: list[bytes] = []
        self.receipt: dict[str, Any] = {"status": 1, "blockNumber": 99}
        self.error: Exception | None = None

    def contract(self, *, address: str, abi: list[dict[str, Any]]) -> _FakeContract:
        return self.contract_obj

    async def get_transaction_count(self, address: str, block_identifier: str) -> int:
        if self.error is not None:
            raise self.error
        self.count_calls.append((address, block_identifier))
        return 5

    async def send_raw_transaction(self, raw: bytes) -> bytes:
        if self.error is not None:
            raise self.error
        self.sent.append(raw)
        return TX_HASH

    async def wait_for_transaction_receipt(self, tx_hash: bytes, timeout: float) -> dict[str, Any]:
        if self.error is not None:
            raise self.error
        return self.receipt


class _FakeWeb3:
    def __init__(self) -> None:
        self.eth = _FakeEth()


def _client(tmp_path: Path, w3: _FakeWeb3) -> Web3LedgerClient:
    return Web3LedgerClient(make_config(tmp_path, private_key=PRIVATE_KEY), w3=w3)  # type: ignore[arg-type]


def test_address_is_derived_from_private_key(tmp_path: Path) -> None:
    client = _client(tmp_path, _FakeWeb3())

    assert client.address == Account.from_key(PRIVATE_KEY).address


@pytest.mark.asyncio
async def test_sequence_number_counts_pending_transactions(tmp_path: Path) -> None:
    w3 = _FakeWeb3()
    client = _client(tmp_path, w3)

    assert await client.get_sequence_number(client.address.lower()) == 5
    assert w3.eth.count_calls == [(client.address, "pending")]


@pytest.mark.asyncio
async def test_submit_signs_with_given_nonce(tmp_path: Path) -> None:
    w3 = _FakeWeb3()
    client = _client(tmp_path, w3)

    handle = await client.submit_transaction("mintIncidentReport", ("Device_01", 500), nonce=5)

    [(args, params)] = w3.eth.contract_obj.functions.calls
    assert args == ("Device_01", 500)
    assert params == {"from": client.address, "nonce": 5}
    assert len(w3.eth.sent) == 1
    assert handle.tx_hash == "0x" + "aa" * 32


@pytest.mark.asyncio
async def test_rpc_failures_become_ledger_errors(tmp_path: Path) -> None:
    w3 = _FakeWeb3()
    w3.eth.error = Web3Exception("connection refused")
    client = _client(tmp_path, w3)

    with pytest.raises(LedgerError):
        await client.get_sequence_number(client.address)
    with pytest.raises(LedgerError):
        await client.submit_transaction("mintIncidentReport", ("Device_01", 500), nonce=5)


@pytest.mark.asyncio
async def test_confirmation_returns_receipt() -> None:
    w3 = _FakeWeb3()
    handle = Web3TxHandle(w3, TX_HASH, timeout=1.0)  # type: ignore[arg-type]

    assert await handle.wait_for_confirmation() == {"status": 1, "blockNumber": 99}


@pytest.mark.asyncio
async def test_reverted_receipt_is_a_ledger_error() -> None:
    w3 = _FakeWeb3()
    w3.eth.receipt = {"status": 0, "blockNumber": 99}
    handle = Web3TxHandle(w3, TX_HASH, timeout=1.0)  # type: ignore[arg-type]

    with pytest.raises(LedgerError, match="reverted") as exc_info:
        await handle.wait_for_confirmation()
    assert exc_info.value.tx_hash == handle.tx_hash


@pytest.mark.asyncio
async def test_confirmation_timeout_is_a_ledger_error() -> None:
    w3 = _FakeWeb3()
    w3.eth.error = TimeExhausted("not mined")
    handle = Web3TxHandle(w3, TX_HASH, timeout=1.0)  # type: ignore[arg-type]

    with pytest.raises(LedgerError, match="not confirmed"):
        await handle.wait_for_confirmation()
