from __future__ import annotations

import pytest

from _fakes import SENDER, FakeLedger, RecordingSink, ledger_failure
from cngprotect.exceptions import LedgerError
from cngprotect.reporter import IncidentReporter, encode_gas_level
from cngprotect.state.events import ErrorSource


@pytest.mark.asyncio
async def test_report_fetches_fresh_nonce_and_waits_for_receipt() -> None:
    ledger = FakeLedger(next_nonce=41)
    sink = RecordingSink()
    reporter = IncidentReporter(ledger, error_sink=sink)

    receipt = await reporter.report("Device_01", 500.4)

    assert receipt is not None
    assert ledger.nonce_lookups == [SENDER]
    assert ledger.submissions == [("mintIncidentReport", ("Device_01", 500), 41)]
    assert receipt.nonce == 41
    assert receipt.gas_level == 500
    assert receipt.block_number == 1234
    assert receipt.tx_hash.startswith("0x")
    assert sink.errors == []


@pytest.mark.asyncio
async def test_nonce_is_looked_up_for_every_report() -> None:
    ledger = FakeLedger(next_nonce=3)
    reporter = IncidentReporter(ledger, error_sink=RecordingSink())

    await reporter.report("Device_01", 100)
    await reporter.report("Device_01", 200)

    assert len(ledger.nonce_lookups) == 2
    assert [nonce for _method, _args, nonce in ledger.submissions] == [3, 4]


@pytest.mark.asyncio
async def test_submission_failure_goes_to_sink_and_returns_none() -> None:
    ledger = FakeLedger(submit_error=ledger_failure())
    sink = RecordingSink()
    reporter = IncidentReporter(ledger, error_sink=sink)

    assert await reporter.report("Device_01", 500) is None

    [error] = sink.of(ErrorSource.LEDGER)
    assert isinstance(error, LedgerError)
    assert len(ledger.submissions) == 1


@pytest.mark.asyncio
async def test_confirmation_failure_is_not_retried() -> None:
    ledger = FakeLedger(confirm_error=LedgerError("reverted", tx_hash="0xabc"))
    sink = RecordingSink()
    reporter = IncidentReporter(ledger, error_sink=sink)

    assert await reporter.report("Device_01", 500) is None

    assert len(ledger.submissions) == 1
    [error] = sink.of(ErrorSource.LEDGER)
    assert isinstance(error, LedgerError)
    assert error.tx_hash == "0xabc"


@pytest.mark.asyncio
async def test_failing_sink_does_not_escape() -> None:
    def _sink(_source: ErrorSource, _exc: Exception) -> None:
        raise RuntimeError("sink down")

    reporter = IncidentReporter(FakeLedger(submit_error=ledger_failure()), error_sink=_sink)

    assert await reporter.report("Device_01", 500) is None


def test_encode_gas_level_rounds_to_uint() -> None:
    assert encode_gas_level(0) == 0
    assert encode_gas_level(519.6) == 520
    with pytest.raises(ValueError):
        encode_gas_level(-2)
