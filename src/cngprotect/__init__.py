"""cngprotect - Async bridge from gas-leak telemetry to an EVM ledger and 0G storage."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cngprotect")
except PackageNotFoundError:
    __version__ = "0+local"
from cngprotect.bridge import TelemetryBridge
from cngprotect.config import BridgeConfig
from cngprotect.exceptions import (
    BridgeConfigError,
    BridgeError,
    GateStateError,
    LedgerError,
    StorageError,
    SubscriptionError,
)
from cngprotect.models import ArchiveRecord, IncidentReceipt, Snapshot
from cngprotect.publisher import TelemetryPublisher
from cngprotect.reporter import IncidentReporter
from cngprotect.sinks import ErrorSink, log_error, null_sink
from cngprotect.state import DangerStateTracker, ErrorSource, TransitionEvent, UploadGate

__all__ = [
    "__version__",
    "ArchiveRecord",
    "BridgeConfig",
    "BridgeConfigError",
    "BridgeError",
    "DangerStateTracker",
    "ErrorSink",
    "ErrorSource",
    "GateStateError",
    "IncidentReceipt",
    "IncidentReporter",
    "LedgerError",
    "Snapshot",
    "StorageError",
    "SubscriptionError",
    "TelemetryBridge",
    "TelemetryPublisher",
    "TransitionEvent",
    "UploadGate",
    "log_error",
    "null_sink",
]
