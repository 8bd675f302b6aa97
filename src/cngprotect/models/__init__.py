"""Models for telemetry input and side-effect results."""

from cngprotect.models.receipts import ArchiveRecord, IncidentReceipt
from cngprotect.models.snapshot import Snapshot

__all__ = [
    "ArchiveRecord",
    "IncidentReceipt",
    "Snapshot",
]
