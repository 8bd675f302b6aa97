"""Telemetry publisher: archive one snapshot to the storage network."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from cngprotect._storage import StorageClient
from cngprotect.models.receipts import ArchiveRecord
from cngprotect.models.snapshot import Snapshot
from cngprotect.sinks import ErrorSink, emit, log_error
from cngprotect.state.events import ErrorSource

_logger = logging.getLogger(__name__)


def serialize_snapshot(snapshot: Snapshot) -> str:
    """Compact JSON of the payload exactly as it was received."""
    return json.dumps(snapshot.raw, separators=(",", ":"), ensure_ascii=False)


class TelemetryPublisher:
    """Writes the snapshot to a transient artifact and uploads it.

    The artifact path is shared by every upload, which is why callers must
    go through :class:`~cngprotect.state.gate.UploadGate`.
    """

    def __init__(
        self,
        storage: StorageClient,
        *,
        artifact_path: str | Path,
        error_sink: ErrorSink = log_error,
    ) -> None:
        self._storage = storage
        self._artifact_path = Path(artifact_path)
        self._error_sink = error_sink

    @property
    def artifact_path(self) -> Path:
        return self._artifact_path

    async def publish(self, snapshot: Snapshot) -> ArchiveRecord | None:
        """Upload *snapshot*; returns ``None`` on any failure."""
        try:
            body = serialize_snapshot(snapshot).encode("utf-8")
            self._artifact_path.write_bytes(body)
            content_ref = await self._storage.upload_artifact(self._artifact_path)
        except Exception as exc:
            emit(self._error_sink, ErrorSource.STORAGE, exc)
            return None

        _logger.info("Telemetry archived to storage. Root: %s", content_ref)
        return ArchiveRecord(
            content_ref=content_ref,
            artifact_path=str(self._artifact_path),
            size_bytes=len(body),
        )
