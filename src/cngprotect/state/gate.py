"""Single-flight gate in front of the telemetry publisher.

The telemetry stream can fire faster than one upload completes. Rather than
queueing, the gate drops any snapshot that arrives while an upload is in
flight or while an incident is active. Some snapshots are never archived;
no two uploads ever overlap on the shared artifact.

The check-and-set in :meth:`UploadGate.try_acquire` contains no ``await``,
so it is atomic on a single event loop. A threaded port must replace the
flag with a real lock.
"""

from __future__ import annotations

import logging
from typing import Protocol

from cngprotect.exceptions import GateStateError
from cngprotect.models.receipts import ArchiveRecord
from cngprotect.models.snapshot import Snapshot
from cngprotect.state.tracker import DangerStateTracker

_logger = logging.getLogger(__name__)


class Publisher(Protocol):
    async def publish(self, snapshot: Snapshot) -> ArchiveRecord | None: ...


class UploadGate:
    """Guards :meth:`Publisher.publish` with an ``uploading`` flag."""

    def __init__(self, tracker: DangerStateTracker, publisher: Publisher) -> None:
        self._tracker = tracker
        self._publisher = publisher
        self._uploading = False

    @property
    def uploading(self) -> bool:
        return self._uploading

    def try_acquire(self) -> bool:
        """Take the gate if no upload is running and no incident is active."""
        if self._uploading or self._tracker.in_danger:
            return False
        self._uploading = True
        return True

    def release(self) -> None:
        if not self._uploading:
            raise GateStateError("Upload gate released while not held")
        self._uploading = False

    async def try_publish(self, snapshot: Snapshot) -> bool:
        """Publish *snapshot* if admitted.

        Returns ``True`` when the publish ran (whatever its outcome) and
        ``False`` when the snapshot was dropped at the gate.
        """
        if not self.try_acquire():
            _logger.debug(
                "Upload skipped uploading=%s in_danger=%s",
                self._uploading,
                self._tracker.in_danger,
            )
            return False
        try:
            await self._publisher.publish(snapshot)
        finally:
            self.release()
        return True
