"""Control loop bridging device telemetry to the ledger and storage network."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, Callable
from typing import Any

from cngprotect._ledger import LedgerClient
from cngprotect._storage import StorageClient
from cngprotect.config import BridgeConfig
from cngprotect.models.snapshot import Snapshot
from cngprotect.publisher import TelemetryPublisher
from cngprotect.reporter import IncidentReporter
from cngprotect.sinks import ErrorSink, log_error
from cngprotect.state.events import TransitionEvent
from cngprotect.state.gate import UploadGate
from cngprotect.state.tracker import DangerStateTracker

_logger = logging.getLogger(__name__)

TransitionCallback = Callable[[TransitionEvent, Snapshot], None]


class TelemetryBridge:
    """Decides, per snapshot, which side effects may run.

    For every snapshot, in order:

    1. the danger tracker looks for an edge; entering danger mints one
       incident record on the ledger,
    2. the upload gate archives the snapshot unless an upload is already
       in flight or an incident is active.

    Each snapshot is handled in its own task, so a slow mint or upload
    never holds up the stream. Handlers interleave at every ``await``; the
    tracker and the gate make that safe because both check-and-set their
    flag before the first suspension point.

    Usage::

        async with FirebaseSubscription(config) as subscription:
            bridge = TelemetryBridge(config, ledger=Web3LedgerClient(config), storage=ZeroGStorageClient(config))
            await bridge.run(subscription)
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        ledger: LedgerClient,
        storage: StorageClient,
        error_sink: ErrorSink = log_error,
        on_transition: TransitionCallback | None = None,
    ) -> None:
        self._config = config
        self._tracker = DangerStateTracker()
        self._reporter = IncidentReporter(ledger, error_sink=error_sink)
        self._publisher = TelemetryPublisher(
            storage,
            artifact_path=config.artifact_path,
            error_sink=error_sink,
        )
        self._gate = UploadGate(self._tracker, self._publisher)
        self._on_transition = on_transition
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_danger(self) -> bool:
        return self._tracker.in_danger

    @property
    def uploading(self) -> bool:
        return self._gate.uploading

    @property
    def pending(self) -> int:
        """Number of snapshot handlers still running."""
        return len(self._tasks)

    async def handle(self, payload: Any) -> None:
        """Process one pushed payload to completion."""
        snapshot = Snapshot.from_payload(payload)
        if snapshot is None:
            return

        transition = self._tracker.observe(snapshot)
        if transition is not None:
            self._notify_transition(transition, snapshot)

        if transition == TransitionEvent.ENTERED_DANGER:
            _logger.warning(
                "CRITICAL LEAK on %s (gas level %s). Minting incident record",
                self._config.device_id,
                snapshot.gas_level,
            )
            await self._reporter.report(self._config.device_id, snapshot.gas_level)
        elif transition == TransitionEvent.EXITED_DANGER:
            _logger.info("Leak resolved on %s. Device back in safe mode", self._config.device_id)

        await self._gate.try_publish(snapshot)

    def dispatch(self, payload: Any) -> asyncio.Task[None]:
        """Schedule :meth:`handle` for *payload* without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.handle(payload))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def drain(self) -> None:
        """Wait for every dispatched handler to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run(self, subscription: AsyncIterable[Any]) -> None:
        """Consume *subscription* until it ends, then drain in-flight handlers."""
        _logger.info("Watching %s for hardware alerts", self._config.device_path)
        try:
            async for payload in subscription:
                self.dispatch(payload)
        finally:
            await self.drain()

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Snapshot handler crashed", exc_info=exc)

    def _notify_transition(self, transition: TransitionEvent, snapshot: Snapshot) -> None:
        if self._on_transition is None:
            return
        try:
            self._on_transition(transition, snapshot)
        except Exception:
            _logger.debug("on_transition callback failed", exc_info=True)
