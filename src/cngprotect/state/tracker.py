"""Edge-triggered danger state.

Two states, Safe and Danger, starting in Safe. Only a change in the
observed ``is_danger`` value moves the machine; repeated readings of the
same value are ignored so an incident is reported once per leak, not once
per telemetry packet.
"""

from __future__ import annotations

from cngprotect.models.snapshot import Snapshot
from cngprotect.state.events import TransitionEvent


class DangerStateTracker:
    """Holds the process-wide "currently in danger" flag."""

    def __init__(self) -> None:
        self._in_danger = False

    @property
    def in_danger(self) -> bool:
        return self._in_danger

    def observe(self, snapshot: Snapshot) -> TransitionEvent | None:
        """Fold *snapshot* into the state and return the edge it caused, if any."""
        if snapshot.is_danger and not self._in_danger:
            self._in_danger = True
            return TransitionEvent.ENTERED_DANGER
        if not snapshot.is_danger and self._in_danger:
            self._in_danger = False
            return TransitionEvent.EXITED_DANGER
        return None
