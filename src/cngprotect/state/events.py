"""Events emitted by the control loop."""

from __future__ import annotations

from enum import StrEnum


class TransitionEvent(StrEnum):
    """Edge of the Safe/Danger state machine."""

    ENTERED_DANGER = "entered_danger"
    EXITED_DANGER = "exited_danger"


class ErrorSource(StrEnum):
    """Component whose failure was caught and discarded."""

    LEDGER = "ledger"
    STORAGE = "storage"
