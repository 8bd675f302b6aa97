"""Control state.

The two flags that decide which side effects may run: the edge-triggered
danger state and the upload gate. Both are owned by a single
:class:`~cngprotect.bridge.TelemetryBridge`.
"""

from cngprotect.state.events import ErrorSource, TransitionEvent
from cngprotect.state.gate import UploadGate
from cngprotect.state.tracker import DangerStateTracker

__all__ = [
    "DangerStateTracker",
    "ErrorSource",
    "TransitionEvent",
    "UploadGate",
]
