"""Telemetry snapshot model.

A snapshot is the full value of the watched device node at one point in
time, as pushed by the telemetry stream. Only ``is_danger`` and
``gas_level`` are interpreted; the payload itself is kept whole in
:attr:`Snapshot.raw` and archived untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    StrictBool,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

_logger = logging.getLogger(__name__)


class Snapshot(BaseModel):
    """One telemetry update for a single device.

    Parameters
    ----------
    is_danger : bool
        Whether the sensor currently reports a leak. Must be a real
        boolean; ``"true"`` or ``1`` are rejected.
    gas_level : float
        Gas concentration reported by the sensor. Booleans are rejected.

    The original payload, opaque fields included, is available as
    :attr:`raw`. Payload keys never shadow it, even one named ``raw``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    is_danger: StrictBool = Field(validation_alias=AliasChoices("is_danger", "isDanger"))
    gas_level: float = Field(validation_alias=AliasChoices("gas_level", "gasLevel"))

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @field_validator("gas_level", mode="before")
    @classmethod
    def _reject_bool_level(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("gas_level must be a number, not a boolean")
        return value

    @model_validator(mode="wrap")
    @classmethod
    def _keep_payload(cls, values: Any, handler: ValidatorFunctionWrapHandler) -> Snapshot:
        snapshot = handler(values)
        if isinstance(values, dict):
            snapshot._raw = dict(values)
        return snapshot

    @property
    def raw(self) -> dict[str, Any]:
        """Payload as received."""
        return self._raw

    @classmethod
    def from_payload(cls, payload: Any) -> Snapshot | None:
        """Parse a pushed payload, returning ``None`` when it is absent or malformed."""
        if payload is None:
            return None
        if not isinstance(payload, dict):
            _logger.debug("Ignoring non-object telemetry payload: %r", type(payload).__name__)
            return None
        try:
            return cls.model_validate(payload)
        except ValidationError:
            _logger.debug("Ignoring malformed telemetry payload", exc_info=True)
            return None
