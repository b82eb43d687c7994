"""
Touchpoint schema - marketing interactions on a user's path to conversion.

Touchpoints are recorded by the ingestion layer and are immutable. Within
one journey they are ordered ascending by timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from promolens.analytics.exceptions import InvalidFilterError
from promolens.analytics.filters import ensure_utc, parse_datetime


class TouchpointType(str, Enum):
    """Kind of marketing interaction."""

    UTM_VISIT = "utm_visit"
    AFFILIATE_CLICK = "affiliate_click"
    EMAIL_OPEN = "email_open"
    EMAIL_CLICK = "email_click"
    SMS_CLICK = "sms_click"
    SOCIAL_CLICK = "social_click"
    AD_CLICK = "ad_click"
    DIRECT = "direct"


class AttributionModel(str, Enum):
    """Rule for distributing conversion credit across a journey."""

    FIRST_TOUCH = "first_touch"
    LAST_TOUCH = "last_touch"
    LINEAR = "linear"  # Equal credit to all touchpoints
    TIME_DECAY = "time_decay"  # More credit to recent touchpoints

    @classmethod
    def parse(cls, value: AttributionModel | str) -> AttributionModel:
        """Parse a model name, accepting the legacy *_click spellings.

        Raises:
            InvalidFilterError: If the name is not a supported model.
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        name = _MODEL_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError as e:
            raise InvalidFilterError(f"Unsupported attribution model: {value}") from e


_MODEL_ALIASES = {
    "first_click": "first_touch",
    "last_click": "last_touch",
}


@dataclass(frozen=True)
class Touchpoint:
    """
    A single recorded marketing interaction.

    Example:
        touchpoint = Touchpoint(
            campaign_id="SPRING-25",
            channel="email",
            type=TouchpointType.EMAIL_OPEN,
            timestamp=datetime(2025, 3, 1, 9, 30, tzinfo=UTC),
            session_or_user_id="USER-001",
        )
    """

    campaign_id: str | None
    channel: str
    type: TouchpointType
    timestamp: datetime
    session_or_user_id: str
    touchpoint_id: str = field(default_factory=lambda: f"TP_{uuid4().hex[:12].upper()}")

    def __post_init__(self):
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    def to_dict(self) -> dict[str, Any]:
        return {
            "touchpoint_id": self.touchpoint_id,
            "campaign_id": self.campaign_id,
            "channel": self.channel,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "session_or_user_id": self.session_or_user_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Touchpoint:
        """Create a Touchpoint from a dictionary.

        Raises:
            InvalidFilterError: If a required field is missing or malformed.
        """
        missing = [
            name for name in ("channel", "type", "session_or_user_id") if not data.get(name)
        ]
        if missing:
            raise InvalidFilterError(f"Missing required fields: {', '.join(missing)}")
        try:
            touchpoint_type = TouchpointType(data["type"])
        except ValueError as e:
            raise InvalidFilterError(f"Unsupported touchpoint type: {data['type']}") from e

        timestamp = data.get("timestamp")
        kwargs: dict[str, Any] = {}
        if data.get("touchpoint_id"):
            kwargs["touchpoint_id"] = str(data["touchpoint_id"])

        return cls(
            campaign_id=data.get("campaign_id"),
            channel=data["channel"],
            type=touchpoint_type,
            timestamp=parse_datetime(timestamp) if timestamp is not None else datetime.now(UTC),
            session_or_user_id=str(data["session_or_user_id"]),
            **kwargs,
        )


@dataclass(frozen=True)
class AttributionResult:
    """Credit assigned to one touchpoint under one model."""

    touchpoint: Touchpoint
    model: AttributionModel
    weight: float

    @property
    def touchpoint_id(self) -> str:
        return self.touchpoint.touchpoint_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "touchpoint_id": self.touchpoint_id,
            "campaign_id": self.touchpoint.campaign_id,
            "channel": self.touchpoint.channel,
            "model": self.model.value,
            "weight": self.weight,
        }
