"""
Typed request filters shared by every analysis.

Filters are validated when they are constructed, so a malformed request
fails before any store query runs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from promolens.analytics.exceptions import InvalidFilterError

if TYPE_CHECKING:
    from promolens.analytics.schema import Redemption

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware UTC datetime (naive values are assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_datetime(value: datetime | str, field_name: str = "timestamp") -> datetime:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Raises:
        InvalidFilterError: If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError as e:
            raise InvalidFilterError(f"Invalid {field_name} format: {value}") from e
    raise InvalidFilterError(f"Invalid {field_name}: {value!r}")


class DiscountType(str, Enum):
    """Kind of discount a code applies."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_SHIPPING = "free_shipping"
    BUY_X_GET_Y = "buy_x_get_y"
    FREE_TRIAL = "free_trial"


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive time window.

    Both bounds are normalised to UTC. ``end`` doubles as the snapshot time
    for analyses that read history up to "now".

    Example:
        window = DateRange.last_days(30)
        previous = window.previous()
    """

    start: datetime
    end: datetime

    def __post_init__(self):
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise InvalidFilterError("Date range bounds must be datetimes")
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if self.end < self.start:
            raise InvalidFilterError(
                f"end ({self.end.isoformat()}) must not be before start ({self.start.isoformat()})"
            )

    @classmethod
    def last_days(cls, days: int, as_of: datetime | None = None) -> DateRange:
        """Window covering the ``days`` days up to ``as_of`` (default: now)."""
        if days <= 0:
            raise InvalidFilterError(f"days must be positive, got {days}")
        end = ensure_utc(as_of) if as_of else datetime.now(UTC)
        return cls(start=end - timedelta(days=days), end=end)

    @classmethod
    def parse(cls, start: datetime | str, end: datetime | str) -> DateRange:
        """Build a range from ISO-8601 strings or datetimes."""
        return cls(
            start=parse_datetime(start, "start"),
            end=parse_datetime(end, "end"),
        )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) <= self.end

    def previous(self) -> DateRange:
        """Same-length window immediately preceding this one."""
        end = self.start - timedelta(microseconds=1)
        return DateRange(start=end - self.duration, end=end)

    def history(self) -> DateRange:
        """All history up to the end of this window."""
        return DateRange(start=EPOCH, end=self.end)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class RedemptionFilter:
    """
    Filter for redemption queries.

    Attributes:
        date_range: Inclusive redemption time window
        campaign_id: Restrict to one campaign
        channel: Restrict to one attribution channel (e.g. "email")
        discount_type: Restrict to one discount type
        country: Restrict to one ISO country code
    """

    date_range: DateRange
    campaign_id: str | None = None
    channel: str | None = None
    discount_type: DiscountType | None = None
    country: str | None = None

    def __post_init__(self):
        if not isinstance(self.date_range, DateRange):
            raise InvalidFilterError("date_range is required")
        if self.discount_type is not None and not isinstance(self.discount_type, DiscountType):
            try:
                object.__setattr__(self, "discount_type", DiscountType(self.discount_type))
            except ValueError as e:
                raise InvalidFilterError(f"Unsupported discount type: {self.discount_type}") from e
        if self.country is not None:
            object.__setattr__(self, "country", self.country.upper())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RedemptionFilter:
        """Create a filter from a JSON-style dictionary.

        Requires ``start_date`` and ``end_date`` keys.
        """
        if "start_date" not in data or "end_date" not in data:
            raise InvalidFilterError("Missing required fields: start_date, end_date")
        return cls(
            date_range=DateRange.parse(data["start_date"], data["end_date"]),
            campaign_id=data.get("campaign_id"),
            channel=data.get("channel"),
            discount_type=data.get("discount_type"),
            country=data.get("country"),
        )

    def with_range(self, date_range: DateRange) -> RedemptionFilter:
        return replace(self, date_range=date_range)

    def matches(self, redemption: Redemption) -> bool:
        """Return True if the redemption satisfies every filter criterion."""
        if not self.date_range.contains(redemption.timestamp):
            return False
        if self.campaign_id and redemption.campaign_id != self.campaign_id:
            return False
        if self.channel and redemption.channel != self.channel:
            return False
        if self.discount_type and redemption.discount_type != self.discount_type:
            return False
        if self.country and (redemption.country or "").upper() != self.country:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "date_range": self.date_range.to_dict(),
            "campaign_id": self.campaign_id,
            "channel": self.channel,
            "discount_type": self.discount_type.value if self.discount_type else None,
            "country": self.country,
        }


def as_filter(value: RedemptionFilter | DateRange) -> RedemptionFilter:
    """Accept either a bare date range or a full filter."""
    if isinstance(value, RedemptionFilter):
        return value
    if isinstance(value, DateRange):
        return RedemptionFilter(date_range=value)
    raise InvalidFilterError(f"Expected RedemptionFilter or DateRange, got {type(value).__name__}")
