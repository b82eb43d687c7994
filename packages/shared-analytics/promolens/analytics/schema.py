"""
Redemption schema - one record per successful discount application.

Redemptions are append-only. The only change a redemption ever sees is
the attachment of a fraud assessment, which produces a new record via
``Redemption.with_assessment`` rather than mutating the original.

All timestamps are stored as timezone-aware datetime objects in UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

import pandas as pd

from promolens.analytics.exceptions import InvalidFilterError
from promolens.analytics.filters import DiscountType, ensure_utc, parse_datetime


class RedemptionStatus(str, Enum):
    """Lifecycle status of a redemption."""

    APPLIED = "applied"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"
    FRAUD_FLAGGED = "fraud_flagged"


class RiskLevel(str, Enum):
    """Fraud / cannibalization risk tier, ordered low to critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)


_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]


class TrendDirection(str, Enum):
    """Direction of a period-over-period change."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    STABLE = "stable"


@dataclass(frozen=True)
class DetectedPattern:
    """Abuse pattern tagged on a redemption by upstream fraud checks."""

    pattern: str  # "code_sharing", "account_farming", ...
    confidence: float  # 0-100
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "confidence": self.confidence,
            "description": self.description,
        }


@dataclass(frozen=True)
class FraudAssessment:
    """Outcome of scoring a single redemption."""

    risk_score: float
    risk_level: RiskLevel
    review_required: bool
    blocked: bool = False
    reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "review_required": self.review_required,
            "blocked": self.blocked,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class Redemption:
    """
    A discount redemption.

    Example:
        redemption = Redemption(
            user_id="USER-001",
            campaign_id="SPRING-25",
            discount_code="SPRING10",
            gross_amount=100.0,
            discount_amount=10.0,
            final_amount=90.0,
            is_new_customer=True,
            timestamp=datetime.now(UTC),
        )
    """

    user_id: str
    campaign_id: str | None = None
    discount_code: str | None = None

    # Transaction amounts
    gross_amount: float = 0.0
    discount_amount: float = 0.0
    final_amount: float = 0.0
    currency: str = "USD"

    # Customer and context
    is_new_customer: bool = False
    device_type: str = "desktop"  # "mobile", "desktop", "tablet"
    country: str | None = None
    channel: str | None = None
    discount_type: DiscountType | None = None

    redemption_id: str = field(default_factory=lambda: f"RDM_{uuid4().hex[:12].upper()}")
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    status: RedemptionStatus = RedemptionStatus.APPLIED

    # Fraud assessment (attached before the redemption settles)
    fraud_risk_score: float = 0.0
    fraud_risk_level: RiskLevel = RiskLevel.LOW
    review_required: bool = False
    detected_patterns: tuple[DetectedPattern, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "detected_patterns", tuple(self.detected_patterns))

    @property
    def is_mobile(self) -> bool:
        return self.device_type == "mobile"

    def with_assessment(self, assessment: FraudAssessment) -> Redemption:
        """Return a copy carrying the given fraud assessment."""
        return replace(
            self,
            fraud_risk_score=assessment.risk_score,
            fraud_risk_level=assessment.risk_level,
            review_required=assessment.review_required,
            status=RedemptionStatus.FRAUD_FLAGGED if assessment.blocked else self.status,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "redemption_id": self.redemption_id,
            "user_id": self.user_id,
            "campaign_id": self.campaign_id,
            "discount_code": self.discount_code,
            "gross_amount": self.gross_amount,
            "discount_amount": self.discount_amount,
            "final_amount": self.final_amount,
            "currency": self.currency,
            "is_new_customer": self.is_new_customer,
            "device_type": self.device_type,
            "country": self.country,
            "channel": self.channel,
            "discount_type": self.discount_type.value if self.discount_type else None,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "fraud_risk_score": self.fraud_risk_score,
            "fraud_risk_level": self.fraud_risk_level.value,
            "review_required": self.review_required,
            "detected_patterns": [p.to_dict() for p in self.detected_patterns],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Redemption:
        """Create a Redemption from a dictionary (store row or JSON).

        Raises:
            InvalidFilterError: If ``user_id`` is missing or a numeric or
                enum field cannot be parsed.
        """
        if not data.get("user_id"):
            raise InvalidFilterError("Missing required field: user_id")

        amounts = {}
        for name in ("gross_amount", "discount_amount", "final_amount", "fraud_risk_score"):
            try:
                amounts[name] = float(data.get(name) or 0.0)
            except (ValueError, TypeError) as e:
                raise InvalidFilterError(f"Invalid {name}: {data.get(name)}") from e

        try:
            status = RedemptionStatus(data.get("status") or "applied")
            risk_level = RiskLevel(data.get("fraud_risk_level") or "low")
            discount_type = DiscountType(data["discount_type"]) if data.get("discount_type") else None
        except ValueError as e:
            raise InvalidFilterError(str(e)) from e

        timestamp = data.get("timestamp")
        kwargs: dict[str, Any] = {}
        if data.get("redemption_id"):
            kwargs["redemption_id"] = str(data["redemption_id"])
        if timestamp is not None:
            kwargs["timestamp"] = parse_datetime(timestamp)

        patterns = tuple(
            DetectedPattern(
                pattern=p["pattern"],
                confidence=float(p.get("confidence") or 0.0),
                description=p.get("description"),
            )
            for p in (data.get("detected_patterns") or [])
        )

        return cls(
            user_id=str(data["user_id"]),
            campaign_id=data.get("campaign_id"),
            discount_code=data.get("discount_code"),
            currency=data.get("currency") or "USD",
            is_new_customer=bool(data.get("is_new_customer", False)),
            device_type=data.get("device_type") or "desktop",
            country=data.get("country"),
            channel=data.get("channel"),
            discount_type=discount_type,
            status=status,
            fraud_risk_level=risk_level,
            review_required=bool(data.get("review_required", False)),
            detected_patterns=patterns,
            **amounts,
            **kwargs,
        )


REDEMPTION_COLUMNS = [
    "redemption_id",
    "user_id",
    "campaign_id",
    "timestamp",
    "gross_amount",
    "discount_amount",
    "final_amount",
    "is_new_customer",
    "device_type",
    "country",
    "status",
    "fraud_risk_score",
    "fraud_risk_level",
    "review_required",
]


def to_frame(redemptions: list[Redemption]) -> pd.DataFrame:
    """Convert redemptions to a DataFrame with a fixed column set."""
    rows = [
        {
            "redemption_id": r.redemption_id,
            "user_id": r.user_id,
            "campaign_id": r.campaign_id,
            "timestamp": r.timestamp,
            "gross_amount": r.gross_amount,
            "discount_amount": r.discount_amount,
            "final_amount": r.final_amount,
            "is_new_customer": r.is_new_customer,
            "device_type": r.device_type,
            "country": r.country,
            "status": r.status.value,
            "fraud_risk_score": r.fraud_risk_score,
            "fraud_risk_level": r.fraud_risk_level.value,
            "review_required": r.review_required,
        }
        for r in redemptions
    ]
    frame = pd.DataFrame(rows, columns=REDEMPTION_COLUMNS)
    if not frame.empty:
        frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    return frame
