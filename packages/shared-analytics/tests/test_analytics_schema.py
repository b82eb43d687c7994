"""Tests for the redemption schema."""

from datetime import UTC, datetime

import pytest

from promolens.analytics.exceptions import InvalidFilterError
from promolens.analytics.filters import DiscountType
from promolens.analytics.schema import (
    REDEMPTION_COLUMNS,
    DetectedPattern,
    FraudAssessment,
    Redemption,
    RedemptionStatus,
    RiskLevel,
    to_frame,
)


class TestRiskLevel:
    def test_rank_order(self):
        ranks = [level.rank for level in RiskLevel]
        assert ranks == [0, 1, 2, 3]
        assert RiskLevel.CRITICAL.rank > RiskLevel.HIGH.rank


class TestRedemption:
    """Test Redemption dataclass."""

    def test_defaults(self):
        redemption = Redemption(user_id="USER-001")
        assert redemption.redemption_id.startswith("RDM_")
        assert redemption.status == RedemptionStatus.APPLIED
        assert redemption.fraud_risk_level == RiskLevel.LOW
        assert redemption.timestamp.tzinfo == UTC
        assert redemption.is_mobile is False

    def test_detected_patterns_frozen_to_tuple(self):
        redemption = Redemption(
            user_id="USER-001",
            detected_patterns=[DetectedPattern("code_sharing", 75.0)],
        )
        assert isinstance(redemption.detected_patterns, tuple)

    def test_with_assessment_returns_copy(self):
        redemption = Redemption(user_id="USER-001")
        assessed = redemption.with_assessment(
            FraudAssessment(risk_score=80.0, risk_level=RiskLevel.CRITICAL, review_required=True)
        )
        assert assessed is not redemption
        assert assessed.fraud_risk_score == 80.0
        assert assessed.status == RedemptionStatus.APPLIED
        assert redemption.fraud_risk_score == 0.0

    def test_from_dict(self):
        redemption = Redemption.from_dict({
            "redemption_id": "RDM_1",
            "user_id": "USER-001",
            "final_amount": "90.5",
            "discount_type": "percentage",
            "timestamp": "2025-03-10T12:00:00Z",
            "detected_patterns": [{"pattern": "code_sharing", "confidence": 88}],
        })
        assert redemption.final_amount == 90.5
        assert redemption.discount_type == DiscountType.PERCENTAGE
        assert redemption.timestamp == datetime(2025, 3, 10, 12, tzinfo=UTC)
        assert redemption.detected_patterns[0].confidence == 88.0

    def test_from_dict_missing_user(self):
        with pytest.raises(InvalidFilterError, match="user_id"):
            Redemption.from_dict({"final_amount": 10})

    def test_from_dict_bad_amount(self):
        with pytest.raises(InvalidFilterError, match="final_amount"):
            Redemption.from_dict({"user_id": "U", "final_amount": "ten"})

    def test_from_dict_bad_status(self):
        with pytest.raises(InvalidFilterError):
            Redemption.from_dict({"user_id": "U", "status": "pending"})

    def test_to_dict_is_json_compatible(self, sample_redemptions):
        data = sample_redemptions[1].to_dict()
        assert data["status"] == "applied"
        assert data["timestamp"] == "2025-03-10T14:00:00+00:00"
        assert data["detected_patterns"] == [
            {"pattern": "code_sharing", "confidence": 90.0, "description": None}
        ]


class TestToFrame:
    def test_empty(self):
        frame = to_frame([])
        assert frame.empty
        assert list(frame.columns) == REDEMPTION_COLUMNS

    def test_values(self, sample_redemptions):
        frame = to_frame(sample_redemptions)
        assert len(frame) == 3
        assert str(frame["timestamp"].dt.tz) == "UTC"
        assert frame["status"].tolist() == ["applied"] * 3
