"""Tests for touchpoint schema."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from promolens.analytics.exceptions import InvalidFilterError
from promolens.attribution.schema import (
    AttributionModel,
    AttributionResult,
    Touchpoint,
    TouchpointType,
)


class TestAttributionModel:
    """Test AttributionModel parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("linear", AttributionModel.LINEAR),
            ("TIME_DECAY", AttributionModel.TIME_DECAY),
            (" first_touch ", AttributionModel.FIRST_TOUCH),
            ("first_click", AttributionModel.FIRST_TOUCH),
            ("last_click", AttributionModel.LAST_TOUCH),
            (AttributionModel.LAST_TOUCH, AttributionModel.LAST_TOUCH),
        ],
    )
    def test_parse(self, value, expected):
        assert AttributionModel.parse(value) == expected

    def test_parse_unknown(self):
        with pytest.raises(InvalidFilterError, match="Unsupported attribution model"):
            AttributionModel.parse("data_driven")


class TestTouchpoint:
    """Test Touchpoint dataclass."""

    def test_naive_timestamp_is_utc(self):
        touchpoint = Touchpoint(
            campaign_id="SPRING-25",
            channel="email",
            type=TouchpointType.EMAIL_OPEN,
            timestamp=datetime(2025, 3, 1, 9, 30),
            session_or_user_id="USER-001",
        )
        assert touchpoint.timestamp.tzinfo == UTC

    def test_offset_timestamp_converted(self):
        touchpoint = Touchpoint(
            campaign_id="SPRING-25",
            channel="email",
            type=TouchpointType.EMAIL_OPEN,
            timestamp=datetime(2025, 3, 1, 9, 30, tzinfo=timezone(timedelta(hours=2))),
            session_or_user_id="USER-001",
        )
        assert touchpoint.timestamp == datetime(2025, 3, 1, 7, 30, tzinfo=UTC)

    def test_generated_id(self):
        touchpoint = Touchpoint(
            campaign_id=None,
            channel="direct",
            type=TouchpointType.DIRECT,
            timestamp=datetime(2025, 3, 1, tzinfo=UTC),
            session_or_user_id="SESSION-9",
        )
        assert touchpoint.touchpoint_id.startswith("TP_")

    def test_from_dict(self):
        touchpoint = Touchpoint.from_dict({
            "touchpoint_id": "TP_X",
            "campaign_id": "AFF-10",
            "channel": "affiliate",
            "type": "affiliate_click",
            "timestamp": "2025-03-01T10:00:00Z",
            "session_or_user_id": "USER-001",
        })
        assert touchpoint.touchpoint_id == "TP_X"
        assert touchpoint.type == TouchpointType.AFFILIATE_CLICK
        assert touchpoint.timestamp == datetime(2025, 3, 1, 10, 0, tzinfo=UTC)

    def test_from_dict_missing_fields(self):
        with pytest.raises(InvalidFilterError, match="channel"):
            Touchpoint.from_dict({"type": "direct", "session_or_user_id": "U"})

    def test_from_dict_bad_type(self):
        with pytest.raises(InvalidFilterError, match="touchpoint type"):
            Touchpoint.from_dict({
                "channel": "web",
                "type": "carrier_pigeon",
                "session_or_user_id": "U",
            })

    def test_from_dict_bad_timestamp(self):
        with pytest.raises(InvalidFilterError):
            Touchpoint.from_dict({
                "channel": "web",
                "type": "direct",
                "session_or_user_id": "U",
                "timestamp": "yesterday",
            })

    def test_round_trip(self, sample_journey):
        touchpoint = sample_journey[1]
        assert Touchpoint.from_dict(touchpoint.to_dict()) == touchpoint


class TestAttributionResult:
    """Test AttributionResult."""

    def test_to_dict(self, sample_journey):
        result = AttributionResult(
            touchpoint=sample_journey[0],
            model=AttributionModel.LINEAR,
            weight=0.5,
        )
        assert result.touchpoint_id == "TP_1"
        assert result.to_dict() == {
            "touchpoint_id": "TP_1",
            "campaign_id": "SPRING-25",
            "channel": "email",
            "model": "linear",
            "weight": 0.5,
        }
