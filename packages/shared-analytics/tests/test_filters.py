"""Tests for request filters."""

from datetime import UTC, datetime, timedelta

import pytest

from promolens.analytics.exceptions import InvalidFilterError
from promolens.analytics.filters import (
    EPOCH,
    DateRange,
    DiscountType,
    RedemptionFilter,
    as_filter,
    parse_datetime,
)
from promolens.analytics.schema import Redemption


class TestParseDatetime:
    """Test parse_datetime."""

    def test_zulu_suffix(self):
        assert parse_datetime("2025-03-01T10:00:00Z") == datetime(2025, 3, 1, 10, tzinfo=UTC)

    def test_date_only(self):
        assert parse_datetime("2025-03-01") == datetime(2025, 3, 1, tzinfo=UTC)

    def test_invalid_string(self):
        with pytest.raises(InvalidFilterError, match="start"):
            parse_datetime("not-a-date", "start")

    def test_invalid_type(self):
        with pytest.raises(InvalidFilterError):
            parse_datetime(12345)


class TestDateRange:
    """Test DateRange validation and helpers."""

    def test_end_before_start(self):
        with pytest.raises(InvalidFilterError, match="must not be before"):
            DateRange(
                start=datetime(2025, 3, 2, tzinfo=UTC),
                end=datetime(2025, 3, 1, tzinfo=UTC),
            )

    def test_single_instant_allowed(self):
        moment = datetime(2025, 3, 1, tzinfo=UTC)
        window = DateRange(start=moment, end=moment)
        assert window.contains(moment)

    def test_non_datetime_bounds(self):
        with pytest.raises(InvalidFilterError):
            DateRange(start="2025-03-01", end="2025-03-02")

    def test_naive_bounds_normalised(self):
        window = DateRange(start=datetime(2025, 3, 1), end=datetime(2025, 3, 2))
        assert window.start.tzinfo == UTC

    def test_inclusive_bounds(self, march_2025):
        assert march_2025.contains(march_2025.start)
        assert march_2025.contains(march_2025.end)
        assert not march_2025.contains(march_2025.end + timedelta(seconds=1))

    def test_last_days(self):
        as_of = datetime(2025, 3, 31, tzinfo=UTC)
        window = DateRange.last_days(30, as_of=as_of)
        assert window.end == as_of
        assert window.duration == timedelta(days=30)

    def test_last_days_rejects_zero(self):
        with pytest.raises(InvalidFilterError):
            DateRange.last_days(0)

    def test_parse(self):
        window = DateRange.parse("2025-03-01T00:00:00Z", "2025-03-31T00:00:00Z")
        assert window.duration == timedelta(days=30)

    def test_previous_is_adjacent_and_same_length(self, march_2025):
        previous = march_2025.previous()
        assert previous.duration == march_2025.duration
        assert previous.end < march_2025.start
        assert march_2025.start - previous.end == timedelta(microseconds=1)

    def test_history(self, march_2025):
        history = march_2025.history()
        assert history.start == EPOCH
        assert history.end == march_2025.end

    def test_to_dict(self, march_2025):
        assert march_2025.to_dict() == {
            "start": "2025-03-01T00:00:00+00:00",
            "end": "2025-03-31T23:59:59+00:00",
        }


class TestRedemptionFilter:
    """Test RedemptionFilter."""

    def test_requires_date_range(self):
        with pytest.raises(InvalidFilterError):
            RedemptionFilter(date_range=None)

    def test_discount_type_coerced(self, march_2025):
        redemption_filter = RedemptionFilter(date_range=march_2025, discount_type="percentage")
        assert redemption_filter.discount_type == DiscountType.PERCENTAGE

    def test_unknown_discount_type(self, march_2025):
        with pytest.raises(InvalidFilterError, match="discount type"):
            RedemptionFilter(date_range=march_2025, discount_type="bogof")

    def test_country_uppercased(self, march_2025):
        assert RedemptionFilter(date_range=march_2025, country="us").country == "US"

    def test_from_dict(self):
        redemption_filter = RedemptionFilter.from_dict({
            "start_date": "2025-03-01",
            "end_date": "2025-03-31",
            "campaign_id": "SPRING-25",
        })
        assert redemption_filter.campaign_id == "SPRING-25"
        assert redemption_filter.date_range.start == datetime(2025, 3, 1, tzinfo=UTC)

    def test_from_dict_missing_dates(self):
        with pytest.raises(InvalidFilterError, match="start_date"):
            RedemptionFilter.from_dict({"campaign_id": "SPRING-25"})

    def test_from_dict_reversed_dates(self):
        with pytest.raises(InvalidFilterError):
            RedemptionFilter.from_dict({"start_date": "2025-03-31", "end_date": "2025-03-01"})

    def test_matches(self, march_2025, sample_redemptions):
        redemption_filter = RedemptionFilter(date_range=march_2025, channel="email", country="US")
        assert [redemption_filter.matches(r) for r in sample_redemptions] == [True, False, False]

    def test_matches_discount_type(self, march_2025):
        redemption = Redemption(
            user_id="USER-001",
            discount_type=DiscountType.FREE_SHIPPING,
            timestamp=datetime(2025, 3, 5, tzinfo=UTC),
        )
        assert RedemptionFilter(date_range=march_2025, discount_type="free_shipping").matches(
            redemption
        )
        assert not RedemptionFilter(date_range=march_2025, discount_type="percentage").matches(
            redemption
        )

    def test_with_range(self, march_2025):
        redemption_filter = RedemptionFilter(date_range=march_2025, campaign_id="SPRING-25")
        moved = redemption_filter.with_range(march_2025.previous())
        assert moved.campaign_id == "SPRING-25"
        assert moved.date_range == march_2025.previous()

    def test_to_dict(self, march_2025):
        data = RedemptionFilter(date_range=march_2025, discount_type="fixed_amount").to_dict()
        assert data["discount_type"] == "fixed_amount"
        assert data["campaign_id"] is None


class TestAsFilter:
    """Test as_filter."""

    def test_wraps_date_range(self, march_2025):
        assert as_filter(march_2025) == RedemptionFilter(date_range=march_2025)

    def test_passes_filter_through(self, march_2025):
        redemption_filter = RedemptionFilter(date_range=march_2025)
        assert as_filter(redemption_filter) is redemption_filter

    def test_rejects_other_types(self):
        with pytest.raises(InvalidFilterError):
            as_filter({"start_date": "2025-03-01"})
