"""Tests for IncrementalRevenueAnalyzer."""

from datetime import UTC, datetime, timedelta

import pytest

from promolens.analytics.filters import RedemptionFilter
from promolens.analytics.incremental import (
    IncrementalRevenueAnalyzer,
    SegmentMetrics,
    analyze_segments,
)
from promolens.analytics.schema import Redemption, RedemptionStatus, RiskLevel
from promolens.stores.memory import InMemoryRedemptionStore


@pytest.fixture
def hundred_redemptions():
    """30 new customers at $100 and 70 existing customers at $100."""
    start = datetime(2025, 3, 2, tzinfo=UTC)
    store = InMemoryRedemptionStore()
    for index in range(100):
        store.add(
            Redemption(
                user_id=f"USER-{index:03d}",
                campaign_id="SPRING-25",
                gross_amount=110.0,
                discount_amount=10.0,
                final_amount=100.0,
                is_new_customer=index < 30,
                timestamp=start + timedelta(hours=index),
            )
        )
    return store


class TestAnalyzeSegments:
    """Test the segment arithmetic."""

    def test_no_redemptions(self):
        analysis = analyze_segments(SegmentMetrics(), SegmentMetrics())
        assert analysis.cannibalization.cannibalization_rate == 0.0
        assert analysis.cannibalization.risk_level == RiskLevel.LOW
        assert analysis.incremental.discount_roi == 0.0
        assert analysis.with_discount.average_order_value == 0.0

    def test_medium_risk(self):
        new = SegmentMetrics(count=40, revenue=4000.0, discount=400.0, average_order_value=100.0)
        existing = SegmentMetrics(count=60, revenue=6000.0, discount=600.0, average_order_value=100.0)
        analysis = analyze_segments(new, existing)
        assert analysis.cannibalization.risk_level == RiskLevel.MEDIUM


class TestIncrementalRevenueAnalyzer:
    """Test IncrementalRevenueAnalyzer."""

    def test_documented_scenario(self, hundred_redemptions, march_2025):
        """70% existing customers -> high cannibalization, $3,000 incremental."""
        analysis = IncrementalRevenueAnalyzer(hundred_redemptions).analyze(march_2025)
        cannibalization = analysis.cannibalization

        assert cannibalization.cannibalization_rate == pytest.approx(0.70)
        assert cannibalization.risk_level == RiskLevel.HIGH
        assert cannibalization.net_incremental_revenue == pytest.approx(3000.0)
        assert cannibalization.new_customer_revenue == pytest.approx(3000.0)
        assert cannibalization.existing_customer_revenue == pytest.approx(7000.0)
        assert cannibalization.cannibalization_value == pytest.approx(7000.0)
        assert cannibalization.cannibalization_percentage == pytest.approx(0.70)

    def test_segments(self, hundred_redemptions, march_2025):
        analysis = IncrementalRevenueAnalyzer(hundred_redemptions).analyze(march_2025)

        assert analysis.baseline.count == 70
        assert analysis.new_customers.count == 30
        assert analysis.with_discount.count == 100
        assert analysis.with_discount.revenue == pytest.approx(10000.0)
        assert analysis.with_discount.average_order_value == pytest.approx(100.0)

    def test_discount_roi(self, hundred_redemptions, march_2025):
        impact = IncrementalRevenueAnalyzer(hundred_redemptions).analyze(march_2025).incremental
        assert impact.new_customers == 30
        assert impact.total_discount_cost == pytest.approx(1000.0)
        assert impact.incremental_discount_cost == pytest.approx(300.0)
        assert impact.discount_roi == pytest.approx((3000.0 - 1000.0) / 1000.0)

    def test_ignores_non_applied(self, hundred_redemptions, march_2025):
        hundred_redemptions.add(
            Redemption(
                user_id="REFUND",
                final_amount=999.0,
                is_new_customer=True,
                timestamp=datetime(2025, 3, 20, tzinfo=UTC),
                status=RedemptionStatus.REFUNDED,
            )
        )
        analysis = IncrementalRevenueAnalyzer(hundred_redemptions).analyze(march_2025)
        assert analysis.new_customers.count == 30

    def test_empty_window(self, march_2025):
        analysis = IncrementalRevenueAnalyzer(InMemoryRedemptionStore()).analyze(march_2025)
        assert analysis.with_discount.count == 0
        assert analysis.cannibalization.risk_level == RiskLevel.LOW

    def test_campaign_filter(self, hundred_redemptions, march_2025):
        analysis = IncrementalRevenueAnalyzer(hundred_redemptions).analyze(
            RedemptionFilter(date_range=march_2025, campaign_id="OTHER")
        )
        assert analysis.with_discount.count == 0

    def test_to_dict(self, hundred_redemptions, march_2025):
        data = IncrementalRevenueAnalyzer(hundred_redemptions).analyze(march_2025).to_dict()
        assert data["cannibalization"]["risk_level"] == "high"
        assert data["baseline"]["count"] == 70
        assert data["incremental"]["net_incremental_revenue"] == pytest.approx(3000.0)
