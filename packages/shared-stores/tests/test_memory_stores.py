"""Tests for in-memory stores."""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest

from promolens.analytics.exceptions import DataUnavailableError
from promolens.analytics.filters import DateRange, RedemptionFilter
from promolens.analytics.schema import FraudAssessment, Redemption, RiskLevel
from promolens.stores.base import CampaignMetadata
from promolens.stores.memory import (
    InMemoryCampaignStore,
    InMemoryRedemptionStore,
    InMemoryTouchpointStore,
)


class TestInMemoryTouchpointStore:
    """Test InMemoryTouchpointStore."""

    def test_query_sorts_by_timestamp(self, sample_journey, march_2025):
        store = InMemoryTouchpointStore(reversed(sample_journey))
        result = store.query("USER-001", march_2025)
        assert [tp.touchpoint_id for tp in result] == ["TP_1", "TP_2", "TP_3"]

    def test_query_filters_subject(self, touchpoint_store, march_2025):
        assert touchpoint_store.query("USER-002", march_2025) == []

    def test_instances_do_not_share_state(self, sample_journey, march_2025):
        first = InMemoryTouchpointStore()
        second = InMemoryTouchpointStore()
        first.add(sample_journey[0])
        assert second.query("USER-001", march_2025) == []


class TestInMemoryRedemptionStore:
    """Test InMemoryRedemptionStore."""

    def test_query_uses_filter(self, redemption_store, march_2025):
        result = redemption_store.query(RedemptionFilter(date_range=march_2025, country="CA"))
        assert [r.redemption_id for r in result] == ["RDM_2"]

    def test_query_outside_range(self, redemption_store):
        window = DateRange(
            start=datetime(2025, 4, 1, tzinfo=UTC),
            end=datetime(2025, 4, 30, tzinfo=UTC),
        )
        assert redemption_store.query(RedemptionFilter(date_range=window)) == []

    def test_get(self, redemption_store):
        assert redemption_store.get("RDM_3").user_id == "USER-003"
        assert redemption_store.get("RDM_404") is None

    def test_attach_fraud_assessment(self, redemption_store):
        assessment = FraudAssessment(
            risk_score=55.0, risk_level=RiskLevel.HIGH, review_required=True
        )
        redemption_store.attach_fraud_assessment("RDM_1", assessment)

        updated = redemption_store.get("RDM_1")
        assert updated.fraud_risk_score == 55.0
        assert updated.review_required is True
        assert len(redemption_store) == 3

    def test_attach_unknown_redemption(self, redemption_store):
        assessment = FraudAssessment(risk_score=0.0, risk_level=RiskLevel.LOW, review_required=False)
        with pytest.raises(DataUnavailableError, match="RDM_404"):
            redemption_store.attach_fraud_assessment("RDM_404", assessment)

    def test_concurrent_adds(self):
        store = InMemoryRedemptionStore()
        start = datetime(2025, 3, 1, tzinfo=UTC)

        def add(index):
            store.add(Redemption(user_id=f"U{index}", timestamp=start + timedelta(minutes=index)))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(add, range(200)))
        assert len(store) == 200


class TestInMemoryCampaignStore:
    """Test InMemoryCampaignStore."""

    def test_get(self):
        campaign = CampaignMetadata(
            campaign_id="SPRING-25",
            name="Spring Sale",
            budget=5000.0,
            objectives=("acquisition",),
            starts_at=datetime(2025, 3, 1, tzinfo=UTC),
        )
        store = InMemoryCampaignStore([campaign])
        assert store.get("SPRING-25") is campaign
        assert store.get("UNKNOWN") is None

    def test_metadata_to_dict(self):
        campaign = CampaignMetadata(
            campaign_id="SPRING-25",
            name="Spring Sale",
            budget=5000.0,
            objectives=("acquisition", "retention"),
            starts_at=datetime(2025, 3, 1, tzinfo=UTC),
        )
        assert campaign.to_dict() == {
            "campaign_id": "SPRING-25",
            "name": "Spring Sale",
            "budget": 5000.0,
            "objectives": ["acquisition", "retention"],
            "timeline": {"starts_at": "2025-03-01T00:00:00+00:00", "ends_at": None},
        }
