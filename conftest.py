"""Shared pytest fixtures for PromoLens packages."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from promolens.analytics.filters import DateRange
from promolens.analytics.schema import DetectedPattern, Redemption
from promolens.attribution.schema import Touchpoint, TouchpointType
from promolens.stores.memory import InMemoryRedemptionStore, InMemoryTouchpointStore


@pytest.fixture
def mock_bigquery_client():
    """Mock google.cloud.bigquery.Client for testing."""
    with patch("google.cloud.bigquery.Client") as mock:
        client = MagicMock()
        mock.return_value = client
        yield client


@pytest.fixture
def march_2025():
    """The whole of March 2025 (UTC)."""
    return DateRange(
        start=datetime(2025, 3, 1, tzinfo=UTC),
        end=datetime(2025, 3, 31, 23, 59, 59, tzinfo=UTC),
    )


@pytest.fixture
def sample_journey():
    """utm_visit -> affiliate_click -> utm_visit, one day apart."""
    start = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
    return [
        Touchpoint(
            campaign_id="SPRING-25",
            channel="email",
            type=TouchpointType.UTM_VISIT,
            timestamp=start,
            session_or_user_id="USER-001",
            touchpoint_id="TP_1",
        ),
        Touchpoint(
            campaign_id="AFF-10",
            channel="affiliate",
            type=TouchpointType.AFFILIATE_CLICK,
            timestamp=start + timedelta(days=1),
            session_or_user_id="USER-001",
            touchpoint_id="TP_2",
        ),
        Touchpoint(
            campaign_id="SPRING-25",
            channel="email",
            type=TouchpointType.UTM_VISIT,
            timestamp=start + timedelta(days=2),
            session_or_user_id="USER-001",
            touchpoint_id="TP_3",
        ),
    ]


@pytest.fixture
def touchpoint_store(sample_journey):
    """In-memory touchpoint store holding the sample journey."""
    store = InMemoryTouchpointStore()
    for touchpoint in sample_journey:
        store.add(touchpoint)
    return store


@pytest.fixture
def sample_redemptions():
    """A small mix of new/existing, mobile/desktop redemptions in March 2025."""
    day = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)
    return [
        Redemption(
            user_id="USER-001",
            campaign_id="SPRING-25",
            discount_code="SPRING10",
            gross_amount=100.0,
            discount_amount=10.0,
            final_amount=90.0,
            is_new_customer=True,
            device_type="mobile",
            country="US",
            channel="email",
            timestamp=day,
            redemption_id="RDM_1",
        ),
        Redemption(
            user_id="USER-002",
            campaign_id="SPRING-25",
            discount_code="SPRING10",
            gross_amount=200.0,
            discount_amount=20.0,
            final_amount=180.0,
            is_new_customer=False,
            device_type="desktop",
            country="CA",
            channel="email",
            timestamp=day + timedelta(hours=2),
            redemption_id="RDM_2",
            detected_patterns=(DetectedPattern("code_sharing", 90.0),),
        ),
        Redemption(
            user_id="USER-003",
            campaign_id="SPRING-25",
            discount_code="SPRING10",
            gross_amount=50.0,
            discount_amount=5.0,
            final_amount=45.0,
            is_new_customer=False,
            device_type="mobile",
            country="US",
            channel="social",
            timestamp=day + timedelta(days=1),
            redemption_id="RDM_3",
        ),
    ]


@pytest.fixture
def redemption_store(sample_redemptions):
    """In-memory redemption store holding the sample redemptions."""
    store = InMemoryRedemptionStore()
    for redemption in sample_redemptions:
        store.add(redemption)
    return store
