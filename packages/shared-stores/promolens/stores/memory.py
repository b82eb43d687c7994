"""In-memory record stores.

Each instance owns its records, so separate report runs never share
tracking state. Useful for tests, demos and small batch jobs.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

from promolens.analytics.exceptions import DataUnavailableError
from promolens.stores.base import (
    CampaignMetadata,
    CampaignStore,
    RedemptionStore,
    TouchpointStore,
)

if TYPE_CHECKING:
    from promolens.analytics.filters import DateRange, RedemptionFilter
    from promolens.analytics.schema import FraudAssessment, Redemption
    from promolens.attribution.schema import Touchpoint

logger = logging.getLogger(__name__)


class InMemoryTouchpointStore(TouchpointStore):
    """Touchpoints held in a list, returned sorted by timestamp."""

    def __init__(self, touchpoints: Iterable[Touchpoint] | None = None):
        self._touchpoints: list[Touchpoint] = list(touchpoints or [])
        self._lock = threading.Lock()

    def add(self, touchpoint: Touchpoint) -> None:
        with self._lock:
            self._touchpoints.append(touchpoint)

    def query(self, subject_id: str, date_range: DateRange) -> list[Touchpoint]:
        with self._lock:
            matching = [
                tp
                for tp in self._touchpoints
                if tp.session_or_user_id == subject_id and date_range.contains(tp.timestamp)
            ]
        return sorted(matching, key=lambda tp: tp.timestamp)


class InMemoryRedemptionStore(RedemptionStore):
    """Redemptions held in insertion order."""

    def __init__(self, redemptions: Iterable[Redemption] | None = None):
        self._redemptions: list[Redemption] = list(redemptions or [])
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._redemptions)

    def add(self, redemption: Redemption) -> None:
        with self._lock:
            self._redemptions.append(redemption)

    def get(self, redemption_id: str) -> Redemption | None:
        with self._lock:
            for redemption in self._redemptions:
                if redemption.redemption_id == redemption_id:
                    return redemption
        return None

    def query(self, redemption_filter: RedemptionFilter) -> list[Redemption]:
        with self._lock:
            snapshot = list(self._redemptions)
        return [r for r in snapshot if redemption_filter.matches(r)]

    def attach_fraud_assessment(
        self,
        redemption_id: str,
        assessment: FraudAssessment,
    ) -> None:
        with self._lock:
            for index, redemption in enumerate(self._redemptions):
                if redemption.redemption_id == redemption_id:
                    self._redemptions[index] = redemption.with_assessment(assessment)
                    logger.debug(
                        f"Attached {assessment.risk_level.value} assessment to {redemption_id}"
                    )
                    return
        raise DataUnavailableError(f"Redemption not found: {redemption_id}")


class InMemoryCampaignStore(CampaignStore):
    """Campaign metadata keyed by campaign id."""

    def __init__(self, campaigns: Iterable[CampaignMetadata] | None = None):
        self._campaigns = {c.campaign_id: c for c in (campaigns or [])}

    def get(self, campaign_id: str) -> CampaignMetadata | None:
        return self._campaigns.get(campaign_id)
