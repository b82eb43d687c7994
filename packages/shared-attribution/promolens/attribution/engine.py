"""
Attribution - distribute conversion credit across a touchpoint journey.

Supports multiple attribution models:
- First-touch: All credit to the first touchpoint
- Last-touch: All credit to the last touchpoint
- Linear: Equal credit to all touchpoints
- Time-decay: Exponential recency bias by position (decay 0.7)

Time-decay weights touchpoints by their position in the journey, not by
wall-clock distance to the conversion, so irregular gaps between
touchpoints do not change the result.

Journeys must already be sorted ascending by timestamp. The engine never
re-sorts; unsorted input raises UnorderedJourneyError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from promolens.analytics.exceptions import InvalidFilterError, UnorderedJourneyError
from promolens.attribution.schema import AttributionModel, AttributionResult, Touchpoint

if TYPE_CHECKING:
    from promolens.analytics.filters import DateRange
    from promolens.stores.base import TouchpointStore

logger = logging.getLogger(__name__)

DEFAULT_DECAY_FACTOR = 0.7

ModelResults = dict[AttributionModel, list[AttributionResult]]
Comparator = Callable[[ModelResults], AttributionModel]


def check_order(touchpoints: Sequence[Touchpoint]) -> None:
    """Raise UnorderedJourneyError unless timestamps are non-decreasing."""
    for index in range(1, len(touchpoints)):
        if touchpoints[index].timestamp < touchpoints[index - 1].timestamp:
            raise UnorderedJourneyError(
                f"Touchpoint {touchpoints[index].touchpoint_id} at position {index} "
                f"is earlier than its predecessor"
            )


def model_weights(
    count: int,
    model: AttributionModel,
    decay_factor: float = DEFAULT_DECAY_FACTOR,
) -> list[float]:
    """Credit weights for a journey of ``count`` touchpoints.

    Returns an empty list for an empty journey; otherwise the weights sum
    to 1.0.
    """
    if count == 0:
        return []

    if model == AttributionModel.FIRST_TOUCH:
        return [1.0] + [0.0] * (count - 1)
    if model == AttributionModel.LAST_TOUCH:
        return [0.0] * (count - 1) + [1.0]
    if model == AttributionModel.LINEAR:
        return [1.0 / count] * count
    if model == AttributionModel.TIME_DECAY:
        raw = [decay_factor ** (count - index - 1) for index in range(count)]
        total = sum(raw)
        return [w / total for w in raw]

    raise InvalidFilterError(f"Unsupported attribution model: {model}")


def attribute(
    touchpoints: Sequence[Touchpoint],
    model: AttributionModel | str,
    decay_factor: float = DEFAULT_DECAY_FACTOR,
) -> list[AttributionResult]:
    """
    Attribute credit across an ordered journey.

    Args:
        touchpoints: Journey sorted ascending by timestamp
        model: Attribution model (enum or name)
        decay_factor: Per-step decay for the time-decay model

    Returns:
        One AttributionResult per touchpoint, in journey order
    """
    model = AttributionModel.parse(model)
    check_order(touchpoints)
    weights = model_weights(len(touchpoints), model, decay_factor)
    return [
        AttributionResult(touchpoint=tp, model=model, weight=weight)
        for tp, weight in zip(touchpoints, weights, strict=True)
    ]


def attribute_all(
    touchpoints: Sequence[Touchpoint],
    decay_factor: float = DEFAULT_DECAY_FACTOR,
) -> ModelResults:
    """Run every attribution model independently over the same journey."""
    return {
        model: attribute(touchpoints, model, decay_factor)
        for model in AttributionModel
    }


def credit_by_campaign(results: Sequence[AttributionResult]) -> dict[str, float]:
    """Sum attribution weight per campaign ("unassigned" for none)."""
    credit: dict[str, float] = {}
    for result in results:
        key = result.touchpoint.campaign_id or "unassigned"
        credit[key] = credit.get(key, 0.0) + result.weight
    return credit


# =============================================================================
# Winning-model comparators
# =============================================================================


def prefer_model(model: AttributionModel | str) -> Comparator:
    """Comparator that always selects the given model."""
    preferred = AttributionModel.parse(model)

    def _compare(results: ModelResults) -> AttributionModel:
        return preferred

    return _compare


def most_concentrated(results: ModelResults) -> AttributionModel:
    """Select the model giving the largest single-touchpoint credit.

    Ties resolve to the earliest model in AttributionModel declaration order.
    """
    best_model = next(iter(AttributionModel))
    best_weight = -1.0
    for model in AttributionModel:
        weights = [r.weight for r in results.get(model, [])]
        top = max(weights) if weights else 0.0
        if top > best_weight:
            best_model, best_weight = model, top
    return best_model


@dataclass
class JourneyAttribution:
    """Attribution of one subject's journey under every model."""

    subject_id: str
    touchpoints: list[Touchpoint]
    results: ModelResults
    winning_model: AttributionModel
    campaign_credit: dict[str, float] = field(default_factory=dict)

    @property
    def winning(self) -> list[AttributionResult]:
        return self.results[self.winning_model]

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "touchpoints": [tp.to_dict() for tp in self.touchpoints],
            "results": {
                model.value: [r.to_dict() for r in results]
                for model, results in self.results.items()
            },
            "winning_model": self.winning_model.value,
            "campaign_credit": dict(self.campaign_credit),
        }


class AttributionEngine:
    """
    Attribution engine over an injected touchpoint store.

    Example:
        engine = AttributionEngine(touchpoint_store=store)
        weights = engine.attribute(journey, AttributionModel.LINEAR)
        analysis = engine.analyze_journey("USER-001", DateRange.last_days(30))
    """

    def __init__(
        self,
        touchpoint_store: TouchpointStore | None = None,
        decay_factor: float = DEFAULT_DECAY_FACTOR,
        comparator: Comparator | None = None,
    ):
        """
        Initialize the engine.

        Args:
            touchpoint_store: Source of journeys for analyze_journey()
            decay_factor: Per-step decay for the time-decay model
            comparator: Default winning-model policy (prefers last-touch)
        """
        if not 0.0 < decay_factor <= 1.0:
            raise InvalidFilterError(f"decay_factor must be in (0, 1], got {decay_factor}")
        self.touchpoint_store = touchpoint_store
        self.decay_factor = decay_factor
        self.comparator = comparator or prefer_model(AttributionModel.LAST_TOUCH)

    def attribute(
        self,
        touchpoints: Sequence[Touchpoint],
        model: AttributionModel | str,
    ) -> list[AttributionResult]:
        return attribute(touchpoints, model, self.decay_factor)

    def attribute_all(self, touchpoints: Sequence[Touchpoint]) -> ModelResults:
        return attribute_all(touchpoints, self.decay_factor)

    def pick_winner(
        self,
        results: ModelResults,
        comparator: Comparator | None = None,
    ) -> AttributionModel:
        return (comparator or self.comparator)(results)

    def analyze_journey(
        self,
        subject_id: str,
        date_range: DateRange,
        comparator: Comparator | None = None,
    ) -> JourneyAttribution:
        """
        Attribute a stored journey under every model and pick a winner.

        Args:
            subject_id: User or session identifier
            date_range: Window of touchpoints to consider
            comparator: Override for the winning-model policy

        Returns:
            JourneyAttribution with per-model results and campaign credit

        Raises:
            ValueError: If no touchpoint store is configured
            DataUnavailableError: If the store query fails
        """
        if self.touchpoint_store is None:
            raise ValueError("analyze_journey requires a touchpoint store")

        touchpoints = list(self.touchpoint_store.query(subject_id, date_range))
        results = self.attribute_all(touchpoints)
        winner = self.pick_winner(results, comparator)

        logger.info(
            f"Attributed journey for {subject_id}: {len(touchpoints)} touchpoints, "
            f"winning model {winner.value}"
        )

        return JourneyAttribution(
            subject_id=subject_id,
            touchpoints=touchpoints,
            results=results,
            winning_model=winner,
            campaign_credit=credit_by_campaign(results[winner]),
        )
