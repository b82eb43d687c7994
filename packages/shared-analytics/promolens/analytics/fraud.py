"""
FraudRiskScorer - per-redemption risk scoring and abuse-pattern ranking.

Scores combine behavioural signals (velocity, geography, bot signatures,
repeated attempts, IP reputation) into a 0-100 risk score, bucketed into
low / medium / high / critical tiers by the thresholds in
``promolens.analytics.policy``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from promolens.analytics import policy
from promolens.analytics.filters import DateRange, RedemptionFilter, as_filter
from promolens.analytics.schema import (
    FraudAssessment,
    Redemption,
    RedemptionStatus,
    RiskLevel,
    to_frame,
)

if TYPE_CHECKING:
    from promolens.stores.base import RedemptionStore

logger = logging.getLogger(__name__)

DEFAULT_PATTERN_LIMIT = 20


@dataclass(frozen=True)
class FraudContext:
    """Behavioural signals observed around a redemption attempt."""

    velocity_exceeded: bool = False
    geo_restricted: bool = False
    bot_detected: bool = False
    recent_attempts: int = 0  # redemption attempts by the user in the last 24h
    ip_reputation_score: float = 0.0
    ip_blocked: bool = False


@dataclass(frozen=True)
class FraudPattern:
    """A recurring abuse pattern ranked for manual review."""

    pattern: str
    occurrences: int
    average_confidence: float
    revenue_impact: float
    affected_countries: list[str]
    risk_level: RiskLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "occurrences": self.occurrences,
            "average_confidence": self.average_confidence,
            "revenue_impact": self.revenue_impact,
            "affected_countries": list(self.affected_countries),
            "risk_level": self.risk_level.value,
        }


@dataclass(frozen=True)
class FraudSummary:
    """Fraud section of a performance report."""

    total_redemptions: int = 0
    risk_distribution: dict[str, int] = field(
        default_factory=lambda: {level.value: 0 for level in RiskLevel}
    )
    flagged_redemptions: int = 0
    blocked_redemptions: int = 0
    flagged_rate: float = 0.0
    fraud_rate: float = 0.0
    average_risk_score: float = 0.0
    revenue_at_risk: float = 0.0
    revenue_at_risk_share: float = 0.0
    patterns: list[FraudPattern] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_redemptions": self.total_redemptions,
            "risk_distribution": dict(self.risk_distribution),
            "flagged_redemptions": self.flagged_redemptions,
            "blocked_redemptions": self.blocked_redemptions,
            "flagged_rate": self.flagged_rate,
            "fraud_rate": self.fraud_rate,
            "average_risk_score": self.average_risk_score,
            "revenue_at_risk": self.revenue_at_risk,
            "revenue_at_risk_share": self.revenue_at_risk_share,
            "patterns": [p.to_dict() for p in self.patterns],
        }


def rank_patterns(redemptions: list[Redemption], limit: int = DEFAULT_PATTERN_LIMIT) -> list[FraudPattern]:
    """Aggregate tagged patterns, most frequent first (ties by pattern name)."""
    stats: dict[str, dict[str, Any]] = {}
    for redemption in redemptions:
        for tag in redemption.detected_patterns:
            entry = stats.setdefault(
                tag.pattern,
                {"count": 0, "confidence": 0.0, "revenue": 0.0, "countries": set()},
            )
            entry["count"] += 1
            entry["confidence"] += tag.confidence
            entry["revenue"] += redemption.final_amount
            if redemption.country:
                entry["countries"].add(redemption.country.upper())

    ranked = []
    for name, entry in stats.items():
        average_confidence = entry["confidence"] / entry["count"]
        ranked.append(FraudPattern(
            pattern=name,
            occurrences=entry["count"],
            average_confidence=round(average_confidence, 2),
            revenue_impact=entry["revenue"],
            affected_countries=sorted(entry["countries"]),
            risk_level=policy.classify_pattern_risk(average_confidence),
        ))

    ranked.sort(key=lambda p: (-p.occurrences, p.pattern))
    return ranked[:limit]


class FraudRiskScorer:
    """
    Score redemptions and surface recurring abuse patterns.

    Example:
        scorer = FraudRiskScorer(store)
        assessment = scorer.score(redemption, FraudContext(velocity_exceeded=True))
        patterns = scorer.detect_patterns(window)
    """

    def __init__(
        self,
        store: RedemptionStore | None = None,
        pattern_limit: int = DEFAULT_PATTERN_LIMIT,
    ):
        self.store = store
        self.pattern_limit = pattern_limit

    def score(self, redemption: Redemption, context: FraudContext) -> FraudAssessment:
        """Score one redemption from its context signals."""
        score = 0.0
        reasons = []
        review = False
        blocked = False

        if context.velocity_exceeded:
            score += policy.VELOCITY_EXCEEDED_SCORE
            reasons.append("Velocity limit exceeded")
        if context.geo_restricted:
            score += policy.GEO_RESTRICTED_SCORE
            reasons.append("Geographic restriction")
        if context.bot_detected:
            score += policy.BOT_DETECTED_SCORE
            reasons.append("Bot detection")

        if context.recent_attempts > policy.REPEATED_ATTEMPTS_REVIEW_LIMIT:
            score += policy.REPEATED_ATTEMPTS_SCORE
            review = True
            reasons.append("Repeated attempts")
        if context.recent_attempts > policy.REPEATED_ATTEMPTS_BLOCK_LIMIT:
            blocked = True

        score += context.ip_reputation_score
        if context.ip_blocked:
            blocked = True
            reasons.append("Blocked IP")

        if any(
            tag.confidence >= policy.PATTERN_HIGH_CONFIDENCE
            for tag in redemption.detected_patterns
        ):
            review = True
            reasons.append("High-confidence abuse pattern")

        score = policy.clamp_risk_score(score)
        level = policy.classify_fraud_risk(score)

        return FraudAssessment(
            risk_score=score,
            risk_level=level,
            review_required=review or blocked or policy.requires_review(level),
            blocked=blocked,
            reasons=tuple(reasons),
        )

    def assess(self, redemption: Redemption, context: FraudContext) -> FraudAssessment:
        """Score a redemption and attach the assessment in the store."""
        assessment = self.score(redemption, context)
        self._require_store().attach_fraud_assessment(redemption.redemption_id, assessment)
        logger.info(
            f"Assessed {redemption.redemption_id}: score {assessment.risk_score:.0f} "
            f"({assessment.risk_level.value})"
        )
        return assessment

    def detect_patterns(self, redemption_filter: RedemptionFilter | DateRange) -> list[FraudPattern]:
        """Ranked abuse patterns; empty when nothing has been tagged."""
        redemptions = self._require_store().query(as_filter(redemption_filter))
        return rank_patterns(redemptions, self.pattern_limit)

    def summarize(self, redemption_filter: RedemptionFilter | DateRange) -> FraudSummary:
        """Risk distribution, flag rates and ranked patterns for the window."""
        redemptions = self._require_store().query(as_filter(redemption_filter))
        patterns = rank_patterns(redemptions, self.pattern_limit)
        frame = to_frame(redemptions)
        total = len(frame)
        if total == 0:
            return FraudSummary(patterns=patterns)

        counts = frame["fraud_risk_level"].value_counts()
        distribution = {level.value: int(counts.get(level.value, 0)) for level in RiskLevel}
        flagged = frame["review_required"].astype(bool)
        blocked = int((frame["status"] == RedemptionStatus.FRAUD_FLAGGED.value).sum())
        revenue = float(frame["final_amount"].sum())
        at_risk = float(frame.loc[flagged, "final_amount"].sum())

        summary = FraudSummary(
            total_redemptions=total,
            risk_distribution=distribution,
            flagged_redemptions=int(flagged.sum()),
            blocked_redemptions=blocked,
            flagged_rate=int(flagged.sum()) / total,
            fraud_rate=blocked / total,
            average_risk_score=float(frame["fraud_risk_score"].mean()),
            revenue_at_risk=at_risk,
            revenue_at_risk_share=at_risk / revenue if revenue > 0 else 0.0,
            patterns=patterns,
        )
        if summary.flagged_rate > policy.ELEVATED_FRAUD_RATE:
            logger.warning(f"Elevated fraud flag rate: {summary.flagged_rate:.1%}")
        return summary

    def _require_store(self) -> RedemptionStore:
        if self.store is None:
            raise ValueError("FraudRiskScorer requires a redemption store for this operation")
        return self.store
