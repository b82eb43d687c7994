"""
Policy constants and threshold classifiers.

These thresholds are business policy, not values derived from data. They
are tunable, and each classifier is a pure function so the bucketing can
be tested independently of any aggregation.
"""

from __future__ import annotations

from promolens.analytics.schema import RiskLevel, TrendDirection

# Cannibalization risk (share of redemptions from existing customers)
CANNIBALIZATION_HIGH_THRESHOLD = 0.7  # inclusive
CANNIBALIZATION_MEDIUM_THRESHOLD = 0.5  # exclusive

# Fraud risk score tiers on the 0-100 scale (upper bounds, exclusive)
FRAUD_SCORE_MIN = 0.0
FRAUD_SCORE_MAX = 100.0
FRAUD_LOW_UPPER = 25.0
FRAUD_MEDIUM_UPPER = 50.0
FRAUD_HIGH_UPPER = 75.0

# Fraud signal weights
VELOCITY_EXCEEDED_SCORE = 40.0
GEO_RESTRICTED_SCORE = 50.0
BOT_DETECTED_SCORE = 60.0
REPEATED_ATTEMPTS_SCORE = 30.0
REPEATED_ATTEMPTS_REVIEW_LIMIT = 10  # attempts in 24h before review is forced
REPEATED_ATTEMPTS_BLOCK_LIMIT = 20  # attempts in 24h before the redemption is blocked

# Detected pattern risk, by average confidence (0-100)
PATTERN_HIGH_CONFIDENCE = 80.0
PATTERN_MEDIUM_CONFIDENCE = 50.0

# Recommendation triggers
ELEVATED_FRAUD_RATE = 0.05  # share of redemptions flagged for review
EXCESSIVE_DISCOUNT_RATE = 0.30
LOW_NEW_CUSTOMER_RATE = 0.20
LOW_WEEK4_RETENTION = 0.20


def classify_cannibalization_risk(rate: float) -> RiskLevel:
    """Bucket a cannibalization rate into low / medium / high."""
    if rate >= CANNIBALIZATION_HIGH_THRESHOLD:
        return RiskLevel.HIGH
    if rate > CANNIBALIZATION_MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def clamp_risk_score(score: float) -> float:
    return max(FRAUD_SCORE_MIN, min(FRAUD_SCORE_MAX, score))


def classify_fraud_risk(score: float) -> RiskLevel:
    """Bucket a fraud risk score; every real score maps to exactly one tier."""
    score = clamp_risk_score(score)
    if score < FRAUD_LOW_UPPER:
        return RiskLevel.LOW
    if score < FRAUD_MEDIUM_UPPER:
        return RiskLevel.MEDIUM
    if score < FRAUD_HIGH_UPPER:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def requires_review(level: RiskLevel) -> bool:
    return level.rank >= RiskLevel.HIGH.rank


def classify_pattern_risk(average_confidence: float) -> RiskLevel:
    if average_confidence >= PATTERN_HIGH_CONFIDENCE:
        return RiskLevel.HIGH
    if average_confidence >= PATTERN_MEDIUM_CONFIDENCE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify_trend(delta: float) -> TrendDirection:
    """Direction from the sign of a period-over-period delta."""
    if delta > 0:
        return TrendDirection.POSITIVE
    if delta < 0:
        return TrendDirection.NEGATIVE
    return TrendDirection.STABLE
