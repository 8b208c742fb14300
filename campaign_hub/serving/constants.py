"""Constants for ad serving, scoring and billing."""

from types import MappingProxyType

COST_PER_VIEW_CENTS = 10  # Billed per confirmed impression
IMPRESSION_TTL_MINUTES = 30  # Lifetime of a reserved impression

# Weights of the scoring factors; they sum to 1.0
SCORING_WEIGHTS = MappingProxyType(
    {
        "TAG_OVERLAP": 0.4,
        "CATEGORY_MATCH": 0.3,
        "BUDGET_FACTOR": 0.2,
        "BID_AMOUNT": 0.1,
    }
)

AD_SERVING_LIMITS = MappingProxyType(
    {
        "MAX_CANDIDATES": 100,  # Candidates scored per request
        "MIN_SCORE": 0.01,  # Below this an ad is never served
    }
)

BUDGET_THRESHOLDS = MappingProxyType(
    {
        "LOW_BUDGET_PERCENT": 0.1,  # Remaining/budget ratio flagged as low
        "EMERGENCY_RESERVE_CENTS": 50,
    }
)

NEUTRAL_BID_SCORE = 0.5
