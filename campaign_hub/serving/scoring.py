"""
Ad scoring.

Each candidate is scored as a weighted sum of four factors in ``[0, 1]``:

- tag overlap: Jaccard similarity between the video tags and the ad tags
- category match: 1.0 when the video category is one of the ad categories
- budget factor: share of the ad's budget that is still unspent
- bid amount: neutral until bidding exists

The best candidate wins; ties at the top score are broken at random.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence

from .budget import AdBudget, CampaignLedger, budget_factor
from .constants import AD_SERVING_LIMITS, NEUTRAL_BID_SCORE, SCORING_WEIGHTS


@dataclass(frozen=True)
class ScoringFactors:
    tag_overlap: float
    category_match: float
    budget_factor: float
    bid_amount: float


@dataclass(frozen=True)
class ScoringResult:
    ad_id: int
    score: float
    factors: ScoringFactors


@dataclass
class Candidate:
    """An ad eligible for serving together with the budget data it is scored on."""

    ad_id: int
    campaign_id: int
    categories: List[str]
    tags: List[str]
    budget: AdBudget
    ledger: CampaignLedger
    payload: Optional[object] = field(default=None, repr=False)


def _normalized(values: Iterable[str]) -> set:
    return {v.strip().lower() for v in values if v and v.strip()}


def tag_overlap(video_tags: Sequence[str], ad_tags: Sequence[str]) -> float:
    """Jaccard similarity of the lower-cased tag sets; 0 when either side is empty."""
    video_set = _normalized(video_tags)
    ad_set = _normalized(ad_tags)
    if not video_set or not ad_set:
        return 0.0
    return len(video_set & ad_set) / len(video_set | ad_set)


def category_match(category: Optional[str], ad_categories: Sequence[str]) -> float:
    if not category or not category.strip():
        return 0.0
    return 1.0 if category.strip().lower() in _normalized(ad_categories) else 0.0


def bid_amount(candidate: Candidate) -> float:
    return NEUTRAL_BID_SCORE


def score_ad(
    candidate: Candidate,
    category: Optional[str],
    tags: Sequence[str],
    weights: Mapping[str, float] = SCORING_WEIGHTS,
) -> ScoringResult:
    """Score one candidate against the video context.

    Args:
        candidate: Ad to score
        category: Video category (optional)
        tags: Video tags
        weights: Factor weights keyed like ``SCORING_WEIGHTS``

    Returns:
        ScoringResult with the weighted score and the individual factors
    """
    factors = ScoringFactors(
        tag_overlap=tag_overlap(tags, candidate.tags),
        category_match=category_match(category, candidate.categories),
        budget_factor=budget_factor(candidate.budget, candidate.ledger),
        bid_amount=bid_amount(candidate),
    )
    score = (
        factors.tag_overlap * weights["TAG_OVERLAP"]
        + factors.category_match * weights["CATEGORY_MATCH"]
        + factors.budget_factor * weights["BUDGET_FACTOR"]
        + factors.bid_amount * weights["BID_AMOUNT"]
    )
    return ScoringResult(ad_id=candidate.ad_id, score=score, factors=factors)


def select_best(
    results: Sequence[ScoringResult],
    min_score: float = AD_SERVING_LIMITS["MIN_SCORE"],
    rng: Optional[random.Random] = None,
) -> Optional[ScoringResult]:
    """Pick the highest scoring result, breaking ties at the top at random.

    Args:
        results: Scored candidates
        min_score: Results below this score are never selected
        rng: Random source (tests pass a seeded one)

    Returns:
        The winning result, or None when nothing reaches ``min_score``
    """
    eligible = [r for r in results if r.score >= min_score]
    if not eligible:
        return None
    top_score = max(r.score for r in eligible)
    top = [r for r in eligible if r.score == top_score]
    return (rng or random).choice(top)


def get_scoring_weights() -> dict:
    return dict(SCORING_WEIGHTS)
