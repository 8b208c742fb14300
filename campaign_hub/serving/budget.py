"""
Budget accounting for campaigns and ads.

A campaign's budget is split between ads that carry their own budget
("budgeted" ads) and a shared pool used by ads without one ("pool" ads).

    allocated       = sum of budgets of budgeted ads
    pool spent      = campaign spent - spend of budgeted ads
    pool available  = campaign budget - allocated - pool spent

A budgeted ad can be billed while ``budget - spent >= cost``; a pool ad
while ``pool available >= cost``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CampaignLedger:
    """Snapshot of one campaign's budget usage."""

    budget_cents: int
    spent_cents: int
    allocated_cents: int = 0
    budgeted_spent_cents: int = 0

    @property
    def pool_spent_cents(self) -> int:
        return max(0, self.spent_cents - self.budgeted_spent_cents)

    @property
    def pool_available_cents(self) -> int:
        return self.budget_cents - self.allocated_cents - self.pool_spent_cents

    @property
    def committed_cents(self) -> int:
        """Amount the campaign budget can no longer be reduced below."""
        return self.allocated_cents + self.pool_spent_cents

    @property
    def remaining_cents(self) -> int:
        return max(0, self.budget_cents - self.spent_cents)


@dataclass(frozen=True)
class AdBudget:
    """The budget columns of an ad."""

    budget_cents: Optional[int]
    spent_cents: int = 0

    @property
    def uses_campaign_pool(self) -> bool:
        return self.budget_cents is None


@dataclass(frozen=True)
class BudgetCheck:
    """Outcome of validating a requested ad budget against its campaign."""

    is_valid: bool
    campaign_budget_cents: int
    allocated_cents: int
    remaining_cents: int
    error: Optional[str] = None

    def as_dict(self, requested_cents: Optional[int] = None) -> dict:
        return {
            "campaign_budget_cents": self.campaign_budget_cents,
            "allocated_cents": self.allocated_cents,
            "remaining_cents": self.remaining_cents,
            "requested_cents": requested_cents,
        }


def ad_remaining(ad: AdBudget, ledger: CampaignLedger) -> int:
    """Cents an ad can still spend."""
    if ad.uses_campaign_pool:
        return ledger.pool_available_cents
    return ad.budget_cents - ad.spent_cents


def has_sufficient_budget(ad: AdBudget, ledger: CampaignLedger, cost_cents: int) -> bool:
    return ad_remaining(ad, ledger) >= cost_cents


def budget_factor(ad: AdBudget, ledger: CampaignLedger) -> float:
    """Remaining budget ratio in ``[0, 1]``; ads with more headroom score higher.

    Pool ads are measured on the campaign totals.
    """
    if ad.uses_campaign_pool:
        total, spent = ledger.budget_cents, ledger.spent_cents
    else:
        total, spent = ad.budget_cents, ad.spent_cents
    if total <= 0:
        return 0.0
    return max(0.0, (total - spent) / total)


def validate_ad_budget(
    ledger: CampaignLedger,
    requested_cents: Optional[int],
    current: Optional[AdBudget] = None,
) -> BudgetCheck:
    """Check that a new or changed ad budget fits the campaign pool.

    Args:
        ledger: Campaign ledger, including the current ad's allocation if any
        requested_cents: Requested ad budget; ``None`` keeps the ad on the pool
        current: The ad's current budget when updating

    Returns:
        BudgetCheck describing whether the request fits
    """
    available = ledger.pool_available_cents

    def result(error: Optional[str] = None) -> BudgetCheck:
        return BudgetCheck(
            is_valid=error is None,
            campaign_budget_cents=ledger.budget_cents,
            allocated_cents=ledger.allocated_cents,
            remaining_cents=max(0, available),
            error=error,
        )

    if requested_cents is None:
        return result()

    if requested_cents < 0:
        return result("Ad budget cannot be negative")

    if current is not None and requested_cents < current.spent_cents:
        return result(f"Ad budget cannot be lower than the amount already spent ({current.spent_cents} cents)")

    # What the ad already holds against the campaign: its own budget, or its pool spend.
    if current is None:
        held = 0
    elif current.uses_campaign_pool:
        held = current.spent_cents
    else:
        held = current.budget_cents
    if requested_cents - held > available:
        return result(
            f"Ad budget exceeds the campaign's remaining budget: requested {requested_cents} cents, "
            f"{max(0, available) + held} cents available"
        )
    return result()
