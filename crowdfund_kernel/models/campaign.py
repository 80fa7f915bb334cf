"""
Module: crowdfund_kernel.models.campaign
Responsibility: In-memory state records for one funding campaign and its
    per-investor investments.
Architecture position: Kernel > Models.  Mutated only by ProjectLedger under
    the campaign lock.

Invariants enforced:
    - Status moves only ACTIVE -> {SUCCESSFUL, FAILED, CANCELLED}.
    - funds_withdrawn implies status SUCCESSFUL.
    - sum(investment.amount_contributed) == total_raised.

Failure modes:
    - ValueError from ``Campaign.transition`` on any illegal status change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CampaignStatus(str, Enum):
    """Lifecycle status of a campaign.

    Contract: ACTIVE is the only non-terminal status.
    """

    ACTIVE = "active"
    SUCCESSFUL = "successful"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not CampaignStatus.ACTIVE

    @property
    def is_refundable(self) -> bool:
        # Cancelled campaigns never disbursed, so they refund like failures.
        return self in (CampaignStatus.FAILED, CampaignStatus.CANCELLED)


VALID_TRANSITIONS: dict[CampaignStatus, frozenset[CampaignStatus]] = {
    CampaignStatus.ACTIVE: frozenset(
        {CampaignStatus.SUCCESSFUL, CampaignStatus.FAILED, CampaignStatus.CANCELLED}
    ),
    CampaignStatus.SUCCESSFUL: frozenset(),
    CampaignStatus.FAILED: frozenset(),
    CampaignStatus.CANCELLED: frozenset(),
}


@dataclass(slots=True)
class Investment:
    """One investor's position in one campaign."""

    investor: str
    amount_contributed: int = 0
    tokens_purchased: int = 0
    claimed_refund: bool = False


@dataclass(slots=True)
class Campaign:
    """
    Funding campaign state.

    Contract:
        Configuration fields are fixed at creation. Counters and flags are
        written only by ProjectLedger. ``investments`` preserves first
        contribution order, which is the investor enumeration order.
    """

    campaign_id: str
    creator: str
    name: str
    symbol: str
    total_supply: int
    description: str
    target_amount: int
    token_price: int
    start_time: int
    end_time: int
    vesting_cliff: int
    vesting_duration: int
    status: CampaignStatus = CampaignStatus.ACTIVE
    total_raised: int = 0
    total_tokens_sold: int = 0
    funds_withdrawn: bool = False
    vesting_initialized: bool = False
    paused: bool = False
    finalized_at: int | None = None
    investments: dict[str, Investment] = field(default_factory=dict)

    @property
    def investor_count(self) -> int:
        return len(self.investments)

    def transition(self, new_status: CampaignStatus) -> None:
        if new_status not in VALID_TRANSITIONS[self.status]:
            raise ValueError(
                f"Illegal campaign transition {self.status.value} -> {new_status.value}"
            )
        self.status = new_status
