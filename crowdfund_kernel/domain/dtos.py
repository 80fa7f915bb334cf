"""
DTOs -- Immutable inputs, results and read views.

Responsibility:
    Defines the frozen data structures crossing the kernel boundary:
    ProjectParams (creation input), operation results (InvestmentReceipt,
    FinalizationResult, WithdrawalResult, RefundResult, ClaimResult) and read
    views (ProjectInfo, InvestmentInfo, VestingInfo, VestingStats,
    PlatformStats, RegistryEntryInfo).

Architecture position:
    Kernel > Domain -- pure data, zero I/O. Services convert mutable
    model records into these DTOs with ``from_model`` boundary helpers;
    callers never receive a live model object.
"""

from __future__ import annotations

from dataclasses import dataclass

from crowdfund_kernel.models.campaign import Campaign, CampaignStatus
from crowdfund_kernel.models.registry import RegistryEntry
from crowdfund_kernel.models.vesting import VestingSchedule


@dataclass(frozen=True)
class ProjectParams:
    """Campaign creation parameters, in base units and seconds."""

    name: str
    symbol: str
    total_supply: int
    target_amount: int
    duration: int
    token_price: int
    vesting_duration: int
    vesting_cliff: int
    description: str = ""


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateProjectResult:
    campaign_id: str
    creation_fee: int
    refunded_excess: int


@dataclass(frozen=True)
class InvestmentReceipt:
    tokens_credited: int
    total_raised: int
    auto_finalized: bool = False


@dataclass(frozen=True)
class FinalizationResult:
    status: CampaignStatus
    total_raised: int


@dataclass(frozen=True)
class WithdrawalResult:
    amount_to_creator: int
    fee_to_recipient: int
    fee_retained: int = 0


@dataclass(frozen=True)
class RefundResult:
    amount_refunded: int


@dataclass(frozen=True)
class ClaimResult:
    amount_claimed: int


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectInfo:
    """Snapshot of a campaign's configuration and counters."""

    campaign_id: str
    creator: str
    name: str
    symbol: str
    description: str
    total_supply: int
    target_amount: int
    token_price: int
    start_time: int
    end_time: int
    status: CampaignStatus
    total_raised: int
    total_tokens_sold: int
    investor_count: int
    funds_withdrawn: bool
    vesting_initialized: bool
    vesting_cliff: int
    vesting_duration: int
    paused: bool

    @classmethod
    def from_model(cls, campaign: Campaign) -> ProjectInfo:
        return cls(
            campaign_id=campaign.campaign_id,
            creator=campaign.creator,
            name=campaign.name,
            symbol=campaign.symbol,
            description=campaign.description,
            total_supply=campaign.total_supply,
            target_amount=campaign.target_amount,
            token_price=campaign.token_price,
            start_time=campaign.start_time,
            end_time=campaign.end_time,
            status=campaign.status,
            total_raised=campaign.total_raised,
            total_tokens_sold=campaign.total_tokens_sold,
            investor_count=campaign.investor_count,
            funds_withdrawn=campaign.funds_withdrawn,
            vesting_initialized=campaign.vesting_initialized,
            vesting_cliff=campaign.vesting_cliff,
            vesting_duration=campaign.vesting_duration,
            paused=campaign.paused,
        )


@dataclass(frozen=True)
class InvestmentInfo:
    investor: str
    amount_contributed: int
    tokens_purchased: int
    claimed_refund: bool
    claimable_tokens: int


@dataclass(frozen=True)
class ScheduleInfo:
    beneficiary: str
    total_amount: int
    claimed_amount: int
    is_active: bool

    @classmethod
    def from_model(cls, schedule: VestingSchedule) -> ScheduleInfo:
        return cls(
            beneficiary=schedule.beneficiary,
            total_amount=schedule.total_amount,
            claimed_amount=schedule.claimed_amount,
            is_active=schedule.is_active,
        )


@dataclass(frozen=True)
class VestingInfo:
    """
    Vesting position of one beneficiary at a point in time.

    ``next_unlock_time`` is the cliff time before the cliff, the full-vest
    time while vesting, and 0 once fully vested or inactive.
    """

    beneficiary: str
    total_tokens: int
    claimed_tokens: int
    claimable_tokens: int
    next_unlock_time: int
    is_active: bool


@dataclass(frozen=True)
class VestingStats:
    total_vested: int
    total_claimed: int
    total_claimable: int
    beneficiary_count: int


@dataclass(frozen=True)
class RegistryEntryInfo:
    campaign_id: str
    creator: str
    name: str
    symbol: str
    created_at: int
    target_amount: int
    duration: int
    is_verified: bool
    status: CampaignStatus

    @classmethod
    def from_model(cls, entry: RegistryEntry) -> RegistryEntryInfo:
        return cls(
            campaign_id=entry.campaign_id,
            creator=entry.creator,
            name=entry.name,
            symbol=entry.symbol,
            created_at=entry.created_at,
            target_amount=entry.target_amount,
            duration=entry.duration,
            is_verified=entry.is_verified,
            status=entry.status,
        )


@dataclass(frozen=True)
class PlatformStats:
    projects_created: int
    funds_raised: int
    fees_collected: int
    current_fee_percentage: int
    creation_fee: int
    balance: int
