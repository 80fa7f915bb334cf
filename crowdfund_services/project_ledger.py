"""
crowdfund_services.project_ledger -- Per-campaign investment ledger.

Responsibility:
    Owns one campaign's state machine (ACTIVE -> SUCCESSFUL | FAILED |
    CANCELLED), its investment map and its escrowed currency. Accepts
    investments, finalizes against the deadline and success threshold,
    releases proceeds to the creator net of the platform fee, refunds
    investors of failed or cancelled campaigns, and on success hands the
    sold tokens to a VestingService.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Created only by ProjectRegistry; talks back to it through the narrow
    ``RegistryLink`` protocol (fee settings, status mirror, running totals).

Invariants enforced:
    - CONSERVATION: sum(amount_contributed) == total_raised, and escrow
      equals total_raised minus refunds and the one withdrawal.
    - TARGET_CAP: total_raised never exceeds target_amount; an investment
      that would overshoot is rejected whole.
    - TERMINAL_STATUS: status leaves ACTIVE at most once.
    - SINGLE_PAYMENT: funds_withdrawn / claimed_refund are set BEFORE the
      gateway transfer; re-entrant callers observe the flag.

Failure modes:
    - ValidationError, StateError, AuthorizationError or ResourceError
      subclasses from crowdfund_kernel.exceptions; state is untouched.
    - A gateway exception on the primary payout restores the pre-transfer
      state and propagates.
    - A failed platform-fee transfer after the creator was paid is not
      raised: the fee is retained in the registry balance, logged at ERROR,
      and reported as ``fee_retained``.

Audit relevance:
    Appends InvestmentMade, ProjectFinalized, FundsWithdrawn, RefundClaimed,
    AssetReceived, TokensRecovered, Paused and Unpaused events; the vesting
    vault appends its own.
"""

from __future__ import annotations

import threading
from typing import Protocol

from crowdfund_engines.allocation import (
    funding_progress,
    success_threshold,
    tokens_for_contribution,
)
from crowdfund_engines.fee_policy import FeePolicy
from crowdfund_kernel.domain.clock import Clock
from crowdfund_kernel.domain.dtos import (
    ClaimResult,
    FinalizationResult,
    InvestmentInfo,
    InvestmentReceipt,
    ProjectInfo,
    RefundResult,
    VestingInfo,
    WithdrawalResult,
)
from crowdfund_kernel.domain.events import (
    AssetReceived,
    EventLog,
    FundsWithdrawn,
    InvestmentMade,
    Paused,
    ProjectFinalized,
    RefundClaimed,
    TokensRecovered,
    Unpaused,
)
from crowdfund_kernel.domain.payouts import NATIVE_ASSET, PayoutGateway, token_asset
from crowdfund_kernel.domain.values import PlatformLimits, is_null_identity
from crowdfund_kernel.exceptions import (
    AlreadyFinalizedError,
    AlreadyPausedError,
    FundsAlreadyWithdrawnError,
    InsufficientTokenBalanceError,
    InvalidAmountError,
    InvalidIdentityError,
    InvestmentNotFoundError,
    InvestmentTooLargeError,
    InvestmentTooSmallError,
    NotCreatorError,
    NotOperatorError,
    NotPausedError,
    OffsetOutOfBoundsError,
    ProjectEndedError,
    ProjectNotActiveError,
    ProjectNotRefundableError,
    ProjectNotSuccessfulError,
    ProjectPausedError,
    ProtectedAssetError,
    RefundAlreadyClaimedError,
    StillActiveError,
    TargetExceededError,
    TokenSupplyExceededError,
    VestingNotInitializedError,
    ZeroTokenAllocationError,
)
from crowdfund_kernel.logging_config import get_logger
from crowdfund_kernel.models.campaign import Campaign, CampaignStatus, Investment
from crowdfund_services.vesting_service import VestingService

logger = get_logger("services.ledger")


class RegistryLink(Protocol):
    """What a ledger needs from the registry that created it."""

    @property
    def operator(self) -> str: ...

    def fee_settings(self) -> tuple[int, str]:
        """Current (platform_fee_bps, fee_recipient)."""
        ...

    def record_status_change(self, campaign_id: str, status: CampaignStatus) -> None: ...

    def record_funds_withdrawn(self, campaign_id: str, total_raised: int, fee: int) -> None: ...

    def retain_platform_fee(self, campaign_id: str, fee: int) -> None:
        """Hold a platform fee whose transfer failed until the next fee sweep."""
        ...


class ProjectLedger:
    """
    Investment ledger and lifecycle for one campaign.

    Contract:
        Every mutating method runs under the ledger's re-entrant lock, so
        concurrent callers serialize per campaign. Payouts go through the
        injected PayoutGateway; time comes from the injected Clock.

    Guarantees:
        - An investment that brings total_raised to exactly target_amount
          finalizes the campaign as SUCCESSFUL in the same critical section.
        - The vesting vault exists iff vesting_initialized is True.
        - Refunds pay exactly amount_contributed, once.

    Non-goals:
        - Partial acceptance of an overshooting investment.
        - Re-opening a terminal campaign.
    """

    def __init__(
        self,
        campaign: Campaign,
        registry: RegistryLink,
        gateway: PayoutGateway,
        clock: Clock,
        event_log: EventLog,
        limits: PlatformLimits | None = None,
        fee_policy: FeePolicy | None = None,
    ):
        self._campaign = campaign
        self._registry = registry
        self._gateway = gateway
        self._clock = clock
        self._event_log = event_log
        self._limits = limits or PlatformLimits()
        self._fee_policy = fee_policy or FeePolicy(self._limits.max_platform_fee_bps)
        self._lock = threading.RLock()
        self._escrow = 0
        self._foreign_assets: dict[str, int] = {}
        self._vesting: VestingService | None = None

    @property
    def campaign_id(self) -> str:
        return self._campaign.campaign_id

    @property
    def creator(self) -> str:
        return self._campaign.creator

    @property
    def status(self) -> CampaignStatus:
        with self._lock:
            return self._campaign.status

    @property
    def escrow_balance(self) -> int:
        with self._lock:
            return self._escrow

    @property
    def vesting(self) -> VestingService | None:
        return self._vesting

    # ------------------------------------------------------------------
    # Investment
    # ------------------------------------------------------------------

    def invest(self, investor: str, amount: int) -> InvestmentReceipt:
        """
        Record a contribution of ``amount`` base units from ``investor``.

        Preconditions are checked in a fixed order: paused, status, deadline,
        per-investment bounds, target cap, token allocation, token supply.

        Returns:
            InvestmentReceipt with the tokens credited, the new total raised,
            and whether the investment completed the campaign.
        """
        if is_null_identity(investor):
            raise InvalidIdentityError("investor")

        with self._lock:
            campaign = self._campaign
            now = self._clock.timestamp()

            if campaign.paused:
                raise ProjectPausedError(campaign.campaign_id)
            if campaign.status is not CampaignStatus.ACTIVE:
                raise ProjectNotActiveError(campaign.campaign_id, campaign.status.value)
            if now >= campaign.end_time:
                raise ProjectEndedError(campaign.campaign_id, campaign.end_time)
            if amount < self._limits.min_investment:
                raise InvestmentTooSmallError(amount, self._limits.min_investment)
            if amount > self._limits.max_investment:
                raise InvestmentTooLargeError(amount, self._limits.max_investment)

            remaining = campaign.target_amount - campaign.total_raised
            if amount > remaining:
                raise TargetExceededError(campaign.campaign_id, amount, remaining)

            tokens = tokens_for_contribution(amount, campaign.token_price)
            if tokens == 0:
                raise ZeroTokenAllocationError(amount, campaign.token_price)
            available = campaign.total_supply - campaign.total_tokens_sold
            if tokens > available:
                raise TokenSupplyExceededError(campaign.campaign_id, tokens, available)

            investment = campaign.investments.get(investor)
            if investment is None:
                investment = Investment(investor=investor)
                campaign.investments[investor] = investment
            investment.amount_contributed += amount
            investment.tokens_purchased += tokens
            campaign.total_raised += amount
            campaign.total_tokens_sold += tokens
            self._escrow += amount

            self._event_log.append(
                InvestmentMade(
                    occurred_at=now,
                    campaign_id=campaign.campaign_id,
                    investor=investor,
                    amount=amount,
                    tokens=tokens,
                )
            )
            logger.info(
                "investment_recorded",
                extra={
                    "campaign_id": campaign.campaign_id,
                    "investor": investor,
                    "amount": amount,
                    "tokens": tokens,
                    "total_raised": campaign.total_raised,
                },
            )

            auto_finalized = False
            if campaign.total_raised == campaign.target_amount:
                self._finalize_locked(now, CampaignStatus.SUCCESSFUL)
                auto_finalized = True

            return InvestmentReceipt(
                tokens_credited=tokens,
                total_raised=campaign.total_raised,
                auto_finalized=auto_finalized,
            )

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finalize(self) -> FinalizationResult:
        """
        Settle the campaign outcome.

        Before the deadline only a fully funded campaign may finalize. At or
        after the deadline the campaign succeeds iff total_raised reaches the
        success threshold.
        """
        with self._lock:
            campaign = self._campaign
            now = self._clock.timestamp()

            if campaign.status.is_terminal:
                raise AlreadyFinalizedError(campaign.campaign_id, campaign.status.value)

            target_reached = campaign.total_raised >= campaign.target_amount
            if now < campaign.end_time and not target_reached:
                raise StillActiveError(campaign.campaign_id, campaign.end_time)

            threshold = success_threshold(
                campaign.target_amount, self._limits.min_success_threshold_bps
            )
            if target_reached or campaign.total_raised >= threshold:
                outcome = CampaignStatus.SUCCESSFUL
            else:
                outcome = CampaignStatus.FAILED

            self._finalize_locked(now, outcome)
            return FinalizationResult(status=outcome, total_raised=campaign.total_raised)

    def _finalize_locked(self, now: int, outcome: CampaignStatus) -> None:
        campaign = self._campaign
        campaign.transition(outcome)
        campaign.finalized_at = now

        if outcome is CampaignStatus.SUCCESSFUL:
            self._initialize_vesting(now)

        self._registry.record_status_change(campaign.campaign_id, outcome)
        self._event_log.append(
            ProjectFinalized(
                occurred_at=now,
                campaign_id=campaign.campaign_id,
                status=outcome.value,
                total_raised=campaign.total_raised,
            )
        )
        logger.info(
            "campaign_finalized",
            extra={
                "campaign_id": campaign.campaign_id,
                "status": outcome.value,
                "total_raised": campaign.total_raised,
            },
        )

    def _initialize_vesting(self, now: int) -> None:
        campaign = self._campaign
        owner = self._registry.operator
        vault = VestingService(
            vault_id=f"vesting:{campaign.campaign_id}",
            owner=owner,
            asset=token_asset(campaign.campaign_id),
            cliff_time=now + campaign.vesting_cliff,
            vesting_duration=campaign.vesting_duration,
            gateway=self._gateway,
            clock=self._clock,
            event_log=self._event_log,
            grace_period=self._limits.grace_period,
        )
        if campaign.total_tokens_sold > 0:
            vault.deposit(campaign.total_tokens_sold)
            holders = [i for i in campaign.investments.values() if i.tokens_purchased > 0]
            vault.create_schedules_batch(
                owner,
                [i.investor for i in holders],
                [i.tokens_purchased for i in holders],
            )
        self._vesting = vault
        campaign.vesting_initialized = True

    # ------------------------------------------------------------------
    # Payouts
    # ------------------------------------------------------------------

    def withdraw_funds(self, actor: str) -> WithdrawalResult:
        """Release escrow to the creator, net of the platform fee."""
        with self._lock:
            campaign = self._campaign
            if actor != campaign.creator:
                raise NotCreatorError(actor, "withdraw_funds")
            if campaign.status is not CampaignStatus.SUCCESSFUL:
                raise ProjectNotSuccessfulError(campaign.campaign_id, campaign.status.value)
            if campaign.funds_withdrawn:
                raise FundsAlreadyWithdrawnError(campaign.campaign_id)

            fee_bps, fee_recipient = self._registry.fee_settings()
            gross = self._escrow
            net, fee = self._fee_policy.split_proceeds(gross, fee_bps)

            campaign.funds_withdrawn = True
            self._escrow -= gross
            if net > 0:
                try:
                    self._gateway.transfer(NATIVE_ASSET, campaign.creator, net, memo="creator_proceeds")
                except Exception:
                    campaign.funds_withdrawn = False
                    self._escrow += gross
                    raise
            fee_paid, fee_retained = fee, 0
            if fee > 0:
                try:
                    self._gateway.transfer(NATIVE_ASSET, fee_recipient, fee, memo="platform_fee")
                except Exception:
                    # The creator is already paid; the fee waits in the
                    # registry balance for the next withdraw_fees sweep.
                    logger.exception(
                        "platform_fee_transfer_failed",
                        extra={
                            "campaign_id": campaign.campaign_id,
                            "fee": fee,
                            "fee_recipient": fee_recipient,
                        },
                    )
                    self._registry.retain_platform_fee(campaign.campaign_id, fee)
                    fee_paid, fee_retained = 0, fee

            self._registry.record_funds_withdrawn(campaign.campaign_id, campaign.total_raised, fee)
            self._event_log.append(
                FundsWithdrawn(
                    occurred_at=self._clock.timestamp(),
                    campaign_id=campaign.campaign_id,
                    creator=campaign.creator,
                    amount_to_creator=net,
                    fee_to_recipient=fee_paid,
                    fee_recipient=fee_recipient,
                    fee_retained=fee_retained,
                )
            )
            return WithdrawalResult(
                amount_to_creator=net, fee_to_recipient=fee_paid, fee_retained=fee_retained
            )

    def claim_refund(self, investor: str) -> RefundResult:
        """Return an investor's full contribution from a failed or cancelled campaign."""
        with self._lock:
            campaign = self._campaign
            if not campaign.status.is_refundable:
                raise ProjectNotRefundableError(campaign.campaign_id, campaign.status.value)
            investment = campaign.investments.get(investor)
            if investment is None or investment.amount_contributed == 0:
                raise InvestmentNotFoundError(campaign.campaign_id, investor)
            if investment.claimed_refund:
                raise RefundAlreadyClaimedError(campaign.campaign_id, investor)

            amount = investment.amount_contributed
            investment.claimed_refund = True
            self._escrow -= amount
            try:
                self._gateway.transfer(NATIVE_ASSET, investor, amount, memo="refund")
            except Exception:
                investment.claimed_refund = False
                self._escrow += amount
                raise

            self._event_log.append(
                RefundClaimed(
                    occurred_at=self._clock.timestamp(),
                    campaign_id=campaign.campaign_id,
                    investor=investor,
                    amount=amount,
                )
            )
            return RefundResult(amount_refunded=amount)

    def cancel_project(self, actor: str) -> FinalizationResult:
        """Creator withdraws an active campaign before its deadline."""
        with self._lock:
            campaign = self._campaign
            now = self._clock.timestamp()
            if actor != campaign.creator:
                raise NotCreatorError(actor, "cancel_project")
            if campaign.status is not CampaignStatus.ACTIVE:
                raise ProjectNotActiveError(campaign.campaign_id, campaign.status.value)
            if now >= campaign.end_time:
                raise ProjectEndedError(campaign.campaign_id, campaign.end_time)

            self._finalize_locked(now, CampaignStatus.CANCELLED)
            return FinalizationResult(
                status=CampaignStatus.CANCELLED, total_raised=campaign.total_raised
            )

    def claim_tokens(self, beneficiary: str) -> ClaimResult:
        with self._lock:
            vault = self._require_vesting()
        return vault.claim(beneficiary)

    # ------------------------------------------------------------------
    # Foreign assets
    # ------------------------------------------------------------------

    def _require_foreign(self, asset: str) -> None:
        if asset in (NATIVE_ASSET, token_asset(self._campaign.campaign_id)):
            raise ProtectedAssetError(self._campaign.campaign_id, asset)

    def receive_asset(self, asset: str, amount: int) -> None:
        """Record ``amount`` of an unrelated asset sent to this campaign."""
        with self._lock:
            self._require_foreign(asset)
            if amount <= 0:
                raise InvalidAmountError(amount)
            self._foreign_assets[asset] = self._foreign_assets.get(asset, 0) + amount
            self._event_log.append(
                AssetReceived(
                    occurred_at=self._clock.timestamp(),
                    campaign_id=self._campaign.campaign_id,
                    asset=asset,
                    amount=amount,
                )
            )

    def asset_balance(self, asset: str) -> int:
        with self._lock:
            if asset == NATIVE_ASSET:
                return self._escrow
            return self._foreign_assets.get(asset, 0)

    def emergency_token_recovery(self, actor: str, asset: str, amount: int) -> int:
        """
        Return a foreign asset sent to this campaign to its creator.

        Operator only. The escrowed currency and the campaign's own token
        are never recoverable through this path.

        Raises:
            NotOperatorError: actor is not the registry operator.
            ProtectedAssetError: asset is the escrow currency or the campaign token.
            InvalidAmountError: amount is not positive.
            InsufficientTokenBalanceError: amount exceeds the recorded balance.
        """
        with self._lock:
            campaign = self._campaign
            if actor != self._registry.operator:
                raise NotOperatorError(actor, "emergency_token_recovery")
            self._require_foreign(asset)
            if amount <= 0:
                raise InvalidAmountError(amount)
            held = self._foreign_assets.get(asset, 0)
            if amount > held:
                raise InsufficientTokenBalanceError(amount, held)

            self._foreign_assets[asset] = held - amount
            try:
                self._gateway.transfer(asset, campaign.creator, amount, memo="token_recovery")
            except Exception:
                self._foreign_assets[asset] = held
                raise

            self._event_log.append(
                TokensRecovered(
                    occurred_at=self._clock.timestamp(),
                    campaign_id=campaign.campaign_id,
                    asset=asset,
                    recipient=campaign.creator,
                    amount=amount,
                )
            )
            logger.info(
                "foreign_asset_recovered",
                extra={"campaign_id": campaign.campaign_id, "asset": asset, "amount": amount},
            )
            return amount

    # ------------------------------------------------------------------
    # Pause control
    # ------------------------------------------------------------------

    def pause(self, actor: str) -> None:
        self._set_paused(actor, True)

    def unpause(self, actor: str) -> None:
        self._set_paused(actor, False)

    def _set_paused(self, actor: str, paused: bool) -> None:
        operation = "pause" if paused else "unpause"
        with self._lock:
            campaign = self._campaign
            if actor != self._registry.operator:
                raise NotOperatorError(actor, operation)
            if paused and campaign.paused:
                raise AlreadyPausedError(campaign.campaign_id)
            if not paused and not campaign.paused:
                raise NotPausedError(campaign.campaign_id)
            campaign.paused = paused
            event_type = Paused if paused else Unpaused
            self._event_log.append(
                event_type(
                    occurred_at=self._clock.timestamp(),
                    target=campaign.campaign_id,
                    actor=actor,
                )
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def project_info(self) -> ProjectInfo:
        with self._lock:
            return ProjectInfo.from_model(self._campaign)

    def investment_info(self, investor: str) -> InvestmentInfo:
        """Position of ``investor``; zeros for an address that never invested."""
        with self._lock:
            investment = self._campaign.investments.get(investor)
            claimable = self._vesting.claimable_amount(investor) if self._vesting else 0
            if investment is None:
                return InvestmentInfo(
                    investor=investor,
                    amount_contributed=0,
                    tokens_purchased=0,
                    claimed_refund=False,
                    claimable_tokens=0,
                )
            return InvestmentInfo(
                investor=investor,
                amount_contributed=investment.amount_contributed,
                tokens_purchased=investment.tokens_purchased,
                claimed_refund=investment.claimed_refund,
                claimable_tokens=claimable,
            )

    def vesting_info(self, beneficiary: str) -> VestingInfo:
        with self._lock:
            vault = self._require_vesting()
        return vault.vesting_info(beneficiary)

    def progress(self) -> int:
        """Percent of target raised, floored."""
        with self._lock:
            return funding_progress(self._campaign.total_raised, self._campaign.target_amount)

    def time_remaining(self) -> int:
        with self._lock:
            return max(self._campaign.end_time - self._clock.timestamp(), 0)

    def is_active(self) -> bool:
        with self._lock:
            return (
                self._campaign.status is CampaignStatus.ACTIVE
                and self._clock.timestamp() < self._campaign.end_time
            )

    def investors(self) -> list[str]:
        with self._lock:
            return list(self._campaign.investments)

    def investors_paginated(self, offset: int, limit: int) -> list[str]:
        """Investors in first-contribution order."""
        with self._lock:
            count = self._campaign.investor_count
            if offset < 0 or offset > count:
                raise OffsetOutOfBoundsError(offset, count)
            return list(self._campaign.investments)[offset : offset + max(limit, 0)]

    def _require_vesting(self) -> VestingService:
        if not self._campaign.vesting_initialized or self._vesting is None:
            raise VestingNotInitializedError(self._campaign.campaign_id)
        return self._vesting
