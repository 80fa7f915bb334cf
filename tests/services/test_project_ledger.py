"""
Tests for ProjectLedger: investment preconditions, finalization, payouts,
cancellation, foreign asset recovery, pause control and read views.
"""

import pytest

from crowdfund_kernel.domain.events import (
    AssetReceived,
    FundsWithdrawn,
    InvestmentMade,
    Paused,
    ProjectFinalized,
    RefundClaimed,
    TokensRecovered,
    VestingScheduleCreated,
)
from crowdfund_kernel.domain.payouts import NATIVE_ASSET, token_asset
from crowdfund_kernel.domain.values import SECONDS_PER_DAY, UNIT, to_base_units
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
from crowdfund_kernel.models.campaign import CampaignStatus

DURATION = 30 * SECONDS_PER_DAY


def _past_deadline(clock):
    clock.advance(DURATION)


class TestInvest:
    """Precondition order and effects of invest()."""

    def test_records_investment(self, project, event_log):
        receipt = project.invest("bob", 5 * UNIT)

        assert receipt.tokens_credited == 5 * UNIT
        assert receipt.total_raised == 5 * UNIT
        assert receipt.auto_finalized is False

        info = project.project_info()
        assert info.total_raised == 5 * UNIT
        assert info.total_tokens_sold == 5 * UNIT
        assert info.investor_count == 1
        assert project.escrow_balance == 5 * UNIT
        assert event_log.of_type(InvestmentMade)[-1].amount == 5 * UNIT

    def test_repeat_investor_counted_once(self, project):
        project.invest("bob", UNIT)
        project.invest("bob", 2 * UNIT)
        project.invest("carol", UNIT)

        assert project.project_info().investor_count == 2
        assert project.investment_info("bob").amount_contributed == 3 * UNIT
        assert project.investors() == ["bob", "carol"]

    def test_overshoot_rejected_then_exact_fill_finalizes(self, project):
        project.invest("bob", 95 * UNIT)

        with pytest.raises(TargetExceededError) as exc_info:
            project.invest("carol", 10 * UNIT)
        assert exc_info.value.remaining == 5 * UNIT
        assert project.project_info().total_raised == 95 * UNIT

        receipt = project.invest("carol", 5 * UNIT)
        assert receipt.auto_finalized is True
        assert project.status is CampaignStatus.SUCCESSFUL
        assert project.project_info().vesting_initialized is True

    def test_below_minimum(self, project):
        with pytest.raises(InvestmentTooSmallError):
            project.invest("bob", UNIT // 100 - 1)

    def test_minimum_accepted(self, project):
        project.invest("bob", UNIT // 100)

    def test_above_maximum(self, create_project):
        ledger = create_project(target_amount=500 * UNIT)
        with pytest.raises(InvestmentTooLargeError):
            ledger.invest("bob", 100 * UNIT + 1)

    def test_null_investor(self, project):
        with pytest.raises(InvalidIdentityError):
            project.invest("", UNIT)

    def test_after_deadline(self, project, clock):
        _past_deadline(clock)
        with pytest.raises(ProjectEndedError):
            project.invest("bob", UNIT)

    def test_paused_checked_first(self, project, clock):
        project.pause("operator")
        _past_deadline(clock)
        with pytest.raises(ProjectPausedError):
            project.invest("bob", 0)

    def test_status_checked_before_deadline(self, project, clock):
        project.invest("bob", 20 * UNIT)
        _past_deadline(clock)
        project.finalize()
        with pytest.raises(ProjectNotActiveError):
            project.invest("bob", UNIT)

    def test_zero_token_allocation(self, create_project):
        # 10^20 units per token: the minimum investment buys nothing
        ledger = create_project(token_price=100 * UNIT * UNIT)
        with pytest.raises(ZeroTokenAllocationError):
            ledger.invest("bob", UNIT)

    def test_token_supply_exhausted(self, create_project):
        ledger = create_project(total_supply=10 * UNIT)
        ledger.invest("bob", 10 * UNIT)
        with pytest.raises(TokenSupplyExceededError):
            ledger.invest("carol", UNIT)


class TestFinalize:
    def test_still_active(self, project):
        project.invest("bob", 50 * UNIT)
        with pytest.raises(StillActiveError):
            project.finalize()

    def test_below_threshold_fails(self, project, clock, event_log):
        project.invest("bob", to_base_units("29.999"))
        _past_deadline(clock)

        result = project.finalize()

        assert result.status is CampaignStatus.FAILED
        assert project.project_info().vesting_initialized is False
        assert event_log.of_type(ProjectFinalized)[-1].status == "failed"

    def test_at_threshold_succeeds(self, project, clock):
        project.invest("bob", 30 * UNIT)
        _past_deadline(clock)

        result = project.finalize()

        assert result.status is CampaignStatus.SUCCESSFUL
        assert result.total_raised == 30 * UNIT
        assert project.vesting.beneficiaries() == ["bob"]

    def test_threshold_not_floored(self, create_project, clock):
        ledger = create_project(target_amount=100 * UNIT + 1)
        ledger.invest("bob", 30 * UNIT)
        _past_deadline(clock)

        assert ledger.finalize().status is CampaignStatus.FAILED

    def test_no_investors_fails(self, project, clock):
        _past_deadline(clock)
        assert project.finalize().status is CampaignStatus.FAILED

    def test_twice_rejected(self, project, clock):
        _past_deadline(clock)
        project.finalize()
        with pytest.raises(AlreadyFinalizedError):
            project.finalize()

    def test_status_mirrored_in_registry(self, project, registry, clock):
        _past_deadline(clock)
        project.finalize()
        assert registry.get_entry(project.campaign_id).status is CampaignStatus.FAILED

    def test_vesting_built_from_investments(self, project, clock, event_log):
        project.invest("bob", 60 * UNIT)
        project.invest("carol", 40 * UNIT)

        vault = project.vesting
        assert vault.owner == "operator"
        assert vault.asset == token_asset(project.campaign_id)
        assert vault.cliff_time == clock.timestamp() + 100
        assert vault.vesting_duration == 1_000
        assert vault.balance == 100 * UNIT
        assert vault.schedule("bob").total_amount == 60 * UNIT
        assert len(event_log.of_type(VestingScheduleCreated)) == 2


class TestWithdrawFunds:
    def _funded(self, project):
        project.invest("bob", 100 * UNIT)
        return project

    def test_pays_creator_and_fee_recipient(self, project, gateway, registry, event_log):
        self._funded(project)

        result = project.withdraw_funds("alice")

        fee = 100 * UNIT * 250 // 10_000
        assert result.fee_to_recipient == fee
        assert result.amount_to_creator == 100 * UNIT - fee
        assert gateway.balance_of("alice") == 100 * UNIT - fee
        assert gateway.balance_of("treasury") == fee
        assert project.escrow_balance == 0

        stats = registry.platform_stats()
        assert stats.funds_raised == 100 * UNIT
        assert stats.fees_collected == fee
        assert event_log.of_type(FundsWithdrawn)[-1].fee_recipient == "treasury"

    def test_uses_fee_settings_at_withdrawal_time(self, project, gateway, registry):
        self._funded(project)
        registry.set_platform_fee_percentage("operator", 1_000)
        registry.set_fee_recipient("operator", "vault")

        result = project.withdraw_funds("alice")

        assert result.fee_to_recipient == 10 * UNIT
        assert gateway.balance_of("vault") == 10 * UNIT

    def test_zero_fee_rate(self, project, gateway, registry):
        self._funded(project)
        registry.set_platform_fee_percentage("operator", 0)
        result = project.withdraw_funds("alice")
        assert result.amount_to_creator == 100 * UNIT
        assert gateway.balance_of("treasury") == 0

    def test_only_creator(self, project):
        self._funded(project)
        with pytest.raises(NotCreatorError):
            project.withdraw_funds("bob")

    def test_only_successful(self, project):
        with pytest.raises(ProjectNotSuccessfulError):
            project.withdraw_funds("alice")

    def test_only_once(self, project):
        self._funded(project)
        project.withdraw_funds("alice")
        with pytest.raises(FundsAlreadyWithdrawnError):
            project.withdraw_funds("alice")

    def test_rejected_creator_payout_restores_state(self, project, gateway):
        self._funded(project)
        gateway.fail_next(memo="creator_proceeds")

        with pytest.raises(RuntimeError):
            project.withdraw_funds("alice")
        assert project.project_info().funds_withdrawn is False
        assert project.escrow_balance == 100 * UNIT
        assert gateway.balance_of("alice") == 0

        project.withdraw_funds("alice")
        assert gateway.balance_of("alice") + gateway.balance_of("treasury") == 100 * UNIT

    def test_rejected_fee_is_retained_for_sweep(self, project, gateway, registry, event_log):
        self._funded(project)
        balance_before = registry.platform_stats().balance
        gateway.fail_next(memo="platform_fee")

        result = project.withdraw_funds("alice")

        fee = 100 * UNIT * 250 // 10_000
        assert result.fee_to_recipient == 0
        assert result.fee_retained == fee
        assert gateway.balance_of("treasury") == 0
        assert gateway.balance_of("alice") == 100 * UNIT - fee
        retained = registry.platform_stats().balance - balance_before
        assert retained == fee
        assert (
            gateway.balance_of("alice") + gateway.balance_of("treasury") + retained
            == project.project_info().total_raised
        )

        stats = registry.platform_stats()
        assert stats.funds_raised == 100 * UNIT
        assert stats.fees_collected == fee
        assert event_log.of_type(FundsWithdrawn)[-1].fee_retained == fee

        registry.withdraw_fees("operator")
        assert gateway.balance_of("treasury") == balance_before + fee


class TestClaimRefund:
    def _failed(self, project, clock):
        project.invest("bob", 20 * UNIT)
        _past_deadline(clock)
        project.finalize()
        return project

    def test_refunds_full_contribution(self, project, clock, gateway, event_log):
        self._failed(project, clock)

        result = project.claim_refund("bob")

        assert result.amount_refunded == 20 * UNIT
        assert gateway.balance_of("bob", NATIVE_ASSET) == 20 * UNIT
        assert project.investment_info("bob").claimed_refund is True
        assert project.escrow_balance == 0
        assert event_log.of_type(RefundClaimed)[-1].amount == 20 * UNIT

    def test_only_once(self, project, clock):
        self._failed(project, clock)
        project.claim_refund("bob")
        with pytest.raises(RefundAlreadyClaimedError):
            project.claim_refund("bob")

    def test_unknown_investor(self, project, clock):
        self._failed(project, clock)
        with pytest.raises(InvestmentNotFoundError):
            project.claim_refund("mallory")

    def test_rejected_refund_can_be_retried(self, project, clock, gateway):
        self._failed(project, clock)
        gateway.fail_next(memo="refund")

        with pytest.raises(RuntimeError):
            project.claim_refund("bob")
        assert project.investment_info("bob").claimed_refund is False
        assert project.escrow_balance == 20 * UNIT

        project.claim_refund("bob")
        assert gateway.balance_of("bob") == 20 * UNIT

    def test_not_refundable_while_active(self, project):
        project.invest("bob", UNIT)
        with pytest.raises(ProjectNotRefundableError):
            project.claim_refund("bob")

    def test_not_refundable_after_success(self, project):
        project.invest("bob", 100 * UNIT)
        with pytest.raises(ProjectNotRefundableError):
            project.claim_refund("bob")


class TestCancel:
    def test_cancel_then_refund(self, project, gateway):
        project.invest("bob", 10 * UNIT)

        result = project.cancel_project("alice")

        assert result.status is CampaignStatus.CANCELLED
        assert project.claim_refund("bob").amount_refunded == 10 * UNIT
        assert gateway.balance_of("bob") == 10 * UNIT

    def test_only_creator(self, project):
        with pytest.raises(NotCreatorError):
            project.cancel_project("bob")

    def test_not_after_deadline(self, project, clock):
        _past_deadline(clock)
        with pytest.raises(ProjectEndedError):
            project.cancel_project("alice")

    def test_not_after_finalization(self, project):
        project.invest("bob", 100 * UNIT)
        with pytest.raises(ProjectNotActiveError):
            project.cancel_project("alice")


class TestClaimTokens:
    def test_before_success(self, project):
        with pytest.raises(VestingNotInitializedError):
            project.claim_tokens("bob")

    def test_half_way_through_vesting(self, project, clock, gateway):
        project.invest("bob", 100 * UNIT)
        clock.advance(100 + 500)

        result = project.claim_tokens("bob")

        assert abs(result.amount_claimed - 50 * UNIT) <= 1
        assert gateway.balance_of("bob", token_asset(project.campaign_id)) == result.amount_claimed

    def test_vesting_info_passthrough(self, project, clock):
        project.invest("bob", 100 * UNIT)
        info = project.vesting_info("bob")
        assert info.total_tokens == 100 * UNIT
        assert info.next_unlock_time == clock.timestamp() + 100


class TestEmergencyTokenRecovery:
    def test_recovers_foreign_asset_to_creator(self, project, gateway, event_log):
        project.receive_asset("token:stray", 1_000 * UNIT)
        assert event_log.of_type(AssetReceived)[-1].amount == 1_000 * UNIT

        recovered = project.emergency_token_recovery("operator", "token:stray", 1_000 * UNIT)

        assert recovered == 1_000 * UNIT
        assert gateway.balance_of("alice", "token:stray") == 1_000 * UNIT
        assert project.asset_balance("token:stray") == 0
        assert event_log.of_type(TokensRecovered)[-1].recipient == "alice"

    def test_campaign_token_refused(self, project):
        with pytest.raises(ProtectedAssetError):
            project.emergency_token_recovery(
                "operator", token_asset(project.campaign_id), 1_000 * UNIT
            )

    def test_escrow_refused(self, project, gateway):
        project.invest("bob", 10 * UNIT)
        with pytest.raises(ProtectedAssetError):
            project.emergency_token_recovery("operator", NATIVE_ASSET, 10 * UNIT)
        assert project.escrow_balance == 10 * UNIT
        assert gateway.balance_of("alice") == 0

    @pytest.mark.parametrize("asset", [NATIVE_ASSET, "token:project-1"])
    def test_protected_assets_not_received(self, project, asset):
        with pytest.raises(ProtectedAssetError):
            project.receive_asset(asset, UNIT)

    def test_operator_only(self, project):
        project.receive_asset("token:stray", UNIT)
        for actor in ("bob", "alice"):
            with pytest.raises(NotOperatorError):
                project.emergency_token_recovery(actor, "token:stray", UNIT)
        assert project.asset_balance("token:stray") == UNIT

    def test_cannot_exceed_balance(self, project):
        project.receive_asset("token:stray", UNIT)
        with pytest.raises(InsufficientTokenBalanceError):
            project.emergency_token_recovery("operator", "token:stray", UNIT + 1)
        with pytest.raises(InvalidAmountError):
            project.emergency_token_recovery("operator", "token:stray", 0)

    def test_rejected_transfer_keeps_balance(self, project, gateway):
        project.receive_asset("token:stray", UNIT)
        gateway.fail_next(memo="token_recovery")

        with pytest.raises(RuntimeError):
            project.emergency_token_recovery("operator", "token:stray", UNIT)
        assert project.asset_balance("token:stray") == UNIT


class TestPause:
    def test_pause_and_unpause(self, project, event_log):
        project.pause("operator")
        assert project.project_info().paused is True
        project.unpause("operator")
        project.invest("bob", UNIT)
        assert event_log.of_type(Paused)[-1].target == project.campaign_id

    def test_operator_only(self, project):
        with pytest.raises(NotOperatorError):
            project.pause("alice")

    def test_double_pause(self, project):
        project.pause("operator")
        with pytest.raises(AlreadyPausedError):
            project.pause("operator")

    def test_unpause_when_running(self, project):
        with pytest.raises(NotPausedError):
            project.unpause("operator")


class TestReads:
    def test_progress_and_time_remaining(self, project, clock):
        project.invest("bob", 33 * UNIT)
        assert project.progress() == 33
        assert project.time_remaining() == DURATION
        clock.advance(DURATION + 10)
        assert project.time_remaining() == 0
        assert project.is_active() is False

    def test_unknown_investor_reads_zero(self, project):
        info = project.investment_info("nobody")
        assert info.amount_contributed == 0
        assert info.claimable_tokens == 0

    def test_claimable_tokens_in_investment_info(self, project, clock):
        project.invest("bob", 100 * UNIT)
        clock.advance(100 + 1_000)
        assert project.investment_info("bob").claimable_tokens == 100 * UNIT

    def test_investors_paginated(self, project):
        for name in ("a", "b", "c"):
            project.invest(name, UNIT)
        assert project.investors_paginated(1, 10) == ["b", "c"]
        assert project.investors_paginated(3, 10) == []
        with pytest.raises(OffsetOutOfBoundsError):
            project.investors_paginated(4, 1)
