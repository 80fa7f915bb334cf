"""Tests for the VestingService token vault."""

import pytest

from crowdfund_kernel.domain.events import (
    EmergencyWithdrawal,
    TokensClaimed,
    VestingRevoked,
)
from crowdfund_kernel.exceptions import (
    BatchLengthMismatchError,
    DuplicateScheduleError,
    EmptyBatchError,
    InsufficientTokenBalanceError,
    InvalidAmountError,
    InvalidIdentityError,
    InvalidProjectParametersError,
    NoActiveScheduleError,
    NothingToClaimError,
    NothingToWithdrawError,
    NotScheduleOwnerError,
    ScheduleNotActiveError,
    VestingNotCompleteError,
)
from crowdfund_services.vesting_service import VestingService

ASSET = "token:test"
CLIFF = 100
DURATION = 1_000
GRACE = 5_000


@pytest.fixture
def vault(clock, gateway, event_log):
    vault = VestingService(
        vault_id="vesting:test",
        owner="owner",
        asset=ASSET,
        cliff_time=clock.timestamp() + CLIFF,
        vesting_duration=DURATION,
        gateway=gateway,
        clock=clock,
        event_log=event_log,
        grace_period=GRACE,
    )
    vault.deposit(10_000)
    return vault


class TestConstruction:
    def test_cliff_in_past_rejected(self, clock, gateway, event_log):
        with pytest.raises(InvalidProjectParametersError):
            VestingService(
                "v", "owner", ASSET, clock.timestamp() - 1, DURATION, gateway, clock, event_log
            )

    def test_zero_duration_rejected(self, clock, gateway, event_log):
        with pytest.raises(InvalidProjectParametersError):
            VestingService("v", "owner", ASSET, clock.timestamp(), 0, gateway, clock, event_log)

    def test_deposit_must_be_positive(self, vault):
        with pytest.raises(InvalidAmountError):
            vault.deposit(0)


class TestCreateSchedule:
    def test_create(self, vault):
        vault.create_schedule("owner", "bob", 1_000)
        schedule = vault.schedule("bob")
        assert schedule.total_amount == 1_000
        assert schedule.claimed_amount == 0
        assert schedule.is_active
        assert vault.total_tokens_vested == 1_000

    def test_owner_only(self, vault):
        with pytest.raises(NotScheduleOwnerError):
            vault.create_schedule("bob", "bob", 1_000)

    def test_null_beneficiary(self, vault):
        with pytest.raises(InvalidIdentityError):
            vault.create_schedule("owner", "", 1_000)

    def test_zero_amount(self, vault):
        with pytest.raises(InvalidAmountError):
            vault.create_schedule("owner", "bob", 0)

    def test_duplicate(self, vault):
        vault.create_schedule("owner", "bob", 1_000)
        with pytest.raises(DuplicateScheduleError):
            vault.create_schedule("owner", "bob", 1_000)

    def test_uncommitted_balance_enforced(self, vault):
        vault.create_schedule("owner", "bob", 9_000)
        with pytest.raises(InsufficientTokenBalanceError):
            vault.create_schedule("owner", "carol", 1_001)


class TestBatch:
    def test_batch(self, vault):
        vault.create_schedules_batch("owner", ["bob", "carol"], [1_000, 2_000])
        assert vault.beneficiaries() == ["bob", "carol"]
        assert vault.beneficiary_count == 2

    def test_length_mismatch(self, vault):
        with pytest.raises(BatchLengthMismatchError):
            vault.create_schedules_batch("owner", ["bob"], [1, 2])

    def test_empty(self, vault):
        with pytest.raises(EmptyBatchError):
            vault.create_schedules_batch("owner", [], [])

    def test_duplicate_in_batch_is_all_or_nothing(self, vault):
        with pytest.raises(DuplicateScheduleError):
            vault.create_schedules_batch("owner", ["bob", "carol", "bob"], [1, 1, 1])
        assert vault.beneficiary_count == 0

    def test_balance_checked_for_whole_batch(self, vault):
        with pytest.raises(InsufficientTokenBalanceError):
            vault.create_schedules_batch("owner", ["bob", "carol"], [6_000, 5_000])
        assert vault.beneficiary_count == 0


class TestClaim:
    def test_nothing_before_cliff(self, vault, clock):
        vault.create_schedule("owner", "bob", 1_000)
        clock.advance(CLIFF - 1)
        assert vault.claimable_amount("bob") == 0
        with pytest.raises(NothingToClaimError):
            vault.claim("bob")

    def test_linear_release(self, vault, clock, gateway, event_log):
        vault.create_schedule("owner", "bob", 1_000)
        clock.advance(CLIFF + DURATION // 2)

        result = vault.claim("bob")

        assert result.amount_claimed == 500
        assert gateway.balance_of("bob", ASSET) == 500
        assert vault.schedule("bob").claimed_amount == 500
        assert event_log.of_type(TokensClaimed)[-1].amount == 500

    def test_claims_sum_to_total(self, vault, clock):
        vault.create_schedule("owner", "bob", 1_000)
        clock.advance(CLIFF + 333)
        first = vault.claim("bob").amount_claimed
        clock.advance(DURATION)
        second = vault.claim("bob").amount_claimed
        assert first + second == 1_000
        with pytest.raises(NothingToClaimError):
            vault.claim("bob")

    def test_no_schedule(self, vault):
        with pytest.raises(NoActiveScheduleError):
            vault.claim("nobody")


class TestRevoke:
    def test_returns_unclaimed_to_owner(self, vault, clock, gateway, event_log):
        vault.create_schedule("owner", "bob", 1_000)
        clock.advance(CLIFF + DURATION // 4)
        vault.claim("bob")

        returned = vault.revoke("owner", "bob")

        assert returned == 750
        assert gateway.balance_of("owner", ASSET) == 750
        assert vault.schedule("bob").is_active is False
        assert vault.total_tokens_vested == 0
        assert event_log.of_type(VestingRevoked)[-1].unclaimed_amount == 750

    def test_revoked_schedule_never_pays(self, vault, clock):
        vault.create_schedule("owner", "bob", 1_000)
        vault.revoke("owner", "bob")
        clock.advance(CLIFF + DURATION)
        assert vault.claimable_amount("bob") == 0
        with pytest.raises(NoActiveScheduleError):
            vault.claim("bob")

    def test_revoke_twice(self, vault):
        vault.create_schedule("owner", "bob", 1_000)
        vault.revoke("owner", "bob")
        with pytest.raises(ScheduleNotActiveError):
            vault.revoke("owner", "bob")

    def test_owner_only(self, vault):
        vault.create_schedule("owner", "bob", 1_000)
        with pytest.raises(NotScheduleOwnerError):
            vault.revoke("bob", "bob")


class TestEmergencyWithdraw:
    def test_too_early(self, vault, clock):
        clock.advance(CLIFF + DURATION + GRACE)
        with pytest.raises(VestingNotCompleteError):
            vault.emergency_withdraw("owner", "owner")

    def test_sweeps_whole_balance(self, vault, clock, gateway, event_log):
        vault.create_schedule("owner", "bob", 1_000)
        clock.advance(CLIFF + DURATION + GRACE + 1)

        swept = vault.emergency_withdraw("owner", "rescue")

        assert swept == 10_000
        assert gateway.balance_of("rescue", ASSET) == 10_000
        assert vault.balance == 0
        assert event_log.of_type(EmergencyWithdrawal)[-1].recipient == "rescue"

    def test_null_recipient(self, vault, clock):
        clock.advance(CLIFF + DURATION + GRACE + 1)
        with pytest.raises(InvalidIdentityError):
            vault.emergency_withdraw("owner", "")

    def test_owner_only(self, vault, clock):
        clock.advance(CLIFF + DURATION + GRACE + 1)
        with pytest.raises(NotScheduleOwnerError):
            vault.emergency_withdraw("bob", "bob")

    def test_nothing_to_sweep(self, vault, clock):
        clock.advance(CLIFF + DURATION + GRACE + 1)
        vault.emergency_withdraw("owner", "owner")
        with pytest.raises(NothingToWithdrawError):
            vault.emergency_withdraw("owner", "owner")


class TestReads:
    def test_vesting_info_timeline(self, vault, clock):
        vault.create_schedule("owner", "bob", 1_000)
        cliff = vault.cliff_time

        assert vault.vesting_info("bob").next_unlock_time == cliff
        clock.advance(CLIFF + 10)
        assert vault.vesting_info("bob").next_unlock_time == cliff + DURATION
        clock.advance(DURATION)
        info = vault.vesting_info("bob")
        assert info.next_unlock_time == 0
        assert info.claimable_tokens == 1_000

    def test_unknown_beneficiary_info(self, vault):
        info = vault.vesting_info("nobody")
        assert info.total_tokens == 0
        assert info.is_active is False

    def test_stats(self, vault, clock):
        vault.create_schedules_batch("owner", ["bob", "carol"], [1_000, 3_000])
        clock.advance(CLIFF + DURATION // 2)
        vault.claim("bob")

        stats = vault.vesting_stats()

        assert stats.total_vested == 4_000
        assert stats.total_claimed == 500
        assert stats.total_claimable == 1_500
        assert stats.beneficiary_count == 2

    def test_cliff_and_end_flags(self, vault, clock):
        assert not vault.is_cliff_passed()
        assert vault.vesting_progress() == 0
        clock.advance(CLIFF)
        assert vault.is_cliff_passed()
        clock.advance(DURATION // 2)
        assert vault.vesting_progress() == 50
        assert not vault.is_vesting_ended()
        clock.advance(DURATION // 2)
        assert vault.is_vesting_ended()
