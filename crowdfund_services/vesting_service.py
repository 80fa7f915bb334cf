"""
crowdfund_services.vesting_service -- Cliff + linear token vesting vault.

Responsibility:
    Holds the tokens sold by one successful campaign and releases them to
    beneficiaries on a shared cliff + linear schedule. Supports owner-side
    schedule creation (single and batch), revocation and a post-grace
    emergency sweep.

Architecture position:
    Services -- stateful orchestration over the pure vesting engine
    (crowdfund_engines.vesting) and the kernel payout/event ports.
    Created by ProjectLedger.finalize on success; usable standalone.

Invariants enforced:
    - VESTING_BOUNDS: 0 <= claimed_amount <= total_amount per schedule;
      vested amount follows crowdfund_engines.vesting exactly.
    - SINGLE_PAYMENT: claimed_amount is raised BEFORE the gateway
      transfer, so a re-entrant claim sees nothing left to claim.
    - Committed tokens (unclaimed amounts of active schedules) never
      exceed the vault balance at schedule creation time.

Failure modes:
    - NotScheduleOwnerError for owner-only operations called by others.
    - NoActiveScheduleError / NothingToClaimError on claim.
    - DuplicateScheduleError, InsufficientTokenBalanceError,
      BatchLengthMismatchError, EmptyBatchError on schedule creation.
    - VestingNotCompleteError on a premature emergency sweep.
    - A gateway exception restores the pre-transfer state and propagates.

Audit relevance:
    Every mutation appends exactly one event per affected beneficiary
    (VestingScheduleCreated, TokensClaimed, VestingRevoked,
    EmergencyWithdrawal) to the shared EventLog.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from crowdfund_engines import vesting as vesting_math
from crowdfund_engines.vesting import VestingTerms
from crowdfund_kernel.domain.clock import Clock
from crowdfund_kernel.domain.dtos import ClaimResult, ScheduleInfo, VestingInfo, VestingStats
from crowdfund_kernel.domain.events import (
    EmergencyWithdrawal,
    EventLog,
    TokensClaimed,
    VestingRevoked,
    VestingScheduleCreated,
)
from crowdfund_kernel.domain.payouts import PayoutGateway
from crowdfund_kernel.domain.values import SECONDS_PER_DAY, is_null_identity
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
from crowdfund_kernel.logging_config import get_logger
from crowdfund_kernel.models.vesting import VestingSchedule

logger = get_logger("services.vesting")

DEFAULT_GRACE_PERIOD = 365 * SECONDS_PER_DAY


class VestingService:
    """
    Token vault with per-beneficiary vesting schedules.

    Contract:
        All schedules share ``cliff_time`` and ``vesting_duration``. The
        vault's token balance grows through ``deposit`` and shrinks
        through claims, revocation returns and the emergency sweep.

    Guarantees:
        - Every mutating method runs under one re-entrant lock.
        - Claims always pay the schedule's beneficiary, never the caller.
        - Batch creation is all-or-nothing.

    Non-goals:
        - Per-beneficiary cliffs or durations.
        - Partial revocation.
    """

    def __init__(
        self,
        vault_id: str,
        owner: str,
        asset: str,
        cliff_time: int,
        vesting_duration: int,
        gateway: PayoutGateway,
        clock: Clock,
        event_log: EventLog,
        grace_period: int = DEFAULT_GRACE_PERIOD,
    ):
        if is_null_identity(owner):
            raise InvalidIdentityError("owner")
        if vesting_duration <= 0:
            raise InvalidProjectParametersError("vesting_duration", "must be greater than 0")
        if cliff_time < clock.timestamp():
            raise InvalidProjectParametersError("cliff_time", "must not be in the past")

        self.vault_id = vault_id
        self.owner = owner
        self.asset = asset
        self.terms = VestingTerms(cliff_time=cliff_time, vesting_duration=vesting_duration)
        self.grace_period = grace_period
        self._gateway = gateway
        self._clock = clock
        self._event_log = event_log
        self._lock = threading.RLock()

        self._schedules: dict[str, VestingSchedule] = {}
        self._balance = 0
        self._total_vested = 0
        self._total_claimed = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def cliff_time(self) -> int:
        return self.terms.cliff_time

    @property
    def vesting_duration(self) -> int:
        return self.terms.vesting_duration

    @property
    def balance(self) -> int:
        with self._lock:
            return self._balance

    @property
    def committed(self) -> int:
        """Unclaimed tokens owed to active schedules."""
        with self._lock:
            return sum(s.unclaimed_amount for s in self._schedules.values() if s.is_active)

    @property
    def total_tokens_vested(self) -> int:
        with self._lock:
            return self._total_vested

    @property
    def total_tokens_claimed(self) -> int:
        with self._lock:
            return self._total_claimed

    @property
    def beneficiary_count(self) -> int:
        with self._lock:
            return len(self._schedules)

    # ------------------------------------------------------------------
    # Funding and schedule creation
    # ------------------------------------------------------------------

    def deposit(self, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError(amount)
        with self._lock:
            self._balance += amount
        logger.debug("vesting_deposit", extra={"vault": self.vault_id, "amount": amount})

    def create_schedule(self, actor: str, beneficiary: str, total_amount: int) -> None:
        """
        Create one schedule for ``beneficiary``.

        Raises:
            NotScheduleOwnerError: actor is not the vault owner.
            InvalidIdentityError: null beneficiary.
            InvalidAmountError: total_amount <= 0.
            DuplicateScheduleError: beneficiary already has an active schedule.
            InsufficientTokenBalanceError: uncommitted balance too small.
        """
        self._require_owner(actor, "create_schedule")
        with self._lock:
            self._check_new_schedule(beneficiary, total_amount)
            uncommitted = self._balance - self.committed
            if total_amount > uncommitted:
                raise InsufficientTokenBalanceError(total_amount, uncommitted)
            self._add_schedule(beneficiary, total_amount)

    def create_schedules_batch(
        self,
        actor: str,
        beneficiaries: Sequence[str],
        amounts: Sequence[int],
    ) -> None:
        """All-or-nothing creation of several schedules."""
        self._require_owner(actor, "create_schedules_batch")
        if len(beneficiaries) != len(amounts):
            raise BatchLengthMismatchError(len(beneficiaries), len(amounts))
        if not beneficiaries:
            raise EmptyBatchError()

        with self._lock:
            seen: set[str] = set()
            for beneficiary, amount in zip(beneficiaries, amounts):
                if beneficiary in seen:
                    raise DuplicateScheduleError(beneficiary)
                seen.add(beneficiary)
                self._check_new_schedule(beneficiary, amount)

            requested = sum(amounts)
            uncommitted = self._balance - self.committed
            if requested > uncommitted:
                raise InsufficientTokenBalanceError(requested, uncommitted)

            for beneficiary, amount in zip(beneficiaries, amounts):
                self._add_schedule(beneficiary, amount)

        logger.info(
            "vesting_batch_created",
            extra={"vault": self.vault_id, "schedules": len(beneficiaries), "total": requested},
        )

    def _check_new_schedule(self, beneficiary: str, total_amount: int) -> None:
        if is_null_identity(beneficiary):
            raise InvalidIdentityError("beneficiary")
        if total_amount <= 0:
            raise InvalidAmountError(total_amount)
        existing = self._schedules.get(beneficiary)
        if existing is not None and existing.is_active:
            raise DuplicateScheduleError(beneficiary)

    def _add_schedule(self, beneficiary: str, total_amount: int) -> None:
        # A revoked schedule is replaced; its history is already in the log.
        self._schedules[beneficiary] = VestingSchedule(
            beneficiary=beneficiary, total_amount=total_amount
        )
        self._total_vested += total_amount
        self._event_log.append(
            VestingScheduleCreated(
                occurred_at=self._clock.timestamp(),
                vault=self.vault_id,
                beneficiary=beneficiary,
                amount=total_amount,
            )
        )

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def vested_amount(self, beneficiary: str, now: int | None = None) -> int:
        with self._lock:
            schedule = self._schedules.get(beneficiary)
            if schedule is None or not schedule.is_active:
                return 0
            at = self._clock.timestamp() if now is None else now
            return vesting_math.vested_amount(self.terms, schedule.total_amount, at)

    def claimable_amount(self, beneficiary: str, now: int | None = None) -> int:
        with self._lock:
            schedule = self._schedules.get(beneficiary)
            if schedule is None or not schedule.is_active:
                return 0
            at = self._clock.timestamp() if now is None else now
            return vesting_math.claimable_amount(
                self.terms, schedule.total_amount, schedule.claimed_amount, at
            )

    def claim(self, beneficiary: str) -> ClaimResult:
        """Release everything currently claimable to ``beneficiary``."""
        with self._lock:
            schedule = self._schedules.get(beneficiary)
            if schedule is None or not schedule.is_active:
                raise NoActiveScheduleError(beneficiary)

            amount = self.claimable_amount(beneficiary)
            if amount == 0:
                raise NothingToClaimError(beneficiary)
            if amount > self._balance:
                raise InsufficientTokenBalanceError(amount, self._balance)

            schedule.claimed_amount += amount
            self._total_claimed += amount
            self._balance -= amount
            try:
                self._gateway.transfer(self.asset, beneficiary, amount, memo="vesting_claim")
            except Exception:
                schedule.claimed_amount -= amount
                self._total_claimed -= amount
                self._balance += amount
                raise

            self._event_log.append(
                TokensClaimed(
                    occurred_at=self._clock.timestamp(),
                    vault=self.vault_id,
                    beneficiary=beneficiary,
                    amount=amount,
                )
            )
            return ClaimResult(amount_claimed=amount)

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def revoke(self, actor: str, beneficiary: str) -> int:
        """Deactivate a schedule and return its unclaimed tokens to the owner."""
        self._require_owner(actor, "revoke")
        with self._lock:
            schedule = self._schedules.get(beneficiary)
            if schedule is None or not schedule.is_active:
                raise ScheduleNotActiveError(beneficiary)

            unclaimed = schedule.unclaimed_amount
            schedule.is_active = False
            self._total_vested -= schedule.total_amount
            if unclaimed > 0:
                self._balance -= unclaimed
                try:
                    self._gateway.transfer(self.asset, self.owner, unclaimed, memo="vesting_revoke")
                except Exception:
                    schedule.is_active = True
                    self._total_vested += schedule.total_amount
                    self._balance += unclaimed
                    raise

            self._event_log.append(
                VestingRevoked(
                    occurred_at=self._clock.timestamp(),
                    vault=self.vault_id,
                    beneficiary=beneficiary,
                    unclaimed_amount=unclaimed,
                )
            )
            return unclaimed

    def emergency_withdraw(self, actor: str, recipient: str) -> int:
        """Sweep the whole vault balance once the grace period has elapsed."""
        self._require_owner(actor, "emergency_withdraw")
        if is_null_identity(recipient):
            raise InvalidIdentityError("recipient")
        with self._lock:
            now = self._clock.timestamp()
            available_at = vesting_math.emergency_available_at(self.terms, self.grace_period)
            if now <= available_at:
                raise VestingNotCompleteError(available_at, now)
            amount = self._balance
            if amount == 0:
                raise NothingToWithdrawError(self.vault_id)

            self._balance = 0
            try:
                self._gateway.transfer(self.asset, recipient, amount, memo="vesting_emergency")
            except Exception:
                self._balance = amount
                raise

            logger.warning(
                "vesting_emergency_withdrawal",
                extra={"vault": self.vault_id, "recipient": recipient, "amount": amount},
            )
            self._event_log.append(
                EmergencyWithdrawal(
                    occurred_at=now,
                    vault=self.vault_id,
                    recipient=recipient,
                    amount=amount,
                )
            )
            return amount

    def _require_owner(self, actor: str, operation: str) -> None:
        if actor != self.owner:
            raise NotScheduleOwnerError(actor, operation)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def schedule(self, beneficiary: str) -> ScheduleInfo | None:
        with self._lock:
            schedule = self._schedules.get(beneficiary)
            return ScheduleInfo.from_model(schedule) if schedule is not None else None

    def vesting_info(self, beneficiary: str) -> VestingInfo:
        with self._lock:
            now = self._clock.timestamp()
            schedule = self._schedules.get(beneficiary)
            if schedule is None:
                return VestingInfo(
                    beneficiary=beneficiary,
                    total_tokens=0,
                    claimed_tokens=0,
                    claimable_tokens=0,
                    next_unlock_time=0,
                    is_active=False,
                )
            next_unlock = vesting_math.next_unlock_time(self.terms, now) if schedule.is_active else 0
            return VestingInfo(
                beneficiary=beneficiary,
                total_tokens=schedule.total_amount,
                claimed_tokens=schedule.claimed_amount,
                claimable_tokens=self.claimable_amount(beneficiary, now),
                next_unlock_time=next_unlock,
                is_active=schedule.is_active,
            )

    def vesting_stats(self) -> VestingStats:
        with self._lock:
            now = self._clock.timestamp()
            claimable = sum(self.claimable_amount(b, now) for b in self._schedules)
            return VestingStats(
                total_vested=self._total_vested,
                total_claimed=self._total_claimed,
                total_claimable=claimable,
                beneficiary_count=len(self._schedules),
            )

    def beneficiaries(self) -> list[str]:
        with self._lock:
            return list(self._schedules)

    def is_cliff_passed(self) -> bool:
        return self._clock.timestamp() >= self.terms.cliff_time

    def is_vesting_ended(self) -> bool:
        return self._clock.timestamp() >= self.terms.end_time

    def vesting_progress(self) -> int:
        return vesting_math.vesting_progress(self.terms, self._clock.timestamp())
