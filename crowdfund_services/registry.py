"""
crowdfund_services.registry -- Campaign registry and platform fee policy.

Responsibility:
    Creates campaigns (one ProjectLedger each) against a creation fee,
    keeps the append-only campaign list and creator index, holds the
    platform fee settings, collects creation fees, and tracks running
    totals of funds raised and platform fees collected.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    All shared state lives in an explicit ``RegistryStore`` passed in at
    construction. ProjectRegistry implements the ``RegistryLink`` protocol
    its ledgers call back into.

Invariants enforced:
    - Creation validation (pause, fee, parameters) and the excess-fee
      refund run before any mutation; a rejected refund registers nothing.
    - The registry balance grows by exactly the required creation fee; the
      excess is refunded to the payer in full. Platform fees whose transfer
      failed are also held in the balance until swept.
    - MONOTONIC_VERIFICATION: is_verified only moves False -> True.
    - RUNNING_TOTALS: total_funds_raised / total_fees_collected change only
      through ``record_funds_withdrawn``.

Failure modes:
    - RegistryPausedError, InsufficientFeeError,
      InvalidProjectParametersError on create_project.
    - NotOperatorError for operator-only operations.
    - ProjectNotFoundError, OffsetOutOfBoundsError, IndexOutOfBoundsError
      on lookups.
    - NothingToWithdrawError when sweeping an empty balance.

Audit relevance:
    Appends ProjectCreated, CreationFeeRefunded, ProjectVerified,
    PlatformFeeUpdated, ProjectCreationFeeUpdated, FeeRecipientUpdated,
    FeesWithdrawn, Paused and Unpaused events.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from crowdfund_engines.fee_policy import FeePolicy
from crowdfund_kernel.domain.clock import Clock, SystemClock
from crowdfund_kernel.domain.dtos import (
    CreateProjectResult,
    PlatformStats,
    ProjectParams,
    RegistryEntryInfo,
)
from crowdfund_kernel.domain.events import (
    CreationFeeRefunded,
    EventLog,
    FeeRecipientUpdated,
    FeesWithdrawn,
    Paused,
    PlatformFeeUpdated,
    ProjectCreated,
    ProjectCreationFeeUpdated,
    ProjectVerified,
    Unpaused,
)
from crowdfund_kernel.domain.payouts import NATIVE_ASSET, PayoutGateway
from crowdfund_kernel.domain.values import PlatformLimits, is_null_identity
from crowdfund_kernel.exceptions import (
    AlreadyPausedError,
    AlreadyVerifiedError,
    IndexOutOfBoundsError,
    InvalidAmountError,
    InvalidIdentityError,
    InvalidProjectParametersError,
    NotOperatorError,
    NothingToWithdrawError,
    NotPausedError,
    OffsetOutOfBoundsError,
    ProjectNotFoundError,
    RegistryPausedError,
)
from crowdfund_kernel.logging_config import get_logger
from crowdfund_kernel.models.campaign import Campaign, CampaignStatus
from crowdfund_kernel.models.registry import RegistryEntry
from crowdfund_services.project_ledger import ProjectLedger

logger = get_logger("services.registry")

REGISTRY_TARGET = "registry"


@dataclass
class RegistryStore:
    """
    Explicit shared state of one registry.

    Fields are read and written only under ``lock``.
    """

    operator: str
    fee_recipient: str
    platform_fee_bps: int
    creation_fee: int
    event_log: EventLog = field(default_factory=EventLog)
    balance: int = 0
    paused: bool = False
    total_funds_raised: int = 0
    total_fees_collected: int = 0
    entries: list[RegistryEntry] = field(default_factory=list)
    entries_by_id: dict[str, RegistryEntry] = field(default_factory=dict)
    ledgers: dict[str, ProjectLedger] = field(default_factory=dict)
    by_creator: dict[str, list[str]] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def from_limits(
        cls,
        operator: str,
        fee_recipient: str,
        limits: PlatformLimits,
        event_log: EventLog | None = None,
    ) -> RegistryStore:
        if is_null_identity(operator):
            raise InvalidIdentityError("operator")
        if is_null_identity(fee_recipient):
            raise InvalidIdentityError("fee_recipient")
        return cls(
            operator=operator,
            fee_recipient=fee_recipient,
            platform_fee_bps=limits.default_platform_fee_bps,
            creation_fee=limits.default_creation_fee,
            event_log=event_log if event_log is not None else EventLog(),
        )


class ProjectRegistry:
    """
    Campaign factory, index and platform fee authority.

    Contract:
        Every campaign is reachable by id, by creation index and through
        its creator. Entries are never removed.

    Guarantees:
        - Campaign ids are ``project-<n>`` with n the 1-based creation index.
        - Each ledger receives the registry's clock, gateway, event log and
          limits.

    Non-goals:
        - Search or filtering beyond creator and pagination.
        - Deleting or editing campaigns after creation.
    """

    def __init__(
        self,
        store: RegistryStore,
        gateway: PayoutGateway,
        clock: Clock | None = None,
        limits: PlatformLimits | None = None,
    ):
        self._store = store
        self._gateway = gateway
        self._clock = clock or SystemClock()
        self._limits = limits or PlatformLimits()
        self._fee_policy = FeePolicy(self._limits.max_platform_fee_bps)
        self._fee_policy.validate_fee_bps(store.platform_fee_bps)

    @property
    def store(self) -> RegistryStore:
        return self._store

    @property
    def event_log(self) -> EventLog:
        return self._store.event_log

    @property
    def limits(self) -> PlatformLimits:
        return self._limits

    # ------------------------------------------------------------------
    # RegistryLink
    # ------------------------------------------------------------------

    @property
    def operator(self) -> str:
        with self._store.lock:
            return self._store.operator

    def fee_settings(self) -> tuple[int, str]:
        with self._store.lock:
            return self._store.platform_fee_bps, self._store.fee_recipient

    def record_status_change(self, campaign_id: str, status: CampaignStatus) -> None:
        with self._store.lock:
            self._entry(campaign_id).status = status

    def record_funds_withdrawn(self, campaign_id: str, total_raised: int, fee: int) -> None:
        with self._store.lock:
            self._entry(campaign_id)
            self._store.total_funds_raised += total_raised
            self._store.total_fees_collected += fee
        logger.info(
            "registry_totals_updated",
            extra={"campaign_id": campaign_id, "total_raised": total_raised, "fee": fee},
        )

    def retain_platform_fee(self, campaign_id: str, fee: int) -> None:
        with self._store.lock:
            self._entry(campaign_id)
            self._store.balance += fee
        logger.warning(
            "platform_fee_retained",
            extra={"campaign_id": campaign_id, "fee": fee},
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_project(self, actor: str, params: ProjectParams, fee_paid: int) -> CreateProjectResult:
        """
        Register a new campaign paid for with ``fee_paid``.

        Raises:
            RegistryPausedError: the registry is paused.
            InvalidIdentityError: null creator.
            InsufficientFeeError: fee_paid below the creation fee.
            InvalidProjectParametersError: a parameter is out of range.
        """
        store = self._store
        with store.lock:
            if store.paused:
                raise RegistryPausedError()
            if is_null_identity(actor):
                raise InvalidIdentityError("creator")
            required = store.creation_fee
            excess = self._fee_policy.validate_creation_fee(fee_paid, required)
            self._validate_params(params)
            if excess > 0:
                self._gateway.transfer(NATIVE_ASSET, actor, excess, memo="creation_fee_refund")

            now = self._clock.timestamp()
            campaign_id = f"project-{len(store.entries) + 1}"
            campaign = Campaign(
                campaign_id=campaign_id,
                creator=actor,
                name=params.name,
                symbol=params.symbol,
                total_supply=params.total_supply,
                description=params.description,
                target_amount=params.target_amount,
                token_price=params.token_price,
                start_time=now,
                end_time=now + params.duration,
                vesting_cliff=params.vesting_cliff,
                vesting_duration=params.vesting_duration,
            )
            ledger = ProjectLedger(
                campaign=campaign,
                registry=self,
                gateway=self._gateway,
                clock=self._clock,
                event_log=store.event_log,
                limits=self._limits,
                fee_policy=self._fee_policy,
            )
            entry = RegistryEntry(
                campaign_id=campaign_id,
                creator=actor,
                name=params.name,
                symbol=params.symbol,
                created_at=now,
                target_amount=params.target_amount,
                duration=params.duration,
            )
            store.entries.append(entry)
            store.entries_by_id[campaign_id] = entry
            store.ledgers[campaign_id] = ledger
            store.by_creator.setdefault(actor, []).append(campaign_id)
            store.balance += required

            store.event_log.append(
                ProjectCreated(
                    occurred_at=now,
                    campaign_id=campaign_id,
                    creator=actor,
                    name=params.name,
                    symbol=params.symbol,
                    target_amount=params.target_amount,
                    duration=params.duration,
                    creation_fee=required,
                )
            )
            if excess > 0:
                store.event_log.append(
                    CreationFeeRefunded(occurred_at=now, payer=actor, amount=excess)
                )

        logger.info(
            "project_created",
            extra={
                "campaign_id": campaign_id,
                "creator": actor,
                "target_amount": params.target_amount,
                "creation_fee": required,
                "refunded_excess": excess,
            },
        )
        return CreateProjectResult(
            campaign_id=campaign_id, creation_fee=required, refunded_excess=excess
        )

    def _validate_params(self, params: ProjectParams) -> None:
        if not params.name or not params.name.strip():
            raise InvalidProjectParametersError("name", "must not be empty")
        if not params.symbol or not params.symbol.strip():
            raise InvalidProjectParametersError("symbol", "must not be empty")
        if params.total_supply <= 0:
            raise InvalidProjectParametersError("total_supply", "must be greater than 0")
        if params.target_amount <= 0:
            raise InvalidProjectParametersError("target_amount", "must be greater than 0")
        if params.token_price <= 0:
            raise InvalidProjectParametersError("token_price", "must be greater than 0")
        if params.duration < self._limits.minimum_project_duration:
            raise InvalidProjectParametersError(
                "duration",
                f"must be at least {self._limits.minimum_project_duration} seconds",
            )
        if params.vesting_duration <= 0:
            raise InvalidProjectParametersError("vesting_duration", "must be greater than 0")
        if params.vesting_cliff < 0:
            raise InvalidProjectParametersError("vesting_cliff", "must not be negative")

    # ------------------------------------------------------------------
    # Operator controls
    # ------------------------------------------------------------------

    def verify_project(self, actor: str, campaign_id: str) -> None:
        with self._store.lock:
            self._require_operator(actor, "verify_project")
            entry = self._entry(campaign_id)
            if entry.is_verified:
                raise AlreadyVerifiedError(campaign_id)
            entry.is_verified = True
            self._store.event_log.append(
                ProjectVerified(occurred_at=self._clock.timestamp(), campaign_id=campaign_id)
            )

    def set_platform_fee_percentage(self, actor: str, fee_bps: int) -> None:
        with self._store.lock:
            self._require_operator(actor, "set_platform_fee_percentage")
            self._fee_policy.validate_fee_bps(fee_bps)
            old = self._store.platform_fee_bps
            self._store.platform_fee_bps = fee_bps
            self._store.event_log.append(
                PlatformFeeUpdated(
                    occurred_at=self._clock.timestamp(), old_fee_bps=old, new_fee_bps=fee_bps
                )
            )

    def set_project_creation_fee(self, actor: str, fee: int) -> None:
        with self._store.lock:
            self._require_operator(actor, "set_project_creation_fee")
            if fee < 0:
                raise InvalidAmountError(fee, "creation fee must not be negative")
            old = self._store.creation_fee
            self._store.creation_fee = fee
            self._store.event_log.append(
                ProjectCreationFeeUpdated(
                    occurred_at=self._clock.timestamp(), old_fee=old, new_fee=fee
                )
            )

    def set_fee_recipient(self, actor: str, recipient: str) -> None:
        with self._store.lock:
            self._require_operator(actor, "set_fee_recipient")
            if is_null_identity(recipient):
                raise InvalidIdentityError("fee_recipient")
            old = self._store.fee_recipient
            self._store.fee_recipient = recipient
            self._store.event_log.append(
                FeeRecipientUpdated(
                    occurred_at=self._clock.timestamp(),
                    old_recipient=old,
                    new_recipient=recipient,
                )
            )

    def withdraw_fees(self, actor: str) -> int:
        """Sweep accumulated creation fees and retained platform fees to the fee recipient."""
        store = self._store
        with store.lock:
            self._require_operator(actor, "withdraw_fees")
            amount = store.balance
            if amount == 0:
                raise NothingToWithdrawError(REGISTRY_TARGET)
            recipient = store.fee_recipient

            store.balance = 0
            try:
                self._gateway.transfer(NATIVE_ASSET, recipient, amount, memo="creation_fees")
            except Exception:
                store.balance = amount
                raise

            store.event_log.append(
                FeesWithdrawn(occurred_at=self._clock.timestamp(), recipient=recipient, amount=amount)
            )
        logger.info("registry_fees_withdrawn", extra={"recipient": recipient, "amount": amount})
        return amount

    def pause(self, actor: str) -> None:
        with self._store.lock:
            self._require_operator(actor, "pause")
            if self._store.paused:
                raise AlreadyPausedError(REGISTRY_TARGET)
            self._store.paused = True
            self._store.event_log.append(
                Paused(occurred_at=self._clock.timestamp(), target=REGISTRY_TARGET, actor=actor)
            )

    def unpause(self, actor: str) -> None:
        with self._store.lock:
            self._require_operator(actor, "unpause")
            if not self._store.paused:
                raise NotPausedError(REGISTRY_TARGET)
            self._store.paused = False
            self._store.event_log.append(
                Unpaused(occurred_at=self._clock.timestamp(), target=REGISTRY_TARGET, actor=actor)
            )

    def _require_operator(self, actor: str, operation: str) -> None:
        if actor != self._store.operator:
            raise NotOperatorError(actor, operation)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _entry(self, campaign_id: str) -> RegistryEntry:
        entry = self._store.entries_by_id.get(campaign_id)
        if entry is None:
            raise ProjectNotFoundError(campaign_id)
        return entry

    def get_entry(self, campaign_id: str) -> RegistryEntryInfo:
        with self._store.lock:
            return RegistryEntryInfo.from_model(self._entry(campaign_id))

    def get_ledger(self, campaign_id: str) -> ProjectLedger:
        with self._store.lock:
            ledger = self._store.ledgers.get(campaign_id)
            if ledger is None:
                raise ProjectNotFoundError(campaign_id)
            return ledger

    def is_valid_project(self, campaign_id: str) -> bool:
        with self._store.lock:
            return campaign_id in self._store.ledgers

    def project_count(self) -> int:
        with self._store.lock:
            return len(self._store.entries)

    def project_by_index(self, index: int) -> RegistryEntryInfo:
        with self._store.lock:
            count = len(self._store.entries)
            if index < 0 or index >= count:
                raise IndexOutOfBoundsError(index, count)
            return RegistryEntryInfo.from_model(self._store.entries[index])

    def projects_paginated(self, offset: int, limit: int) -> list[RegistryEntryInfo]:
        """``min(limit, count - offset)`` entries from ``offset``, in creation order."""
        with self._store.lock:
            count = len(self._store.entries)
            if offset < 0 or offset > count:
                raise OffsetOutOfBoundsError(offset, count)
            page = self._store.entries[offset : offset + max(limit, 0)]
            return [RegistryEntryInfo.from_model(e) for e in page]

    def projects_by_creator(self, creator: str) -> list[str]:
        with self._store.lock:
            return list(self._store.by_creator.get(creator, ()))

    def platform_stats(self) -> PlatformStats:
        with self._store.lock:
            store = self._store
            return PlatformStats(
                projects_created=len(store.entries),
                funds_raised=store.total_funds_raised,
                fees_collected=store.total_fees_collected,
                current_fee_percentage=store.platform_fee_bps,
                creation_fee=store.creation_fee,
                balance=store.balance,
            )
