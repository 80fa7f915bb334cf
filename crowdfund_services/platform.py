"""
crowdfund_services.platform -- Public operation surface of the platform.

Responsibility:
    Wires a registry, its store, the payout gateway, the clock and the
    configured limits together, and exposes every platform operation keyed
    by campaign id. Binds operation, actor and campaign to the log
    context for the duration of each call and logs rejected operations
    with their error code.

Architecture position:
    Services -- outermost service; the composition root for callers such
    as transports or CLIs, which live outside this repository.

Failure modes:
    - Every CrowdfundError raised below propagates unchanged after a
      WARNING ``operation_rejected`` record.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from crowdfund_config import PlatformConfig
from crowdfund_config.bridges import build_platform_limits
from crowdfund_kernel.domain.clock import Clock, SystemClock
from crowdfund_kernel.domain.dtos import (
    ClaimResult,
    CreateProjectResult,
    FinalizationResult,
    InvestmentInfo,
    InvestmentReceipt,
    PlatformStats,
    ProjectInfo,
    ProjectParams,
    RefundResult,
    RegistryEntryInfo,
    VestingInfo,
    WithdrawalResult,
)
from crowdfund_kernel.domain.events import EventLog
from crowdfund_kernel.domain.payouts import PayoutGateway
from crowdfund_kernel.domain.values import PlatformLimits
from crowdfund_kernel.exceptions import CrowdfundError
from crowdfund_kernel.logging_config import LogContext, get_logger
from crowdfund_services.project_ledger import ProjectLedger
from crowdfund_services.registry import ProjectRegistry, RegistryStore

logger = get_logger("services.platform")


class CrowdfundPlatform:
    """
    Facade over one ProjectRegistry and the ledgers it created.

    Usage:
        platform = CrowdfundPlatform("operator", "treasury", gateway, clock)
        created = platform.create_project("alice", params, fee_paid=UNIT)
        platform.invest(created.campaign_id, "bob", 5 * UNIT)
    """

    def __init__(
        self,
        operator: str,
        fee_recipient: str,
        gateway: PayoutGateway,
        clock: Clock | None = None,
        config: PlatformConfig | None = None,
        event_log: EventLog | None = None,
    ):
        limits = build_platform_limits(config) if config is not None else PlatformLimits()
        self.store = RegistryStore.from_limits(operator, fee_recipient, limits, event_log)
        self.registry = ProjectRegistry(
            self.store, gateway, clock=clock or SystemClock(), limits=limits
        )

    @property
    def event_log(self) -> EventLog:
        return self.store.event_log

    @contextmanager
    def _operation(
        self,
        name: str,
        actor: str | None = None,
        campaign_id: str | None = None,
    ) -> Iterator[None]:
        with LogContext.bind(operation=name, actor_id=actor, campaign_id=campaign_id):
            try:
                yield
            except CrowdfundError as exc:
                logger.warning(
                    "operation_rejected",
                    extra={"error_code": exc.code, "detail": str(exc)},
                )
                raise

    def _ledger(self, campaign_id: str) -> ProjectLedger:
        return self.registry.get_ledger(campaign_id)

    # ------------------------------------------------------------------
    # Campaign operations
    # ------------------------------------------------------------------

    def create_project(self, actor: str, params: ProjectParams, fee_paid: int) -> CreateProjectResult:
        with self._operation("create_project", actor):
            return self.registry.create_project(actor, params, fee_paid)

    def invest(self, campaign_id: str, investor: str, amount: int) -> InvestmentReceipt:
        with self._operation("invest", investor, campaign_id):
            return self._ledger(campaign_id).invest(investor, amount)

    def finalize_project(self, campaign_id: str) -> FinalizationResult:
        with self._operation("finalize_project", campaign_id=campaign_id):
            return self._ledger(campaign_id).finalize()

    def withdraw_funds(self, campaign_id: str, actor: str) -> WithdrawalResult:
        with self._operation("withdraw_funds", actor, campaign_id):
            return self._ledger(campaign_id).withdraw_funds(actor)

    def claim_refund(self, campaign_id: str, investor: str) -> RefundResult:
        with self._operation("claim_refund", investor, campaign_id):
            return self._ledger(campaign_id).claim_refund(investor)

    def claim_tokens(self, campaign_id: str, beneficiary: str) -> ClaimResult:
        with self._operation("claim_tokens", beneficiary, campaign_id):
            return self._ledger(campaign_id).claim_tokens(beneficiary)

    def cancel_project(self, campaign_id: str, actor: str) -> FinalizationResult:
        with self._operation("cancel_project", actor, campaign_id):
            return self._ledger(campaign_id).cancel_project(actor)

    def pause_project(self, campaign_id: str, actor: str) -> None:
        with self._operation("pause_project", actor, campaign_id):
            self._ledger(campaign_id).pause(actor)

    def unpause_project(self, campaign_id: str, actor: str) -> None:
        with self._operation("unpause_project", actor, campaign_id):
            self._ledger(campaign_id).unpause(actor)

    def receive_asset(self, campaign_id: str, asset: str, amount: int) -> None:
        with self._operation("receive_asset", campaign_id=campaign_id):
            self._ledger(campaign_id).receive_asset(asset, amount)

    def emergency_token_recovery(
        self, campaign_id: str, actor: str, asset: str, amount: int
    ) -> int:
        with self._operation("emergency_token_recovery", actor, campaign_id):
            return self._ledger(campaign_id).emergency_token_recovery(actor, asset, amount)

    # ------------------------------------------------------------------
    # Operator operations
    # ------------------------------------------------------------------

    def verify_project(self, actor: str, campaign_id: str) -> None:
        with self._operation("verify_project", actor, campaign_id):
            self.registry.verify_project(actor, campaign_id)

    def set_platform_fee_percentage(self, actor: str, fee_bps: int) -> None:
        with self._operation("set_platform_fee_percentage", actor):
            self.registry.set_platform_fee_percentage(actor, fee_bps)

    def set_project_creation_fee(self, actor: str, fee: int) -> None:
        with self._operation("set_project_creation_fee", actor):
            self.registry.set_project_creation_fee(actor, fee)

    def set_fee_recipient(self, actor: str, recipient: str) -> None:
        with self._operation("set_fee_recipient", actor):
            self.registry.set_fee_recipient(actor, recipient)

    def withdraw_fees(self, actor: str) -> int:
        with self._operation("withdraw_fees", actor):
            return self.registry.withdraw_fees(actor)

    def pause_platform(self, actor: str) -> None:
        with self._operation("pause_platform", actor):
            self.registry.pause(actor)

    def unpause_platform(self, actor: str) -> None:
        with self._operation("unpause_platform", actor):
            self.registry.unpause(actor)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_project_info(self, campaign_id: str) -> ProjectInfo:
        return self._ledger(campaign_id).project_info()

    def get_investment_info(self, campaign_id: str, investor: str) -> InvestmentInfo:
        return self._ledger(campaign_id).investment_info(investor)

    def get_vesting_info(self, campaign_id: str, beneficiary: str) -> VestingInfo:
        return self._ledger(campaign_id).vesting_info(beneficiary)

    def get_progress(self, campaign_id: str) -> int:
        return self._ledger(campaign_id).progress()

    def get_time_remaining(self, campaign_id: str) -> int:
        return self._ledger(campaign_id).time_remaining()

    def get_projects_paginated(self, offset: int, limit: int) -> list[RegistryEntryInfo]:
        return self.registry.projects_paginated(offset, limit)

    def get_projects_by_creator(self, creator: str) -> list[str]:
        return self.registry.projects_by_creator(creator)

    def get_platform_stats(self) -> PlatformStats:
        return self.registry.platform_stats()
