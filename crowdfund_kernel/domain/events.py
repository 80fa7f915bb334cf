"""
Events -- Domain events and the append-only event log.

Responsibility:
    Every mutating kernel operation appends exactly one frozen domain event
    (or a fixed, documented set of events) carrying the operation's result
    fields. Indexers and observers consume the log; the kernel never
    broadcasts implicitly.

Architecture position:
    Kernel > Domain. The EventLog is shared by a registry and all ledgers
    and vaults it creates, through the RegistryStore.

Invariants enforced:
    - Append-only: records are never removed or replaced.
    - ``seq`` is strictly monotonic per log, starting at 1.

Failure modes:
    - Exceptions raised by observers propagate to the operation that
      appended the event. Observers run after state has been committed.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import TypeVar

from crowdfund_kernel.logging_config import get_logger

logger = get_logger("events")


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    occurred_at: int

    @property
    def event_type(self) -> str:
        return type(self).__name__


# Registry events


@dataclass(frozen=True)
class ProjectCreated(DomainEvent):
    campaign_id: str
    creator: str
    name: str
    symbol: str
    target_amount: int
    duration: int
    creation_fee: int


@dataclass(frozen=True)
class CreationFeeRefunded(DomainEvent):
    payer: str
    amount: int


@dataclass(frozen=True)
class ProjectVerified(DomainEvent):
    campaign_id: str


@dataclass(frozen=True)
class PlatformFeeUpdated(DomainEvent):
    old_fee_bps: int
    new_fee_bps: int


@dataclass(frozen=True)
class ProjectCreationFeeUpdated(DomainEvent):
    old_fee: int
    new_fee: int


@dataclass(frozen=True)
class FeeRecipientUpdated(DomainEvent):
    old_recipient: str
    new_recipient: str


@dataclass(frozen=True)
class FeesWithdrawn(DomainEvent):
    recipient: str
    amount: int


@dataclass(frozen=True)
class Paused(DomainEvent):
    target: str
    actor: str


@dataclass(frozen=True)
class Unpaused(DomainEvent):
    target: str
    actor: str


# Campaign events


@dataclass(frozen=True)
class InvestmentMade(DomainEvent):
    campaign_id: str
    investor: str
    amount: int
    tokens: int


@dataclass(frozen=True)
class ProjectFinalized(DomainEvent):
    campaign_id: str
    status: str
    total_raised: int


@dataclass(frozen=True)
class FundsWithdrawn(DomainEvent):
    campaign_id: str
    creator: str
    amount_to_creator: int
    fee_to_recipient: int
    fee_recipient: str
    fee_retained: int = 0


@dataclass(frozen=True)
class RefundClaimed(DomainEvent):
    campaign_id: str
    investor: str
    amount: int


@dataclass(frozen=True)
class AssetReceived(DomainEvent):
    campaign_id: str
    asset: str
    amount: int


@dataclass(frozen=True)
class TokensRecovered(DomainEvent):
    campaign_id: str
    asset: str
    recipient: str
    amount: int


# Vesting events


@dataclass(frozen=True)
class VestingScheduleCreated(DomainEvent):
    vault: str
    beneficiary: str
    amount: int


@dataclass(frozen=True)
class TokensClaimed(DomainEvent):
    vault: str
    beneficiary: str
    amount: int


@dataclass(frozen=True)
class VestingRevoked(DomainEvent):
    vault: str
    beneficiary: str
    unclaimed_amount: int


@dataclass(frozen=True)
class EmergencyWithdrawal(DomainEvent):
    vault: str
    recipient: str
    amount: int


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EventRecord:
    """A domain event with its position in the log."""

    seq: int
    event: DomainEvent


E = TypeVar("E", bound=DomainEvent)

Observer = Callable[[EventRecord], None]


class EventLog:
    """Thread-safe append-only log of domain events."""

    def __init__(self) -> None:
        self._records: list[EventRecord] = []
        self._observers: list[Observer] = []
        self._lock = threading.Lock()

    def append(self, event: DomainEvent) -> EventRecord:
        with self._lock:
            record = EventRecord(seq=len(self._records) + 1, event=event)
            self._records.append(record)
            observers = tuple(self._observers)

        logger.info(
            "CROWDFUND_EVENT",
            extra={"event_type": event.event_type, "seq": record.seq, "payload": asdict(event)},
        )
        for observer in observers:
            observer(record)
        return record

    def subscribe(self, observer: Observer) -> None:
        with self._lock:
            self._observers.append(observer)

    def records(self) -> tuple[EventRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def events(self) -> list[DomainEvent]:
        return [r.event for r in self.records()]

    def of_type(self, event_type: type[E]) -> list[E]:
        return [e for e in self.events() if isinstance(e, event_type)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
