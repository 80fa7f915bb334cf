"""
Payouts -- Outbound transfer port.

Responsibility:
    The kernel never moves currency or tokens itself. Every payout (creator
    withdrawal, platform fee, refund, vested token release, revocation
    return, fee sweep, creation-fee excess) is submitted through a
    ``PayoutGateway`` injected at construction.

Architecture position:
    Kernel > Domain -- port definition plus an in-memory adapter used by
    tests and local simulations. Real adapters live outside the kernel.

Invariants enforced:
    - Services write their gating flag or counter BEFORE calling
      ``transfer``. A gateway that re-enters the kernel from inside
      ``transfer`` (the ``on_transfer`` hook) therefore observes the
      updated state and is rejected.

Failure modes:
    - ValueError from InMemoryPayoutGateway on non-positive amounts or a
      null recipient.
    - Any exception raised by a gateway propagates unchanged to the caller.
    - InMemoryPayoutGateway raises failures armed with ``fail_next`` before
      anything is credited, so a rejected transfer moves nothing.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from crowdfund_kernel.domain.values import is_null_identity

NATIVE_ASSET = "native"


def token_asset(campaign_id: str) -> str:
    """Asset identifier for the token sold by a campaign."""
    return f"token:{campaign_id}"


@dataclass(frozen=True, slots=True)
class Transfer:
    """One completed outbound transfer."""

    asset: str
    recipient: str
    amount: int
    memo: str = ""


class PayoutGateway(ABC):
    """Port through which the kernel submits outbound transfers."""

    @abstractmethod
    def transfer(self, asset: str, recipient: str, amount: int, memo: str = "") -> None:
        """Send ``amount`` base units of ``asset`` to ``recipient``."""
        ...


class InMemoryPayoutGateway(PayoutGateway):
    """
    Gateway that credits balances in memory and journals every transfer.

    ``on_transfer`` is invoked after each transfer is recorded and may call
    back into the kernel, which is how re-entrancy is exercised in tests.
    A rejected payout is simulated with ``fail_next``, which fails before
    the balance is credited.
    """

    def __init__(self, on_transfer: Callable[[Transfer], None] | None = None):
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._journal: list[Transfer] = []
        self._pending_failures: list[tuple[str | None, Exception]] = []
        self._lock = threading.Lock()
        self.on_transfer = on_transfer

    def fail_next(self, memo: str | None = None, error: Exception | None = None) -> None:
        """Reject the next transfer (with ``memo``, if given) without crediting it."""
        with self._lock:
            self._pending_failures.append((memo, error or RuntimeError("transfer rejected")))

    def transfer(self, asset: str, recipient: str, amount: int, memo: str = "") -> None:
        if amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {amount}")
        if is_null_identity(recipient):
            raise ValueError("Transfer recipient must not be the null identity")
        record = Transfer(asset=asset, recipient=recipient, amount=amount, memo=memo)
        with self._lock:
            for index, (match, error) in enumerate(self._pending_failures):
                if match is None or match == memo:
                    del self._pending_failures[index]
                    raise error
            self._balances[(asset, recipient)] += amount
            self._journal.append(record)
        if self.on_transfer is not None:
            self.on_transfer(record)

    def balance_of(self, recipient: str, asset: str = NATIVE_ASSET) -> int:
        with self._lock:
            return self._balances.get((asset, recipient), 0)

    @property
    def transfers(self) -> tuple[Transfer, ...]:
        with self._lock:
            return tuple(self._journal)

    def total_sent(self, asset: str = NATIVE_ASSET) -> int:
        with self._lock:
            return sum(t.amount for t in self._journal if t.asset == asset)
