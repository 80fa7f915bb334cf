"""
Module: crowdfund_kernel.models.vesting
Responsibility: Per-beneficiary vesting schedule record.
Architecture position: Kernel > Models.  Mutated only by VestingService.

Invariants enforced:
    - 0 <= claimed_amount <= total_amount.
    - is_active only moves True -> False (revocation).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class VestingSchedule:
    """Token release entitlement of one beneficiary."""

    beneficiary: str
    total_amount: int
    claimed_amount: int = 0
    is_active: bool = True

    @property
    def unclaimed_amount(self) -> int:
        return self.total_amount - self.claimed_amount
