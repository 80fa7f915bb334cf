"""
Module: crowdfund_engines.vesting
Responsibility:
    Cliff + linear vesting arithmetic: vested amount, claimable amount,
    next unlock time, time progress and the emergency-sweep boundary.

Architecture position:
    Engines -- pure calculation layer, zero I/O. Times are integer epoch
    seconds passed in by the caller; this module never reads a clock.

Invariants enforced:
    - vested is 0 strictly before the cliff.
    - vested == total exactly at and after cliff + duration.
    - In between, vested = floor(total * elapsed / duration), which is
      monotonic non-decreasing in ``now`` and never exceeds total.
    - claimable = max(vested - claimed, 0) <= total - claimed.

Failure modes:
    - ValueError on non-positive duration or negative amounts.
"""

from __future__ import annotations

from dataclasses import dataclass

from crowdfund_engines.tracer import traced_engine


@dataclass(frozen=True)
class VestingTerms:
    """Timing of a vesting vault, shared by all of its schedules."""

    cliff_time: int
    vesting_duration: int

    def __post_init__(self) -> None:
        if self.vesting_duration <= 0:
            raise ValueError("vesting duration must be greater than 0")

    @property
    def end_time(self) -> int:
        return self.cliff_time + self.vesting_duration


@traced_engine("vesting", "1.0", fingerprint_fields=("total_amount", "now"))
def vested_amount(terms: VestingTerms, total_amount: int, now: int) -> int:
    """Linear release from the cliff, floored."""
    if total_amount < 0:
        raise ValueError("total_amount must not be negative")
    if now < terms.cliff_time:
        return 0
    if now >= terms.end_time:
        return total_amount
    return total_amount * (now - terms.cliff_time) // terms.vesting_duration


def claimable_amount(terms: VestingTerms, total_amount: int, claimed_amount: int, now: int) -> int:
    return max(vested_amount(terms, total_amount, now) - claimed_amount, 0)


def next_unlock_time(terms: VestingTerms, now: int) -> int:
    """Cliff time before the cliff, full-vest time while vesting, else 0."""
    if now < terms.cliff_time:
        return terms.cliff_time
    if now < terms.end_time:
        return terms.end_time
    return 0


def vesting_progress(terms: VestingTerms, now: int) -> int:
    """Elapsed share of the vesting window as an integer percent."""
    if now < terms.cliff_time:
        return 0
    if now >= terms.end_time:
        return 100
    return (now - terms.cliff_time) * 100 // terms.vesting_duration


def emergency_available_at(terms: VestingTerms, grace_period: int) -> int:
    return terms.end_time + grace_period
