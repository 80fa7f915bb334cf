"""
Kernel Invariants Contract.

These invariants are structural law. They are hardcoded in the ledger,
vesting and registry services. No PlatformConfig value may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across ProjectLedger, VestingService and
ProjectRegistry, and is exercised by tests/fuzzing and tests/concurrency.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Configuration may change limits and fees, but never whether these
    rules apply.
    """

    CONSERVATION = "conservation"
    """The sum of every investor's contribution equals total_raised at all
    times. Enforced by ProjectLedger.invest under the campaign lock."""

    TARGET_CAP = "target_cap"
    """total_raised never exceeds target_amount. Over-target investments are
    rejected whole, never clipped."""

    TERMINAL_STATUS = "terminal_status"
    """Status moves only from ACTIVE to exactly one of SUCCESSFUL, FAILED,
    CANCELLED and never changes again."""

    SINGLE_PAYMENT = "single_payment"
    """Withdrawal, refunds and vesting claims pay at most once per
    entitlement. The gating flag or counter is written before the payout
    gateway is called."""

    VESTING_BOUNDS = "vesting_bounds"
    """0 <= claimed_amount <= total_amount for every schedule; revoked
    schedules never pay."""

    MONOTONIC_VERIFICATION = "monotonic_verification"
    """A registry entry's is_verified flag only moves from False to True."""

    RUNNING_TOTALS = "running_totals"
    """Registry aggregate statistics are updated only by the ledger
    withdrawal callback and never recomputed by scanning."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "crowdfund_services",
    "crowdfund_config",
)
