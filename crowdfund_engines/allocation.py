"""
Module: crowdfund_engines.allocation
Responsibility:
    Contribution-to-token allocation, success threshold and funding
    progress for a campaign.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - tokens = floor(amount * UNIT / token_price). The platform absorbs
      the rounding dust, never the investor's contribution.
    - Allocation is deterministic and additive-safe: each contribution is
      converted on its own, so the same sequence always yields the same
      per-investor token totals.

Failure modes:
    - ValueError on non-positive token price or target.
"""

from __future__ import annotations

from crowdfund_engines.tracer import traced_engine
from crowdfund_kernel.domain.values import BASIS_POINTS, UNIT


@traced_engine("allocation", "1.0", fingerprint_fields=("amount", "token_price"))
def tokens_for_contribution(amount: int, token_price: int) -> int:
    if token_price <= 0:
        raise ValueError("token_price must be greater than 0")
    return amount * UNIT // token_price


def success_threshold(target_amount: int, threshold_bps: int) -> int:
    """
    Minimum raise for a deadline finalization to count as success.

    Rounded up, so ``raised >= success_threshold(target, bps)`` holds
    exactly when ``raised * BASIS_POINTS >= target * bps``.
    """
    if target_amount <= 0:
        raise ValueError("target_amount must be greater than 0")
    return -(-target_amount * threshold_bps // BASIS_POINTS)


def funding_progress(total_raised: int, target_amount: int) -> int:
    """Percent of target raised, floored."""
    if target_amount <= 0:
        raise ValueError("target_amount must be greater than 0")
    return total_raised * 100 // target_amount
