"""
Module: crowdfund_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: fee policy, token allocation and vesting math.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import crowdfund_kernel.domain.values, crowdfund_kernel.exceptions
    and sibling engine modules. MUST NOT import crowdfund_services or
    crowdfund_config.

Invariants enforced:
    - Purity: engines never read a clock. Times are integer epoch seconds
      passed in by the caller.
    - Integer-only arithmetic on base units with floor division; floats
      never appear.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``crowdfund_engines.tracer``), emitting CROWDFUND_ENGINE_TRACE records.

Usage:
    from crowdfund_engines import FeePolicy, VestingTerms, tokens_for_contribution
"""

from crowdfund_kernel.logging_config import get_logger

logger = get_logger("engines")

from crowdfund_engines.allocation import (
    funding_progress,
    success_threshold,
    tokens_for_contribution,
)
from crowdfund_engines.fee_policy import (
    MAX_PLATFORM_FEE_BPS,
    FeePolicy,
    net_amount,
    platform_fee,
    split_proceeds,
    validate_creation_fee,
    validate_fee_bps,
)
from crowdfund_engines.tracer import compute_input_fingerprint, traced_engine
from crowdfund_engines.vesting import (
    VestingTerms,
    claimable_amount,
    emergency_available_at,
    next_unlock_time,
    vested_amount,
    vesting_progress,
)

__all__ = [
    "FeePolicy",
    "MAX_PLATFORM_FEE_BPS",
    "VestingTerms",
    "claimable_amount",
    "compute_input_fingerprint",
    "emergency_available_at",
    "funding_progress",
    "net_amount",
    "next_unlock_time",
    "platform_fee",
    "split_proceeds",
    "success_threshold",
    "tokens_for_contribution",
    "traced_engine",
    "validate_creation_fee",
    "validate_fee_bps",
    "vested_amount",
    "vesting_progress",
]
