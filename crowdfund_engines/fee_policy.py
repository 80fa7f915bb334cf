"""
Module: crowdfund_engines.fee_policy
Responsibility:
    Platform fee and creation-fee arithmetic. Stateless.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - fee = floor(amount * fee_bps / 10000) with fee_bps in [0, cap], so
      0 <= fee <= amount and net_amount is never negative.
    - Creation-fee excess is returned exactly (integer subtraction, no
      rounding).

Failure modes:
    - InsufficientFeeError when paid < required.
    - FeeTooHighError when fee_bps exceeds the cap.
    - InvalidAmountError on negative amounts or negative fee_bps.
"""

from __future__ import annotations

from dataclasses import dataclass

from crowdfund_engines.tracer import traced_engine
from crowdfund_kernel.domain.values import BASIS_POINTS
from crowdfund_kernel.exceptions import (
    FeeTooHighError,
    InsufficientFeeError,
    InvalidAmountError,
)

MAX_PLATFORM_FEE_BPS = 1_000  # 10%


def validate_fee_bps(fee_bps: int, max_bps: int = MAX_PLATFORM_FEE_BPS) -> None:
    """Reject a fee rate outside [0, max_bps]."""
    if fee_bps < 0:
        raise InvalidAmountError(fee_bps, "fee percentage must not be negative")
    if fee_bps > max_bps:
        raise FeeTooHighError(fee_bps, max_bps)


def validate_creation_fee(paid: int, required: int) -> int:
    """
    Check a creation fee payment and return the excess to refund.

    Raises:
        InvalidAmountError: if either value is negative.
        InsufficientFeeError: if paid < required.
    """
    if paid < 0 or required < 0:
        raise InvalidAmountError(min(paid, required), "fee must not be negative")
    if paid < required:
        raise InsufficientFeeError(paid, required)
    return paid - required


@traced_engine("fee_policy", "1.0", fingerprint_fields=("amount", "fee_bps"))
def platform_fee(amount: int, fee_bps: int, max_bps: int = MAX_PLATFORM_FEE_BPS) -> int:
    """floor(amount * fee_bps / 10000)."""
    if amount < 0:
        raise InvalidAmountError(amount, "amount must not be negative")
    validate_fee_bps(fee_bps, max_bps)
    return amount * fee_bps // BASIS_POINTS


def net_amount(amount: int, fee_bps: int, max_bps: int = MAX_PLATFORM_FEE_BPS) -> int:
    """Amount left after the platform fee."""
    return amount - platform_fee(amount, fee_bps, max_bps)


def split_proceeds(amount: int, fee_bps: int, max_bps: int = MAX_PLATFORM_FEE_BPS) -> tuple[int, int]:
    """Return (net_to_creator, fee_to_platform); the two always sum to amount."""
    fee = platform_fee(amount, fee_bps, max_bps)
    return amount - fee, fee


@dataclass(frozen=True)
class FeePolicy:
    """
    Fee arithmetic bound to a platform cap.

    Contract:
        Holds only the cap. The current fee rate lives in the registry
        store and is passed per call.
    """

    max_fee_bps: int = MAX_PLATFORM_FEE_BPS

    def validate_fee_bps(self, fee_bps: int) -> None:
        validate_fee_bps(fee_bps, self.max_fee_bps)

    def validate_creation_fee(self, paid: int, required: int) -> int:
        return validate_creation_fee(paid, required)

    def platform_fee(self, amount: int, fee_bps: int) -> int:
        return platform_fee(amount, fee_bps, self.max_fee_bps)

    def net_amount(self, amount: int, fee_bps: int) -> int:
        return net_amount(amount, fee_bps, self.max_fee_bps)

    def split_proceeds(self, amount: int, fee_bps: int) -> tuple[int, int]:
        return split_proceeds(amount, fee_bps, self.max_fee_bps)
