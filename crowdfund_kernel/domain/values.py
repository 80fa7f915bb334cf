"""
Values -- Fixed-point amounts, identities and platform limits.

Responsibility:
    Provides the primitive value conventions every ledger computation uses:
    integer base units with a fixed scale (``UNIT``), basis-point rates,
    the null identity, and the ``PlatformLimits`` bundle of numeric policy
    constants injected into ledgers and the registry.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module and by crowdfund_engines.

Invariants enforced:
    - All amounts are ``int`` base units; ``Decimal`` appears only at the
      human-readable boundary (``to_base_units`` / ``from_base_units``).
    - Conversions to base units never round silently: sub-unit precision
      raises ValueError.

Failure modes:
    - ValueError on float input, non-numeric strings, or excess precision.
    - ValueError on PlatformLimits with inconsistent bounds.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

UNIT_DECIMALS = 18
UNIT = 10**UNIT_DECIMALS
BASIS_POINTS = 10_000

SECONDS_PER_DAY = 24 * 60 * 60

NULL_IDENTITY = ""


def to_base_units(value: Decimal | str | int, decimals: int = UNIT_DECIMALS) -> int:
    """
    Convert a human-readable amount into integer base units.

    Preconditions:
        - ``value`` is a Decimal, an int, or a numeric string (never float).

    Raises:
        ValueError: If the value is a float, not numeric, or carries more
            precision than ``decimals`` allows.

    Example:
        to_base_units("0.01") -> 10_000_000_000_000_000
    """
    if isinstance(value, float):
        raise ValueError("Floats are not accepted for amounts; use str or Decimal")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    scaled = amount * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value!r} exceeds {decimals} decimal places")
    return int(scaled)


def from_base_units(value: int, decimals: int = UNIT_DECIMALS) -> Decimal:
    """
    Convert integer base units into a Decimal amount in whole units.

    Example:
        from_base_units(1050, 2) -> Decimal("10.50")
    """
    divisor = Decimal(10) ** decimals
    return Decimal(value) / divisor


def is_null_identity(identity: str | None) -> bool:
    """True for the zero-address equivalent (None or blank)."""
    return identity is None or not identity.strip()


@dataclass(frozen=True, slots=True)
class PlatformLimits:
    """
    Numeric policy constants for campaigns and vesting.

    Contract:
        Frozen bundle passed by value to ProjectRegistry and every
        ProjectLedger it creates. Built from configuration by
        ``crowdfund_config.bridges``; the defaults match the shipped
        default configuration set.

    Guarantees:
        - 0 < min_investment <= max_investment
        - 0 <= default_platform_fee_bps <= max_platform_fee_bps <= BASIS_POINTS
        - 0 <= min_success_threshold_bps <= BASIS_POINTS
    """

    min_investment: int = UNIT // 100
    max_investment: int = 100 * UNIT
    min_success_threshold_bps: int = 3_000
    minimum_project_duration: int = SECONDS_PER_DAY
    grace_period: int = 365 * SECONDS_PER_DAY
    default_platform_fee_bps: int = 250
    max_platform_fee_bps: int = 1_000
    default_creation_fee: int = UNIT

    def __post_init__(self) -> None:
        if self.min_investment <= 0:
            raise ValueError("min_investment must be positive")
        if self.max_investment < self.min_investment:
            raise ValueError("max_investment must be >= min_investment")
        if not 0 <= self.min_success_threshold_bps <= BASIS_POINTS:
            raise ValueError("min_success_threshold_bps must be within [0, 10000]")
        if not 0 <= self.max_platform_fee_bps <= BASIS_POINTS:
            raise ValueError("max_platform_fee_bps must be within [0, 10000]")
        if not 0 <= self.default_platform_fee_bps <= self.max_platform_fee_bps:
            raise ValueError("default_platform_fee_bps must be within [0, max_platform_fee_bps]")
        if self.minimum_project_duration < 0 or self.grace_period < 0:
            raise ValueError("durations must be non-negative")
        if self.default_creation_fee < 0:
            raise ValueError("default_creation_fee must be non-negative")
