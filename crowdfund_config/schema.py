"""
PlatformConfig schema.

The typed form of a platform configuration set. YAML files are parsed into
this dataclass by the loader; ``crowdfund_config.bridges`` turns it into the
kernel's ``PlatformLimits``.

Amounts are integer base units and durations are seconds once parsed; the
YAML source expresses them in whole currency units and days.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformConfig:
    """One validated platform configuration set."""

    config_id: str
    version: int
    min_investment: int
    max_investment: int
    min_success_threshold_bps: int
    minimum_project_duration: int
    grace_period: int
    default_platform_fee_bps: int
    max_platform_fee_bps: int
    default_creation_fee: int
    checksum: str = ""
