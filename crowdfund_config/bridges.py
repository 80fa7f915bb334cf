"""
Config -> Kernel Bridges.

Converts a PlatformConfig into the kernel's PlatformLimits. Lives in
crowdfund_config (the producer) because the kernel must never import
crowdfund_config.

Usage:
    from crowdfund_config import get_active_config
    from crowdfund_config.bridges import build_platform_limits

    limits = build_platform_limits(get_active_config())
"""

from __future__ import annotations

from crowdfund_config.schema import PlatformConfig
from crowdfund_kernel.domain.values import PlatformLimits


def build_platform_limits(config: PlatformConfig) -> PlatformLimits:
    """Raises ValueError when the configured bounds are inconsistent."""
    return PlatformLimits(
        min_investment=config.min_investment,
        max_investment=config.max_investment,
        min_success_threshold_bps=config.min_success_threshold_bps,
        minimum_project_duration=config.minimum_project_duration,
        grace_period=config.grace_period,
        default_platform_fee_bps=config.default_platform_fee_bps,
        max_platform_fee_bps=config.max_platform_fee_bps,
        default_creation_fee=config.default_creation_fee,
    )
