"""
crowdfund_config -- single public entrypoint for platform configuration.

Responsibility:
    Provides the only way to obtain platform configuration at runtime
    through ``get_active_config()``. Services receive the resulting limits
    by injection and never read configuration files themselves.

Architecture position:
    Configuration -- sits above ``crowdfund_kernel`` and below
    ``crowdfund_services``. The kernel must never import from this
    package; ``bridges`` translates configuration into kernel inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - The returned configuration has passed PlatformLimits validation.
    - Deterministic identity: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing keys, bad types or
      inconsistent bounds.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CROWDFUND_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from crowdfund_config.bridges import build_platform_limits
from crowdfund_config.loader import load_platform_config
from crowdfund_config.schema import PlatformConfig

_logger = logging.getLogger("crowdfund_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | None = None) -> PlatformConfig:
    """The only public configuration entrypoint.

    Args:
        path: Override path to a configuration file. Defaults to the
            shipped ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError, ValueError: If the configuration is invalid.
    """
    config = load_platform_config(path or _DEFAULT_CONFIG_PATH)
    build_platform_limits(config)

    _logger.info(
        "CROWDFUND_CONFIG_TRACE",
        extra={
            "trace_type": "CROWDFUND_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "min_investment": config.min_investment,
            "max_investment": config.max_investment,
            "default_platform_fee_bps": config.default_platform_fee_bps,
        },
    )
    return config


__all__ = ["PlatformConfig", "build_platform_limits", "get_active_config"]
