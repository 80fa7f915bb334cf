"""
Configuration Loader (``crowdfund_config.loader``).

Responsibility
--------------
Loads platform configuration YAML files and parses them into the typed
``crowdfund_config.schema.PlatformConfig``. This is build/test tooling;
the single public entry point for runtime config is
``crowdfund_config.get_active_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling. Depends only on the kernel's
value conversions; never on services.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Amounts are converted with ``to_base_units``, so floats and excess
  precision are rejected rather than rounded.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-integer bps or day counts  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from crowdfund_config.schema import PlatformConfig
from crowdfund_kernel.domain.values import SECONDS_PER_DAY, to_base_units


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_amount(value: Any, field_name: str) -> int:
    """Whole-unit amount (string or int in YAML) to base units."""
    if isinstance(value, float):
        raise ValueError(f"{field_name}: quote decimal amounts in YAML, got float {value!r}")
    try:
        return to_base_units(value)
    except ValueError as e:
        raise ValueError(f"{field_name}: {e}") from e


def parse_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name}: expected an integer, got {value!r}")
    return value


def parse_platform_config(data: dict[str, Any]) -> PlatformConfig:
    """
    Parse a platform configuration mapping.

    Postconditions:
        - Returns a frozen PlatformConfig whose ``checksum`` is the
          checksum of ``data``.
    Raises:
        KeyError: a required section or key is missing.
        ValueError: a value has the wrong type or precision.
    """
    investment = data["investment"]
    campaign = data["campaign"]
    vesting = data["vesting"]
    fees = data["fees"]

    return PlatformConfig(
        config_id=str(data["config_id"]),
        version=parse_int(data.get("version", 1), "version"),
        min_investment=parse_amount(investment["min_investment"], "min_investment"),
        max_investment=parse_amount(investment["max_investment"], "max_investment"),
        min_success_threshold_bps=parse_int(
            campaign["min_success_threshold_bps"], "min_success_threshold_bps"
        ),
        minimum_project_duration=parse_int(
            campaign["minimum_project_duration_days"], "minimum_project_duration_days"
        ) * SECONDS_PER_DAY,
        grace_period=parse_int(vesting["grace_period_days"], "grace_period_days") * SECONDS_PER_DAY,
        default_platform_fee_bps=parse_int(
            fees["default_platform_fee_bps"], "default_platform_fee_bps"
        ),
        max_platform_fee_bps=parse_int(fees["max_platform_fee_bps"], "max_platform_fee_bps"),
        default_creation_fee=parse_amount(fees["default_creation_fee"], "default_creation_fee"),
        checksum=compute_checksum(data),
    )


def load_platform_config(path: Path) -> PlatformConfig:
    return parse_platform_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
