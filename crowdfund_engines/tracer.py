"""
crowdfund_engines.tracer -- CROWDFUND_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure calculation and, when DEBUG is enabled
    for the engines logger, emits one trace record per call: engine name
    and version, a fingerprint of the selected inputs, the result, the
    elapsed time, and whether the call raised.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Emits log records only; never touches services or state.

Invariants enforced:
    - Fingerprints are deterministic for equal inputs (SHA-256 over a
      canonical rendering, truncated to 16 hex chars).
    - The wrapped function's return value and exceptions pass through
      unchanged.

Usage:
    from crowdfund_engines.tracer import traced_engine

    @traced_engine("fee_policy", "1.0", fingerprint_fields=("amount", "fee_bps"))
    def platform_fee(amount, fee_bps):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import fields, is_dataclass
from typing import Any

_logger = logging.getLogger("crowdfund_kernel.engines.tracer")


def _render(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_dataclass(value) and not isinstance(value, type):
        value = {f.name: getattr(value, f.name) for f in fields(value)}
    if isinstance(value, Mapping):
        return "{" + ",".join(f"{k}:{_render(value[k])}" for k in sorted(value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_render(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over ``field=value`` pairs; missing fields render as null."""
    canonical = "|".join(f"{name}={_render(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator emitting CROWDFUND_ENGINE_TRACE around a pure engine function.

    Arguments are bound to parameter names, so ``fingerprint_fields`` may
    name positional or keyword parameters alike.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def _emit(args: tuple, kwargs: dict, started: float, **outcome: Any) -> None:
            bound = signature.bind(*args, **kwargs)
            _logger.debug(
                "CROWDFUND_ENGINE_TRACE",
                extra={
                    "trace_type": "CROWDFUND_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": compute_input_fingerprint(
                        fingerprint_fields, bound.arguments
                    ),
                    "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                    **outcome,
                },
            )

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _logger.isEnabledFor(logging.DEBUG):
                return func(*args, **kwargs)

            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _emit(args, kwargs, started, outcome="error", error_type=type(exc).__name__)
                raise
            _emit(args, kwargs, started, outcome="ok", result=result)
            return result

        return wrapper

    return decorator
