"""
costing_engines.tracer -- COSTING_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a replay or assembly entry point and emits one
    structured trace per call: which engine ran, a fingerprint of the
    inputs that determine its output, how many events it was handed, how
    long it took and whether it completed or raised a costing error.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    The wrapper reads kwargs and the return value; it never mutates them.

Invariants enforced:
    - Fingerprints depend only on the named kwargs, rendered canonically:
      Decimals keep their exponent, dates are ISO, Enums use their value,
      mappings are key-sorted, dataclasses render field by field.  Event
      streams and replay results are hashed in full, so two calls with the
      same fingerprint saw the same data.  The digest is SHA-256 cut to 16
      hex chars.
    - A failing engine still produces exactly one trace (``status`` =
      ``failed`` with the error code) and the exception is re-raised
      unchanged.

Audit relevance:
    The replay traces of one request share its correlation_id through
    LogContext; equal fingerprints with different closing values point at
    a nondeterminism defect.
"""

from __future__ import annotations

import functools
import hashlib
import time
from collections.abc import Callable, Mapping, Sized
from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from costing_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE = "COSTING_ENGINE_TRACE"

# Scalar renderers, tried in order (bool before int: bool is an int).
_SCALARS: tuple[tuple[type | tuple[type, ...], Callable[[Any], str]], ...] = (
    (Enum, lambda v: str(v.value)),
    (bool, lambda v: "true" if v else "false"),
    ((int, Decimal), str),
    (date, lambda v: v.isoformat()),
    (str, lambda v: v),
)


def _canonicalize(value: Any) -> str:
    """Stable text form of ``value``; unknown types fall back to ``str()``."""
    if value is None:
        return "null"
    for types, render in _SCALARS:
        if isinstance(value, types):
            return render(value)
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    if is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}:{_canonicalize(getattr(value, f.name))}" for f in fields(value)
        )
        return f"{type(value).__name__}{{{body}}}"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """16-hex SHA-256 prefix over ``name=value`` pairs; absent kwargs hash as null."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _event_count(count_field: str | None, kwargs: dict[str, Any]) -> int | None:
    if count_field is None:
        return None
    value = kwargs.get(count_field)
    return len(value) if isinstance(value, Sized) else None


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    count_field: str | None = None,
) -> Callable:
    """
    Decorator emitting COSTING_ENGINE_TRACE around a keyword-only engine call.

    Args:
        engine_name: Engine identifier (e.g. "wac_replay").
        engine_version: Bumped whenever the engine's numbers could change.
        fingerprint_fields: Kwargs hashed into ``input_fingerprint``.
        count_field: Kwarg holding the event sequence; its length is
            reported as ``event_count``.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            trace: dict[str, Any] = {
                "trace_type": TRACE_TYPE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": (
                    compute_input_fingerprint(fingerprint_fields, kwargs)
                    if fingerprint_fields else ""
                ),
                "event_count": _event_count(count_field, kwargs),
                "function": func.__qualname__,
            }

            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                trace["status"] = "failed"
                trace["error_code"] = getattr(exc, "code", type(exc).__name__)
                trace["duration_ms"] = round((time.monotonic() - started) * 1000, 2)
                _logger.info(TRACE_TYPE, extra=trace)
                raise

            trace["status"] = "ok"
            trace["duration_ms"] = round((time.monotonic() - started) * 1000, 2)
            _logger.info(TRACE_TYPE, extra=trace)
            return result

        return wrapper

    return decorator
