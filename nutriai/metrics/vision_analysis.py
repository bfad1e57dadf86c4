"""Instrumentation helpers for vision analysis.

Metrics:
* Counter vision_analysis_requests_total{provider,status}
* Counter vision_analysis_fallback_total{reason,original_status}
* Counter vision_analysis_errors_total{code}
* Histogram vision_analysis_latency_ms{provider}

`provider` is the name of the provider that was invoked (mock|openai).
`status` is "success" or "failed" for that single invocation.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from .core import registry

REQUESTS_TOTAL = "vision_analysis_requests_total"
FALLBACK_TOTAL = "vision_analysis_fallback_total"
ERRORS_TOTAL = "vision_analysis_errors_total"
LATENCY_MS = "vision_analysis_latency_ms"


def record_request(provider: str, status: str) -> None:
    registry.inc(REQUESTS_TOTAL, provider=provider, status=status)


def record_fallback(reason: str, original_status: int) -> None:
    registry.inc(FALLBACK_TOTAL, reason=reason, original_status=original_status)


def record_error(code: str) -> None:
    """Count a classified failure surfaced to the caller."""
    registry.inc(ERRORS_TOTAL, code=code)


def record_latency_ms(ms: float, *, provider: str) -> None:
    registry.observe(LATENCY_MS, ms, provider=provider)


@contextmanager
def time_analysis(provider: str) -> Iterator[None]:
    """Time one provider invocation and count its outcome."""
    start = time.perf_counter()
    try:
        yield
        record_request(provider, "success")
    except Exception:
        record_request(provider, "failed")
        raise
    finally:
        record_latency_ms((time.perf_counter() - start) * 1000.0, provider=provider)


def reset_all() -> None:
    """Reset every metric (test utility)."""
    registry.reset()
