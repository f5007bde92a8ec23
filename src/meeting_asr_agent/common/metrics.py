"""
Метрики Prometheus.

Назначение:
- переходы стадий пайплайна (успех / ошибка / no-op)
- обращения к ASR-провайдерам и их задержка
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================
PIPELINE_TRANSITIONS_TOTAL = Counter(
    "meeting_asr_pipeline_transitions_total",
    "Количество переходов стадий пайплайна",
    ["stage", "result"],  # result: ok|failed|noop|running
)

PIPELINE_STAGE_LATENCY_MS = Histogram(
    "meeting_asr_pipeline_stage_latency_ms",
    "Задержка выполнения стадий пайплайна (мс)",
    ["stage"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000),
)

PROVIDER_REQUESTS_TOTAL = Counter(
    "meeting_asr_provider_requests_total",
    "Количество обращений к ASR-провайдерам",
    ["provider", "operation", "result"],
)

PROVIDER_LATENCY_MS = Histogram(
    "meeting_asr_provider_latency_ms",
    "Задержка обращения к ASR-провайдеру (мс)",
    ["provider", "operation"],
    buckets=(25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000),
)


# =============================================================================
# ХЕЛПЕРЫ
# =============================================================================
@contextmanager
def track_stage_latency(stage: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        PIPELINE_STAGE_LATENCY_MS.labels(stage=stage).observe(elapsed_ms)


def record_transition(stage: str, result: str) -> None:
    PIPELINE_TRANSITIONS_TOTAL.labels(stage=stage, result=result).inc()


@contextmanager
def track_provider_call(provider: str, operation: str) -> Iterator[None]:
    started = time.perf_counter()
    result = "ok"
    try:
        yield
    except Exception:
        result = "error"
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        PROVIDER_LATENCY_MS.labels(provider=provider, operation=operation).observe(elapsed_ms)
        PROVIDER_REQUESTS_TOTAL.labels(provider=provider, operation=operation, result=result).inc()
