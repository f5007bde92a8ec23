"""
Утилиты времени.

Назначение:
- единый формат времени (ISO UTC)
- таймстамп подписи ACS3 (секундная точность)
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Текущее время в UTC (datetime).
    """
    return datetime.now(UTC)


def acs_timestamp(moment: datetime | None = None) -> str:
    """
    ISO-8601 с точностью до секунды: 2024-01-02T03:04:05Z.
    """
    ts = (moment or utc_now()).astimezone(UTC)
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")
