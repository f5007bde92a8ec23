"""
Логирование проекта.

- логирование в stdout
- JSON по умолчанию, text через LOG_FORMAT=text
- структурные поля передаются через extra={"payload": {...}}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from meeting_asr_agent.common.config import Settings, get_settings


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str = "meeting-asr-agent") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "msg": record.getMessage(),
        }
        extra_payload = getattr(record, "payload", None)
        if isinstance(extra_payload, dict):
            payload["payload"] = extra_payload
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_formatter(s: Settings) -> logging.Formatter:
    if (s.log_format or "").lower() == "text":
        return logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return JsonFormatter(service=s.service_name)


def setup_logging(settings: Settings | None = None) -> None:
    s = settings or get_settings()
    root = logging.getLogger()
    level = getattr(logging, (s.log_level or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    # Не плодим хэндлеры при повторном вызове
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(s))
    root.addHandler(handler)

    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))


def get_project_logger(name: str = "meeting-asr-agent") -> logging.Logger:
    return logging.getLogger(name)


def get_provider_logger() -> logging.Logger:
    """
    Отдельный логгер для обмена с ASR-провайдерами (удобно фильтровать).
    """
    return logging.getLogger("meeting-asr-agent.asr")
