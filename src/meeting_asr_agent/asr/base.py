"""
Базовый интерфейс ASR-провайдера.

Назначение:
- единый контракт для всех провайдеров (Tingwu, Volcengine, mock)
- создание задачи, опрос статуса, загрузка вспомогательных документов
- сборка канонического результата из сырого ответа
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import NetworkError, ParseError
from meeting_asr_agent.common.logging import get_provider_logger
from meeting_asr_agent.domain.enums import NormalizedStatus
from meeting_asr_agent.domain.models import CanonicalResult
from meeting_asr_agent.processing.normalizer import auxiliary_pointers, normalize

log = get_provider_logger()


@dataclass
class CreateTaskOptions:
    language: str = "cn"
    summary_enabled: bool = True
    key_points_enabled: bool = True
    action_items_enabled: bool = True
    role_split_enabled: bool = True

    @classmethod
    def from_settings(cls, s: Settings) -> CreateTaskOptions:
        return cls(
            language=s.asr_language,
            summary_enabled=s.enable_summary,
            key_points_enabled=s.enable_key_points,
            action_items_enabled=s.enable_action_items,
            role_split_enabled=s.enable_role_split,
        )


@dataclass
class TaskStatusResult:
    status: NormalizedStatus
    raw: dict[str, Any] | None = None
    message: str | None = None


class ProviderAdapter(Protocol):
    name: str

    def create_task(self, file_url: str, options: CreateTaskOptions) -> str:
        """Создать удалённую задачу и вернуть её id."""
        ...

    def get_task_status(self, remote_task_id: str) -> TaskStatusResult:
        """Один запрос статуса удалённой задачи."""
        ...

    def fetch_auxiliary_document(self, url: str) -> dict[str, Any]:
        """Загрузить вспомогательный JSON-документ по ссылке из результата."""
        ...

    def build_result(self, raw: dict[str, Any]) -> CanonicalResult:
        """Собрать CanonicalResult из сырого ответа (с догрузкой документов)."""
        ...


def build_canonical_result(adapter: ProviderAdapter, raw: dict[str, Any]) -> CanonicalResult:
    """
    Догружает вспомогательные документы по ссылкам из результата и нормализует.
    Недоступный документ = "нет данных" (пишем warning и идём дальше).
    """
    documents: dict[str, Any] = {}
    for kind, url in auxiliary_pointers(raw).items():
        try:
            documents[kind] = adapter.fetch_auxiliary_document(url)
        except (NetworkError, ParseError) as e:
            log.warning(
                "asr_document_fetch_failed",
                extra={"payload": {"provider": adapter.name, "kind": kind, "err": str(e)[:300]}},
            )
    return normalize(raw, documents)
