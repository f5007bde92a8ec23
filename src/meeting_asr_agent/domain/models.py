"""
Доменные модели.

- MeetingTask — единица работы пайплайна
- CanonicalResult — транскрипт/саммари, не зависящие от провайдера
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from meeting_asr_agent.common.errors import ValidationError
from meeting_asr_agent.common.ids import new_uuid
from meeting_asr_agent.common.time import utc_now

from .enums import PipelineStage, TaskStatus


# =============================================================================
# КАНОНИЧЕСКИЙ РЕЗУЛЬТАТ
# =============================================================================
@dataclass(frozen=True)
class Utterance:
    text: str
    speaker: str | None = None

    def render(self) -> str:
        return f"{self.speaker}: {self.text}" if self.speaker else self.text


@dataclass
class CanonicalResult:
    utterances: list[Utterance] = field(default_factory=list)
    summary_headline: str | None = None
    summary_body: str | None = None
    keywords: list[str] | None = None
    key_points: list[str] | None = None
    action_items: list[str] | None = None

    @property
    def transcript(self) -> str | None:
        lines = [u.render() for u in self.utterances]
        return "\n".join(lines) if lines else None

    @property
    def summary(self) -> str | None:
        parts = [p for p in (self.summary_headline, self.summary_body) if p]
        return "\n\n".join(parts) if parts else None

    @property
    def key_points_text(self) -> str | None:
        lines: list[str] = []
        if self.keywords:
            lines.append("Keywords: " + ", ".join(self.keywords))
        lines.extend(f"- {item}" for item in self.key_points or [])
        return "\n".join(lines) if lines else None

    @property
    def action_items_text(self) -> str | None:
        if not self.action_items:
            return None
        return "\n".join(f"- {item}" for item in self.action_items)

    def is_empty(self) -> bool:
        return not any(
            (self.utterances, self.summary, self.key_points_text, self.action_items_text)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "utterances": [{"speaker": u.speaker, "text": u.text} for u in self.utterances],
            "summary_headline": self.summary_headline,
            "summary_body": self.summary_body,
            "keywords": list(self.keywords) if self.keywords is not None else None,
            "key_points": list(self.key_points) if self.key_points is not None else None,
            "action_items": list(self.action_items) if self.action_items is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CanonicalResult:
        data = data or {}
        utterances = [
            Utterance(text=str(u.get("text") or ""), speaker=u.get("speaker"))
            for u in data.get("utterances") or []
            if isinstance(u, dict)
        ]
        return cls(
            utterances=utterances,
            summary_headline=data.get("summary_headline"),
            summary_body=data.get("summary_body"),
            keywords=data.get("keywords"),
            key_points=data.get("key_points"),
            action_items=data.get("action_items"),
        )


# =============================================================================
# ЗАДАЧА
# =============================================================================
@dataclass
class MeetingTask:
    """
    Задача обработки одной записи.

    Инварианты:
    - remote_task_id присваивается один раз (после submit)
    - object_url присваивается один раз (после upload)
    - last_error очищается при каждом успешном переходе
    """

    local_file_path: str
    title: str = ""
    id: str = field(default_factory=new_uuid)
    created_at: datetime = field(default_factory=utc_now)
    status: TaskStatus = TaskStatus.recorded
    provider: str | None = None
    remote_task_id: str | None = None
    object_url: str | None = None
    last_error: str | None = None
    failed_stage: PipelineStage | None = None
    result: CanonicalResult | None = None
    raw_response: dict[str, Any] | None = None

    def assign_remote_task_id(self, remote_task_id: str) -> None:
        if self.remote_task_id and self.remote_task_id != remote_task_id:
            raise ValidationError(
                "remote_task_id уже присвоен",
                details={"task_id": self.id, "remote_task_id": self.remote_task_id},
            )
        self.remote_task_id = remote_task_id

    def assign_object_url(self, object_url: str) -> None:
        if self.object_url and self.object_url != object_url:
            raise ValidationError(
                "object_url уже присвоен",
                details={"task_id": self.id, "object_url": self.object_url},
            )
        self.object_url = object_url

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "local_file_path": self.local_file_path,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "provider": self.provider,
            "remote_task_id": self.remote_task_id,
            "object_url": self.object_url,
            "last_error": self.last_error,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "result": self.result.to_dict() if self.result else None,
            "raw_response": self.raw_response,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MeetingTask:
        failed_stage = data.get("failed_stage")
        result = data.get("result")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            local_file_path=str(data.get("local_file_path") or ""),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            status=TaskStatus(data.get("status") or TaskStatus.recorded.value),
            provider=data.get("provider"),
            remote_task_id=data.get("remote_task_id"),
            object_url=data.get("object_url"),
            last_error=data.get("last_error"),
            failed_stage=PipelineStage(failed_stage) if failed_stage else None,
            result=CanonicalResult.from_dict(result) if isinstance(result, dict) else None,
            raw_response=data.get("raw_response"),
        )
