"""
ORM-модели базы данных.

Назначение:
- хранение состояния задач пайплайна
- канонический результат и сырой ответ провайдера (для аудита)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from meeting_asr_agent.domain.enums import PipelineStage, TaskStatus


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


# =============================================================================
# MEETING TASK
# =============================================================================
class MeetingTaskRecord(Base):
    """
    Задача обработки записи встречи.
    """

    __tablename__ = "meeting_tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(512), default="", nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[TaskStatus] = mapped_column(Enum(TaskStatus), nullable=False)
    failed_stage: Mapped[PipelineStage | None] = mapped_column(Enum(PipelineStage), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    local_file_path: Mapped[str] = mapped_column(Text, default="", nullable=False)
    object_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str | None] = mapped_column(String(32), nullable=True)
    remote_task_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    result: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    raw_response: Mapped[dict | None] = mapped_column(JSON, nullable=True)
