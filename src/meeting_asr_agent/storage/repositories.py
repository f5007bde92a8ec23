"""
Репозитории (DAO слой) и хранилище задач.

Правила:
- репозиторий: только CRUD и запросы, без бизнес-логики
- SqlTaskStore: сессия на вызов, поэтому разные задачи можно писать параллельно
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import desc
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from meeting_asr_agent.common.time import utc_now
from meeting_asr_agent.domain.models import CanonicalResult, MeetingTask

from .db import db_session, init_db, make_session_factory
from .models import MeetingTaskRecord


# =============================================================================
# КОНТРАКТ ХРАНИЛИЩА
# =============================================================================
class TaskStore(Protocol):
    def save(self, task: MeetingTask) -> None: ...

    def get(self, task_id: str) -> MeetingTask | None: ...

    def list_recent(self, *, limit: int = 50) -> list[MeetingTask]: ...


# =============================================================================
# MEETING TASK REPOSITORY
# =============================================================================
class MeetingTaskRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, task_id: str) -> MeetingTaskRecord | None:
        return self.session.get(MeetingTaskRecord, task_id)

    def save(self, record: MeetingTaskRecord) -> None:
        self.session.merge(record)

    def list_recent(self, *, limit: int = 50) -> list[MeetingTaskRecord]:
        return (
            self.session.query(MeetingTaskRecord)
            .order_by(desc(MeetingTaskRecord.created_at))
            .limit(max(1, min(limit, 500)))
            .all()
        )


# =============================================================================
# МАППИНГ
# =============================================================================
def _aware(value: datetime) -> datetime:
    # SQLite не хранит tzinfo
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def to_record(task: MeetingTask) -> MeetingTaskRecord:
    return MeetingTaskRecord(
        id=task.id,
        title=task.title,
        created_at=task.created_at,
        updated_at=utc_now(),
        status=task.status,
        failed_stage=task.failed_stage,
        last_error=task.last_error,
        local_file_path=task.local_file_path,
        object_url=task.object_url,
        provider=task.provider,
        remote_task_id=task.remote_task_id,
        result=task.result.to_dict() if task.result else None,
        raw_response=task.raw_response,
    )


def from_record(record: MeetingTaskRecord) -> MeetingTask:
    return MeetingTask(
        id=record.id,
        title=record.title,
        local_file_path=record.local_file_path,
        created_at=_aware(record.created_at),
        status=record.status,
        provider=record.provider,
        remote_task_id=record.remote_task_id,
        object_url=record.object_url,
        last_error=record.last_error,
        failed_stage=record.failed_stage,
        result=CanonicalResult.from_dict(record.result) if record.result else None,
        raw_response=record.raw_response,
    )


# =============================================================================
# SQL-ХРАНИЛИЩЕ
# =============================================================================
class SqlTaskStore:
    def __init__(self, engine: Engine, *, create_schema: bool = True) -> None:
        self.engine = engine
        self._factory = make_session_factory(engine)
        if create_schema:
            init_db(engine)

    def save(self, task: MeetingTask) -> None:
        with db_session(self._factory) as session:
            MeetingTaskRepository(session).save(to_record(task))

    def get(self, task_id: str) -> MeetingTask | None:
        with db_session(self._factory) as session:
            record = MeetingTaskRepository(session).get(task_id)
            return from_record(record) if record else None

    def list_recent(self, *, limit: int = 50) -> list[MeetingTask]:
        with db_session(self._factory) as session:
            return [from_record(r) for r in MeetingTaskRepository(session).list_recent(limit=limit)]
