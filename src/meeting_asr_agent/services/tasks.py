"""
Создание задач и сборка контроллера.

- new_task: запись закончилась — задача в статусе recorded
- import_audio: внешний файл копируется в RECORDS_DIR под новым UUID
- build_controller: точка сборки PipelineController из настроек
"""

from __future__ import annotations

import shutil
from pathlib import Path

from meeting_asr_agent.asr.factory import build_provider
from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import NotFoundError, ValidationError
from meeting_asr_agent.common.ids import new_uuid
from meeting_asr_agent.common.logging import get_project_logger
from meeting_asr_agent.domain.models import MeetingTask
from meeting_asr_agent.media.transcoder import FfmpegTranscoder
from meeting_asr_agent.storage.blob import build_uploader
from meeting_asr_agent.storage.db import create_db_engine
from meeting_asr_agent.storage.repositories import SqlTaskStore, TaskStore

from .pipeline_controller import PipelineController

log = get_project_logger()


def new_task(local_file_path: str, *, store: TaskStore, title: str | None = None) -> MeetingTask:
    task = MeetingTask(
        local_file_path=str(local_file_path),
        title=title or Path(local_file_path).stem,
    )
    store.save(task)
    log.info("task_created", extra={"payload": {"task_id": task.id, "path": task.local_file_path}})
    return task


def import_audio(source: str | Path, *, settings: Settings, store: TaskStore) -> MeetingTask:
    src = Path(source)
    if not src.is_file():
        raise ValidationError(f"File not found: {source}")

    task_id = new_uuid()
    recordings = Path(settings.records_dir).resolve() / task_id
    recordings.mkdir(parents=True, exist_ok=True)
    destination = recordings / f"source{src.suffix.lower()}"
    shutil.copyfile(src, destination)

    task = MeetingTask(id=task_id, local_file_path=str(destination), title=src.stem)
    store.save(task)
    log.info(
        "task_imported",
        extra={"payload": {"task_id": task.id, "source": str(src), "path": str(destination)}},
    )
    return task


def open_store(settings: Settings) -> SqlTaskStore:
    return SqlTaskStore(create_db_engine(settings.database_dsn))


def load_task(store: TaskStore, task_id: str) -> MeetingTask:
    task = store.get(task_id)
    if task is None:
        raise NotFoundError(f"Task not found: {task_id}")
    return task


def build_controller(task: MeetingTask, *, settings: Settings, store: TaskStore) -> PipelineController:
    # Опрос идёт через того провайдера, который создал удалённую задачу
    provider = build_provider(settings, task.provider)
    return PipelineController(
        task,
        settings=settings,
        store=store,
        provider=provider,
        transcoder=FfmpegTranscoder(settings),
        uploader=build_uploader(settings),
    )
