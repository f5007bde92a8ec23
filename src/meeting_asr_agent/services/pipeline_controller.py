"""
Контроллер пайплайна одной задачи: transcode → upload → submit → poll.

Правила:
- каждая стадия запускается вручную, автоматического перехода к следующей нет
- стадия, чей guard не совпал со статусом, — no-op (задача не меняется)
- каждый переход сохраняется в хранилище до возврата из операции
- ошибки провайдера/сети/коллабораторов превращаются в переход в failed с
  текстом в last_error; наружу исключение не выходит
- failed помнит стадию (failed_stage): ретрай продолжает с неё, а не с начала
- is_processing — флаг "занято"; контроллер не блокирует параллельные вызовы,
  вызывающая сторона сама сериализует операции по задаче
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from meeting_asr_agent.asr.base import CreateTaskOptions, ProviderAdapter
from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import AppError, RemoteTaskFailure, ValidationError
from meeting_asr_agent.common.logging import get_project_logger
from meeting_asr_agent.common.metrics import record_transition, track_stage_latency
from meeting_asr_agent.domain.enums import NormalizedStatus, PipelineStage, TaskStatus
from meeting_asr_agent.domain.models import MeetingTask
from meeting_asr_agent.domain.state_machine import (
    TRANSIENT_STATUSES,
    can_start,
    current_stage,
    infer_failed_stage,
    rule_for,
    stage_for_in_flight,
    transition,
)
from meeting_asr_agent.media.transcoder import Transcoder
from meeting_asr_agent.storage import records
from meeting_asr_agent.storage.blob import Uploader, build_object_key
from meeting_asr_agent.storage.repositories import TaskStore

log = get_project_logger()


class PipelineController:
    def __init__(
        self,
        task: MeetingTask,
        *,
        settings: Settings,
        store: TaskStore,
        provider: ProviderAdapter,
        transcoder: Transcoder,
        uploader: Uploader,
        options: CreateTaskOptions | None = None,
    ) -> None:
        self.task = task
        self.settings = settings
        self.store = store
        self.provider = provider
        self.transcoder = transcoder
        self.uploader = uploader
        self.options = options or CreateTaskOptions.from_settings(settings)
        self.is_processing = False

    # =========================================================================
    # ОПЕРАЦИИ СТАДИЙ
    # =========================================================================
    def transcode(self) -> MeetingTask:
        return self._run(PipelineStage.transcode, self._do_transcode)

    def upload(self) -> MeetingTask:
        return self._run(PipelineStage.upload, self._do_upload)

    def submit(self) -> MeetingTask:
        return self._run(PipelineStage.submit, self._do_submit)

    def poll(self) -> MeetingTask:
        return self._run(PipelineStage.poll, self._do_poll)

    def advance(self) -> MeetingTask:
        """
        Запускает ровно одну стадию, доступную из текущего статуса.
        """
        if self.task.status == TaskStatus.failed:
            return self.retry()
        stage = current_stage(self.task.status)
        if stage is None:
            return self.task
        return self._operation(stage)()

    def retry(self) -> MeetingTask:
        """
        Повтор упавшей стадии. Для не-failed задачи — no-op.
        """
        if self.task.status != TaskStatus.failed:
            return self.task
        stage = self._resume_stage()
        if self.task.failed_stage is None:
            self.task.failed_stage = stage
        return self._operation(stage)()

    def recover(self) -> MeetingTask:
        """
        Задача, найденная в промежуточном статусе (процесс упал посреди стадии),
        переводится в failed с точкой возобновления на этой стадии.
        """
        if self.task.status not in TRANSIENT_STATUSES:
            return self.task
        stage = stage_for_in_flight(self.task.status)
        self._fail(stage, f"Interrupted during {stage.value}" if stage else "Interrupted")
        return self.task

    # =========================================================================
    # РЕАЛИЗАЦИЯ СТАДИЙ
    # =========================================================================
    def _do_transcode(self) -> bool:
        output = self.transcoder.transcode(self.task.local_file_path)
        self.task.local_file_path = output
        return True

    def _do_upload(self) -> bool:
        key = build_object_key(self.settings.oss_prefix, self.task.created_at, self.task.id)
        url = self.uploader.upload(self.task.local_file_path, key)
        self.task.assign_object_url(url)
        return True

    def _do_submit(self) -> bool:
        if not self.task.object_url:
            raise ValidationError("object_url is not set")
        remote_task_id = self.provider.create_task(self.task.object_url, self.options)
        self.task.assign_remote_task_id(remote_task_id)
        self.task.provider = self.provider.name
        return True

    def _do_poll(self) -> bool:
        if not self.task.remote_task_id:
            raise ValidationError("remote_task_id is not set")
        status = self.provider.get_task_status(self.task.remote_task_id)

        if status.status == NormalizedStatus.running:
            return False
        if status.status == NormalizedStatus.failed:
            if status.raw is not None:
                self.task.raw_response = status.raw
            raise RemoteTaskFailure(status.message or "Task failed in cloud")

        raw = status.raw or {}
        self.task.raw_response = raw
        self.task.result = self.provider.build_result(raw)
        self._write_result_artifacts()
        return True

    def _write_result_artifacts(self) -> None:
        root = self.settings.records_dir
        if not root:
            return
        records.write_json(root, self.task.id, "raw_response.json", self.task.raw_response or {})
        if self.task.result is not None:
            records.write_json(root, self.task.id, "result.json", self.task.result.to_dict())

    # =========================================================================
    # ОБЩИЙ ЦИКЛ СТАДИИ
    # =========================================================================
    def _operation(self, stage: PipelineStage) -> Callable[[], MeetingTask]:
        return {
            PipelineStage.transcode: self.transcode,
            PipelineStage.upload: self.upload,
            PipelineStage.submit: self.submit,
            PipelineStage.poll: self.poll,
        }[stage]

    def _resume_stage(self) -> PipelineStage | None:
        if self.task.status != TaskStatus.failed:
            return None
        if self.task.failed_stage is not None:
            return self.task.failed_stage
        return infer_failed_stage(
            remote_task_id=self.task.remote_task_id,
            object_url=self.task.object_url,
            transcoded=Path(self.task.local_file_path).name == self.settings.transcode_output_name,
        )

    def _run(self, stage: PipelineStage, action: Callable[[], bool]) -> MeetingTask:
        if not can_start(stage, self.task.status, failed_stage=self.task.failed_stage):
            log.info(
                "pipeline_stage_noop",
                extra={"payload": {"task_id": self.task.id, "stage": stage.value, "status": self.task.status.value}},
            )
            record_transition(stage.value, "noop")
            return self.task

        self.is_processing = True
        try:
            with track_stage_latency(stage.value):
                self._mark_in_flight(stage)
                try:
                    finished = action()
                except AppError as e:
                    self._fail(stage, e.message, err_code=e.code)
                    return self.task
                except Exception as e:
                    log.exception(
                        "pipeline_stage_unexpected_error",
                        extra={"payload": {"task_id": self.task.id, "stage": stage.value}},
                    )
                    self._fail(stage, str(e) or e.__class__.__name__)
                    return self.task

                if not finished:
                    record_transition(stage.value, "running")
                    return self.task
                self._set_status(transition(stage), stage=stage)
                record_transition(stage.value, "ok")
                return self.task
        finally:
            self.is_processing = False

    def _mark_in_flight(self, stage: PipelineStage) -> None:
        in_flight = rule_for(stage).in_flight
        if self.task.status == in_flight:
            return
        self._set_status(in_flight, stage=stage)

    def _set_status(self, status: TaskStatus, *, stage: PipelineStage) -> None:
        previous = self.task.status
        self.task.status = status
        self.task.last_error = None
        self.task.failed_stage = None
        self.store.save(self.task)
        log.info(
            "pipeline_transition",
            extra={
                "payload": {
                    "task_id": self.task.id,
                    "stage": stage.value,
                    "from": previous.value,
                    "to": status.value,
                }
            },
        )

    def _fail(self, stage: PipelineStage | None, message: str, *, err_code: str | None = None) -> None:
        previous = self.task.status
        self.task.status = TaskStatus.failed
        self.task.failed_stage = stage
        self.task.last_error = message
        self.store.save(self.task)
        if stage is not None:
            record_transition(stage.value, "failed")
        log.warning(
            "pipeline_stage_failed",
            extra={
                "payload": {
                    "task_id": self.task.id,
                    "stage": stage.value if stage else None,
                    "from": previous.value,
                    "err_code": err_code,
                    "error": message[:300],
                }
            },
        )
