"""
Машина состояний пайплайна обработки встречи.

Назначение:
- централизованные правила переходов (recorded → ... → completed)
- guard-проверки: какая стадия может стартовать из текущего статуса
- точка возобновления после failed (ретрай продолжает с упавшей стадии)
"""

from __future__ import annotations

from dataclasses import dataclass

from .enums import PipelineStage, TaskStatus


# =============================================================================
# ТАБЛИЦА СТАДИЙ
# =============================================================================
@dataclass(frozen=True)
class StageRule:
    stage: PipelineStage
    entry: TaskStatus
    in_flight: TaskStatus
    success: TaskStatus


_RULES: dict[PipelineStage, StageRule] = {
    PipelineStage.transcode: StageRule(
        PipelineStage.transcode, TaskStatus.recorded, TaskStatus.transcoding, TaskStatus.transcoded
    ),
    PipelineStage.upload: StageRule(
        PipelineStage.upload, TaskStatus.transcoded, TaskStatus.uploading, TaskStatus.uploaded
    ),
    PipelineStage.submit: StageRule(
        PipelineStage.submit, TaskStatus.uploaded, TaskStatus.submitting, TaskStatus.polling
    ),
    # poll не имеет отдельного статуса "в процессе": пока задача бежит, остаётся polling
    PipelineStage.poll: StageRule(
        PipelineStage.poll, TaskStatus.polling, TaskStatus.polling, TaskStatus.completed
    ),
}

TRANSIENT_STATUSES = frozenset(
    {TaskStatus.transcoding, TaskStatus.uploading, TaskStatus.submitting}
)


def stage_order() -> list[PipelineStage]:
    return [
        PipelineStage.transcode,
        PipelineStage.upload,
        PipelineStage.submit,
        PipelineStage.poll,
    ]


def rule_for(stage: PipelineStage) -> StageRule:
    return _RULES[stage]


def stage_for_in_flight(status: TaskStatus) -> PipelineStage | None:
    """
    Стадия, которой принадлежит промежуточный статус (для восстановления после рестарта).
    """
    for rule in _RULES.values():
        if rule.in_flight == status and status in TRANSIENT_STATUSES:
            return rule.stage
    return None


# =============================================================================
# GUARD-ПРОВЕРКИ
# =============================================================================
def can_start(
    stage: PipelineStage,
    status: TaskStatus,
    *,
    failed_stage: PipelineStage | None = None,
) -> bool:
    """
    Правила:
    - стадия стартует из своего входного статуса
    - из failed — только та стадия, на которой упали
    - всё остальное — no-op (не ошибка)
    """
    if status == TaskStatus.failed:
        return failed_stage == stage
    return _RULES[stage].entry == status


def current_stage(
    status: TaskStatus,
    *,
    failed_stage: PipelineStage | None = None,
) -> PipelineStage | None:
    """
    Какую стадию можно запустить прямо сейчас (None — нечего делать).
    """
    if status == TaskStatus.failed:
        return failed_stage
    for stage in stage_order():
        if _RULES[stage].entry == status:
            return stage
    return None


def infer_failed_stage(
    *,
    remote_task_id: str | None,
    object_url: str | None,
    transcoded: bool,
) -> PipelineStage:
    """
    Точка возобновления для failed-задачи без сохранённой стадии:
    берём последний успешно полученный артефакт.
    """
    if remote_task_id:
        return PipelineStage.poll
    if object_url:
        return PipelineStage.submit
    if transcoded:
        return PipelineStage.upload
    return PipelineStage.transcode


def transition(stage: PipelineStage, *, finished: bool = True) -> TaskStatus:
    """
    Статус после успешно выполненной стадии:
    - poll с running (finished=False) → остаёмся в polling
    - иначе success-статус стадии
    Ошибка стадии сюда не попадает: её фиксирует контроллер вместе с failed_stage.
    """
    rule = _RULES[stage]
    if not finished:
        return rule.entry
    return rule.success
