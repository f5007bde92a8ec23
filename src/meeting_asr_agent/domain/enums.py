"""
Доменные перечисления (enum).

Используются во всей системе:
- статус задачи (состояние пайплайна)
- стадии пайплайна
- нормализованный статус удалённой задачи ASR
- выбор провайдера
"""

from __future__ import annotations

import enum


class TaskStatus(str, enum.Enum):
    """
    Статус задачи встречи.

    transcoding / uploading / submitting — промежуточные "в процессе" состояния,
    не являются точками возобновления.
    """

    recorded = "recorded"
    transcoding = "transcoding"
    transcoded = "transcoded"
    uploading = "uploading"
    uploaded = "uploaded"
    submitting = "submitting"
    polling = "polling"
    completed = "completed"
    failed = "failed"


class PipelineStage(str, enum.Enum):
    """
    Стадии пайплайна (каждая запускается вручную).
    """

    transcode = "transcode"
    upload = "upload"
    submit = "submit"
    poll = "poll"


class NormalizedStatus(str, enum.Enum):
    """
    Статус удалённой задачи, сведённый к трём значениям.
    """

    running = "running"
    success = "success"
    failed = "failed"


class AsrProvider(str, enum.Enum):
    tingwu = "tingwu"
    volcengine = "volcengine"
    mock = "mock"
