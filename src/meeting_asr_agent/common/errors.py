"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для стадий пайплайна и логов
- единый стиль исключений по проекту
- стадии пайплайна превращают любую AppError в переход в failed
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    # Провайдеры ASR
    NETWORK_ERROR = "network_error"
    ASR_PROVIDER_ERROR = "asr_provider_error"
    REMOTE_TASK_FAILED = "remote_task_failed"
    PARSE_ERROR = "parse_error"

    # Внешние коллабораторы
    TRANSCODE_ERROR = "transcode_error"
    UPLOAD_ERROR = "upload_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение (уходит в task.last_error)
    - details: доп. данные (без секретов)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class AuthError(AppError):
    """Нет или неверные учётные данные. Автоматически не ретраится."""

    def __init__(self, message: str = "Не заданы учётные данные", details: dict | None = None) -> None:
        super().__init__(ErrCode.UNAUTHORIZED, message, details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Не найдено", details: dict | None = None) -> None:
        super().__init__(ErrCode.NOT_FOUND, message, details)


class NetworkError(AppError):
    """Транспортная ошибка или HTTP не-2xx (тело ответа провайдера в details)."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.NETWORK_ERROR, message, details)


class RemoteTaskFailure(AppError):
    """Провайдер сообщил, что обработка задачи завершилась ошибкой."""

    def __init__(self, message: str = "Task failed in cloud", details: dict | None = None) -> None:
        super().__init__(ErrCode.REMOTE_TASK_FAILED, message, details)


class ParseError(AppError):
    """Неожиданная форма JSON. Нормализатор наружу её не пропускает."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.PARSE_ERROR, message, details)


class ProviderError(AppError):
    def __init__(self, code: str, message: str, details: dict | None = None) -> None:
        super().__init__(code, message, details)


class TranscodeError(AppError):
    def __init__(self, message: str = "Transcode failed", details: dict | None = None) -> None:
        super().__init__(ErrCode.TRANSCODE_ERROR, message, details)


class UploadError(AppError):
    def __init__(self, message: str = "Upload failed", details: dict | None = None) -> None:
        super().__init__(ErrCode.UPLOAD_ERROR, message, details)
