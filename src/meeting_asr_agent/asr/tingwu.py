"""
Адаптер Aliyun Tingwu (OpenAPI v2, подпись ACS3-HMAC-SHA256).

Назначение:
- PUT /openapi/tingwu/v2/tasks?type=offline — создание офлайн-задачи
- GET /openapi/tingwu/v2/tasks/{id} — статус и ссылки на документы результата
- догрузка документов Transcription / Summarization / MeetingAssistance
"""

from __future__ import annotations

from typing import Any

from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import (
    AuthError,
    ParseError,
    ValidationError,
)
from meeting_asr_agent.common.logging import get_provider_logger
from meeting_asr_agent.common.metrics import track_provider_call
from meeting_asr_agent.common.utils import text_head
from meeting_asr_agent.domain.enums import NormalizedStatus
from meeting_asr_agent.domain.models import CanonicalResult

from . import http
from .base import CreateTaskOptions, TaskStatusResult, build_canonical_result
from .signing import Acs3Signer

log = get_provider_logger()

TASKS_PATH = "/openapi/tingwu/v2/tasks"

_STATUS_MAP = {
    "ONGOING": NormalizedStatus.running,
    "QUEUEING": NormalizedStatus.running,
    "RUNNING": NormalizedStatus.running,
    "SUCCESS": NormalizedStatus.success,
    "COMPLETED": NormalizedStatus.success,
    "FAILED": NormalizedStatus.failed,
    "INVALID": NormalizedStatus.failed,
}


def map_task_status(value: Any) -> NormalizedStatus:
    """
    Нативный статус Tingwu → running/success/failed.
    Неизвестное значение считаем "ещё выполняется".
    """
    key = str(value or "").strip().upper()
    return _STATUS_MAP.get(key, NormalizedStatus.running)


def _host_of(endpoint: str) -> str:
    host = (endpoint or "").strip()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix) :]
    return host.rstrip("/")


class TingwuAdapter:
    name = "tingwu"

    def __init__(self, settings: Settings, *, signer: Acs3Signer | None = None) -> None:
        self.settings = settings
        self.app_key = (settings.tingwu_app_key or "").strip()
        self.timeout_sec = int(settings.http_timeout_sec)
        self.verbose = bool(settings.verbose_provider_logging)
        self.signer = signer or Acs3Signer(
            access_key_id=settings.aliyun_access_key_id,
            access_key_secret=settings.aliyun_access_key_secret,
            host=_host_of(settings.tingwu_endpoint),
            api_version=settings.tingwu_api_version,
        )

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------
    def _call(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> dict[str, Any]:
        # Подпись строится заново на каждый запрос (свежие nonce/timestamp)
        req = self.signer.sign(method, path, query=query, body=body)
        if self.verbose:
            log.info(
                "tingwu_request",
                extra={"payload": {"method": req.method, "url": req.url, "body": text_head(req.body.decode("utf-8"), 1000)}},
            )
        resp = http.send(
            req.method,
            req.url,
            headers=req.headers,
            data=req.body or None,
            timeout=self.timeout_sec,
            provider=self.name,
        )
        if self.verbose:
            log.info("tingwu_response", extra={"payload": {"url": req.url, "body": text_head(resp.text, 1000)}})
        return http.response_json(resp, provider=self.name)

    # -------------------------------------------------------------------------
    # Контракт ProviderAdapter
    # -------------------------------------------------------------------------
    def build_create_payload(self, file_url: str, options: CreateTaskOptions) -> dict[str, Any]:
        return {
            "AppKey": self.app_key,
            "Input": {
                "FileUrl": file_url,
                "SourceLanguage": options.language,
            },
            "Parameters": {
                "AutoChaptersEnabled": True,
                "SummarizationEnabled": options.summary_enabled,
                "MeetingAssistanceEnabled": options.key_points_enabled or options.action_items_enabled,
                "Transcription": {"DiarizationEnabled": options.role_split_enabled},
                "Transcoding": {
                    "TargetAudioFormat": "m4a",
                    "SpectrumEnabled": False,
                },
            },
        }

    def create_task(self, file_url: str, options: CreateTaskOptions) -> str:
        if not self.app_key:
            raise AuthError("Missing AppKey")
        if not file_url:
            raise ValidationError("FileUrl is required")
        self.signer.ensure_credentials()

        # Ключи сортируются: тело хэшируется в подписи
        body = http.encode_json(self.build_create_payload(file_url, options), sort_keys=True)
        with track_provider_call(self.name, "create_task"):
            data = self._call("PUT", TASKS_PATH, query={"type": "offline"}, body=body)

        data_obj = data.get("Data")
        task_id = data_obj.get("TaskId") if isinstance(data_obj, dict) else None
        if not isinstance(task_id, str) or not task_id:
            message = data.get("Message") if isinstance(data.get("Message"), str) else None
            raise ParseError(
                message or "TaskId not found in response",
                details={"provider": self.name, "code": data.get("Code")},
            )
        log.info("tingwu_create_task_ok", extra={"payload": {"remote_task_id": task_id}})
        return task_id

    def get_task_status(self, remote_task_id: str) -> TaskStatusResult:
        if not remote_task_id:
            raise ValidationError("remote_task_id is required")
        with track_provider_call(self.name, "get_task_status"):
            data = self._call("GET", f"{TASKS_PATH}/{remote_task_id}")

        data_obj = data.get("Data")
        if not isinstance(data_obj, dict) or not isinstance(data_obj.get("TaskStatus"), str):
            raise ParseError("Invalid status response", details={"provider": self.name})

        status = map_task_status(data_obj["TaskStatus"])
        message = None
        if status == NormalizedStatus.failed:
            message = str(data_obj.get("ErrorMessage") or data.get("Message") or "Task failed in cloud")
        log.info(
            "tingwu_task_status",
            extra={"payload": {"remote_task_id": remote_task_id, "status": status.value}},
        )
        return TaskStatusResult(status=status, raw=data_obj, message=message)

    def fetch_auxiliary_document(self, url: str) -> dict[str, Any]:
        # Ссылки на документы уже подписаны (OSS URL), своя подпись не нужна
        with track_provider_call(self.name, "fetch_document"):
            return http.fetch_json_document(url, timeout=self.timeout_sec, provider=self.name)

    def build_result(self, raw: dict[str, Any]) -> CanonicalResult:
        return build_canonical_result(self, raw)
