"""
Адаптер Volcengine AUC (v1): токен передаётся в теле запроса.

- POST {endpoint}/submit — создание задачи, успех: resp.code == 1000
- POST {endpoint}/query — статус: 1000 готово, (1000, 2000) в работе, иначе ошибка
- code может прийти числом или строкой
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import (
    AuthError,
    ErrCode,
    ParseError,
    ProviderError,
    ValidationError,
)
from meeting_asr_agent.common.logging import get_provider_logger
from meeting_asr_agent.common.metrics import track_provider_call
from meeting_asr_agent.common.utils import text_head
from meeting_asr_agent.domain.enums import NormalizedStatus
from meeting_asr_agent.domain.models import CanonicalResult

from . import http
from .base import CreateTaskOptions, TaskStatusResult, build_canonical_result

log = get_provider_logger()

SUCCESS_CODE = 1000
_KNOWN_FORMATS = {"wav", "ogg", "mp3", "mp4"}


def parse_code(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def map_status_code(code: int | None) -> NormalizedStatus:
    if code == SUCCESS_CODE:
        return NormalizedStatus.success
    if code is not None and SUCCESS_CODE < code < 2000:
        return NormalizedStatus.running
    return NormalizedStatus.failed


def infer_audio_format(file_url: str) -> str:
    path = urlparse(file_url or "").path
    ext = path.rsplit(".", 1)[-1].lower() if "." in path.rsplit("/", 1)[-1] else ""
    return ext if ext in _KNOWN_FORMATS else "m4a"


def _flag(value: bool) -> str:
    return "True" if value else "False"


class VolcengineAdapter:
    name = "volcengine"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.base_url = (settings.volc_endpoint or "").rstrip("/")
        self.app_id = settings.volc_app_id
        self.cluster = settings.volc_cluster
        self.user_id = settings.volc_user_id
        self.access_token = (settings.volc_access_token or "").strip()
        self.timeout_sec = int(settings.http_timeout_sec)
        self.verbose = bool(settings.verbose_provider_logging)

    def _ensure_token(self) -> str:
        if not self.access_token:
            raise AuthError("Missing Volcengine access token")
        return self.access_token

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        body = http.encode_json(payload)
        if self.verbose:
            log.info("volcengine_request", extra={"payload": {"url": url}})
        resp = http.send(
            "POST",
            url,
            headers={"Content-Type": "application/json"},
            data=body,
            timeout=self.timeout_sec,
            provider=self.name,
        )
        if self.verbose:
            log.info("volcengine_response", extra={"payload": {"url": url, "body": text_head(resp.text, 1000)}})
        data = http.response_json(resp, provider=self.name)
        inner = data.get("resp")
        if not isinstance(inner, dict):
            raise ParseError("Invalid JSON response", details={"provider": self.name})
        return inner

    # -------------------------------------------------------------------------
    # Контракт ProviderAdapter
    # -------------------------------------------------------------------------
    def build_submit_payload(self, file_url: str, options: CreateTaskOptions) -> dict[str, Any]:
        return {
            "app": {
                "appid": self.app_id,
                "token": self._ensure_token(),
                "cluster": self.cluster,
            },
            "user": {"uid": self.user_id},
            "audio": {
                "url": file_url,
                "format": infer_audio_format(file_url),
            },
            "additions": {
                "with_speaker_info": _flag(options.role_split_enabled),
                "use_itn": "True",
                "use_punc": "True",
            },
        }

    def create_task(self, file_url: str, options: CreateTaskOptions) -> str:
        self._ensure_token()
        if not file_url:
            raise ValidationError("audio url is required")

        with track_provider_call(self.name, "create_task"):
            resp = self._post("/submit", self.build_submit_payload(file_url, options))

        code = parse_code(resp.get("code"))
        if code != SUCCESS_CODE:
            message = str(resp.get("message") or "Unknown error")
            raise ProviderError(
                ErrCode.ASR_PROVIDER_ERROR,
                f"Volcengine Error {resp.get('code')}: {message}",
                details={"provider": self.name, "code": resp.get("code")},
            )

        task_id = resp.get("id")
        if not isinstance(task_id, str) or not task_id:
            raise ParseError("Task ID not found in response", details={"provider": self.name})
        log.info("volcengine_create_task_ok", extra={"payload": {"remote_task_id": task_id}})
        return task_id

    def get_task_status(self, remote_task_id: str) -> TaskStatusResult:
        if not remote_task_id:
            raise ValidationError("remote_task_id is required")
        payload = {
            "appid": self.app_id,
            "token": self._ensure_token(),
            "cluster": self.cluster,
            "id": remote_task_id,
        }
        with track_provider_call(self.name, "get_task_status"):
            resp = self._post("/query", payload)

        code = parse_code(resp.get("code"))
        status = map_status_code(code)
        log.info(
            "volcengine_task_status",
            extra={"payload": {"remote_task_id": remote_task_id, "code": code, "status": status.value}},
        )
        if status == NormalizedStatus.success:
            return TaskStatusResult(status=status, raw=resp)
        if status == NormalizedStatus.running:
            return TaskStatusResult(status=status, raw=None)

        message = str(resp.get("message") or "Unknown")
        return TaskStatusResult(
            status=status,
            raw={"Message": message, "Code": str(resp.get("code"))},
            message=f"Volcengine Error {resp.get('code')}: {message}",
        )

    def fetch_auxiliary_document(self, url: str) -> dict[str, Any]:
        with track_provider_call(self.name, "fetch_document"):
            return http.fetch_json_document(url, timeout=self.timeout_sec, provider=self.name)

    def build_result(self, raw: dict[str, Any]) -> CanonicalResult:
        return build_canonical_result(self, raw)
