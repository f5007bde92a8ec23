"""
Загрузка аудио в объектное хранилище.

- Uploader: узкий контракт upload(file, key) -> публичный URL
- OssUploader: Aliyun OSS (oss2), тот же AccessKey, что и для Tingwu
- LocalBlobUploader: каталог BLOB_DIR, который уже раздаётся по BLOB_PUBLIC_BASE_URL
- ключ объекта: {prefix}{yyyy}/{MM}/{dd}/{task_id}/mixed.m4a
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import Protocol

import oss2

from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import AuthError, UploadError
from meeting_asr_agent.common.logging import get_project_logger
from meeting_asr_agent.common.utils import text_head

log = get_project_logger()


class Uploader(Protocol):
    def upload(self, file_path: str, key: str) -> str: ...


def build_object_key(prefix: str, created_at: datetime, task_id: str) -> str:
    return f"{prefix or ''}{created_at.strftime('%Y/%m/%d')}/{task_id}/mixed.m4a"


def _strip_scheme(endpoint: str) -> str:
    host = (endpoint or "").strip()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix) :]
    return host.rstrip("/")


def oss_public_url(bucket: str, endpoint: str, key: str) -> str:
    return f"https://{bucket}.{_strip_scheme(endpoint)}/{key.lstrip('/')}"


def _key_to_path(base_dir: Path, key: str) -> Path:
    # защита от path traversal
    key = key.lstrip("/")
    if not key or ".." in key.split("/"):
        raise UploadError("invalid key", details={"key": key})
    return base_dir / key


# =============================================================================
# ALIYUN OSS
# =============================================================================
class OssUploader:
    def __init__(self, settings: Settings, *, bucket: oss2.Bucket | None = None) -> None:
        self.bucket_name = (settings.oss_bucket or "").strip()
        self.endpoint = settings.oss_endpoint
        self.access_key_id = (settings.aliyun_access_key_id or "").strip()
        self.access_key_secret = (settings.aliyun_access_key_secret or "").strip()
        self._bucket = bucket

    def _client(self) -> oss2.Bucket:
        if self._bucket is None:
            if not self.access_key_id or not self.access_key_secret:
                raise AuthError("Missing AccessKey")
            if not self.bucket_name:
                raise UploadError("OSS_BUCKET is not set")
            auth = oss2.Auth(self.access_key_id, self.access_key_secret)
            self._bucket = oss2.Bucket(auth, self.endpoint, self.bucket_name)
        return self._bucket

    def upload(self, file_path: str, key: str) -> str:
        src = Path(file_path)
        if not src.is_file():
            raise UploadError(f"File not found: {file_path}")
        key = key.lstrip("/")
        bucket = self._client()
        try:
            result = bucket.put_object_from_file(key, str(src))
        except oss2.exceptions.OssError as e:
            message = getattr(e, "message", "") or getattr(e, "code", "") or str(e)
            raise UploadError(
                f"OSS upload failed: {text_head(str(message), 300)}",
                details={"key": key, "status": getattr(e, "status", None), "code": getattr(e, "code", None)},
            ) from e
        except OSError as e:
            raise UploadError(f"OSS upload failed: {e}", details={"key": key}) from e

        status = getattr(result, "status", 200)
        if status < 200 or status >= 300:
            raise UploadError(f"Upload failed with status {status}", details={"key": key, "status": status})

        url = oss_public_url(self.bucket_name, self.endpoint, key)
        log.info("oss_upload_ok", extra={"payload": {"bucket": self.bucket_name, "key": key}})
        return url


# =============================================================================
# ЛОКАЛЬНЫЙ КАТАЛОГ ЗА HTTP
# =============================================================================
class LocalBlobUploader:
    def __init__(self, settings: Settings) -> None:
        self.base_dir = Path(settings.blob_dir).resolve()
        self.public_base_url = (settings.blob_public_base_url or "").rstrip("/")

    def public_url(self, key: str) -> str:
        # провайдер ASR скачивает файл сам: нужен адрес, доступный снаружи
        if not self.public_base_url:
            raise UploadError("BLOB_PUBLIC_BASE_URL is not set", details={"key": key})
        return f"{self.public_base_url}/{key.lstrip('/')}"

    def upload(self, file_path: str, key: str) -> str:
        src = Path(file_path)
        if not src.is_file():
            raise UploadError(f"File not found: {file_path}")
        url = self.public_url(key)
        dst = _key_to_path(self.base_dir, key)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dst)
        except OSError as e:
            raise UploadError(f"Upload failed: {e}", details={"key": key}) from e
        return url


def build_uploader(settings: Settings) -> Uploader:
    """
    OSS_BUCKET задан: реальная загрузка в Aliyun OSS; иначе каталог BLOB_DIR.
    """
    if (settings.oss_bucket or "").strip():
        return OssUploader(settings)
    return LocalBlobUploader(settings)
