"""
Централизованная конфигурация проекта (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- секреты можно передать файлом: <KEY>_FILE=/run/secrets/...
- объект Settings передаётся в конструкторы явно; get_settings() нужен только
  точкам сборки (CLI)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------
    app_env: str = Field(default="dev", alias="APP_ENV")
    service_name: str = Field(default="meeting-asr-agent", alias="SERVICE_NAME")

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    database_dsn: str = Field(default="sqlite:///./data/tasks.db", alias="DATABASE_DSN")
    records_dir: str = Field(default="./recordings", alias="RECORDS_DIR")

    # Локальное "объектное хранилище" (каталог + публичный базовый URL)
    oss_prefix: str = Field(default="wvr/", alias="OSS_PREFIX")
    oss_bucket: str = Field(default="", alias="OSS_BUCKET")
    oss_endpoint: str = Field(default="https://oss-cn-beijing.aliyuncs.com", alias="OSS_ENDPOINT")
    blob_dir: str = Field(default="./data/blobs", alias="BLOB_DIR")
    blob_public_base_url: str | None = Field(default=None, alias="BLOB_PUBLIC_BASE_URL")

    # -------------------------------------------------------------------------
    # Transcoding (ffmpeg)
    # -------------------------------------------------------------------------
    ffmpeg_bin: str = Field(default="ffmpeg", alias="FFMPEG_BIN")
    transcode_sample_rate: int = Field(default=48000, alias="TRANSCODE_SAMPLE_RATE")
    transcode_output_name: str = Field(default="mixed_48k.m4a", alias="TRANSCODE_OUTPUT_NAME")

    # -------------------------------------------------------------------------
    # ASR
    # -------------------------------------------------------------------------
    asr_provider: str = Field(default="tingwu", alias="ASR_PROVIDER")  # tingwu|volcengine|mock
    asr_language: str = Field(default="cn", alias="ASR_LANGUAGE")
    enable_summary: bool = Field(default=True, alias="ENABLE_SUMMARY")
    enable_key_points: bool = Field(default=True, alias="ENABLE_KEY_POINTS")
    enable_action_items: bool = Field(default=True, alias="ENABLE_ACTION_ITEMS")
    enable_role_split: bool = Field(default=True, alias="ENABLE_ROLE_SPLIT")
    http_timeout_sec: int = Field(default=30, alias="HTTP_TIMEOUT_SEC")
    poll_interval_sec: float = Field(default=5.0, alias="POLL_INTERVAL_SEC")
    poll_timeout_sec: int = Field(default=3600, alias="POLL_TIMEOUT_SEC")
    verbose_provider_logging: bool = Field(default=False, alias="VERBOSE_PROVIDER_LOGGING")

    # Aliyun Tingwu (подпись ACS3-HMAC-SHA256)
    aliyun_access_key_id: str | None = Field(default=None, alias="ALIYUN_ACCESS_KEY_ID")
    aliyun_access_key_secret: str | None = Field(default=None, alias="ALIYUN_ACCESS_KEY_SECRET")
    tingwu_app_key: str | None = Field(default=None, alias="TINGWU_APP_KEY")
    tingwu_endpoint: str = Field(
        default="https://tingwu.cn-beijing.aliyuncs.com", alias="TINGWU_ENDPOINT"
    )
    tingwu_api_version: str = Field(default="2023-09-30", alias="TINGWU_API_VERSION")

    # Volcengine AUC (токен в теле запроса)
    volc_app_id: str = Field(default="", alias="VOLC_APP_ID")
    volc_access_token: str | None = Field(default=None, alias="VOLC_ACCESS_TOKEN")
    volc_cluster: str = Field(default="", alias="VOLC_CLUSTER")
    volc_endpoint: str = Field(
        default="https://openspeech.bytedance.com/api/v1/auc", alias="VOLC_ENDPOINT"
    )
    volc_user_id: str = Field(default="meeting-asr-agent", alias="VOLC_USER_ID")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|text

    def model_post_init(self, __context) -> None:
        _apply_file_overrides(self)


def _apply_file_overrides(settings: Settings) -> None:
    alias_to_field = {}
    for name, field in type(settings).model_fields.items():
        alias = field.alias or name
        alias_to_field[str(alias)] = name
        alias_to_field[str(name)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        base = key[: -len("_FILE")]
        target = alias_to_field.get(base)
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except OSError as e:
            logging.getLogger("meeting-asr-agent").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        setattr(settings, target, raw.strip())


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings()
    return _SETTINGS
