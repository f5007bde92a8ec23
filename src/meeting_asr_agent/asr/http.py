"""
HTTP-транспорт для ASR-провайдеров (requests).

- единое превращение транспортных ошибок и HTTP не-2xx в NetworkError
- тело ответа провайдера попадает в сообщение ошибки
- таймаут задаёт транспорт, отдельного состояния "timeout" нет
"""

from __future__ import annotations

import json
from typing import Any

import requests

from meeting_asr_agent.common.errors import NetworkError, ParseError
from meeting_asr_agent.common.logging import get_provider_logger
from meeting_asr_agent.common.utils import text_head

log = get_provider_logger()


def send(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    data: bytes | None = None,
    timeout: float = 30,
    provider: str = "asr",
) -> requests.Response:
    method_u = method.upper()
    try:
        resp = requests.request(
            method=method_u,
            url=url,
            headers=headers or {},
            data=data,
            timeout=timeout,
        )
    except requests.RequestException as e:
        log.error(
            "asr_http_error",
            extra={"payload": {"provider": provider, "method": method_u, "url": url, "err": str(e)[:300]}},
        )
        raise NetworkError(
            f"{method_u} {url} failed: {e}",
            details={"provider": provider, "err": str(e)[:300]},
        ) from e

    if resp.status_code < 200 or resp.status_code >= 300:
        body = text_head(resp.text, 500)
        raise NetworkError(
            body or f"HTTP {resp.status_code}",
            details={"provider": provider, "status": resp.status_code, "text_head": body},
        )
    return resp


def response_json(resp: requests.Response, *, provider: str = "asr") -> dict[str, Any]:
    """
    JSON-объект из ответа. Не объект (список/строка/мусор) — ParseError.
    """
    try:
        data = resp.json()
    except ValueError as e:
        raise ParseError(
            "Invalid JSON response",
            details={"provider": provider, "text_head": text_head(resp.text, 300)},
        ) from e
    if not isinstance(data, dict):
        raise ParseError("Invalid JSON response", details={"provider": provider})
    return data


def encode_json(payload: dict[str, Any], *, sort_keys: bool = False) -> bytes:
    return json.dumps(payload, ensure_ascii=False, sort_keys=sort_keys, separators=(",", ":")).encode(
        "utf-8"
    )


def fetch_json_document(url: str, *, timeout: float = 30, provider: str = "asr") -> dict[str, Any]:
    """
    GET по публичной ссылке на вспомогательный документ (без подписи).
    """
    if not url or not url.lower().startswith(("http://", "https://")):
        raise NetworkError(f"Invalid URL: {url}", details={"provider": provider})
    resp = send("GET", url, timeout=timeout, provider=provider)
    return response_json(resp, provider=provider)
