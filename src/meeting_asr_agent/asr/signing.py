"""
Подпись запросов к Aliyun OpenAPI (ACS3-HMAC-SHA256).

Алгоритм:
1. x-acs-content-sha256 = sha256(body) (для пустого тела — хэш пустой строки)
2. canonical request: METHOD, path, отсортированный query, подписываемые
   заголовки "key:value" (lower-case, по алфавиту), пустая строка,
   список имён через ";", хэш тела
3. string to sign: алгоритм, timestamp, sha256(canonical request)
4. signature = hex(HMAC-SHA256(secret, string to sign))
5. Authorization: ACS3-HMAC-SHA256 Credential=..,SignedHeaders=..,Signature=..

Каждый вызов sign() получает свежие nonce и timestamp: подписанный запрос
нельзя кэшировать и переиспользовать (сервер отклоняет повтор nonce).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import quote

from meeting_asr_agent.common.errors import AuthError
from meeting_asr_agent.common.ids import new_nonce
from meeting_asr_agent.common.time import acs_timestamp, utc_now
from meeting_asr_agent.common.utils import hmac_sha256_hex, sha256_hex

ALGORITHM = "ACS3-HMAC-SHA256"
CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class SignedRequest:
    method: str
    host: str
    path: str
    query: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    signature: str = ""

    @property
    def url(self) -> str:
        base = f"https://{self.host}{self.path}"
        return f"{base}?{self.query}" if self.query else base


def _percent_encode(value: str) -> str:
    return quote(str(value), safe="-_.~")


def canonical_query(params: dict[str, str] | None) -> str:
    if not params:
        return ""
    pairs = sorted((_percent_encode(k), _percent_encode(v)) for k, v in params.items())
    return "&".join(f"{k}={v}" for k, v in pairs)


def canonical_request(
    *,
    method: str,
    path: str,
    query: str,
    signed_headers: dict[str, str],
    content_sha256: str,
) -> tuple[str, str]:
    """
    Возвращает (canonical_request, signed_header_names).
    """
    names = sorted(k.lower() for k in signed_headers)
    lowered = {k.lower(): str(v).strip() for k, v in signed_headers.items()}
    header_lines = "\n".join(f"{name}:{lowered[name]}" for name in names)
    signed_names = ";".join(names)
    canonical = "\n".join(
        [
            method.upper(),
            path or "/",
            query,
            header_lines,
            "",
            signed_names,
            content_sha256,
        ]
    )
    return canonical, signed_names


class Acs3Signer:
    def __init__(
        self,
        *,
        access_key_id: str | None,
        access_key_secret: str | None,
        host: str,
        api_version: str,
        clock: Callable[[], datetime] = utc_now,
        nonce_factory: Callable[[], str] = new_nonce,
    ) -> None:
        self.access_key_id = (access_key_id or "").strip()
        self.access_key_secret = (access_key_secret or "").strip()
        self.host = host
        self.api_version = api_version
        self._clock = clock
        self._nonce_factory = nonce_factory

    def ensure_credentials(self) -> None:
        if not self.access_key_id or not self.access_key_secret:
            raise AuthError("Missing AccessKey")

    def sign(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> SignedRequest:
        self.ensure_credentials()

        payload = body or b""
        timestamp = acs_timestamp(self._clock())
        nonce = self._nonce_factory()
        content_sha256 = sha256_hex(payload)

        signed_headers = {
            "content-type": CONTENT_TYPE,
            "host": self.host,
            "x-acs-content-sha256": content_sha256,
            "x-acs-date": timestamp,
            "x-acs-signature-method": ALGORITHM,
            "x-acs-signature-nonce": nonce,
            "x-acs-version": self.api_version,
        }
        query_str = canonical_query(query)
        canonical, signed_names = canonical_request(
            method=method,
            path=path,
            query=query_str,
            signed_headers=signed_headers,
            content_sha256=content_sha256,
        )
        string_to_sign = "\n".join([ALGORITHM, timestamp, sha256_hex(canonical.encode("utf-8"))])
        signature = hmac_sha256_hex(self.access_key_secret, string_to_sign)

        headers = {
            "Content-Type": CONTENT_TYPE,
            "Host": self.host,
            "x-acs-content-sha256": content_sha256,
            "x-acs-date": timestamp,
            "x-acs-signature-method": ALGORITHM,
            "x-acs-signature-nonce": nonce,
            "x-acs-version": self.api_version,
            "Authorization": (
                f"{ALGORITHM} Credential={self.access_key_id},"
                f"SignedHeaders={signed_names},Signature={signature}"
            ),
        }
        return SignedRequest(
            method=method.upper(),
            host=self.host,
            path=path,
            query=query_str,
            headers=headers,
            body=payload,
            signature=signature,
        )
