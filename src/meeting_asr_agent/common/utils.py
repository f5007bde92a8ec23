"""
Общие утилиты проекта.

Правила:
- сюда кладём только реально общие функции
- без бизнес-логики
"""

from __future__ import annotations

import hashlib
import hmac


def sha256_hex(data: bytes) -> str:
    """
    SHA256 (hex). Для пустых данных — хэш пустой строки.
    """
    return hashlib.sha256(data or b"").hexdigest()


def hmac_sha256_hex(key: str, message: str) -> str:
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def text_head(text: str | None, max_len: int = 500) -> str:
    value = (text or "").strip().replace("\n", " ")
    if len(value) > max_len:
        return value[:max_len] + "..."
    return value
