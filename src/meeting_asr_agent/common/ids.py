"""
Генерация идентификаторов.

Назначение:
- task_id (UUID)
- nonce для подписанных запросов (одноразовый)
"""

from __future__ import annotations

import uuid


def new_uuid() -> str:
    """UUIDv4 строкой."""
    return str(uuid.uuid4())


def new_nonce() -> str:
    """
    Одноразовое значение для x-acs-signature-nonce.
    Каждый подписанный запрос получает свой nonce.
    """
    return str(uuid.uuid4()).upper()
