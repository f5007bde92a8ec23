"""
Выбор ASR-провайдера по настройке ASR_PROVIDER.
"""

from __future__ import annotations

from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import ValidationError
from meeting_asr_agent.domain.enums import AsrProvider

from .base import ProviderAdapter


def build_provider(settings: Settings, name: str | None = None) -> ProviderAdapter:
    provider = (name or settings.asr_provider or "").strip().lower()

    if provider == AsrProvider.mock.value:
        from .mock import MockAdapter

        return MockAdapter(running_polls=0)
    if provider == AsrProvider.volcengine.value:
        from .volcengine import VolcengineAdapter

        return VolcengineAdapter(settings)
    if provider == AsrProvider.tingwu.value:
        from .tingwu import TingwuAdapter

        return TingwuAdapter(settings)

    raise ValidationError(f"Unsupported ASR_PROVIDER={provider}")
