from __future__ import annotations

from typing import Any

from meeting_asr_agent.asr.base import CreateTaskOptions, TaskStatusResult, build_canonical_result
from meeting_asr_agent.common.errors import NetworkError
from meeting_asr_agent.domain.enums import NormalizedStatus
from meeting_asr_agent.domain.models import CanonicalResult


class MockAdapter:
    """Заглушка ASR: предсказуемый ответ для проверки пайплайна end-to-end без сети.

    Первые `running_polls` опросов возвращают running, затем success с inline-результатом.
    """

    name = "mock"

    def __init__(self, *, running_polls: int = 1, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self.running_polls = max(0, int(running_polls))
        self.documents = dict(documents or {})
        self.created: dict[str, str] = {}
        self._polls: dict[str, int] = {}

    def create_task(self, file_url: str, options: CreateTaskOptions) -> str:
        remote_id = f"mock-{len(self.created) + 1}"
        self.created[remote_id] = file_url
        return remote_id

    def get_task_status(self, remote_task_id: str) -> TaskStatusResult:
        seen = self._polls.get(remote_task_id, 0)
        self._polls[remote_task_id] = seen + 1
        if seen < self.running_polls:
            return TaskStatusResult(status=NormalizedStatus.running)
        return TaskStatusResult(
            status=NormalizedStatus.success,
            raw={
                "TaskId": remote_task_id,
                "TaskStatus": "SUCCESS",
                "Result": {
                    "Sentences": [
                        {"SpeakerId": 1, "Text": f"mock transcript for {self.created.get(remote_task_id, '')}"},
                    ],
                    "Summarization": {"Headline": "Mock meeting", "Summary": "Mock summary"},
                },
            },
        )

    def fetch_auxiliary_document(self, url: str) -> dict[str, Any]:
        if url not in self.documents:
            raise NetworkError(f"Document not found: {url}")
        return self.documents[url]

    def build_result(self, raw: dict[str, Any]) -> CanonicalResult:
        return build_canonical_result(self, raw)
