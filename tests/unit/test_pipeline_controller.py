from __future__ import annotations

from pathlib import Path

from meeting_asr_agent.asr.base import TaskStatusResult, build_canonical_result
from meeting_asr_agent.asr.mock import MockAdapter
from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import NetworkError, TranscodeError
from meeting_asr_agent.domain.enums import NormalizedStatus, PipelineStage, TaskStatus
from meeting_asr_agent.domain.models import CanonicalResult, MeetingTask, Utterance
from meeting_asr_agent.services.pipeline_controller import PipelineController


class _FakeStore:
    def __init__(self) -> None:
        self.tasks: dict[str, dict] = {}
        self.saved_statuses: list[str] = []

    def save(self, task: MeetingTask) -> None:
        self.tasks[task.id] = task.to_dict()
        self.saved_statuses.append(task.status.value)

    def get(self, task_id: str) -> MeetingTask | None:
        data = self.tasks.get(task_id)
        return MeetingTask.from_dict(data) if data else None

    def list_recent(self, *, limit: int = 50) -> list[MeetingTask]:
        return [MeetingTask.from_dict(d) for d in list(self.tasks.values())[:limit]]


class _FakeTranscoder:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0
        self.busy_seen: list[bool] = []
        self.controller: PipelineController | None = None

    def transcode(self, input_path: str) -> str:
        self.calls += 1
        if self.controller is not None:
            self.busy_seen.append(self.controller.is_processing)
        if self.error is not None:
            raise self.error
        return str(Path(input_path).with_name("mixed_48k.m4a"))


class _FakeUploader:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.keys: list[str] = []

    def upload(self, file_path: str, key: str) -> str:
        if self.error is not None:
            raise self.error
        self.keys.append(key)
        return f"https://blob.example/{key}"


class _ScriptedProvider:
    name = "scripted"

    def __init__(self, statuses: list) -> None:
        self.statuses = list(statuses)
        self.created = 0
        self.polls = 0

    def create_task(self, file_url, options) -> str:
        self.created += 1
        return "remote-1"

    def get_task_status(self, remote_task_id: str) -> TaskStatusResult:
        self.polls += 1
        item = self.statuses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def fetch_auxiliary_document(self, url: str) -> dict:
        raise NetworkError("unreachable")

    def build_result(self, raw: dict):
        return build_canonical_result(self, raw)


def _controller(
    tmp_path: Path,
    *,
    task: MeetingTask | None = None,
    provider=None,
    transcoder=None,
    uploader=None,
    store=None,
) -> PipelineController:
    settings = Settings(records_dir=str(tmp_path / "records"), oss_prefix="wvr/")
    return PipelineController(
        task or MeetingTask(local_file_path=str(tmp_path / "source.wav"), title="Demo"),
        settings=settings,
        store=store or _FakeStore(),
        provider=provider or MockAdapter(running_polls=1),
        transcoder=transcoder or _FakeTranscoder(),
        uploader=uploader or _FakeUploader(),
    )


def test_full_pipeline_with_mock_provider(tmp_path: Path) -> None:
    store = _FakeStore()
    c = _controller(tmp_path, store=store)

    assert c.transcode().status == TaskStatus.transcoded
    assert c.task.local_file_path.endswith("mixed_48k.m4a")

    assert c.upload().status == TaskStatus.uploaded
    assert c.task.object_url.startswith("https://blob.example/wvr/")
    assert c.task.object_url.endswith(f"/{c.task.id}/mixed.m4a")

    assert c.submit().status == TaskStatus.polling
    assert c.task.remote_task_id == "mock-1"
    assert c.task.provider == "mock"

    assert c.poll().status == TaskStatus.polling
    assert c.is_processing is False

    task = c.poll()
    assert task.status == TaskStatus.completed
    assert task.result is not None
    assert task.result.transcript == f"Speaker 1: mock transcript for {task.object_url}"
    assert task.result.summary == "Mock meeting\n\nMock summary"
    assert task.last_error is None

    assert store.tasks[task.id]["status"] == "completed"
    assert (tmp_path / "records" / task.id / "raw_response.json").exists()
    assert (tmp_path / "records" / task.id / "result.json").exists()


def test_transitions_are_persisted_in_order(tmp_path: Path) -> None:
    store = _FakeStore()
    c = _controller(tmp_path, store=store)
    c.transcode()
    c.upload()
    c.submit()
    assert store.saved_statuses == [
        "transcoding",
        "transcoded",
        "uploading",
        "uploaded",
        "submitting",
        "polling",
    ]


def test_guard_mismatch_is_noop(tmp_path: Path) -> None:
    store = _FakeStore()
    uploader = _FakeUploader()
    c = _controller(tmp_path, store=store, uploader=uploader)

    task = c.upload()
    assert task.status == TaskStatus.recorded
    assert c.poll().status == TaskStatus.recorded
    assert uploader.keys == []
    assert store.saved_statuses == []


def test_busy_flag_set_during_stage_and_cleared_after(tmp_path: Path) -> None:
    transcoder = _FakeTranscoder()
    c = _controller(tmp_path, transcoder=transcoder)
    transcoder.controller = c

    c.transcode()

    assert transcoder.busy_seen == [True]
    assert c.is_processing is False


def test_transcode_failure_then_retry(tmp_path: Path) -> None:
    transcoder = _FakeTranscoder(error=TranscodeError("ffmpeg exploded"))
    c = _controller(tmp_path, transcoder=transcoder)

    task = c.transcode()
    assert task.status == TaskStatus.failed
    assert task.failed_stage == PipelineStage.transcode
    assert task.last_error == "ffmpeg exploded"
    assert c.is_processing is False

    # из failed можно стартовать только упавшую стадию
    assert c.upload().status == TaskStatus.failed

    transcoder.error = None
    task = c.retry()
    assert task.status == TaskStatus.transcoded
    assert task.last_error is None
    assert task.failed_stage is None


def test_unexpected_exception_becomes_failure(tmp_path: Path) -> None:
    c = _controller(tmp_path, uploader=_FakeUploader(error=RuntimeError("disk gone")))
    c.transcode()

    task = c.upload()

    assert task.status == TaskStatus.failed
    assert task.failed_stage == PipelineStage.upload
    assert task.last_error == "disk gone"


def test_failed_poll_resumes_at_poll_without_resubmitting(tmp_path: Path) -> None:
    provider = _ScriptedProvider(
        [
            TaskStatusResult(status=NormalizedStatus.failed, raw={"Message": "bad"}, message="Task failed in cloud"),
            TaskStatusResult(status=NormalizedStatus.running),
            TaskStatusResult(status=NormalizedStatus.success, raw={"Result": {"Text": "done"}}),
        ]
    )
    uploader = _FakeUploader()
    c = _controller(tmp_path, provider=provider, uploader=uploader)
    c.transcode()
    c.upload()
    c.submit()

    task = c.poll()
    assert task.status == TaskStatus.failed
    assert task.failed_stage == PipelineStage.poll
    assert task.last_error == "Task failed in cloud"
    assert task.remote_task_id == "remote-1"
    assert task.raw_response == {"Message": "bad"}

    assert c.retry().status == TaskStatus.polling
    task = c.advance()
    assert task.status == TaskStatus.completed
    assert task.result.transcript == "done"

    assert provider.created == 1
    assert len(uploader.keys) == 1
    assert provider.polls == 3


def test_network_error_on_submit_then_retry(tmp_path: Path) -> None:
    class _FlakyProvider(_ScriptedProvider):
        def create_task(self, file_url, options) -> str:
            self.created += 1
            if self.created == 1:
                raise NetworkError("HTTP 503")
            return "remote-2"

    provider = _FlakyProvider([])
    c = _controller(tmp_path, provider=provider)
    c.transcode()
    c.upload()

    task = c.submit()
    assert task.status == TaskStatus.failed
    assert task.failed_stage == PipelineStage.submit
    assert task.remote_task_id is None

    task = c.retry()
    assert task.status == TaskStatus.polling
    assert task.remote_task_id == "remote-2"


def test_poll_success_with_empty_result_completes(tmp_path: Path) -> None:
    provider = _ScriptedProvider([TaskStatusResult(status=NormalizedStatus.success, raw={})])
    task = MeetingTask(
        local_file_path=str(tmp_path / "mixed_48k.m4a"),
        status=TaskStatus.polling,
        object_url="https://blob.example/x",
        remote_task_id="remote-1",
    )
    c = _controller(tmp_path, task=task, provider=provider)

    done = c.poll()

    assert done.status == TaskStatus.completed
    assert done.result is not None
    assert done.result.is_empty()


def test_running_poll_keeps_previous_result_and_raw_response(tmp_path: Path) -> None:
    previous = CanonicalResult(utterances=[Utterance(text="partial", speaker="Ann")], summary_headline="Draft")
    task = MeetingTask(
        local_file_path=str(tmp_path / "mixed_48k.m4a"),
        status=TaskStatus.polling,
        object_url="https://blob.example/x",
        remote_task_id="remote-1",
        result=previous,
        raw_response={"TaskStatus": "COMPLETED", "Result": {"Text": "partial"}},
    )
    result_before = previous.to_dict()
    raw_before = dict(task.raw_response)
    store = _FakeStore()
    provider = _ScriptedProvider([TaskStatusResult(status=NormalizedStatus.running, raw={"TaskStatus": "ONGOING"})])
    c = _controller(tmp_path, task=task, provider=provider, store=store)

    polled = c.poll()

    assert provider.polls == 1
    assert store.saved_statuses == []
    assert polled.status == TaskStatus.polling
    assert polled.result.to_dict() == result_before
    assert polled.raw_response == raw_before
    assert c.is_processing is False


def test_recover_interrupted_stage(tmp_path: Path) -> None:
    task = MeetingTask(local_file_path=str(tmp_path / "a.wav"), status=TaskStatus.uploading)
    c = _controller(tmp_path, task=task)

    recovered = c.recover()

    assert recovered.status == TaskStatus.failed
    assert recovered.failed_stage == PipelineStage.upload
    assert recovered.last_error == "Interrupted during upload"
    assert c.recover().status == TaskStatus.failed


def test_retry_infers_stage_when_missing(tmp_path: Path) -> None:
    task = MeetingTask(
        local_file_path=str(tmp_path / "mixed_48k.m4a"),
        status=TaskStatus.failed,
        object_url="https://blob.example/x",
    )
    provider = _ScriptedProvider([])
    c = _controller(tmp_path, task=task, provider=provider)

    assert c.retry().status == TaskStatus.polling
    assert provider.created == 1


def test_retry_and_advance_noop_on_completed(tmp_path: Path) -> None:
    task = MeetingTask(local_file_path=str(tmp_path / "a.wav"), status=TaskStatus.completed)
    store = _FakeStore()
    c = _controller(tmp_path, task=task, store=store)

    assert c.retry().status == TaskStatus.completed
    assert c.advance().status == TaskStatus.completed
    assert store.saved_statuses == []


def test_advance_runs_one_stage_at_a_time(tmp_path: Path) -> None:
    c = _controller(tmp_path, provider=MockAdapter(running_polls=0))
    statuses = [c.advance().status for _ in range(5)]
    assert statuses == [
        TaskStatus.transcoded,
        TaskStatus.uploaded,
        TaskStatus.polling,
        TaskStatus.completed,
        TaskStatus.completed,
    ]
