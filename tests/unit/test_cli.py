from __future__ import annotations

import json
from pathlib import Path

import pytest

from meeting_asr_agent import cli
from meeting_asr_agent.asr.mock import MockAdapter
from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.domain.enums import TaskStatus
from meeting_asr_agent.domain.models import MeetingTask
from meeting_asr_agent.services.pipeline_controller import PipelineController


class _MemoryStore:
    def __init__(self) -> None:
        self.tasks: dict[str, MeetingTask] = {}

    def save(self, task: MeetingTask) -> None:
        self.tasks[task.id] = MeetingTask.from_dict(task.to_dict())

    def get(self, task_id: str) -> MeetingTask | None:
        return self.tasks.get(task_id)

    def list_recent(self, *, limit: int = 50) -> list[MeetingTask]:
        return list(self.tasks.values())[:limit]


class _CopyTranscoder:
    def transcode(self, input_path: str) -> str:
        return str(Path(input_path).with_name("mixed_48k.m4a"))


class _EchoUploader:
    def upload(self, file_path: str, key: str) -> str:
        return f"https://blob.example/{key}"


def _controller(tmp_path: Path, task: MeetingTask, provider) -> PipelineController:
    return PipelineController(
        task,
        settings=Settings(records_dir=str(tmp_path / "records")),
        store=_MemoryStore(),
        provider=provider,
        transcoder=_CopyTranscoder(),
        uploader=_EchoUploader(),
    )


def test_run_until_done_polls_with_interval(tmp_path: Path) -> None:
    sleeps: list[float] = []
    c = _controller(tmp_path, MeetingTask(local_file_path=str(tmp_path / "a.wav")), MockAdapter(running_polls=2))

    task = cli.run_until_done(c, poll_interval_sec=0.5, timeout_sec=60, sleep=sleeps.append)

    assert task.status == TaskStatus.completed
    assert sleeps == [0.5, 0.5]


def test_run_until_done_recovers_interrupted_task(tmp_path: Path) -> None:
    task = MeetingTask(local_file_path=str(tmp_path / "a.wav"), status=TaskStatus.transcoding)
    c = _controller(tmp_path, task, MockAdapter(running_polls=0))

    done = cli.run_until_done(c, poll_interval_sec=0, timeout_sec=60, sleep=lambda _: None)

    assert done.status == TaskStatus.completed


def test_run_until_done_stops_on_failure(tmp_path: Path) -> None:
    class _BrokenUploader:
        def upload(self, file_path: str, key: str) -> str:
            raise RuntimeError("no space")

    c = _controller(tmp_path, MeetingTask(local_file_path=str(tmp_path / "a.wav")), MockAdapter())
    c.uploader = _BrokenUploader()

    task = cli.run_until_done(c, poll_interval_sec=0, timeout_sec=60, sleep=lambda _: None)

    assert task.status == TaskStatus.failed
    assert task.last_error == "no space"


@pytest.fixture()
def memory_cli(monkeypatch, tmp_path: Path) -> _MemoryStore:
    store = _MemoryStore()
    settings = Settings(records_dir=str(tmp_path / "records"), asr_provider="mock")
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli, "setup_logging", lambda s=None: None)
    monkeypatch.setattr(cli, "open_store", lambda s: store)
    return store


def test_cli_new_show_and_list(memory_cli: _MemoryStore, capsys, tmp_path: Path) -> None:
    assert cli.main(["new", str(tmp_path / "meeting.wav"), "--title", "Standup"]) == 0
    created = json.loads(capsys.readouterr().out)
    assert created["status"] == "recorded"
    assert created["title"] == "Standup"

    assert cli.main(["show", created["id"]]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["id"] == created["id"]
    assert "raw_response" not in shown

    assert cli.main(["list"]) == 0
    listed = json.loads(capsys.readouterr().out)
    assert [t["id"] for t in listed] == [created["id"]]


def test_cli_unknown_task(memory_cli: _MemoryStore, capsys) -> None:
    assert cli.main(["show", "missing"]) == 2
    assert "Task not found" in capsys.readouterr().err


def test_cli_import_requires_existing_file(memory_cli: _MemoryStore, capsys, tmp_path: Path) -> None:
    assert cli.main(["import", str(tmp_path / "nope.wav")]) == 2
    assert memory_cli.tasks == {}
