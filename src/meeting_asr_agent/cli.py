"""Command-line driver for the meeting ASR pipeline (one stage per command)."""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

from meeting_asr_agent.common.config import Settings, get_settings
from meeting_asr_agent.common.errors import AppError
from meeting_asr_agent.common.logging import get_project_logger, setup_logging
from meeting_asr_agent.domain.enums import TaskStatus
from meeting_asr_agent.domain.models import MeetingTask
from meeting_asr_agent.processing.export import task_to_markdown, write_markdown
from meeting_asr_agent.services.pipeline_controller import PipelineController
from meeting_asr_agent.services.tasks import (
    build_controller,
    import_audio,
    load_task,
    new_task,
    open_store,
)

log = get_project_logger()

STAGE_COMMANDS = ("transcode", "upload", "submit", "poll", "advance", "retry", "recover")


def _task_snapshot(task: MeetingTask, *, with_result: bool = False) -> dict:
    data = task.to_dict()
    data.pop("raw_response", None)
    if not with_result:
        data.pop("result", None)
    return data


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="meeting-asr", description="Meeting recording → cloud ASR pipeline")
    p.add_argument("--provider", default=None, help="Override ASR_PROVIDER (tingwu|volcengine|mock)")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Copy an external audio file into the records dir and create a task")
    imp.add_argument("path")

    reg = sub.add_parser("new", help="Create a task for a finished recording in place")
    reg.add_argument("path")
    reg.add_argument("--title", default=None)

    for name in STAGE_COMMANDS:
        sp = sub.add_parser(name, help=f"Run the '{name}' operation once")
        sp.add_argument("task_id")

    run = sub.add_parser("run", help="Drive all stages sequentially, polling until done")
    run.add_argument("task_id")
    run.add_argument("--poll-interval-sec", type=float, default=None)
    run.add_argument("--timeout-sec", type=int, default=None)

    show = sub.add_parser("show", help="Print task state and result")
    show.add_argument("task_id")

    lst = sub.add_parser("list", help="List recent tasks")
    lst.add_argument("--limit", type=int, default=20)

    exp = sub.add_parser("export", help="Export the task as Markdown")
    exp.add_argument("task_id")
    exp.add_argument("--output", default=None, help="Write to this path (default: records dir)")
    exp.add_argument("--stdout", action="store_true")
    return p.parse_args(argv)


def run_until_done(
    controller: PipelineController,
    *,
    poll_interval_sec: float,
    timeout_sec: int,
    sleep=time.sleep,
) -> MeetingTask:
    deadline = time.monotonic() + max(1, int(timeout_sec))
    # Задача, оставшаяся в промежуточном статусе после падения процесса
    controller.recover()
    while True:
        before = controller.task.status
        task = controller.advance()
        if task.status in (TaskStatus.completed, TaskStatus.failed):
            return task
        if task.status == before and before != TaskStatus.polling:
            return task
        if task.status == TaskStatus.polling and before == TaskStatus.polling:
            if time.monotonic() >= deadline:
                log.warning("pipeline_run_timeout", extra={"payload": {"task_id": task.id}})
                return task
            sleep(max(0.0, poll_interval_sec))


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings: Settings = get_settings()
    if args.provider:
        settings = settings.model_copy(update={"asr_provider": args.provider})
    setup_logging(settings)
    store = open_store(settings)

    try:
        if args.command == "import":
            _print_json(_task_snapshot(import_audio(args.path, settings=settings, store=store)))
            return 0
        if args.command == "new":
            _print_json(_task_snapshot(new_task(args.path, store=store, title=args.title)))
            return 0
        if args.command == "list":
            _print_json([_task_snapshot(t) for t in store.list_recent(limit=args.limit)])
            return 0

        task = load_task(store, args.task_id)
        if args.command == "show":
            _print_json(_task_snapshot(task, with_result=True))
            return 0
        if args.command == "export":
            if args.stdout:
                sys.stdout.write(task_to_markdown(task))
                return 0
            if args.output:
                out = Path(args.output)
                out.parent.mkdir(parents=True, exist_ok=True)
                out.write_text(task_to_markdown(task), encoding="utf-8")
            else:
                out = write_markdown(task, records_dir=settings.records_dir)
            _print_json({"task_id": task.id, "path": str(out)})
            return 0

        controller = build_controller(task, settings=settings, store=store)
        if args.command == "run":
            task = run_until_done(
                controller,
                poll_interval_sec=(
                    args.poll_interval_sec if args.poll_interval_sec is not None else settings.poll_interval_sec
                ),
                timeout_sec=args.timeout_sec if args.timeout_sec is not None else settings.poll_timeout_sec,
            )
        else:
            task = getattr(controller, args.command)()
        _print_json(_task_snapshot(task))
        return 1 if task.status == TaskStatus.failed else 0
    except AppError as e:
        log.error("cli_error", extra={"payload": {"code": e.code, "error": e.message}})
        print(f"error: {e.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
