from __future__ import annotations

from pathlib import Path

from meeting_asr_agent.domain.models import MeetingTask
from meeting_asr_agent.storage import records


def task_to_markdown(task: MeetingTask) -> str:
    """
    Порядок секций фиксирован: заголовок, дата, Summary, Key Points,
    Action Items, Transcript. Пустые секции не выводятся.
    """
    result = task.result
    title = task.title or task.id
    lines = [f"# {title}", "", f"Date: {task.created_at.strftime('%Y-%m-%d %H:%M:%S')}", ""]

    sections = [
        ("Summary", result.summary if result else None),
        ("Key Points", result.key_points_text if result else None),
        ("Action Items", result.action_items_text if result else None),
        ("Transcript", result.transcript if result else None),
    ]
    for heading, body in sections:
        text = (body or "").strip()
        if not text:
            continue
        lines.append(f"## {heading}")
        lines.append(text)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def write_markdown(task: MeetingTask, *, records_dir: str | Path, filename: str = "transcript.md") -> Path:
    return records.write_text(records_dir, task.id, filename, task_to_markdown(task))
