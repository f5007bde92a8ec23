from __future__ import annotations

import json
from pathlib import Path


def _safe_task_id(task_id: str) -> str:
    if not task_id or "/" in task_id or "\\" in task_id or ".." in task_id:
        raise ValueError("invalid_task_id")
    return task_id


def task_dir(root: str | Path, task_id: str) -> Path:
    return Path(root).resolve() / _safe_task_id(task_id)


def ensure_task_dir(root: str | Path, task_id: str) -> Path:
    d = task_dir(root, task_id)
    d.mkdir(parents=True, exist_ok=True)
    return d


def write_text(root: str | Path, task_id: str, filename: str, text: str) -> Path:
    p = ensure_task_dir(root, task_id) / filename
    p.write_text(text or "", encoding="utf-8")
    return p


def write_json(root: str | Path, task_id: str, filename: str, payload: dict) -> Path:
    p = ensure_task_dir(root, task_id) / filename
    p.write_text(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")
    return p
