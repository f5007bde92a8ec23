"""
Перекодирование записи в m4a (AAC 48 kHz) через ffmpeg.

- Transcoder — узкий контракт: transcode(input) -> output
- результат кладётся рядом с исходником (mixed_48k.m4a), старый файл перезаписывается
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from meeting_asr_agent.common.config import Settings
from meeting_asr_agent.common.errors import TranscodeError
from meeting_asr_agent.common.utils import text_head


class Transcoder(Protocol):
    def transcode(self, input_path: str) -> str: ...


class FfmpegTranscoder:
    def __init__(self, settings: Settings) -> None:
        self.ffmpeg_bin = settings.ffmpeg_bin
        self.sample_rate = int(settings.transcode_sample_rate)
        self.output_name = settings.transcode_output_name

    def output_path_for(self, input_path: str) -> Path:
        return Path(input_path).resolve().parent / self.output_name

    def build_command(self, input_path: str, output_path: Path) -> list[str]:
        return [
            self.ffmpeg_bin,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(input_path),
            "-vn",
            "-codec:a",
            "aac",
            "-ar",
            str(self.sample_rate),
            str(output_path),
        ]

    def transcode(self, input_path: str) -> str:
        src = Path(input_path)
        if not src.is_file():
            raise TranscodeError(f"Input file not found: {input_path}")
        if shutil.which(self.ffmpeg_bin) is None:
            raise TranscodeError(f"{self.ffmpeg_bin} not found in PATH")

        output = self.output_path_for(input_path)
        if output == src.resolve():
            raise TranscodeError("Output path equals input path", details={"path": str(output)})
        output.unlink(missing_ok=True)

        proc = subprocess.run(
            self.build_command(input_path, output),
            capture_output=True,
            text=True,
            check=False,
        )
        if proc.returncode != 0 or not output.exists():
            raise TranscodeError(
                text_head(proc.stderr, 300) or "Transcode failed",
                details={"returncode": proc.returncode},
            )
        return str(output)
