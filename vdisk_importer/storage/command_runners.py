"""Command execution utilities with progress tracking."""

import re
import subprocess
from typing import Callable, Optional, Sequence

from vdisk_importer.logging import get_logger

log = get_logger(source=__name__, tags=["command"])

_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)/100%")


def parse_progress_percent(line: str) -> Optional[float]:
    """Extract a completion percentage from a qemu-img progress line.

    qemu-img -p reports progress as "    (42.01/100%)".
    """
    match = _PERCENT_RE.search(line)
    if not match:
        return None
    return max(0.0, min(100.0, float(match.group(1))))


def run_checked_command(command: Sequence[str], input_text=None) -> str:
    """Run a command and raise RuntimeError if it fails."""
    log.debug(f"Running command: {' '.join(command)}")
    result = subprocess.run(
        list(command),
        input=input_text,
        text=True,
        capture_output=True,
    )
    if result.returncode != 0:
        stderr = result.stderr.strip()
        stdout = result.stdout.strip()
        message = stderr or stdout or "Command failed"
        raise RuntimeError(f"Command failed ({' '.join(command)}): {message}")
    return result.stdout


def run_checked_with_progress(
    command: Sequence[str],
    progress_callback: Optional[Callable[[float], None]] = None,
) -> subprocess.CompletedProcess:
    """Run a command while streaming its output for progress updates.

    stdout and stderr are merged; each line carrying a percentage is passed to
    progress_callback. Raises RuntimeError on a non-zero exit status.
    """
    log.debug(f"Running command: {' '.join(command)}")
    process = subprocess.Popen(
        list(command),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    output_lines = []
    last_percent = None
    # Text mode translates qemu-img's carriage returns into line breaks.
    for line in process.stdout:
        output_lines.append(line)
        percent = parse_progress_percent(line)
        if percent is None:
            log.trace(f"output: {line.strip()}")
            continue
        if percent != last_percent and progress_callback:
            progress_callback(percent)
        last_percent = percent
    process.stdout.close()
    process.wait()
    output = "".join(output_lines)
    if process.returncode != 0:
        lines = [
            line.strip()
            for line in output_lines
            if line.strip() and parse_progress_percent(line) is None
        ]
        message = lines[-1] if lines else "Command failed"
        raise RuntimeError(f"Command failed ({' '.join(command)}): {message}")
    return subprocess.CompletedProcess(list(command), process.returncode, stdout=output)


__all__ = [
    "parse_progress_percent",
    "run_checked_command",
    "run_checked_with_progress",
]
