"""
Formatting helpers shared by the Markdown and HTML reports.
"""

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from dao_e2e.models.test_result import TestOutcome, TestResult

MARKDOWN_GLYPHS = {
    TestOutcome.PASSED: "✅",
    TestOutcome.FAILED: "❌",
    TestOutcome.SKIPPED: "⚠️ Skipped",
    TestOutcome.CRASHED: "💥 NO RUN",
}

# CSS class and label per outcome
HTML_LABELS = {
    TestOutcome.PASSED: ("pass", "PASS"),
    TestOutcome.FAILED: ("fail", "FAIL"),
    TestOutcome.SKIPPED: ("skipped", "SKIPPED"),
    TestOutcome.CRASHED: ("norun", "NO RUN"),
}

LABEL_OUTCOMES = {label: outcome for outcome, (_, label) in HTML_LABELS.items()}

NOT_APPLICABLE = "N/A"

DURATION_RE = re.compile(r"^\s*([\d.]+)\s*(min|s)\s*$")


def format_duration(duration_ms: Optional[float]) -> str:
    """Seconds with two decimals below a minute, else minutes with one."""
    if duration_ms is None:
        return ""
    seconds = duration_ms / 1000
    if round(seconds, 2) >= 60:
        return f"{seconds / 60:.1f} min"
    return f"{seconds:.2f}s"


def parse_duration(text: str) -> float:
    """
    Seconds from a formatted duration ("1.20s", "2.5 min").

    Raises:
        ValueError: If the text is not a formatted duration
    """
    match = DURATION_RE.match(text or "")
    if not match:
        raise ValueError(f"Not a duration: {text!r}")
    value = float(match.group(1))
    return value * 60 if match.group(2) == "min" else value


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Report timestamp, e.g. 10/19/2026 14:03:22."""
    return (moment or datetime.now()).strftime("%m/%d/%Y %H:%M:%S")


def screenshot_exists(result: TestResult, results_dir: Optional[Path] = None) -> bool:
    """A recorded screenshot path only counts if the file is still there."""
    if not result.screenshot_path:
        return False
    path = Path(result.screenshot_path)
    if not path.is_absolute() and results_dir is not None:
        path = Path(results_dir) / path
    return path.is_file()


def screenshot_href(result: TestResult, results_dir: Path) -> Optional[str]:
    """Link to the screenshot relative to the results directory."""
    if not screenshot_exists(result, results_dir):
        return None
    path = Path(result.screenshot_path)
    if not path.is_absolute():
        return path.as_posix()
    return Path(os.path.relpath(path, results_dir)).as_posix()


def percent(value: float) -> str:
    """Percentage for inline CSS widths."""
    return f"{value:.2f}"
