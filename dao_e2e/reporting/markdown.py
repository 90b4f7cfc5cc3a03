"""
Markdown reports.

Meant to be pasted into a pull request comment: plain tables, no scripts,
and identical output for identical input.
"""

from pathlib import Path
from typing import Optional

from dao_e2e.models.test_result import CombinedSummary, RunSummary, TestResult
from dao_e2e.reporting.formatting import (
    MARKDOWN_GLYPHS,
    NOT_APPLICABLE,
    format_duration,
    screenshot_exists,
)


def _cell(text: str) -> str:
    return str(text).replace("|", "\\|").replace("\n", " ")


def render_markdown(
    results: list[TestResult],
    summary: RunSummary,
    governance_type: str,
    timestamp: str,
    results_dir: Optional[Path] = None,
) -> str:
    """
    Markdown report of one governance run.

    Args:
        results: Test results in discovery order
        summary: Summary of the same results
        governance_type: Governance fixture of the run
        timestamp: Formatted run timestamp
        results_dir: Base for relative screenshot paths

    Returns:
        Markdown document
    """
    lines = [
        f"## Test Results Summary ({governance_type})",
        "",
        f"**{summary.passed_count}/{summary.total_count} tests passed** "
        f"| Total run time: {format_duration(summary.run_time_ms)} "
        f"| Timestamp: {timestamp}",
        "",
    ]
    if summary.crashed_count:
        lines.extend([f"_{summary.crashed_count} test(s) did not run (process crashed)._", ""])

    lines.extend([
        "| Test Name | Result | Run Time | Screenshot |",
        "| --- | --- | --- | --- |",
    ])
    for r in results:
        screenshot = "Available" if screenshot_exists(r, results_dir) else "-"
        runtime = "-" if r.skipped else format_duration(r.duration_ms)
        lines.append(
            f"| {_cell(r.name)} | {MARKDOWN_GLYPHS[r.outcome]} | {runtime} | {screenshot} |"
        )

    return "\n".join(lines) + "\n"


def render_combined_markdown(combined: CombinedSummary) -> str:
    """
    One table across governance types.

    One column per governance type, one row per distinct test name; tests a
    governance type does not have are marked N/A.
    """
    governance_types = combined.governance_types
    lines = [
        "## All Governance Test Results",
        "",
        f"**{combined.total_passed}/{combined.total_count} tests passed "
        f"({combined.percent_passed:.1f}%)** "
        f"| Cumulative run time: {format_duration(combined.total_run_time_ms)} "
        f"| Started: {combined.first_timestamp or '-'}",
        "",
        "| Test Name | " + " | ".join(governance_types) + " |",
        "| --- | " + " | ".join("---" for _ in governance_types) + " |",
    ]

    for name in combined.test_names:
        cells = []
        for governance_type in governance_types:
            entry = combined.get(governance_type, name)
            if entry is None:
                cells.append(NOT_APPLICABLE)
            elif entry.runtime:
                cells.append(f"{entry.symbol} {entry.runtime}")
            else:
                cells.append(entry.symbol)
        lines.append(f"| {_cell(name)} | " + " | ".join(cells) + " |")

    lines.append("")
    for governance_type in governance_types:
        record = combined.records.get(governance_type)
        if record is None:
            continue
        s = record.summary
        lines.append(
            f"- **{governance_type}**: {s.passed_count}/{s.total_count} passed, "
            f"{s.failed_count} failed, {s.skipped_count} skipped "
            f"({record.run_time or format_duration(s.run_time_ms)})"
        )

    return "\n".join(lines) + "\n"
