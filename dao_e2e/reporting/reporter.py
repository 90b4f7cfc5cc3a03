"""
Writes report files to the results directory.
"""

import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dao_e2e.config import DATA_REPORT, HTML_REPORT, MARKDOWN_REPORT
from dao_e2e.models.test_result import (
    CombinedSummary,
    GovernanceRunRecord,
    RunSummary,
    TestResult,
)
from dao_e2e.reporting.formatting import format_duration, format_timestamp
from dao_e2e.reporting.html import render_combined_html, render_html
from dao_e2e.reporting.markdown import render_combined_markdown, render_markdown
from dao_e2e.utils import get_logger

logger = get_logger(__name__)


@dataclass
class ReportPaths:
    """Files written by one report pass."""
    html: Path
    markdown: Optional[Path] = None
    data: Optional[Path] = None


class ReportWriter:
    """
    Renders and writes reports under one results directory.

    The file names are fixed, so every run overwrites the previous report.
    """

    def __init__(self, results_dir: Path):
        self.results_dir = Path(results_dir)

    @property
    def html_path(self) -> Path:
        return self.results_dir / HTML_REPORT

    @property
    def markdown_path(self) -> Path:
        return self.results_dir / MARKDOWN_REPORT

    @property
    def data_path(self) -> Path:
        return self.results_dir / DATA_REPORT

    def _write_text(self, path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def write(
        self,
        results: list[TestResult],
        governance_type: str,
        wall_clock_ms: Optional[int] = None,
        skip_markdown: bool = False,
        exit_code: Optional[int] = None,
        timestamp: Optional[str] = None,
    ) -> ReportPaths:
        """
        Writes the HTML, Markdown and JSON reports of one governance run.

        Args:
            results: Results in discovery order
            governance_type: Governance fixture of the run
            wall_clock_ms: Measured run time; falls back to summed durations
            skip_markdown: Do not write the Markdown file (multi-run children)
            exit_code: Exit code the run will finish with
            timestamp: Formatted timestamp (default: now)

        Returns:
            Paths of the written files
        """
        timestamp = timestamp or format_timestamp()
        summary = RunSummary.from_results(results, wall_clock_ms)

        paths = ReportPaths(html=self._write_text(
            self.html_path,
            render_html(results, summary, governance_type, timestamp, self.results_dir),
        ))

        if not skip_markdown:
            paths.markdown = self._write_text(
                self.markdown_path,
                render_markdown(results, summary, governance_type, timestamp, self.results_dir),
            )

        record = GovernanceRunRecord(
            governance_type=governance_type,
            timestamp=timestamp,
            run_time=format_duration(summary.run_time_ms),
            summary=summary,
            results=list(results),
            exit_code=exit_code,
        )
        record.save(str(self.data_path))
        paths.data = self.data_path

        logger.info(
            "report_written",
            governance=governance_type,
            html=str(paths.html),
            markdown=str(paths.markdown) if paths.markdown else None,
            passed=summary.passed_count,
            total=summary.total_count,
        )
        return paths

    def write_combined(self, combined: CombinedSummary, snapshots: dict[str, str]) -> ReportPaths:
        """Writes the cross-governance HTML and Markdown reports."""
        paths = ReportPaths(
            html=self._write_text(self.html_path, render_combined_html(combined, snapshots)),
            markdown=self._write_text(self.markdown_path, render_combined_markdown(combined)),
        )
        # A per-run record left behind would be mistaken for the last child's
        if self.data_path.exists():
            self.data_path.unlink()

        logger.info(
            "combined_report_written",
            html=str(paths.html),
            markdown=str(paths.markdown),
            passed=combined.total_passed,
            total=combined.total_count,
        )
        return paths


def open_in_browser(path: Path) -> bool:
    """Opens a report in the default browser. Returns False if none is available."""
    try:
        opened = webbrowser.open(Path(path).resolve().as_uri())
    except webbrowser.Error as e:
        logger.warning("browser_open_failed", path=str(path), error=str(e))
        return False
    if not opened:
        logger.debug("no_browser_available", path=str(path))
    return opened
