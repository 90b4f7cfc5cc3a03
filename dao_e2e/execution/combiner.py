"""
Runs every governance type in its own process and merges the reports.

Each governance run is a full child invocation of ``python -m dao_e2e``
(discovery, scheduling and reporting), so no fixture state can leak from
one governance type into the next. Children run one after another because
they share the report file path; the combiner snapshots that file right
after each child exits.
"""

import asyncio
import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from dao_e2e.config import RunnerConfig
from dao_e2e.errors import AggregationParseError
from dao_e2e.models.test_result import (
    CombinedEntry,
    CombinedSummary,
    GovernanceRunRecord,
    RunSummary,
)
from dao_e2e.reporting.formatting import MARKDOWN_GLYPHS, format_duration, screenshot_exists
from dao_e2e.reporting.parser import parse_html_report
from dao_e2e.reporting.reporter import ReportPaths, ReportWriter, open_in_browser
from dao_e2e.utils import TimingContext, clear_screenshots, get_logger

logger = get_logger(__name__)


@dataclass
class CombinedRunOutcome:
    """Result of a multi-governance run."""
    combined: CombinedSummary
    exit_codes: dict[str, int] = field(default_factory=dict)
    paths: Optional[ReportPaths] = None

    @property
    def exit_code(self) -> int:
        return 0 if all(code == 0 for code in self.exit_codes.values()) else 1


def build_combined_summary(
    records: dict[str, GovernanceRunRecord],
    results_dir: Optional[Path] = None,
) -> CombinedSummary:
    """
    Merges per-governance records by logical test name.

    Rows follow first-seen order across governance types; a test a
    governance type does not have gets no entry there.
    """
    combined = CombinedSummary()
    for governance_type, record in records.items():
        combined.records[governance_type] = record
        if governance_type not in combined.governance_types:
            combined.governance_types.append(governance_type)
        combined.entries.setdefault(governance_type, {})

        for result in record.results:
            runtime = "" if result.skipped else format_duration(result.duration_ms)
            combined.add_entry(governance_type, result.name, CombinedEntry(
                symbol=MARKDOWN_GLYPHS[result.outcome],
                runtime=runtime,
                screenshot_available=screenshot_exists(result, results_dir),
            ))
    return combined


def empty_record(governance_type: str, exit_code: Optional[int] = None) -> GovernanceRunRecord:
    """Record used when nothing could be read back from a child run."""
    return GovernanceRunRecord(
        governance_type=governance_type,
        timestamp="",
        run_time="",
        summary=RunSummary(),
        exit_code=exit_code,
    )


class MultiRunCombiner:
    """
    Sequential multi-governance runner.

    Args:
        config: Parent configuration; its governance_types are run in order
        child_args: Extra CLI arguments passed to every child run
        python: Interpreter used for the child runs
    """

    def __init__(
        self,
        config: RunnerConfig,
        child_args: Iterable[str] = (),
        python: str = sys.executable,
    ):
        self.config = config
        self.child_args = list(child_args)
        self.python = python
        self.writer = ReportWriter(config.results_dir)

    def screenshots_dir_for(self, governance_type: str) -> Path:
        return self.config.results_dir / "screenshots" / governance_type

    def child_command(self, governance_type: str) -> list[str]:
        return [self.python, "-m", "dao_e2e", f"--governance={governance_type}", *self.child_args]

    def child_env(self, governance_type: str) -> dict[str, str]:
        """Environment of a child run: parent settings plus per-run overrides."""
        config = self.config
        env = {
            **os.environ,
            "SCREENSHOTS_DIR": str(self.screenshots_dir_for(governance_type)),
            "SKIP_MARKDOWN": "1",
            "DAO_E2E_NO_OPEN": "1",
            "DAO_E2E_RESULTS_DIR": str(config.results_dir),
            "DAO_E2E_TESTS_DIR": str(config.tests_dir),
            "DAO_E2E_LAUNCHER": shlex.join(config.launcher),
            "DAO_E2E_TEST_SUFFIX": config.test_suffix,
            "MAX_CONCURRENCY": str(config.max_concurrency),
            "TEST_ENV": config.env_name,
        }
        if config.base_url:
            env["BASE_URL"] = config.base_url
        if config.regression_type:
            env["REGRESSION_TYPE"] = config.regression_type
        if not config.preflight:
            env["DAO_E2E_NO_PREFLIGHT"] = "1"
        return env

    def _remove_stale_reports(self) -> None:
        for path in (self.writer.html_path, self.writer.data_path):
            if path.exists():
                path.unlink()

    async def run_child(self, governance_type: str) -> int:
        """Runs one governance type to completion with inherited stdio."""
        command = self.child_command(governance_type)
        logger.info("governance_run_started", governance=governance_type, command=" ".join(command))
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(self.config.project_root),
                env=self.child_env(governance_type),
            )
        except OSError as e:
            logger.error("governance_run_not_started", governance=governance_type, error=str(e))
            return 1
        return await proc.wait()

    def collect(self, governance_type: str, exit_code: int) -> tuple[GovernanceRunRecord, Optional[str]]:
        """
        Reads back the reports a child just wrote.

        Returns:
            The run record and the HTML snapshot (None if no report exists)
        """
        snapshot = None
        if self.writer.html_path.is_file():
            snapshot = self.writer.html_path.read_text(encoding="utf-8")

        record = self._load_record(governance_type)
        if record is not None:
            record.exit_code = exit_code
            return record, snapshot

        if snapshot is None:
            logger.warning("governance_report_missing", governance=governance_type, exit_code=exit_code)
            return empty_record(governance_type, exit_code), None

        try:
            return parse_html_report(snapshot, governance_type, exit_code), snapshot
        except AggregationParseError as e:
            logger.warning("governance_report_unparsed", governance=governance_type, error=str(e))
            return empty_record(governance_type, exit_code), snapshot

    def _load_record(self, governance_type: str) -> Optional[GovernanceRunRecord]:
        path = self.writer.data_path
        if not path.is_file():
            return None
        try:
            record = GovernanceRunRecord.load(str(path))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("governance_record_unreadable", governance=governance_type, error=str(e))
            return None
        if record.governance_type != governance_type:
            logger.warning(
                "governance_record_mismatch",
                expected=governance_type,
                found=record.governance_type,
            )
            return None
        return record

    async def run(self) -> CombinedRunOutcome:
        """Runs every governance type, then writes the combined reports."""
        records: dict[str, GovernanceRunRecord] = {}
        snapshots: dict[str, str] = {}
        exit_codes: dict[str, int] = {}

        with TimingContext("all_governance", logger) as timer:
            for governance_type in self.config.governance_types:
                screenshots = self.screenshots_dir_for(governance_type)
                screenshots.mkdir(parents=True, exist_ok=True)
                clear_screenshots(screenshots)
                self._remove_stale_reports()

                exit_code = await self.run_child(governance_type)
                exit_codes[governance_type] = exit_code

                record, snapshot = self.collect(governance_type, exit_code)
                records[governance_type] = record
                if snapshot is not None:
                    snapshots[governance_type] = snapshot

                logger.info(
                    "governance_run_finished",
                    governance=governance_type,
                    exit_code=exit_code,
                    passed=record.summary.passed_count,
                    total=record.summary.total_count,
                )

        combined = build_combined_summary(records, self.config.results_dir)
        paths = self.writer.write_combined(combined, snapshots)
        outcome = CombinedRunOutcome(combined=combined, exit_codes=exit_codes, paths=paths)

        logger.info(
            "all_governance_finished",
            exit_code=outcome.exit_code,
            passed=combined.total_passed,
            total=combined.total_count,
            duration_ms=timer.duration_ms,
        )

        if self.config.open_report:
            open_in_browser(paths.html)
        return outcome
