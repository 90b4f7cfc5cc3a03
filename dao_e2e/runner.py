"""
Single governance run.

Discovers the tests of one governance type, runs them through the worker
pool and writes the reports. One instance per process; the multi-governance
combiner starts one child process per governance type instead of reusing
this object.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dao_e2e.config import RunnerConfig, check_base_url
from dao_e2e.discovery import (
    build_test_files,
    discover_test_files,
    has_regression_type,
    resolve_test_arguments,
)
from dao_e2e.errors import DiscoveryError
from dao_e2e.execution.base_executor import BaseExecutor
from dao_e2e.execution.process_executor import ProcessExecutor
from dao_e2e.execution.scheduler import WorkerPoolScheduler
from dao_e2e.models.test_file import TestFile
from dao_e2e.models.test_result import RunSummary, TestResult
from dao_e2e.reporting.reporter import ReportPaths, ReportWriter, open_in_browser
from dao_e2e.utils import TimingContext, clear_screenshots, get_logger

logger = get_logger(__name__)


@dataclass
class RunOutcome:
    """Results and exit code of one governance run."""
    results: list[TestResult]
    summary: RunSummary
    exit_code: int
    paths: Optional[ReportPaths] = None


class GovernanceTestRunner:
    """
    Runs the tests of one governance type.

    Args:
        config: Runner configuration (governance type, paths, concurrency)
        executor: Test executor (default: ProcessExecutor)
    """

    def __init__(self, config: RunnerConfig, executor: Optional[BaseExecutor] = None):
        self.config = config
        self.executor = executor or ProcessExecutor(config)
        self.writer = ReportWriter(config.results_dir)

    @property
    def group_by_page(self) -> bool:
        """Header gating only applies to full runs."""
        return not self.config.debug and not self.config.test_files

    def _explicit_paths(self) -> list[Path]:
        paths = resolve_test_arguments(self.config.test_files, self.config.project_root)
        for path in paths:
            if not path.is_file():
                raise DiscoveryError(path, f"Test file not found: {path}")
        return paths

    def select_tests(self) -> list[TestFile]:
        """
        Test files for this run, in discovery order.

        Explicit test files replace discovery. The regression type filter
        and the debug limit apply to both.
        """
        config = self.config
        if config.test_files:
            paths = self._explicit_paths()
        else:
            paths = discover_test_files(config.test_root, config.test_suffix)

        if config.regression_type:
            before = len(paths)
            paths = [p for p in paths if has_regression_type(p, config.regression_type)]
            logger.info(
                "regression_filter",
                regression_type=config.regression_type,
                kept=len(paths),
                dropped=before - len(paths),
            )

        if config.debug and len(paths) > config.debug_test_limit:
            logger.info("debug_limit", kept=config.debug_test_limit, total=len(paths))
            paths = paths[: config.debug_test_limit]

        return build_test_files(
            paths,
            tests_dir=config.tests_dir,
            suffix=config.test_suffix,
            header_name=config.header_name,
        )

    async def run(self) -> RunOutcome:
        """
        Runs the selected tests and writes the reports.

        Returns:
            RunOutcome with exit code 0 iff no executed test failed

        Raises:
            DiscoveryError: If the test root or an explicit test file is missing
            GroupingError: If a page has more than one header test
        """
        config = self.config
        removed = clear_screenshots(config.screenshots_path)
        if removed:
            logger.debug("screenshots_cleared", count=removed, path=str(config.screenshots_path))

        files = self.select_tests()
        if not files:
            logger.warning("no_tests_found", root=str(config.test_root))

        if config.preflight and files:
            check_base_url(config.resolved_base_url)

        logger.info(
            "run_started",
            governance=config.governance_type,
            tests=len(files),
            max_concurrency=config.max_concurrency,
            grouped=self.group_by_page,
        )

        scheduler = WorkerPoolScheduler(
            self.executor,
            max_concurrency=config.max_concurrency,
            group_by_page=self.group_by_page,
        )
        with TimingContext(config.governance_type) as timer:
            async with self.executor:
                results = await scheduler.run(files)

        summary = RunSummary.from_results(results, timer.duration_ms)
        exit_code = 0 if summary.all_passed else 1

        paths = self.writer.write(
            results,
            config.governance_type,
            wall_clock_ms=timer.duration_ms,
            skip_markdown=config.skip_markdown,
            exit_code=exit_code,
        )

        logger.info(
            "run_finished",
            governance=config.governance_type,
            passed=summary.passed_count,
            failed=summary.failed_count,
            skipped=summary.skipped_count,
            crashed=summary.crashed_count,
            exit_code=exit_code,
        )

        if config.open_report:
            open_in_browser(paths.html)

        return RunOutcome(results=results, summary=summary, exit_code=exit_code, paths=paths)
