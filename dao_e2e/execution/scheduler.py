"""
Worker pool that runs test files with bounded parallelism.

Workers pull from a shared queue and take the next file as soon as they
finish one, so slow tests do not hold back fast ones. A page's content
tests are only queued once its header test passed; when the header fails
they are recorded as skipped without being run.
"""

import asyncio
from typing import Iterable

from dao_e2e.discovery.grouping import group_tests_by_page
from dao_e2e.execution.base_executor import BaseExecutor
from dao_e2e.models.test_file import TestFile
from dao_e2e.models.test_result import TestResult
from dao_e2e.utils import get_logger, validate_positive

logger = get_logger(__name__)


class WorkerPoolScheduler:
    """
    Greedy worker pool over a queue of test files.

    Guarantees:
    - at most max_concurrency tests run at the same time
    - one TestResult per input file, returned in discovery order
    - a header completes before any content test of its page starts
    """

    def __init__(
        self,
        executor: BaseExecutor,
        max_concurrency: int,
        group_by_page: bool = True,
    ):
        validate_positive(max_concurrency, "max_concurrency")
        self.executor = executor
        self.max_concurrency = int(max_concurrency)
        self.group_by_page = group_by_page

    def _initial_queue(self, files: list[TestFile]) -> tuple[list[TestFile], dict[int, list[TestFile]]]:
        """Files runnable right away, and content tests gated by header index."""
        if not self.group_by_page:
            return list(files), {}

        runnable = []
        gated: dict[int, list[TestFile]] = {}
        for group in group_tests_by_page(files).values():
            if group.header is not None:
                runnable.append(group.header)
                if group.content:
                    gated[group.header.index] = list(group.content)
            else:
                runnable.extend(group.content)

        runnable.sort(key=lambda f: f.index)
        return runnable, gated

    async def run(self, files: Iterable[TestFile]) -> list[TestResult]:
        """
        Runs every file and returns their results.

        Args:
            files: Test files in discovery order

        Returns:
            One TestResult per file, sorted back into discovery order
        """
        files = list(files)
        if not files:
            return []

        runnable, gated = self._initial_queue(files)

        queue: asyncio.Queue = asyncio.Queue()
        for test_file in runnable:
            queue.put_nowait(test_file)

        results: list[TestResult] = []
        worker_count = min(self.max_concurrency, len(files))
        logger.info("pool_started", tests=len(files), workers=worker_count, gated_pages=len(gated))

        workers = [
            asyncio.create_task(self._worker(queue, results, gated))
            for _ in range(worker_count)
        ]
        try:
            await queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        return sorted(results, key=lambda r: r.index)

    async def _worker(
        self,
        queue: asyncio.Queue,
        results: list[TestResult],
        gated: dict[int, list[TestFile]],
    ) -> None:
        while True:
            test_file = await queue.get()
            try:
                result = await self._run_one(test_file)
                results.append(result)

                content = gated.pop(test_file.index, None)
                if content:
                    if result.passed:
                        for content_file in content:
                            queue.put_nowait(content_file)
                    else:
                        results.extend(self._skip_content(test_file, content))
            finally:
                queue.task_done()

    async def _run_one(self, test_file: TestFile) -> TestResult:
        """Runs a file; executor errors become a failed result."""
        try:
            return await self.executor.execute(test_file)
        except Exception as e:
            logger.exception("executor_error", name=test_file.name)
            return TestResult(
                name=test_file.name,
                passed=False,
                error_message=f"Executor error: {type(e).__name__}: {e}",
                index=test_file.index,
                page=test_file.page,
            )

    def _skip_content(self, header: TestFile, content: list[TestFile]) -> list[TestResult]:
        skipped = []
        for content_file in content:
            logger.warning("test_skipped", name=content_file.name, header=header.name)
            skipped.append(TestResult.header_skip(
                name=content_file.name,
                index=content_file.index,
                page=content_file.page,
            ))
        return skipped

