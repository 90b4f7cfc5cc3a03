"""
Base interface for test executors.

Defines the contract the scheduler relies on: run one test file, return
one TestResult, never raise for a failing test.
"""

from abc import ABC, abstractmethod

from dao_e2e.models.test_file import TestFile
from dao_e2e.models.test_result import TestResult


class BaseExecutor(ABC):
    """
    Abstract test executor.

    Each executor decides how a test file is run, but all of them report
    the outcome as a TestResult.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Executor identifier."""
        pass

    @abstractmethod
    async def execute(self, test_file: TestFile) -> TestResult:
        """
        Runs one test file.

        Args:
            test_file: Test to run

        Returns:
            TestResult for the file (failures are results, not exceptions)
        """
        pass

    async def __aenter__(self):
        """Async context manager support."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Cleanup when leaving the context manager."""
        await self.cleanup()

    async def cleanup(self):
        """
        Releases resources held by the executor.

        Implementations override this to stop lingering processes, etc.
        """
        pass
