"""
Shared fixtures.

Test processes in these tests are small Python scripts run with the current
interpreter, named *.test.py.
"""

import asyncio
import os
import sys
import textwrap
from pathlib import Path

import pytest
import structlog

# Make the package importable when the tests run from a source checkout
_tests_dir = os.path.dirname(os.path.abspath(__file__))
_project_dir = os.path.dirname(_tests_dir)
if _project_dir not in sys.path:
    sys.path.insert(0, _project_dir)

from dao_e2e.config import RunnerConfig
from dao_e2e.execution.base_executor import BaseExecutor
from dao_e2e.models.test_file import TestFile, TestRole
from dao_e2e.models.test_result import TestResult

SUFFIX = ".test.py"


class FakeExecutor(BaseExecutor):
    """Executor that sleeps instead of spawning and records what it ran."""

    def __init__(self, failing=(), delays=None, default_delay=0.01):
        self.failing = set(failing)
        self.delays = delays or {}
        self.default_delay = default_delay
        self.spawned: list[str] = []
        self.running = 0
        self.max_running = 0
        self.started_after: dict[str, set] = {}
        self.finished: set = set()

    @property
    def name(self) -> str:
        return "fake"

    async def execute(self, test_file: TestFile) -> TestResult:
        self.spawned.append(test_file.name)
        self.started_after[test_file.name] = set(self.finished)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.delays.get(test_file.name, self.default_delay))
        finally:
            self.running -= 1
            self.finished.add(test_file.name)

        passed = test_file.name not in self.failing
        return TestResult(
            name=test_file.name,
            passed=passed,
            error_message=None if passed else "AssertionError: expected element",
            duration_ms=int(self.delays.get(test_file.name, self.default_delay) * 1000),
            index=test_file.index,
            page=test_file.page,
        )


def make_file(name: str, index: int, header_name: str = "header-loads") -> TestFile:
    """TestFile for a logical name such as "dao-homepage/header-loads"."""
    page = name.rsplit("/", 1)[0] if "/" in name else ""
    stem = name.rsplit("/", 1)[-1]
    return TestFile(
        path=Path("/virtual") / f"{name}{SUFFIX}",
        page=page,
        name=name,
        role=TestRole.HEADER if stem == header_name else TestRole.CONTENT,
        index=index,
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """cli.main configures structlog against the current stderr; undo it."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_files():
    """Builds TestFiles from logical names, indexed in the given order."""
    def _make(*names):
        return [make_file(name, i) for i, name in enumerate(names)]
    return _make


@pytest.fixture
def project(tmp_path):
    """Project root with an empty tests/token-voting tree."""
    (tmp_path / "tests" / "token-voting").mkdir(parents=True)
    (tmp_path / "tests" / "multisig").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def write_test(project):
    """
    Writes a test script under the tests directory.

    Args:
        relpath: Path below tests/, without suffix (e.g. "token-voting/a/header-loads")
        body: Python source of the script
    """
    def _write(relpath: str, body: str) -> Path:
        path = project / "tests" / f"{relpath}{SUFFIX}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def config(project):
    """RunnerConfig that runs *.test.py scripts with this interpreter."""
    return RunnerConfig(
        governance_type="erc20",
        project_root=project,
        launcher=(sys.executable,),
        test_suffix=SUFFIX,
        stream_output=False,
        open_report=False,
        preflight=False,
        max_concurrency=2,
    )
