"""
Executor that runs each test file as an isolated child process.

Tests mutate a live remote session, so no in-memory state is shared
between them: every file gets its own process, stdio and exit code.
"""

import asyncio
import codecs
import os
import sys
from pathlib import Path
from typing import Optional

from dao_e2e.config import RunnerConfig
from dao_e2e.execution.base_executor import BaseExecutor
from dao_e2e.execution.diagnostics import (
    build_error_message,
    is_crash,
    read_error_file,
)
from dao_e2e.models.test_file import TestFile
from dao_e2e.models.test_result import TestResult
from dao_e2e.utils import TimingContext, get_logger

logger = get_logger(__name__)

READ_CHUNK_SIZE = 4096


class ProcessExecutor(BaseExecutor):
    """
    Runs a test file with the configured launcher.

    Characteristics:
    - stdout and stderr captured in full for the report
    - live echo to the parent console (buffered dump in debug mode)
    - crash classification and out-of-band error file pickup
    """

    def __init__(self, config: RunnerConfig):
        self.config = config
        self.spawn_count = 0
        self._running: set[asyncio.subprocess.Process] = set()

    @property
    def name(self) -> str:
        return "process"

    @property
    def live_output(self) -> bool:
        return self.config.stream_output and not self.config.debug

    def command_for(self, test_file: TestFile) -> list[str]:
        return [
            *self.config.launcher,
            str(test_file.path),
            f"--governance={self.config.governance_type}",
        ]

    async def execute(self, test_file: TestFile) -> TestResult:
        """Runs the test process and turns its exit into a TestResult."""
        env = {**os.environ, **self.config.child_env()}
        pid = None

        with TimingContext(test_file.name) as timer:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *self.command_for(test_file),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=str(self.config.project_root),
                    env=env,
                )
            except OSError as e:
                logger.error("test_not_started", name=test_file.name, error=str(e))
                stdout, stderr, returncode = "", f"Could not start test process: {e}", None
            else:
                self.spawn_count += 1
                pid = proc.pid
                self._running.add(proc)
                try:
                    stdout, stderr = await asyncio.gather(
                        self._pump(proc.stdout, lambda: sys.stdout),
                        self._pump(proc.stderr, lambda: sys.stderr),
                    )
                    returncode = await proc.wait()
                except asyncio.CancelledError:
                    await self._kill(proc)
                    raise
                finally:
                    self._running.discard(proc)

        if self.config.debug:
            self._dump(test_file.name, stdout, stderr)

        return self._to_result(test_file, stdout, stderr, returncode, pid, timer.duration_ms)

    def _to_result(
        self,
        test_file: TestFile,
        stdout: str,
        stderr: str,
        returncode: Optional[int],
        pid: Optional[int],
        duration_ms: int,
    ) -> TestResult:
        passed = returncode == 0
        screenshot = self._find_screenshot(test_file.name)
        # Consumed on every exit, passing or not
        error_text = read_error_file(pid)

        if passed:
            logger.info("test_passed", name=test_file.name, duration_ms=duration_ms)
            return TestResult(
                name=test_file.name,
                passed=True,
                screenshot_path=screenshot,
                duration_ms=duration_ms,
                index=test_file.index,
                page=test_file.page,
            )

        crashed = returncode is None or is_crash(
            stdout, stderr, returncode, self.config.crash_output_threshold
        )
        message = build_error_message(stdout, stderr, error_text)

        if crashed:
            logger.warning("test_no_run", name=test_file.name, returncode=returncode, duration_ms=duration_ms)
        else:
            logger.warning("test_failed", name=test_file.name, returncode=returncode, duration_ms=duration_ms)

        return TestResult(
            name=test_file.name,
            passed=False,
            crashed=crashed,
            error_message=message,
            screenshot_path=screenshot,
            duration_ms=duration_ms,
            index=test_file.index,
            page=test_file.page,
        )

    def _find_screenshot(self, name: str) -> Optional[str]:
        """Screenshot written by the test, if the file exists now."""
        path = Path(self.config.screenshots_path) / f"{name}.png"
        return str(path) if path.is_file() else None

    async def _pump(self, stream: Optional[asyncio.StreamReader], sink) -> str:
        """Reads a child stream to EOF, echoing it live when enabled."""
        if stream is None:
            return ""

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        chunks = []
        while True:
            data = await stream.read(READ_CHUNK_SIZE)
            if not data:
                break
            text = decoder.decode(data)
            chunks.append(text)
            if self.live_output and text:
                out = sink()
                out.write(text)
                out.flush()

        tail = decoder.decode(b"", final=True)
        if tail:
            chunks.append(tail)
        return "".join(chunks)

    def _dump(self, name: str, stdout: str, stderr: str) -> None:
        """Buffered per-test output for debug mode."""
        if stdout.strip():
            sys.stdout.write(f"\n[{name}]\n{stdout}")
            sys.stdout.flush()
        if stderr.strip():
            sys.stderr.write(f"\n[{name} ERROR]\n{stderr}")
            sys.stderr.flush()

    async def cleanup(self):
        """Kills test processes still running (e.g. after cancellation)."""
        for proc in list(self._running):
            await self._kill(proc)
        self._running.clear()

    async def _kill(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        logger.warning("test_process_killed", pid=proc.pid)
        read_error_file(proc.pid)
