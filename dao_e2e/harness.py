"""
Child-side helpers for test files written in Python.

A test file is any executable the launcher can run. Python test files can
use these helpers to follow the runner's contract: read the governance
fixture and flags, exit 0 on success and 1 on failure, and leave the error
text in the out-of-band error file when they fail.

Usage:
    from dao_e2e.harness import run_check, test_context

    def check():
        ctx = test_context()
        ...

    if __name__ == "__main__":
        raise SystemExit(run_check(check))
"""

import asyncio
import inspect
import os
import sys
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from dao_e2e.config import DEFAULT_ENV, GOVERNANCE_TYPES, TEST_DAOS, resolve_base_url
from dao_e2e.execution.diagnostics import error_file_path


def write_error_file(text: str, pid: Optional[int] = None) -> Optional[Path]:
    """Writes error text where the parent runner looks for it. Never raises."""
    path = error_file_path(pid or os.getpid())
    try:
        path.write_text(text, encoding="utf-8")
    except OSError:
        return None
    return path


def governance_from_argv(argv: Optional[Sequence[str]] = None) -> str:
    """--governance=<type> from the arguments, else GOVERNANCE_TYPE, else the first type."""
    argv = sys.argv[1:] if argv is None else argv
    for arg in argv:
        if arg.startswith("--governance="):
            return arg.split("=", 1)[1]
    return os.environ.get("GOVERNANCE_TYPE") or GOVERNANCE_TYPES[0]


def parse_test_flags(text: Optional[str]) -> dict[str, str]:
    """
    Parses "k=v,k2=v2" feature flags.

    A bare key is treated as "true".
    """
    flags = {}
    for item in (text or "").split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        flags[key.strip()] = value.strip() if sep else "true"
    return flags


def page_url(base_url: str, path: str = "", flags: Optional[dict[str, str]] = None) -> str:
    """URL of an app page with the feature flags added as query parameters."""
    url = base_url.rstrip("/") + "/" + path.lstrip("/") if path else base_url
    if not flags:
        return url
    scheme, netloc, url_path, query, fragment = urlsplit(url)
    params = parse_qsl(query, keep_blank_values=True) + list(flags.items())
    return urlunsplit((scheme, netloc, url_path, urlencode(params), fragment))


@dataclass
class TestContext:
    """What a test process knows about its run."""
    __test__ = False

    governance_type: str
    dao: str
    base_url: str
    flags: dict[str, str] = field(default_factory=dict)
    screenshots_dir: Optional[Path] = None

    def url(self, path: str = "") -> str:
        return page_url(self.base_url, path, self.flags)

    def screenshot_path(self, name: str) -> Optional[Path]:
        """Where the screenshot for a logical test name goes (page/test.png)."""
        if self.screenshots_dir is None:
            return None
        path = self.screenshots_dir / f"{name}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


def test_context(argv: Optional[Sequence[str]] = None) -> TestContext:
    """TestContext from the arguments and environment set by the runner."""
    governance_type = governance_from_argv(argv)
    dao = os.environ.get("TEST_DAO")
    if not dao and governance_type in TEST_DAOS:
        dao = TEST_DAOS[governance_type].value
    screenshots = os.environ.get("SCREENSHOTS_DIR")
    return TestContext(
        governance_type=governance_type,
        dao=dao or "",
        base_url=resolve_base_url(os.environ.get("TEST_ENV") or DEFAULT_ENV, os.environ.get("BASE_URL")),
        flags=parse_test_flags(os.environ.get("TEST_FLAGS")),
        screenshots_dir=Path(screenshots) if screenshots else None,
    )


test_context.__test__ = False


def run_check(body: Callable[[], object]) -> int:
    """
    Runs a test body and returns the exit code for the process.

    Coroutine functions are run to completion on a new event loop. On any
    exception the traceback goes to stderr and to the error file, and the
    exit code is 1.
    """
    try:
        result = body()
        if inspect.isawaitable(result):
            asyncio.run(_await(result))
    except Exception:
        text = traceback.format_exc()
        sys.stderr.write(text)
        sys.stderr.flush()
        write_error_file(text)
        return 1
    sys.stdout.flush()
    return 0


async def _await(awaitable):
    return await awaitable
