"""Runner configuration.

Centralized configuration for governance test runs: fixtures, target
environments, concurrency and report locations. Values are read once at
process startup (``RunnerConfig.from_env``) and the resulting object is
passed explicitly to the runner, scheduler, executor and combiner.
"""

from __future__ import annotations

import dataclasses
import json
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv

from dao_e2e.errors import ConfigError
from dao_e2e.utils import get_logger, validate_in, validate_positive

logger = get_logger(__name__)

# =============================================================================
# GOVERNANCE FIXTURES
# =============================================================================

# Order matters: the combiner runs governance types in this order
GOVERNANCE_TYPES = ("erc20", "erc721", "multisig")

# Test root per governance type, relative to the tests directory
TEST_ROOTS = {
    "erc20": "token-voting",
    "erc721": "token-voting",
    "multisig": "multisig",
}

# Leading directories stripped from logical test names
GOVERNANCE_PREFIXES = ("token-voting", "multisig", "erc20", "erc721")


@dataclass(frozen=True)
class TestDao:
    """A deployed DAO used as a fixture."""

    __test__ = False

    network: str
    address: str

    @property
    def value(self) -> str:
        return f"{self.network}:{self.address}"


TEST_DAOS = {
    "erc20": TestDao("sep", "0xB4b01b4Dc5f8d11feD90D760a237BF4D74C3423d"),
    "erc721": TestDao("sep", "0x0BB34D2e76099c72dD26665afE5710980E271382"),
    "multisig": TestDao("sep", "0x0B17fd112dc1B25892e7E85D486dD390A037936A"),
}

# =============================================================================
# TARGET ENVIRONMENTS
# =============================================================================

DEFAULT_ENV = "local"

ENVIRONMENTS = {
    "local": "http://localhost:3000",
}

# Optional JSON file mapping environment names to base URLs
ENVIRONMENTS_FILE_VAR = "DAO_E2E_ENVIRONMENTS_FILE"

# =============================================================================
# EXECUTION SETTINGS
# =============================================================================

DEFAULT_MAX_CONCURRENCY = 4

# Debug mode only runs the first N tests
DEBUG_TEST_LIMIT = 5

# Combined output shorter than this (and without pass/fail words) is a crash
CRASH_OUTPUT_THRESHOLD = 40

TEST_SUFFIX = ".test.ts"
HEADER_TEST_NAME = "header-loads"
DEFAULT_LAUNCHER = ("npx", "ts-node")

# =============================================================================
# REPORT FILES
# =============================================================================

REPORT_BASENAME = "test-results-summary"
HTML_REPORT = f"{REPORT_BASENAME}.html"
MARKDOWN_REPORT = f"{REPORT_BASENAME}.md"
DATA_REPORT = f"{REPORT_BASENAME}.json"


def load_environments() -> dict[str, str]:
    """Built-in environments merged with the optional environments file."""
    environments = dict(ENVIRONMENTS)
    path = os.environ.get(ENVIRONMENTS_FILE_VAR)
    if path:
        try:
            with open(path, encoding="utf-8") as f:
                environments.update(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read environments file {path}: {e}")
    return environments


def resolve_base_url(env_name: str, override: Optional[str] = None) -> str:
    """Base URL for an environment, without trailing slash."""
    if override:
        return override.rstrip("/")
    environments = load_environments()
    if env_name not in environments:
        raise ConfigError(
            f"Unknown environment '{env_name}', expected one of {sorted(environments)}"
        )
    return environments[env_name].rstrip("/")


def check_base_url(url: str, timeout: float = 5.0) -> bool:
    """Checks that the target deployment answers at all. Never raises."""
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.warning("base_url_unreachable", url=url, error=str(e))
        return False
    if response.status_code >= 500:
        logger.warning("base_url_unhealthy", url=url, status=response.status_code)
        return False
    return True


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


# =============================================================================
# CONFIGURATION CLASS
# =============================================================================

@dataclass(frozen=True)
class RunnerConfig:
    """Immutable runtime configuration for one process."""

    governance_type: str = GOVERNANCE_TYPES[0]
    governance_types: tuple[str, ...] = GOVERNANCE_TYPES

    # Locations
    project_root: Path = field(default_factory=Path.cwd)
    tests_dir: Optional[Path] = None
    results_dir: Optional[Path] = None
    screenshots_dir: Optional[Path] = None

    # Test files
    test_suffix: str = TEST_SUFFIX
    header_name: str = HEADER_TEST_NAME
    launcher: tuple[str, ...] = DEFAULT_LAUNCHER
    test_files: tuple[str, ...] = ()
    regression_type: Optional[str] = None

    # Execution
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    debug: bool = False
    debug_test_limit: int = DEBUG_TEST_LIMIT
    crash_output_threshold: int = CRASH_OUTPUT_THRESHOLD
    stream_output: bool = True
    preflight: bool = True

    # Target
    env_name: str = DEFAULT_ENV
    base_url: Optional[str] = None
    test_flags: str = ""

    # Reports
    skip_markdown: bool = False
    open_report: bool = True

    def __post_init__(self):
        root = Path(self.project_root).resolve()
        object.__setattr__(self, "project_root", root)
        object.__setattr__(self, "tests_dir", Path(self.tests_dir or root / "tests").resolve())
        object.__setattr__(self, "results_dir", Path(self.results_dir or root / "test-results").resolve())
        if self.screenshots_dir is not None:
            object.__setattr__(self, "screenshots_dir", Path(self.screenshots_dir).resolve())
        object.__setattr__(self, "launcher", tuple(self.launcher))
        object.__setattr__(self, "test_files", tuple(self.test_files))
        object.__setattr__(self, "governance_types", tuple(self.governance_types))

    @classmethod
    def from_env(cls, **overrides) -> "RunnerConfig":
        """Build config from .env / environment variables, then apply overrides."""
        load_dotenv()

        values = {}
        if os.environ.get("MAX_CONCURRENCY"):
            try:
                values["max_concurrency"] = int(os.environ["MAX_CONCURRENCY"])
            except ValueError:
                raise ConfigError(f"MAX_CONCURRENCY must be an integer, got {os.environ['MAX_CONCURRENCY']!r}")
        if os.environ.get("TEST_ENV"):
            values["env_name"] = os.environ["TEST_ENV"]
        if os.environ.get("BASE_URL"):
            values["base_url"] = os.environ["BASE_URL"]
        if os.environ.get("REGRESSION_TYPE"):
            values["regression_type"] = os.environ["REGRESSION_TYPE"]
        if os.environ.get("SCREENSHOTS_DIR"):
            values["screenshots_dir"] = Path(os.environ["SCREENSHOTS_DIR"])
        if os.environ.get("DAO_E2E_RESULTS_DIR"):
            values["results_dir"] = Path(os.environ["DAO_E2E_RESULTS_DIR"])
        if os.environ.get("DAO_E2E_TESTS_DIR"):
            values["tests_dir"] = Path(os.environ["DAO_E2E_TESTS_DIR"])
        if os.environ.get("DAO_E2E_LAUNCHER"):
            values["launcher"] = tuple(shlex.split(os.environ["DAO_E2E_LAUNCHER"]))
        if os.environ.get("DAO_E2E_TEST_SUFFIX"):
            values["test_suffix"] = os.environ["DAO_E2E_TEST_SUFFIX"]
        if _env_flag("SKIP_MARKDOWN"):
            values["skip_markdown"] = True
        if _env_flag("DAO_E2E_NO_PREFLIGHT"):
            values["preflight"] = False
        if _env_flag("DAO_E2E_NO_OPEN"):
            values["open_report"] = False

        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        config.validate()
        return config

    def replace(self, **changes) -> "RunnerConfig":
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        """Raises ConfigError on invalid settings."""
        validate_in(self.governance_type, GOVERNANCE_TYPES, "governance_type")
        for governance_type in self.governance_types:
            validate_in(governance_type, GOVERNANCE_TYPES, "governance_types")
        validate_positive(self.max_concurrency, "max_concurrency")
        validate_positive(self.debug_test_limit, "debug_test_limit")
        if self.crash_output_threshold < 0:
            raise ConfigError("crash_output_threshold must be >= 0")
        if not self.launcher:
            raise ConfigError("launcher cannot be empty")

    @property
    def test_root(self) -> Path:
        """Directory holding the tests of the active governance type."""
        return self.tests_dir / TEST_ROOTS[self.governance_type]

    @property
    def screenshots_path(self) -> Path:
        """screenshots/<governance>/ under the results dir unless overridden."""
        return self.screenshots_dir or self.results_dir / "screenshots" / self.governance_type

    @property
    def test_dao(self) -> TestDao:
        return TEST_DAOS[self.governance_type]

    @property
    def resolved_base_url(self) -> str:
        return resolve_base_url(self.env_name, self.base_url)

    def child_env(self) -> dict[str, str]:
        """Variables added to every test process environment."""
        env = {
            "GOVERNANCE_TYPE": self.governance_type,
            "TEST_FLAGS": self.test_flags,
            "TEST_ENV": self.env_name,
            "TEST_DAO": self.test_dao.value,
            "SCREENSHOTS_DIR": str(self.screenshots_path),
        }
        if self.base_url:
            env["BASE_URL"] = self.base_url.rstrip("/")
        return env
