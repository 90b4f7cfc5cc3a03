"""
Exceptions raised by the orchestration layer.

Only setup-time problems are exceptions. Per-test failures, crashes and
header skips are outcomes recorded on a TestResult and never escape the
scheduler.
"""


class OrchestrationError(Exception):
    """Base class for errors that abort a run."""
    pass


class ConfigError(OrchestrationError, ValueError):
    """Invalid runner configuration (governance type, concurrency, env)."""
    pass


class DiscoveryError(OrchestrationError):
    """Test root directory missing or not a directory."""

    def __init__(self, root, message: str = None):
        self.root = root
        super().__init__(message or f"Test directory not found: {root}")


class GroupingError(OrchestrationError):
    """A page declares more than one header test."""

    def __init__(self, page: str, paths: list):
        self.page = page
        self.paths = list(paths)
        joined = ", ".join(str(p) for p in self.paths)
        super().__init__(f"Page '{page}' has more than one header test: {joined}")


class AggregationParseError(OrchestrationError):
    """An expected fragment was not found in a rendered sub-run report."""

    def __init__(self, fragment: str, source: str = "report"):
        self.fragment = fragment
        self.source = source
        super().__init__(f"Fragment '{fragment}' not found in {source}")
