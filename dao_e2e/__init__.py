"""
DAO e2e - Test orchestration for the governance browser test suite

Modules:
- discovery: finds test files and groups them by page
- execution: process executor, worker pool scheduler, multi-governance combiner
- reporting: HTML, Markdown and JSON reports
- harness: helpers for test files written in Python
"""

__version__ = "0.1.0"

from .config import RunnerConfig
from .errors import (
    OrchestrationError,
    ConfigError,
    DiscoveryError,
    GroupingError,
    AggregationParseError,
)

__all__ = [
    "RunnerConfig",
    "OrchestrationError",
    "ConfigError",
    "DiscoveryError",
    "GroupingError",
    "AggregationParseError",
    "__version__",
]
