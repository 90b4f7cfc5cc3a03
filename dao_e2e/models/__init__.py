"""
Data models for the orchestration layer.

Exports:
- TestFile, TestGroup, TestRole (test_file.py)
- TestResult, RunSummary, GovernanceRunRecord, CombinedSummary (test_result.py)
"""

from .test_file import (
    TestFile,
    TestGroup,
    TestRole,
)

from .test_result import (
    HEADER_SKIP_MESSAGE,
    TestOutcome,
    TestResult,
    RunSummary,
    GovernanceRunRecord,
    CombinedEntry,
    CombinedSummary,
)

__all__ = [
    # Enums
    "TestRole",
    "TestOutcome",
    # Discovery
    "TestFile",
    "TestGroup",
    # Results
    "HEADER_SKIP_MESSAGE",
    "TestResult",
    "RunSummary",
    "GovernanceRunRecord",
    "CombinedEntry",
    "CombinedSummary",
]
