"""
Test discovery and grouping.

Exports:
- discover_test_files, build_test_files: find test files on disk
- has_regression_type: regression type filter
- group_tests_by_page: header/content partition per page
"""

from dao_e2e.discovery.finder import (
    discover_test_files,
    build_test_files,
    logical_name,
    page_of,
    has_regression_type,
    resolve_test_arguments,
)
from dao_e2e.discovery.grouping import group_tests_by_page

__all__ = [
    "discover_test_files",
    "build_test_files",
    "logical_name",
    "page_of",
    "has_regression_type",
    "resolve_test_arguments",
    "group_tests_by_page",
]
