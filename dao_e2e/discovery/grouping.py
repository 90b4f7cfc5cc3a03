"""
Grouping of test files by logical page.

A page's header test gates its content tests: when the header fails,
the content tests are recorded as skipped without being run.
"""

from typing import Iterable

from dao_e2e.errors import GroupingError
from dao_e2e.models.test_file import TestFile, TestGroup


def group_tests_by_page(files: Iterable[TestFile]) -> dict[str, TestGroup]:
    """
    Partitions test files into page groups.

    Args:
        files: Test files in discovery order

    Returns:
        Page name -> TestGroup, in order of first appearance

    Raises:
        GroupingError: If a page has more than one header test
    """
    groups: dict[str, TestGroup] = {}
    for test_file in files:
        group = groups.get(test_file.page)
        if group is None:
            group = groups[test_file.page] = TestGroup(page=test_file.page)

        if test_file.is_header:
            if group.header is not None:
                raise GroupingError(test_file.page, [group.header.path, test_file.path])
            group.header = test_file
        else:
            group.content.append(test_file)

    return groups
