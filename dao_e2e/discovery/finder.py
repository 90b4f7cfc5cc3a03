"""
Test file discovery.

Walks a governance test root and turns every file that follows the test
naming convention into a TestFile, in a deterministic order.
"""

import os
import re
from pathlib import Path
from typing import Iterable, Optional, Sequence

from dao_e2e.config import GOVERNANCE_PREFIXES, HEADER_TEST_NAME, TEST_SUFFIX
from dao_e2e.errors import DiscoveryError
from dao_e2e.models.test_file import TestFile, TestRole
from dao_e2e.utils import get_logger

logger = get_logger(__name__)

REGRESSION_TYPE_RE = re.compile(r"regression_?[tT]ype\s*=\s*\[([^\]]*)\]")
QUOTED_RE = re.compile(r"['\"]([^'\"]+)['\"]")


def discover_test_files(root, suffix: str = TEST_SUFFIX) -> list[Path]:
    """
    Recursively finds test files under a directory.

    Args:
        root: Directory to walk
        suffix: File name suffix of test files

    Returns:
        Absolute paths sorted by containing directory, then file name

    Raises:
        DiscoveryError: If root does not exist or is not a directory
    """
    root = Path(root)
    if not root.is_dir():
        raise DiscoveryError(root)

    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        for filename in filenames:
            if filename.endswith(suffix):
                found.append(Path(dirpath, filename).resolve())

    return sorted(found, key=lambda p: (str(p.parent), p.name))


def logical_name(
    path: Path,
    tests_dir: Optional[Path] = None,
    suffix: str = TEST_SUFFIX,
    prefixes: Iterable[str] = GOVERNANCE_PREFIXES,
) -> str:
    """
    Report name of a test file.

    The path relative to the tests directory, with "/" separators, without a
    leading governance directory and without the test suffix.
    e.g. tests/token-voting/roles/header-loads.test.ts -> roles/header-loads
    """
    path = Path(path)
    parts = None
    if tests_dir is not None:
        try:
            parts = list(path.resolve().relative_to(Path(tests_dir).resolve()).parts)
        except ValueError:
            parts = None
    if parts is None:
        parts = [path.parent.name, path.name] if path.parent.name else [path.name]

    if len(parts) > 1 and parts[0] in set(prefixes):
        parts = parts[1:]

    name = "/".join(parts)
    if name.endswith(suffix):
        name = name[: -len(suffix)]
    return name


def page_of(name: str) -> str:
    """Logical page of a test: its name without the last component."""
    return name.rsplit("/", 1)[0] if "/" in name else ""


def build_test_files(
    paths: Sequence[Path],
    tests_dir: Optional[Path] = None,
    suffix: str = TEST_SUFFIX,
    header_name: str = HEADER_TEST_NAME,
    prefixes: Iterable[str] = GOVERNANCE_PREFIXES,
) -> list[TestFile]:
    """Turns ordered paths into TestFile objects, keeping the order."""
    prefixes = tuple(prefixes)
    files = []
    for index, path in enumerate(paths):
        path = Path(path).resolve()
        name = logical_name(path, tests_dir, suffix, prefixes)
        stem = name.rsplit("/", 1)[-1]
        files.append(TestFile(
            path=path,
            page=page_of(name),
            name=name,
            role=TestRole.HEADER if stem == header_name else TestRole.CONTENT,
            index=index,
        ))
    return files


def has_regression_type(path, regression_type: str) -> bool:
    """
    Checks whether a test file declares a regression type.

    Looks for a declaration such as ``const regressionType = ['smoke', 'full']``.
    Unreadable files and files without a declaration do not match.
    """
    try:
        content = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("regression_type_unreadable", path=str(path), error=str(e))
        return False

    match = REGRESSION_TYPE_RE.search(content)
    if not match:
        return False
    return regression_type in QUOTED_RE.findall(match.group(1))


def resolve_test_arguments(arguments: Iterable[str], cwd: Optional[Path] = None) -> list[Path]:
    """Explicit test file arguments as absolute paths, in the given order."""
    cwd = Path(cwd or Path.cwd())
    resolved = []
    for argument in arguments:
        path = Path(argument)
        resolved.append(path if path.is_absolute() else (cwd / path).resolve())
    return resolved
