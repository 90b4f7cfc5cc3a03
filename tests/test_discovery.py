"""
Tests for test discovery and page grouping.
"""

from pathlib import Path

import pytest

from dao_e2e.discovery import (
    build_test_files,
    discover_test_files,
    group_tests_by_page,
    has_regression_type,
    logical_name,
    page_of,
)
from dao_e2e.errors import DiscoveryError, GroupingError
from dao_e2e.models.test_file import TestRole

SUFFIX = ".test.py"


def touch(root: Path, relpath: str, content: str = "") -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestDiscovery:
    """discover_test_files"""

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(DiscoveryError) as exc:
            discover_test_files(tmp_path / "nope", SUFFIX)
        assert exc.value.root == tmp_path / "nope"

    def test_file_as_root_raises(self, tmp_path):
        path = touch(tmp_path, "file.txt")
        with pytest.raises(DiscoveryError):
            discover_test_files(path, SUFFIX)

    def test_empty_root_returns_empty_list(self, tmp_path):
        assert discover_test_files(tmp_path, SUFFIX) == []

    def test_only_matching_suffix(self, tmp_path):
        touch(tmp_path, "a/header-loads.test.py")
        touch(tmp_path, "a/helpers.py")
        touch(tmp_path, "a/notes.md")

        found = discover_test_files(tmp_path, SUFFIX)

        assert [p.name for p in found] == ["header-loads.test.py"]
        assert all(p.is_absolute() for p in found)

    def test_sorted_by_directory_then_name(self, tmp_path):
        touch(tmp_path, "b/z.test.py")
        touch(tmp_path, "b/a.test.py")
        touch(tmp_path, "a/y.test.py")
        touch(tmp_path, "a/sub/x.test.py")

        found = discover_test_files(tmp_path, SUFFIX)
        relative = [p.relative_to(tmp_path.resolve()).as_posix() for p in found]

        assert relative == ["a/y.test.py", "a/sub/x.test.py", "b/a.test.py", "b/z.test.py"]

    def test_deterministic(self, tmp_path):
        for rel in ("c/one.test.py", "a/two.test.py", "b/three.test.py", "a/one.test.py"):
            touch(tmp_path, rel)

        assert discover_test_files(tmp_path, SUFFIX) == discover_test_files(tmp_path, SUFFIX)

    def test_hidden_directories_skipped(self, tmp_path):
        touch(tmp_path, ".cache/a.test.py")
        touch(tmp_path, "visible/b.test.py")

        found = discover_test_files(tmp_path, SUFFIX)

        assert [p.name for p in found] == ["b.test.py"]


class TestLogicalNames:
    """logical_name / page_of / build_test_files"""

    def test_governance_prefix_stripped(self, tmp_path):
        tests_dir = tmp_path / "tests"
        path = touch(tests_dir, "token-voting/roles/header-loads.test.ts")

        assert logical_name(path, tests_dir, ".test.ts") == "roles/header-loads"

    def test_non_governance_prefix_kept(self, tmp_path):
        tests_dir = tmp_path / "tests"
        path = touch(tests_dir, "general/can-propose/erc20.test.ts")

        assert logical_name(path, tests_dir, ".test.ts") == "general/can-propose/erc20"

    def test_outside_tests_dir_uses_parent(self, tmp_path):
        path = touch(tmp_path, "elsewhere/page/content-loads.test.ts")

        assert logical_name(path, tmp_path / "tests", ".test.ts") == "page/content-loads"

    def test_page_of(self):
        assert page_of("dao-homepage/header-loads") == "dao-homepage"
        assert page_of("general/create-dao/header-loads") == "general/create-dao"
        assert page_of("standalone") == ""

    def test_build_assigns_roles_and_indexes(self, tmp_path):
        tests_dir = tmp_path / "tests"
        paths = [
            touch(tests_dir, "multisig/roles/content-loads.test.py"),
            touch(tests_dir, "multisig/roles/header-loads.test.py"),
        ]

        files = build_test_files(paths, tests_dir, SUFFIX)

        assert [f.name for f in files] == ["roles/content-loads", "roles/header-loads"]
        assert [f.role for f in files] == [TestRole.CONTENT, TestRole.HEADER]
        assert [f.index for f in files] == [0, 1]
        assert {f.page for f in files} == {"roles"}


class TestRegressionType:
    """has_regression_type"""

    def test_declared_type_matches(self, tmp_path):
        path = touch(tmp_path, "a.test.ts", "const regressionType = ['smoke', 'full'];\n")

        assert has_regression_type(path, "smoke")
        assert has_regression_type(path, "full")
        assert not has_regression_type(path, "nightly")

    def test_python_style_declaration(self, tmp_path):
        path = touch(tmp_path, "a.test.py", 'regression_type = ["smoke"]\n')

        assert has_regression_type(path, "smoke")

    def test_no_declaration(self, tmp_path):
        path = touch(tmp_path, "a.test.ts", "console.log('hi')\n")

        assert not has_regression_type(path, "smoke")

    def test_unreadable_file(self, tmp_path):
        assert not has_regression_type(tmp_path / "missing.test.ts", "smoke")


class TestGrouping:
    """group_tests_by_page"""

    def test_every_file_in_exactly_one_group(self, make_files):
        files = make_files(
            "a/header-loads",
            "a/content-loads",
            "a/extra",
            "b/standalone",
            "c/header-loads",
        )

        groups = group_tests_by_page(files)

        placed = [f for group in groups.values() for f in group.files]
        assert sorted(f.index for f in placed) == [f.index for f in files]
        for group in groups.values():
            assert group.header not in group.content

    def test_header_and_content(self, make_files):
        files = make_files("a/content-loads", "a/header-loads", "a/extra")

        group = group_tests_by_page(files)["a"]

        assert group.header.name == "a/header-loads"
        assert [f.name for f in group.content] == ["a/content-loads", "a/extra"]
        assert len(group) == 3

    def test_page_without_header(self, make_files):
        group = group_tests_by_page(make_files("b/standalone"))["b"]

        assert group.header is None
        assert [f.name for f in group.files] == ["b/standalone"]

    def test_groups_in_first_appearance_order(self, make_files):
        groups = group_tests_by_page(make_files("z/one", "a/two", "z/three"))

        assert list(groups) == ["z", "a"]

    def test_duplicate_header_fails_fast(self, make_files):
        files = make_files("a/header-loads", "a/header-loads")

        with pytest.raises(GroupingError) as exc:
            group_tests_by_page(files)

        assert exc.value.page == "a"
        assert len(exc.value.paths) == 2

    def test_empty_input(self):
        assert group_tests_by_page([]) == {}
