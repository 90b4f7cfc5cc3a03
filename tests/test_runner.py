"""
Tests for the single governance run, including the full example run.
"""

import json

import pytest

from conftest import FakeExecutor

from dao_e2e.errors import DiscoveryError
from dao_e2e.runner import GovernanceTestRunner


class TestEndToEnd:
    """Discovery -> grouping -> pool -> reports with real processes."""

    @pytest.mark.asyncio
    async def test_example_run(self, config, write_test):
        write_test("token-voting/a/header-loads", """
            import time
            time.sleep(0.12)
            print("header loaded")
        """)
        write_test("token-voting/a/content-loads", """
            import time
            time.sleep(0.08)
            print("content loaded")
        """)
        write_test("token-voting/b/standalone", """
            import sys, time
            time.sleep(0.2)
            print("TimeoutError: element not found")
            sys.exit(1)
        """)

        outcome = await GovernanceTestRunner(config.replace(max_concurrency=2)).run()

        assert [r.name for r in outcome.results] == ["a/content-loads", "a/header-loads", "b/standalone"]
        assert outcome.summary.passed_count == 2
        assert outcome.summary.total_count == 3
        assert outcome.exit_code == 1

        by_name = {r.name: r for r in outcome.results}
        assert by_name["a/header-loads"].passed
        assert by_name["a/content-loads"].passed
        standalone = by_name["b/standalone"]
        assert not standalone.crashed
        assert standalone.error_message.startswith("TimeoutError: element not found")

        markdown = outcome.paths.markdown.read_text(encoding="utf-8")
        assert "**2/3 tests passed**" in markdown
        html = outcome.paths.html.read_text(encoding="utf-8")
        assert "<b>2/3 tests passed</b>" in html
        assert "<pre>TimeoutError: element not found" in html
        data = json.loads(outcome.paths.data.read_text(encoding="utf-8"))
        assert data["exit_code"] == 1

    @pytest.mark.asyncio
    async def test_all_passing_exits_zero(self, config, write_test):
        write_test("token-voting/a/header-loads", "print('ok')\n")

        outcome = await GovernanceTestRunner(config).run()

        assert outcome.exit_code == 0

    @pytest.mark.asyncio
    async def test_header_failure_skips_page(self, config, write_test):
        write_test("token-voting/a/header-loads", "raise AssertionError('header missing')\n")
        write_test("token-voting/a/content-loads", "print('never runs')\n")

        runner = GovernanceTestRunner(config)
        outcome = await runner.run()

        assert runner.executor.spawn_count == 1
        by_name = {r.name: r for r in outcome.results}
        assert by_name["a/content-loads"].skipped
        assert not by_name["a/header-loads"].passed
        assert outcome.summary.skipped_count == 1
        assert outcome.exit_code == 1


class TestSelection:
    """select_tests"""

    def test_multisig_uses_its_own_root(self, config, write_test):
        write_test("token-voting/a/header-loads", "")
        write_test("multisig/m/header-loads", "")

        files = GovernanceTestRunner(config.replace(governance_type="multisig")).select_tests()

        assert [f.name for f in files] == ["m/header-loads"]

    def test_debug_truncates(self, config, write_test):
        for i in range(8):
            write_test(f"token-voting/p{i}/check", "")

        files = GovernanceTestRunner(config.replace(debug=True)).select_tests()

        assert len(files) == 5
        assert [f.name for f in files] == [f"p{i}/check" for i in range(5)]

    def test_regression_filter(self, config, write_test):
        write_test("token-voting/a/smoke", "regression_type = ['smoke']\n")
        write_test("token-voting/a/full", "regression_type = ['full']\n")
        write_test("token-voting/a/none", "")

        files = GovernanceTestRunner(config.replace(regression_type="smoke")).select_tests()

        assert [f.name for f in files] == ["a/smoke"]

    def test_explicit_files(self, config, write_test):
        write_test("token-voting/a/header-loads", "")
        target = write_test("token-voting/b/check", "")

        runner = GovernanceTestRunner(config.replace(test_files=(str(target),)))

        assert [f.name for f in runner.select_tests()] == ["b/check"]
        assert not runner.group_by_page

    def test_missing_explicit_file(self, config):
        runner = GovernanceTestRunner(config.replace(test_files=("tests/nope.test.py",)))

        with pytest.raises(DiscoveryError):
            runner.select_tests()

    def test_missing_root(self, config, project):
        (project / "tests" / "multisig").rmdir()

        with pytest.raises(DiscoveryError):
            GovernanceTestRunner(config.replace(governance_type="multisig")).select_tests()


class TestRunnerSetup:
    """Setup errors and side effects"""

    @pytest.mark.asyncio
    async def test_stale_screenshots_cleared(self, config, write_test):
        stale = config.screenshots_path / "old" / "page.png"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"png")
        write_test("token-voting/a/header-loads", "")

        await GovernanceTestRunner(config, executor=FakeExecutor()).run()

        assert not stale.exists()
        assert not stale.parent.exists()

    @pytest.mark.asyncio
    async def test_no_tests_is_success(self, config):
        outcome = await GovernanceTestRunner(config, executor=FakeExecutor()).run()

        assert outcome.results == []
        assert outcome.exit_code == 0
