"""
Tests for argument handling and the harness used by Python test files.
"""

import os
import sys

import pytest

from dao_e2e import cli
from dao_e2e.execution.diagnostics import error_file_path, read_error_file
from dao_e2e.harness import (
    governance_from_argv,
    page_url,
    parse_test_flags,
    run_check,
    test_context,
    write_error_file,
)

ENV_VARS = (
    "MAX_CONCURRENCY", "TEST_ENV", "BASE_URL", "REGRESSION_TYPE", "SCREENSHOTS_DIR",
    "DAO_E2E_RESULTS_DIR", "DAO_E2E_TESTS_DIR", "DAO_E2E_LAUNCHER", "DAO_E2E_TEST_SUFFIX",
    "SKIP_MARKDOWN", "DAO_E2E_NO_OPEN", "DAO_E2E_NO_PREFLIGHT",
    "GOVERNANCE_TYPE", "TEST_FLAGS", "TEST_DAO",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestArguments:
    """build_parser / config_from_args"""

    def test_positionals_split(self):
        tests, flags, debug = cli.split_positionals(
            ["tests/multisig/roles/add-role.test.ts", "debug", "beta=1"]
        )

        assert tests == ["tests/multisig/roles/add-role.test.ts"]
        assert flags == ["beta=1"]
        assert debug

    def test_config_from_args(self, clean_env, tmp_path):
        args = cli.build_parser().parse_args([
            "--governance=multisig",
            "--flags=newNav=true",
            "--max-concurrency=3",
            "--results-dir", str(tmp_path / "out"),
            "--no-open",
            "--no-preflight",
            "beta=1",
        ])

        config = cli.config_from_args(args)

        assert config.governance_type == "multisig"
        assert config.test_flags == "newNav=true,beta=1"
        assert config.max_concurrency == 3
        assert config.results_dir == (tmp_path / "out").resolve()
        assert not config.open_report
        assert not config.preflight
        assert not config.debug

    def test_unknown_governance_rejected(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--governance=dao"])

    def test_child_args(self, clean_env):
        args = cli.build_parser().parse_args(["--debug", "--flags=a=1", "--no-preflight"])
        config = cli.config_from_args(args)

        child_args = cli.child_args_for(config)

        assert "--debug" in child_args
        assert "--flags=a=1" in child_args
        assert "--no-preflight" in child_args
        assert not any(a.startswith("--governance") for a in child_args)

    def test_missing_tests_dir_exits_two(self, clean_env, tmp_path):
        code = cli.main([
            "--governance=erc20",
            "--tests-dir", str(tmp_path / "missing"),
            "--results-dir", str(tmp_path / "out"),
            "--no-open",
            "--no-preflight",
        ])

        assert code == 2

    def test_single_run_exit_code(self, clean_env, tmp_path):
        root = tmp_path / "tests" / "token-voting" / "a"
        root.mkdir(parents=True)
        (root / "header-loads.test.py").write_text("import sys; sys.exit(1)\n", encoding="utf-8")
        clean_env.setenv("DAO_E2E_LAUNCHER", sys.executable)
        clean_env.setenv("DAO_E2E_TEST_SUFFIX", ".test.py")

        code = cli.main(["--governance=erc20", "--no-open", "--no-preflight"])

        assert code == 1
        assert (tmp_path / "test-results" / "test-results-summary.html").exists()


class TestHarness:
    """Child-side helpers"""

    def test_governance_from_argv(self, clean_env):
        assert governance_from_argv(["x.test.py", "--governance=erc721"]) == "erc721"
        clean_env.setenv("GOVERNANCE_TYPE", "multisig")
        assert governance_from_argv([]) == "multisig"

    def test_parse_test_flags(self):
        assert parse_test_flags("a=1, b=two,flag") == {"a": "1", "b": "two", "flag": "true"}
        assert parse_test_flags("") == {}
        assert parse_test_flags(None) == {}

    def test_page_url_adds_flags(self):
        assert page_url("http://localhost:3000/", "/home", {"beta": "1"}) == "http://localhost:3000/home?beta=1"
        assert page_url("http://h/x?y=1", flags={"z": "2"}) == "http://h/x?y=1&z=2"
        assert page_url("http://h", "dao") == "http://h/dao"

    def test_context_from_environment(self, clean_env, tmp_path):
        clean_env.setenv("TEST_FLAGS", "beta=1")
        clean_env.setenv("BASE_URL", "https://app.example/")
        clean_env.setenv("SCREENSHOTS_DIR", str(tmp_path / "shots"))

        ctx = test_context(["--governance=erc721"])

        assert ctx.dao == "sep:0x0BB34D2e76099c72dD26665afE5710980E271382"
        assert ctx.url("dao") == "https://app.example/dao?beta=1"
        assert ctx.screenshot_path("roles/header-loads") == tmp_path / "shots" / "roles" / "header-loads.png"

    def test_run_check_success(self):
        assert run_check(lambda: None) == 0

    def test_run_check_failure_writes_error_file(self, capsys):
        def body():
            raise AssertionError("dao name missing")

        assert run_check(body) == 1
        assert "AssertionError: dao name missing" in capsys.readouterr().err
        assert "dao name missing" in read_error_file(os.getpid())

    def test_run_check_coroutine(self):
        async def body():
            raise RuntimeError("async failure")

        assert run_check(body) == 1
        read_error_file(os.getpid())

    def test_write_error_file(self):
        path = write_error_file("text", pid=123456789)

        assert path == error_file_path(123456789)
        assert read_error_file(123456789) == "text"
