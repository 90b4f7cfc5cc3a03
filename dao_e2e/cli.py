#!/usr/bin/env python3
"""Governance e2e test runner CLI.

Runs the browser test suite for one governance fixture, or for all of them
with a combined report.

Usage:
    dao-e2e                                   # All governance types, combined report
    dao-e2e --governance=multisig             # One governance type
    dao-e2e --governance=erc20 --debug        # First tests only, buffered output
    dao-e2e --flags=newNav=true,beta=1        # Feature flags for every page load
    dao-e2e tests/multisig/roles/add-role.test.ts
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from dao_e2e.config import GOVERNANCE_TYPES, TEST_SUFFIX, RunnerConfig
from dao_e2e.errors import OrchestrationError
from dao_e2e.execution.combiner import MultiRunCombiner
from dao_e2e.runner import GovernanceTestRunner
from dao_e2e.utils import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dao-e2e",
        description="Governance end-to-end test runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dao-e2e                               Run every governance type
  dao-e2e --governance=erc721           Run one governance type
  dao-e2e --env=staging --debug         Debug run against staging
  dao-e2e path/to/page/header-loads.test.ts
""",
    )
    parser.add_argument(
        "--governance",
        choices=GOVERNANCE_TYPES,
        help="Governance fixture to test (default: all, with a combined report)",
    )
    parser.add_argument("--debug", action="store_true", help="Run the first tests only, with buffered output")
    parser.add_argument("--flags", default=None, help="Feature flags as k=v,k2=v2 (passed to every test)")
    parser.add_argument("--env", dest="env_name", default=None, help="Target environment name")
    parser.add_argument("--base-url", default=None, help="Override the target base URL")
    parser.add_argument("--max-concurrency", type=int, default=None, help="Tests running at the same time")
    parser.add_argument("--results-dir", default=None, help="Report directory (default: ./test-results)")
    parser.add_argument("--tests-dir", default=None, help="Tests directory (default: ./tests)")
    parser.add_argument("--crash-threshold", type=int, default=None,
                        help="Output length below which a silent failure counts as a crash")
    parser.add_argument("--no-open", action="store_true", help="Do not open the HTML report")
    parser.add_argument("--no-markdown", action="store_true", help="Do not write the Markdown report")
    parser.add_argument("--no-preflight", action="store_true", help="Skip the base URL reachability check")
    parser.add_argument(
        "tests",
        nargs="*",
        help=f"Test files (*{TEST_SUFFIX}) to run; other words are read as flags",
    )
    return parser


def split_positionals(words: Sequence[str], suffix: str = TEST_SUFFIX) -> tuple[list[str], list[str], bool]:
    """
    Sorts positional words into test files, flag assignments and a debug switch.

    npm-style invocations pass "debug" or "k=v" as bare words.
    """
    tests, flags, debug = [], [], False
    for word in words:
        if word.endswith(suffix):
            tests.append(word)
        elif word in ("debug", "--debug"):
            debug = True
        elif word:
            flags.append(word)
    return tests, flags, debug


def config_from_args(args: argparse.Namespace) -> RunnerConfig:
    """RunnerConfig from .env, the environment and the parsed arguments."""
    defaults = RunnerConfig.from_env()
    tests, extra_flags, bare_debug = split_positionals(args.tests, defaults.test_suffix)

    flags = [f for f in (args.flags or "").split(",") if f]
    flags.extend(extra_flags)

    overrides = {
        "debug": args.debug or bare_debug or None,
        "test_flags": ",".join(flags) or None,
        "env_name": args.env_name,
        "base_url": args.base_url,
        "max_concurrency": args.max_concurrency,
        "results_dir": args.results_dir,
        "tests_dir": args.tests_dir,
        "crash_output_threshold": args.crash_threshold,
        "test_files": tuple(tests) or None,
    }
    if args.governance:
        overrides["governance_type"] = args.governance
    if args.no_open:
        overrides["open_report"] = False
    if args.no_markdown:
        overrides["skip_markdown"] = True
    if args.no_preflight:
        overrides["preflight"] = False

    return RunnerConfig.from_env(**overrides)


def child_args_for(config: RunnerConfig) -> list[str]:
    """Arguments forwarded to each governance child of a combined run."""
    args = []
    if config.debug:
        args.append("--debug")
    if config.test_flags:
        args.append(f"--flags={config.test_flags}")
    args.append(f"--crash-threshold={config.crash_output_threshold}")
    if not config.preflight:
        args.append("--no-preflight")
    args.extend(config.test_files)
    return args


async def run(config: RunnerConfig, single: bool) -> int:
    if single:
        outcome = await GovernanceTestRunner(config).run()
        return outcome.exit_code

    combiner = MultiRunCombiner(config, child_args_for(config))
    outcome = await combiner.run()
    return outcome.exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    bare_debug = split_positionals(args.tests)[2]
    configure_logging(logging.DEBUG if (args.debug or bare_debug) else logging.INFO)

    try:
        config = config_from_args(args)
        return asyncio.run(run(config, single=args.governance is not None))
    except OrchestrationError as e:
        logger.error("run_aborted", error=str(e), error_type=type(e).__name__)
        return 2
    except KeyboardInterrupt:
        logger.warning("run_interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
