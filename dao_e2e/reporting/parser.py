"""
Reads a rendered HTML report back into a GovernanceRunRecord.

Only used when a sub-run left no JSON record behind (older runner, crashed
child). Pattern-matches the fragments written by ``reporting.html``.
"""

import re
from html import unescape
from typing import Optional

from dao_e2e.errors import AggregationParseError
from dao_e2e.models.test_result import GovernanceRunRecord, RunSummary, TestOutcome, TestResult
from dao_e2e.reporting.formatting import LABEL_OUTCOMES, parse_duration

ROW_RE = re.compile(
    r"<tr class='data-row'><td>(.*?)</td><td class='[^']*'>([^<]+)</td>"
    r"<td>([^<]*)</td><td>(.*?)</td></tr>"
)
SPAN_RE = re.compile(r"<span.*?</span>")
HREF_RE = re.compile(r"href='([^']+)'")

TIMESTAMP_RE = re.compile(r"<b>Timestamp:</b> ([^<]+)</p>")
RUN_TIME_RE = re.compile(r"<b>Total run time:</b> ([^<]+)</p>")
PASSED_RE = re.compile(r"<b>(\d+)/(\d+) tests passed</b>")
FAILED_RE = re.compile(r"title='Failed: (\d+)'")
SKIPPED_RE = re.compile(r"title='Skipped: (\d+)'")


def _require(pattern: re.Pattern, html: str, fragment: str, source: str) -> re.Match:
    match = pattern.search(html)
    if not match:
        raise AggregationParseError(fragment, source)
    return match


def parse_rows(html: str) -> list[TestResult]:
    """Per-test rows of a report, in table order."""
    results = []
    for index, match in enumerate(ROW_RE.finditer(html)):
        name = unescape(SPAN_RE.sub("", match.group(1))).strip()
        outcome = LABEL_OUTCOMES.get(match.group(2).strip(), TestOutcome.FAILED)

        runtime = match.group(3).strip()
        try:
            duration_ms = int(parse_duration(runtime) * 1000)
        except ValueError:
            duration_ms = 0

        href = HREF_RE.search(match.group(4))
        screenshot = unescape(href.group(1)) if href else None

        if outcome == TestOutcome.SKIPPED:
            results.append(TestResult.header_skip(name=name, index=index))
            continue

        results.append(TestResult(
            name=name,
            passed=outcome == TestOutcome.PASSED,
            crashed=outcome == TestOutcome.CRASHED,
            screenshot_path=screenshot,
            duration_ms=duration_ms,
            index=index,
        ))
    return results


def parse_html_report(html: str, governance_type: str, exit_code: Optional[int] = None) -> GovernanceRunRecord:
    """
    Extracts statistics and rows from a single-run HTML report.

    Raises:
        AggregationParseError: If a summary fragment is missing
    """
    source = f"{governance_type} HTML report"

    timestamp = _require(TIMESTAMP_RE, html, "Timestamp", source).group(1).strip()
    run_time = _require(RUN_TIME_RE, html, "Total run time", source).group(1).strip()
    passed = _require(PASSED_RE, html, "tests passed", source)
    failed = _require(FAILED_RE, html, "Failed", source)
    skipped = _require(SKIPPED_RE, html, "Skipped", source)

    try:
        wall_clock_ms = int(parse_duration(run_time) * 1000)
    except ValueError:
        raise AggregationParseError("Total run time", source)

    results = parse_rows(html)
    summary = RunSummary(
        total_count=int(passed.group(2)),
        passed_count=int(passed.group(1)),
        failed_count=int(failed.group(1)),
        skipped_count=int(skipped.group(1)),
        crashed_count=sum(1 for r in results if r.crashed),
        total_duration_ms=sum(r.duration_ms for r in results),
        wall_clock_ms=wall_clock_ms,
    )

    return GovernanceRunRecord(
        governance_type=governance_type,
        timestamp=timestamp,
        run_time=run_time,
        summary=summary,
        results=results,
        exit_code=exit_code,
    )
