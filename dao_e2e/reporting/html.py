"""
HTML reports.

A standalone page per governance run (summary, stacked pass/fail/skip bar,
result table with collapsible error panels) and the combined page that
stitches several of them together.

The fragments ``<b>Timestamp:</b>``, ``<b>Total run time:</b>``,
``<b>p/t tests passed</b>``, ``title='Failed: n'`` and
``<tr class='data-row'>`` are read back by ``reporting.parser``; keep both
sides in sync.
"""

import re
from html import escape
from pathlib import Path
from typing import Optional

from dao_e2e.models.test_result import CombinedSummary, RunSummary, TestResult
from dao_e2e.reporting.formatting import (
    HTML_LABELS,
    format_duration,
    percent,
    screenshot_href,
)

STYLE = """
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 40px; background: #f5f5f5; }
        .container { max-width: 1200px; margin: 0 auto 30px; background: white; padding: 30px; border-radius: 8px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }
        h1 { color: #333; border-bottom: 2px solid #007bff; padding-bottom: 10px; }
        h2 { color: #555; margin-top: 30px; }
        .bar { display: flex; height: 22px; border-radius: 4px; overflow: hidden; background: #eee; margin: 15px 0; }
        .bar div { height: 100%; }
        .bar-pass { background: #28a745; }
        .bar-fail { background: #dc3545; }
        .bar-skip { background: #ffc107; }
        table { width: 100%; border-collapse: collapse; margin: 20px 0; }
        th, td { padding: 10px; text-align: left; border-bottom: 1px solid #ddd; }
        th { background: #f8f9fa; }
        .pass { color: #28a745; font-weight: bold; }
        .fail { color: #dc3545; font-weight: bold; }
        .skipped { color: #b8860b; font-weight: bold; }
        .norun { color: #6f42c1; font-weight: bold; }
        .error-link { color: #007bff; cursor: pointer; font-size: 0.85em; margin-left: 8px; }
        .error-row pre { white-space: pre-wrap; background: #fdf2f2; padding: 12px; border-radius: 4px; margin: 0; }
"""

# Works for both the plain ids and the governance-prefixed ids of the combined report
SCRIPT = """
        function toggleError(a, b) {
            var prefix = b === undefined ? '' : a + '-';
            var n = b === undefined ? a : b;
            var details = document.getElementById(prefix + 'error-details-' + n);
            var link = document.getElementById(prefix + 'error-link-' + n);
            if (!details) return;
            var hidden = details.style.display === 'none';
            details.style.display = hidden ? 'table-row' : 'none';
            if (link) link.textContent = hidden ? '(hide error)' : '(show error)';
        }
"""

BODY_RE = re.compile(r"<body>([\s\S]*)</body>")


def _document(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{escape(title)}</title>
    <style>{STYLE}    </style>
    <script>{SCRIPT}    </script>
</head>
<body>
{body}
</body>
</html>
"""


def _bar(passed: int, failed: int, skipped: int, total: int) -> str:
    def width(count: int) -> str:
        return percent((count / total) * 100 if total else 0.0)

    return (
        "<div class='bar'>"
        f"<div class='bar-pass' style='width:{width(passed)}%' title='Passed: {passed}'></div>"
        f"<div class='bar-fail' style='width:{width(failed)}%' title='Failed: {failed}'></div>"
        f"<div class='bar-skip' style='width:{width(skipped)}%' title='Skipped: {skipped}'></div>"
        "</div>"
    )


def _rows(results: list[TestResult], results_dir: Optional[Path]) -> list[str]:
    rows = []
    error_number = 0
    for r in results:
        css, label = HTML_LABELS[r.outcome]
        name = escape(r.name)
        runtime = "-" if r.skipped else format_duration(r.duration_ms)

        href = screenshot_href(r, results_dir) if results_dir is not None else None
        screenshot = f"<a href='{escape(href)}' target='_blank'>View</a>" if href else "-"

        if r.failed and r.error_message:
            error_number += 1
            n = error_number
            name += (
                f"<span class='error-link' id='error-link-{n}' "
                f"onclick='toggleError({n})'>(show error)</span>"
            )
            rows.append(
                f"<tr class='data-row'><td>{name}</td><td class='{css}'>{label}</td>"
                f"<td>{runtime}</td><td>{screenshot}</td></tr>"
            )
            rows.append(
                f"<tr class='error-row' id='error-details-{n}' style='display:none'>"
                f"<td colspan='4'><pre>{escape(r.error_message)}</pre></td></tr>"
            )
        else:
            rows.append(
                f"<tr class='data-row'><td>{name}</td><td class='{css}'>{label}</td>"
                f"<td>{runtime}</td><td>{screenshot}</td></tr>"
            )
    return rows


def render_html_body(
    results: list[TestResult],
    summary: RunSummary,
    governance_type: str,
    timestamp: str,
    results_dir: Optional[Path] = None,
) -> str:
    """The report container, without the surrounding document."""
    rows = "\n".join(_rows(results, results_dir))
    crashed = (
        f"<p class='norun'>{summary.crashed_count} test(s) did not run (process crashed)</p>\n"
        if summary.crashed_count else ""
    )
    return f"""<div class="container">
<h1>Test Results Summary ({escape(governance_type)})</h1>
<p><b>Timestamp:</b> {escape(timestamp)}</p>
<p><b>Total run time:</b> {format_duration(summary.run_time_ms)}</p>
<p><b>{summary.passed_count}/{summary.total_count} tests passed</b></p>
{crashed}{_bar(summary.passed_count, summary.failed_count, summary.skipped_count, summary.total_count)}
<table>
<tr><th>Test Name</th><th>Result</th><th>Run Time</th><th>Screenshot</th></tr>
{rows}
</table>
</div>"""


def render_html(
    results: list[TestResult],
    summary: RunSummary,
    governance_type: str,
    timestamp: str,
    results_dir: Optional[Path] = None,
) -> str:
    """
    Standalone HTML report of one governance run.

    Error panel ids are numbered in row order, so the same results always
    render the same document.
    """
    body = render_html_body(results, summary, governance_type, timestamp, results_dir)
    return _document(f"Test Results - {governance_type}", body)


def extract_body(document: str) -> str:
    """Inner body of a rendered report; the text itself if there is no body tag."""
    match = BODY_RE.search(document)
    return match.group(1).strip() if match else document.strip()


def namespace_report(document: str, governance_type: str) -> str:
    """
    Makes a sub-report safe to embed next to others.

    Error anchors and toggle calls get a governance prefix and screenshot
    links are re-rooted under that governance type's screenshot directory.
    """
    gov = re.escape(governance_type)
    body = extract_body(document)
    body = re.sub(rf"href='screenshots/(?!{gov}/)", f"href='screenshots/{governance_type}/", body)
    body = re.sub(r"id='error-(link|details)-(\d+)'", rf"id='{governance_type}-error-\1-\2'", body)
    body = re.sub(
        r"onclick='toggleError\((\d+)\)'",
        lambda m: f"onclick=\"toggleError('{governance_type}', {m.group(1)})\"",
        body,
    )
    return body


def render_combined_html(combined: CombinedSummary, snapshots: dict[str, str]) -> str:
    """
    Combined HTML report across governance types.

    Args:
        combined: Merged summary of every governance run
        snapshots: Rendered HTML report per governance type, as read from
            disk right after that run finished

    Returns:
        HTML document with a cumulative banner followed by each sub-report
    """
    banner = f"""<div class="container">
<h1>All Governance Test Results</h1>
<p><b>Timestamp:</b> {escape(combined.first_timestamp or '-')}</p>
<p><b>Total run time:</b> {format_duration(combined.total_run_time_ms)}</p>
<p><b>{combined.total_passed}/{combined.total_count} tests passed</b> ({combined.percent_passed:.1f}%)</p>
{_bar(combined.total_passed, combined.total_failed, combined.total_skipped, combined.total_count)}
<p>Governance types: {escape(', '.join(combined.governance_types))}</p>
</div>"""

    sections = [banner]
    for governance_type in combined.governance_types:
        snapshot = snapshots.get(governance_type)
        if not snapshot:
            sections.append(
                f"<h2>Results for governance: {escape(governance_type)}</h2>\n"
                "<div class=\"container\"><p>No report was produced for this run.</p></div>"
            )
            continue
        sections.append(
            f"<h2>Results for governance: {escape(governance_type)}</h2>\n"
            + namespace_report(snapshot, governance_type)
        )

    return _document("All Governance Test Results", "\n".join(sections))
