"""
Report rendering and writing.

Exports:
- render_markdown, render_combined_markdown (markdown.py)
- render_html, render_combined_html (html.py)
- parse_html_report (parser.py)
- ReportWriter, open_in_browser (reporter.py)
"""

from .formatting import format_duration, format_timestamp, parse_duration
from .markdown import render_markdown, render_combined_markdown
from .html import render_html, render_combined_html, namespace_report
from .parser import parse_html_report
from .reporter import ReportPaths, ReportWriter, open_in_browser

__all__ = [
    "format_duration",
    "format_timestamp",
    "parse_duration",
    "render_markdown",
    "render_combined_markdown",
    "render_html",
    "render_combined_html",
    "namespace_report",
    "parse_html_report",
    "ReportPaths",
    "ReportWriter",
    "open_in_browser",
]
