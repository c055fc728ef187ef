"""Report renderers: console text, GitHub Actions and JSON."""

from ..models import RunReport
from .console import render_console
from .github import render_annotations, render_job_summary, write_job_summary
from .json_report import build_json_report, render_json


def exit_code(report: RunReport) -> int:
    """Process exit status for a finished run, identical for every format."""
    return 0 if report.summary.passed else 1


__all__ = [
    "build_json_report",
    "exit_code",
    "render_annotations",
    "render_console",
    "render_job_summary",
    "render_json",
    "write_job_summary",
]
