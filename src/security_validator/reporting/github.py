"""GitHub Actions workflow annotations and job summary."""

import logging
from pathlib import Path
from typing import Optional

from ..config import CATEGORY_SETTINGS
from ..models import RunReport, Severity

logger = logging.getLogger(__name__)

PREVIEW_MAX_LENGTH = 60
PREVIEW_MIN_LENGTH = 20
PREVIEW_LEAD_WORDS = ("Example", "See", "Add", "Use", "Create", "Sanitize", "Never")


def _escape_data(text: str) -> str:
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def annotation(
    level: str,
    message: str,
    file: Optional[str] = None,
    line: Optional[int] = None,
    title: Optional[str] = None,
) -> str:
    """Format a ``::error``/``::warning`` workflow command."""
    properties = []
    if file:
        properties.append(f"file={file}")
    if line is not None:
        properties.append(f"line={line}")
    if title:
        properties.append(f"title={title}")
    head = f"::{level} {','.join(properties)}" if properties else f"::{level}"
    return f"{head}::{_escape_data(message)}"


def render_annotations(report: RunReport) -> list[str]:
    """One annotation per finding, followed by any budget warning."""
    lines = []
    for result in report.results:
        level = "error" if result.severity == Severity.error else "warning"
        for finding in result.findings:
            lines.append(annotation(
                level,
                finding.message,
                file=finding.file,
                line=finding.line,
                title=f"Security: {result.name}",
            ))

    budget = report.budget
    if budget.warnings:
        title = "Security Validation Timeout" if budget.over_limit else "Security Validation Slow"
        for warning in budget.warnings:
            lines.append(annotation("warning", warning, title=title))
    return lines


def remediation_preview(remediation: str) -> str:
    """Short single-line preview of a remediation text for a table cell."""
    first_line = remediation.split("\n", 1)[0].strip()
    cleaned = first_line
    for word in PREVIEW_LEAD_WORDS:
        if cleaned.lower().startswith(word.lower()):
            cleaned = cleaned[len(word):].lstrip(":").strip()
            break

    if len(cleaned) > PREVIEW_MAX_LENGTH:
        return cleaned[:PREVIEW_MAX_LENGTH - 3] + "..."
    if len(cleaned) < PREVIEW_MIN_LENGTH:
        return first_line[:PREVIEW_MAX_LENGTH]
    return cleaned


def render_job_summary(report: RunReport) -> str:
    """Markdown job summary for ``$GITHUB_STEP_SUMMARY``."""
    md = ["# 🔒 Security Validation Report", "", "## Summary", ""]
    md.append("| Check | Severity | Status | Issues |")
    md.append("|-------|----------|--------|--------|")

    results = {result.category: result for result in report.results}
    for category, settings in CATEGORY_SETTINGS.items():
        if category in report.disabled:
            md.append(f"| {settings.name} | - | ⏭️ Disabled | - |")
            continue
        result = results.get(category)
        if result is None:
            continue
        is_error = result.severity == Severity.error
        severity_label = "🔴 Error" if is_error else "🟡 Warning"
        if result.passed:
            status = "✅ Pass"
        elif is_error:
            status = "❌ Failed"
        else:
            status = "⚠️ Warning"
        md.append(f"| {result.name} | {severity_label} | {status} | {len(result.findings)} |")
    md.append("")

    summary = report.summary
    if summary.errors:
        md.append(f"> **❌ Validation Failed** - {summary.errors} error(s) must be fixed before merge")
    elif summary.warnings:
        md.append(f"> **⚠️ Passed with Warnings** - {summary.warnings} warning(s) should be reviewed")
    else:
        md.append("> **✅ All Checks Passed**")
    md.append("")

    failing = [result for result in report.results if result.findings]
    if failing:
        md.append("## Issues Details")
        md.append("")
    for result in failing:
        icon = "❌" if result.severity == Severity.error else "⚠️"
        md.append(f"### {icon} {result.name}")
        md.append("")
        md.append("| File | Issue | Remediation |")
        md.append("|------|-------|-------------|")
        for finding in result.findings:
            md.append(
                f"| `{finding.location}` | {_escape_cell(finding.message)} "
                f"| {remediation_preview(finding.remediation)} |"
            )
        md.append("")
        md.append("<details>")
        md.append("<summary>📚 Full Remediation Details</summary>")
        md.append("")
        for number, finding in enumerate(result.findings, start=1):
            md.append(f"#### Issue {number}: `{finding.location}`")
            md.append("")
            md.append("```")
            md.append(finding.remediation)
            md.append("```")
            md.append("")
        md.append("</details>")
        md.append("")

    if report.overrides:
        md.append("## 🔓 Security Overrides Applied")
        md.append("")
        md.append("| File | Check Type | Reason |")
        md.append("|------|------------|--------|")
        for waiver in report.overrides:
            md.append(f"| `{waiver.location}` | {waiver.check_type} | {_escape_cell(waiver.reason)} |")
        md.append("")

    md.append("---")
    md.append("*Generated by Security Pattern Validator*")
    md.append("")
    return "\n".join(md)


def write_job_summary(report: RunReport, path: str | Path) -> bool:
    """Append the job summary to ``path``. Failures are logged, not raised."""
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(render_job_summary(report))
    except OSError as e:
        logger.warning(f"Failed to write GitHub summary: {e}")
        return False
    return True
