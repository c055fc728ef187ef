"""Machine-readable JSON report."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import DOCS
from ..models import RunReport, Severity


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JsonIssue(_CamelModel):
    file: str = Field(description="File path relative to the project root")
    line: Optional[int] = None
    message: str
    remediation: str


class JsonCheck(_CamelModel):
    name: str
    severity: Severity
    passed: bool
    issue_count: int
    issues: list[JsonIssue] = Field(default_factory=list)


class JsonOverride(_CamelModel):
    file: str = Field(description="'path:line' for line waivers, 'path' for file waivers")
    check_type: str
    reason: str


class JsonSummary(_CamelModel):
    passed: bool
    total_checks: int
    total_issues: int
    errors: int
    warnings: int
    overrides_applied: int


class JsonReport(_CamelModel):
    version: str
    timestamp: str
    execution_time_ms: int
    summary: JsonSummary
    checks: dict[str, JsonCheck] = Field(default_factory=dict)
    overrides: list[JsonOverride] = Field(default_factory=list)
    documentation: dict[str, str] = Field(default_factory=dict)


def build_json_report(report: RunReport) -> JsonReport:
    checks = {
        result.category.value: JsonCheck(
            name=result.name,
            severity=result.severity,
            passed=result.passed,
            issue_count=len(result.findings),
            issues=[
                JsonIssue(file=f.file, line=f.line, message=f.message, remediation=f.remediation)
                for f in result.findings
            ],
        )
        for result in report.results
    }
    summary = report.summary
    return JsonReport(
        version=report.version,
        timestamp=report.timestamp.isoformat(),
        execution_time_ms=report.budget.elapsed_ms,
        summary=JsonSummary(
            passed=summary.passed,
            total_checks=summary.total_checks,
            total_issues=summary.total_issues,
            errors=summary.errors,
            warnings=summary.warnings,
            overrides_applied=summary.overrides_applied,
        ),
        checks=checks,
        overrides=[
            JsonOverride(file=w.location, check_type=w.check_type, reason=w.reason)
            for w in report.overrides
        ],
        documentation=dict(DOCS),
    )


def render_json(report: RunReport) -> str:
    """Serialize the report as a single JSON document."""
    return build_json_report(report).model_dump_json(by_alias=True, indent=2)
