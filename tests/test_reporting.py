"""Tests for console, GitHub Actions and JSON rendering."""

import json
import logging
import re
from datetime import datetime, timezone

import pytest

from security_validator.aggregator import aggregate
from security_validator.models import (
    BudgetStatus,
    CheckCategory,
    CheckResult,
    Finding,
    Severity,
    Waiver,
    WaiverScope,
)
from security_validator.reporting import (
    exit_code,
    render_annotations,
    render_console,
    render_job_summary,
    render_json,
    write_job_summary,
)
from security_validator.reporting.github import annotation, remediation_preview

TIMESTAMP = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
BUDGET = BudgetStatus(elapsed_ms=1200, limit_ms=120000, percent_of_limit=1.0)
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

ROUTE_FINDING = Finding(
    category=CheckCategory.rbac,
    rule="rbac-api-route",
    file="web/src/app/api/users/route.ts",
    line=3,
    message="API route missing authorization check",
    remediation="Add auth() or use withRoleProtection() from lib/auth/auth-helpers.ts. Example:\n\n  ...",
    severity=Severity.error,
)

HEALTH_WAIVER = Waiver(
    scope=WaiverScope.line,
    category=CheckCategory.rbac,
    check_type="rbac-api-route",
    file="web/src/app/api/health/route.ts",
    line=4,
    reason="public health check",
)

LOGGING_FINDING = Finding(
    category=CheckCategory.pii_logging,
    rule="pii-logging",
    file="web/src/lib/audit.ts",
    line=7,
    message="Potential PII logging detected: email",
    remediation="Avoid logging personal information.",
    severity=Severity.warning,
)


def make_report(results, disabled=(), budget=BUDGET):
    return aggregate(results, list(disabled), budget, timestamp=TIMESTAMP)


@pytest.fixture
def failing_report():
    return make_report(
        [
            CheckResult(
                category=CheckCategory.rbac,
                name="RBAC",
                severity=Severity.error,
                findings=[ROUTE_FINDING],
                waivers=[HEALTH_WAIVER],
            ),
            CheckResult(category=CheckCategory.pii_logging, name="PII Logging", severity=Severity.warning),
        ],
        disabled=[CheckCategory.pii_field_handling],
    )


@pytest.fixture
def warning_report():
    return make_report([
        CheckResult(category=CheckCategory.rbac, name="RBAC", severity=Severity.error),
        CheckResult(
            category=CheckCategory.pii_logging,
            name="PII Logging",
            severity=Severity.warning,
            findings=[LOGGING_FINDING],
        ),
    ])


@pytest.fixture
def clean_report():
    return make_report([CheckResult(category=CheckCategory.rbac, name="RBAC", severity=Severity.error)])


class TestExitCode:
    def test_errors_fail(self, failing_report):
        assert exit_code(failing_report) == 1

    def test_warnings_pass(self, warning_report):
        assert exit_code(warning_report) == 0


class TestConsole:
    """Test the terminal report."""

    def test_failing_report(self, failing_report):
        text = render_console(failing_report)

        assert "SECURITY VALIDATION REPORT" in text
        assert "RBAC [error]: " in text
        assert "web/src/app/api/users/route.ts:3" in text
        assert "API route missing authorization check" in text
        assert "PII Logging [warning]: " in text
        assert "PII Field Handling: " in text
        assert "Disabled" in text
        assert "Security Overrides Applied (1):" in text
        assert "web/src/app/api/health/route.ts:4  rbac-api-route  public health check" in text
        assert " 1 issue found: 1 RBAC" in text
        assert "Security validation failed. Please fix the errors above." in text
        assert "1.20s (1.0% of 2-minute limit)" in text

    def test_warning_report(self, warning_report):
        text = render_console(warning_report)

        assert "Security checks passed with warnings" in text
        assert "Security Overrides Applied" not in text

    def test_waivers_render_as_aligned_table(self):
        report = make_report([
            CheckResult(
                category=CheckCategory.rbac,
                name="RBAC",
                severity=Severity.error,
                waivers=[
                    HEALTH_WAIVER,
                    Waiver(
                        scope=WaiverScope.file,
                        category=CheckCategory.rbac,
                        check_type="session-validation",
                        file="web/src/app/(protected)/kiosk/page.tsx",
                        reason="kiosk mode",
                    ),
                ],
            ),
        ])

        lines = [ANSI_RE.sub("", line) for line in render_console(report).splitlines()]

        header = next(line for line in lines if "Reason" in line)
        assert header.split() == ["File", "Check", "Reason"]
        rows = [line for line in lines if "public health check" in line or "kiosk mode" in line]
        assert len(rows) == 2
        reason_columns = {header.index("Reason")} | {
            row.index("public health check") if "public health check" in row else row.index("kiosk mode")
            for row in rows
        }
        assert len(reason_columns) == 1

    def test_clean_report(self, clean_report):
        text = render_console(clean_report)

        assert "All security checks passed!" in text
        assert "issue found" not in text

    def test_budget_warning(self):
        budget = BudgetStatus(
            elapsed_ms=130000,
            limit_ms=120000,
            percent_of_limit=108.3,
            over_limit=True,
            near_limit=True,
            warnings=["Validation took 130.00s, exceeding the 2-minute limit."],
        )

        text = render_console(make_report([], budget=budget))

        assert "WARNING: Validation took 130.00s, exceeding the 2-minute limit." in text


class TestAnnotations:
    """Test GitHub workflow commands."""

    def test_annotation_format(self):
        assert annotation("warning", "slow", title="Security Validation Slow") == (
            "::warning title=Security Validation Slow::slow"
        )
        assert annotation("error", "bare") == "::error::bare"

    def test_message_is_escaped(self):
        assert annotation("error", "50% done\nnext") == "::error::50%25 done%0Anext"

    def test_one_annotation_per_finding(self, failing_report):
        assert render_annotations(failing_report) == [
            "::error file=web/src/app/api/users/route.ts,line=3,"
            "title=Security: RBAC::API route missing authorization check",
        ]

    def test_warning_level_for_warning_categories(self, warning_report):
        assert render_annotations(warning_report) == [
            "::warning file=web/src/lib/audit.ts,line=7,"
            "title=Security: PII Logging::Potential PII logging detected: email",
        ]

    def test_budget_annotation(self):
        budget = BudgetStatus(
            elapsed_ms=100000,
            limit_ms=120000,
            percent_of_limit=83.3,
            near_limit=True,
            warnings=["Validation took 100.00s, approaching the 2-minute limit (>96s)."],
        )

        lines = render_annotations(make_report([], budget=budget))

        assert lines == [
            "::warning title=Security Validation Slow::"
            "Validation took 100.00s, approaching the 2-minute limit (>96s).",
        ]


class TestRemediationPreview:
    def test_long_text_is_truncated(self):
        preview = remediation_preview(ROUTE_FINDING.remediation)

        assert len(preview) == 60
        assert preview.startswith("auth() or use withRoleProtection()")
        assert preview.endswith("...")

    def test_short_text_keeps_lead_word(self):
        assert remediation_preview("Use UserRole.ADMIN") == "Use UserRole.ADMIN"

    def test_plain_text_is_kept(self):
        assert remediation_preview("Remove the debug statement before release") == (
            "Remove the debug statement before release"
        )


class TestJobSummary:
    """Test the Markdown job summary."""

    def test_failing_summary(self, failing_report):
        md = render_job_summary(failing_report)

        assert md.startswith("# 🔒 Security Validation Report")
        assert "| RBAC | 🔴 Error | ❌ Failed | 1 |" in md
        assert "| PII Logging | 🟡 Warning | ✅ Pass | 0 |" in md
        assert "| PII Field Handling | - | ⏭️ Disabled | - |" in md
        assert "> **❌ Validation Failed** - 1 error(s) must be fixed before merge" in md
        assert "### ❌ RBAC" in md
        assert "#### Issue 1: `web/src/app/api/users/route.ts:3`" in md
        assert "| `web/src/app/api/health/route.ts:4` | rbac-api-route | public health check |" in md

    def test_warning_summary(self, warning_report):
        md = render_job_summary(warning_report)

        assert "| PII Logging | 🟡 Warning | ⚠️ Warning | 1 |" in md
        assert "> **⚠️ Passed with Warnings** - 1 warning(s) should be reviewed" in md

    def test_clean_summary(self, clean_report):
        md = render_job_summary(clean_report)

        assert "> **✅ All Checks Passed**" in md
        assert "## Issues Details" not in md

    def test_write_appends(self, clean_report, temp_dir):
        path = temp_dir / "summary.md"
        path.write_text("existing\n")

        assert write_job_summary(clean_report, path)
        assert write_job_summary(clean_report, path)

        content = path.read_text(encoding="utf-8")
        assert content.startswith("existing\n")
        assert content.count("# 🔒 Security Validation Report") == 2

    def test_write_failure_is_logged(self, clean_report, temp_dir, caplog):
        with caplog.at_level(logging.WARNING):
            assert not write_job_summary(clean_report, temp_dir)

        assert "Failed to write GitHub summary" in caplog.text


class TestJson:
    """Test the JSON document."""

    def test_document_shape(self, failing_report):
        document = json.loads(render_json(failing_report))

        assert set(document) == {
            "version", "timestamp", "executionTimeMs", "summary", "checks", "overrides", "documentation",
        }
        assert document["executionTimeMs"] == 1200
        assert document["timestamp"] == "2026-03-01T12:00:00+00:00"
        assert document["summary"] == {
            "passed": False,
            "totalChecks": 2,
            "totalIssues": 1,
            "errors": 1,
            "warnings": 0,
            "overridesApplied": 1,
        }

    def test_checks_keyed_by_category(self, failing_report):
        checks = json.loads(render_json(failing_report))["checks"]

        assert list(checks) == ["rbac", "piiLogging"]
        assert checks["rbac"]["name"] == "RBAC"
        assert checks["rbac"]["severity"] == "error"
        assert checks["rbac"]["passed"] is False
        assert checks["rbac"]["issueCount"] == 1
        assert checks["rbac"]["issues"][0]["file"] == "web/src/app/api/users/route.ts"
        assert checks["rbac"]["issues"][0]["line"] == 3
        assert "piiFieldHandling" not in checks

    def test_overrides_and_documentation(self, failing_report):
        document = json.loads(render_json(failing_report))

        assert document["overrides"] == [{
            "file": "web/src/app/api/health/route.ts:4",
            "checkType": "rbac-api-route",
            "reason": "public health check",
        }]
        assert document["documentation"]["popia"] == "https://popia.co.za/"
