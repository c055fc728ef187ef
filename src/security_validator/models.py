"""Pydantic models for the security pattern validator."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Blocking classification for a check category."""

    error = "error"
    warning = "warning"
    off = "off"


class CheckCategory(str, Enum):
    """Categories of security checks."""

    rbac = "rbac"
    input_validation = "inputValidation"
    xss_protection = "xssProtection"
    sql_injection = "sqlInjection"
    authentication = "authentication"
    pii_logging = "piiLogging"
    pii_field_handling = "piiFieldHandling"


class WaiverScope(str, Enum):
    """Granularity of a security-ignore marker."""

    line = "line"
    file = "file"


class Finding(BaseModel):
    """A single detected, non-suppressed rule violation."""

    model_config = ConfigDict(frozen=True)

    category: CheckCategory = Field(description="Category of the check that produced the finding")
    rule: str = Field(description="Sub-check identifier, e.g. 'rbac-api-route'")
    file: str = Field(description="File path relative to the project root")
    line: Optional[int] = Field(default=None, description="Line number (1-based)")
    message: str = Field(description="Short description of the violation")
    remediation: str = Field(description="Fix guidance with a corrected-pattern example")
    severity: Severity = Field(description="Severity of the category when the finding was reported")

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}" if self.line is not None else self.file


class Waiver(BaseModel):
    """A recorded, reasoned suppression of an otherwise-detected finding."""

    model_config = ConfigDict(frozen=True)

    scope: WaiverScope = Field(description="Whether the marker covers one line or the whole file")
    category: CheckCategory = Field(description="Category whose finding was suppressed")
    check_type: str = Field(description="Sub-check that honoured the marker")
    file: str = Field(description="File path relative to the project root")
    line: Optional[int] = Field(default=None, description="Suppressed line for line-scoped waivers")
    reason: str = Field(description="Free-text justification taken from the marker")

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}" if self.line is not None else self.file


class CheckResult(BaseModel):
    """Outcome of running one check module."""

    model_config = ConfigDict(frozen=True)

    category: CheckCategory
    name: str = Field(description="Human readable check name")
    severity: Severity
    findings: list[Finding] = Field(default_factory=list)
    waivers: list[Waiver] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.findings


class BudgetStatus(BaseModel):
    """Wall-clock usage of a run measured against the execution budget."""

    model_config = ConfigDict(frozen=True)

    elapsed_ms: int = Field(description="Elapsed wall-clock time in milliseconds")
    limit_ms: int = Field(description="Hard budget in milliseconds")
    percent_of_limit: float = Field(description="Elapsed time as a percentage of the budget")
    over_limit: bool = Field(default=False, description="Whether the hard limit was exceeded")
    near_limit: bool = Field(default=False, description="Whether the warning threshold was crossed")
    warnings: list[str] = Field(default_factory=list, description="Advisory messages for the report")

    @property
    def elapsed_seconds(self) -> str:
        return f"{self.elapsed_ms / 1000:.2f}"


class RunSummary(BaseModel):
    """Derived counts for a run."""

    model_config = ConfigDict(frozen=True)

    passed: bool = Field(description="True when no error-severity category has findings")
    total_checks: int = Field(default=0, description="Number of checks that ran")
    total_issues: int = Field(default=0, description="Findings across all categories")
    errors: int = Field(default=0, description="Findings in error-severity categories")
    warnings: int = Field(default=0, description="Findings in warning-severity categories")
    overrides_applied: int = Field(default=0, description="Number of waivers recorded")


class RunReport(BaseModel):
    """Complete aggregated output of one validator invocation."""

    model_config = ConfigDict(frozen=True)

    version: str
    timestamp: datetime
    results: list[CheckResult] = Field(default_factory=list, description="Results of enabled checks")
    disabled: list[CheckCategory] = Field(default_factory=list, description="Categories resolved to off")
    overrides: list[Waiver] = Field(default_factory=list, description="Every waiver applied during the run")
    budget: BudgetStatus
    summary: RunSummary
