"""Fold check results into a run report."""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional

from . import __version__
from .models import BudgetStatus, CheckCategory, CheckResult, RunReport, RunSummary, Severity


def summarize(results: Iterable[CheckResult]) -> RunSummary:
    results = list(results)
    errors = sum(len(r.findings) for r in results if r.severity == Severity.error)
    warnings = sum(len(r.findings) for r in results if r.severity == Severity.warning)
    return RunSummary(
        passed=errors == 0,
        total_checks=len(results),
        total_issues=sum(len(r.findings) for r in results),
        errors=errors,
        warnings=warnings,
        overrides_applied=sum(len(r.waivers) for r in results),
    )


def aggregate(
    results: Iterable[CheckResult],
    disabled: Iterable[CheckCategory],
    budget: BudgetStatus,
    timestamp: Optional[datetime] = None,
) -> RunReport:
    """Build the immutable report for one run.

    Results are kept in the order given; waivers are concatenated in the
    same order.
    """
    results = [r for r in results if r.severity != Severity.off]
    return RunReport(
        version=__version__,
        timestamp=timestamp or datetime.now(timezone.utc),
        results=results,
        disabled=list(disabled),
        overrides=[w for r in results for w in r.waivers],
        budget=budget,
        summary=summarize(results),
    )
