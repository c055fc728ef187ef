"""Human-readable terminal report."""

from colorama import Fore, Style

from ..config import CATEGORY_SETTINGS
from ..models import RunReport, Severity, Waiver

RULE = "=" * 70
THIN_RULE = "-" * 70

ERROR_MARKER = "✗"
WARNING_MARKER = "⚠"
WAIVER_MARKER = "~"

WAIVER_HEADERS = ("File", "Check", "Reason")


def _status(passed: bool, severity: Severity) -> str:
    if passed:
        return f"{Fore.GREEN}Pass{Style.RESET_ALL}"
    if severity == Severity.error:
        return f"{Fore.RED}Error{Style.RESET_ALL}"
    return f"{Fore.YELLOW}Warning{Style.RESET_ALL}"


def _waiver_table(waivers: list[Waiver]) -> list[str]:
    rows = [(w.location, w.check_type, w.reason) for w in waivers]
    file_width = max(len(WAIVER_HEADERS[0]), *(len(row[0]) for row in rows))
    check_width = max(len(WAIVER_HEADERS[1]), *(len(row[1]) for row in rows))

    def fmt(lead: str, file: str, check: str, reason: str) -> str:
        return f"  {lead} {file:<{file_width}}  {check:<{check_width}}  {reason}"

    lines = [
        fmt(" ", *WAIVER_HEADERS),
        fmt(" ", "-" * file_width, "-" * check_width, "-" * len(WAIVER_HEADERS[2])),
    ]
    marker = f"{Fore.YELLOW}{WAIVER_MARKER}{Style.RESET_ALL}"
    lines.extend(fmt(marker, *row) for row in rows)
    return lines


def render_console(report: RunReport) -> str:
    """Render the full text report.

    Categories appear in registry order; disabled ones are listed by name
    only. The final sentence distinguishes a clean pass, a pass with
    warnings and a failure.
    """
    lines = [
        "",
        RULE,
        f"{Fore.BLUE}SECURITY VALIDATION REPORT{Style.RESET_ALL}",
        RULE,
        "",
    ]

    results = {result.category: result for result in report.results}
    for category, settings in CATEGORY_SETTINGS.items():
        if category in report.disabled:
            lines.append(f"{settings.name}: {Fore.YELLOW}Disabled{Style.RESET_ALL}")
            continue
        result = results.get(category)
        if result is None:
            continue

        lines.append(f"{result.name} [{result.severity.value}]: {_status(result.passed, result.severity)}")
        is_error = result.severity == Severity.error
        color = Fore.RED if is_error else Fore.YELLOW
        marker = ERROR_MARKER if is_error else WARNING_MARKER
        for finding in result.findings:
            lines.append(f"  {color}{marker}{Style.RESET_ALL}  {finding.location}")
            lines.append(f"     {finding.message}")
            lines.append(f"     {Fore.BLUE}Fix:{Style.RESET_ALL} {finding.remediation}")
            lines.append("")

    if report.overrides:
        lines.append("")
        lines.append(THIN_RULE)
        lines.append(f"{Fore.YELLOW}Security Overrides Applied ({len(report.overrides)}):{Style.RESET_ALL}")
        lines.append("")
        lines.extend(_waiver_table(report.overrides))
        lines.append("")

    lines.append("")
    lines.append(RULE)

    summary = report.summary
    if summary.total_issues:
        breakdown = ", ".join(f"{len(r.findings)} {r.name}" for r in report.results if r.findings)
        plural = "" if summary.total_issues == 1 else "s"
        lines.append("")
        lines.append(
            f"{Fore.BLUE}Summary:{Style.RESET_ALL} {summary.total_issues} issue{plural} found: {breakdown}"
        )

    lines.append("")
    if summary.errors:
        lines.append(f"{Fore.RED}Security validation failed. Please fix the errors above.{Style.RESET_ALL}")
    elif summary.warnings:
        lines.append(
            f"{Fore.YELLOW}Security checks passed with warnings. Review the warnings above.{Style.RESET_ALL}"
        )
    else:
        lines.append(f"{Fore.GREEN}All security checks passed!{Style.RESET_ALL}")

    budget = report.budget
    lines.append("")
    lines.append(
        f"{Fore.BLUE}Execution Time:{Style.RESET_ALL} {budget.elapsed_seconds}s "
        f"({budget.percent_of_limit}% of {budget.limit_ms // 60000}-minute limit)"
    )
    warning_color = Fore.RED if budget.over_limit else Fore.YELLOW
    for warning in budget.warnings:
        lines.append(f"{warning_color}WARNING: {warning}{Style.RESET_ALL}")

    return "\n".join(lines)
