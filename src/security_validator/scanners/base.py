"""Check interface shared by all security pattern scanners."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Optional

from ..config import CATEGORY_SETTINGS, ValidatorConfig
from ..models import CheckCategory, CheckResult, Finding, Severity, Waiver
from ..suppression import SuppressionResolver
from .common import SourceFile, SourceIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanContext:
    """Read-only inputs shared by every check in a run."""

    index: SourceIndex
    resolver: SuppressionResolver
    config: ValidatorConfig
    severity: Severity


class FindingRecorder:
    """Collects findings and waivers for one check run.

    Waivers are recorded once per (file, line, check_type); findings once
    per (file, line, rule, message).
    """

    def __init__(self, category: CheckCategory, context: ScanContext):
        self.category = category
        self.context = context
        self.findings: list[Finding] = []
        self.waivers: list[Waiver] = []
        self._waiver_keys: set[tuple[str, Optional[int], str]] = set()
        self._finding_keys: set[tuple[str, Optional[int], str, str]] = set()

    def _record_waiver(self, waiver: Waiver) -> None:
        key = (waiver.file, waiver.line, waiver.check_type)
        if key in self._waiver_keys:
            return
        self._waiver_keys.add(key)
        self.waivers.append(waiver)

    def file_waived(self, source: SourceFile, check_type: str) -> bool:
        """Record and report a file-level waiver for ``check_type``, if any."""
        waiver = self.context.resolver.file_waiver(source, self.category, check_type)
        if waiver is None:
            return False
        self._record_waiver(waiver)
        return True

    def report(
        self,
        source: SourceFile,
        line: Optional[int],
        rule: str,
        message: str,
        remediation: str,
    ) -> bool:
        """Report a confirmed violation unless a line marker waives it.

        Returns True when a finding was added.
        """
        if line is not None:
            waiver = self.context.resolver.line_waiver(source, line, self.category, rule)
            if waiver is not None:
                self._record_waiver(waiver)
                return False
        return self.report_path(source.display_path, line, rule, message, remediation)

    def report_path(
        self,
        file: str,
        line: Optional[int],
        rule: str,
        message: str,
        remediation: str,
    ) -> bool:
        """Report a violation for a location that has no source file to consult."""
        key = (file, line, rule, message)
        if key in self._finding_keys:
            return False
        self._finding_keys.add(key)
        self.findings.append(Finding(
            category=self.category,
            rule=rule,
            file=file,
            line=line,
            message=message,
            remediation=remediation,
            severity=self.context.severity,
        ))
        return True


class Check(ABC):
    """Base class for a category of security checks."""

    category: ClassVar[CheckCategory]
    progress_message: ClassVar[str] = ""

    @property
    def name(self) -> str:
        return CATEGORY_SETTINGS[self.category].name

    @property
    def severity_key(self) -> str:
        return CATEGORY_SETTINGS[self.category].env_key

    def run(self, context: ScanContext) -> CheckResult:
        if self.progress_message:
            logger.info(self.progress_message)
        recorder = FindingRecorder(self.category, context)
        self.scan(context, recorder)
        return CheckResult(
            category=self.category,
            name=self.name,
            severity=context.severity,
            findings=recorder.findings,
            waivers=recorder.waivers,
        )

    @abstractmethod
    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        """Inspect the indexed sources, reporting through ``recorder``."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.category.value}>"
