"""Security pattern scanners, in reporting order."""

from .authentication import AuthenticationCheck
from .base import Check, FindingRecorder, ScanContext
from .input_validation import InputValidationCheck
from .pii import PIIFieldHandlingCheck, PIILoggingCheck
from .rbac import RBACCheck
from .sql_injection import SQLInjectionCheck
from .xss import XSSCheck

ALL_CHECKS: list[type[Check]] = [
    RBACCheck,
    InputValidationCheck,
    XSSCheck,
    SQLInjectionCheck,
    AuthenticationCheck,
    PIILoggingCheck,
    PIIFieldHandlingCheck,
]

__all__ = [
    "ALL_CHECKS",
    "Check",
    "FindingRecorder",
    "ScanContext",
]
