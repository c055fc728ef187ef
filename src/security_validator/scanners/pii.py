"""POPIA personal-information checks.

Two categories share the field pattern table below: one flags personal
data reaching log statements, the other flags personal data written to
browser storage or cookies and unvalidated SA ID number processing.
"""

import logging
import re

from ..config import DOCS
from ..models import CheckCategory
from .base import Check, FindingRecorder, ScanContext
from .common import SourceFile, is_comment_line

logger = logging.getLogger(__name__)

PII_FIELD_PATTERNS: dict[str, re.Pattern] = {
    # South African identity number
    "saIdNumber": re.compile(r"\b(sa_?id|id_?number|identity_?number|rsa_?id)\b", re.IGNORECASE),
    # contact details
    "email": re.compile(r"\b(email|e_?mail|email_?address)\b", re.IGNORECASE),
    "phone": re.compile(r"\b(phone|mobile|cell|telephone|tel_?number|contact_?number)\b", re.IGNORECASE),
    "address": re.compile(
        r"\b(address|street|postal|physical_?address|home_?address|residential)\b", re.IGNORECASE
    ),
    # personal identifiers
    "fullName": re.compile(
        r"\b(full_?name|first_?name|last_?name|surname|given_?name|family_?name)\b", re.IGNORECASE
    ),
    "dateOfBirth": re.compile(r"\b(dob|date_?of_?birth|birth_?date|birthday)\b", re.IGNORECASE),
    "gender": re.compile(r"\b(gender|sex)\b", re.IGNORECASE),
    # financial
    "bankAccount": re.compile(r"\b(bank_?account|account_?number|iban|swift|bic)\b", re.IGNORECASE),
    "taxNumber": re.compile(r"\b(tax_?number|tax_?id|vat_?number|tin)\b", re.IGNORECASE),
    # special personal information
    "race": re.compile(r"\b(race|ethnicity|ethnic_?group)\b", re.IGNORECASE),
    "religion": re.compile(r"\b(religion|religious_?affiliation|faith)\b", re.IGNORECASE),
    "health": re.compile(r"\b(health|medical|diagnosis|condition|disability)\b", re.IGNORECASE),
    "biometric": re.compile(r"\b(biometric|fingerprint|facial_?recognition|retina)\b", re.IGNORECASE),
    "criminal": re.compile(r"\b(criminal|conviction|offense|offence)\b", re.IGNORECASE),
    "union": re.compile(r"\b(trade_?union|union_?membership|union_?member)\b", re.IGNORECASE),
    "political": re.compile(
        r"\b(political_?affiliation|political_?party|political_?opinion)\b", re.IGNORECASE
    ),
    "sexual": re.compile(r"\b(sexual_?orientation|sexual_?preference)\b", re.IGNORECASE),
}

LOGGING_CALL_RES = (
    re.compile(r"console\s*\.\s*(log|info|debug|warn|error|trace)\s*\("),
    re.compile(r"logger\s*\.\s*(log|info|debug|warn|error|trace)\s*\("),
    re.compile(r"log\s*\.\s*(info|debug|warn|error|trace)\s*\("),
    re.compile(r"winston\s*\.\s*(log|info|debug|warn|error)\s*\("),
    re.compile(r"pino\s*\.\s*(info|debug|warn|error|trace)\s*\("),
)
MASKING_RE = re.compile(r"sanitize|mask|redact|obfuscate|\*{3,}|\.{3,}|xxx", re.IGNORECASE)

STORAGE_SINKS = (
    (re.compile(r"localStorage\s*\.\s*setItem\s*\("), "localStorage"),
    (re.compile(r"sessionStorage\s*\.\s*setItem\s*\("), "sessionStorage"),
    (re.compile(r"document\s*\.\s*cookie\s*="), "cookie"),
    (re.compile(r"setCookie\s*\("), "setCookie"),
)
ENCRYPTION_LINE_RE = re.compile(r"encrypt|cipher|crypto|hash|bcrypt|argon", re.IGNORECASE)
ENCRYPTION_CONTEXT_RE = re.compile(r"encrypt|cipher|crypto", re.IGNORECASE)
ENCRYPTION_LOOKBACK_CHARS = 500

ID_VALIDATION_RE = re.compile(r"luhn|checksum|validateId|isValidId|id_?validation|length\s*[=!]==?\s*13", re.IGNORECASE)
ID_MASKING_RE = re.compile(r"mask|redact|slice\s*\(\s*-?\d+\s*\)|substring|replace\s*\([^)]*\*+", re.IGNORECASE)
ID_PROCESSING_RE = re.compile(r"\.(save|create|update|post|put|insert|store)\s*\(|fetch\s*\(|axios", re.IGNORECASE)

PII_LOGGING_REMEDIATION = f"""Avoid logging personal information. POPIA requires protection of personal data.

Options:
1. Remove PII from the log statement entirely
2. Mask or redact the data before logging:
   console.log('User email:', maskEmail(user.email));
3. Use structured logging with PII filtering:
   logger.info({{ userId: user.id }}); // Log the ID, not PII
4. Add a security-ignore comment if intentional:
   // security-ignore: PII logging required for audit trail (encrypted logs)

POPIA Reference: {DOCS['popia']}"""

PII_STORAGE_REMEDIATION = f"""POPIA requires appropriate security measures for personal data.

Options:
1. Avoid storing PII in browser storage - use server-side sessions
2. Encrypt data before storing:
   localStorage.setItem('user', encrypt(JSON.stringify(userData)));
3. Store only non-sensitive identifiers (user ID, not email/name)
4. Use httpOnly, secure cookies for sensitive data
5. Add security-ignore if encrypted elsewhere:
   // security-ignore: Data encrypted via encryptUserData() before storage

POPIA Reference: {DOCS['popia']}
Guidelines: {DOCS['popiaGuidelines']}"""

SA_ID_REMEDIATION = f"""SA ID numbers contain encoded personal data (date of birth, gender, citizenship).
POPIA requires appropriate safeguards.

Recommendations:
1. Validate ID numbers before storage (Luhn checksum, date validation)
2. Mask ID numbers when displaying: 850101****123
3. Consider storing only a hash if the full ID isn't needed
4. Restrict access to ID number data

Example validation:
function isValidSAID(id) {{
  if (!/^\\d{{13}}$/.test(id)) return false;
  return luhnCheck(id);
}}

POPIA Reference: {DOCS['popia']}"""


def pii_fields(line: str) -> list[str]:
    """Names of the personal-data field patterns found on ``line``."""
    return [name for name, pattern in PII_FIELD_PATTERNS.items() if pattern.search(line)]


def _line_offset(source: SourceFile, number: int) -> int:
    return sum(len(line) + 1 for line in source.lines[:number - 1])


def is_encrypted(source: SourceFile, number: int, line: str) -> bool:
    """Whether an encryption indicator is on the line or shortly before it."""
    if ENCRYPTION_LINE_RE.search(line):
        return True
    offset = _line_offset(source, number)
    preceding = source.content[max(0, offset - ENCRYPTION_LOOKBACK_CHARS):offset]
    return bool(ENCRYPTION_CONTEXT_RE.search(preceding))


class PIILoggingCheck(Check):
    category = CheckCategory.pii_logging
    progress_message = "Checking for PII in logging statements (POPIA)..."

    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        for source in context.index.files_under():
            hits: list[tuple[int, list[str]]] = []
            for number, line in source.numbered_lines():
                if not any(pattern.search(line) for pattern in LOGGING_CALL_RES):
                    continue
                if is_comment_line(line) or line.strip().startswith("```"):
                    continue
                fields = pii_fields(line)
                if fields and not MASKING_RE.search(line):
                    hits.append((number, fields))
            if not hits or recorder.file_waived(source, "pii-logging"):
                continue
            for number, fields in hits:
                recorder.report(
                    source, number, "pii-logging",
                    f"Potential PII logging detected: {', '.join(fields)}",
                    PII_LOGGING_REMEDIATION,
                )


class PIIFieldHandlingCheck(Check):
    category = CheckCategory.pii_field_handling
    progress_message = "Checking for unprotected PII handling (POPIA)..."

    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        sources = context.index.files_under()
        self.check_storage(sources, recorder)
        self.check_sa_id_numbers(sources, recorder)

    def check_storage(self, sources: list[SourceFile], recorder: FindingRecorder) -> None:
        for source in sources:
            hits: list[tuple[int, str, list[str]]] = []
            for number, line in source.numbered_lines():
                for pattern, sink in STORAGE_SINKS:
                    if not pattern.search(line):
                        continue
                    fields = pii_fields(line)
                    if fields and not is_encrypted(source, number, line):
                        hits.append((number, sink, fields))
                    break
            if not hits or recorder.file_waived(source, "pii-storage"):
                continue
            for number, sink, fields in hits:
                recorder.report(
                    source, number, "pii-storage",
                    f"PII stored in {sink} without encryption: {', '.join(fields)}",
                    PII_STORAGE_REMEDIATION,
                )

    def check_sa_id_numbers(self, sources: list[SourceFile], recorder: FindingRecorder) -> None:
        id_pattern = PII_FIELD_PATTERNS["saIdNumber"]
        for source in sources:
            content = source.content
            if not id_pattern.search(content):
                continue
            if ID_VALIDATION_RE.search(content) or ID_MASKING_RE.search(content):
                continue
            if not ID_PROCESSING_RE.search(content):
                continue
            if recorder.file_waived(source, "sa-id-number"):
                continue
            recorder.report(
                source, source.first_line_matching(id_pattern), "sa-id-number",
                "SA ID number handling detected without validation or masking",
                SA_ID_REMEDIATION,
            )
