"""XSS checks: dangerouslySetInnerHTML sanitization and unescaped user input sinks."""

import logging
import re
from typing import Optional

from ..config import DOCS
from ..models import CheckCategory
from .base import Check, FindingRecorder, ScanContext
from .common import JSX_EXTENSIONS, SourceFile, is_comment_line

logger = logging.getLogger(__name__)

SANITIZER_CALL_RES = (
    re.compile(r"DOMPurify\.sanitize\s*\(", re.IGNORECASE),
    re.compile(r"sanitizeHtml\s*\(", re.IGNORECASE),
    re.compile(r"sanitize\s*\(", re.IGNORECASE),
    re.compile(r"xss\s*\(", re.IGNORECASE),
    re.compile(r"escapeHtml\s*\(", re.IGNORECASE),
    re.compile(r"escape\s*\(", re.IGNORECASE),
    re.compile(r"purify\s*\(", re.IGNORECASE),
    re.compile(r"cleanHtml\s*\(", re.IGNORECASE),
)
ASSIGNMENT_SANITIZERS = (r"DOMPurify\.sanitize", "sanitizeHtml", "sanitize", "xss", "escapeHtml", "purify")
HTML_VALUE_RE = re.compile(r"__html\s*:\s*([a-zA-Z_$][a-zA-Z0-9_$]*)")
SANITIZED_NAME_RES = (
    re.compile(r"^sanitized", re.IGNORECASE),
    re.compile(r"^clean", re.IGNORECASE),
    re.compile(r"^safe", re.IGNORECASE),
    re.compile(r"^purified", re.IGNORECASE),
    re.compile(r"^escaped", re.IGNORECASE),
    re.compile(r"Sanitized$", re.IGNORECASE),
    re.compile(r"Clean$", re.IGNORECASE),
    re.compile(r"Safe$", re.IGNORECASE),
    re.compile(r"Purified$", re.IGNORECASE),
)
SANITIZER_MENTIONS = ("sanitize", "DOMPurify", "escape", "purify", "clean")
WRAPPER_CALL_RE = re.compile(
    r"dangerouslySetInnerHTML\s*=\s*\{?\s*[a-zA-Z_$]*(?:sanitize|clean|safe|purif|escape)[a-zA-Z_$]*\s*\(",
    re.IGNORECASE,
)

SANITIZED_ASSIGNMENT_RE = re.compile(r"sanitize|escape|encode|DOMPurify|purify|xss|clean", re.IGNORECASE)

INNER_HTML_RE = re.compile(r"\.innerHTML\s*=")
OUTER_HTML_RE = re.compile(r"\.outerHTML\s*=")
DOCUMENT_WRITE_RE = re.compile(r"document\.write\s*\(")
PARAM_RENDER_RES = (
    re.compile(r"\{.*searchParams\.[a-zA-Z]+.*\}"),
    re.compile(r"\{.*params\.[a-zA-Z]+.*\}"),
)
PARAM_HREF_RE = re.compile(r"href\s*=\s*\{.*(?:searchParams|params)\.[a-zA-Z]+")
EVAL_RE = re.compile(r"\beval\s*\(")
NEW_FUNCTION_RE = re.compile(r"new\s+Function\s*\(")
DYNAMIC_FUNCTION_RE = re.compile(r"new\s+Function\s*\([^)]*[a-zA-Z_$][a-zA-Z0-9_$]*[^)]*\)")
TIMER_STRING_RE = re.compile(r"(?:setTimeout|setInterval)\s*\(\s*['\"`]")
TIMER_VARIABLE_RE = re.compile(r"(?:setTimeout|setInterval)\s*\(\s*([a-zA-Z_$][a-zA-Z0-9_$]*)\s*,")
CALLBACK_NAME_RE = re.compile(r"^(function|fn|callback|handler|cb|func)$", re.IGNORECASE)
SCRIPT_ELEMENT_RE = re.compile(r"createElement\s*\(\s*['\"`]script['\"`]\s*\)")
LOCATION_ASSIGN_RE = re.compile(r"(?:location\.href|window\.location)\s*=")
LOCATION_USER_INPUT_RE = re.compile(
    r"(?:location\.href|window\.location)\s*=\s*[^;]*(?:searchParams|params|query|input|user|data)",
    re.IGNORECASE,
)

DANGEROUS_HTML_REMEDIATION = f"""Sanitize HTML using DOMPurify or sanitizeHtml() before rendering. Example:

  import DOMPurify from 'dompurify';

  // Option 1: DOMPurify
  <div dangerouslySetInnerHTML={{{{ __html: DOMPurify.sanitize(userContent) }}}} />

  // Option 2: the project's sanitizeHtml utility
  import {{ sanitizeHtml }} from '@/lib/validation/schemas';
  const safeContent = sanitizeHtml(userContent);
  <div dangerouslySetInnerHTML={{{{ __html: safeContent }}}} />

  // Option 3: pre-sanitize into a variable
  const sanitizedHtml = DOMPurify.sanitize(rawHtml);
  <div dangerouslySetInnerHTML={{{{ __html: sanitizedHtml }}}} />

Documentation:
  - Schemas: {DOCS['validationSchemas']} (sanitizeHtml function)
  - DOMPurify: {DOCS['domPurify']}"""

UNESCAPED_INPUT_REMEDIATION = f"""Sanitize user input before rendering. Example:

  // Option 1: React's built-in escaping for text content
  <p>{{userInput}}</p>

  // Option 2: sanitize HTML content
  import {{ sanitizeHtml }} from '@/lib/validation/schemas';
  const safeText = sanitizeHtml(userInput);

  // Option 3: encode URLs
  const safeUrl = encodeURIComponent(userSearchQuery);
  window.location.href = `/search?q=${{safeUrl}}`;

  // Option 4: use textContent for DOM manipulation
  element.textContent = userInput;
  // NOT: element.innerHTML = userInput;

Documentation:
  - Schemas: {DOCS['validationSchemas']} (sanitizeHtml function)
  - DOMPurify: {DOCS['domPurify']}"""


def is_sanitized_assignment(line: str) -> bool:
    return bool(SANITIZED_ASSIGNMENT_RE.search(line)) or "textContent" in line


def _assigned_from_sanitizer(variable: str, line: str) -> bool:
    name = re.escape(variable)
    return any(
        re.search(rf"(const|let|var)?\s*{name}\s*=\s*{sanitizer}\s*\(", line, re.IGNORECASE)
        for sanitizer in ASSIGNMENT_SANITIZERS
    )


def verify_sanitization(source: SourceFile, line_number: int, line: str) -> bool:
    """Whether the value passed to dangerouslySetInnerHTML is visibly sanitized.

    Accepts, in order: a sanitizer call on the same line, an earlier
    assignment of the ``__html`` variable from a sanitizer, a
    sanitized-looking variable name backed by a sanitizer mention in the
    file, or a sanitizing wrapper function.
    """
    if any(pattern.search(line) for pattern in SANITIZER_CALL_RES):
        return True

    value = HTML_VALUE_RE.search(line)
    if value:
        variable = value.group(1)
        for preceding in source.lines[:line_number - 1]:
            if _assigned_from_sanitizer(variable, preceding):
                return True
        if any(pattern.search(variable) for pattern in SANITIZED_NAME_RES):
            for text in source.lines:
                if variable in text and any(m in text for m in SANITIZER_MENTIONS):
                    return True

    return bool(WRAPPER_CALL_RE.search(line))


def unescaped_input_issue(source: SourceFile, line: str) -> Optional[str]:
    """Describe the first unsafe sink on ``line``, if any."""
    if INNER_HTML_RE.search(line) and "dangerouslySetInnerHTML" not in line and not is_sanitized_assignment(line):
        return "innerHTML assignment without sanitization"
    if OUTER_HTML_RE.search(line) and not is_sanitized_assignment(line):
        return "outerHTML assignment without sanitization"
    if DOCUMENT_WRITE_RE.search(line) and not is_sanitized_assignment(line):
        return "document.write usage (potential XSS vector)"
    if any(p.search(line) for p in PARAM_RENDER_RES) and PARAM_HREF_RE.search(line) and "encodeURI" not in line:
        return "URL parameter used in href without encoding"
    if EVAL_RE.search(line):
        return "eval() usage (critical XSS/injection vector)"
    if NEW_FUNCTION_RE.search(line) and DYNAMIC_FUNCTION_RE.search(line):
        return "new Function() with dynamic content (potential code injection)"
    if TIMER_STRING_RE.search(line):
        return "setTimeout/setInterval with string argument (use function reference instead)"
    match = TIMER_VARIABLE_RE.search(line)
    if match and not CALLBACK_NAME_RE.match(match.group(1)):
        name = match.group(1)
        if any(f"{name} = {quote}" in source.content for quote in ('"', "'", "`")):
            return "setTimeout/setInterval with string argument (use function reference instead)"
    if SCRIPT_ELEMENT_RE.search(line):
        return "Dynamic script element creation (review for XSS)"
    if LOCATION_ASSIGN_RE.search(line) and LOCATION_USER_INPUT_RE.search(line) and "encodeURI" not in line:
        return "location assignment with user input (potential open redirect/XSS)"
    return None


class XSSCheck(Check):
    category = CheckCategory.xss_protection
    progress_message = "Checking XSS protection..."

    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        self.check_dangerous_html(context, recorder)
        self.check_unescaped_input(context, recorder)

    def check_dangerous_html(self, context: ScanContext, recorder: FindingRecorder) -> None:
        for source in context.index.files_under("app", "components"):
            if "dangerouslySetInnerHTML" not in source.content:
                continue
            hits = [
                number for number, line in source.numbered_lines()
                if "dangerouslySetInnerHTML" in line
                and not is_comment_line(line)
                and not verify_sanitization(source, number, line)
            ]
            if not hits or recorder.file_waived(source, "xss"):
                continue
            for number in hits:
                recorder.report(
                    source, number, "xss",
                    "dangerouslySetInnerHTML used without verified sanitization",
                    DANGEROUS_HTML_REMEDIATION,
                )

    def check_unescaped_input(self, context: ScanContext, recorder: FindingRecorder) -> None:
        logger.info("Checking for unescaped user input display...")
        for source in context.index.files_under("app", "components", extensions=JSX_EXTENSIONS):
            issues: list[tuple[int, str]] = []
            for number, line in source.numbered_lines():
                if is_comment_line(line):
                    continue
                message = unescaped_input_issue(source, line)
                if message:
                    issues.append((number, message))
            if not issues or recorder.file_waived(source, "xss-unescaped-input"):
                continue
            for number, message in issues:
                recorder.report(source, number, "xss-unescaped-input", message, UNESCAPED_INPUT_REMEDIATION)
