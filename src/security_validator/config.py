"""Validator configuration: severity policy, subject layout and documentation links."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import CheckCategory, Severity

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_DIR = "web/src"


class ConfigError(ValueError):
    pass


class CategorySettings(NamedTuple):
    """Static metadata for a check category."""

    name: str
    description: str
    env_key: str
    default: Severity
    waiver_names: frozenset[str]


CATEGORY_SETTINGS: dict[CheckCategory, CategorySettings] = {
    CheckCategory.rbac: CategorySettings(
        name="RBAC",
        description="Role-Based Access Control checks",
        env_key="SECURITY_RBAC_SEVERITY",
        default=Severity.error,
        waiver_names=frozenset({"rbac"}),
    ),
    CheckCategory.input_validation: CategorySettings(
        name="Input Validation",
        description="Input validation and sanitization checks",
        env_key="SECURITY_INPUT_VALIDATION_SEVERITY",
        default=Severity.error,
        waiver_names=frozenset({"input-validation", "inputvalidation"}),
    ),
    CheckCategory.xss_protection: CategorySettings(
        name="XSS Protection",
        description="Cross-Site Scripting protection checks",
        env_key="SECURITY_XSS_SEVERITY",
        default=Severity.error,
        waiver_names=frozenset({"xss", "xssprotection"}),
    ),
    CheckCategory.sql_injection: CategorySettings(
        name="SQL Injection Prevention",
        description="SQL injection prevention checks",
        env_key="SECURITY_SQL_INJECTION_SEVERITY",
        default=Severity.error,
        waiver_names=frozenset({"sql", "sqlinjection"}),
    ),
    CheckCategory.authentication: CategorySettings(
        name="Authentication Checks",
        description="Authentication configuration checks",
        env_key="SECURITY_AUTH_SEVERITY",
        default=Severity.warning,
        waiver_names=frozenset({"auth", "authentication"}),
    ),
    CheckCategory.pii_logging: CategorySettings(
        name="PII Logging",
        description="Detects potential logging of personal information (POPIA compliance)",
        env_key="SECURITY_PII_LOGGING_SEVERITY",
        default=Severity.warning,
        waiver_names=frozenset({"popia", "pii", "piilogging"}),
    ),
    CheckCategory.pii_field_handling: CategorySettings(
        name="PII Field Handling",
        description="Detects unprotected handling of personal information fields (POPIA compliance)",
        env_key="SECURITY_PII_FIELDS_SEVERITY",
        default=Severity.warning,
        waiver_names=frozenset({"popia", "pii", "piifieldhandling"}),
    ),
}

# ARIA role attribute values: accessibility vocabulary, not RBAC roles.
DEFAULT_IGNORED_ROLE_LITERALS: frozenset[str] = frozenset({
    "alert", "alertdialog", "application", "article", "banner", "button",
    "cell", "checkbox", "columnheader", "combobox", "complementary",
    "contentinfo", "definition", "dialog", "directory", "document",
    "feed", "figure", "form", "grid", "gridcell", "group", "heading",
    "img", "link", "list", "listbox", "listitem", "log", "main",
    "marquee", "math", "menu", "menubar", "menuitem", "menuitemcheckbox",
    "menuitemradio", "navigation", "none", "note", "option", "presentation",
    "progressbar", "radio", "radiogroup", "region", "row", "rowgroup",
    "rowheader", "scrollbar", "search", "searchbox", "separator", "slider",
    "spinbutton", "status", "switch", "tab", "table", "tablist", "tabpanel",
    "term", "textbox", "timer", "toolbar", "tooltip", "tree", "treegrid", "treeitem",
})

# Paths are relative to the repository root.
DOCS: dict[str, str] = {
    "authentication": ".template-docs/Help/Authentication.md",
    "development": ".template-docs/guides/DEVELOPMENT.md",
    "apiIntegration": ".template-docs/guides/API_INTEGRATION.md",
    "authHelpers": "web/src/lib/auth/auth-helpers.ts",
    "validationSchemas": "web/src/lib/validation/schemas.ts",
    "protectedRoute": "web/src/app/api/example/protected-action/route.ts",
    "rolesDefinition": "web/src/types/roles.ts",
    "nextAuth": "https://authjs.dev/",
    "zod": "https://zod.dev/",
    "domPurify": "https://github.com/cure53/DOMPurify",
    "prisma": "https://www.prisma.io/docs/concepts/components/prisma-client/raw-database-access",
    "popia": "https://popia.co.za/",
    "popiaGuidelines": "https://www.justice.gov.za/inforeg/",
}


class SeverityPolicy:
    """Resolves the effective severity of each category.

    The environment overrides the built-in defaults, one variable per
    category. Unknown values fall back to the default.
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None):
        self._overrides = dict(overrides or {})

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "SeverityPolicy":
        environ = os.environ if environ is None else environ
        keys = {settings.env_key for settings in CATEGORY_SETTINGS.values()}
        return cls({key: environ[key] for key in keys if key in environ})

    def resolve(self, category: CheckCategory) -> Severity:
        settings = CATEGORY_SETTINGS[category]
        raw = self._overrides.get(settings.env_key)
        if raw is None or not raw.strip():
            return settings.default
        try:
            return Severity(raw.strip().lower())
        except ValueError:
            logger.warning(
                f"Ignoring invalid {settings.env_key}={raw!r}; "
                f"using default '{settings.default.value}'"
            )
            return settings.default

    def resolve_all(self) -> dict[CheckCategory, Severity]:
        return {category: self.resolve(category) for category in CATEGORY_SETTINGS}


class ValidatorConfig(BaseModel):
    """Everything a run needs to know about its environment."""

    model_config = ConfigDict(frozen=True)

    project_root: Path = Field(description="Repository root; report paths are relative to it")
    source_root: Path = Field(description="Directory holding app/, components/, lib/ and types/")
    severities: dict[CheckCategory, Severity] = Field(description="Resolved severity per category")
    ignored_role_literals: frozenset[str] = Field(
        default=DEFAULT_IGNORED_ROLE_LITERALS,
        description="String role values that are never treated as RBAC roles",
    )
    ci: bool = Field(default=False, description="Running inside GitHub Actions")
    summary_path: Optional[Path] = Field(default=None, description="GitHub job summary file")

    def severity(self, category: CheckCategory) -> Severity:
        return self.severities[category]


def load_config(
    root: str | Path = ".",
    source_dir: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ValidatorConfig:
    """Build the run configuration from CLI values and the environment.

    Args:
        root: Project root directory.
        source_dir: Source directory relative to ``root``. Defaults to
            ``$SECURITY_SOURCE_DIR`` or ``web/src``.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        ConfigError: If ``root`` exists but is not a directory.
    """
    environ = os.environ if environ is None else environ
    project_root = Path(root).resolve()
    if project_root.exists() and not project_root.is_dir():
        raise ConfigError(f"Project root is not a directory: {project_root}")

    source_dir = source_dir or environ.get("SECURITY_SOURCE_DIR") or DEFAULT_SOURCE_DIR
    source_root = project_root / source_dir

    extra_roles = {
        name.strip().lower()
        for name in environ.get("SECURITY_RBAC_IGNORED_ROLES", "").split(",")
        if name.strip()
    }

    summary_path = environ.get("GITHUB_STEP_SUMMARY")

    return ValidatorConfig(
        project_root=project_root,
        source_root=source_root,
        severities=SeverityPolicy.from_environ(environ).resolve_all(),
        ignored_role_literals=DEFAULT_IGNORED_ROLE_LITERALS | extra_roles,
        ci=environ.get("GITHUB_ACTIONS") == "true",
        summary_path=Path(summary_path) if summary_path else None,
    )
