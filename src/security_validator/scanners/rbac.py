"""Role-based access control checks for route handlers, protected pages and role references."""

import logging
import posixpath
import re
from typing import NamedTuple, Optional

from ..config import DOCS
from ..models import CheckCategory
from .base import Check, FindingRecorder, ScanContext
from .common import SourceFile, SourceIndex, is_comment_line

logger = logging.getLogger(__name__)

API_DIR = "app/api"
PROTECTED_GROUP = "app/(protected)"
ROLES_FILE = "types/roles.ts"
PAGE_NAMES = ("page.tsx", "page.ts")
LAYOUT_NAMES = ("layout.tsx", "layout.ts")
PAGE_EXTENSIONS = {".tsx", ".ts"}

HANDLER_EXPORT_RE = re.compile(r"export.*\b(GET|POST|PUT|DELETE|PATCH)\b")
EXPORT_FUNCTION_RE = re.compile(r"export\s+(default\s+)?(async\s+)?function")
PAGE_FUNCTION_RES = (
    EXPORT_FUNCTION_RE,
    re.compile(r"^\s*(async\s+)?function\s+\w+Page"),
    re.compile(r"export\s+default\s+\w+Page"),
)

ROUTE_AUTH_MARKERS = ("getServerSession", "withRoleProtection", "requireAuth", "requireRole", "auth(")
ROLE_HELPERS = ("requireMinimumRole", "requireExactRole", "requireRole", "requireAnyRole")
LAYOUT_AUTH_MARKERS = ("requireAuth", *ROLE_HELPERS, "getServerSession", "auth(")
PRIVILEGED_ROLE_REFS = ("UserRole.ADMIN", "UserRole.POWER_USER")
SESSION_USER_REFS = ("session.user", "session?.user")

SESSION_VALIDATION_RES = (
    re.compile(r"await\s+auth\s*\(\s*\)"),
    re.compile(r"await\s+getServerSession\s*\("),
    re.compile(r"await\s+requireAuth\s*\(\s*\)"),
    re.compile(r"await\s+requireRole\s*\("),
    re.compile(r"await\s+requireMinimumRole\s*\("),
    re.compile(r"await\s+requireAnyRole\s*\("),
    re.compile(r"await\s+requireExactRole\s*\("),
    re.compile(r"const\s+session\s*=\s*await"),
    re.compile(r"const\s+\{\s*user\s*\}\s*=\s*await"),
    re.compile(r"useSession\s*\(\s*\).*(?:status|data|session)"),
)
CLIENT_SESSION_DATA_RES = (
    re.compile(r"session\??\.", re.IGNORECASE),
    re.compile(r"data\??\.", re.IGNORECASE),
)

ROLE_ENUM_MEMBER_RE = re.compile(r"^\s*(\w+)\s*=\s*['\"]([^'\"]+)['\"]", re.MULTILINE)
ENUM_REFERENCE_RE = re.compile(r"UserRole\.(\w+)")
ROLE_LITERAL_RE = re.compile(r"role['\"]?\s*[:=]+\s*['\"](\w+)['\"]")
ROLE_HELPER_CALL_RE = re.compile(
    r"(hasRole|requireRole|hasAnyRole|hasMinimumRole|requireMinimumRole|requireAnyRole)"
    r"\([^)]*['\"](\w+)['\"]"
)

API_ROUTE_REMEDIATION = f"""Add auth() or use withRoleProtection() from lib/auth/auth-helpers.ts. Example:

  import {{ withRoleProtection }} from '@/lib/auth/auth-helpers';
  import {{ UserRole }} from '@/types/roles';

  export const GET = withRoleProtection(
    async (request) => {{
      return NextResponse.json({{ data: 'protected data' }});
    }},
    {{ minimumRole: UserRole.STANDARD_USER }}
  );

Documentation:
  - Example: {DOCS['protectedRoute']}
  - Auth helpers: {DOCS['authHelpers']}
  - Guide: {DOCS['authentication']}"""

PROTECTED_LAYOUT_REMEDIATION = f"""Add requireAuth() or requireMinimumRole() from lib/auth/auth-helpers.ts in the layout. Example:

  import {{ requireAuth }} from '@/lib/auth/auth-helpers';

  export default async function ProtectedLayout({{ children }}) {{
    await requireAuth(); // Throws if not authenticated
    return <>{{children}}</>;
  }}

  // Or with a role check:
  import {{ requireMinimumRole }} from '@/lib/auth/auth-helpers';
  import {{ UserRole }} from '@/types/roles';

  export default async function AdminLayout({{ children }}) {{
    await requireMinimumRole(UserRole.ADMIN);
    return <>{{children}}</>;
  }}

Documentation:
  - Auth helpers: {DOCS['authHelpers']}
  - Guide: {DOCS['authentication']}
  - NextAuth.js: {DOCS['nextAuth']}"""

PROTECTED_PAGE_REMEDIATION = f"""Add requireMinimumRole() or requireAnyRole() in the page or a parent layout. Example:

  import {{ requireMinimumRole }} from '@/lib/auth/auth-helpers';
  import {{ UserRole }} from '@/types/roles';

  export default async function AdminDashboard() {{
    const session = await requireMinimumRole(UserRole.POWER_USER);
    return <div>Welcome {{session.user.name}}</div>;
  }}

  // Or for several specific roles:
  const session = await requireAnyRole([UserRole.ADMIN, UserRole.POWER_USER]);

Documentation:
  - Auth helpers: {DOCS['authHelpers']}
  - Roles: {DOCS['rolesDefinition']}
  - Guide: {DOCS['authentication']}"""

UNPROTECTED_PAGE_REMEDIATION = f"""Move to the app/(protected)/ directory or add a requireAuth() check. Example:

  import {{ requireAuth }} from '@/lib/auth/auth-helpers';

  export default async function ProfilePage() {{
    const session = await requireAuth();
    return <div>Welcome {{session.user.name}}</div>;
  }}

Or move the page to: web/src/app/(protected)/your-page/page.tsx
The (protected) layout then handles authentication.

Documentation:
  - Auth helpers: {DOCS['authHelpers']}
  - Guide: {DOCS['authentication']}"""

SERVER_SESSION_REMEDIATION = f"""Add session validation using await requireAuth() at the start of the component. Example:

  import {{ requireAuth }} from '@/lib/auth/auth-helpers';

  export default async function ProtectedPage() {{
    const session = await requireAuth();
    // session is guaranteed to exist here
    return <div>Welcome {{session.user.name}}</div>;
  }}

Documentation:
  - Auth helpers: {DOCS['authHelpers']}
  - Guide: {DOCS['authentication']}"""

CLIENT_SESSION_REMEDIATION = f"""Add session validation using the useSession() hook with status checks. Example:

  'use client';
  import {{ useSession }} from 'next-auth/react';
  import {{ redirect }} from 'next/navigation';

  export default function ProtectedClientComponent() {{
    const {{ data: session, status }} = useSession();

    if (status === 'loading') return <div>Loading...</div>;
    if (!session) redirect('/auth/signin');

    return <div>Welcome {{session.user.name}}</div>;
  }}

Or move the auth logic to a parent Server Component layout.

Documentation:
  - Guide: {DOCS['authentication']}
  - NextAuth.js: {DOCS['nextAuth']}"""


class RoleSet(NamedTuple):
    """Canonical roles declared by the UserRole enum."""

    enum_keys: tuple[str, ...]
    values: tuple[str, ...]


def load_roles(index: SourceIndex) -> RoleSet:
    """Extract ``NAME = 'value'`` members from types/roles.ts."""
    source = index.get(ROLES_FILE)
    if source is None:
        logger.info(f"  roles file not found at {index.display_path(ROLES_FILE)}")
        return RoleSet((), ())
    members = ROLE_ENUM_MEMBER_RE.findall(source.content)
    return RoleSet(
        enum_keys=tuple(key for key, _ in members),
        values=tuple(value for _, value in members),
    )


def _is_page(source: SourceFile) -> bool:
    return source.name in PAGE_NAMES


def _layout_in(index: SourceIndex, directory: str) -> Optional[SourceFile]:
    for name in LAYOUT_NAMES:
        layout = index.get(f"{directory}/{name}")
        if layout is not None:
            return layout
    return None


def _page_function_line(source: SourceFile) -> int:
    return source.first_line_matching(*PAGE_FUNCTION_RES)


def has_session_validation(content: str) -> bool:
    return any(pattern.search(content) for pattern in SESSION_VALIDATION_RES)


def client_checks_session(source: SourceFile) -> bool:
    """Whether a client component inspects its useSession() result."""
    content = source.content
    if "useSession" not in content:
        return False
    has_status_check = "status" in content and any(
        state in content for state in ("loading", "authenticated", "unauthenticated")
    )
    return has_status_check or any(p.search(content) for p in CLIENT_SESSION_DATA_RES)


class RBACCheck(Check):
    """Authorization on API routes, protected pages and role references."""

    category = CheckCategory.rbac
    progress_message = "Checking RBAC implementation..."

    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        index = context.index
        self.check_api_routes(index, recorder)
        if index.is_dir(PROTECTED_GROUP):
            self.check_protected_layout(index, recorder)
            self.check_protected_pages(index, recorder)
        else:
            logger.info("  No (protected) route group found - skipping protected pages check")
        self.check_unprotected_pages(index, recorder)
        if index.is_dir(PROTECTED_GROUP):
            self.check_session_validation(index, recorder)
        self.check_role_references(context, recorder)

    def check_api_routes(self, index: SourceIndex, recorder: FindingRecorder) -> None:
        for source in index.files_under(API_DIR):
            handler_line = source.first_line_matching(HANDLER_EXPORT_RE, default=0)
            if not handler_line:
                continue
            if "[...nextauth]" in source.relative_path:
                continue
            if source.contains_any(*ROUTE_AUTH_MARKERS):
                continue
            if recorder.file_waived(source, "rbac-api-route"):
                continue
            recorder.report(
                source, handler_line, "rbac-api-route",
                "API route missing authorization check",
                API_ROUTE_REMEDIATION,
            )

    def check_protected_layout(self, index: SourceIndex, recorder: FindingRecorder) -> None:
        layout = _layout_in(index, PROTECTED_GROUP)
        if layout is None:
            recorder.report_path(
                index.display_path(f"{PROTECTED_GROUP}/layout.ts"), 1, "rbac-protected-layout",
                "Protected route group layout missing authentication check",
                PROTECTED_LAYOUT_REMEDIATION,
            )
            return
        if layout.contains_any(*LAYOUT_AUTH_MARKERS):
            return
        if recorder.file_waived(layout, "rbac-protected-layout"):
            return
        recorder.report(
            layout, layout.first_line_matching(EXPORT_FUNCTION_RE), "rbac-protected-layout",
            "Protected route group layout missing authentication check",
            PROTECTED_LAYOUT_REMEDIATION,
        )

    def _nested_layout_has_role_check(self, index: SourceIndex, page: SourceFile) -> bool:
        directory = posixpath.dirname(page.relative_path)
        while directory != PROTECTED_GROUP and directory.startswith(PROTECTED_GROUP + "/"):
            layout = _layout_in(index, directory)
            if layout is not None and layout.contains_any(*ROLE_HELPERS):
                return True
            directory = posixpath.dirname(directory)
        return False

    def check_protected_pages(self, index: SourceIndex, recorder: FindingRecorder) -> None:
        for page in index.files_under(PROTECTED_GROUP, extensions=PAGE_EXTENSIONS):
            if not _is_page(page):
                continue
            content = page.content
            mentions_privileged = page.contains_any(*PRIVILEGED_ROLE_REFS) or (
                "admin" in content and ("dashboard" in content or "settings" in content)
            )
            if not mentions_privileged:
                continue
            if page.contains_any(*ROLE_HELPERS) or self._nested_layout_has_role_check(index, page):
                continue
            if recorder.file_waived(page, "rbac-protected-page"):
                continue

            line = 1
            for number, text in page.numbered_lines():
                if any(ref in text for ref in PRIVILEGED_ROLE_REFS):
                    line = number
                    break
            recorder.report(
                page, line, "rbac-protected-page",
                "Protected page references role-specific content without role check",
                PROTECTED_PAGE_REMEDIATION,
            )

    def check_unprotected_pages(self, index: SourceIndex, recorder: FindingRecorder) -> None:
        for page in index.files_under("app", extensions=PAGE_EXTENSIONS):
            if not _is_page(page):
                continue
            if "(protected)" in page.relative_path or "auth" in page.relative_path:
                continue
            if not page.contains_any(*SESSION_USER_REFS):
                continue
            if page.contains_any("requireAuth", "getSession"):
                continue
            if recorder.file_waived(page, "rbac-unprotected-page"):
                continue

            line = 1
            for number, text in page.numbered_lines():
                if any(ref in text for ref in SESSION_USER_REFS):
                    line = number
                    break
            recorder.report(
                page, line, "rbac-unprotected-page",
                "Page uses session data but is not in a protected route group",
                UNPROTECTED_PAGE_REMEDIATION,
            )

    def _ancestor_layout_validates_session(self, index: SourceIndex, page: SourceFile) -> bool:
        directory = posixpath.dirname(page.relative_path)
        while directory == PROTECTED_GROUP or directory.startswith(PROTECTED_GROUP + "/"):
            layout = _layout_in(index, directory)
            if layout is not None and has_session_validation(layout.content):
                return True
            directory = posixpath.dirname(directory)
        return False

    def check_session_validation(self, index: SourceIndex, recorder: FindingRecorder) -> None:
        logger.info("Checking protected pages for session validation...")
        for page in index.files_under(PROTECTED_GROUP, extensions=PAGE_EXTENSIONS):
            if not _is_page(page):
                continue
            if self._ancestor_layout_validates_session(index, page):
                continue
            if has_session_validation(page.content):
                continue

            is_client = page.is_client_component
            if is_client and client_checks_session(page):
                continue
            if recorder.file_waived(page, "session-validation"):
                continue

            recorder.report(
                page, _page_function_line(page), "session-validation",
                "Protected page missing session validation" + (" (client component)" if is_client else ""),
                CLIENT_SESSION_REMEDIATION if is_client else SERVER_SESSION_REMEDIATION,
            )

    def check_role_references(self, context: ScanContext, recorder: FindingRecorder) -> None:
        logger.info("Checking role references against UserRole enum...")
        index = context.index
        roles = load_roles(index)
        if not roles.enum_keys:
            logger.info("  Skipping role reference check - no roles found in roles.ts")
            return
        logger.info(f"  Found valid roles: {', '.join(roles.enum_keys)}")

        ignored = context.config.ignored_role_literals
        enum_list = ", ".join(roles.enum_keys)
        value_list = ", ".join(roles.values)

        for source in index.files_under("app", "lib", "components"):
            if source.name.endswith("roles.ts"):
                continue
            literal_scope = not source.relative_path.startswith("components/") and not source.name.endswith(".d.ts")

            violations: list[tuple[int, str, str]] = []
            for number, line in source.numbered_lines():
                if is_comment_line(line):
                    continue
                for role in ENUM_REFERENCE_RE.findall(line):
                    if role not in roles.enum_keys:
                        violations.append((
                            number,
                            f"Invalid role reference: UserRole.{role}",
                            f"Use a valid role from UserRole enum: {enum_list}",
                        ))
                if not literal_scope:
                    continue
                for value in ROLE_LITERAL_RE.findall(line):
                    if value.lower() in ignored or value in roles.values:
                        continue
                    violations.append((
                        number,
                        f"Invalid role string literal: '{value}'",
                        f"Use a valid role value: {value_list}",
                    ))
                call = ROLE_HELPER_CALL_RE.search(line)
                if call and call.group(2) not in roles.values and call.group(2) not in roles.enum_keys:
                    violations.append((
                        number,
                        f"Invalid role in function call: '{call.group(2)}'",
                        f"Use UserRole enum instead: UserRole.{roles.enum_keys[0]} (or valid role: {enum_list})",
                    ))

            if not violations:
                continue
            if recorder.file_waived(source, "rbac-role-reference"):
                continue
            for number, message, remediation in violations:
                recorder.report(source, number, "rbac-role-reference", message, remediation)
