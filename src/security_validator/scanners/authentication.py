"""Authentication configuration presence check."""

import logging

from ..config import DOCS
from ..models import CheckCategory
from .base import Check, FindingRecorder, ScanContext

logger = logging.getLogger(__name__)

AUTH_CONFIG_FILES = ("lib/auth/auth.config.ts", "lib/auth/auth.ts")

AUTH_CONFIG_REMEDIATION = f"""Create the authentication configuration files. Expected structure:

  web/src/lib/auth/
    auth.ts          # NextAuth configuration export
    auth.config.ts   # Auth options (providers, callbacks)
    auth-helpers.ts  # RBAC helper functions

  Example auth.ts:
  import NextAuth from 'next-auth';
  import {{ authConfig }} from './auth.config';

  export const {{ auth, handlers, signIn, signOut }} = NextAuth(authConfig);

Documentation:
  - Guide: {DOCS['authentication']}
  - Auth helpers: {DOCS['authHelpers']}
  - NextAuth.js: {DOCS['nextAuth']}"""


class AuthenticationCheck(Check):
    """Coarse check that an auth configuration module exists."""

    category = CheckCategory.authentication
    progress_message = "Checking authentication configuration..."

    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        index = context.index
        if not index.is_dir("app"):
            logger.info("  No app directory found - skipping authentication check")
            return

        if not any((index.source_root / path).is_file() for path in AUTH_CONFIG_FILES):
            recorder.report_path(
                index.display_path("lib/auth") + "/", None, "authentication",
                "Authentication configuration not found",
                AUTH_CONFIG_REMEDIATION,
            )
            return

        if not (index.source_root / "app" / "(protected)" / "layout.tsx").is_file():
            logger.info("  Note: No (protected) route group layout found")
