"""SQL injection checks: raw SQL literals and query string concatenation."""

import logging
import re
from typing import Optional

from ..config import DOCS
from ..models import CheckCategory
from .base import Check, FindingRecorder, ScanContext
from .common import SourceFile, is_comment_line

logger = logging.getLogger(__name__)

RAW_SQL_RES = tuple(re.compile(p, re.IGNORECASE) for p in (
    # SQL statements in string literals
    r"['\"`]\s*SELECT\s+.+\s+FROM\s+",
    r"['\"`]\s*INSERT\s+INTO\s+",
    r"['\"`]\s*UPDATE\s+\w+\s+SET\s+",
    r"['\"`]\s*DELETE\s+FROM\s+",
    r"['\"`]\s*DROP\s+(TABLE|DATABASE|INDEX)\s+",
    r"['\"`]\s*CREATE\s+(TABLE|DATABASE|INDEX)\s+",
    r"['\"`]\s*ALTER\s+TABLE\s+",
    r"['\"`]\s*TRUNCATE\s+TABLE\s+",
    # untagged template literals
    r"(?<!sql)`\s*SELECT\s+.+\s+FROM\s+",
    r"(?<!sql)`\s*INSERT\s+INTO\s+",
    r"(?<!sql)`\s*UPDATE\s+\w+\s+SET\s+",
    r"(?<!sql)`\s*DELETE\s+FROM\s+",
    # raw execution
    r"\.query\s*\(\s*['\"`]\s*(SELECT|INSERT|UPDATE|DELETE)\b",
    r"\.execute\s*\(\s*['\"`]\s*(SELECT|INSERT|UPDATE|DELETE)\b",
    r"\.raw\s*\(\s*['\"`]\s*(SELECT|INSERT|UPDATE|DELETE)\b",
    # SQL string variables
    r"(?:const|let|var)\s+\w*(sql|query|stmt|statement)\w*\s*=\s*['\"`]\s*(SELECT|INSERT|UPDATE|DELETE)\b",
))

SAFE_SQL_RES = (
    re.compile(r"Prisma\.sql`", re.IGNORECASE),
    re.compile(r"prisma\.\$queryRaw", re.IGNORECASE),
    re.compile(r"prisma\.\$executeRaw", re.IGNORECASE),
    re.compile(r"sql`"),
    re.compile(r"\.findMany\s*\("),
    re.compile(r"\.findUnique\s*\("),
    re.compile(r"\.findFirst\s*\("),
    re.compile(r"\.create\s*\("),
    re.compile(r"\.update\s*\("),
    re.compile(r"\.delete\s*\("),
    re.compile(r"\.upsert\s*\("),
    re.compile(r"interface\s+\w+"),
    re.compile(r"type\s+\w+\s*="),
    re.compile(r"^import\s+"),
    re.compile(r"method:\s*['\"`](GET|POST|PUT|DELETE|PATCH)['\"`]", re.IGNORECASE),
    re.compile(r"['\"`](GET|POST|PUT|DELETE|PATCH)['\"`]\s*,"),
    re.compile(r"z\.enum\s*\(\s*\["),
    re.compile(r"\.enum\s*\(\s*\[.*(?:create|update|delete)", re.IGNORECASE),
    re.compile(r"export\s+(const|async|default)"),
)

SQL_KEYWORDS = ("SELECT", "INSERT", "UPDATE", "DELETE", "FROM", "WHERE", "JOIN", "ORDER BY", "GROUP BY")

SQL_STRING_CONCAT_RE = re.compile(
    r"(['\"`])\s*(" + "|".join(SQL_KEYWORDS) + r")\b[^'\"`]*\1\s*\+\s*[a-zA-Z_$][a-zA-Z0-9_$]*",
    re.IGNORECASE,
)
VAR_PLUS_SQL_RE = re.compile(
    r"[a-zA-Z_$][a-zA-Z0-9_$]*\s*\+\s*['\"`]\s*(SELECT|INSERT|UPDATE|DELETE|FROM|WHERE|JOIN|AND|OR)\b",
    re.IGNORECASE,
)
SQL_VAR_CONCAT_RE = re.compile(
    r"\b(query|sql|statement|cmd|command)\s*(\+|=\s*[^=].*\+)\s*[a-zA-Z_$][a-zA-Z0-9_$]*",
    re.IGNORECASE,
)
PLUS_LITERAL_RE = re.compile(r"\+\s*['\"`]")
PLUS_USER_VAR_RE = re.compile(r"\+\s*(user|input|param|req|body|data|id)\w*", re.IGNORECASE)
TEMPLATE_SQL_RE = re.compile(
    r"`[^`]*(SELECT|INSERT|UPDATE|DELETE|FROM|WHERE)\b[^`]*\$\{[^}]+\}[^`]*`",
    re.IGNORECASE,
)
INTERPOLATION_RE = re.compile(r"\$\{([^}]+)\}")
USER_LIKE_NAME_RE = re.compile(
    r"^(req|params|query|body|user|input|data|id|name|email|search|filter)",
    re.IGNORECASE,
)
USER_LIKE_ATTR_RE = re.compile(r"\.(id|name|email|query|search|filter|param)", re.IGNORECASE)
INPUT_CONCAT_RE = re.compile(
    r"['\"`][^'\"`]*(WHERE|AND|OR|SET|VALUES)\s*[^'\"`]*['\"`]\s*\+\s*(req\.|params\.|input|user|data|body|query)\b",
    re.IGNORECASE,
)
EXEC_CONCAT_RE = re.compile(r"\.(query|execute|raw|run|all|get)\s*\([^)]*\+[^)]*\)", re.IGNORECASE)

RAW_QUERY_REMEDIATION = f"""Use Prisma ORM or parameterized queries instead of raw SQL. Example:

  // UNSAFE - vulnerable to SQL injection:
  const query = `SELECT * FROM users WHERE id = '${{userId}}'`;

  // SAFE - Prisma ORM methods:
  const user = await prisma.user.findUnique({{
    where: {{ id: userId }}
  }});

  // SAFE - Prisma.sql tagged template for raw queries:
  import {{ Prisma }} from '@prisma/client';
  const users = await prisma.$queryRaw(
    Prisma.sql`SELECT * FROM users WHERE id = ${{userId}}`
  );

Documentation:
  - Prisma Raw Queries: {DOCS['prisma']}"""

CONCATENATION_REMEDIATION = f"""Never concatenate user input into SQL strings. Use parameterized queries. Example:

  // UNSAFE - string concatenation:
  const query = "SELECT * FROM users WHERE name = '" + userName + "'";
  db.query(query);

  // SAFE - Prisma ORM:
  const user = await prisma.user.findMany({{
    where: {{ name: userName }}
  }});

  // SAFE - Prisma.sql for raw queries:
  const result = await prisma.$queryRaw(
    Prisma.sql`SELECT * FROM users WHERE name = ${{userName}}`
  );

  // SAFE - parameterized query (other ORMs):
  db.query('SELECT * FROM users WHERE name = ?', [userName]);

Documentation:
  - Prisma Raw Queries: {DOCS['prisma']}"""


def is_raw_sql(line: str) -> bool:
    if any(pattern.search(line) for pattern in SAFE_SQL_RES):
        return False
    return any(pattern.search(line) for pattern in RAW_SQL_RES)


def _has_unsafe_interpolation(line: str) -> bool:
    if "sql`" in line or "Prisma" in line:
        return False
    for expression in INTERPOLATION_RE.findall(line):
        expression = expression.strip()
        if USER_LIKE_NAME_RE.search(expression) or USER_LIKE_ATTR_RE.search(expression):
            return True
    return False


def concatenation_issue(line: str) -> Optional[str]:
    """Describe how ``line`` concatenates into a query, if it does."""
    if SQL_STRING_CONCAT_RE.search(line):
        return "SQL string concatenated with variable"
    if VAR_PLUS_SQL_RE.search(line):
        return "Variable concatenated with SQL string"
    if SQL_VAR_CONCAT_RE.search(line):
        declares = any(keyword in line for keyword in ("const ", "let ", "var "))
        if not declares:
            if "+" in line and not PLUS_LITERAL_RE.search(line):
                return "SQL query variable concatenated with another variable"
        elif "+" in line and PLUS_USER_VAR_RE.search(line):
            return "SQL query built with user input concatenation"
    if TEMPLATE_SQL_RE.search(line) and _has_unsafe_interpolation(line):
        return "SQL template literal with potentially unsafe interpolation"
    if INPUT_CONCAT_RE.search(line):
        return "SQL clause concatenated with user input"
    if EXEC_CONCAT_RE.search(line):
        return "Database query/execute call with string concatenation"
    return None


class SQLInjectionCheck(Check):
    category = CheckCategory.sql_injection
    progress_message = "Checking SQL injection prevention..."

    def _sources(self, context: ScanContext) -> list[SourceFile]:
        return [s for s in context.index.files_under("app", "lib") if not s.name.endswith(".d.ts")]

    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        sources = self._sources(context)
        self.check_raw_queries(sources, recorder)
        logger.info("Checking for string concatenation in database queries...")
        self.check_concatenation(sources, recorder)

    def check_raw_queries(self, sources: list[SourceFile], recorder: FindingRecorder) -> None:
        for source in sources:
            hits = [
                number for number, line in source.numbered_lines()
                if line.strip() and not is_comment_line(line) and is_raw_sql(line)
            ]
            if not hits or recorder.file_waived(source, "sql-raw-query"):
                continue
            for number in hits:
                recorder.report(
                    source, number, "sql-raw-query",
                    "Potential raw SQL query detected",
                    RAW_QUERY_REMEDIATION,
                )

    def check_concatenation(self, sources: list[SourceFile], recorder: FindingRecorder) -> None:
        for source in sources:
            hits: list[tuple[int, str]] = []
            for number, line in source.numbered_lines():
                if is_comment_line(line):
                    continue
                message = concatenation_issue(line)
                if message:
                    hits.append((number, message))
            if not hits or recorder.file_waived(source, "sql-concatenation"):
                continue
            for number, message in hits:
                recorder.report(source, number, "sql-concatenation", message, CONCATENATION_REMEDIATION)
