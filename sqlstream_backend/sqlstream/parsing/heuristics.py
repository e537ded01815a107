from __future__ import annotations

from typing import Any


SQL_KEYWORDS = (
    "SELECT",
    "INSERT",
    "UPDATE",
    "DELETE",
    "CREATE",
    "ALTER",
    "DROP",
    "DECLARE",
    "WITH",
    "MERGE",
    "EXEC",
    "EXECUTE",
    "CALL",
)

MAX_STATEMENT_LINES = 10


def _is_comment(line: str) -> bool:
    return line.startswith("--") or line.startswith("/*")


def _starts_with_keyword(line: str) -> bool:
    return any(line == kw or line.startswith(kw + " ") for kw in SQL_KEYWORDS)


def is_sql_like(candidate: Any) -> bool:
    """
    Keyword-prefix check over the first ten non-empty, non-comment lines.
    Display/audit only; this is not a SQL parser.
    """
    if not isinstance(candidate, str):
        return False

    seen = 0
    for raw in candidate.upper().split("\n"):
        line = raw.strip()
        if not line or _is_comment(line):
            continue
        if _starts_with_keyword(line):
            return True
        seen += 1
        if seen >= MAX_STATEMENT_LINES:
            break
    return False
