# backend/toolforge/services/sql_guard.py
"""
Allow-list check for model-generated table definitions.

Generated SQL is split into statements and every statement must match one of
a small set of DDL forms. Anything else (DROP, DELETE, GRANT, functions, DO
blocks, ...) is rejected before it reaches the execution gateway.
"""
import logging
import re
from typing import Iterable, List

from toolforge.core.config import settings
from toolforge.exceptions import SqlRejectedError

logger = logging.getLogger(__name__)

_IDENT = r'(?:"[^"]+"|[A-Za-z_][\w$]*)'
_QUALIFIED = rf'{_IDENT}(?:\.{_IDENT})?'

ALLOWED_STATEMENTS = [
    re.compile(r"^CREATE\s+TABLE\s", re.IGNORECASE),
    re.compile(r"^CREATE\s+(?:UNIQUE\s+)?INDEX\s", re.IGNORECASE),
    re.compile(rf"^ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?{_QUALIFIED}\s+ENABLE\s+ROW\s+LEVEL\s+SECURITY$", re.IGNORECASE),
    re.compile(rf"^ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?{_QUALIFIED}\s+ADD\s", re.IGNORECASE),
    re.compile(r"^CREATE\s+POLICY\s", re.IGNORECASE),
    re.compile(r"^COMMENT\s+ON\s", re.IGNORECASE),
]

_EXTENSION = re.compile(
    r'^CREATE\s+EXTENSION\s+(?:IF\s+NOT\s+EXISTS\s+)?"?(?P<name>[\w-]+)"?(?:\s+(?:WITH\s+)?SCHEMA\s+\w+)?$',
    re.IGNORECASE,
)
_DOLLAR_TAG = re.compile(r"\$[A-Za-z_]*\$")


def split_statements(sql: str) -> List[str]:
    """
    Splits a SQL script on top-level semicolons.

    Quoted strings, quoted identifiers, dollar-quoted bodies and comments are
    skipped over; comments are dropped from the returned statements.
    """
    statements: List[str] = []
    current: List[str] = []
    i, n = 0, len(sql)

    while i < n:
        ch = sql[i]
        if sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end
            current.append(" ")
            continue
        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end == -1 else end + 2
            current.append(" ")
            continue
        if ch in ("'", '"'):
            j = i + 1
            while j < n:
                if sql[j] == ch:
                    if j + 1 < n and sql[j + 1] == ch:  # escaped quote
                        j += 2
                        continue
                    break
                j += 1
            current.append(sql[i:j + 1])
            i = j + 1
            continue
        if ch == "$":
            tag = _DOLLAR_TAG.match(sql, i)
            if tag:
                end = sql.find(tag.group(0), tag.end())
                stop = n if end == -1 else end + len(tag.group(0))
                current.append(sql[i:stop])
                i = stop
                continue
        if ch == ";":
            statement = " ".join("".join(current).split())
            if statement:
                statements.append(statement)
            current = []
            i += 1
            continue
        current.append(ch)
        i += 1

    statement = " ".join("".join(current).split())
    if statement:
        statements.append(statement)
    return statements


class SqlGuard:
    def __init__(self, allowed_extensions: Iterable[str] = settings.ALLOWED_SQL_EXTENSIONS):
        self.allowed_extensions = {name.lower() for name in allowed_extensions}

    def check_statement(self, statement: str) -> None:
        extension = _EXTENSION.match(statement)
        if extension:
            name = extension.group("name").lower()
            if name not in self.allowed_extensions:
                raise SqlRejectedError(statement, f"extension '{name}' is not allowed")
            return
        if not any(pattern.match(statement) for pattern in ALLOWED_STATEMENTS):
            raise SqlRejectedError(statement, "statement type is not allowed")

    def validate(self, sql: str) -> List[str]:
        """Returns the statements of `sql` or raises SqlRejectedError on the first disallowed one."""
        statements = split_statements(sql)
        if not statements:
            raise SqlRejectedError(sql, "no statements found")
        for statement in statements:
            self.check_statement(statement)
        logger.debug(f"Generated SQL accepted ({len(statements)} statements)")
        return statements
