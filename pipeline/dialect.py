"""
pipeline/dialect.py
-------------------
Per-store rules for embedding identifiers and text in SQL statements.

Design Decision:
    Literal syntax differs between stores (MySQL treats a backslash inside a
    quoted string as an escape character, ANSI SQL does not).  The rules are
    a small strategy object chosen per destination instead of being
    hard-coded in the value codec.
"""
from __future__ import annotations

import re

_PLAIN_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Keywords reserved by ANSI SQL, MySQL or SQLite that are plausible as table
# or column names.  A plain name in this set still gets quoted.
RESERVED_WORDS = frozenset("""
    ADD ALL ALTER AND AS ASC BETWEEN BY CASE CAST CHECK COLLATE COLUMN
    CONSTRAINT CREATE CROSS CURRENT_DATE CURRENT_TIME CURRENT_TIMESTAMP
    DATABASE DEFAULT DELETE DESC DISTINCT DROP ELSE END ESCAPE EXCEPT EXISTS
    FOR FOREIGN FROM FULL GROUP HAVING IN INDEX INNER INSERT INTERSECT INTO
    IS JOIN KEY KEYS LEFT LIKE LIMIT MATCH NATURAL NOT NULL OF OFFSET ON OR
    ORDER OUTER PRIMARY REFERENCES REPLACE RIGHT ROW ROWS SELECT SET TABLE
    THEN TO TRANSACTION UNION UNIQUE UPDATE USING VALUES WHEN WHERE WITH
""".split())


class Dialect:
    """ANSI SQL rules: quotes doubled, plain non-reserved identifiers left bare."""

    name = "ansi"

    def quote_identifier(self, name: str) -> str:
        if _PLAIN_IDENTIFIER_RE.match(name) and name.upper() not in RESERVED_WORDS:
            return name
        return '"' + name.replace('"', '""') + '"'

    def escape_text(self, text: str) -> str:
        return text.replace("'", "''")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class MySQLDialect(Dialect):
    """
    MySQL rules (default ``sql_mode``).

    Backslashes are escape characters inside MySQL string literals, so they
    are doubled along with single quotes.  Identifiers are always
    backtick-quoted to avoid reserved-word collisions.
    """

    name = "mysql"

    def quote_identifier(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def escape_text(self, text: str) -> str:
        return text.replace("\\", "\\\\").replace("'", "''")


class SQLiteDialect(Dialect):
    """SQLite rules: ANSI literals, every identifier double-quoted."""

    name = "sqlite"

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'


_DIALECTS: dict[str, Dialect] = {
    "ansi": Dialect(),
    "mysql": MySQLDialect(),
    "sqlite": SQLiteDialect(),
}

ANSI = _DIALECTS["ansi"]
MYSQL = _DIALECTS["mysql"]
SQLITE = _DIALECTS["sqlite"]


def get_dialect(name: str) -> Dialect:
    """
    Look up a dialect by name.

    Raises:
        ValueError: If *name* is not a known dialect.
    """
    try:
        return _DIALECTS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown SQL dialect '{name}'. Choose one of: {', '.join(sorted(_DIALECTS))}"
        ) from None
