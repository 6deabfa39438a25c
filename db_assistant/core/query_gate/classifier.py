"""
CLASSIFIER - Decide what kind of statement a raw SQL string is

Purpose:
    Map any query text (possibly adversarial, possibly wrapped in comments)
    to one QueryType, so the permission gate knows which flag to check.

How:
    comments stripped -> whitespace trimmed -> uppercased -> keyword prefix

Limitation:
    Only the leading keyword is inspected. "SELECT 1; DROP TABLE x" is a
    SELECT as far as this module is concerned. Stacked statements must be
    rejected elsewhere (statement splitting or a real parser).

    Line comments are stripped before block comments, so a `--` inside a
    block comment eats the rest of the line: "/* -- */ DROP TABLE users"
    is OTHER, and OTHER is not governed by any permission flag.
"""

import re
from enum import Enum


class QueryType(str, Enum):
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    DDL = "DDL"
    OTHER = "OTHER"


DDL_KEYWORDS = ("CREATE", "DROP", "ALTER", "TRUNCATE", "RENAME", "COMMENT")
READ_KEYWORDS = ("SELECT", "WITH")

_LINE_COMMENT = re.compile(r"--[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)

_DESCRIPTIONS = {
    QueryType.SELECT: "Data retrieval (SELECT)",
    QueryType.INSERT: "Data insertion (INSERT)",
    QueryType.UPDATE: "Data modification (UPDATE)",
    QueryType.DELETE: "Data deletion (DELETE)",
    QueryType.DDL: "Schema modification (DDL)",
    QueryType.OTHER: "Other operation",
}


def strip_comments(query: str) -> str:
    """Remove `-- ...` line comments and `/* ... */` blocks, then trim."""
    query = _LINE_COMMENT.sub("", query)
    query = _BLOCK_COMMENT.sub("", query)
    return query.strip()


def _normalize(query: str) -> str:
    # Uppercased copy for keyword checks only, the caller keeps the original
    return strip_comments(query or "").upper()


def is_ddl_query(query: str) -> bool:
    return _normalize(query).startswith(DDL_KEYWORDS)


def classify(query: str) -> QueryType:
    """
    Classify a raw SQL string by its leading keyword.

    DDL keywords win over everything else, WITH counts as a read so common
    table expressions are gated by the read flag.

    Example:
        classify("-- latest\\nSELECT 1")  -> QueryType.SELECT
        classify("/* x */ DELETE FROM t") -> QueryType.DELETE
        classify("")                       -> QueryType.OTHER
    """
    if is_ddl_query(query):
        return QueryType.DDL

    cleaned = _normalize(query)

    if cleaned.startswith(READ_KEYWORDS):
        return QueryType.SELECT
    if cleaned.startswith("INSERT"):
        return QueryType.INSERT
    if cleaned.startswith("UPDATE"):
        return QueryType.UPDATE
    if cleaned.startswith("DELETE"):
        return QueryType.DELETE

    return QueryType.OTHER


def describe(query_type: QueryType) -> str:
    """Human readable label shown next to a proposed query."""
    return _DESCRIPTIONS[query_type]
