from dataclasses import dataclass
from typing import Optional, Protocol, assert_never

from db_assistant.core.query_gate.classifier import QueryType

DDL_DENIED = "DDL operations are not allowed for this project"
WRITE_DENIED = "Write operations are not allowed for this project"
READ_DENIED = "Read operations are not allowed for this project"
DELETE_DENIED = "Delete operations are not allowed for this project"
VALIDATION_DENIED = "Read permission required for query validation"


class PermissionPolicy(Protocol):
    """The four flags of a project's permission row (models.Permission)."""

    allow_ddl: bool
    allow_write: bool
    allow_read: bool
    allow_delete: bool


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


def _check(flag: bool, reason: str) -> Decision:
    return Decision.allow() if flag else Decision.deny(reason)


def authorize(query_type: QueryType, policy: Optional[PermissionPolicy]) -> Decision:
    """
    Decide whether a statement of `query_type` may run under `policy`.

    A project without a permission row predates policies and is unrestricted.
    OTHER statements (SET, BEGIN, SHOW, ...) are not governed by any flag.
    """
    if policy is None:
        return Decision.allow()

    if query_type is QueryType.DDL:
        return _check(policy.allow_ddl, DDL_DENIED)
    elif query_type is QueryType.INSERT or query_type is QueryType.UPDATE:
        return _check(policy.allow_write, WRITE_DENIED)
    elif query_type is QueryType.SELECT:
        return _check(policy.allow_read, READ_DENIED)
    elif query_type is QueryType.DELETE:
        return _check(policy.allow_delete, DELETE_DENIED)
    elif query_type is QueryType.OTHER:
        return Decision.allow()
    else:
        assert_never(query_type)


def authorize_validation(policy: Optional[PermissionPolicy]) -> Decision:
    """Validation runs EXPLAIN on the target, so only the read flag counts."""
    if policy is None:
        return Decision.allow()
    return _check(policy.allow_read, VALIDATION_DENIED)
