class QueryGateError(Exception):
    """Base for every error the query gate reports to its caller."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class AuthorizationDenied(QueryGateError):
    """The project's permission policy forbids the classified operation."""


class ValidationInputError(QueryGateError):
    """The query text is empty or missing."""

    def __init__(self, reason: str = "Query is required"):
        super().__init__(reason)


class ExecutionFailed(QueryGateError):
    """The proxy returned an error, was unreachable or timed out."""

    def __init__(self, detail: str, log_entry=None, warnings=None):
        super().__init__(detail)
        self.detail = detail
        # Audit row written for the failed attempt (None on the validate path)
        self.log_entry = log_entry
        self.warnings = warnings or []


class PersistenceWarning(UserWarning):
    """The audit row could not be written after the outcome was known.

    Never raised: it is logged and attached to the execution result.
    """
