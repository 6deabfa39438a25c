from dataclasses import dataclass
from typing import Optional

from db_assistant.core import models, schemas
from db_assistant.core.query_gate.classifier import QueryType, classify

GENERATED_RESULT = "Query generated but not executed yet"


@dataclass(frozen=True)
class ExecutionOutcome:
    """What came back from the proxy: a response or an error text."""

    response: Optional[schemas.ExecuteSQLResponse] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def build_log_entry(
    project_id: int,
    query_text: str,
    query_type: QueryType,
    outcome: ExecutionOutcome,
    execution_time_ms: int,
) -> models.QueryLog:
    """
    Build the audit row for one execution attempt.

    Success keeps the most useful summary available: a JSON snapshot for
    reads that returned rows, "Affected rows: N" for writes, otherwise the
    proxy message. Failure keeps the error text and leaves result and
    rows_affected empty.
    """
    entry = models.QueryLog(
        project_id=project_id,
        query=query_text,
        query_type=query_type.value,
        execution_time=execution_time_ms,
    )

    if not outcome.succeeded:
        entry.status = schemas.QueryStatus.ERROR.value
        entry.error = outcome.error
        return entry

    entry.status = schemas.QueryStatus.SUCCESS.value
    response = outcome.response

    if response is None:
        return entry

    if response.row_count > 0:
        entry.rows_affected = response.row_count
        entry.result = response.model_dump_json(exclude_none=True)
    elif response.affected_rows > 0:
        entry.rows_affected = response.affected_rows
        entry.result = f"Affected rows: {response.affected_rows}"
    elif response.message:
        entry.result = response.message

    return entry


def build_generated_entry(project_id: int, query_text: str) -> models.QueryLog:
    """Audit row for a statement the assistant proposed but nobody ran."""
    return models.QueryLog(
        project_id=project_id,
        query=query_text,
        query_type=classify(query_text).value,
        status=schemas.QueryStatus.GENERATED.value,
        result=GENERATED_RESULT,
    )
