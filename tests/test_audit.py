import json

from db_assistant.core import schemas
from db_assistant.core.query_gate.audit import (
    ExecutionOutcome,
    build_generated_entry,
    build_log_entry,
)
from db_assistant.core.query_gate.classifier import QueryType


def test_read_result_is_stored_as_json_snapshot():
    response = schemas.ExecuteSQLResponse(
        success=True,
        query_type="SELECT",
        columns=["id", "name"],
        rows=[[1, "ann"], [2, "bob"]],
        row_count=2,
    )
    entry = build_log_entry(
        7, "SELECT id, name FROM users", QueryType.SELECT, ExecutionOutcome(response=response), 12
    )

    assert entry.status == "success"
    assert entry.project_id == 7
    assert entry.query_type == "SELECT"
    assert entry.rows_affected == 2
    assert entry.execution_time == 12
    assert json.loads(entry.result)["rows"] == [[1, "ann"], [2, "bob"]]
    assert entry.error is None


def test_write_result_is_summarized():
    response = schemas.ExecuteSQLResponse(success=True, affected_rows=3)
    entry = build_log_entry(
        1, "UPDATE t SET x = 1", QueryType.UPDATE, ExecutionOutcome(response=response), 5
    )

    assert entry.rows_affected == 3
    assert entry.result == "Affected rows: 3"


def test_message_only_result():
    response = schemas.ExecuteSQLResponse(success=True, message="Table created")
    entry = build_log_entry(
        1, "CREATE TABLE t (id int)", QueryType.DDL, ExecutionOutcome(response=response), 40
    )

    assert entry.status == "success"
    assert entry.query_type == "DDL"
    assert entry.result == "Table created"
    assert entry.rows_affected is None


def test_failure_keeps_error_and_timing_only():
    entry = build_log_entry(
        1,
        "UPDATE users SET name='x' WHERE id=1;",
        QueryType.UPDATE,
        ExecutionOutcome(error="connection refused"),
        30,
    )

    assert entry.status == "error"
    assert entry.error == "connection refused"
    assert entry.result is None
    assert entry.rows_affected is None
    assert entry.execution_time == 30


def test_generated_entry():
    entry = build_generated_entry(4, "DELETE FROM sessions")

    assert entry.status == "generated"
    assert entry.query_type == "DELETE"
    assert entry.result == "Query generated but not executed yet"
    assert entry.execution_time is None
