"""
COORDINATOR - Run one SQL statement through the permission gate

Flow per request:
    classify -> authorize -> execute on the proxy -> write audit row -> return

    - Denied requests stop before the proxy and leave no audit row
    - Every request that reaches the proxy leaves exactly one audit row,
      whether it succeeded, failed or timed out
    - A failed audit write never replaces the execution outcome
    - Nothing is retried: a statement may have had side effects

The coordinator keeps no state between requests; build one per request.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import httpx

from db_assistant.core import models, schemas
from db_assistant.core.query_gate import audit, permissions
from db_assistant.core.query_gate.classifier import QueryType, classify
from db_assistant.core.query_gate.errors import (
    AuthorizationDenied,
    ExecutionFailed,
    PersistenceWarning,
    ValidationInputError,
)
from db_assistant.core.query_gate.store import QueryStore

logger = logging.getLogger(__name__)


class SQLExecutor(Protocol):
    async def execute_sql(
        self, query: str, dry_run: bool = False, timeout: Optional[float] = None
    ) -> schemas.ExecuteSQLResponse: ...

    async def validate_sql(
        self, query: str, timeout: Optional[float] = None
    ) -> schemas.ValidateSQLResponse: ...


@dataclass
class ExecutionResult:
    response: schemas.ExecuteSQLResponse
    query_type: QueryType
    log_entry: Optional[models.QueryLog] = None
    warnings: List[PersistenceWarning] = field(default_factory=list)


def _require_query(query: Optional[str]) -> str:
    if query is None or not query.strip():
        raise ValidationInputError()
    return query


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class ExecutionCoordinator:
    def __init__(
        self,
        store: QueryStore,
        executor: SQLExecutor,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.executor = executor
        self.timeout = timeout

    async def execute(
        self,
        principal_id: int,
        project_id: int,
        query: Optional[str],
        dry_run: bool = False,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """
        Classify, authorize and execute `query` for the given project.

        Raises:
            ValidationInputError: query text is empty
            AuthorizationDenied: the project policy forbids the statement
            ExecutionFailed: the proxy failed or timed out (audit row written)
        """
        query = _require_query(query)
        timeout = timeout if timeout is not None else self.timeout

        query_type = classify(query)

        # Policy is read per request so a permission change applies immediately
        policy = await self.store.get_policy(project_id)
        decision = permissions.authorize(query_type, policy)
        if not decision.allowed:
            logger.info(
                "Denied %s query for user %s on project %s: %s",
                query_type.value,
                principal_id,
                project_id,
                decision.reason,
            )
            raise AuthorizationDenied(decision.reason)

        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.executor.execute_sql(query, dry_run=dry_run, timeout=timeout),
                timeout,
            )
            outcome = audit.ExecutionOutcome(response=response)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            outcome = audit.ExecutionOutcome(error=self._timeout_message(timeout))
        except Exception as error:
            outcome = audit.ExecutionOutcome(error=str(error) or type(error).__name__)
        execution_time = _elapsed_ms(started)

        entry = audit.build_log_entry(
            project_id, query, query_type, outcome, execution_time
        )
        warnings = await self._persist(entry, principal_id)

        if not outcome.succeeded:
            logger.warning(
                "Query on project %s failed after %sms: %s",
                project_id,
                execution_time,
                outcome.error,
            )
            raise ExecutionFailed(outcome.error, log_entry=entry, warnings=warnings)

        logger.info(
            "Executed %s query for user %s on project %s in %sms",
            query_type.value,
            principal_id,
            project_id,
            execution_time,
        )
        return ExecutionResult(
            response=outcome.response,
            query_type=query_type,
            log_entry=entry,
            warnings=warnings,
        )

    async def validate(
        self,
        principal_id: int,
        project_id: int,
        query: Optional[str],
        timeout: Optional[float] = None,
    ) -> schemas.ValidateSQLResponse:
        """Dry-run a statement through EXPLAIN; needs read permission only."""
        query = _require_query(query)
        timeout = timeout if timeout is not None else self.timeout

        policy = await self.store.get_policy(project_id)
        decision = permissions.authorize_validation(policy)
        if not decision.allowed:
            logger.info(
                "Denied validation for user %s on project %s", principal_id, project_id
            )
            raise AuthorizationDenied(decision.reason)

        try:
            return await asyncio.wait_for(
                self.executor.validate_sql(query, timeout=timeout), timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise ExecutionFailed(self._timeout_message(timeout))
        except Exception as error:
            raise ExecutionFailed(str(error) or type(error).__name__) from error

    def _timeout_message(self, timeout: Optional[float]) -> str:
        # Without a coordinator timeout the executor's own limit fired
        if timeout is None:
            timeout = getattr(self.executor, "timeout", None)
        if timeout is None:
            return "query timed out"
        return f"query timed out after {timeout} seconds"

    async def _persist(
        self, entry: models.QueryLog, principal_id: int
    ) -> List[PersistenceWarning]:
        try:
            await self.store.add_log_entry(entry)
        except Exception as error:
            warning = PersistenceWarning(
                f"Failed to write query log for project {entry.project_id}: {error}"
            )
            logger.warning("%s (user %s)", warning, principal_id)
            return [warning]
        return []
