import httpx
from fastapi import APIRouter, HTTPException, status

from db_assistant.core import schemas
from db_assistant.core.config import settings
from db_assistant.core.proxy_client import ProxyError
from db_assistant.core.query_gate.coordinator import ExecutionCoordinator
from db_assistant.core.query_gate.errors import ExecutionFailed
from db_assistant.core.query_gate.store import QueryStore
from db_assistant.core.security import user_dep
from db_assistant.api.deps import db_dep, proxy_dep, get_owned_project

router = APIRouter(prefix="/api/projects", tags=["Database"])


def proxy_failure(action: str, error) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error}",
    )


@router.post("/{project_id}/connect-db", response_model=schemas.ConnectDBResponse)
async def connect_db(project_id: int, current_user: user_dep, db: db_dep, proxy: proxy_dep):
    project = await get_owned_project(db, project_id, current_user.id)

    try:
        return await proxy.connect_db(project.database_type, project.connection_string)
    except (ProxyError, httpx.HTTPError) as error:
        raise proxy_failure("connect to database", error)


@router.post("/{project_id}/disconnect-db", response_model=schemas.DisconnectDBResponse)
async def disconnect_db(
    project_id: int, current_user: user_dep, db: db_dep, proxy: proxy_dep
):
    await get_owned_project(db, project_id, current_user.id)

    try:
        return await proxy.disconnect_db()
    except (ProxyError, httpx.HTTPError) as error:
        raise proxy_failure("disconnect from database", error)


@router.post("/{project_id}/execute-sql", response_model=schemas.ExecuteSQLResponse)
async def execute_sql(
    project_id: int,
    request: schemas.ExecuteSQLRequest,
    current_user: user_dep,
    db: db_dep,
    proxy: proxy_dep,
):
    """
    Run a statement on the project database if its permissions allow it.

    Denials answer 403 and are not logged; everything that reaches the proxy
    is written to the query log, failures included.
    """
    await get_owned_project(db, project_id, current_user.id)

    coordinator = ExecutionCoordinator(
        QueryStore(db), proxy, timeout=settings.EXECUTION_TIMEOUT_SECONDS
    )
    try:
        result = await coordinator.execute(
            current_user.id, project_id, request.query, dry_run=request.dry_run
        )
    except ExecutionFailed as error:
        raise proxy_failure("execute query", error.detail)

    return result.response


@router.post("/{project_id}/validate-sql", response_model=schemas.ValidateSQLResponse)
async def validate_sql(
    project_id: int,
    request: schemas.ValidateSQLRequest,
    current_user: user_dep,
    db: db_dep,
    proxy: proxy_dep,
):
    """EXPLAIN only; requires read permission whatever the statement is."""
    await get_owned_project(db, project_id, current_user.id)

    coordinator = ExecutionCoordinator(
        QueryStore(db), proxy, timeout=settings.EXECUTION_TIMEOUT_SECONDS
    )
    try:
        return await coordinator.validate(current_user.id, project_id, request.query)
    except ExecutionFailed as error:
        raise proxy_failure("validate query", error.detail)


@router.get("/{project_id}/db-info", response_model=schemas.ConnectionInfo)
async def get_db_info(project_id: int, current_user: user_dep, db: db_dep, proxy: proxy_dep):
    await get_owned_project(db, project_id, current_user.id)

    try:
        return await proxy.get_db_info()
    except (ProxyError, httpx.HTTPError) as error:
        raise proxy_failure("get database info", error)
