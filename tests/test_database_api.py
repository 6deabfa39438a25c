import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from db_assistant.core import models


async def query_logs(db_session, project_id):
    result = await db_session.execute(
        select(models.QueryLog)
        .where(models.QueryLog.project_id == project_id)
        .order_by(models.QueryLog.id)
    )
    return result.scalars().all()


@pytest.mark.asyncio
async def test_read_denied_without_log(
    client: AsyncClient, auth_headers_user, db_session, project_factory, proxy_mock
):
    project = await project_factory(allow_read=False)
    route = proxy_mock.post("/execute-sql")

    response = await client.post(
        f"/api/projects/{project.id}/execute-sql",
        json={"query": "SELECT * FROM users;"},
        headers=auth_headers_user,
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Read operations are not allowed for this project"
    assert not route.called
    assert await query_logs(db_session, project.id) == []


@pytest.mark.asyncio
async def test_allowed_ddl_runs_and_is_logged(
    client: AsyncClient, auth_headers_user, test_project, db_session, proxy_mock
):
    proxy_mock.post("/execute-sql").mock(
        return_value=httpx.Response(
            200, json={"success": True, "query_type": "DDL", "message": "Table dropped"}
        )
    )

    response = await client.post(
        f"/api/projects/{test_project.id}/execute-sql",
        json={"query": "DROP TABLE users;"},
        headers=auth_headers_user,
    )

    assert response.status_code == 200
    assert response.json()["success"] is True

    logs = await query_logs(db_session, test_project.id)
    assert len(logs) == 1
    assert logs[0].status == "success"
    assert logs[0].query_type == "DDL"
    assert logs[0].result == "Table dropped"
    assert logs[0].execution_time is not None


@pytest.mark.asyncio
async def test_backend_error_is_logged_and_returned(
    client: AsyncClient, auth_headers_user, test_project, db_session, proxy_mock
):
    proxy_mock.post("/execute-sql").mock(
        return_value=httpx.Response(500, json={"detail": "connection refused"})
    )

    response = await client.post(
        f"/api/projects/{test_project.id}/execute-sql",
        json={"query": "UPDATE users SET name='x' WHERE id=1;"},
        headers=auth_headers_user,
    )

    assert response.status_code == 500
    assert response.json()["detail"] == (
        "Failed to execute query: proxy error (500): connection refused"
    )

    logs = await query_logs(db_session, test_project.id)
    assert logs[0].status == "error"
    assert logs[0].error == "proxy error (500): connection refused"
    assert logs[0].rows_affected is None
    assert logs[0].query_type == "UPDATE"


@pytest.mark.asyncio
async def test_read_result_logged_with_row_count(
    client: AsyncClient, auth_headers_user, test_project, db_session, proxy_mock
):
    proxy_mock.post("/execute-sql").mock(
        return_value=httpx.Response(
            200,
            json={"success": True, "columns": ["id"], "rows": [[1], [2], [3]], "row_count": 3},
        )
    )

    response = await client.post(
        f"/api/projects/{test_project.id}/execute-sql",
        json={"query": "-- all ids\nSELECT id FROM users"},
        headers=auth_headers_user,
    )

    assert response.status_code == 200
    assert response.json()["rows"] == [[1], [2], [3]]
    logs = await query_logs(db_session, test_project.id)
    assert logs[0].rows_affected == 3
    assert logs[0].query == "-- all ids\nSELECT id FROM users"


@pytest.mark.asyncio
async def test_empty_query_is_400(client: AsyncClient, auth_headers_user, test_project):
    response = await client.post(
        f"/api/projects/{test_project.id}/execute-sql",
        json={"query": ""},
        headers=auth_headers_user,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Query is required"


@pytest.mark.asyncio
async def test_permission_change_applies_to_next_request(
    client: AsyncClient, auth_headers_user, test_project, proxy_mock
):
    proxy_mock.post("/execute-sql").mock(
        return_value=httpx.Response(200, json={"success": True, "affected_rows": 1})
    )
    url = f"/api/projects/{test_project.id}/execute-sql"
    body = {"query": "DELETE FROM sessions WHERE id = 1"}

    first = await client.post(url, json=body, headers=auth_headers_user)
    assert first.status_code == 200

    await client.put(
        f"/api/projects/{test_project.id}",
        json={"allow_delete": False},
        headers=auth_headers_user,
    )
    second = await client.post(url, json=body, headers=auth_headers_user)
    assert second.status_code == 403


@pytest.mark.asyncio
async def test_validate_requires_read(
    client: AsyncClient, auth_headers_user, db_session, project_factory, proxy_mock
):
    project = await project_factory(allow_read=False)
    route = proxy_mock.post("/validate-sql")

    response = await client.post(
        f"/api/projects/{project.id}/validate-sql",
        json={"query": "DROP TABLE users"},
        headers=auth_headers_user,
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Read permission required for query validation"
    assert not route.called


@pytest.mark.asyncio
async def test_validate_success(
    client: AsyncClient, auth_headers_user, test_project, db_session, proxy_mock
):
    proxy_mock.post("/validate-sql").mock(
        return_value=httpx.Response(
            200,
            json={"success": True, "dry_run": True, "explain": ["Seq Scan on users"],
                  "message": "ok"},
        )
    )

    response = await client.post(
        f"/api/projects/{test_project.id}/validate-sql",
        json={"query": "SELECT * FROM users"},
        headers=auth_headers_user,
    )

    assert response.status_code == 200
    assert response.json()["explain"] == ["Seq Scan on users"]
    assert await query_logs(db_session, test_project.id) == []


@pytest.mark.asyncio
async def test_connect_and_db_info(
    client: AsyncClient, auth_headers_user, test_project, proxy_mock
):
    connect = proxy_mock.post("/connect-db").mock(
        return_value=httpx.Response(
            200,
            json={"success": True, "message": "Connected",
                  "connection_info": {"type": "postgresql", "connected": True}},
        )
    )
    proxy_mock.get("/db-info").mock(
        return_value=httpx.Response(
            200, json={"type": "postgresql", "database": "shop", "connected": True}
        )
    )

    response = await client.post(
        f"/api/projects/{test_project.id}/connect-db", headers=auth_headers_user
    )
    assert response.status_code == 200
    assert response.json()["connection_info"]["connected"] is True
    assert b"postgres://user:pass@db:5432/shop" in connect.calls.last.request.content

    info = await client.get(
        f"/api/projects/{test_project.id}/db-info", headers=auth_headers_user
    )
    assert info.json()["database"] == "shop"


@pytest.mark.asyncio
async def test_disconnect_proxy_failure(
    client: AsyncClient, auth_headers_user, test_project, proxy_mock
):
    proxy_mock.post("/disconnect-db").mock(
        return_value=httpx.Response(400, json={"detail": "no active connection"})
    )

    response = await client.post(
        f"/api/projects/{test_project.id}/disconnect-db", headers=auth_headers_user
    )

    assert response.status_code == 500
    assert response.json()["detail"] == (
        "Failed to disconnect from database: proxy error (400): no active connection"
    )


@pytest.mark.asyncio
async def test_execute_on_foreign_project_is_404(
    client: AsyncClient, auth_headers_other, test_project
):
    response = await client.post(
        f"/api/projects/{test_project.id}/execute-sql",
        json={"query": "SELECT 1"},
        headers=auth_headers_other,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_null_counts_still_log_success(
    client: AsyncClient, auth_headers_user, test_project, db_session, proxy_mock
):
    proxy_mock.post("/execute-sql").mock(
        return_value=httpx.Response(
            200,
            json={"success": True, "row_count": None, "affected_rows": 5, "message": "ok"},
        )
    )

    response = await client.post(
        f"/api/projects/{test_project.id}/execute-sql",
        json={"query": "UPDATE t SET x = 1"},
        headers=auth_headers_user,
    )

    assert response.status_code == 200
    assert response.json()["row_count"] == 0
    logs = await query_logs(db_session, test_project.id)
    assert logs[0].status == "success"
    assert logs[0].rows_affected == 5
    assert logs[0].result == "Affected rows: 5"
