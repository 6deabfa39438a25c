import uuid
import pytest
from httpx import AsyncClient


def signup_payload(**overrides):
    suffix = uuid.uuid4().hex[:8]
    payload = {
        "name": f"user_{suffix}",
        "email": f"user_{suffix}@example.com",
        "password": "strongpass123",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_signup_success(client: AsyncClient):
    """Successful signup returns 201, a token and the user (no password)"""
    payload = signup_payload()
    response = await client.post("/api/auth/signup", json=payload)

    assert response.status_code == 201
    data = response.json()
    assert isinstance(data["token"], str)
    assert data["user"]["email"] == payload["email"]
    assert data["user"]["name"] == payload["name"]
    assert "id" in data["user"]
    assert "password" not in data["user"]


@pytest.mark.asyncio
async def test_signup_duplicate_email(client: AsyncClient):
    """Duplicate email returns 409 Conflict"""
    payload = signup_payload()
    await client.post("/api/auth/signup", json=payload)

    response = await client.post(
        "/api/auth/signup", json={**payload, "name": f"again_{uuid.uuid4().hex[:8]}"}
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "User with this email already exists"


@pytest.mark.asyncio
async def test_signup_invalid_data(client: AsyncClient):
    """Invalid payload returns 422 Unprocessable Entity"""
    payload = {"name": "", "email": "not-an-email", "password": "short"}
    response = await client.post("/api/auth/signup", json=payload)

    assert response.status_code == 422
    assert "detail" in response.json()


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient):
    """Login returns 200 with a token usable on protected routes"""
    payload = signup_payload()
    await client.post("/api/auth/signup", json=payload)

    response = await client.post(
        "/api/auth/login",
        json={"email": payload["email"], "password": payload["password"]},
    )

    assert response.status_code == 200
    token = response.json()["token"]
    assert len(token) > 20

    projects = await client.get(
        "/api/projects", headers={"Authorization": f"Bearer {token}"}
    )
    assert projects.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient):
    payload = signup_payload()
    await client.post("/api/auth/signup", json=payload)

    response = await client.post(
        "/api/auth/login", json={"email": payload["email"], "password": "wrongpass123"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient):
    response = await client.post(
        "/api/auth/login",
        json={"email": "nobody_here@example.com", "password": "whatever123"},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient):
    response = await client.get(
        "/api/projects", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.text == "OK"
