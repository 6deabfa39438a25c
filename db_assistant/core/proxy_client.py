"""
PROXY CLIENT - Talk to the external SQL assistant proxy

The proxy owns everything that touches a project's real database:
    1. Generate SQL from a natural language question (AI model)
    2. Open / close the connection to the project database
    3. Execute or dry-run (EXPLAIN) a statement
    4. Report connection info

This service never connects to a project database itself; every call here is
a JSON request to the proxy.
"""

import logging
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from db_assistant.core import schemas
from db_assistant.core.config import settings

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)


class ProxyError(Exception):
    """Proxy answered with a non-200 status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProxyClient:
    """Async client for the SQL assistant proxy."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.PROXY_SERVER_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.PROXY_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else self.timeout,
            transport=self._transport,
        )

    async def generate_sql(
        self, question: str, db_type: str = "", db_schema: str = ""
    ) -> schemas.GenerateSQLResponse:
        payload = {"question": question}
        if db_type:
            payload["db_type"] = db_type
        if db_schema:
            payload["db_schema"] = db_schema
        return await self._post("/generate-sql", payload, schemas.GenerateSQLResponse)

    async def connect_db(
        self, db_type: str, connection_string: str
    ) -> schemas.ConnectDBResponse:
        payload = {"db_type": db_type, "connection_string": connection_string}
        return await self._post("/connect-db", payload, schemas.ConnectDBResponse)

    async def disconnect_db(self) -> schemas.DisconnectDBResponse:
        return await self._post("/disconnect-db", None, schemas.DisconnectDBResponse)

    async def execute_sql(
        self, query: str, dry_run: bool = False, timeout: Optional[float] = None
    ) -> schemas.ExecuteSQLResponse:
        payload: Dict[str, Any] = {"query": query}
        if dry_run:
            payload["dry_run"] = True
        return await self._post(
            "/execute-sql", payload, schemas.ExecuteSQLResponse, timeout=timeout
        )

    async def validate_sql(
        self, query: str, timeout: Optional[float] = None
    ) -> schemas.ValidateSQLResponse:
        return await self._post(
            "/validate-sql",
            {"query": query},
            schemas.ValidateSQLResponse,
            timeout=timeout,
        )

    async def get_db_info(self) -> schemas.ConnectionInfo:
        async with self._client() as client:
            try:
                response = await client.get("/db-info")
            except httpx.HTTPError as error:
                raise ProxyError(f"failed to get database info: {error}") from error

        if response.status_code != httpx.codes.OK:
            raise self._parse_error(response)

        return self._decode(response, schemas.ConnectionInfo)

    async def _post(
        self,
        endpoint: str,
        payload: Optional[Dict[str, Any]],
        response_model: Type[ResponseModel],
        timeout: Optional[float] = None,
    ) -> ResponseModel:
        async with self._client(timeout) as client:
            try:
                if payload is None:
                    response = await client.post(endpoint)
                else:
                    response = await client.post(endpoint, json=payload)
            except httpx.TimeoutException:
                # Timeouts keep their own type so callers can tell them apart
                raise
            except httpx.HTTPError as error:
                raise ProxyError(f"failed to send request: {error}") from error

        if response.status_code != httpx.codes.OK:
            raise self._parse_error(response)

        return self._decode(response, response_model)

    @staticmethod
    def _decode(
        response: httpx.Response, response_model: Type[ResponseModel]
    ) -> ResponseModel:
        try:
            return response_model.model_validate(response.json())
        except ValueError as error:
            raise ProxyError(f"failed to decode response: {error}") from error

    @staticmethod
    def _parse_error(response: httpx.Response) -> ProxyError:
        try:
            detail = response.json()["detail"]
        except (ValueError, KeyError, TypeError):
            return ProxyError(
                f"proxy request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        logger.warning("Proxy returned %s: %s", response.status_code, detail)
        return ProxyError(
            f"proxy error ({response.status_code}): {detail}",
            status_code=response.status_code,
        )


def get_proxy_client() -> ProxyClient:
    """FastAPI dependency, overridden in tests."""
    return ProxyClient()
