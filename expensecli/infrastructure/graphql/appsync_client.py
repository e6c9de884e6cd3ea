"""Concrete implementation of the RemoteQueryClient interface for AWS AppSync.

Posts GraphQL documents over HTTPS with httpx and translates HTTP and
GraphQL failures into classified domain errors.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

import httpx

# Domain Layer Imports
from expensecli.domain.interfaces.query_client import RemoteQueryClient, RemoteQueryError
from expensecli.domain.models.common import GraphQLDocument, Variables
from expensecli.domain.models.expense import ErrorClassification, QueryResponse
from expensecli.infrastructure.graphql.documents import operation_name
from expensecli.infrastructure.graphql.errors import classify_http_status, parse_graphql_errors

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class AppSyncClient(RemoteQueryClient):
    """AppSync (GraphQL over HTTP) implementation of RemoteQueryClient."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the AppSync client.

        Args:
            endpoint: GraphQL endpoint URL. Reads APPSYNC_ENDPOINT env var if None.
            api_key: AppSync API key, sent as ``x-api-key``. Reads APPSYNC_API_KEY if None.
            auth_token: Bearer/JWT token sent as ``Authorization`` when no API key is used.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        effective_endpoint = endpoint or os.getenv("APPSYNC_ENDPOINT")
        if not effective_endpoint:
            raise ValueError("AppSync endpoint not provided and not found in environment variables.")

        headers = {"Content-Type": "application/json"}
        effective_api_key = api_key or os.getenv("APPSYNC_API_KEY")
        if effective_api_key:
            headers["x-api-key"] = effective_api_key
        elif auth_token:
            headers["Authorization"] = auth_token
        else:
            logger.warning("AppSyncClient created without API key or auth token; requests may be rejected.")

        self.endpoint = effective_endpoint
        self._headers = headers
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        logger.info(f"AppSyncClient initialized for endpoint: {self.endpoint}")

    async def execute(self, query: GraphQLDocument, variables: Variables) -> QueryResponse:
        """Sends one GraphQL request and returns its classified response."""
        operation = operation_name(query) or "anonymous"
        logger.debug(f"Executing {operation} against {self.endpoint} with variables: {variables}")
        start_time = time.perf_counter()
        try:
            response = await self._http().post(
                self.endpoint, json={"query": query, "variables": variables}
            )
        except httpx.TimeoutException as e:
            raise RemoteQueryError(
                f"Request timed out: {e}", error_type=type(e).__name__,
                classification=ErrorClassification.TRANSIENT,
            ) from e
        except httpx.TransportError as e:
            raise RemoteQueryError(
                f"Transport error: {e}", error_type=type(e).__name__,
                classification=ErrorClassification.TRANSIENT,
            ) from e
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{operation} answered HTTP {response.status_code} in {latency_ms:.1f}ms")

        body = self._parse_body(response)
        if body is None or ("data" not in body and "errors" not in body):
            classification = classify_http_status(response.status_code)
            if response.is_success:
                classification = ErrorClassification.TERMINAL
            raise RemoteQueryError(
                f"HTTP {response.status_code} without GraphQL body from {operation}",
                error_type=f"HTTP{response.status_code}",
                classification=classification,
            )

        errors = parse_graphql_errors(body.get("errors"))
        if response.status_code == 429 and not any(e.is_throttled for e in errors):
            raise RemoteQueryError(
                "Rate Exceeded", error_type="HTTP429",
                classification=ErrorClassification.THROTTLED,
            )
        if errors:
            logger.warning(f"{operation} returned {len(errors)} GraphQL error(s); first: {errors[0].message}")
        return QueryResponse(data=body.get("data"), errors=errors)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            body = response.json()
        except ValueError:
            logger.debug(f"Response body is not JSON (HTTP {response.status_code}).")
            return None
        return body if isinstance(body, dict) else None

    def _http(self) -> httpx.AsyncClient:
        # Created lazily so each event loop (one per CLI command) gets its own pool
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._headers, timeout=self._timeout, transport=self._transport
            )
        return self._client

    async def aclose(self) -> None:
        """Closes the underlying HTTP connection pool, if one was opened."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
