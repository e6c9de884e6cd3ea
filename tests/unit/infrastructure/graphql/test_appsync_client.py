import asyncio
import json
import httpx
import pytest

from expensecli.domain.interfaces.query_client import RemoteQueryError
from expensecli.domain.models.expense import ErrorClassification
from expensecli.infrastructure.graphql.appsync_client import AppSyncClient
from expensecli.infrastructure.graphql.documents import LIST_EXPENSES, LIST_EXPENSES_FIELD

ENDPOINT = "https://example.appsync-api.us-east-1.amazonaws.com/graphql"


def _client(handler, **kwargs):
    kwargs.setdefault("api_key", "da2-test")
    return AppSyncClient(endpoint=ENDPOINT, transport=httpx.MockTransport(handler), **kwargs)


def _execute(client):
    async def _go():
        try:
            return await client.execute(LIST_EXPENSES, {"userId": "1"})
        finally:
            await client.aclose()
    return asyncio.run(_go())


def test_requires_endpoint():
    with pytest.raises(ValueError, match="endpoint"):
        AppSyncClient(endpoint=None)


def test_endpoint_and_key_from_environment(monkeypatch):
    monkeypatch.setenv("APPSYNC_ENDPOINT", ENDPOINT)
    monkeypatch.setenv("APPSYNC_API_KEY", "da2-env")
    client = AppSyncClient()
    assert client.endpoint == ENDPOINT
    assert client._headers["x-api-key"] == "da2-env"


def test_sends_query_and_api_key():
    seen = {}

    def handler(request: httpx.Request):
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {LIST_EXPENSES_FIELD: []}})

    response = _execute(_client(handler))

    assert response.records(LIST_EXPENSES_FIELD) == []
    assert seen["headers"]["x-api-key"] == "da2-test"
    assert seen["body"] == {"query": LIST_EXPENSES, "variables": {"userId": "1"}}


def test_auth_token_header_when_no_api_key():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"data": {LIST_EXPENSES_FIELD: []}})

    _execute(_client(handler, api_key=None, auth_token="jwt-token"))

    assert seen["auth"] == "jwt-token"


def test_partial_data_with_errors_is_a_normal_response():
    body = {
        "data": {LIST_EXPENSES_FIELD: [{"id": "1"}, None]},
        "errors": [{"message": "Cannot return null", "path": [LIST_EXPENSES_FIELD, 1]}],
    }
    response = _execute(_client(lambda request: httpx.Response(200, json=body)))

    assert response.records(LIST_EXPENSES_FIELD) == [{"id": "1"}, None]
    assert response.errors[0].path == [LIST_EXPENSES_FIELD, 1]
    assert response.errors[0].classification is ErrorClassification.TERMINAL


def test_throttled_graphql_error_is_classified():
    body = {"data": None, "errors": [{"message": "Rate Exceeded", "errorType": "Throttled"}]}
    response = _execute(_client(lambda request: httpx.Response(200, json=body)))

    assert response.has_throttling


def test_http_429_without_throttled_errors_raises_throttled():
    with pytest.raises(RemoteQueryError) as exc_info:
        _execute(_client(lambda request: httpx.Response(429, json={"errors": [{"message": "nope"}]})))
    assert exc_info.value.is_throttled
    assert exc_info.value.error_type == "HTTP429"


def test_http_429_with_throttled_errors_returns_response():
    body = {"errors": [{"message": "Rate Exceeded", "errorType": "Throttled"}]}
    response = _execute(_client(lambda request: httpx.Response(429, json=body)))
    assert response.has_throttling


@pytest.mark.parametrize("status, expected", [
    (503, ErrorClassification.TRANSIENT),
    (403, ErrorClassification.TERMINAL),
    (429, ErrorClassification.THROTTLED),
    (200, ErrorClassification.TERMINAL),
])
def test_non_graphql_body_is_classified_by_status(status, expected):
    with pytest.raises(RemoteQueryError) as exc_info:
        _execute(_client(lambda request: httpx.Response(status, text="<html>gateway</html>")))
    assert exc_info.value.classification is expected
    assert exc_info.value.error_type == f"HTTP{status}"


def test_timeout_is_transient():
    def handler(request: httpx.Request):
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(RemoteQueryError) as exc_info:
        _execute(_client(handler))
    assert exc_info.value.classification is ErrorClassification.TRANSIENT
    assert exc_info.value.error_type == "ReadTimeout"


def test_connection_error_is_transient():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteQueryError) as exc_info:
        _execute(_client(handler))
    assert exc_info.value.classification is ErrorClassification.TRANSIENT


def test_aclose_allows_reuse_across_event_loops():
    client = _client(lambda request: httpx.Response(200, json={"data": {LIST_EXPENSES_FIELD: []}}))
    _execute(client)
    assert client._client is None
    assert _execute(client).records(LIST_EXPENSES_FIELD) == []
