import pytest
from typer.testing import CliRunner
from types import SimpleNamespace
from typing import Any, List

from expensecli.domain.interfaces.query_client import RemoteQueryClient
from expensecli.domain.models.expense import ErrorClassification, QueryError, QueryResponse
from expensecli.infrastructure.cache.memory_cache import InMemoryCacheStore
from expensecli.infrastructure.config.settings import clear_test_config
from expensecli.infrastructure.graphql.documents import LIST_EXPENSES_FIELD
from expensecli.infrastructure.resilience.list_fetcher import ResilientListFetcher


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedQueryClient(RemoteQueryClient):
    """Replays scripted outcomes in order, repeating the last one.

    An outcome is either a QueryResponse to return or an exception to raise.
    """

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls: List[tuple] = []

    async def execute(self, query, variables):
        self.calls.append((query, variables))
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def listing(records: Any, errors: List[QueryError] = None) -> QueryResponse:
    """Builds a listing response as the API would send it."""
    return QueryResponse(data={LIST_EXPENSES_FIELD: records}, errors=list(errors or []))


def field_error(index: int, field_name: str, message: str = "Cannot return null") -> QueryError:
    return QueryError(message=message, path=[LIST_EXPENSES_FIELD, index, field_name])


def throttled_error(message: str = "Rate Exceeded") -> QueryError:
    return QueryError(
        message=message, path=[LIST_EXPENSES_FIELD], error_type="Throttled",
        classification=ErrorClassification.THROTTLED,
    )


def expense_record(index: int, **overrides: Any) -> dict:
    record = {
        "id": f"exp-{index}",
        "userId": "1",
        "name": f"Item {index}",
        "amount": 10.0 + index,
        "category": "Food",
        "date": "2024-01-01",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-01T00:00:00.000Z",
    }
    record.update(overrides)
    return record


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def cache_store():
    return InMemoryCacheStore()


@pytest.fixture
def scripted_client():
    """Factory fixture: scripted_client(outcome, ...) -> ScriptedQueryClient."""
    return ScriptedQueryClient


@pytest.fixture
def responses():
    """Namespace of response builders shared by the fetcher and service tests."""
    return SimpleNamespace(
        listing=listing,
        field_error=field_error,
        throttled_error=throttled_error,
        expense_record=expense_record,
    )


@pytest.fixture
def make_fetcher(cache_store, recording_sleep, fake_clock):
    """Factory fixture building a ResilientListFetcher with test doubles."""
    def _make(client: RemoteQueryClient, **kwargs: Any) -> ResilientListFetcher:
        kwargs.setdefault("cache", cache_store)
        kwargs.setdefault("sleep", recording_sleep)
        kwargs.setdefault("clock", fake_clock)
        return ResilientListFetcher(client=client, **kwargs)
    return _make


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch, tmp_path):
    """Keeps tests independent of the developer's config, .env and environment."""
    for name in ("BACKEND", "APPSYNC_ENDPOINT", "APPSYNC_API_KEY", "USER_DEFAULT_ID",
                 "CACHE_TTL_SECONDS", "FETCH_MAX_RETRIES", "LOGGING_LEVEL", "LOGGING_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    clear_test_config()
