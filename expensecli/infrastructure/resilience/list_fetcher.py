"""Service for listing expenses with caching, retries and partial-data recovery.

Implements exponential backoff for throttled queries, repairs rows the API
could only partially resolve, and serves repeated listings for the same
identity from a short-lived cache. ``list_expenses`` never raises: every
failure degrades to a (possibly partial, possibly empty) list.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, FrozenSet, Iterable, List, Optional

# Domain Layer Imports
from expensecli.domain.events.fetch_events import (
    CacheHit, CacheInvalidated, DomainEvent, FetchAttemptStarted,
    FetchDegraded, FetchFailed, FetchSucceeded, RetryScheduled,
)
from expensecli.domain.interfaces.cache import CacheStore
from expensecli.domain.interfaces.query_client import RemoteQueryClient, RemoteQueryError
from expensecli.domain.models.common import CacheKey, UserId
from expensecli.domain.models.expense import (
    CacheEntry, ErrorClassification, Expense, QueryResponse,
)

# Core Layer Imports
from expensecli.core.reconciler import Reconciler

# Infrastructure Layer Imports
from expensecli.infrastructure.graphql.documents import LIST_EXPENSES, LIST_EXPENSES_FIELD

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
DEFAULT_CACHE_TTL_SECONDS = 60
DEFAULT_QUALITY_THRESHOLD = 0.5
DEFAULT_INITIAL_DELAY_SECONDS = 0.1   # before the very first call, to smooth bursts
DEFAULT_BACKOFF_BASE_SECONDS = 0.5    # attempt n waits base * factor**n
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_THROTTLE_PENALTY_SECONDS = 1.0
DEFAULT_USER_ID = "1"


class ResilientListFetcher:
    """Fetches a user's expenses, hiding throttling and partial failures from callers."""

    def __init__(
        self,
        client: RemoteQueryClient,
        cache: CacheStore,
        reconciler: Optional[Reconciler] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        cache_ttl_s: float = DEFAULT_CACHE_TTL_SECONDS,
        quality_threshold: float = DEFAULT_QUALITY_THRESHOLD,
        initial_delay_s: float = DEFAULT_INITIAL_DELAY_SECONDS,
        backoff_base_s: float = DEFAULT_BACKOFF_BASE_SECONDS,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        throttle_penalty_s: float = DEFAULT_THROTTLE_PENALTY_SECONDS,
        default_user_id: str = DEFAULT_USER_ID,
        retryable: Iterable[ErrorClassification] = (ErrorClassification.THROTTLED,),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        on_event: Optional[Callable[[DomainEvent], None]] = None,
    ):
        """Initializes the ResilientListFetcher.

        Args:
            client: GraphQL transport used for the listing query.
            cache: Store holding the last good listing.
            reconciler: Repairs partial rows; a default Reconciler if None.
            max_retries: Retries after the first attempt (total attempts = max_retries + 1).
            cache_ttl_s: Age in seconds after which a cache entry is no longer served.
            quality_threshold: Minimum share of real (non-placeholder) rows for caching.
            initial_delay_s: Delay before attempt 0.
            backoff_base_s: Base delay for attempts n >= 1 (base * factor**n).
            backoff_factor: Multiplier of the exponential schedule.
            throttle_penalty_s: Extra delay after a throttled transport exception.
            default_user_id: Identity used when the caller supplies none.
            retryable: Error classifications worth another attempt.
            sleep: Awaitable sleep function (injected by tests).
            clock: Wall clock in epoch seconds, used for cache age.
            on_event: Optional listener for domain events.
        """
        self.client = client
        self.cache = cache
        self.reconciler = reconciler or Reconciler()
        self.max_retries = max_retries
        self.cache_ttl_s = cache_ttl_s
        self.quality_threshold = quality_threshold
        self.initial_delay_s = initial_delay_s
        self.backoff_base_s = backoff_base_s
        self.backoff_factor = backoff_factor
        self.throttle_penalty_s = throttle_penalty_s
        self.default_user_id = default_user_id
        self.retryable: FrozenSet[ErrorClassification] = frozenset(retryable)
        self._sleep = sleep
        self._clock = clock
        self._on_event = on_event

        logger.info(
            f"ResilientListFetcher initialized: max_retries={max_retries}, "
            f"cache_ttl={cache_ttl_s}s, quality_threshold={quality_threshold:.0%}, "
            f"retryable={sorted(c.value for c in self.retryable)}"
        )

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._on_event is not None:
            self._on_event(event)

    # --- Policy helpers ---

    def resolve_user_id(self, user_id: Optional[str] = None) -> UserId:
        """Returns the caller's identity, or the configured default when absent."""
        return UserId(user_id or self.default_user_id)

    def backoff_delay(self, attempt: int) -> float:
        """Delay awaited before ``attempt`` (0-based)."""
        if attempt <= 0:
            return self.initial_delay_s
        return self.backoff_base_s * (self.backoff_factor ** attempt)

    def backoff_schedule(self) -> List[float]:
        """Delays for every attempt of one call, in order."""
        return [self.backoff_delay(attempt) for attempt in range(self.max_retries + 1)]

    def meets_quality(self, expenses: List[Expense]) -> bool:
        """True when the share of real rows reaches the caching threshold."""
        if not expenses:
            return False
        real = sum(1 for expense in expenses if not expense.is_placeholder)
        return real / len(expenses) >= self.quality_threshold

    def _reconcile(self, response: QueryResponse) -> List[Expense]:
        return self.reconciler.reconcile(response.records(LIST_EXPENSES_FIELD), response.errors)

    def _salvage(self, user_id: UserId, response: Optional[QueryResponse], reason: str) -> List[Expense]:
        """Best-effort listing from the last response received during this call."""
        if response is None:
            return []
        expenses = self._reconcile(response)
        if expenses:
            logger.warning(f"Returning {len(expenses)} salvaged expense(s) for user {user_id} ({reason}).")
            self._dispatch_event(FetchDegraded(
                user_id=user_id, record_count=len(expenses),
                placeholder_count=sum(e.is_placeholder for e in expenses), reason=reason,
            ))
        return expenses

    # --- Cache ---

    def _cached(self, user_id: UserId) -> Optional[List[Expense]]:
        entry = self.cache.get(CacheKey(user_id))
        if entry is None or entry.data is None or entry.user_id != user_id:
            return None
        age = self._clock() - entry.timestamp
        if age >= self.cache_ttl_s:
            logger.debug(f"Cache entry for user {user_id} expired ({age:.1f}s old).")
            return None
        self._dispatch_event(CacheHit(user_id=user_id, age_seconds=age, record_count=len(entry.data)))
        return entry.data

    def invalidate(self, reason: str = "mutation") -> None:
        """Clears the cache so the next listing goes to the network."""
        self.cache.clear()
        self._dispatch_event(CacheInvalidated(reason=reason))

    # --- Main operation ---

    async def list_expenses(self, user_id: Optional[str] = None) -> List[Expense]:
        """Lists the expenses of a user, retrying throttled queries.

        Args:
            user_id: Identity to list for; the default identity if None.

        Returns:
            Expenses with all mandatory fields set. Synthetic or repaired rows
            are flagged via ``Expense.is_placeholder``. Empty on failure.
        """
        effective_user_id = self.resolve_user_id(user_id)
        cached = self._cached(effective_user_id)
        if cached is not None:
            logger.debug(f"Serving {len(cached)} cached expense(s) for user {effective_user_id}.")
            return cached

        last_response: Optional[QueryResponse] = None
        variables = {"userId": effective_user_id}

        for attempt in range(self.max_retries + 1):
            is_final = attempt == self.max_retries
            delay = self.backoff_delay(attempt)
            self._dispatch_event(FetchAttemptStarted(
                user_id=effective_user_id, attempt_number=attempt + 1, delay_seconds=delay,
            ))
            await self._sleep(delay)

            try:
                response = await self.client.execute(LIST_EXPENSES, variables)
            except RemoteQueryError as e:
                if e.classification in self.retryable and not is_final:
                    logger.warning(
                        f"{e.classification.value.capitalize()} error listing expenses for user "
                        f"{effective_user_id} on attempt {attempt + 1}/{self.max_retries + 1}: {e.message}. "
                        f"Waiting an extra {self.throttle_penalty_s:.2f}s before retrying..."
                    )
                    self._dispatch_event(RetryScheduled(
                        user_id=effective_user_id, attempt_number=attempt + 1, reason=e.classification.value,
                    ))
                    await self._sleep(self.throttle_penalty_s)
                    continue
                logger.error(
                    f"Giving up listing expenses for user {effective_user_id} on attempt {attempt + 1}: "
                    f"{e.error_type or type(e).__name__}: {e.message}"
                )
                return self._fail_or_salvage(effective_user_id, last_response, e.error_type, e.message)
            except Exception as e:
                logger.error(
                    f"Unexpected error listing expenses for user {effective_user_id} on attempt {attempt + 1}: {e}",
                    exc_info=True,
                )
                return self._fail_or_salvage(effective_user_id, last_response, type(e).__name__, str(e))

            expenses = self._reconcile(response)

            if expenses:
                last_response = response
                placeholder_count = sum(e.is_placeholder for e in expenses)
                if self.meets_quality(expenses):
                    self.cache.set(
                        CacheKey(effective_user_id),
                        CacheEntry(data=expenses, timestamp=self._clock(), user_id=effective_user_id),
                    )
                    self._dispatch_event(FetchSucceeded(
                        user_id=effective_user_id, attempt_number=attempt + 1,
                        record_count=len(expenses), placeholder_count=placeholder_count,
                    ))
                    logger.info(
                        f"Fetched {len(expenses)} expense(s) for user {effective_user_id} "
                        f"on attempt {attempt + 1} ({placeholder_count} placeholder(s))."
                    )
                    return expenses
                if is_final:
                    logger.warning(
                        f"Returning low-quality listing for user {effective_user_id}: "
                        f"{placeholder_count}/{len(expenses)} placeholder(s); not cached."
                    )
                    self._dispatch_event(FetchDegraded(
                        user_id=effective_user_id, record_count=len(expenses),
                        placeholder_count=placeholder_count, reason="below_quality_threshold",
                    ))
                    return expenses
                logger.warning(
                    f"Listing for user {effective_user_id} below quality threshold on attempt "
                    f"{attempt + 1} ({placeholder_count}/{len(expenses)} placeholder(s)); retrying."
                )
                self._dispatch_event(RetryScheduled(
                    user_id=effective_user_id, attempt_number=attempt + 1, reason="low_quality",
                ))
                continue

            retryable_errors = [e for e in response.errors if e.classification in self.retryable]
            if retryable_errors:
                if is_final:
                    break
                logger.warning(
                    f"Empty listing with {retryable_errors[0].classification.value} error for user "
                    f"{effective_user_id} on attempt {attempt + 1}/{self.max_retries + 1}: "
                    f"{retryable_errors[0].message}"
                )
                self._dispatch_event(RetryScheduled(
                    user_id=effective_user_id, attempt_number=attempt + 1,
                    reason=retryable_errors[0].classification.value,
                ))
                continue

            if response.errors:
                first = response.errors[0]
                logger.error(f"Listing expenses for user {effective_user_id} failed: {first.message}")
                self._dispatch_event(FetchFailed(
                    user_id=effective_user_id, error_type=first.error_type, error_message=first.message,
                ))
            else:
                logger.info(f"No expenses found for user {effective_user_id}.")
            return []

        # --- If loop finishes without returning (i.e., retries exhausted) ---
        logger.warning(f"Retries exhausted listing expenses for user {effective_user_id}.")
        return self._fail_or_salvage(effective_user_id, last_response, None, "retries exhausted", reason="exhausted")

    def _fail_or_salvage(
        self,
        user_id: UserId,
        last_response: Optional[QueryResponse],
        error_type: Optional[str],
        message: str,
        reason: str = "salvaged",
    ) -> List[Expense]:
        expenses = self._salvage(user_id, last_response, reason=reason)
        if not expenses:
            self._dispatch_event(FetchFailed(user_id=user_id, error_type=error_type, error_message=message))
        return expenses
