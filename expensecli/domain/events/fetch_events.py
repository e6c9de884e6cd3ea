"""Domain Events related to fetching expenses and cache maintenance.

Examples include events for when a listing is served from cache, when an
attempt is retried, or when a degraded result is returned.
"""

from dataclasses import dataclass, field
import time
from typing import Optional

# Base Event Class
@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# --- Specific Fetch Events ---

@dataclass
class CacheHit(DomainEvent):
    """Event triggered when a listing is served from a fresh cache entry."""
    user_id: str
    age_seconds: float
    record_count: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class FetchAttemptStarted(DomainEvent):
    """Event triggered when a remote listing query is about to be issued."""
    user_id: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a throttled or low-quality attempt will be retried."""
    user_id: str
    attempt_number: int
    reason: str  # e.g., 'throttled', 'low_quality'
    timestamp: float = field(default_factory=time.time)

@dataclass
class FetchSucceeded(DomainEvent):
    """Event triggered when a listing met the quality threshold and was cached."""
    user_id: str
    attempt_number: int
    record_count: int
    placeholder_count: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class FetchDegraded(DomainEvent):
    """Event triggered when a listing is returned without being cached."""
    user_id: str
    record_count: int
    placeholder_count: int
    reason: str  # e.g., 'below_quality_threshold', 'salvaged', 'exhausted'
    timestamp: float = field(default_factory=time.time)

@dataclass
class FetchFailed(DomainEvent):
    """Event triggered when nothing could be retrieved and an empty listing is returned."""
    user_id: str
    error_type: Optional[str]
    error_message: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class CacheInvalidated(DomainEvent):
    """Event triggered when the cache is cleared, e.g. after a mutation."""
    reason: str
    timestamp: float = field(default_factory=time.time)
