"""Maps AppSync/AWS error signatures onto ErrorClassification.

This is the only place that looks at vendor error types and message text;
everything above the transport reasons about the closed classification set.
"""

import logging
from typing import Any, Iterable, List, Optional

from expensecli.domain.models.expense import ErrorClassification, QueryError

logger = logging.getLogger(__name__)

THROTTLING_ERROR_TYPES = frozenset({
    "Throttled",
    "ThrottlingException",
    "TooManyRequestsException",
    "RateLimitError",
    "LimitExceededException",
    "Lambda:TooManyRequestsException",
})
THROTTLING_MESSAGE_MARKERS = ("rate exceeded", "too many requests", "throttl")

TRANSIENT_ERROR_TYPES = frozenset({
    "ServiceUnavailableException",
    "InternalFailure",
    "ExecutionTimeout",
    "TimeoutError",
})
TRANSIENT_MESSAGE_MARKERS = ("timed out", "temporarily unavailable", "connection reset")


def classify_error(error_type: Optional[str], message: Optional[str]) -> ErrorClassification:
    """Classifies a vendor error by its type tag first, then by message text."""
    if error_type in THROTTLING_ERROR_TYPES:
        return ErrorClassification.THROTTLED
    lowered = (message or "").lower()
    if any(marker in lowered for marker in THROTTLING_MESSAGE_MARKERS):
        return ErrorClassification.THROTTLED
    if error_type in TRANSIENT_ERROR_TYPES:
        return ErrorClassification.TRANSIENT
    if any(marker in lowered for marker in TRANSIENT_MESSAGE_MARKERS):
        return ErrorClassification.TRANSIENT
    return ErrorClassification.TERMINAL


def classify_http_status(status_code: int) -> ErrorClassification:
    """Classification for a non-2xx HTTP status without a GraphQL body."""
    if status_code == 429:
        return ErrorClassification.THROTTLED
    if status_code >= 500:
        return ErrorClassification.TRANSIENT
    return ErrorClassification.TERMINAL


def parse_graphql_errors(raw_errors: Optional[Iterable[Any]]) -> List[QueryError]:
    """Converts the ``errors`` array of a GraphQL body into QueryError objects."""
    errors: List[QueryError] = []
    for raw in raw_errors or []:
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring malformed GraphQL error entry: {raw!r}")
            continue
        message = str(raw.get("message") or "")
        error_type = raw.get("errorType") or (raw.get("extensions") or {}).get("code")
        errors.append(QueryError(
            message=message,
            path=list(raw.get("path") or []),
            error_type=error_type,
            classification=classify_error(error_type, message),
        ))
    return errors
