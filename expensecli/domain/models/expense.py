"""Expense aggregate and the value objects of the list-fetch pipeline.

An Expense always carries its mandatory fields (id, name, amount, category,
date). Records synthesized or patched during reconciliation keep a
recognisable id prefix so the display layer can flag them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from expensecli.domain.models.common import ErrorPath, RawRecord, UserId

PLACEHOLDER_PREFIX = "placeholder-"
RECOVERED_PREFIX = "recovered-"
RECOVERY_MARKERS = (PLACEHOLDER_PREFIX, RECOVERED_PREFIX)

MANDATORY_FIELDS = ("id", "name", "amount", "category", "date")


def format_aws_datetime(moment: datetime) -> str:
    """Formats a datetime as an AWSDateTime (UTC, millisecond precision, 'Z' suffix).

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_amount(value: Any) -> Optional[Decimal]:
    """Converts a wire amount (float, int or numeric string) into a Decimal.

    Returns None when the value is absent or not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


@dataclass
class Expense:
    """A single expense as served to callers of the fetch pipeline."""
    id: str
    name: str
    amount: Decimal
    category: str
    date: str  # ISO-8601 (AWSDateTime wire format)
    user_id: Optional[str] = None
    description: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_placeholder(self) -> bool:
        """True when the record is synthetic or was recovered from a partial response."""
        return self.id.startswith(RECOVERY_MARKERS)

    @classmethod
    def from_record(cls, record: RawRecord) -> "Expense":
        """Builds an Expense from a complete wire record.

        Accepts the legacy ``title`` field in place of ``name``. Callers are
        expected to have repaired missing mandatory fields beforehand.
        """
        amount = parse_amount(record.get("amount"))
        return cls(
            id=str(record["id"]),
            name=record.get("name") or record.get("title"),
            amount=amount if amount is not None else Decimal(0),
            category=record["category"],
            date=record["date"],
            user_id=record.get("userId"),
            description=record.get("description") or "",
            created_at=record.get("createdAt"),
            updated_at=record.get("updatedAt"),
        )


@dataclass
class CacheEntry:
    """Last successful listing, together with who it was fetched for."""
    data: Optional[List[Expense]]
    timestamp: float  # Unix timestamp of the last population, 0 when empty
    user_id: Optional[UserId]

    @classmethod
    def empty(cls) -> "CacheEntry":
        return cls(data=None, timestamp=0.0, user_id=None)


class ErrorClassification(Enum):
    """Closed set of remote failure classes the fetcher reasons about."""
    THROTTLED = "throttled"
    TRANSIENT = "transient"
    TERMINAL = "terminal"


@dataclass
class QueryError:
    """One entry of a GraphQL ``errors`` array, already classified."""
    message: str
    path: ErrorPath = field(default_factory=list)
    error_type: Optional[str] = None
    classification: ErrorClassification = ErrorClassification.TERMINAL

    @property
    def is_throttled(self) -> bool:
        return self.classification is ErrorClassification.THROTTLED


@dataclass
class QueryResponse:
    """Result of one GraphQL request; may hold data and errors at the same time."""
    data: Optional[Dict[str, Any]] = None
    errors: List[QueryError] = field(default_factory=list)

    def records(self, root_field: str) -> Any:
        """Returns the raw value stored under ``root_field`` in ``data``, if any."""
        if not isinstance(self.data, dict):
            return None
        return self.data.get(root_field)

    @property
    def has_throttling(self) -> bool:
        return any(error.is_throttled for error in self.errors)
