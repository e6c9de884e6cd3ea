"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like identities, cache keys and
GraphQL documents, ensuring consistency and type safety.
"""

from typing import NewType, Dict, Any, Union, List

# === Identity Context ===

# Using NewType for semantic clarity, although they are strings at runtime.
UserId = NewType("UserId", str)              # Identity the expenses belong to
ExpenseId = NewType("ExpenseId", str)        # Opaque expense identity

# === Caching Context ===
CacheKey = NewType("CacheKey", str)          # Effective identity used as cache key

# === Remote Query Context ===
GraphQLDocument = NewType("GraphQLDocument", str)  # Query or mutation text
Variables = Dict[str, Any]                         # GraphQL variables map
RawRecord = Dict[str, Any]                         # One record as sent over the wire
ErrorPath = List[Union[str, int]]                  # GraphQL error path, e.g. ['getExpenses', 1, 'amount']
