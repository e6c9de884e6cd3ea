"""Cache Store Implementation.

Provides the in-memory, single-slot implementation of the CacheStore
interface used to short-circuit repeated expense listings.
Bounded Context: Cache Management
"""
