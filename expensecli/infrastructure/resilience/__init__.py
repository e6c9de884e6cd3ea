"""API Resilience Implementations.

Contains the list fetcher that retries throttled queries with exponential
backoff, repairs partial responses and serves repeat calls from a cache.
Bounded Context: API Resilience
"""
