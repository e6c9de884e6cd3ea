from expensecli.domain.models.common import CacheKey
from expensecli.domain.models.expense import CacheEntry, Expense
from expensecli.infrastructure.cache.memory_cache import InMemoryCacheStore


def _entry(user_id="1", timestamp=100.0):
    expense = Expense(id="e1", name="Tea", amount=2, category="Food", date="2024-01-01")
    return CacheEntry(data=[expense], timestamp=timestamp, user_id=user_id)


def test_starts_empty():
    store = InMemoryCacheStore()
    assert store.get(CacheKey("1")) is None
    assert store.entry == CacheEntry.empty()


def test_set_then_get_same_key():
    store = InMemoryCacheStore()
    entry = _entry()
    store.set(CacheKey("1"), entry)
    assert store.get(CacheKey("1")) is entry


def test_get_other_key_misses():
    store = InMemoryCacheStore()
    store.set(CacheKey("1"), _entry())
    assert store.get(CacheKey("2")) is None


def test_single_slot_last_writer_wins():
    store = InMemoryCacheStore()
    store.set(CacheKey("1"), _entry("1"))
    store.set(CacheKey("2"), _entry("2", timestamp=200.0))
    assert store.get(CacheKey("1")) is None
    assert store.get(CacheKey("2")).timestamp == 200.0


def test_set_aligns_entry_user_with_key():
    store = InMemoryCacheStore()
    store.set(CacheKey("5"), _entry(user_id=None))
    assert store.entry.user_id == "5"
    assert store.get(CacheKey("5")) is not None


def test_clear_resets_slot():
    store = InMemoryCacheStore()
    store.set(CacheKey("1"), _entry())
    store.clear()
    assert store.entry.data is None
    assert store.entry.timestamp == 0.0
    assert store.get(CacheKey("1")) is None
