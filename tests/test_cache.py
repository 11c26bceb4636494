from datetime import date

from glam.cache import (
    ArtistBookingsKey,
    AvailabilityKey,
    BlockedDatesChanged,
    BlockedDatesKey,
    BookingsChanged,
    BulkAvailabilityKey,
    CustomerBookingsKey,
    PendingCountKey,
    QueryCache,
    WorkingHoursChanged,
    WorkingHoursKey,
)

TODAY = date(2026, 10, 14)


def filled_cache():
    cache = QueryCache(ttl_seconds=60)
    for key in (
        WorkingHoursKey("a1"),
        WorkingHoursKey("a2"),
        AvailabilityKey("a1", 3),
        BulkAvailabilityKey(frozenset({"a1", "a2"}), 3),
        BulkAvailabilityKey(frozenset({"a2"}), 3),
        BlockedDatesKey("a1"),
        CustomerBookingsKey(7, TODAY),
        CustomerBookingsKey(8, TODAY),
        ArtistBookingsKey("a1", "all"),
        ArtistBookingsKey("a1", "pending"),
        PendingCountKey("customer", "7"),
        PendingCountKey("artist", "a1"),
        PendingCountKey("artist", "a2"),
    ):
        cache.set(key, "value")
    return cache


def test_working_hours_change():
    cache = filled_cache()
    assert cache.invalidate(WorkingHoursChanged("a1")) == 3

    assert WorkingHoursKey("a1") not in cache
    assert AvailabilityKey("a1", 3) not in cache
    assert BulkAvailabilityKey(frozenset({"a1", "a2"}), 3) not in cache
    assert BulkAvailabilityKey(frozenset({"a2"}), 3) in cache
    assert WorkingHoursKey("a2") in cache
    assert BlockedDatesKey("a1") in cache


def test_blocked_dates_change():
    cache = filled_cache()
    assert cache.invalidate(BlockedDatesChanged("a1")) == 1
    assert BlockedDatesKey("a1") not in cache


def test_bookings_change():
    cache = filled_cache()
    cache.invalidate(BookingsChanged(7, "a1"))

    assert CustomerBookingsKey(7, TODAY) not in cache
    assert ArtistBookingsKey("a1", "all") not in cache
    assert ArtistBookingsKey("a1", "pending") not in cache
    assert PendingCountKey("customer", "7") not in cache
    assert PendingCountKey("artist", "a1") not in cache

    assert CustomerBookingsKey(8, TODAY) in cache
    assert PendingCountKey("artist", "a2") in cache
    assert WorkingHoursKey("a1") in cache


def test_entries_expire():
    now = [0.0]
    cache = QueryCache(ttl_seconds=30, clock=lambda: now[0])
    cache.set(WorkingHoursKey("a1"), [1])

    now[0] = 29.0
    assert cache.get(WorkingHoursKey("a1")) == [1]
    now[0] = 30.0
    assert cache.get(WorkingHoursKey("a1")) is None


def test_get_or_load_calls_loader_once():
    cache = QueryCache()
    calls = []

    def load():
        calls.append(1)
        return {"count": 2}

    assert cache.get_or_load(PendingCountKey("artist", "a1"), load) == {"count": 2}
    assert cache.get_or_load(PendingCountKey("artist", "a1"), load) == {"count": 2}
    assert len(calls) == 1


def test_load_racing_an_invalidation_is_not_stored():
    cache = QueryCache()

    def load():
        # a write lands while the read is still loading
        cache.invalidate(WorkingHoursChanged("a1"))
        return "OLD"

    assert cache.get_or_load(WorkingHoursKey("a1"), load) == "OLD"
    assert cache.get(WorkingHoursKey("a1")) is None

    assert cache.get_or_load(WorkingHoursKey("a1"), lambda: "NEW") == "NEW"
    assert cache.get(WorkingHoursKey("a1")) == "NEW"


def test_customer_bookings_are_keyed_by_day():
    cache = filled_cache()
    assert CustomerBookingsKey(7, date(2026, 10, 15)) not in cache
    cache.invalidate(BookingsChanged(7, "a2"))
    assert CustomerBookingsKey(7, TODAY) not in cache
