import asyncio
from datetime import date, datetime, timezone

import pytest

from app.models.telemetry import GeoPoint, UnknownEvent, ViewItemEvent, parse_event
from app.services.telemetry.context import ContextDeriver, snap_location
from app.services.telemetry.service import TelemetryService
from app.services.telemetry.store import InMemorySessionStore


class FailingStore(InMemorySessionStore):
    async def put(self, record):
        raise RuntimeError("disk full")

    async def query_by_session(self, session_id):
        raise RuntimeError("disk gone")


def _view(item_id: str, **payload) -> dict:
    return {
        "name": "view_item",
        "ts": datetime(2026, 10, 14, 11, 30, tzinfo=timezone.utc),
        "payload": {"id": item_id, **payload},
    }


def test_capture_round_trips_signals(clock):
    raw = _view("park-1", category="park", tags=["nature"], dwell_ms=12000, distanceKm=1.5, price="free")

    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture(raw)
        return await service.get_session_signals()

    signals = asyncio.run(scenario())

    assert len(signals) == 1
    assert signals[0].event == parse_event(raw)
    assert signals[0].context.hour == 12
    assert signals[0].context.day_of_week == 2
    assert signals[0].context.holiday is False


def test_signals_come_back_in_capture_order(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        for index in range(5):
            service.capture(_view(f"item-{index}"))
        return await service.get_session_signals()

    signals = asyncio.run(scenario())
    assert [s.event.payload.id for s in signals] == [f"item-{i}" for i in range(5)]


def test_missing_ts_is_stamped_with_capture_time(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture({"name": "click_cta", "payload": {"id": "cta"}})
        return await service.get_session_signals()

    signals = asyncio.run(scenario())
    assert signals[0].event.ts == clock.now


def test_locations_are_snapped_to_grid(clock):
    raw = {"name": "view_item", "payload": {"location": {"lat": 35.6812, "lng": 139.7671}}}

    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture(raw)
        return await service.get_session_signals()

    signal = asyncio.run(scenario())[0]

    assert signal.event.payload.location.lat == pytest.approx(35.68)
    assert signal.event.payload.location.lng == pytest.approx(139.765)
    assert signal.context.location == signal.event.payload.location


def test_snap_location_rounds_to_nearest_cell():
    snapped = snap_location(GeoPoint(lat=35.0026, lng=-0.0024))
    assert snapped.lat == pytest.approx(35.005)
    assert snapped.lng == pytest.approx(0.0)


def test_unknown_events_are_kept(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture({"name": "share_tapped", "payload": {"channel": "line"}})
        return await service.get_session_signals()

    signals = asyncio.run(scenario())
    assert isinstance(signals[0].event, UnknownEvent)
    assert signals[0].event.name == "share_tapped"


def test_capture_never_raises(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture({"name": "view_item", "payload": {"dwell_ms": -5}})
        service.capture("not an event")  # type: ignore[arg-type]
        return await service.get_session_signals()

    assert asyncio.run(scenario()) == []


def test_storage_failures_are_swallowed(clock):
    async def scenario():
        service = TelemetryService(FailingStore(), clock=clock)
        service.capture(_view("x"))
        await service.flush()
        return await service.get_session_signals()

    assert asyncio.run(scenario()) == []


def test_capture_without_running_loop_persists_inline(clock):
    service = TelemetryService(InMemorySessionStore(), clock=clock)
    service.capture(_view("sync"))

    signals = asyncio.run(service.get_session_signals())
    assert [s.event.payload.id for s in signals] == ["sync"]


def test_session_is_capped_with_batch_eviction(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock, max_records_per_session=20)
        for index in range(21):
            service.capture(_view(f"item-{index}"))
        return await service.get_session_signals()

    signals = asyncio.run(scenario())

    # 21 records, cap 20, batch of 5% (1): 21 - 20 + 1 = 2 evicted
    assert len(signals) == 19
    assert signals[0].event.payload.id == "item-2"
    assert signals[-1].event.payload.id == "item-20"


def test_expired_records_are_removed_on_capture(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock, session_timeout_seconds=1800)
        service.capture(_view("old"))
        await service.flush()
        clock.advance(minutes=31)
        service.capture(_view("new"))
        return await service.get_session_signals()

    signals = asyncio.run(scenario())
    assert [s.event.payload.id for s in signals] == ["new"]


def test_start_cleans_up_expired_records(clock):
    store = InMemorySessionStore()

    async def scenario():
        first = TelemetryService(store, clock=clock)
        first.capture(_view("stale"))
        await first.flush()

        clock.advance(hours=1)
        second = TelemetryService(store, clock=clock)
        await second.start()
        return await store.count(first.session_id)

    assert asyncio.run(scenario()) == 0


def test_clear_session_starts_empty(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture(_view("before"))
        await service.flush()
        previous = service.session_id

        fresh = service.clear_session()
        signals = await service.get_session_signals()
        return previous, fresh, service.session_id, signals, await service.store.count(previous)

    previous, fresh, current, signals, leftover = asyncio.run(scenario())
    assert current == fresh
    assert current != previous
    assert leftover == 0
    assert current.startswith("session_")
    assert signals == []


def test_session_stats(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture({"name": "view_item", "ts": datetime(2026, 10, 14, 10, 0, tzinfo=timezone.utc)})
        service.capture({"name": "view_item", "ts": datetime(2026, 10, 14, 10, 30, tzinfo=timezone.utc)})
        service.capture({"name": "filter_apply", "ts": datetime(2026, 10, 14, 10, 45, tzinfo=timezone.utc)})
        return await service.get_session_stats()

    stats = asyncio.run(scenario())
    assert stats.event_count == 3
    assert stats.time_span_minutes == 45
    assert stats.event_counts == {"view_item": 2, "filter_apply": 1}


def test_context_deriver_marks_holidays_and_weather():
    deriver = ContextDeriver(weather_provider=lambda: "rain", holidays=[date(2026, 11, 3)])

    holiday = deriver.derive(datetime(2026, 11, 3, 9, 0))
    weekday = deriver.derive(datetime(2026, 11, 4, 9, 0))
    saturday = deriver.derive(datetime(2026, 11, 7, 9, 0))

    assert holiday.holiday is True
    assert weekday.holiday is False
    assert saturday.holiday is True
    assert weekday.weather == "rain"


def test_context_deriver_survives_weather_failures():
    def broken():
        raise ConnectionError("weather service down")

    context = ContextDeriver(weather_provider=broken).derive(datetime(2026, 11, 4, 9, 0))
    assert context.weather is None


def test_captured_event_is_view_item_model(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        service.capture(ViewItemEvent.model_validate({"payload": {"id": "typed", "distanceKm": 2.0}}))
        return await service.get_session_signals()

    event = asyncio.run(scenario())[0].event
    assert isinstance(event, ViewItemEvent)
    assert event.payload.distance_km == 2.0


def test_sessions_are_kept_apart(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        alice = service.capture(_view("alice-private"), "session_1_aaaaaaaaa")
        bob = service.capture(_view("bob-item"), "session_2_bbbbbbbbb")
        return (
            alice,
            bob,
            await service.get_session_signals(alice),
            await service.get_session_signals(bob),
            await service.get_session_signals(),
        )

    alice, bob, alice_signals, bob_signals, default_signals = asyncio.run(scenario())
    assert (alice, bob) == ("session_1_aaaaaaaaa", "session_2_bbbbbbbbb")
    assert [s.event.payload.id for s in alice_signals] == ["alice-private"]
    assert [s.event.payload.id for s in bob_signals] == ["bob-item"]
    assert default_signals == []


def test_clearing_one_session_leaves_others(clock):
    async def scenario():
        service = TelemetryService(InMemorySessionStore(), clock=clock)
        default_before = service.session_id
        service.capture(_view("alice-private"), "session_1_aaaaaaaaa")
        service.capture(_view("bob-item"), "session_2_bbbbbbbbb")

        fresh = service.clear_session("session_2_bbbbbbbbb")
        return (
            fresh,
            default_before == service.session_id,
            await service.get_session_signals("session_1_aaaaaaaaa"),
            await service.get_session_signals("session_2_bbbbbbbbb"),
        )

    fresh, default_kept, alice_signals, bob_signals = asyncio.run(scenario())
    assert fresh.startswith("session_")
    assert default_kept is True
    assert [s.event.payload.id for s in alice_signals] == ["alice-private"]
    assert bob_signals == []


def test_capture_defaults_to_service_session(clock):
    service = TelemetryService(InMemorySessionStore(), clock=clock)
    assert service.capture(_view("sync")) == service.session_id
    assert asyncio.run(service.store.count(service.session_id)) == 1
