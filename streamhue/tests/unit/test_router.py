"""
Unit tests for the event router.
"""

import pytest
from streamhue.core.events import NotificationBus, NotificationType
from streamhue.core.router import EventRouter, EventSettings
from streamhue.core.scheduler import EffectScheduler
from streamhue.core.types import EffectSpec, EventKind, LightState, NormalizedEvent, Tier
from streamhue.infrastructure.bridge import MockBridge
from streamhue.infrastructure.timers import ManualTimerFactory

S0 = LightState(on=True, brightness=254, hue=8418, saturation=140)
SMALL = EffectSpec(color="#0000FF", duration=5000)
MEDIUM = EffectSpec(color="#00FF00", duration=5000)
LARGE = EffectSpec(color="#FF0000", duration=5000)
FOLLOW = EffectSpec(color="#FFFFFF", duration=3000)
SUB = EffectSpec(color="#FF00FF", duration=3000)

TIERS = (Tier(5, SMALL), Tier(50, MEDIUM), Tier(100, LARGE))


@pytest.fixture
def bridge():
    return MockBridge.with_lights(["1", "2"], S0)


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def bus():
    return NotificationBus()


@pytest.fixture
def settings():
    return {
        EventKind.DONATION: EventSettings(tiers=TIERS),
        EventKind.BITS: EventSettings(tiers=(Tier(100, SMALL),)),
        EventKind.FOLLOW: EventSettings(effect=FOLLOW),
        EventKind.SUBSCRIPTION: EventSettings(enabled=False, effect=SUB),
    }


@pytest.fixture
def router(settings, bridge, timers, bus):
    scheduler = EffectScheduler(bridge, timer_factory=timers, notifications=bus)
    router = EventRouter(settings, scheduler, notifications=bus, max_workers=2)
    yield router
    router.stop()


def ignored_reasons(bus):
    reasons = []
    bus.subscribe(NotificationType.EVENT_IGNORED, lambda n: reasons.append(n.data["reason"]))
    return reasons


class TestRoute:
    """Tests for route."""

    def test_donation_uses_tier(self, router):
        window = router.route(NormalizedEvent(EventKind.DONATION, 75.0))
        assert window.effect is MEDIUM

    def test_donation_below_lowest_tier_is_noop(self, router, bridge, bus):
        reasons = ignored_reasons(bus)

        assert router.route(NormalizedEvent(EventKind.DONATION, 1.0)) is None
        assert bridge.get_write_history() == []
        assert reasons == ["no_matching_tier"]

    def test_donation_without_amount_is_ignored(self, router, bus):
        reasons = ignored_reasons(bus)
        assert router.route(NormalizedEvent(EventKind.DONATION)) is None
        assert reasons == ["missing_magnitude"]

    def test_bits_uses_own_tiers(self, router):
        window = router.route(NormalizedEvent(EventKind.BITS, 500))
        assert window.effect is SMALL

    def test_follow_uses_fixed_effect(self, router, bridge):
        window = router.route(NormalizedEvent(EventKind.FOLLOW))

        assert window.effect is FOLLOW
        assert window.target_lights == frozenset({"1", "2"})
        assert bridge.state_of("1") == FOLLOW.to_light_state()

    def test_disabled_kind_is_ignored(self, router, bridge, bus):
        reasons = ignored_reasons(bus)

        assert router.route(NormalizedEvent(EventKind.SUBSCRIPTION)) is None
        assert bridge.get_write_history() == []
        assert reasons == ["disabled"]

    def test_unknown_kind_is_ignored(self, router, bus):
        reasons = ignored_reasons(bus)
        assert router.route(NormalizedEvent("raid")) is None
        assert reasons == ["unknown_kind"]

    def test_kind_string_is_accepted(self, router):
        window = router.route(NormalizedEvent("Follow"))
        assert window.effect is FOLLOW

    def test_missing_kind_settings_is_ignored(self, bridge, timers):
        scheduler = EffectScheduler(bridge, timer_factory=timers)
        router = EventRouter({}, scheduler)
        try:
            assert router.route(NormalizedEvent(EventKind.FOLLOW)) is None
        finally:
            router.stop()

    def test_snapshot_failure_is_contained(self, router, bridge):
        bridge.fail_reads.add("2")
        assert router.route(NormalizedEvent(EventKind.FOLLOW)) is None
        assert bridge.get_write_history() == []

    def test_configured_light_subset(self, settings, bridge, timers):
        scheduler = EffectScheduler(bridge, timer_factory=timers)
        router = EventRouter(settings, scheduler, lights=frozenset({"2"}))
        try:
            window = router.route(NormalizedEvent(EventKind.FOLLOW))
        finally:
            router.stop()

        assert window.target_lights == frozenset({"2"})
        assert bridge.state_of("1") == S0


class TestOnEvent:
    """Tests for asynchronous ingestion."""

    def test_returns_future_with_window(self, router):
        future = router.on_event(NormalizedEvent(EventKind.DONATION, 150))
        assert future.result(timeout=2.0).effect is LARGE

    def test_failing_event_does_not_block_next(self, router, bridge):
        class Boom(Exception):
            pass

        original = bridge.get_light_state
        calls = []

        def flaky(light_id):
            calls.append(light_id)
            if len(calls) == 1:
                raise Boom("unexpected")
            return original(light_id)

        bridge.get_light_state = flaky

        first = router.on_event(NormalizedEvent(EventKind.FOLLOW))
        assert first.result(timeout=2.0) is None

        second = router.on_event(NormalizedEvent(EventKind.FOLLOW))
        assert second.result(timeout=2.0) is not None

    def test_event_after_stop_is_dropped(self, router, bridge, bus):
        reasons = ignored_reasons(bus)
        router.stop()

        future = router.on_event(NormalizedEvent(EventKind.FOLLOW))

        assert future.result(timeout=2.0) is None
        assert reasons == ["stopped"]
        assert bridge.get_write_history() == []

    def test_end_to_end_donation_restores_baseline(self, router, bridge, timers):
        window = router.on_event(NormalizedEvent(EventKind.DONATION, 75)).result(timeout=2.0)

        assert window.effect is MEDIUM
        assert bridge.state_of("1") == MEDIUM.to_light_state()

        timers.advance(MEDIUM.duration_seconds)

        assert bridge.state_of("1") == S0
        assert bridge.state_of("2") == S0
