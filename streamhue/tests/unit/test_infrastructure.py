"""
Unit tests for infrastructure components.
"""

import threading

import pytest
from requests import ConnectionError as RequestsConnectionError
from streamhue.core.errors import BridgeError, BridgeWriteFailure
from streamhue.core.types import AlertMode, LightState
from streamhue.infrastructure.bridge import (
    DISCOVERY_URL,
    HueBridgeClient,
    MockBridge,
    discover_bridge_ip,
    payload_to_state,
    state_to_payload,
)
from streamhue.infrastructure.http import MockHttpClient, RequestsHttpClient
from streamhue.infrastructure.timers import ManualTimerFactory, ThreadingTimerFactory

BASE = "http://10.0.0.2/api/user"


class TestMockHttpClient:
    """Tests for MockHttpClient."""

    def test_get_returns_mock_response(self):
        client = MockHttpClient(responses={"http://example.com/api": {"status": "ok"}})

        response = client.get("http://example.com/api")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_get_returns_404_for_unknown_url(self):
        client = MockHttpClient()
        assert client.get("http://unknown.com").status_code == 404

    def test_put_acknowledges_each_attribute(self):
        client = MockHttpClient()
        response = client.put("http://example.com/state", body={"on": True, "bri": 10})
        assert len(response.json()) == 2

    def test_records_call_history(self):
        client = MockHttpClient()
        client.get("http://example.com/api", params={"q": 1})
        client.put("http://example.com/api", body={"on": False})

        assert client.get_call_history() == [
            ("GET", "http://example.com/api", {"q": 1}),
            ("PUT", "http://example.com/api", {"on": False}),
        ]

    def test_configured_exception_is_raised(self):
        client = MockHttpClient(responses={"http://down": RequestsConnectionError("refused")})
        with pytest.raises(RequestsConnectionError):
            client.get("http://down")


class TestRequestsHttpClient:
    """Tests for RequestsHttpClient."""

    def test_stop_closes_session(self, monkeypatch):
        client = RequestsHttpClient()
        closed = []
        monkeypatch.setattr(client._session, "close", lambda: closed.append(True))

        client.stop()

        assert closed == [True]


class TestStatePayload:
    """Tests for Hue state conversion."""

    def test_on_state(self):
        state = LightState(on=True, brightness=200, hue=1000, saturation=100, alert=AlertMode.SELECT)
        assert state_to_payload(state) == {"on": True, "bri": 200, "hue": 1000, "sat": 100, "alert": "select"}

    def test_off_state_only_sends_on_flag(self):
        assert state_to_payload(LightState(on=False, hue=500)) == {"on": False}

    def test_white_bulb_defaults(self):
        state = payload_to_state({"on": True, "bri": 120, "alert": "none", "reachable": True})
        assert state == LightState(on=True, brightness=120, hue=0, saturation=0)

    def test_unknown_alert(self):
        assert payload_to_state({"on": True, "alert": "breathe"}).alert == AlertMode.NONE


class TestHueBridgeClient:
    """Tests for HueBridgeClient."""

    def test_list_lights(self):
        http = MockHttpClient(responses={f"{BASE}/lights": {"1": {}, "4": {}}})
        client = HueBridgeClient("10.0.0.2", "user", http)
        assert client.list_lights() == {"1", "4"}

    def test_get_light_state(self):
        http = MockHttpClient(
            responses={f"{BASE}/lights/1": {"state": {"on": True, "bri": 254, "hue": 8418, "sat": 140, "alert": "none"}}}
        )
        client = HueBridgeClient("10.0.0.2", "user", http)
        assert client.get_light_state("1") == LightState(True, 254, 8418, 140, AlertMode.NONE)

    def test_get_unknown_light_raises(self):
        client = HueBridgeClient("10.0.0.2", "user", MockHttpClient())
        with pytest.raises(BridgeError):
            client.get_light_state("9")

    def test_unauthorized_user_raises(self):
        http = MockHttpClient(
            responses={f"{BASE}/lights": [{"error": {"type": 1, "description": "unauthorized user"}}]}
        )
        client = HueBridgeClient("10.0.0.2", "user", http)
        with pytest.raises(BridgeError, match="unauthorized user"):
            client.list_lights()

    def test_connection_error_raises_bridge_error(self):
        http = MockHttpClient(responses={f"{BASE}/lights/1": RequestsConnectionError("timeout")})
        client = HueBridgeClient("10.0.0.2", "user", http)
        with pytest.raises(BridgeError):
            client.get_light_state("1")

    def test_set_light_state(self):
        http = MockHttpClient()
        client = HueBridgeClient("10.0.0.2", "user", http, timeout=2.0)

        client.set_light_state("3", LightState(on=True, brightness=254, hue=0, saturation=254, alert=AlertMode.LSELECT))

        method, url, body = http.get_call_history()[0]
        assert method == "PUT"
        assert url == f"{BASE}/lights/3/state"
        assert body == {"on": True, "bri": 254, "hue": 0, "sat": 254, "alert": "lselect"}

    def test_set_light_state_rejected(self):
        http = MockHttpClient(
            put_responses={
                f"{BASE}/lights/3/state": [{"error": {"type": 201, "description": "device is off"}}]
            }
        )
        client = HueBridgeClient("10.0.0.2", "user", http)
        with pytest.raises(BridgeWriteFailure, match="device is off"):
            client.set_light_state("3", LightState())

    def test_set_light_state_connection_error(self):
        http = MockHttpClient(put_responses={f"{BASE}/lights/3/state": RequestsConnectionError("down")})
        client = HueBridgeClient("10.0.0.2", "user", http)
        with pytest.raises(BridgeWriteFailure):
            client.set_light_state("3", LightState())


class TestDiscovery:
    """Tests for bridge discovery."""

    def test_discovers_first_bridge(self):
        http = MockHttpClient(
            responses={DISCOVERY_URL: [{"id": "abc", "internalipaddress": "192.168.1.20"}]}
        )
        assert discover_bridge_ip(http) == "192.168.1.20"

    def test_no_bridge_found(self):
        http = MockHttpClient(responses={DISCOVERY_URL: []})
        with pytest.raises(BridgeError, match="No Hue bridge"):
            discover_bridge_ip(http)

    def test_discovery_unreachable(self):
        with pytest.raises(BridgeError):
            discover_bridge_ip(MockHttpClient())


class TestMockBridge:
    """Tests for MockBridge."""

    def test_read_write(self):
        bridge = MockBridge.with_lights(["1"])
        bridge.set_light_state("1", LightState(on=False))

        assert bridge.get_light_state("1") == LightState(on=False)
        assert bridge.get_write_history() == [("1", LightState(on=False))]
        assert bridge.get_read_history() == ["1"]

    def test_failures(self):
        bridge = MockBridge.with_lights(["1"])
        bridge.fail_reads.add("1")
        bridge.fail_writes.add("1")

        with pytest.raises(BridgeError):
            bridge.get_light_state("1")
        with pytest.raises(BridgeWriteFailure):
            bridge.set_light_state("1", LightState())


class TestTimers:
    """Tests for timer factories."""

    def test_manual_timer_fires_in_deadline_order(self):
        factory = ManualTimerFactory()
        fired = []

        factory.create(2.0, fired.append, args=("late",)).start()
        factory.create(1.0, fired.append, args=("early",)).start()
        factory.advance(0.5)
        assert fired == []

        factory.advance(2.0)
        assert fired == ["early", "late"]
        assert factory.now() == 2.5

    def test_manual_timer_cancel(self):
        factory = ManualTimerFactory()
        fired = []

        timer = factory.create(1.0, fired.append, args=("x",))
        timer.start()
        timer.cancel()
        factory.advance(5.0)

        assert fired == []
        assert factory.pending() == []

    def test_unstarted_timer_never_fires(self):
        factory = ManualTimerFactory()
        fired = []
        factory.create(1.0, fired.append, args=("x",))
        factory.advance(5.0)
        assert fired == []

    def test_timer_created_in_callback_uses_callback_time(self):
        factory = ManualTimerFactory()
        fired = []

        def chain():
            fired.append(factory.now())
            factory.create(1.0, lambda: fired.append(factory.now())).start()

        factory.create(1.0, chain).start()
        factory.advance(3.0)

        assert fired == [1.0, 2.0]

    def test_threading_timer_fires(self):
        factory = ThreadingTimerFactory()
        done = threading.Event()

        timer = factory.create(0.01, done.set)
        timer.start()

        assert done.wait(timeout=2.0)
