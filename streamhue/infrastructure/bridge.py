"""
STREAMHUE - Light Bridge Clients

Hue bridge access behind a small protocol so the scheduler can be driven
against a real bridge, an in-memory bridge for dry runs, or test doubles.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set, Tuple

from requests import RequestException

from streamhue.core.errors import BridgeError, BridgeWriteFailure
from streamhue.core.types import AlertMode, LightState
from streamhue.infrastructure.http import HttpClient

logger = logging.getLogger(__name__)

DISCOVERY_URL = "https://discovery.meethue.com/"


class LightBridge(Protocol):
    """Protocol for light bridge operations."""

    def get_light_state(self, light_id: str) -> LightState:
        """Read the current state of a light. Raises BridgeError."""
        ...

    def set_light_state(self, light_id: str, state: LightState) -> None:
        """Write a light state. Raises BridgeWriteFailure."""
        ...

    def list_lights(self) -> Set[str]:
        """List all light identifiers. Raises BridgeError."""
        ...


def state_to_payload(state: LightState) -> Dict[str, Any]:
    """
    Build a Hue v1 state body.

    A light that is off only gets the "on" flag: the bridge rejects
    color attributes for lights that are switched off.
    """
    if not state.on:
        return {"on": False}

    return {
        "on": True,
        "bri": state.brightness,
        "hue": state.hue,
        "sat": state.saturation,
        "alert": state.alert.value,
    }


def payload_to_state(payload: Dict[str, Any]) -> LightState:
    """Parse the "state" object of a Hue v1 light resource."""
    try:
        alert = AlertMode(payload.get("alert", "none"))
    except ValueError:
        alert = AlertMode.NONE

    # White-only bulbs have no hue/sat attributes
    return LightState(
        on=bool(payload.get("on", False)),
        brightness=int(payload.get("bri", 0)),
        hue=int(payload.get("hue", 0)),
        saturation=int(payload.get("sat", 0)),
        alert=alert,
    )


def _bridge_errors(payload: Any) -> List[str]:
    if not isinstance(payload, list):
        return []
    return [
        item["error"].get("description", "unknown error")
        for item in payload
        if isinstance(item, dict) and isinstance(item.get("error"), dict)
    ]


class HueBridgeClient:
    """Hue bridge client for the v1 REST API."""

    def __init__(
        self,
        bridge_ip: str,
        username: str,
        http_client: HttpClient,
        timeout: float = 5.0,
    ):
        """
        Initialize Hue bridge client.

        Args:
            bridge_ip: Bridge address (e.g., 192.168.1.20)
            username: Whitelisted API username
            http_client: HTTP client for API requests
            timeout: Per-request timeout in seconds
        """
        self._base_url = f"http://{bridge_ip}/api/{username}"
        self._http = http_client
        self._timeout = timeout

    def _get_json(self, path: str) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.get(url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except (RequestException, ValueError) as e:
            raise BridgeError(f"GET {path} failed: {e}") from e

        errors = _bridge_errors(payload)
        if errors:
            raise BridgeError(f"GET {path} rejected: {'; '.join(errors)}")
        return payload

    def list_lights(self) -> Set[str]:
        payload = self._get_json("/lights")
        if not isinstance(payload, dict):
            raise BridgeError("Unexpected response for light list")
        return set(payload.keys())

    def get_light_state(self, light_id: str) -> LightState:
        payload = self._get_json(f"/lights/{light_id}")
        state = payload.get("state") if isinstance(payload, dict) else None
        if not isinstance(state, dict):
            raise BridgeError(f"Light {light_id} returned no state")
        return payload_to_state(state)

    def set_light_state(self, light_id: str, state: LightState) -> None:
        path = f"/lights/{light_id}/state"
        try:
            response = self._http.put(
                f"{self._base_url}{path}", body=state_to_payload(state), timeout=self._timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (RequestException, ValueError) as e:
            raise BridgeWriteFailure(f"PUT {path} failed: {e}") from e

        errors = _bridge_errors(payload)
        if errors:
            raise BridgeWriteFailure(f"PUT {path} rejected: {'; '.join(errors)}")


def discover_bridge_ip(http_client: HttpClient, timeout: float = 5.0) -> str:
    """
    Look up the first bridge registered with the Hue discovery service.

    Returns:
        Internal IP address of the bridge

    Raises:
        BridgeError: If discovery fails or finds no bridge
    """
    try:
        response = http_client.get(DISCOVERY_URL, timeout=timeout)
        response.raise_for_status()
        bridges = response.json()
    except (RequestException, ValueError) as e:
        raise BridgeError(f"Bridge discovery failed: {e}") from e

    for bridge in bridges or []:
        address = bridge.get("internalipaddress") if isinstance(bridge, dict) else None
        if address:
            logger.info(f"Discovered Hue bridge at {address}")
            return address

    raise BridgeError("No Hue bridge found on the network")


class MockBridge:
    """In-memory bridge for testing and dry runs."""

    def __init__(self, lights: Optional[Dict[str, LightState]] = None):
        self._lights: Dict[str, LightState] = dict(lights or {})
        self._writes: List[Tuple[str, LightState]] = []
        self._reads: List[str] = []
        self._lock = threading.Lock()
        self.fail_reads: Set[str] = set()
        self.fail_writes: Set[str] = set()

    @classmethod
    def with_lights(cls, light_ids: Iterable[str], state: Optional[LightState] = None) -> "MockBridge":
        return cls({light_id: state or LightState() for light_id in light_ids})

    def list_lights(self) -> Set[str]:
        with self._lock:
            return set(self._lights.keys())

    def get_light_state(self, light_id: str) -> LightState:
        with self._lock:
            self._reads.append(light_id)
            if light_id in self.fail_reads:
                raise BridgeError(f"Read of light {light_id} failed")
            if light_id not in self._lights:
                raise BridgeError(f"Unknown light: {light_id}")
            return self._lights[light_id]

    def set_light_state(self, light_id: str, state: LightState) -> None:
        with self._lock:
            self._writes.append((light_id, state))
            if light_id in self.fail_writes:
                raise BridgeWriteFailure(f"Write to light {light_id} failed")
            self._lights[light_id] = state

    def state_of(self, light_id: str) -> LightState:
        with self._lock:
            return self._lights[light_id]

    def get_write_history(self) -> List[Tuple[str, LightState]]:
        """Get history of state writes for testing."""
        with self._lock:
            return list(self._writes)

    def get_read_history(self) -> List[str]:
        with self._lock:
            return list(self._reads)
