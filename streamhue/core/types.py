"""
STREAMHUE - Core Types

Common types and dataclasses used throughout the application.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Set, Tuple, Union

from streamhue.core.color import to_device_format
from streamhue.core.errors import UnknownEventKind

Color = Union[str, Tuple[int, int, int]]


class AlertMode(Enum):
    """Hue alert modes."""

    NONE = "none"
    SELECT = "select"  # Single breathe cycle
    LSELECT = "lselect"  # Breathe cycles for 15 seconds


@dataclass(frozen=True)
class LightState:
    """Observable settings of a single light at one point in time."""

    on: bool = True
    brightness: int = 254  # 0 - 254
    hue: int = 0  # 0 - 65535
    saturation: int = 0  # 0 - 254
    alert: AlertMode = AlertMode.NONE


@dataclass(frozen=True)
class EffectSpec:
    """Declarative light effect, loaded from configuration."""

    color: Color
    brightness: int = 254
    alert: AlertMode = AlertMode.SELECT
    duration: int = 5000  # Milliseconds

    @property
    def duration_seconds(self) -> float:
        return self.duration / 1000.0

    def to_light_state(self) -> LightState:
        """
        Convert the effect into the state written to each light.

        Returns:
            LightState with hue/saturation derived from the color

        Raises:
            InvalidColorFormat: If the color cannot be parsed
        """
        hue, saturation = to_device_format(self.color)
        return LightState(
            on=True,
            brightness=self.brightness,
            hue=hue,
            saturation=saturation,
            alert=self.alert,
        )


@dataclass(frozen=True)
class Tier:
    """Threshold/effect pair used for magnitude-based events."""

    threshold: float
    effect: EffectSpec


class EventKind(Enum):
    """Kinds of stream events the router can handle."""

    DONATION = "donation"
    FOLLOW = "follow"
    SUBSCRIPTION = "subscription"
    BITS = "bits"

    @property
    def is_tiered(self) -> bool:
        return self in (EventKind.DONATION, EventKind.BITS)

    @classmethod
    def parse(cls, value: Union[str, "EventKind"]) -> "EventKind":
        """
        Coerce a raw kind string to an EventKind.

        Raises:
            UnknownEventKind: If the value names no known kind
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownEventKind(value) from None


@dataclass
class NormalizedEvent:
    """Transport-agnostic stream event."""

    kind: Union[EventKind, str]
    magnitude: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@dataclass(eq=False)
class EffectWindow:
    """
    Bookkeeping for one "apply effect, wait, restore" cycle.

    Owned by the EffectScheduler. `owned_lights` is the subset of
    `target_lights` this window is currently responsible for restoring;
    it only shrinks when a newer window takes over a light.
    """

    id: int
    effect: EffectSpec
    target_lights: FrozenSet[str]
    baseline_state: Dict[str, LightState]
    expires_at: float
    owned_lights: Set[str] = field(default_factory=set)
    _token: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._token.is_set()

    def cancel(self) -> None:
        """Mark the window as cancelled. Its timer will skip the restore."""
        self._token.set()
