"""
STREAMHUE - Effect Table Parsing

Turns the raw `events` / `startup_state` configuration into typed effect
definitions. Everything is validated here so bad configuration fails at
startup instead of when the first event arrives.
"""

import copy
import math
from typing import Any, Dict, Mapping, Optional, Tuple

from streamhue.config.presets import DEFAULT_EVENTS
from streamhue.core.color import to_device_format
from streamhue.core.errors import ConfigurationError, InvalidColorFormat
from streamhue.core.router import EventSettings
from streamhue.core.types import AlertMode, EffectSpec, EventKind, LightState, Tier


def _parse_alert(value: Any, where: str) -> AlertMode:
    try:
        return AlertMode(str(value).lower())
    except ValueError:
        allowed = ", ".join(a.value for a in AlertMode)
        raise ConfigurationError(f"{where}: alert must be one of {allowed}, got {value!r}") from None


def _parse_int(data: Mapping[str, Any], key: str, default: int, low: int, high: int, where: str) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{where}: {key} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise ConfigurationError(f"{where}: {key} must be between {low} and {high}, got {value}")
    return value


def _parse_color(value: Any, where: str):
    if isinstance(value, list):
        value = tuple(value)
    try:
        to_device_format(value)
    except InvalidColorFormat as e:
        raise InvalidColorFormat(f"{where}: {e}") from e
    return value


def parse_effect(data: Any, where: str = "effect") -> EffectSpec:
    """
    Parse one effect definition.

    Args:
        data: Mapping with color, brightness, alert and duration (ms)
        where: Location used in error messages

    Returns:
        EffectSpec

    Raises:
        ConfigurationError: If any field is missing or invalid
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{where}: expected a mapping, got {type(data).__name__}")
    if "color" not in data:
        raise ConfigurationError(f"{where}: color is required")

    duration = data.get("duration", 5000)
    # Stored as whole milliseconds, so anything below 1 ms would become 0
    if (
        isinstance(duration, bool)
        or not isinstance(duration, (int, float))
        or not math.isfinite(duration)
        or int(duration) < 1
    ):
        raise ConfigurationError(f"{where}: duration must be at least 1 ms, got {duration!r}")

    return EffectSpec(
        color=_parse_color(data["color"], where),
        brightness=_parse_int(data, "brightness", 254, 0, 254, where),
        alert=_parse_alert(data.get("alert", "select"), where),
        duration=int(duration),
    )


def parse_tiers(data: Any, where: str = "tiers") -> Tuple[Tier, ...]:
    """
    Parse a tier list, keeping declaration order.

    Raises:
        ConfigurationError: On an empty list or an invalid tier
    """
    if not isinstance(data, list) or not data:
        raise ConfigurationError(f"{where}: expected a non-empty list of tiers")

    tiers = []
    for index, item in enumerate(data):
        item_where = f"{where}[{index}]"
        if not isinstance(item, Mapping):
            raise ConfigurationError(f"{item_where}: expected a mapping")

        threshold = item.get("threshold")
        if (
            isinstance(threshold, bool)
            or not isinstance(threshold, (int, float))
            or math.isnan(threshold)
            or threshold < 0
        ):
            raise ConfigurationError(f"{item_where}: threshold must be a non-negative number")

        tiers.append(Tier(threshold=threshold, effect=parse_effect(item.get("effect"), f"{item_where}.effect")))
    return tuple(tiers)


def parse_event_settings(kind: EventKind, data: Any) -> EventSettings:
    """Parse the configuration block of one event kind."""
    where = f"events.{kind.value}"
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{where}: expected a mapping")

    enabled = bool(data.get("enabled", True))

    if kind.is_tiered:
        return EventSettings(enabled=enabled, tiers=parse_tiers(data.get("tiers"), f"{where}.tiers"))

    return EventSettings(enabled=enabled, effect=parse_effect(data.get("effect"), f"{where}.effect"))


def build_event_table(events: Optional[Mapping[str, Any]]) -> Dict[EventKind, EventSettings]:
    """
    Build the routing table from raw configuration.

    Kinds missing from the configuration fall back to the built-in presets.
    A kind given only as `{enabled: false}` is disabled without needing
    effect definitions.

    Raises:
        ConfigurationError: On unknown kinds or invalid definitions
    """
    merged: Dict[str, Any] = copy.deepcopy(DEFAULT_EVENTS)

    for name, block in (events or {}).items():
        if name not in merged:
            raise ConfigurationError(f"events.{name}: unknown event kind")
        if not isinstance(block, Mapping):
            raise ConfigurationError(f"events.{name}: expected a mapping")

        # Partial blocks inherit the preset effects
        merged[name] = {**merged[name], **block}

    return {kind: parse_event_settings(kind, merged[kind.value]) for kind in EventKind}


def parse_light_state(data: Any, where: str = "startup_state") -> LightState:
    """
    Parse a raw light state (on, brightness, hue, saturation, alert).

    Raises:
        ConfigurationError: If a value is out of range
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{where}: expected a mapping")

    return LightState(
        on=bool(data.get("on", True)),
        brightness=_parse_int(data, "brightness", 254, 0, 254, where),
        hue=_parse_int(data, "hue", 0, 0, 65535, where),
        saturation=_parse_int(data, "saturation", 0, 0, 254, where),
        alert=_parse_alert(data.get("alert", "none"), where),
    )
