"""
STREAMHUE - Built-in Effect Presets

Default effect tables used for any event kind the configuration file does
not define. Donation, follow and subscription effects match the classic
blue / green / red alert scheme.
"""

from typing import Any, Dict

# Raw (file-format) definitions, parsed by streamhue.config.effects
BLUE_SELECT: Dict[str, Any] = {"color": "#0000FF", "brightness": 254, "alert": "select", "duration": 5000}
GREEN_SELECT: Dict[str, Any] = {"color": "#00FF00", "brightness": 254, "alert": "select", "duration": 5000}
RED_LSELECT: Dict[str, Any] = {"color": "#FF0000", "brightness": 254, "alert": "lselect", "duration": 5000}

DEFAULT_EVENTS: Dict[str, Dict[str, Any]] = {
    "donation": {
        "enabled": True,
        "tiers": [
            {"threshold": 0, "effect": BLUE_SELECT},
            {"threshold": 50, "effect": GREEN_SELECT},
            {"threshold": 100, "effect": RED_LSELECT},
        ],
    },
    "bits": {
        "enabled": True,
        "tiers": [
            {"threshold": 1, "effect": BLUE_SELECT},
            {"threshold": 100, "effect": GREEN_SELECT},
            {"threshold": 1000, "effect": RED_LSELECT},
        ],
    },
    "follow": {"enabled": True, "effect": BLUE_SELECT},
    "subscription": {"enabled": True, "effect": GREEN_SELECT},
}

# Warm white
DEFAULT_STARTUP_STATE: Dict[str, Any] = {
    "on": True,
    "brightness": 254,
    "hue": 8418,
    "saturation": 140,
    "alert": "none",
}
