"""
STREAMHUE - Configuration Management

Handles application configuration from environment variables and files.
"""

import copy
import json
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import yaml
from dotenv import load_dotenv

from streamhue.config.effects import build_event_table, parse_light_state
from streamhue.config.presets import DEFAULT_STARTUP_STATE
from streamhue.core.errors import ConfigurationError
from streamhue.core.router import EventSettings
from streamhue.core.scheduler import OverlapPolicy
from streamhue.core.types import EventKind, LightState


@dataclass
class AppConfig:
    """Main application configuration."""

    # Hue bridge settings
    bridge_ip: str = ""  # Empty = discover
    hue_username: str = ""
    bridge_timeout: float = 5.0  # Seconds per bridge request

    # Webhook server
    host: str = "0.0.0.0"
    port: int = 8080

    # Debug replay
    debug_mode: bool = False
    debug_pause: float = 7.0  # Seconds between replayed events

    # Engine settings
    overlap_policy: str = "chained"
    max_workers: int = 8
    lights: List[str] = field(default_factory=list)  # Empty = all lights
    events: Dict[str, Any] = field(default_factory=dict)
    startup_state: Optional[Dict[str, Any]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_STARTUP_STATE)
    )

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - HUE_BRIDGE_IP: Bridge address (discovered when unset)
        - HUE_USERNAME: Whitelisted bridge API username
        - HOST / PORT: Webhook listen address
        - DEBUG_MODE: "true" to replay test events on startup
        - STREAMHUE_OVERLAP_POLICY: chained or independent
        - STREAMHUE_BRIDGE_TIMEOUT: Bridge request timeout (seconds)
        - STREAMHUE_LOG_LEVEL: Logging level
        """
        defaults = cls()
        return cls(
            bridge_ip=os.environ.get("HUE_BRIDGE_IP", defaults.bridge_ip),
            hue_username=os.environ.get("HUE_USERNAME", defaults.hue_username),
            host=os.environ.get("HOST", defaults.host),
            port=int(os.environ.get("PORT", defaults.port)),
            debug_mode=os.environ.get("DEBUG_MODE", "false").lower() == "true",
            overlap_policy=os.environ.get("STREAMHUE_OVERLAP_POLICY", defaults.overlap_policy),
            bridge_timeout=float(os.environ.get("STREAMHUE_BRIDGE_TIMEOUT", defaults.bridge_timeout)),
            log_level=os.environ.get("STREAMHUE_LOG_LEVEL", defaults.log_level),
        )

    @classmethod
    def from_file(cls, path: str) -> "AppConfig":
        """
        Load configuration from YAML or JSON file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .json)

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If config file format or keys are invalid
        """
        return cls(**cls._read_file(path))

    @staticmethod
    def _read_file(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            try:
                if path.endswith((".yaml", ".yml")):
                    data = yaml.safe_load(f)
                elif path.endswith(".json"):
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported config file format: {path}")
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Could not parse {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

        known = {f.name for f in fields(AppConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")
        return data

    @classmethod
    def load(cls, config_file: Optional[str] = None, env_file: Optional[str] = ".env") -> "AppConfig":
        """
        Load configuration with priority: file > env > .env file > defaults.

        Only keys present in the file override the environment. Variables
        from the .env file never replace ones already set in the process
        environment.

        Args:
            config_file: Optional path to configuration file
            env_file: Optional path to a dotenv file, skipped if missing

        Returns:
            AppConfig instance
        """
        if env_file and os.path.isfile(env_file):
            load_dotenv(env_file, override=False)

        config = cls.from_env()

        if config_file:
            for key, value in cls._read_file(config_file).items():
                setattr(config, key, value)

        return config

    def _check_type(self, name: str, expected: Union[Type, Tuple[Type, ...]]) -> None:
        value = getattr(self, name)
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigurationError(f"{name} has the wrong type: {value!r}")

    def validate(self, require_bridge: bool = True) -> None:
        """
        Validate configuration values.

        Args:
            require_bridge: Whether bridge credentials are needed (False for dry runs)

        Raises:
            ConfigurationError: If configuration is invalid
        """
        for name in ("bridge_ip", "hue_username", "host", "overlap_policy", "log_level"):
            self._check_type(name, str)
        for name in ("port", "max_workers"):
            self._check_type(name, int)
        for name in ("bridge_timeout", "debug_pause"):
            self._check_type(name, (int, float))
        if not isinstance(self.debug_mode, bool):
            raise ConfigurationError(f"debug_mode must be true or false, got {self.debug_mode!r}")

        if require_bridge and not self.hue_username:
            raise ConfigurationError("hue_username is required")

        if not 0 < self.port < 65536:
            raise ConfigurationError("port must be between 1 and 65535")

        if self.bridge_timeout <= 0:
            raise ConfigurationError("bridge_timeout must be positive")

        if self.debug_pause < 0:
            raise ConfigurationError("debug_pause must not be negative")

        if self.max_workers <= 0:
            raise ConfigurationError("max_workers must be positive")

        self.light_ids()
        self.policy()
        self.event_table()
        self.startup_light_state()

    def light_ids(self) -> List[str]:
        """
        Configured light ids as strings (YAML reads `lights: [1, 2]` as ints).

        Raises:
            ConfigurationError: If lights is not a list of ids
        """
        if not isinstance(self.lights, list):
            raise ConfigurationError(f"lights must be a list, got {self.lights!r}")

        ids = []
        for light_id in self.lights:
            if isinstance(light_id, bool) or not isinstance(light_id, (str, int)):
                raise ConfigurationError(f"Invalid light id: {light_id!r}")
            ids.append(str(light_id))
        return ids

    def policy(self) -> OverlapPolicy:
        try:
            return OverlapPolicy(self.overlap_policy)
        except ValueError:
            raise ConfigurationError(
                f"overlap_policy must be 'chained' or 'independent', got {self.overlap_policy!r}"
            ) from None

    def event_table(self) -> Dict[EventKind, EventSettings]:
        return build_event_table(self.events)

    def startup_light_state(self) -> Optional[LightState]:
        if self.startup_state is None:
            return None
        return parse_light_state(self.startup_state)
