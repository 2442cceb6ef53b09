"""
STREAMHUE - Application Orchestrator

Wires configuration, bridge, scheduler and router together and exposes the
single ingestion entry point for stream events.
"""

import logging
import threading
from concurrent.futures import Future
from copy import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from streamhue.config.settings import AppConfig
from streamhue.core.errors import BridgeError, BridgeWriteFailure
from streamhue.core.events import Notification, NotificationBus, NotificationType
from streamhue.core.router import EventRouter
from streamhue.core.scheduler import EffectScheduler
from streamhue.core.types import EffectWindow, EventKind, NormalizedEvent
from streamhue.infrastructure.bridge import LightBridge
from streamhue.infrastructure.timers import TimerFactory

logger = logging.getLogger(__name__)


@dataclass
class EngineStats:
    """Runtime counters, updated from notifications."""

    events_received: int = 0
    events_ignored: int = 0
    effects_applied: int = 0
    effects_superseded: int = 0
    effects_restored: int = 0
    effects_failed: int = 0


class Orchestrator:
    """
    Owns the engine components for one bridge.

    Thread-safe: on_event() may be called concurrently from the webhook.
    """

    def __init__(
        self,
        config: AppConfig,
        bridge: LightBridge,
        timer_factory: Optional[TimerFactory] = None,
        notifications: Optional[NotificationBus] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Validated application configuration
            bridge: Bridge client
            timer_factory: Revert timer source (threading timers when None)
            notifications: Notification bus (a new one when None)

        Raises:
            ConfigurationError: If the effect configuration is invalid
        """
        self._config = config
        self._bridge = bridge
        self._notifications = notifications or NotificationBus()
        self._lock = threading.RLock()
        self._stats = EngineStats()

        self._lights = frozenset(config.light_ids()) or None
        self._scheduler = EffectScheduler(
            bridge,
            policy=config.policy(),
            timer_factory=timer_factory,
            notifications=self._notifications,
        )
        self._router = EventRouter(
            config.event_table(),
            self._scheduler,
            lights=self._lights,
            notifications=self._notifications,
            max_workers=config.max_workers,
        )

        self._notifications.subscribe(NotificationType.EVENT_RECEIVED, self._count("events_received"))
        self._notifications.subscribe(NotificationType.EVENT_IGNORED, self._count("events_ignored"))
        self._notifications.subscribe(NotificationType.EFFECT_APPLIED, self._count("effects_applied"))
        self._notifications.subscribe(NotificationType.EFFECT_SUPERSEDED, self._count("effects_superseded"))
        self._notifications.subscribe(NotificationType.EFFECT_RESTORED, self._count("effects_restored"))
        self._notifications.subscribe(NotificationType.EFFECT_FAILED, self._count("effects_failed"))

    @property
    def notifications(self) -> NotificationBus:
        return self._notifications

    @property
    def scheduler(self) -> EffectScheduler:
        return self._scheduler

    def _count(self, counter: str):
        def handler(notification: Notification) -> None:
            with self._lock:
                setattr(self._stats, counter, getattr(self._stats, counter) + 1)

        return handler

    def get_stats(self) -> EngineStats:
        """
        Get current runtime counters (thread-safe copy).

        Returns:
            Copy of current statistics
        """
        with self._lock:
            return copy(self._stats)

    def start(self) -> None:
        """Put every target light into the configured startup state."""
        state = self._config.startup_light_state()
        if state is None:
            return

        try:
            lights = self._lights or self._bridge.list_lights()
        except BridgeError as e:
            logger.warning(f"Could not list lights for startup state: {e}")
            return

        for light_id in sorted(lights):
            try:
                self._bridge.set_light_state(light_id, state)
            except BridgeWriteFailure as e:
                logger.warning(f"Startup state for light {light_id} failed: {e}")
        logger.info(f"Applied startup state to {len(lights)} light(s)")

    def _received(self, event: NormalizedEvent) -> None:
        kind = event.kind.value if isinstance(event.kind, EventKind) else str(event.kind)
        logger.debug(f"Received {kind} event (magnitude={event.magnitude})")
        self._notifications.publish(
            Notification.create(NotificationType.EVENT_RECEIVED, kind=kind, magnitude=event.magnitude)
        )

    def on_event(self, event: NormalizedEvent) -> Future:
        """Ingest a stream event; handling runs on the router's worker pool."""
        self._received(event)
        return self._router.on_event(event)

    def route(self, event: NormalizedEvent) -> Optional[EffectWindow]:
        """Handle a stream event on the calling thread."""
        self._received(event)
        return self._router.route(event)

    def describe_windows(self) -> List[Dict[str, Any]]:
        """Active effect windows as plain data."""
        return [
            {
                "id": window.id,
                "lights": sorted(window.owned_lights),
                "color": window.effect.color,
                "expires_at": window.expires_at,
            }
            for window in self._scheduler.active_windows()
        ]

    def stop(self) -> None:
        """Finish in-flight events, then restore every light still under an effect."""
        self._router.stop()
        self._scheduler.stop(restore=True)
