"""
STREAMHUE - Event Router

Dispatches normalized stream events to their effect handlers.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from streamhue.core.errors import NoMatchingTier, SnapshotUnavailable, UnknownEventKind
from streamhue.core.events import Notification, NotificationBus, NotificationType
from streamhue.core.scheduler import EffectScheduler
from streamhue.core.tiers import resolve
from streamhue.core.types import EffectSpec, EffectWindow, EventKind, NormalizedEvent, Tier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSettings:
    """Per-kind routing configuration."""

    enabled: bool = True
    tiers: Tuple[Tier, ...] = ()
    effect: Optional[EffectSpec] = None


class EventRouter:
    """
    Maps stream events to effects and hands them to the scheduler.

    route() handles one event synchronously. on_event() runs route() on a
    worker pool so the inbound stream is never blocked by bridge calls.
    """

    def __init__(
        self,
        settings: Mapping[EventKind, EventSettings],
        scheduler: EffectScheduler,
        lights: Optional[FrozenSet[str]] = None,
        notifications: Optional[NotificationBus] = None,
        max_workers: int = 8,
    ):
        """
        Initialize router.

        Args:
            settings: Routing configuration per event kind
            scheduler: Scheduler that applies the effects
            lights: Lights to target (all bridge lights when None)
            notifications: Optional bus for lifecycle notifications
            max_workers: Size of the worker pool used by on_event()
        """
        self._settings = dict(settings)
        self._scheduler = scheduler
        self._lights = lights
        self._notifications = notifications
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="streamhue-event"
        )

        self._handlers: Dict[EventKind, Callable[[NormalizedEvent, EventSettings], Optional[EffectWindow]]] = {
            EventKind.DONATION: self._handle_tiered,
            EventKind.BITS: self._handle_tiered,
            EventKind.FOLLOW: self._handle_fixed,
            EventKind.SUBSCRIPTION: self._handle_fixed,
        }

    def route(self, event: NormalizedEvent) -> Optional[EffectWindow]:
        """
        Route one event to its handler.

        Args:
            event: Normalized stream event

        Returns:
            The EffectWindow opened for the event, or None if no effect ran
        """
        try:
            kind = EventKind.parse(event.kind)
        except UnknownEventKind as e:
            logger.debug(f"Ignoring event: {e}")
            self._ignored(event, "unknown_kind")
            return None

        settings = self._settings.get(kind)
        if settings is None or not settings.enabled:
            logger.info(f"Ignoring {kind.value} event: disabled")
            self._ignored(event, "disabled")
            return None

        try:
            return self._handlers[kind](event, settings)
        except SnapshotUnavailable as e:
            logger.warning(f"Skipping {kind.value} effect, light state unavailable: {e}")
            return None

    def _handle_tiered(self, event: NormalizedEvent, settings: EventSettings) -> Optional[EffectWindow]:
        kind = EventKind.parse(event.kind)
        if event.magnitude is None:
            logger.warning(f"Ignoring {kind.value} event without amount")
            self._ignored(event, "missing_magnitude")
            return None

        try:
            effect = resolve(settings.tiers, event.magnitude)
        except NoMatchingTier:
            logger.debug(f"No {kind.value} tier for {event.magnitude}, no effect")
            self._ignored(event, "no_matching_tier")
            return None

        logger.info(f"{kind.value.capitalize()} of {event.magnitude:g} -> effect {effect.color}")
        return self._scheduler.apply(effect, self._lights)

    def _handle_fixed(self, event: NormalizedEvent, settings: EventSettings) -> Optional[EffectWindow]:
        kind = EventKind.parse(event.kind)
        if settings.effect is None:
            logger.warning(f"No effect configured for {kind.value} events")
            self._ignored(event, "no_effect")
            return None

        logger.info(f"{kind.value.capitalize()} -> effect {settings.effect.color}")
        return self._scheduler.apply(settings.effect, self._lights)

    def on_event(self, event: NormalizedEvent) -> Future:
        """
        Ingest an event without blocking the caller.

        Returns:
            Future resolving to the route() result (None on failure, or
            when the router has been stopped)
        """
        try:
            return self._executor.submit(self._route_isolated, event)
        except RuntimeError:
            # Pool already shut down
            logger.warning(f"Router stopped, dropping {event.kind} event")
            self._ignored(event, "stopped")
            future: Future = Future()
            future.set_result(None)
            return future

    def _route_isolated(self, event: NormalizedEvent) -> Optional[EffectWindow]:
        try:
            return self.route(event)
        except Exception as e:
            logger.error(f"Error handling {event.kind} event: {e}", exc_info=True)
            return None

    def stop(self) -> None:
        """Wait for in-flight events and shut the worker pool down."""
        self._executor.shutdown(wait=True)

    def _ignored(self, event: NormalizedEvent, reason: str) -> None:
        if self._notifications is not None:
            kind = event.kind.value if isinstance(event.kind, EventKind) else str(event.kind)
            self._notifications.publish(
                Notification.create(NotificationType.EVENT_IGNORED, kind=kind, reason=reason)
            )
