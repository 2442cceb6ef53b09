"""
STREAMHUE - Effect Scheduler

Applies effects to a light set and restores the lights after the effect's
duration. Overlapping effects are resolved per light:

- CHAINED (default): a new effect on a light that is still under an effect
  takes over that light's restore. It keeps the baseline captured before the
  first effect of the chain and the older window no longer restores it. Only
  the last effect's timer restores, always to the pre-chain state.
- INDEPENDENT: every effect captures its own baseline and restores it after
  its own duration. A short effect can cut off a longer one that started
  earlier, and lights can end up in an intermediate effect's colors.

All window bookkeeping for a light happens under that light's lock. Locks
are always taken in sorted light order, so applies and timers on disjoint
light sets never wait on each other.
"""

import itertools
import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

from streamhue.core import snapshot
from streamhue.core.errors import BridgeError, BridgeWriteFailure, SnapshotUnavailable
from streamhue.core.events import Notification, NotificationBus, NotificationType
from streamhue.core.types import EffectSpec, EffectWindow, LightState
from streamhue.infrastructure.bridge import LightBridge
from streamhue.infrastructure.timers import ThreadingTimerFactory, Timer, TimerFactory

logger = logging.getLogger(__name__)


class OverlapPolicy(Enum):
    """How effects on a light that is already under an effect are handled."""

    CHAINED = "chained"
    INDEPENDENT = "independent"


class EffectScheduler:
    """
    Owns all active effect windows and their revert timers.

    Thread-safe: apply() may be called from any number of threads, and
    revert timers fire on their own threads.
    """

    def __init__(
        self,
        bridge: LightBridge,
        policy: OverlapPolicy = OverlapPolicy.CHAINED,
        timer_factory: Optional[TimerFactory] = None,
        notifications: Optional[NotificationBus] = None,
    ):
        """
        Initialize scheduler.

        Args:
            bridge: Bridge client for reading and writing light states
            policy: Overlap policy for effects on busy lights
            timer_factory: Source of revert timers and the clock (threading by default)
            notifications: Optional bus for lifecycle notifications
        """
        self._bridge = bridge
        self._policy = policy
        self._timer_factory = timer_factory or ThreadingTimerFactory()
        self._notifications = notifications

        # Guards the containers below; never held while talking to the bridge
        self._registry_lock = threading.Lock()
        self._light_locks: Dict[str, threading.RLock] = {}

        self._owners: Dict[str, EffectWindow] = {}
        self._windows: Dict[int, EffectWindow] = {}
        self._timers: Dict[int, Timer] = {}
        self._ids = itertools.count(1)
        self._stopped = False

    @property
    def policy(self) -> OverlapPolicy:
        return self._policy

    @contextmanager
    def _exclusive(self, lights: Iterable[str]) -> Iterator[None]:
        """Hold the locks of every given light, acquired in sorted order."""
        with self._registry_lock:
            locks = [
                self._light_locks.setdefault(light_id, threading.RLock())
                for light_id in sorted(set(lights))
            ]

        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()

    def apply(self, effect: EffectSpec, lights: Optional[Iterable[str]] = None) -> Optional[EffectWindow]:
        """
        Apply an effect and schedule its restore.

        Args:
            effect: Effect to apply
            lights: Target lights (all bridge lights when None)

        Returns:
            The new EffectWindow, or None if there was nothing to do

        Raises:
            InvalidColorFormat: If the effect color cannot be converted
            SnapshotUnavailable: If the baseline could not be captured;
                no light is touched in that case
        """
        effect_state = effect.to_light_state()

        if lights is None:
            try:
                lights = self._bridge.list_lights()
            except BridgeError as e:
                raise SnapshotUnavailable(f"Could not list lights: {e}") from e
        target = frozenset(lights)

        if not target:
            logger.warning("No lights to apply effect to")
            return None

        superseded: List[EffectWindow] = []

        with self._exclusive(target):
            with self._registry_lock:
                if self._stopped:
                    logger.warning("Scheduler is stopped, ignoring effect")
                    return None
                inherited = self._inherited_baseline(target)

            try:
                fresh = snapshot.capture(self._bridge, target - inherited.keys())
            except SnapshotUnavailable as e:
                self._publish(NotificationType.EFFECT_FAILED, lights=sorted(target), reason=str(e))
                raise

            window = EffectWindow(
                id=next(self._ids),
                effect=effect,
                target_lights=target,
                baseline_state={**fresh, **inherited},
                expires_at=self._timer_factory.now() + effect.duration_seconds,
                owned_lights=set(target),
            )

            with self._registry_lock:
                superseded = self._take_ownership(window)
                for old in superseded:
                    self._retire(old)
                self._windows[window.id] = window

            try:
                self._write_all(target, effect_state)
            finally:
                # Registered windows always get a timer, even when a write raises
                timer = self._timer_factory.create(effect.duration_seconds, self._expire, args=(window,))
                with self._registry_lock:
                    self._timers[window.id] = timer
                timer.start()

        for old in superseded:
            logger.debug(f"Effect window {old.id} superseded by {window.id}")
            self._publish(NotificationType.EFFECT_SUPERSEDED, window_id=old.id, by=window.id)

        logger.info(
            f"Applied effect window {window.id} to {len(target)} light(s) "
            f"for {effect.duration} ms"
        )
        self._publish(
            NotificationType.EFFECT_APPLIED,
            window_id=window.id,
            lights=sorted(target),
            inherited=sorted(inherited),
        )
        return window

    def _inherited_baseline(self, target: frozenset) -> Dict[str, LightState]:
        """Baselines of lights already owned by a live window (chained policy only)."""
        if self._policy is not OverlapPolicy.CHAINED:
            return {}

        inherited = {}
        for light_id in target:
            owner = self._owners.get(light_id)
            if owner is not None and not owner.cancelled:
                inherited[light_id] = owner.baseline_state[light_id]
        return inherited

    def _take_ownership(self, window: EffectWindow) -> List[EffectWindow]:
        """
        Make window the owner of its lights.

        Returns:
            Previous owners left without any light to restore
        """
        emptied = []
        for light_id in window.target_lights:
            previous = self._owners.get(light_id)
            self._owners[light_id] = window

            if previous is None or self._policy is not OverlapPolicy.CHAINED:
                continue

            previous.owned_lights.discard(light_id)
            if not previous.owned_lights and previous not in emptied:
                emptied.append(previous)
        return emptied

    def _retire(self, window: EffectWindow) -> None:
        """Cancel a window and its timer. Caller holds the registry lock."""
        window.cancel()
        window.owned_lights.clear()
        self._windows.pop(window.id, None)
        timer = self._timers.pop(window.id, None)
        if timer is not None:
            timer.cancel()

        for light_id in window.target_lights:
            if self._owners.get(light_id) is window:
                del self._owners[light_id]

    def _write_all(self, lights: Iterable[str], state: LightState) -> None:
        for light_id in sorted(lights):
            try:
                self._bridge.set_light_state(light_id, state)
            except BridgeWriteFailure as e:
                logger.warning(f"Effect write to light {light_id} failed: {e}")

    def _expire(self, window: EffectWindow) -> None:
        """Revert timer callback."""
        try:
            restored = self._restore_window(window)
        except Exception as e:
            logger.error(f"Error restoring effect window {window.id}: {e}", exc_info=True)
            return

        if restored is None:
            logger.debug(f"Timer of effect window {window.id} fired after supersession, skipping")
            return

        self._publish(NotificationType.EFFECT_RESTORED, window_id=window.id, lights=restored)

    def _restore_window(self, window: EffectWindow) -> Optional[List[str]]:
        """
        Restore the lights a window still owns.

        Returns:
            Sorted ids of restored lights, or None if the window was
            already cancelled or superseded
        """
        with self._exclusive(window.target_lights):
            with self._registry_lock:
                if window.cancelled:
                    return None
                owned = set(window.owned_lights)
                self._retire(window)

            failed = snapshot.restore(self._bridge, owned, window.baseline_state)

        if failed:
            logger.warning(f"Effect window {window.id}: restore failed for {sorted(failed)}")
        logger.info(f"Restored {len(owned)} light(s) from effect window {window.id}")
        return sorted(owned)

    def active_window(self, light_id: str) -> Optional[EffectWindow]:
        """Get the window currently responsible for restoring a light."""
        with self._registry_lock:
            return self._owners.get(light_id)

    def active_windows(self) -> List[EffectWindow]:
        """Get all live windows, oldest first."""
        with self._registry_lock:
            return sorted(self._windows.values(), key=lambda w: w.id)

    def stop(self, restore: bool = True) -> None:
        """
        Cancel all pending revert timers.

        Args:
            restore: Restore every light still under an effect right away
        """
        with self._registry_lock:
            self._stopped = True
            lights = list(self._light_locks)

        # Applies past the stopped check hold their light locks until their
        # window is registered, so waiting on every lock lets them finish first
        with self._exclusive(lights):
            with self._registry_lock:
                windows = sorted(self._windows.values(), key=lambda w: w.id, reverse=True)

            # Newest first, so under the independent policy the oldest baseline is written last
            for window in windows:
                if restore:
                    restored = self._restore_window(window)
                    if restored:
                        self._publish(NotificationType.EFFECT_RESTORED, window_id=window.id, lights=restored)
                else:
                    with self._exclusive(window.target_lights):
                        with self._registry_lock:
                            self._retire(window)

        logger.info(f"Effect scheduler stopped ({len(windows)} window(s) pending)")

    def _publish(self, notification_type: NotificationType, **data) -> None:
        if self._notifications is not None:
            self._notifications.publish(Notification.create(notification_type, **data))
