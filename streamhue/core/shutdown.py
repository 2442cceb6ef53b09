"""
STREAMHUE - Shutdown Coordinator

Stops the webhook server, router and scheduler in reverse start order.
"""

import logging
import signal
import threading
from typing import List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class Stoppable(Protocol):
    """Protocol for components that can be stopped."""

    def stop(self) -> None:
        ...


class ShutdownCoordinator:
    """
    Stops registered components last-in, first-out.

    A component that fails to stop is logged and skipped. Components are
    stopped at most once, however often shutdown() is called.
    """

    def __init__(self):
        self._components: List[Tuple[str, Stoppable]] = []
        self._shutdown_event = threading.Event()
        self._lock = threading.Lock()

    def register(self, component: Stoppable, name: Optional[str] = None) -> None:
        """
        Register a component for shutdown.

        Args:
            component: Component with a stop() method
            name: Name used in log messages (class name by default)
        """
        name = name or type(component).__name__
        with self._lock:
            self._components.append((name, component))
        logger.debug(f"Registered {name} for shutdown")

    def install_signal_handlers(self) -> None:
        """Request shutdown on SIGTERM. Main thread only."""
        signal.signal(signal.SIGTERM, lambda signum, frame: self.request_shutdown())

    def is_shutdown_requested(self) -> bool:
        return self._shutdown_event.is_set()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until shutdown is requested.

        Returns:
            True if shutdown was requested, False on timeout
        """
        return self._shutdown_event.wait(timeout)

    def request_shutdown(self) -> None:
        if not self._shutdown_event.is_set():
            logger.info("Shutdown requested")
        self._shutdown_event.set()

    def shutdown(self) -> None:
        """Request shutdown and stop every registered component."""
        self.request_shutdown()

        with self._lock:
            components = list(reversed(self._components))
            self._components.clear()

        for name, component in components:
            try:
                logger.debug(f"Stopping {name}...")
                component.stop()
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}", exc_info=True)

        if components:
            logger.info("Shutdown complete")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False
