"""
STREAMHUE - Application Entry Point

Loads configuration, connects to the bridge, optionally replays a debug
cycle of stream events and serves the webhook until interrupted.
"""

import argparse
import logging
import sys
from typing import List, Optional

from streamhue.config.settings import AppConfig
from streamhue.core.errors import BridgeError, ConfigurationError
from streamhue.core.orchestrator import Orchestrator
from streamhue.core.shutdown import ShutdownCoordinator
from streamhue.core.types import EventKind, NormalizedEvent
from streamhue.infrastructure.bridge import HueBridgeClient, LightBridge, MockBridge, discover_bridge_ip
from streamhue.infrastructure.http import HttpClient, RequestsHttpClient
from streamhue.transport.webhook import WebhookServer, create_app

logger = logging.getLogger("streamhue")

DEBUG_EVENTS: List[NormalizedEvent] = [
    NormalizedEvent(EventKind.DONATION, 150.0, {"name": "Debug Donor", "formatted_amount": "$150.00"}),
    NormalizedEvent(EventKind.DONATION, 75.0, {"name": "Debug Donor", "formatted_amount": "$75.00"}),
    NormalizedEvent(EventKind.DONATION, 25.0, {"name": "Debug Donor", "formatted_amount": "$25.00"}),
    NormalizedEvent(EventKind.FOLLOW, None, {"name": "Debug Follower"}),
    NormalizedEvent(EventKind.SUBSCRIPTION, None, {"name": "Debug Subscriber"}),
]


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_bridge(
    config: AppConfig, dry_run: bool = False, http_client: Optional[HttpClient] = None
) -> LightBridge:
    """
    Create the bridge client.

    Raises:
        BridgeError: If no bridge address is configured and discovery fails
    """
    if dry_run:
        logger.info("Dry run: using in-memory bridge")
        return MockBridge.with_lights(config.light_ids() or ["1", "2", "3"])

    http = http_client or RequestsHttpClient()
    bridge_ip = config.bridge_ip or discover_bridge_ip(http, timeout=config.bridge_timeout)
    return HueBridgeClient(bridge_ip, config.hue_username, http, timeout=config.bridge_timeout)


def run_debug_cycle(
    orchestrator: Orchestrator, coordinator: ShutdownCoordinator, pause: float
) -> None:
    """Replay a fixed series of stream events, pausing between them."""
    logger.info("Running debug cycle...")

    for event in DEBUG_EVENTS:
        label = f"${event.magnitude:g} {event.kind.value}" if event.magnitude else event.kind.value
        logger.info(f"Testing {label} effect")
        orchestrator.route(event)

        if coordinator.wait_for_shutdown(timeout=pause):
            logger.info("Debug cycle interrupted")
            return

    logger.info("Debug cycle complete!")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="streamhue", description="Stream alerts on Hue lights")
    parser.add_argument("-c", "--config", help="YAML or JSON configuration file")
    parser.add_argument("--env-file", default=".env", help="dotenv file read before the environment")
    parser.add_argument("--debug", action="store_true", help="replay test events before serving")
    parser.add_argument("--dry-run", action="store_true", help="use an in-memory bridge")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = AppConfig.load(args.config, env_file=args.env_file)
        config.debug_mode = config.debug_mode or args.debug
        config.validate(require_bridge=not args.dry_run)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        setup_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(config.log_level)

    http = None if args.dry_run else RequestsHttpClient()
    try:
        bridge = build_bridge(config, dry_run=args.dry_run, http_client=http)
    except BridgeError as e:
        logger.error(f"Could not reach Hue bridge: {e}")
        if http is not None:
            http.stop()
        return 1

    coordinator = ShutdownCoordinator()
    coordinator.install_signal_handlers()

    with coordinator:
        if http is not None:
            coordinator.register(http, name="bridge HTTP session")

        orchestrator = Orchestrator(config, bridge)
        coordinator.register(orchestrator)

        try:
            orchestrator.start()

            if config.debug_mode:
                logger.info("Debug mode enabled - running effect cycle")
                run_debug_cycle(orchestrator, coordinator, config.debug_pause)

            if not coordinator.is_shutdown_requested():
                server = WebhookServer(create_app(orchestrator), config.host, config.port)
                coordinator.register(server)
                server.start()
                coordinator.wait_for_shutdown()
        except KeyboardInterrupt:
            logger.info("Interrupted")

    return 0


if __name__ == "__main__":
    sys.exit(main())
