"""
STREAMHUE - Light State Snapshot

Captures the state of a light set so it can be restored after an effect.
"""

import logging
from typing import Dict, Iterable, List, Mapping

from streamhue.core.errors import BridgeError, BridgeWriteFailure, SnapshotUnavailable
from streamhue.core.types import LightState
from streamhue.infrastructure.bridge import LightBridge

logger = logging.getLogger(__name__)


def capture(bridge: LightBridge, lights: Iterable[str]) -> Dict[str, LightState]:
    """
    Read the current state of every light.

    Args:
        bridge: Bridge client to read from
        lights: Light identifiers

    Returns:
        Mapping of light id to its state at capture time

    Raises:
        SnapshotUnavailable: If any light could not be read
    """
    snapshot: Dict[str, LightState] = {}
    for light_id in sorted(lights):
        try:
            snapshot[light_id] = bridge.get_light_state(light_id)
        except BridgeError as e:
            raise SnapshotUnavailable(f"Could not read light {light_id}: {e}") from e
    return snapshot


def restore(
    bridge: LightBridge,
    lights: Iterable[str],
    snapshot: Mapping[str, LightState],
) -> List[str]:
    """
    Write each light's recorded state back to the bridge.

    Write failures are logged and do not stop the remaining lights.

    Args:
        bridge: Bridge client to write to
        lights: Lights to restore (must be keys of the snapshot)
        snapshot: Recorded states

    Returns:
        Ids of lights whose restore failed
    """
    failed = []
    for light_id in sorted(lights):
        state = snapshot.get(light_id)
        if state is None:
            logger.warning(f"No recorded state for light {light_id}, skipping restore")
            failed.append(light_id)
            continue

        try:
            bridge.set_light_state(light_id, state)
        except BridgeWriteFailure as e:
            logger.warning(f"Restore of light {light_id} failed: {e}")
            failed.append(light_id)
    return failed
