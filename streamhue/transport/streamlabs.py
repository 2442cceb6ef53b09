"""
STREAMHUE - Streamlabs Payload Normalization

Converts Streamlabs webhook payloads into NormalizedEvents.

Payload shape:
    {"type": "donation", "message": [{"name": "...", "amount": "75", "formatted_amount": "$75.00"}]}
"""

import logging
from typing import Any, Dict, List, Optional

from streamhue.core.errors import UnknownEventKind
from streamhue.core.types import EventKind, NormalizedEvent

logger = logging.getLogger(__name__)


def _parse_amount(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        logger.warning(f"Unparseable amount {value!r}, treating as 0")
        return 0.0


def normalize(payload: Any) -> List[NormalizedEvent]:
    """
    Normalize a Streamlabs webhook payload.

    Each entry of `message` becomes one event. Unknown types are kept as
    raw strings; the router decides what to do with them.

    Args:
        payload: Decoded JSON body

    Returns:
        List of NormalizedEvent

    Raises:
        ValueError: If the payload has no type or a malformed message list
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        raise ValueError("Payload must be an object with a string 'type'")

    raw_type = payload["type"]
    try:
        kind = EventKind.parse(raw_type)
    except UnknownEventKind:
        kind = raw_type

    messages = payload.get("message", [])
    if isinstance(messages, dict):
        messages = [messages]
    if not isinstance(messages, list) or not all(isinstance(m, dict) for m in messages):
        raise ValueError("'message' must be a list of objects")

    events = []
    for message in messages or [{}]:
        raw: Dict[str, Any] = dict(message)
        events.append(NormalizedEvent(kind=kind, magnitude=_parse_amount(raw.get("amount")), raw=raw))
    return events
