"""
STREAMHUE - Custom Exception Classes

Defines the exception hierarchy for the application.
All custom exceptions inherit from StreamHueError.
"""


class StreamHueError(Exception):
    """Base exception for all STREAMHUE errors."""

    pass


class ConfigurationError(StreamHueError, ValueError):
    """Raised when there are configuration issues."""

    pass


class InvalidColorFormat(ConfigurationError):
    """Raised when a color is not a valid hex string or RGB triplet."""

    pass


class NoMatchingTier(StreamHueError):
    """Raised when an event magnitude is below every configured tier."""

    def __init__(self, magnitude: float):
        super().__init__(f"No tier matches magnitude {magnitude}")
        self.magnitude = magnitude


class SnapshotUnavailable(StreamHueError):
    """Raised when the light state could not be captured before an effect."""

    pass


class BridgeError(StreamHueError):
    """Raised when a bridge request fails."""

    pass


class BridgeWriteFailure(BridgeError):
    """Raised when the bridge rejects or fails a light state write."""

    pass


class UnknownEventKind(StreamHueError):
    """Raised when an event kind has no handler."""

    def __init__(self, kind):
        super().__init__(f"Unknown event kind: {kind}")
        self.kind = kind
