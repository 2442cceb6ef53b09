"""
STREAMHUE - Color Codec

Converts hex/RGB colors into the Hue bridge's hue/saturation scale.
Brightness is never derived from the color; effects carry it explicitly.
"""

import re
from typing import Tuple, Union

from streamhue.core.errors import InvalidColorFormat

HUE_MAX = 65535
SATURATION_MAX = 254

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex(color: str) -> Tuple[int, int, int]:
    """
    Parse a hex color string.

    Args:
        color: "#RRGGBB", "RRGGBB" or shorthand "#RGB"

    Returns:
        RGB tuple with values 0-255

    Raises:
        InvalidColorFormat: On wrong length or non-hex characters
    """
    if not isinstance(color, str):
        raise InvalidColorFormat(f"Color must be a string, got {type(color).__name__}")

    match = _HEX_PATTERN.match(color.strip())
    if not match:
        raise InvalidColorFormat(f"Invalid hex color: {color!r}")

    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)

    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def rgb_to_hsv(r: int, g: int, b: int) -> Tuple[float, float, float]:
    """
    Convert RGB color to HSV.

    Args:
        r, g, b: Channel values 0-255

    Returns:
        (hue in degrees 0-360, saturation 0.0-1.0, value 0.0-1.0)
    """
    rf, gf, bf = r / 255.0, g / 255.0, b / 255.0
    c_max = max(rf, gf, bf)
    c_min = min(rf, gf, bf)
    chroma = c_max - c_min

    if chroma == 0:
        hue = 0.0
    elif c_max == rf:
        hue = 60.0 * (((gf - bf) / chroma) % 6)
    elif c_max == gf:
        hue = 60.0 * (((bf - rf) / chroma) + 2)
    else:
        hue = 60.0 * (((rf - gf) / chroma) + 4)

    saturation = 0.0 if c_max == 0 else chroma / c_max
    return (hue, saturation, c_max)


def _coerce_rgb(color: Union[str, Tuple[int, int, int]]) -> Tuple[int, int, int]:
    if isinstance(color, str):
        return parse_hex(color)

    if isinstance(color, (tuple, list)) and len(color) == 3:
        if all(isinstance(c, int) and not isinstance(c, bool) and 0 <= c <= 255 for c in color):
            return (color[0], color[1], color[2])

    raise InvalidColorFormat(f"Invalid RGB color: {color!r}")


def to_device_format(color: Union[str, Tuple[int, int, int]]) -> Tuple[int, int]:
    """
    Convert a color to Hue hue/saturation values.

    Args:
        color: Hex string or (r, g, b) tuple

    Returns:
        (hue 0-65535, saturation 0-254)

    Raises:
        InvalidColorFormat: If the color cannot be parsed
    """
    r, g, b = _coerce_rgb(color)
    hue, saturation, _ = rgb_to_hsv(r, g, b)
    return (round(hue / 360.0 * HUE_MAX), round(saturation * SATURATION_MAX))
