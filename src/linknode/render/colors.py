"""Color manager - deterministic colors for bins and counts."""

from __future__ import annotations

import colorsys
import hashlib
import math

from linknode.config import Settings


class ColorManager:
    """Maps strings and magnitudes to hex colors.

    Created once per session from the settings and passed to every
    component that colors something.
    """

    def __init__(self, settings: Settings) -> None:
        self.default_node = settings.default_node_color
        self.default_link = settings.default_link_color
        self.multi = settings.multi_color
        self._cache: dict[str, str] = {}

    def color_for(self, value: str) -> str:
        """Stable color for a string value (same input, same color)."""
        cached = self._cache.get(value)
        if cached is not None:
            return cached
        digest = hashlib.md5(value.encode("utf-8")).digest()
        hue = int.from_bytes(digest[:2], "big") / 65535.0
        lightness = 0.45 + (digest[2] / 255.0) * 0.2
        r, g, b = colorsys.hls_to_rgb(hue, lightness, 0.75)
        color = _hex(r, g, b)
        self._cache[value] = color
        return color

    def log_color(self, total: float, maximum: float) -> str:
        """Intensity ramp on a log scale: dim blue for 1, bright for the max."""
        if maximum <= 1.0 or total <= 0:
            t = 0.0 if total <= 1.0 else 1.0
        else:
            t = min(1.0, math.log(total) / math.log(maximum))
        r, g, b = colorsys.hls_to_rgb(0.6 - 0.6 * t, 0.35 + 0.3 * t, 0.8)
        return _hex(r, g, b)


def _hex(r: float, g: float, b: float) -> str:
    return "#{:02x}{:02x}{:02x}".format(int(r * 255), int(g * 255), int(b * 255))


def with_alpha(color: str, alpha: float) -> str:
    """Append an alpha channel to a ``#rrggbb`` color."""
    if alpha >= 1.0:
        return color
    return f"{color}{int(max(0.0, alpha) * 255):02x}"
