"""Color schemes and the mapping from iteration counts to RGB."""

from __future__ import annotations

import colorsys
import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Union

import numpy as np
from matplotlib import colormaps

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]

BLACK: RGB = (0, 0, 0)
WHITE: RGB = (255, 255, 255)


def parse_hex_color(value: str) -> RGB:
    """Parse ``#rrggbb`` (the leading ``#`` is optional) into an RGB triple."""

    digits = value.strip().lstrip("#")
    if len(digits) != 6:
        raise ValueError(f"color must be in the form #RRGGBB, got {value!r}")
    try:
        bits = int(digits, 16)
    except ValueError as exc:
        raise ValueError(f"color must contain only hexadecimal digits, got {value!r}") from exc
    return (bits >> 16) & 0xFF, (bits >> 8) & 0xFF, bits & 0xFF


def to_hex(color: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*color)


def random_hex_color(rng: np.random.Generator) -> str:
    return "#{:06x}".format(int(rng.integers(0, 0xFFFFFF)))


def interpolate(start: RGB, end: RGB, u: float) -> RGB:
    return tuple(math.floor(a + (b - a) * u) for a, b in zip(start, end))  # type: ignore[return-value]


@dataclass(frozen=True)
class GradientStops:
    start: RGB = (0x00, 0x00, 0x00)
    middle: RGB = (0xFF, 0x00, 0x00)
    end: RGB = (0xFF, 0xFF, 0xFF)

    @classmethod
    def from_hex(cls, start: str, middle: str, end: str) -> GradientStops:
        return cls(parse_hex_color(start), parse_hex_color(middle), parse_hex_color(end))

    def randomized(self, rng: np.random.Generator, which: str = "all") -> GradientStops:
        """Replace one stop (``start``, ``middle`` or ``end``) or ``all`` of them with random colors."""

        names = ("start", "middle", "end") if which == "all" else (which,)
        changes = {}
        for name in names:
            if name not in ("start", "middle", "end"):
                raise ValueError(f"unknown gradient stop {name!r}")
            changes[name] = parse_hex_color(random_hex_color(rng))
        return replace(self, **changes)

    def as_hex(self) -> dict[str, str]:
        return {"start": to_hex(self.start), "middle": to_hex(self.middle), "end": to_hex(self.end)}


@dataclass(frozen=True)
class Grayscale:
    name = "grayscale"


@dataclass(frozen=True)
class BlackWhite:
    name = "blackwhite"


@dataclass(frozen=True)
class Fire:
    name = "fire"


@dataclass(frozen=True)
class Cool:
    name = "cool"


@dataclass(frozen=True)
class Vibrant:
    name = "vibrant"


@dataclass(frozen=True)
class Custom:
    stops: GradientStops = GradientStops()
    name = "custom"


@dataclass(frozen=True)
class Colormap:
    """Sample a named matplotlib colormap."""

    cmap: str
    name = "colormap"


@dataclass(frozen=True)
class UnsupportedScheme:
    """A scheme tag that could not be resolved; every pixel it colors is black."""

    tag: str
    name = "unsupported"


ColorScheme = Union[Grayscale, BlackWhite, Fire, Cool, Vibrant, Custom, Colormap, UnsupportedScheme]

SCHEME_NAMES = ("grayscale", "blackwhite", "fire", "cool", "vibrant", "custom")

_RENDERABLE_SCHEMES = (Grayscale, BlackWhite, Fire, Cool, Vibrant, Custom, Colormap)

_SIMPLE_SCHEMES = {
    "grayscale": Grayscale(),
    "blackwhite": BlackWhite(),
    "fire": Fire(),
    "cool": Cool(),
    "vibrant": Vibrant(),
}


def scheme_from_name(name: str, stops: Optional[GradientStops] = None) -> ColorScheme:
    """Resolve a scheme tag such as ``"fire"``, ``"custom"`` or ``"colormap:viridis"``."""

    tag = (name or "").strip().lower()
    if tag in _SIMPLE_SCHEMES:
        return _SIMPLE_SCHEMES[tag]
    if tag == "custom":
        return Custom(stops if stops is not None else GradientStops())
    if tag.startswith("colormap:"):
        cmap = name.strip().split(":", 1)[1]
        if cmap in colormaps:
            return Colormap(cmap)
    return UnsupportedScheme(name)


def _hsl_to_rgb(hue: float, saturation: float, lightness: float) -> RGB:
    r, g, b = colorsys.hls_to_rgb(hue / 360.0, lightness, saturation)
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


def color_for(n: int, max_iterations: int, scheme: ColorScheme) -> RGB:
    """Color for a point that escaped after ``n`` of ``max_iterations`` iterations."""

    if n == max_iterations:
        return BLACK

    t = n / max_iterations
    if isinstance(scheme, Grayscale):
        gray = math.floor(255 * t)
        return gray, gray, gray
    if isinstance(scheme, BlackWhite):
        return WHITE
    if isinstance(scheme, Fire):
        return math.floor(255 * t), math.floor(100 * t), 0
    if isinstance(scheme, Cool):
        return 0, math.floor(255 * t), math.floor(255 * (1 - t))
    if isinstance(scheme, Vibrant):
        return _hsl_to_rgb(math.floor(360 * t), 1.0, 0.5)
    if isinstance(scheme, Custom):
        stops = scheme.stops
        if t < 0.5:
            return interpolate(stops.start, stops.middle, t * 2)
        return interpolate(stops.middle, stops.end, (t - 0.5) * 2)
    if isinstance(scheme, Colormap):
        r, g, b, _ = colormaps[scheme.cmap](t)
        return int(r * 255), int(g * 255), int(b * 255)

    return BLACK


def build_palette(max_iterations: int, scheme: ColorScheme) -> np.ndarray:
    """Lookup table of shape ``(max_iterations + 1, 3)`` indexed by iteration count."""

    if not isinstance(scheme, _RENDERABLE_SCHEMES):
        logger.warning("Unsupported color scheme %r, coloring with black", scheme)
    palette = np.empty((max_iterations + 1, 3), dtype=np.uint8)
    for n in range(max_iterations + 1):
        palette[n] = color_for(n, max_iterations, scheme)
    return palette


def colorize(counts: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Turn an array of iteration counts into opaque RGBA pixels."""

    rgba = np.empty(counts.shape + (4,), dtype=np.uint8)
    rgba[..., :3] = palette[counts]
    rgba[..., 3] = 255
    return rgba
