"""Render settings snapshots and parsing of render request messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import numpy as np

from .colors import (
    Colormap,
    ColorScheme,
    Custom,
    Fire,
    GradientStops,
    UnsupportedScheme,
    scheme_from_name,
)
from .errors import InvalidDimension
from .evaluator import DEFAULT_JULIA_CONSTANT, FractalVariant, Julia, Mandelbrot
from .viewport import ComplexPoint, ViewportState

DEFAULT_MAX_ITERATIONS = 100

RESOLUTION_PRESETS: dict[str, tuple[int, int]] = {
    "720": (960, 720),
    "1080": (1440, 1080),
    "2k": (2048, 1536),
    "4k": (4096, 3072),
}


@dataclass(frozen=True)
class RenderSettings:
    """Everything a render needs. Built once per request and never mutated."""

    viewport: ViewportState = field(default_factory=ViewportState)
    variant: FractalVariant = field(default_factory=Mandelbrot)
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    scheme: ColorScheme = field(default_factory=Fire)

    def __post_init__(self) -> None:
        if int(self.max_iterations) < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")

    @property
    def width(self) -> int:
        return self.viewport.pixel_width

    @property
    def height(self) -> int:
        return self.viewport.pixel_height

    @property
    def total_pixels(self) -> int:
        return self.viewport.pixel_count


def parse_dimension(value: Any, label: str) -> int:
    """Validate a user supplied width or height."""

    if value is None or isinstance(value, bool):
        raise InvalidDimension(f"{label} is required")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidDimension(f"{label} must be a number, got {value!r}") from exc
    if number != number or number <= 0 or not number.is_integer():
        raise InvalidDimension(f"{label} must be a positive integer, got {value!r}")
    return int(number)


def resolve_resolution(preset: str, width: Any = None, height: Any = None) -> tuple[int, int]:
    """Map a resolution preset (or ``"custom"`` with explicit sizes) to ``(width, height)``."""

    if preset == "custom":
        return parse_dimension(width, "width"), parse_dimension(height, "height")
    try:
        return RESOLUTION_PRESETS[preset]
    except KeyError:
        raise InvalidDimension(
            f"unknown resolution {preset!r}; choose one of {', '.join([*RESOLUTION_PRESETS, 'custom'])}"
        ) from None


def _pick(message: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in message and message[key] is not None:
            return message[key]
    return default


def _parse_point(value: Any) -> ComplexPoint:
    if isinstance(value, Mapping):
        return ComplexPoint(float(value["real"]), float(value["imag"]))
    if isinstance(value, (ComplexPoint, complex, np.complexfloating)):
        value = complex(value)
        return ComplexPoint(value.real, value.imag)
    real, imag = value
    return ComplexPoint(float(real), float(imag))


@dataclass(frozen=True)
class RenderRequest:
    """A high-resolution render request as sent from the controller to a render context."""

    width: int
    height: int
    zoom: float
    offset_real: float
    offset_imag: float
    max_iterations: int
    color_scheme: str
    variant: str = "mandelbrot"
    custom_colors: Optional[GradientStops] = None
    julia_constant: Optional[ComplexPoint] = None

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> RenderRequest:
        """Parse a request mapping, rejecting bad output dimensions before anything runs."""

        width = parse_dimension(_pick(message, "width"), "width")
        height = parse_dimension(_pick(message, "height"), "height")

        custom = _pick(message, "customColors", "custom_colors")
        if isinstance(custom, Mapping):
            custom = GradientStops.from_hex(custom["start"], custom["middle"], custom["end"])

        julia = _pick(message, "juliaConstant", "julia_constant")
        return cls(
            width=width,
            height=height,
            zoom=float(_pick(message, "zoom", default=0.5)),
            offset_real=float(_pick(message, "offsetReal", "offset_real", "offsetX", default=0.0)),
            offset_imag=float(_pick(message, "offsetImag", "offset_imag", "offsetY", default=0.0)),
            max_iterations=int(_pick(message, "maxIterations", "max_iterations", default=DEFAULT_MAX_ITERATIONS)),
            color_scheme=str(_pick(message, "colorScheme", "color_scheme", default="fire")),
            variant=str(_pick(message, "variant", "setType", default="mandelbrot")).lower(),
            custom_colors=custom,
            julia_constant=_parse_point(julia) if julia is not None else None,
        )

    @classmethod
    def from_settings(cls, settings: RenderSettings, width: int, height: int) -> RenderRequest:
        """Request a render of ``settings`` at a different output size."""

        scheme = settings.scheme
        if isinstance(settings.variant, Julia):
            variant, constant = "julia", settings.variant.constant
        else:
            variant, constant = "mandelbrot", None
        if isinstance(scheme, Custom):
            tag = "custom"
        elif isinstance(scheme, Colormap):
            tag = f"colormap:{scheme.cmap}"
        elif isinstance(scheme, UnsupportedScheme):
            tag = scheme.tag
        else:
            tag = scheme.name
        return cls(
            width=parse_dimension(width, "width"),
            height=parse_dimension(height, "height"),
            zoom=settings.viewport.zoom,
            offset_real=settings.viewport.offset_real,
            offset_imag=settings.viewport.offset_imag,
            max_iterations=settings.max_iterations,
            color_scheme=tag,
            variant=variant,
            custom_colors=scheme.stops if isinstance(scheme, Custom) else None,
            julia_constant=constant,
        )

    def to_settings(self) -> RenderSettings:
        if self.variant == "julia":
            variant: FractalVariant = Julia(self.julia_constant or DEFAULT_JULIA_CONSTANT)
        elif self.variant == "mandelbrot":
            variant = Mandelbrot()
        else:
            raise ValueError(f"unknown fractal variant {self.variant!r}")
        viewport = ViewportState(
            zoom=self.zoom,
            offset_real=self.offset_real,
            offset_imag=self.offset_imag,
            pixel_width=self.width,
            pixel_height=self.height,
        )
        return RenderSettings(
            viewport=viewport,
            variant=variant,
            max_iterations=self.max_iterations,
            scheme=scheme_from_name(self.color_scheme, self.custom_colors),
        )
