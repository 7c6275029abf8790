"""Mapping between canvas pixels and the complex plane."""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

from .errors import InvalidViewport

MIN_ZOOM = 0.5
DEFAULT_ZOOM = 0.5


@dataclass(frozen=True)
class ComplexPoint:
    real: float
    imag: float

    def __complex__(self) -> complex:
        return complex(self.real, self.imag)


def _check_viewport(width: int, height: int, zoom: float) -> None:
    if width <= 0 or height <= 0:
        raise InvalidViewport(f"canvas size must be positive, got {width}x{height}")
    if not zoom > 0:
        raise InvalidViewport(f"zoom must be positive, got {zoom}")


def map_to_complex(
    x: float,
    y: float,
    width: int,
    height: int,
    zoom: float,
    offset_real: float,
    offset_imag: float,
) -> ComplexPoint:
    """Map the pixel ``(x, y)`` of a ``width`` x ``height`` canvas to the complex plane."""

    _check_viewport(width, height, zoom)
    real = (x - width / 2) / (0.5 * zoom * width) + offset_real
    imag = (y - height / 2) / (0.5 * zoom * height) + offset_imag
    return ComplexPoint(real, imag)


def complex_grid(
    xs: np.ndarray,
    ys: np.ndarray,
    width: int,
    height: int,
    zoom: float,
    offset_real: float,
    offset_imag: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised :func:`map_to_complex` over matching arrays of pixel coordinates.

    The arithmetic is performed in the same order as the scalar form so every
    element is bit-identical to the corresponding ``map_to_complex`` call.
    """

    _check_viewport(width, height, zoom)
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    real = (xs - width / 2) / (0.5 * zoom * width) + offset_real
    imag = (ys - height / 2) / (0.5 * zoom * height) + offset_imag
    return real, imag


@dataclass(frozen=True)
class ViewportState:
    """Zoom, pan offset and canvas size of a view onto the complex plane."""

    zoom: float = DEFAULT_ZOOM
    offset_real: float = 0.0
    offset_imag: float = 0.0
    pixel_width: int = 800
    pixel_height: int = 600

    def __post_init__(self) -> None:
        _check_viewport(self.pixel_width, self.pixel_height, self.zoom)

    @property
    def pixel_count(self) -> int:
        return self.pixel_width * self.pixel_height

    def map(self, x: float, y: float) -> ComplexPoint:
        return map_to_complex(
            x,
            y,
            self.pixel_width,
            self.pixel_height,
            self.zoom,
            self.offset_real,
            self.offset_imag,
        )

    def grid(self, xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return complex_grid(
            xs,
            ys,
            self.pixel_width,
            self.pixel_height,
            self.zoom,
            self.offset_real,
            self.offset_imag,
        )

    def step_zoom(self, delta: float) -> ViewportState:
        """Add ``delta`` to the zoom, never going below :data:`MIN_ZOOM`."""

        return replace(self, zoom=max(MIN_ZOOM, self.zoom + delta))

    def scale_zoom(self, factor: float) -> ViewportState:
        return replace(self, zoom=max(MIN_ZOOM, self.zoom * factor))

    def pan_to(self, x: float, y: float) -> ViewportState:
        """Recenter the view on the point under pixel ``(x, y)``."""

        point = self.map(x, y)
        return replace(self, offset_real=point.real, offset_imag=point.imag)

    def resized(self, width: int, height: int) -> ViewportState:
        return replace(self, pixel_width=width, pixel_height=height)

    def reset(self) -> ViewportState:
        return ViewportState(pixel_width=self.pixel_width, pixel_height=self.pixel_height)


def slow_zoom_factor(speed: float) -> float:
    """Per-tick zoom multiplier of the continuous zoom; larger ``speed`` zooms faster per tick."""

    return 1 + 0.01 * (1 + speed / 100)
