"""Public API for escape-time fractal rendering."""

from .colors import (
    BlackWhite,
    Colormap,
    ColorScheme,
    Cool,
    Custom,
    Fire,
    GradientStops,
    Grayscale,
    UnsupportedScheme,
    Vibrant,
    build_palette,
    color_for,
    parse_hex_color,
    scheme_from_name,
)
from .controller import JobStatus, RenderJob, RenderJobController, RenderTiming, format_duration
from .errors import FractalRenderError, InvalidDimension, InvalidViewport
from .evaluator import FractalVariant, Julia, Mandelbrot, escape_counts, evaluate
from .scheduler import CHUNK_SIZE, CompleteEvent, ProgressEvent, ProgressiveRender, RenderState, run_to_completion
from .settings import RESOLUTION_PRESETS, RenderRequest, RenderSettings, resolve_resolution
from .viewport import ComplexPoint, ViewportState, map_to_complex
from .worker import RenderWorker, encode_png

__all__ = [
    "BlackWhite",
    "CHUNK_SIZE",
    "ColorScheme",
    "Colormap",
    "ComplexPoint",
    "CompleteEvent",
    "Cool",
    "Custom",
    "Fire",
    "FractalRenderError",
    "FractalVariant",
    "GradientStops",
    "Grayscale",
    "InvalidDimension",
    "InvalidViewport",
    "JobStatus",
    "Julia",
    "Mandelbrot",
    "ProgressEvent",
    "ProgressiveRender",
    "RESOLUTION_PRESETS",
    "RenderJob",
    "RenderJobController",
    "RenderRequest",
    "RenderSettings",
    "RenderState",
    "RenderTiming",
    "RenderWorker",
    "UnsupportedScheme",
    "Vibrant",
    "ViewportState",
    "build_palette",
    "color_for",
    "encode_png",
    "escape_counts",
    "evaluate",
    "format_duration",
    "map_to_complex",
    "parse_hex_color",
    "resolve_resolution",
    "run_to_completion",
    "scheme_from_name",
]
