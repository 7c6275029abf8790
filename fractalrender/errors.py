"""Exceptions raised before a render is allowed to start."""


class FractalRenderError(Exception):
    """Base class for structural render errors."""


class InvalidViewport(FractalRenderError, ValueError):
    """Zoom or canvas size cannot be mapped onto the complex plane."""


class InvalidDimension(FractalRenderError, ValueError):
    """Requested output width or height is missing, non-numeric or not positive."""
