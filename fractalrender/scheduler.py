"""Chunked, cancellable rendering of a full image."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Union

import numpy as np

from .colors import build_palette, colorize
from .evaluator import escape_counts
from .settings import RenderSettings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1350


class RenderState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProgressEvent:
    percent: float
    rendered_pixels: int
    chunk_pixels: int


@dataclass(frozen=True)
class CompleteEvent:
    pixels: np.ndarray


RenderEvent = Union[ProgressEvent, CompleteEvent]


class ProgressiveRender:
    """Render ``settings`` a fixed number of pixels at a time.

    Iterating :meth:`events` computes one chunk per step and hands control back
    to the caller after each one. Pixels are visited in row-major order from a
    flat counter, so every pixel is computed exactly once. :meth:`cancel` is
    observed before the next chunk starts; a chunk already being computed
    always finishes, and once the last chunk is done the render is
    :attr:`RenderState.COMPLETED` and can no longer be cancelled.
    """

    def __init__(
        self,
        settings: RenderSettings,
        chunk_size: int = CHUNK_SIZE,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.settings = settings
        self.chunk_size = chunk_size
        self.total_pixels = settings.total_pixels
        self.rendered_pixels = 0
        self.state = RenderState.IDLE
        self._cancel_event = cancel_event if cancel_event is not None else threading.Event()

    @property
    def percent_complete(self) -> float:
        return self.rendered_pixels / self.total_pixels * 100

    def cancel(self) -> None:
        self._cancel_event.set()

    def _cancel_requested(self) -> bool:
        if self._cancel_event.is_set():
            self.state = RenderState.CANCELLED
            logger.debug("Render cancelled after %d of %d pixels", self.rendered_pixels, self.total_pixels)
            return True
        return False

    def events(self) -> Iterator[RenderEvent]:
        if self.state is not RenderState.IDLE:
            raise RuntimeError(f"render already {self.state.value}; start a new ProgressiveRender")
        self.state = RenderState.RUNNING

        settings = self.settings
        width, height = settings.width, settings.height
        palette = build_palette(settings.max_iterations, settings.scheme)
        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        flat = pixels.reshape(-1, 4)

        while self.rendered_pixels < self.total_pixels:
            if self._cancel_requested():
                return

            start = self.rendered_pixels
            stop = min(start + self.chunk_size, self.total_pixels)
            counter = np.arange(start, stop)
            xs = counter % width
            ys = counter // width
            real, imag = settings.viewport.grid(xs, ys)
            counts = escape_counts(real, imag, settings.max_iterations, settings.variant)
            flat[start:stop] = colorize(counts, palette)

            self.rendered_pixels = stop
            if stop == self.total_pixels:
                self.state = RenderState.COMPLETED
            yield ProgressEvent(self.percent_complete, stop, stop - start)

        logger.debug("Render of %dx%d completed", width, height)
        yield CompleteEvent(pixels)


def run_to_completion(settings: RenderSettings, chunk_size: int = CHUNK_SIZE) -> np.ndarray:
    """Render ``settings`` synchronously through the chunked scheduler and return the RGBA buffer."""

    for event in ProgressiveRender(settings, chunk_size).events():
        if isinstance(event, CompleteEvent):
            return event.pixels
    raise RuntimeError("render finished without producing an image")
