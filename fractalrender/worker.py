"""Isolated render context for high-resolution jobs.

A :class:`RenderWorker` owns its render and pixel buffer outright. The only
thing it shares with the controller is a FIFO queue of immutable messages; the
finished image leaves the context as PNG bytes.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass
from queue import SimpleQueue
from typing import Any, Union

import numpy as np
import PIL.Image

from .scheduler import CHUNK_SIZE, CompleteEvent, ProgressiveRender, ProgressEvent
from .settings import RenderRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressMessage:
    percent_complete: float
    rendered_pixels: int
    kind = "progress"

    def to_message(self) -> dict[str, Any]:
        return {"kind": self.kind, "percentComplete": self.percent_complete}


@dataclass(frozen=True)
class CompleteMessage:
    image: bytes
    width: int
    height: int
    kind = "complete"

    def to_message(self) -> dict[str, Any]:
        return {"kind": self.kind, "image": self.image}


@dataclass(frozen=True)
class FailedMessage:
    error: str
    kind = "failed"

    def to_message(self) -> dict[str, Any]:
        return {"kind": self.kind, "error": self.error}


WorkerMessage = Union[ProgressMessage, CompleteMessage, FailedMessage]


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode an RGBA buffer as PNG."""

    buffer = io.BytesIO()
    PIL.Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


class RenderWorker(threading.Thread):
    """Render one request on a background thread, posting messages to ``outbox``."""

    def __init__(self, request: RenderRequest, chunk_size: int = CHUNK_SIZE, name: str | None = None) -> None:
        super().__init__(name=name or "render-worker", daemon=True)
        self.request = request
        self.chunk_size = chunk_size
        self.outbox: SimpleQueue[WorkerMessage] = SimpleQueue()
        self._cancel = threading.Event()

    def run(self) -> None:
        logger.info("Worker thread running (%dx%d).", self.request.width, self.request.height)
        try:
            render = ProgressiveRender(self.request.to_settings(), self.chunk_size, self._cancel)
            for event in render.events():
                if isinstance(event, ProgressEvent):
                    self.outbox.put(ProgressMessage(event.percent, event.rendered_pixels))
                elif isinstance(event, CompleteEvent):
                    image = encode_png(event.pixels)
                    if self._cancel.is_set():
                        break
                    self.outbox.put(CompleteMessage(image, self.request.width, self.request.height))
        except Exception as err:
            logger.exception("Exception in worker thread.")
            self.outbox.put(FailedMessage(f"{type(err).__name__}: {err}"))
        logger.info("Worker thread stopping.")

    def terminate(self, timeout: float | None = None) -> None:
        """Ask the render to stop at the next chunk boundary and wait for the thread to exit."""

        self._cancel.set()
        if self.is_alive():
            self.join(timeout)
