"""Lifecycle of the single in-flight high-resolution render job."""

from __future__ import annotations

import enum
import itertools
import logging
import math
import time
from dataclasses import dataclass
from queue import Empty
from typing import Any, Callable, Mapping, Optional, Union

from .scheduler import CHUNK_SIZE
from .settings import RenderRequest, RenderSettings
from .worker import CompleteMessage, FailedMessage, ProgressMessage, RenderWorker

logger = logging.getLogger(__name__)


class JobStatus(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.FAILED)


@dataclass
class RenderJob:
    id: int
    settings: RenderSettings
    total_pixel_count: int
    rendered_pixel_count: int = 0
    percent_complete: float = 0.0
    status: JobStatus = JobStatus.PENDING
    started_at: Optional[float] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RenderTiming:
    elapsed: float
    remaining: Optional[float]

    @classmethod
    def from_progress(cls, elapsed: float, percent_complete: float) -> RenderTiming:
        if percent_complete <= 0:
            return cls(elapsed, None)
        estimated_total = elapsed / percent_complete * 100
        return cls(elapsed, estimated_total - elapsed)


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``"{minutes}m {seconds}s"``; ``None`` becomes ``"--"``."""

    if seconds is None or math.isnan(seconds) or math.isinf(seconds):
        return "--"
    seconds = max(seconds, 0.0)
    return f"{math.floor(seconds / 60)}m {math.floor(seconds % 60)}s"


ProgressCallback = Callable[[RenderJob], None]
CompleteCallback = Callable[[RenderJob, bytes], None]


class RenderJobController:
    """Own at most one render job and its render context.

    Starting a job while another is still live tears the old one down first;
    jobs are replaced, never queued. Messages from the render context are only
    processed when the host calls :meth:`pump` or :meth:`wait`, so callbacks
    always run on the host's thread.
    """

    def __init__(
        self,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        *,
        chunk_size: int = CHUNK_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.on_progress = on_progress
        self.on_complete = on_complete
        self.chunk_size = chunk_size
        self.clock = clock
        self.job: Optional[RenderJob] = None
        self._worker: Optional[RenderWorker] = None
        self._ids = itertools.count(1)

    @property
    def active(self) -> bool:
        return self.job is not None and not self.job.status.terminal

    def start(self, request: Union[RenderRequest, Mapping[str, Any]]) -> RenderJob:
        """Validate ``request`` and start rendering it, replacing any live job."""

        if not isinstance(request, RenderRequest):
            request = RenderRequest.from_message(request)
        settings = request.to_settings()

        if self.active:
            logger.info("Replacing render job %d", self.job.id)
            self.cancel()

        job = RenderJob(id=next(self._ids), settings=settings, total_pixel_count=settings.total_pixels)
        worker = RenderWorker(request, chunk_size=self.chunk_size, name=f"render-job-{job.id}")
        self.job = job
        self._worker = worker
        job.started_at = self.clock()
        job.status = JobStatus.RUNNING
        worker.start()
        logger.info("Started render job %d at %dx%d", job.id, request.width, request.height)
        return job

    def cancel(self) -> None:
        """Stop the live job, waiting for its render context to shut down."""

        worker, job = self._worker, self.job
        self._worker = None
        if worker is not None:
            worker.terminate()
        if job is not None and not job.status.terminal:
            job.status = JobStatus.CANCELLED
            logger.info("Cancelled render job %d at %.1f%%", job.id, job.percent_complete)

    def timing(self) -> Optional[RenderTiming]:
        if self.job is None or self.job.started_at is None:
            return None
        elapsed = self.clock() - self.job.started_at
        return RenderTiming.from_progress(elapsed, self.job.percent_complete)

    def status_line(self) -> str:
        timing = self.timing()
        if timing is None:
            return "Elapsed: 0m 0s, Remaining: --"
        return f"Elapsed: {format_duration(timing.elapsed)}, Remaining: {format_duration(timing.remaining)}"

    def pump(self, timeout: Optional[float] = None) -> int:
        """Handle pending messages from the render context.

        With ``timeout`` set, block up to that long for the first message.
        Returns the number of messages handled.
        """

        worker, job = self._worker, self.job
        if worker is None or job is None or job.status.terminal:
            return 0

        handled = 0
        block = timeout is not None
        while not job.status.terminal:
            try:
                message = worker.outbox.get(block=block, timeout=timeout) if block else worker.outbox.get_nowait()
            except Empty:
                break
            block = False
            handled += 1
            self._handle(job, message)
        if job.status.terminal and self._worker is worker:
            self._worker = None
        return handled

    def wait(self, timeout: Optional[float] = None, poll_interval: float = 0.1) -> RenderJob:
        """Pump messages until the current job reaches a terminal state.

        ``timeout`` is measured in wall-clock seconds with :func:`time.monotonic`,
        independent of the injected ``clock``.
        """

        if self.job is None:
            raise RuntimeError("no render job has been started")
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.job.status.terminal:
            if deadline is not None and time.monotonic() >= deadline:
                break
            self.pump(timeout=poll_interval)
        return self.job

    def _handle(self, job: RenderJob, message: Any) -> None:
        if isinstance(message, ProgressMessage):
            job.percent_complete = message.percent_complete
            job.rendered_pixel_count = message.rendered_pixels
            if self.on_progress is not None:
                self.on_progress(job)
        elif isinstance(message, CompleteMessage):
            job.status = JobStatus.COMPLETED
            logger.info("Render job %d completed", job.id)
            if self.on_complete is not None:
                self.on_complete(job, message.image)
        elif isinstance(message, FailedMessage):
            job.status = JobStatus.FAILED
            job.error = message.error
            logger.error("Render job %d failed: %s", job.id, message.error)
