import io

import PIL.Image
import pytest

import fractalrender.worker as worker_module
from fractalrender import (
    InvalidDimension,
    JobStatus,
    RenderJobController,
    RenderRequest,
    RenderTiming,
    RenderWorker,
    format_duration,
)
from fractalrender.worker import CompleteMessage, FailedMessage, ProgressMessage


def _request(width=40, height=30, **overrides):
    message = {
        "width": width,
        "height": height,
        "zoom": 0.5,
        "offsetReal": 0.0,
        "offsetImag": 0.0,
        "maxIterations": 30,
        "colorScheme": "fire",
        "variant": "mandelbrot",
    }
    message.update(overrides)
    return message


def _slow_request():
    # deep inside the set every pixel runs the full iteration count
    return _request(width=1200, height=1200, zoom=50.0, offsetReal=-0.1, maxIterations=3000)


class Recorder:
    def __init__(self):
        self.progress = []
        self.completed = []

    def on_progress(self, job):
        self.progress.append((job.id, job.percent_complete))

    def on_complete(self, job, image):
        self.completed.append((job.id, image))


def _drain(outbox):
    messages = []
    while not outbox.empty():
        messages.append(outbox.get_nowait())
    return messages


def test_worker_posts_progress_then_one_png():
    worker = RenderWorker(RenderRequest.from_message(_request(30, 20)), chunk_size=150)
    worker.start()
    worker.join(timeout=30)
    messages = _drain(worker.outbox)

    assert all(isinstance(m, ProgressMessage) for m in messages[:-1])
    assert [m.percent_complete for m in messages[:-1]] == pytest.approx([25.0, 50.0, 75.0, 100.0])
    complete = messages[-1]
    assert isinstance(complete, CompleteMessage)
    assert complete.image.startswith(b"\x89PNG")
    with PIL.Image.open(io.BytesIO(complete.image)) as image:
        assert image.size == (30, 20)
        assert image.mode == "RGBA"


def test_message_wire_format():
    assert ProgressMessage(12.5, 10).to_message() == {"kind": "progress", "percentComplete": 12.5}
    assert CompleteMessage(b"png", 1, 1).to_message() == {"kind": "complete", "image": b"png"}
    assert FailedMessage("boom").to_message() == {"kind": "failed", "error": "boom"}


def test_job_runs_to_completion():
    recorder = Recorder()
    controller = RenderJobController(recorder.on_progress, recorder.on_complete, chunk_size=200)
    job = controller.start(_request())
    assert job.total_pixel_count == 40 * 30

    finished = controller.wait(timeout=30)

    assert finished is job
    assert job.status is JobStatus.COMPLETED
    assert job.rendered_pixel_count == job.total_pixel_count
    percents = [percent for _, percent in recorder.progress]
    assert percents == sorted(percents)
    assert percents[-1] == 100.0
    assert len(recorder.completed) == 1
    assert recorder.completed[0][0] == job.id
    assert not controller.active
    assert controller.pump() == 0


@pytest.mark.parametrize("width", [0, -10, "wide", None])
def test_invalid_dimensions_start_no_job(width):
    controller = RenderJobController()
    with pytest.raises(InvalidDimension):
        controller.start(_request(width=width))
    assert controller.job is None


def test_invalid_request_leaves_running_job_alone():
    controller = RenderJobController(chunk_size=500)
    job = controller.start(_slow_request())
    with pytest.raises(InvalidDimension):
        controller.start(_request(height="tall"))
    assert controller.job is job
    assert job.status is JobStatus.RUNNING
    controller.cancel()


def test_cancel_stops_job_without_completion():
    recorder = Recorder()
    controller = RenderJobController(recorder.on_progress, recorder.on_complete, chunk_size=500)
    job = controller.start(_slow_request())
    controller.cancel()

    assert job.status is JobStatus.CANCELLED
    assert controller.pump(timeout=0.2) == 0
    assert recorder.completed == []
    assert job.rendered_pixel_count < job.total_pixel_count


def test_starting_a_job_replaces_the_running_one():
    recorder = Recorder()
    controller = RenderJobController(recorder.on_progress, recorder.on_complete, chunk_size=500)
    first = controller.start(_slow_request())
    second = controller.start(_request())

    assert first.status is JobStatus.CANCELLED
    assert second.id != first.id
    assert controller.job is second

    controller.wait(timeout=30)
    assert second.status is JobStatus.COMPLETED
    assert [job_id for job_id, _ in recorder.completed] == [second.id]
    assert all(job_id == second.id for job_id, _ in recorder.progress)


def test_worker_failure_marks_job_failed(monkeypatch):
    def broken(pixels):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(worker_module, "encode_png", broken)
    recorder = Recorder()
    controller = RenderJobController(recorder.on_progress, recorder.on_complete)
    job = controller.start(_request(10, 10))
    controller.wait(timeout=30)

    assert job.status is JobStatus.FAILED
    assert "disk on fire" in job.error
    assert recorder.completed == []


def test_wait_without_job():
    with pytest.raises(RuntimeError):
        RenderJobController().wait()


def test_timing_estimate():
    timing = RenderTiming.from_progress(10.0, 25.0)
    assert timing.elapsed == 10.0
    assert timing.remaining == pytest.approx(30.0)
    assert RenderTiming.from_progress(5.0, 0.0).remaining is None


def test_format_duration():
    assert format_duration(0) == "0m 0s"
    assert format_duration(125.7) == "2m 5s"
    assert format_duration(None) == "--"


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_status_line_uses_injected_clock():
    clock = FakeClock()
    controller = RenderJobController(clock=clock)
    assert controller.status_line() == "Elapsed: 0m 0s, Remaining: --"

    job = controller.start(_request(8, 8))
    controller.wait(timeout=30)
    assert job.status is JobStatus.COMPLETED

    job.percent_complete = 0.0
    clock.now = 165.0
    assert controller.status_line() == "Elapsed: 1m 5s, Remaining: --"

    job.percent_complete = 50.0
    assert controller.status_line() == "Elapsed: 1m 5s, Remaining: 1m 5s"


def test_wait_timeout_uses_wall_clock_even_with_frozen_clock():
    controller = RenderJobController(clock=FakeClock(), chunk_size=500)
    job = controller.start(_slow_request())
    assert controller.wait(timeout=0.3) is job
    assert job.status is JobStatus.RUNNING
    controller.cancel()
    assert job.status is JobStatus.CANCELLED
