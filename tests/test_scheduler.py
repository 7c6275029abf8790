import numpy as np
import pytest

import fractalrender.scheduler as scheduler
from fractalrender import (
    CHUNK_SIZE,
    CompleteEvent,
    Custom,
    GradientStops,
    Julia,
    Mandelbrot,
    ProgressEvent,
    ProgressiveRender,
    RenderSettings,
    RenderState,
    UnsupportedScheme,
    Vibrant,
    ViewportState,
    color_for,
    evaluate,
    run_to_completion,
)


def _settings(width, height, **kwargs):
    kwargs.setdefault("max_iterations", 40)
    return RenderSettings(viewport=ViewportState(zoom=0.8, pixel_width=width, pixel_height=height), **kwargs)


def test_default_chunk_size():
    assert CHUNK_SIZE == 1350


def test_completed_render_reports_every_pixel_once():
    render = ProgressiveRender(_settings(50, 40))
    events = list(render.events())
    progress = [event for event in events if isinstance(event, ProgressEvent)]
    complete = [event for event in events if isinstance(event, CompleteEvent)]

    assert [event.chunk_pixels for event in progress] == [1350, 650]
    assert [event.percent for event in progress] == pytest.approx([67.5, 100.0])
    assert progress[-1].percent == 100.0
    assert sum(event.chunk_pixels for event in progress) == 50 * 40
    assert len(complete) == 1
    assert events[-1] is complete[0]
    assert complete[0].pixels.shape == (40, 50, 4)
    assert render.state is RenderState.COMPLETED


def test_each_pixel_is_computed_once(monkeypatch):
    seen = []
    original = scheduler.escape_counts

    def recording(real, imag, max_iterations, variant):
        seen.extend(zip(np.asarray(real).tolist(), np.asarray(imag).tolist()))
        return original(real, imag, max_iterations, variant)

    monkeypatch.setattr(scheduler, "escape_counts", recording)
    settings = _settings(23, 17)
    run_to_completion(settings, chunk_size=37)

    assert len(seen) == 23 * 17
    expected = [settings.viewport.map(i % 23, i // 23) for i in range(23 * 17)]
    assert seen == [(point.real, point.imag) for point in expected]


def test_progress_is_monotonic_and_ends_at_100():
    percents = [
        event.percent
        for event in ProgressiveRender(_settings(31, 29), chunk_size=100).events()
        if isinstance(event, ProgressEvent)
    ]
    assert percents == sorted(percents)
    assert percents[-1] == 100.0
    assert len(percents) == -(-31 * 29 // 100)


@pytest.mark.parametrize(
    "variant,scheme",
    [
        (Mandelbrot(), Vibrant()),
        (Julia(), Custom(GradientStops.from_hex("#000000", "#ff0000", "#ffffff"))),
    ],
)
def test_pixels_match_per_pixel_evaluation(variant, scheme):
    settings = _settings(11, 7, variant=variant, scheme=scheme)
    pixels = run_to_completion(settings, chunk_size=16)
    for y in range(7):
        for x in range(11):
            n = evaluate(settings.viewport.map(x, y), settings.max_iterations, variant)
            assert tuple(pixels[y, x, :3]) == color_for(n, settings.max_iterations, scheme)
    assert (pixels[..., 3] == 255).all()


def test_small_canvas_scenario():
    settings = RenderSettings(
        viewport=ViewportState(zoom=1.0, pixel_width=4, pixel_height=4),
        variant=Mandelbrot(),
        max_iterations=50,
        scheme=Vibrant(),
    )
    pixels = run_to_completion(settings)
    assert tuple(pixels[2, 2]) == (0, 0, 0, 255)


def test_unknown_scheme_still_completes_the_image():
    pixels = run_to_completion(_settings(9, 9, scheme=UnsupportedScheme("sepia")))
    assert pixels.shape == (9, 9, 4)
    assert (pixels[..., :3] == 0).all()


def test_cancel_between_chunks_stops_all_events():
    render = ProgressiveRender(_settings(40, 40), chunk_size=100)
    events = render.events()
    first = next(events)
    assert isinstance(first, ProgressEvent)
    render.cancel()
    assert list(events) == []
    assert render.state is RenderState.CANCELLED
    assert render.rendered_pixels == first.chunk_pixels < render.total_pixels


def test_cancelled_run_reports_fewer_pixels_than_total():
    render = ProgressiveRender(_settings(30, 30), chunk_size=200)
    reported = 0
    for event in render.events():
        assert isinstance(event, ProgressEvent)
        reported += event.chunk_pixels
        if reported >= 400:
            render.cancel()
    assert render.state is RenderState.CANCELLED
    assert reported == 400 < render.total_pixels


def test_cancel_after_last_chunk_still_completes():
    render = ProgressiveRender(_settings(10, 10), chunk_size=100)
    events = render.events()
    last = next(events)
    assert last.percent == 100.0
    assert render.state is RenderState.COMPLETED
    render.cancel()
    remaining = list(events)
    assert len(remaining) == 1
    assert isinstance(remaining[0], CompleteEvent)
    assert render.state is RenderState.COMPLETED


def test_cancel_before_start():
    render = ProgressiveRender(_settings(10, 10))
    render.cancel()
    assert list(render.events()) == []
    assert render.state is RenderState.CANCELLED
    assert render.rendered_pixels == 0


def test_render_cannot_be_restarted():
    render = ProgressiveRender(_settings(5, 5))
    list(render.events())
    with pytest.raises(RuntimeError):
        next(render.events())


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        ProgressiveRender(_settings(5, 5), chunk_size=0)
