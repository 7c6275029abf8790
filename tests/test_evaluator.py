import numpy as np
import pytest

from fractalrender import ComplexPoint, Julia, Mandelbrot, ViewportState, escape_counts, evaluate
from fractalrender.evaluator import DEFAULT_JULIA_CONSTANT


@pytest.mark.parametrize("max_iterations", [1, 2, 10, 100, 1000])
def test_origin_never_escapes(max_iterations):
    assert evaluate(ComplexPoint(0.0, 0.0), max_iterations, Mandelbrot()) == max_iterations


@pytest.mark.parametrize("c", [ComplexPoint(2.5, 0.0), ComplexPoint(-3.0, 1.0), ComplexPoint(1.5, 1.5), ComplexPoint(0.0, -2.01)])
def test_points_outside_radius_escape_immediately(c):
    assert evaluate(c, 100, Mandelbrot()) == 0


def test_known_mandelbrot_counts():
    # c = 1: 1, 2, 5 -> escapes on the third update
    assert evaluate(ComplexPoint(1.0, 0.0), 50, Mandelbrot()) == 2
    # c = -1 cycles between 0 and -1
    assert evaluate(ComplexPoint(-1.0, 0.0), 50, Mandelbrot()) == 50


def test_julia_seeds_with_the_point():
    # z0 = 3 escapes on the first update regardless of the constant
    assert evaluate(ComplexPoint(3.0, 0.0), 100, Julia()) == 0
    # with constant 0, points on the unit circle stay there
    assert evaluate(ComplexPoint(1.0, 0.0), 100, Julia(ComplexPoint(0.0, 0.0))) == 100


def test_julia_default_constant_is_deterministic():
    origin = ComplexPoint(0.0, 0.0)
    first = evaluate(origin, 100, Julia(DEFAULT_JULIA_CONSTANT))
    assert 0 <= first <= 100
    assert all(evaluate(origin, 100, Julia()) == first for _ in range(5))
    assert escape_counts(np.array([0.0]), np.array([0.0]), 100, Julia())[0] == first


def test_scenario_center_pixel_of_small_canvas():
    view = ViewportState(zoom=1.0, pixel_width=4, pixel_height=4)
    assert view.map(2, 2) == ComplexPoint(0.0, 0.0)
    assert evaluate(view.map(2, 2), 50, Mandelbrot()) == 50


@pytest.mark.parametrize("variant", [Mandelbrot(), Julia(), Julia(ComplexPoint(0.285, 0.01))])
def test_vectorised_counts_match_scalar(variant):
    rng = np.random.default_rng(7)
    real = rng.uniform(-2.0, 1.0, 400)
    imag = rng.uniform(-1.5, 1.5, 400)
    counts = escape_counts(real, imag, 80, variant)
    expected = [evaluate(ComplexPoint(r, i), 80, variant) for r, i in zip(real, imag)]
    assert counts.tolist() == expected


def test_escape_counts_bounds():
    counts = escape_counts(np.linspace(-2, 2, 50), np.zeros(50), 30, Mandelbrot())
    assert counts.min() >= 0
    assert counts.max() <= 30
