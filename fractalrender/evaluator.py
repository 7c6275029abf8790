"""Escape-time iteration for the Mandelbrot and Julia sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

from .viewport import ComplexPoint

BAILOUT = 4.0
DEFAULT_JULIA_CONSTANT = ComplexPoint(-0.7, 0.27015)


@dataclass(frozen=True)
class Mandelbrot:
    name = "mandelbrot"


@dataclass(frozen=True)
class Julia:
    constant: ComplexPoint = DEFAULT_JULIA_CONSTANT
    name = "julia"


FractalVariant = Union[Mandelbrot, Julia]


def evaluate(c: ComplexPoint, max_iterations: int, variant: FractalVariant) -> int:
    """Return the iteration at which ``c`` escapes, or ``max_iterations`` if it never does."""

    if isinstance(variant, Julia):
        real, imag = c.real, c.imag
        add_real, add_imag = variant.constant.real, variant.constant.imag
    else:
        real, imag = 0.0, 0.0
        add_real, add_imag = c.real, c.imag

    n = 0
    while n < max_iterations:
        real, imag = real * real - imag * imag + add_real, 2 * real * imag + add_imag
        if real * real + imag * imag > BAILOUT:
            break
        n += 1
    return n


def escape_counts(
    real: np.ndarray,
    imag: np.ndarray,
    max_iterations: int,
    variant: FractalVariant,
) -> np.ndarray:
    """Vectorised :func:`evaluate` over arrays of points.

    Points that escape are dropped from the working set, so the cost of each
    step shrinks with the number of points still iterating.
    """

    real = np.asarray(real, dtype=np.float64).ravel()
    imag = np.asarray(imag, dtype=np.float64).ravel()
    counts = np.full(real.shape, max_iterations, dtype=np.int64)

    if isinstance(variant, Julia):
        zr, zi = real.copy(), imag.copy()
        ar = np.full(real.shape, variant.constant.real, dtype=np.float64)
        ai = np.full(real.shape, variant.constant.imag, dtype=np.float64)
    else:
        zr, zi = np.zeros_like(real), np.zeros_like(imag)
        ar, ai = real.copy(), imag.copy()

    remaining = np.arange(real.size)
    for n in range(max_iterations):
        if remaining.size == 0:
            break
        zr, zi = zr * zr - zi * zi + ar, 2 * zr * zi + ai
        escaped = zr * zr + zi * zi > BAILOUT
        if escaped.any():
            counts[remaining[escaped]] = n
            keep = ~escaped
            remaining = remaining[keep]
            zr, zi, ar, ai = zr[keep], zi[keep], ar[keep], ai[keep]
    return counts
