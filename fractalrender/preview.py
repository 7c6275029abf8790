"""Interactive live-preview rendering.

The preview renders the whole canvas in one synchronous pass on the caller's
thread. The escape-time loop runs as a TensorFlow while loop over the full
grid; real and imaginary parts are kept as separate float64 tensors and
updated in the same order as :func:`fractalrender.evaluator.evaluate`, so the
iteration counts match the chunked renderer exactly on CPU.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import tensorflow as tf

from .colors import build_palette, colorize
from .evaluator import BAILOUT, Julia
from .settings import RenderSettings


@tf.function
def _escape_step(
    n: tf.Tensor,
    zr: tf.Tensor,
    zi: tf.Tensor,
    ar: tf.Tensor,
    ai: tf.Tensor,
    ns: tf.Tensor,
    active: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every point that has not escaped by one iteration."""

    new_r = zr * zr - zi * zi + ar
    new_i = 2.0 * zr * zi + ai
    zr = tf.where(active, new_r, zr)
    zi = tf.where(active, new_i, zi)
    bailout = tf.constant(BAILOUT, dtype=zr.dtype)
    escaped = tf.logical_and(active, zr * zr + zi * zi > bailout)
    ns = tf.where(escaped, tf.fill(tf.shape(ns), n), ns)
    return zr, zi, ns, tf.logical_and(active, tf.logical_not(escaped))


@tf.function
def _escape_run(
    zr: tf.Tensor,
    zi: tf.Tensor,
    ar: tf.Tensor,
    ai: tf.Tensor,
    max_iterations: tf.Tensor,
) -> tf.Tensor:
    """Iterate until every point escaped or ``max_iterations`` is reached."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    n = tf.constant(0, dtype=tf.int32)
    ns = tf.fill(tf.shape(zr), max_iterations)
    active = tf.ones_like(zr, tf.bool)

    def cond(n, zr, zi, ns, active):
        return tf.logical_and(tf.less(n, max_iterations), tf.reduce_any(active))

    def body(n, zr, zi, ns, active):
        zr, zi, ns, active = _escape_step(n, zr, zi, ar, ai, ns, active)
        return n + 1, zr, zi, ns, active

    _, _, _, ns, _ = tf.while_loop(cond, body, (n, zr, zi, ns, active))
    return ns


def iteration_counts(settings: RenderSettings, *, device: Optional[str] = None) -> np.ndarray:
    """Escape iteration for every pixel of the canvas, shaped ``(height, width)``."""

    width, height = settings.width, settings.height
    ys, xs = np.mgrid[0:height, 0:width]
    real, imag = settings.viewport.grid(xs, ys)

    with tf.device(device if device is not None else "/CPU:0"):
        real_tf = tf.convert_to_tensor(real, dtype=tf.float64)
        imag_tf = tf.convert_to_tensor(imag, dtype=tf.float64)
        if isinstance(settings.variant, Julia):
            zr, zi = real_tf, imag_tf
            ar = tf.fill(tf.shape(real_tf), tf.constant(settings.variant.constant.real, dtype=tf.float64))
            ai = tf.fill(tf.shape(imag_tf), tf.constant(settings.variant.constant.imag, dtype=tf.float64))
        else:
            zr, zi = tf.zeros_like(real_tf), tf.zeros_like(imag_tf)
            ar, ai = real_tf, imag_tf
        ns = _escape_run(zr, zi, ar, ai, tf.constant(settings.max_iterations, dtype=tf.int32))

    return ns.numpy().astype(np.int64)


def render_preview(settings: RenderSettings, *, device: Optional[str] = None) -> np.ndarray:
    """Render ``settings`` synchronously and return an RGBA ``uint8`` buffer."""

    counts = iteration_counts(settings, device=device)
    return colorize(counts, build_palette(settings.max_iterations, settings.scheme))
