# -*- coding: utf-8 -*-
"""
Mandelbrot renderer. Fork-join over disjoint row bands.

The output buffer is split into consecutive bands of rows, one worker
per band. Each worker receives its own slice of the buffer at spawn time
and writes nowhere else, so the buffer needs no locking.
"""

__all__ = ["Band", "check_partition", "mandelbrot_band", "plan_bands",
           "render", "render_parallel", "split_rows"]

import time

from collections import namedtuple

from numba import njit

from .base import LIMIT, GeometryError, RenderError, check_geometry, divide_up
from .mandel_common import escape_count, intensity, pixel_to_point
from .parallel import USE_FORK, new_buffer, worker_classes


class Band(namedtuple("Band", ["top", "stop", "upper_left", "lower_right"])):
    """
    Rows [top, stop) of the output buffer and the matching sub-viewport.
    """
    __slots__ = ()

    @property
    def height(self):
        return self.stop - self.top


@njit('void(u1[:,:], UniTuple(i8,2), i8, c16, c16, i4)', nogil=True)
def mandelbrot_band(pixels, bounds, top, upper_left, lower_right, max_iters):

    height, width = pixels.shape

    # Map through the full bounds; values do not depend on the band layout.
    for row in range(height):
        for col in range(width):
            point = pixel_to_point(bounds, (col, top + row), upper_left, lower_right)
            pixels[row, col] = intensity(escape_count(point, max_iters))


def split_rows(height, num_threads):
    """
    Split [0, height) into consecutive (top, stop) ranges, one per worker.
    The last range is shorter when the height does not divide evenly.
    """
    if num_threads < 1:
        raise ValueError(f"number of threads must be at least 1: {num_threads}")

    rows_per_band = max(1, divide_up(height, num_threads))
    seqs = list()

    for top in range(0, height, rows_per_band):
        stop = top + rows_per_band
        seqs.append((top, stop if stop <= height else height))

    return seqs


def check_partition(seqs, height):
    """
    Raise RenderError unless the ranges cover [0, height) exactly,
    without gaps or overlaps.
    """
    expected = 0

    for top, stop in sorted(seqs):
        if top != expected:
            kind = "overlap" if top < expected else "gap"
            raise RenderError(f"band rows {kind} at row {min(top, expected)}")
        if stop <= top:
            raise RenderError(f"empty band at row {top}")
        expected = stop

    if expected != height:
        raise RenderError(f"bands cover {expected} of {height} rows")


def plan_bands(bounds, upper_left, lower_right, num_threads):
    """
    Compute the bands for one render, each with the sub-viewport of its
    rows mapped through the full bounds.
    """
    width, height = check_geometry(bounds, upper_left, lower_right)
    bounds = (width, height)

    seqs = split_rows(height, num_threads)
    check_partition(seqs, height)

    return [
        Band(top, stop,
             complex(pixel_to_point(bounds, (0, top), upper_left, lower_right)),
             complex(pixel_to_point(bounds, (width, stop), upper_left, lower_right)))
        for top, stop in seqs ]


def _check_iters(max_iters):

    if not 1 <= max_iters <= LIMIT:
        raise ValueError(f"iteration limit must be in [1-{LIMIT}]: {max_iters}")


def render(pixels, bounds, upper_left, lower_right, max_iters=LIMIT):
    """
    Render a rectangle of the Mandelbrot set into a buffer of pixels,
    on the calling thread.
    """
    width, height = check_geometry(bounds, upper_left, lower_right)
    _check_iters(max_iters)

    if pixels.shape != (height, width):
        raise GeometryError(
            f"pixel buffer shape {pixels.shape} does not match bounds {width}x{height}")

    mandelbrot_band(pixels, (width, height), 0, upper_left, lower_right, max_iters)


def _band_task(wid, band, bounds, top, upper_left, lower_right, max_iters, results):

    try:
        mandelbrot_band(band, bounds, top, upper_left, lower_right, max_iters)
    except Exception as e:
        results.put((wid, "{}: {}".format(type(e).__name__, e)))
    else:
        results.put((wid, None))


def render_parallel(bounds, upper_left, lower_right, num_threads,
                    max_iters=LIMIT, use_fork=USE_FORK):
    """
    Render the viewport into a new (height, width) uint8 buffer using one
    worker per band. Blocks until every worker has finished.

    The result does not depend on num_threads. Raises GeometryError for
    an invalid viewport and RenderError if any worker fails; no partial
    buffer is returned. The returned buffer is read-only.
    """
    width, height = check_geometry(bounds, upper_left, lower_right)
    _check_iters(max_iters)

    bounds = (width, height)
    upper_left, lower_right = complex(upper_left), complex(lower_right)
    bands = plan_bands(bounds, upper_left, lower_right, num_threads)

    Thread, Queue = worker_classes(use_fork)
    pixels = new_buffer(height, width, use_fork)
    results = Queue()

    # Spawn workers, each owning the rows of its band.
    consumers = list()
    for wid, band in enumerate(bands, start=1):
        args = (wid, pixels[band.top:band.stop], bounds, band.top,
                upper_left, lower_right, max_iters, results)
        consumers.append(Thread(target=_band_task, args=args))
        consumers[-1].start()

    # Drain reports before joining; a forked put blocks on a full pipe.
    reports = dict()
    while len(reports) < len(consumers):
        if not results.empty():
            wid, error = results.get()
            reports[wid] = error
        elif not any(c.is_alive() for c in consumers):
            # a worker died without reporting; anything it sent is in the pipe
            if results.empty():
                break
        else:
            time.sleep(0.001)

    for c in consumers:
        c.join()

    failures = list()
    for wid, c in enumerate(consumers, start=1):
        exitcode = getattr(c, 'exitcode', 0)
        if reports.get(wid) is not None:
            failures.append("worker {}: {}".format(wid, reports[wid]))
        elif wid not in reports or exitcode:
            failures.append("worker {}: exited with code {}".format(wid, exitcode))

    if failures:
        raise RenderError("render failed; " + "; ".join(failures))

    pixels.flags.writeable = False

    return pixels
