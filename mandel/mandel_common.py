# -*- coding: utf-8 -*-
"""
Common kernels for mandel_bands: plane mapping, escape time and intensity.

The njit functions are compiled eagerly at import and release the GIL,
so worker threads run them in parallel. The tagged wrappers escape_time
and encode are the Python-facing forms of the same computation.
"""

__all__ = ["BOUNDED", "Escaped", "encode", "escape_count", "escape_time",
           "intensity", "pixel_to_point"]

import os
from collections import namedtuple

from .base import BOUNDED_COUNT, ESCAPE_RADIUS_2, LIMIT

os.environ['NUMBA_DISABLE_INTEL_SVML'] = str(1)
os.environ['NUMBA_LOOP_VECTORIZE'] = str(0)
os.environ['NUMBA_SLP_VECTORIZE'] = str(0)
os.environ['NUMBA_OPT'] = str(3)
from numba import njit, uint8


def _pixel_to_point(bounds, pixel, upper_left, lower_right):

    width = lower_right.real - upper_left.real
    height = upper_left.imag - lower_right.imag

    return complex(
        upper_left.real + pixel[0] * width / bounds[0],
        upper_left.imag - pixel[1] * height / bounds[1] )

pixel_to_point = \
    njit('c16(UniTuple(i8,2), UniTuple(i8,2), c16, c16)', nogil=True)(_pixel_to_point)


def _escape_count(c, limit):

    z = 0j

    # Test before computing z = z^2 + c, the returned index depends on it.
    for i in range(limit):
        if z.real * z.real + z.imag * z.imag > ESCAPE_RADIUS_2:
            return i

        z = z * z + c

    return BOUNDED_COUNT

escape_count = njit('i4(c16, i4)', nogil=True)(_escape_count)


def _intensity(count):

    # Bounded points are presumed set members and rendered black.
    if count < 0:
        return uint8(0)

    return uint8(LIMIT - count)

intensity = njit('u1(i4)', nogil=True)(_intensity)


Escaped = namedtuple("Escaped", ["count"])
Escaped.__doc__ = "The point left the radius-2 disk at iteration `count`."


class _Bounded(object):
    """
    The point stayed inside the radius-2 disk through every iteration.
    """
    __slots__ = ()

    def __repr__(self):
        return "BOUNDED"

    def __reduce__(self):
        return "BOUNDED"

BOUNDED = _Bounded()


def escape_time(c, limit):
    """
    Determine whether c belongs to the Mandelbrot set, using at most
    `limit` iterations.

    Returns Escaped(i) if z left the circle of radius 2 at iteration i,
    or BOUNDED if the limit was reached without proving c is not a member.
    """
    count = escape_count(complex(c), limit)

    return BOUNDED if count == BOUNDED_COUNT else Escaped(int(count))


def encode(result):
    """
    Convert a divergence result into an 8-bit pixel value.
    """
    if result is BOUNDED:
        return 0

    if not 0 <= result.count <= LIMIT:
        raise ValueError(f"iteration count {result.count} does not fit in 8 bits")

    return int(intensity(result.count))
