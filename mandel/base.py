# -*- coding: utf-8 -*-
"""
Provides constants, exceptions and geometry checks shared by the renderer.
"""

__all__ = ["BOUNDED_COUNT", "ESCAPE_RADIUS_2", "LIMIT", "GeometryError",
           "RenderError", "check_geometry", "divide_up"]

import math

# Largest iteration limit that still fits the 8-bit intensity encoding.
LIMIT = 255
ESCAPE_RADIUS_2 = 4.0
BOUNDED_COUNT = -1


class GeometryError(ValueError):
    """
    The image bounds or viewport cannot be rendered.
    """


class RenderError(RuntimeError):
    """
    A render failed as a whole; no pixel buffer is returned.
    """


def divide_up(dividend, divisor):
    """
    Helper funtion to get the next up value for integer division.
    """
    return dividend // divisor + 1 if dividend % divisor else dividend // divisor


def check_geometry(bounds, upper_left, lower_right):
    """
    Validate the image bounds and viewport corners for one render.
    Returns the bounds as a (width, height) tuple of ints.
    """
    try:
        width, height = bounds
    except (TypeError, ValueError):
        raise GeometryError(f"bounds must be a (width, height) pair: {bounds!r}")

    try:
        integral = int(width) == width and int(height) == height
    except (TypeError, ValueError, OverflowError):
        integral = False

    if not integral:
        raise GeometryError(f"bounds must be integers: {width}x{height}")
    width, height = int(width), int(height)

    if width <= 0 or height <= 0:
        raise GeometryError(f"image dimensions must be positive: {width}x{height}")

    for name, point in (("upper left", upper_left), ("lower right", lower_right)):
        if not (math.isfinite(point.real) and math.isfinite(point.imag)):
            raise GeometryError(f"{name} corner is not finite: {point}")

    if not lower_right.real > upper_left.real:
        raise GeometryError(
            "lower right real part must exceed upper left real part: "
            f"{lower_right.real} <= {upper_left.real}")

    if not upper_left.imag > lower_right.imag:
        raise GeometryError(
            "upper left imaginary part must exceed lower right imaginary part: "
            f"{upper_left.imag} <= {lower_right.imag}")

    return (width, height)
