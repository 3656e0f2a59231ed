# -*- coding: utf-8 -*-
"""
Provides reading and writing of single-channel 8-bit raster files.
"""

__all__ = ["load_image", "save_image"]

import os
import numpy as np

from PIL import Image

from .base import GeometryError


def save_image(pixels, filename, bounds):
    """
    Write the (height, width) buffer as a grayscale image, top row first.
    The format follows the file extension, PNG when there is none.
    """
    width, height = bounds
    if pixels.size != width * height:
        raise GeometryError(
            f"pixel buffer of {pixels.size} values does not match bounds {width}x{height}")

    pixels = np.ascontiguousarray(pixels, dtype=np.uint8).reshape((width * height,))

    img = Image.frombuffer("L", (width, height), pixels.tobytes(), "raw", "L", 0, 1)
    img.save(filename, format=None if os.path.splitext(filename)[1] else "PNG")


def load_image(filename):
    """
    Read a grayscale image back into a (height, width) uint8 array.
    """
    with Image.open(filename) as img:
        if img.mode != "L":
            img = img.convert("L")
        return np.asarray(img, dtype=np.uint8).copy()
