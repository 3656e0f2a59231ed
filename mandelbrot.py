#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Render the Mandelbrot Set to a grayscale image on the CPU, one worker per
band of rows.

Usage: mandelbrot.py mandel.png 1000x750 -1.20,0.35 -1,0.20
"""

import sys

from timeit import default_timer as timer

from mandel.base import GeometryError, RenderError
from mandel.image import save_image
from mandel.mandel_bands import plan_bands, render_parallel
from mandel.option import Option
from mandel.parallel import USE_FORK


class App(object):

    def __init__(self, opt):

        self.filename = opt.filename
        self.width, self.height = opt.bounds
        self.upper_left = opt.upper_left
        self.lower_right = opt.lower_right
        self.iters = opt.iterations
        self.verbose = opt.verbose
        self.num_threads = max(1, min(opt.num_threads, self.height))

        print("[CPU] number of {} {}".format(
            "processes" if USE_FORK else "threads", self.num_threads))


    def print_info(self):

        print("[   ] image size   : {}x{}".format(self.width, self.height))
        print("[   ] upper left   : {:.16f}, {:.16f}".format(
            self.upper_left.real, self.upper_left.imag))
        print("[   ] lower right  : {:.16f}, {:.16f}".format(
            self.lower_right.real, self.lower_right.imag))
        print("[   ] iterations   : {}".format(self.iters))

        bands = plan_bands(
            (self.width, self.height), self.upper_left, self.lower_right,
            self.num_threads )

        for wid, band in enumerate(bands, start=1):
            print("[{:>3}] rows {:>5}-{:<5} : {:.16f}, {:.16f} .. {:.16f}, {:.16f}".format(
                wid, band.top, band.stop - 1,
                band.upper_left.real, band.upper_left.imag,
                band.lower_right.real, band.lower_right.imag))


    def run(self):

        if self.verbose:
            self.print_info()

        s = timer()
        pixels = render_parallel(
            (self.width, self.height), self.upper_left, self.lower_right,
            self.num_threads, max_iters=self.iters )
        print("   mandelbrot {:.3f} seconds".format(timer() - s))

        save_image(pixels, self.filename, (self.width, self.height))
        print("image saved as {}".format(self.filename))


def main(argv=None):

    opt = Option(argv)

    try:
        App(opt).run()
    except (GeometryError, RenderError, ValueError, OSError) as e:
        print("{}: error: {}".format(opt.prog, e), file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':

    sys.exit(main())
