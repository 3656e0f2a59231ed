# -*- coding: utf-8 -*-
"""
Provides the Option class for config file and command line parsing.
"""

__all__ = ['Option', 'parse_complex', 'parse_pair']

import os, sys

from configparser import ConfigParser
from optparse import OptionParser
from os.path import basename, exists

from .base import LIMIT


def parse_pair(s, separator, conv=int):
    """
    Parse a string such as "400x600" or "1.0,0.5" into a pair of values.
    The string is split at the first separator and both sides converted
    with conv. Returns None if the separator is missing or a side fails.
    """
    index = s.find(separator)
    if index < 0:
        return None

    left, right = s[:index], s[index + 1:]

    # int() and float() accept surrounding whitespace and digit underscores
    for side in (left, right):
        if side != side.strip() or '_' in side:
            return None

    try:
        return (conv(left), conv(right))
    except ValueError:
        return None


def parse_complex(s):
    """
    Parse a pair of floats separated by a comma as a complex number.
    """
    pair = parse_pair(s, ',', float)
    if pair is None:
        return None

    return complex(*pair)


class Option(object):

    def __init__(self, argv=None):

        argv = list(sys.argv[1:] if argv is None else argv)
        self.prog = basename(sys.argv[0]) or 'mandelbrot'

        usage = "%prog [--config filepath [--section name]] [options] " \
                "FILE WIDTHxHEIGHT UPPERLEFT LOWERRIGHT"
        epilog = """
          Writes a grayscale PNG of the Mandelbrot set. UPPERLEFT and
          LOWERRIGHT are complex corners given as RE,IM. Values exceeding
          the range specification are silently clipped to the respective
          minimum or maximum value.
          """
        epilog = " ".join([line.lstrip() for line in epilog.splitlines()])

        p = OptionParser(usage=usage, prog=self.prog, version="%prog 0.1.0", epilog=epilog)

        def _opt(parser, opt, t, h):
          if t is None:
            parser.add_option(opt, help=h, action="store_true", default=False)
          else:
            parser.add_option(opt, type=t, help=h, metavar="ARG")

        # corner points such as -1.5,1.0 must not be taken for options
        p.disable_interspersed_args()

        # allow options with underscore by replacing with dash
        for i in range(len(argv)):
            if argv[i].startswith('--'):
                name, sep, value = argv[i].partition('=')
                argv[i] = name.replace('_', '-') + sep + value

        # configure options
        _opt(p, "--num-threads", "string", "number of threads to use: auto")
        _opt(p, "--iterations", "int", f"iteration limit [1-{LIMIT}]: {LIMIT}")
        _opt(p, "--verbose", None, "show each band and its viewport")

        p.set_defaults(num_threads='auto', iterations=LIMIT)

        # optionally, override defaults from a config file
        self.__handle_config(p, argv)

        # process command-line arguments
        (opt, args) = p.parse_args(argv)

        if len(args) != 4:
            p.error("expected 4 arguments, got {}".format(len(args)))

        self.filename = args[0]

        self.bounds = parse_pair(args[1], 'x', int)
        if self.bounds is None:
            p.error("error parsing image dimensions: '{}'".format(args[1]))

        self.upper_left = parse_complex(args[2])
        if self.upper_left is None:
            p.error("error parsing upper left corner point: '{}'".format(args[2]))

        self.lower_right = parse_complex(args[3])
        if self.lower_right is None:
            p.error("error parsing lower right corner point: '{}'".format(args[3]))

        # clamp to minimum-maximum values
        self.iterations = max(1, min(LIMIT, opt.iterations))
        self.verbose = opt.verbose

        if opt.num_threads != 'auto':
            try:
                self.num_threads = max(1, int(opt.num_threads))
            except ValueError:
                p.error("option --num-threads: invalid value: '{}'".format(opt.num_threads))
        else:
            try:
                ncpu = int(
                    os.getenv('NUM_THREADS') or
                    os.cpu_count() or 1
                    )
            except ValueError:
                p.error("environment NUM_THREADS: invalid value: '{}'".format(
                    os.getenv('NUM_THREADS')))
            self.num_threads = max(1, ncpu)

        del opt, args


    @classmethod
    def __handle_config(cls, parser, argv):

        if len(argv) >= 1 and argv[0].startswith('--config'):
            try:
                (_, config_path) = argv[0].split('=', 1)
                del argv[0]
            except ValueError:
                if len(argv) < 2:
                    parser.error("--config option requires an argument")
                config_path = argv[1]
                del argv[1], argv[0]

            if len(argv) >= 1 and argv[0].startswith('--section'):
                try:
                    (_, section) = argv[0].split('=', 1)
                    del argv[0]
                except ValueError:
                    if len(argv) < 2:
                        parser.error("--section option requires an argument")
                    section = argv[1]
                    del argv[1], argv[0]
            else:
                section = 'common'

            if not exists(config_path):
                parser.error("no such file or directory: '{}'".format(config_path))

            config = ConfigParser(default_section=None, empty_lines_in_values=False)
            config.read(config_path)

            cls.__override_defaults(parser, config, 'common')
            if section != 'common':
                cls.__override_defaults(parser, config, section)


    @classmethod
    def __override_defaults(cls, parser, config, section):

        if not config.has_section(section):
            parser.error("no such section in config: '{}'".format(section))

        opt = dict()

        for key in ('iterations',):
            if config.has_option(section, key):
                try:
                    opt[key] = int(config.get(section, key))
                except ValueError:
                    parser.error("invalid integer value in config [{}]: {} = '{}'".format(
                        section, key, config.get(section, key)))

        for key in ('num_threads',):
            if config.has_option(section, key):
                opt[key] = str(config.get(section, key))

        if len(opt):
            parser.set_defaults(**opt)
