# -*- coding: utf-8 -*-
"""
Provides auto-selection of the worker classes for multi-platform support.
"""

__all__ = ['USE_FORK', 'new_buffer', 'worker_classes']

import os, sys
import numpy as np

from multiprocessing import RawArray

# By default use threading on macOS and Windows. Use fork otherwise.
# On UNIX platforms, one may set an environment variable to override
# USE_FORK=0 or USE_FORK=1.

if sys.platform == 'win32':
    USE_FORK = 0
else:
    val = os.getenv('USE_FORK')
    if val is None or val == 'auto':
        USE_FORK = 0 if sys.platform == 'darwin' else 1
    else:
        USE_FORK = int(val)


def worker_classes(use_fork=USE_FORK):
    """
    Return the (Thread, Queue) pair for forked processes or threads.
    """
    if use_fork:
        import multiprocessing
        ctx = multiprocessing.get_context('fork')
        return ctx.Process, ctx.SimpleQueue

    import threading
    import queue
    return threading.Thread, queue.SimpleQueue


def new_buffer(height, width, use_fork=USE_FORK):
    """
    Allocate a zeroed (height, width) uint8 pixel buffer. Forked workers
    write through shared memory, so the buffer is backed by a RawArray.
    """
    if use_fork:
        shm_output = RawArray(np.ctypeslib.ctypes.c_uint8, int(height*width))
        output = np.ctypeslib.as_array(shm_output)
        return output.reshape((height, width))

    return np.zeros((height, width), dtype=np.uint8)


if __name__ == '__main__':
    print("use_fork: {}".format(USE_FORK))
