import os
import threading

import numpy as np
import pytest

from mandel import mandel_bands
from mandel.base import GeometryError, RenderError
from mandel.mandel_bands import (
    check_partition, plan_bands, render, render_parallel, split_rows,
)

BOUNDS = (64, 48)
UPPER_LEFT = complex(-2.0, 1.2)
LOWER_RIGHT = complex(1.0, -1.2)


@pytest.mark.parametrize("height", [1, 2, 7, 48, 100, 101])
@pytest.mark.parametrize("num_threads", [1, 2, 3, 8, 13, 200])
def test_split_rows_partitions_height(height, num_threads):
    seqs = split_rows(height, num_threads)

    assert len(seqs) <= num_threads
    assert seqs[0][0] == 0 and seqs[-1][1] == height
    rows = [row for top, stop in seqs for row in range(top, stop)]
    assert rows == list(range(height))
    check_partition(seqs, height)


def test_split_rows_band_sizes():
    assert split_rows(10, 3) == [(0, 4), (4, 8), (8, 10)]
    assert split_rows(10, 8) == [(0, 2), (2, 4), (4, 6), (6, 8), (8, 10)]


def test_split_rows_rejects_zero_threads():
    with pytest.raises(ValueError):
        split_rows(10, 0)


@pytest.mark.parametrize("seqs, message", [
    ([(0, 4), (5, 10)], "gap"),
    ([(0, 5), (4, 10)], "overlap"),
    ([(0, 4), (4, 8)], "cover"),
    ([(0, 4), (4, 4), (4, 10)], "empty"),
])
def test_check_partition_rejects_bad_layouts(seqs, message):
    with pytest.raises(RenderError, match=message):
        check_partition(seqs, 10)


def test_plan_bands_sub_viewports():
    bands = plan_bands((100, 200), complex(-1.0, 1.0), complex(1.0, -1.0), 4)

    assert [(b.top, b.stop) for b in bands] == [(0, 50), (50, 100), (100, 150), (150, 200)]
    assert bands[0].upper_left == complex(-1.0, 1.0)
    assert bands[0].lower_right == complex(1.0, 0.5)
    assert bands[1].upper_left == complex(-1.0, 0.5)
    assert bands[-1].lower_right == complex(1.0, -1.0)
    assert all(b.height == 50 for b in bands)


@pytest.mark.parametrize("bounds, upper_left, lower_right", [
    ((0, 10), complex(-1.0, 1.0), complex(1.0, -1.0)),
    ((10, 0), complex(-1.0, 1.0), complex(1.0, -1.0)),
    ((10, 10), complex(1.0, 1.0), complex(-1.0, -1.0)),
    ((10, 10), complex(-1.0, -1.0), complex(1.0, 1.0)),
    ((10, 10), complex(-1.0, 1.0), complex(-1.0, -1.0)),
    ((10, 10), complex(float("nan"), 1.0), complex(1.0, -1.0)),
])
def test_render_parallel_rejects_invalid_geometry(bounds, upper_left, lower_right):
    with pytest.raises(GeometryError):
        render_parallel(bounds, upper_left, lower_right, 2, use_fork=False)


@pytest.mark.parametrize("max_iters", [0, 256])
def test_render_parallel_rejects_iteration_limit(max_iters):
    with pytest.raises(ValueError):
        render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, 2, max_iters=max_iters, use_fork=False)


def test_render_known_pixels():
    pixels = np.zeros((4, 4), dtype=np.uint8)
    render(pixels, (4, 4), complex(-2.0, 2.0), complex(2.0, -2.0))

    # -2+2i escapes at iteration 1; the origin never escapes.
    assert pixels[0, 0] == 254
    assert pixels[2, 2] == 0


def test_render_checks_buffer_shape():
    pixels = np.zeros((4, 5), dtype=np.uint8)
    with pytest.raises(GeometryError):
        render(pixels, (4, 4), complex(-2.0, 2.0), complex(2.0, -2.0))


@pytest.mark.parametrize("use_fork", [False, True])
def test_render_parallel_independent_of_thread_count(use_fork):
    single = render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, 1, use_fork=use_fork)
    multi = render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, 8, use_fork=use_fork)

    assert single.shape == (BOUNDS[1], BOUNDS[0])
    assert single.dtype == np.uint8
    assert np.array_equal(single, multi)


def test_render_parallel_matches_sequential_render():
    expected = np.zeros((BOUNDS[1], BOUNDS[0]), dtype=np.uint8)
    render(expected, BOUNDS, UPPER_LEFT, LOWER_RIGHT)

    for num_threads in (3, 5, 48, 100):
        pixels = render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, num_threads, use_fork=False)
        assert np.array_equal(pixels, expected)

    # the viewport contains set members and escaping points
    assert (expected == 0).any() and (expected > 0).any()


def test_render_parallel_returns_read_only_buffer():
    pixels = render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, 4, use_fork=False)
    with pytest.raises(ValueError):
        pixels[0, 0] = 1


@pytest.mark.parametrize("use_fork", [False, True])
def test_worker_failure_fails_the_render(monkeypatch, use_fork):
    real_band = mandel_bands.mandelbrot_band

    def failing_band(pixels, bounds, top, upper_left, lower_right, max_iters):
        if top > 0:
            raise ZeroDivisionError("band exploded")
        real_band(pixels, bounds, top, upper_left, lower_right, max_iters)

    monkeypatch.setattr(mandel_bands, "mandelbrot_band", failing_band)

    with pytest.raises(RenderError, match="ZeroDivisionError: band exploded"):
        render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, 4, use_fork=use_fork)


def test_split_rows_empty_height():
    assert split_rows(0, 4) == []
    check_partition(split_rows(0, 4), 0)


@pytest.mark.parametrize("bounds", [
    (float("inf"), 10),
    (10, float("nan")),
    (10.5, 10),
    ("ten", 10),
])
def test_render_parallel_rejects_non_integer_bounds(bounds):
    with pytest.raises(GeometryError, match="bounds must be integers"):
        render_parallel(bounds, UPPER_LEFT, LOWER_RIGHT, 2, use_fork=False)


@pytest.mark.parametrize("use_fork", [False, True])
def test_large_worker_reports_do_not_block_the_render(monkeypatch, use_fork):
    def failing_band(pixels, bounds, top, upper_left, lower_right, max_iters):
        raise RuntimeError("x" * 200000)

    monkeypatch.setattr(mandel_bands, "mandelbrot_band", failing_band)

    outcome = list()

    def run():
        try:
            render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, 4, use_fork=use_fork)
        except RenderError as e:
            outcome.append(e)

    runner = threading.Thread(target=run, daemon=True)
    runner.start()
    runner.join(60)

    assert not runner.is_alive(), "render_parallel did not return"
    assert len(outcome) == 1
    assert str(outcome[0]).count("RuntimeError: xxxx") == 4


def test_worker_exit_without_report_fails_the_render(monkeypatch):
    real_band = mandel_bands.mandelbrot_band

    def exiting_band(pixels, bounds, top, upper_left, lower_right, max_iters):
        if top > 0:
            os._exit(3)
        real_band(pixels, bounds, top, upper_left, lower_right, max_iters)

    monkeypatch.setattr(mandel_bands, "mandelbrot_band", exiting_band)

    with pytest.raises(RenderError, match="exited with code 3"):
        render_parallel(BOUNDS, UPPER_LEFT, LOWER_RIGHT, 4, use_fork=True)
