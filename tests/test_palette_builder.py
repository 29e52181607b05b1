import numpy as np
import pytest

from color_model import luminance, ror444
from degas_errors import TooManyColors
from degas_formats import format_by_name
from palette_builder import build_palette, color_histogram

PI1 = format_by_name("PI1")
PI2 = format_by_name("PI2")
PI3 = format_by_name("PI3")


def samples_of(colors, repeat=1):
    return np.array([c for c in colors for _ in range(repeat)], dtype=np.uint16).reshape(1, -1)


def test_histogram_counts_every_pixel():
    hist = color_histogram(samples_of([0x123, 0x123, 0xFFF]))
    assert hist.shape == (0x1000,)
    assert hist[0x123] == 2
    assert hist[0xFFF] == 1
    assert hist.sum() == 3


@pytest.mark.parametrize("fmt", [PI1, PI2, PI3])
def test_capacity_is_accepted(fmt):
    colors = [i * 0x111 for i in range(fmt.max_colors)]
    palette = build_palette(samples_of(colors), fmt)
    assert len(palette) == fmt.max_colors
    assert len(palette.colors) == fmt.palette_size


@pytest.mark.parametrize("fmt", [PI1, PI2, PI3])
def test_capacity_plus_one_fails(fmt):
    colors = list(range(fmt.max_colors + 1))
    with pytest.raises(TooManyColors) as info:
        build_palette(samples_of(colors), fmt)
    assert info.value.count == fmt.max_colors + 1
    assert info.value.capacity == fmt.max_colors


def test_empty_image_pads_white_then_black():
    empty = np.zeros((0, 0), dtype=np.uint16)
    palette = build_palette(empty, PI1)
    assert len(palette) == 0
    assert palette.colors == [0xFFF] + [0] * 15
    assert palette.words()[:2] == [0xFFF, 0]
    assert build_palette(empty, PI2).colors == [0xFFF, 0, 0, 0]
    assert build_palette(empty, PI3).words() == [0] * 16


def test_unused_slots_are_black():
    palette = build_palette(samples_of([0x0E0, 0x00E]), PI1)
    assert palette.colors[2:] == [0] * 14


def test_luminance_order_and_lookup():
    rng = np.random.default_rng(5)
    colors = [int(c) for c in rng.choice(0x1000, size=16, replace=False)]
    counts = rng.integers(1, 50, size=16)
    samples = np.concatenate([[c] * n for c, n in zip(colors, counts)]).astype(np.uint16)
    palette = build_palette(samples.reshape(1, -1), PI1)

    keys = [luminance(c) for c in palette.colors]
    assert keys == sorted(keys)
    assert keys[0] == min(luminance(c) for c in colors)
    assert sorted(palette.colors) == sorted(colors)
    for i, c in enumerate(palette.colors):
        assert palette.lookup[c] == i
    assert sum(e.count for e in palette.entries) == samples.size


def test_equal_luminance_keeps_frequency_order():
    # 0x200 and 0x010 both weigh 4; the more used one comes first
    samples = samples_of([0x200] + [0x010] * 3)
    palette = build_palette(samples, PI2)
    assert palette.colors[:2] == [0x010, 0x200]


def test_index_matrix():
    samples = np.array([[0xEEE, 0x000], [0x000, 0x700]], dtype=np.uint16)
    palette = build_palette(samples, PI2)
    assert palette.colors == [0x000, 0x700, 0xEEE, 0]
    assert palette.index_matrix(samples).tolist() == [[2, 0], [0, 1]]


def test_palette_words_are_rotated():
    palette = build_palette(samples_of([0xEEE, 0x123]), PI1)
    assert palette.words()[:2] == [ror444(0x123), 0x777]
    assert len(palette.words()) == 16


def test_monochrome_darker_color_is_ink():
    palette = build_palette(samples_of([0xEEE, 0x000]), PI3)
    assert palette.lookup == {0x000: 1, 0xEEE: 0}
    assert build_palette(samples_of([0xEEE]), PI3).lookup == {0xEEE: 0}
    assert build_palette(samples_of([0x111]), PI3).lookup == {0x111: 1}


def test_ste_levels_sort_by_linear_value():
    # register words would order these the other way round
    palette = build_palette(samples_of([0x200, 0x100]), PI1)
    assert palette.colors[:2] == [0x100, 0x200]
    assert palette.words()[:2] == [0x800, 0x100]
