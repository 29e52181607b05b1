"""
palette_builder.py — Build the Degas palette of a sampled image.

1. histogram over the 4096 RGB444 values (one pass)
2. keep the used colours, most used first
3. refuse more colours than the format's planes can address
4. re-order by luminance so index 0 is the darkest colour
5. pad to the format's palette size (white in slot 0 when nothing is used)
6. reverse map RGB444 -> index
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from color_model import luminance, ror444
from degas_errors import TooManyColors
from degas_formats import DegasFormat, PALETTE_WORDS

logger = logging.getLogger(__name__)

WHITE444 = 0xFFF
BLACK444 = 0x000
# monochrome displays paper (index 0) and ink (index 1)
MONO_COLORS = (WHITE444, BLACK444)


@dataclass(frozen=True)
class PaletteEntry:
    color: int
    count: int


@dataclass
class Palette:
    entries: List[PaletteEntry]
    colors: List[int]
    lookup: Dict[int, int] = field(default_factory=dict)

    def __len__(self):
        return len(self.entries)

    def words(self) -> List[int]:
        """The 16 hardware palette words of the file header."""
        words = [ror444(c) for c in self.colors]
        return words + [0] * (PALETTE_WORDS - len(words))

    def index_matrix(self, samples: np.ndarray) -> np.ndarray:
        """Map an RGB444 sample matrix to palette indices."""
        table = np.zeros(0x1000, dtype=np.uint8)
        for rgb, idx in self.lookup.items():
            table[rgb] = idx
        return table[samples]


def color_histogram(samples: np.ndarray) -> np.ndarray:
    """Occurrences of each of the 4096 RGB444 values."""
    return np.bincount(samples.ravel(), minlength=0x1000)


def build_palette(samples: np.ndarray, fmt: DegasFormat) -> Palette:
    hist = color_histogram(samples)

    # most used first; equal counts keep ascending RGB order
    used = [int(c) for c in np.flatnonzero(hist)]
    used.sort(key=lambda c: -hist[c])
    for i, c in enumerate(used):
        logger.debug("color #%02d $%03X %+6d", i, c, hist[c])

    if len(used) > fmt.max_colors:
        raise TooManyColors(len(used), fmt.max_colors)

    used.sort(key=luminance)
    entries = [PaletteEntry(c, int(hist[c])) for c in used]

    colors = list(used[:fmt.palette_size])
    if fmt.palette_size and not colors:
        colors.append(WHITE444)
    colors += [BLACK444] * (fmt.palette_size - len(colors))

    if fmt.palette_size:
        lookup = {c: i for i, c in enumerate(used)}
    else:
        lookup = _mono_lookup(used)
    return Palette(entries, colors, lookup)


def _mono_lookup(used: List[int]) -> Dict[int, int]:
    """Assign the (at most two) colours of a monochrome image to paper/ink.

    With two colours the darker one is ink. A single colour is ink when it
    is darker than mid-gray.
    """
    if len(used) == 2:
        return {used[0]: 1, used[1]: 0}
    half = luminance(WHITE444) // 2
    return {c: (1 if luminance(c) < half else 0) for c in used}
