"""
color_model.py — 8-bit RGB <-> 12-bit RGB444 conversion for STf/STe palettes.

RGB444 values are plain 4-bit-per-channel integers (0xRGB). The Atari
colour registers store each nibble rotated right by one bit: the STe's
extra low bit lives in bit 3 so that STf software (which only knows bits
0-2) keeps working. ``STE_ORDER`` / ``STE_LINEAR`` do that rotation.

A ColorModel is built once per conversion from a ColorMode and never
changes afterwards.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

STF_MASK = 0xE0
STE_MASK = 0xF0
FILL_POLICIES = ("zero", "replicate", "full")

# linear nibble -> register nibble, and back
STE_ORDER = tuple(((c & 1) << 3) | (c >> 1) for c in range(16))
STE_LINEAR = tuple(((c << 1) & 0xE) | (c >> 3) for c in range(16))


def ror444(rgb4: int) -> int:
    """RGB444 value -> hardware palette word."""
    return (STE_ORDER[(rgb4 >> 8) & 15] << 8) | (STE_ORDER[(rgb4 >> 4) & 15] << 4) | STE_ORDER[rgb4 & 15]


def rol444(word: int) -> int:
    """Hardware palette word -> RGB444 value."""
    return (STE_LINEAR[(word >> 8) & 15] << 8) | (STE_LINEAR[(word >> 4) & 15] << 4) | STE_LINEAR[word & 15]


def split444(rgb4: int) -> RGB:
    return (rgb4 >> 8) & 15, (rgb4 >> 4) & 15, rgb4 & 15


def luminance(rgb4: int) -> int:
    """Sort key for palette ordering: 2*R + 4*G + B on linear 4-bit components."""
    # linear, not register order: STe low bits count as the least significant
    r, g, b = split444(rgb4)
    return 2 * r + 4 * g + b


@dataclass(frozen=True)
class ColorMode:
    bits: int = 3
    fill: str = "replicate"

    def __post_init__(self):
        if self.bits not in (3, 4):
            raise ValueError(f"color mode bits must be 3 or 4, got {self.bits}")
        if self.fill not in FILL_POLICIES:
            raise ValueError(f"unknown fill policy -- {self.fill}")

    @property
    def is_ste(self) -> bool:
        return self.bits == 4

    @property
    def name(self) -> str:
        base = "ste" if self.is_ste else "stf"
        return base if self.fill == "replicate" else f"{base}-{self.fill}"


COLOR_MODES: Dict[str, ColorMode] = {
    mode.name: mode
    for mode in (ColorMode(bits, fill) for bits in (3, 4) for fill in FILL_POLICIES)
}
DEFAULT_MODE = COLOR_MODES["stf"]


def _expand(value: int, bits: int, fill: str) -> int:
    """Widen a ``bits``-wide component to 8 bits under a fill policy."""
    top = (1 << bits) - 1
    if fill == "zero":
        return value << (8 - bits)
    if fill == "full":
        return (value * 255 + top // 2) // top
    # replicate the pattern from the left until 8 bits are filled
    out, filled = 0, 0
    while filled < 8:
        out = (out << bits) | value
        filled += bits
    return out >> (filled - 8)


def _ste_only_levels() -> int:
    """Bitmask of 8-bit values an STe palette produces and an STf one can't."""
    stf = {_expand(v, 3, fill) for v in range(8) for fill in FILL_POLICIES}
    mask = 0
    for n in range(1, 16, 2):
        for level in (_expand(n, 4, "replicate"), _expand(n, 4, "zero")):
            if level not in stf:
                mask |= 1 << level
    return mask


STE_ONLY_LEVELS = _ste_only_levels()


class ColorModel:
    """Lookup tables for one colour mode.

    ``expand4to8`` takes a component value of the mode's width: 0..7 in
    the 3-bit modes (7 expands to 0xE0 with zero fill, 0xFF otherwise) and
    0..15 in the STe modes. ``rgb8`` works on linear RGB444 nibbles, whose
    top three bits are the 3-bit value.
    """

    def __init__(self, mode: ColorMode = DEFAULT_MODE):
        self.mode = mode
        self.mask = STE_MASK if mode.is_ste else STF_MASK
        self.expand_table: List[int] = [_expand(v, mode.bits, mode.fill) for v in range(1 << mode.bits)]
        drop = 4 - mode.bits
        self._nibble_table = [self.expand_table[n >> drop] for n in range(16)]
        self.quantize_table: List[int] = [(b & self.mask) >> 4 for b in range(256)]
        self._gray_tables = {
            depth: [_expand(v, depth, mode.fill) for v in range(1 << depth)]
            for depth in (1, 2, 4)
        }

    def __repr__(self):
        return f"ColorModel({self.mode.name})"

    def expand4to8(self, value: int) -> int:
        return self.expand_table[value & (len(self.expand_table) - 1)]

    def quantize8to4(self, byte: int) -> int:
        return self.quantize_table[byte & 255]

    def expand_gray(self, value: int, depth: int) -> int:
        """N-bit gray sample -> 8-bit gray under the active fill policy."""
        if depth == 8:
            return value
        return self._gray_tables[depth][value]

    def rgb444(self, r: int, g: int, b: int) -> int:
        q = self.quantize_table
        return (q[r] << 8) | (q[g] << 4) | q[b]

    def rgb8(self, rgb4: int) -> RGB:
        e = self._nibble_table
        return e[(rgb4 >> 8) & 15], e[(rgb4 >> 4) & 15], e[rgb4 & 15]

    # ---- STe detection ----

    def loses_ste_bits(self, seen_levels: int) -> bool:
        """True when a 3-bit mode meets an STe-only component level.

        ``seen_levels`` has bit ``v`` set for every 8-bit component value
        ``v`` found in the source.
        """
        return not self.mode.is_ste and bool(seen_levels & STE_ONLY_LEVELS)

    def palette_has_ste_bits(self, words) -> bool:
        return not self.mode.is_ste and any(w & 0x888 for w in words)

    def warn_ste(self, what: str) -> None:
        logger.warning("%s uses STe colors but %s mode keeps only 3 bits per component "
                       "(use --ste to keep them)", what, self.mode.name)
