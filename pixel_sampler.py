"""
pixel_sampler.py — Read any supported PNG pixel as an RGB444 value.

A SourceImage is the decoded PNG as handed over by Pillow: its descriptor
(bit depth, channel count, colour type), raw packed rows and PLTE
palette. ``sampler_for`` picks one PixelSampler class per image from the
(depth, channels, colour type) tuple; the converter then only calls
``sample(x, y)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from typing import Dict, List, Optional, Tuple, Type

import numpy as np
from PIL import Image

from color_model import ColorModel, RGB
from degas_errors import UnsupportedPixelFormat

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class ColorType(Enum):
    GRAY = "GRAY"
    GRAY_ALPHA = "GRAY_ALPHA"
    INDEXED = "PALETTE"
    RGB = "RGB"
    RGBA = "RGB_ALPHA"
    OTHER = "OTHER"


# Pillow mode -> (bit depth, channels, colour type)
_PIL_MODES = {
    "1": (1, 1, ColorType.GRAY),
    "L": (8, 1, ColorType.GRAY),
    "LA": (8, 2, ColorType.GRAY_ALPHA),
    "P": (8, 1, ColorType.INDEXED),
    "RGB": (8, 3, ColorType.RGB),
    "RGBA": (8, 4, ColorType.RGBA),
    "I;16": (16, 1, ColorType.GRAY),
    "I": (16, 1, ColorType.GRAY),
}


@dataclass
class SourceImage:
    width: int
    height: int
    bit_depth: int
    channels: int
    color_type: ColorType
    rows: List[bytes]
    palette: Optional[List[RGB]] = None
    info: Dict[str, str] = field(default_factory=dict)

    @property
    def descriptor(self) -> Tuple[int, int, ColorType]:
        return self.bit_depth, self.channels, self.color_type

    @classmethod
    def from_pil(cls, img: Image.Image, png_depth: Optional[int] = None) -> "SourceImage":
        """Wrap a decoded Pillow image.

        ``png_depth`` is the IHDR bit depth when known. Pillow widens 2 and
        4-bit samples (and 1-bit indices) to bytes; they are narrowed and
        re-packed here so the depth-specific samplers see the file's data.
        """
        depth, channels, ctype = _PIL_MODES.get(
            img.mode, (8, len(img.getbands()), ColorType.OTHER))
        width, height = img.size
        data = img.tobytes()
        stride = len(data) // height if height else 0
        rows = [data[y * stride:(y + 1) * stride] for y in range(height)]

        if png_depth and png_depth < 8 and img.mode in ("L", "P"):
            values = np.frombuffer(data, dtype=np.uint8).reshape(height, width)
            if img.mode == "L":
                # gray was scaled up by bit replication, indices were not
                values = values >> (8 - png_depth)
            rows = _pack_rows(values, png_depth)
            depth = png_depth
        elif png_depth and png_depth > 8:
            depth = png_depth

        palette = None
        if ctype is ColorType.INDEXED:
            flat = img.getpalette() or []
            palette = [tuple(flat[i:i + 3]) for i in range(0, len(flat) - 2, 3)]

        info = {"mode": img.mode, "format": str(img.format)}
        return cls(width, height, depth, channels, ctype, rows, palette, info)

    @classmethod
    def from_png(cls, data: bytes) -> "SourceImage":
        """Decode the contents of a PNG file, keeping its IHDR bit depth."""
        png_depth = data[24] if len(data) > 25 and data[12:16] == b"IHDR" else None
        with Image.open(BytesIO(data)) as img:
            img.load()
            return cls.from_pil(img, png_depth)


def _pack_rows(values: np.ndarray, depth: int) -> List[bytes]:
    """height x width samples -> PNG-style rows, MSB first, byte padded."""
    per_byte = 8 // depth
    height, width = values.shape
    padded = np.zeros((height, -(-width // per_byte) * per_byte), dtype=np.uint8)
    padded[:, :width] = values
    shifts = np.arange(per_byte - 1, -1, -1, dtype=np.uint8) * depth
    packed = np.bitwise_or.reduce(padded.reshape(height, -1, per_byte) << shifts, axis=2)
    return [row.tobytes() for row in packed.astype(np.uint8)]


# ---------------------------------------------------------------------
# Samplers
# ---------------------------------------------------------------------
class PixelSampler:
    depth = 8
    channels = 1
    color_type = ColorType.OTHER

    def __init__(self, source: SourceImage, model: ColorModel):
        self.source = source
        self.model = model

    def sample(self, x: int, y: int) -> int:
        return self.model.rgb444(*self.rgb8(x, y))

    def rgb8(self, x: int, y: int) -> RGB:
        raise NotImplementedError

    def _row(self, x: int, y: int) -> bytes:
        if not (0 <= x < self.source.width and 0 <= y < self.source.height):
            raise IndexError(
                f"pixel ({x},{y}) outside {self.source.width}x{self.source.height} image")
        return self.source.rows[y]

    def _value(self, x: int, y: int) -> int:
        """Read one (possibly sub-byte, MSB first) sample."""
        row = self._row(x, y)
        per_byte = 8 // self.depth
        shift = (per_byte - 1 - x % per_byte) * self.depth
        return (row[x // per_byte] >> shift) & ((1 << self.depth) - 1)


class GraySampler(PixelSampler):
    color_type = ColorType.GRAY

    def rgb8(self, x, y):
        g = self.model.expand_gray(self._value(x, y), self.depth)
        return g, g, g


class Gray1Sampler(GraySampler):
    depth = 1


class Gray2Sampler(GraySampler):
    depth = 2


class Gray4Sampler(GraySampler):
    depth = 4


class Gray8Sampler(GraySampler):
    depth = 8


class IndexedSampler(PixelSampler):
    color_type = ColorType.INDEXED

    def rgb8(self, x, y):
        idx = self._value(x, y)
        palette = self.source.palette
        if not palette or idx >= len(palette):
            raise IndexError(f"palette index {idx} at ({x},{y}) beyond "
                             f"{len(palette or ())} PLTE entries")
        return palette[idx]


class Indexed1Sampler(IndexedSampler):
    depth = 1


class Indexed2Sampler(IndexedSampler):
    depth = 2


class Indexed4Sampler(IndexedSampler):
    depth = 4


class Indexed8Sampler(IndexedSampler):
    depth = 8


class RGBSampler(PixelSampler):
    channels = 3
    color_type = ColorType.RGB

    def rgb8(self, x, y):
        row = self._row(x, y)
        i = x * 3
        return row[i], row[i + 1], row[i + 2]


class RGBASampler(PixelSampler):
    channels = 4
    color_type = ColorType.RGBA

    def rgb8(self, x, y):
        # alpha is ignored
        row = self._row(x, y)
        i = x * 4
        return row[i], row[i + 1], row[i + 2]


SAMPLERS: Dict[Tuple[int, int, ColorType], Type[PixelSampler]] = {
    (cls.depth, cls.channels, cls.color_type): cls
    for cls in (
        Gray1Sampler, Gray2Sampler, Gray4Sampler, Gray8Sampler,
        Indexed1Sampler, Indexed2Sampler, Indexed4Sampler, Indexed8Sampler,
        RGBSampler, RGBASampler,
    )
}


def sampler_for(source: SourceImage, model: ColorModel) -> PixelSampler:
    try:
        cls = SAMPLERS[source.descriptor]
    except KeyError:
        raise UnsupportedPixelFormat(*source.descriptor) from None
    return cls(source, model)


def sample_image(sampler: PixelSampler) -> Tuple[np.ndarray, int]:
    """Visit every pixel once.

    Returns the height x width matrix of RGB444 values and a bitmask with
    bit ``v`` set for every 8-bit component value ``v`` seen (used for the
    STe precision check).
    """
    src = sampler.source
    out = np.zeros((src.height, src.width), dtype=np.uint16)
    rgb444 = sampler.model.rgb444
    seen = 0
    for y in range(src.height):
        line = out[y]
        for x in range(src.width):
            r, g, b = sampler.rgb8(x, y)
            seen |= (1 << r) | (1 << g) | (1 << b)
            line[x] = rgb444(r, g, b)
    return out, seen


def describe_palette(source: SourceImage, model: ColorModel) -> None:
    """Verbose listing of the PNG colour look-up table."""
    if not source.palette:
        return
    logger.debug("PNG color look-up table has %d entries:", len(source.palette))
    for i, (r, g, b) in enumerate(source.palette):
        logger.debug("%3d #%02X%02X%02X $%03x", i, r, g, b, model.rgb444(r, g, b))
