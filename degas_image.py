"""
degas_image.py — Read and write Degas PI1/PI2/PI3/PC1/PC2/PC3 files.

Layout (big-endian):
    0   2   format id (0000/0001/0002, +8000 when compressed)
    2  32   16 palette words
    34  ..  32000 bytes of interleaved bitplanes, or their RLE stream
"""

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import rle_codec
from degas_errors import FormatError
from degas_formats import (
    DegasFormat, HEADER_SIZE, PALETTE_WORDS, PIXEL_BYTES, format_by_magic,
)
from pixel_sampler import PNG_SIGNATURE, SourceImage

logger = logging.getLogger(__name__)

DEGAS_HEADER_FMT = ">H16H"
# Degas Elite colour-cycling block written after PCx data:
# 4 left limits, 4 right limits, 4 directions (1 = off), 4 delays
ANIMATION_TRAILER = struct.pack(">16H", *([0] * 8 + [1] * 4 + [0] * 4))


@dataclass
class DegasImage:
    format: DegasFormat
    palette: List[int]
    pixels: bytes

    def __post_init__(self):
        if len(self.palette) != PALETTE_WORDS:
            raise ValueError(f"palette must hold {PALETTE_WORDS} words, got {len(self.palette)}")
        if len(self.pixels) != PIXEL_BYTES:
            raise ValueError(f"pixel data must be {PIXEL_BYTES} bytes, got {len(self.pixels)}")

    @property
    def width(self) -> int:
        return self.format.width

    @property
    def height(self) -> int:
        return self.format.height

    def header(self, fmt: Optional[DegasFormat] = None) -> bytes:
        fmt = fmt or self.format
        return struct.pack(DEGAS_HEADER_FMT, fmt.magic, *self.palette)

    def to_bytes(self, compressed: Optional[bool] = None) -> bytes:
        """Serialise, as this image's format or its raw/compressed sibling."""
        fmt = self.format if compressed is None else self.format.variant(compressed)
        if fmt.compressed:
            return self.header(fmt) + rle_codec.compress(self.pixels, fmt) + ANIMATION_TRAILER
        return self.header(fmt) + self.pixels

    def save(self, path, compressed: Optional[bool] = None) -> int:
        data = self.to_bytes(compressed)
        Path(path).write_bytes(data)
        return len(data)


def parse_degas(data: bytes, name: str = "<bytes>") -> DegasImage:
    if len(data) < HEADER_SIZE:
        raise FormatError(f"file length ({len(data)}) is too short for a Degas header -- {name}")

    fields = struct.unpack(DEGAS_HEADER_FMT, data[:HEADER_SIZE])
    fmt = format_by_magic(fields[0])
    if fmt is None:
        raise FormatError(f"invalid image format (id ${fields[0]:04X}) -- {name}")
    if len(data) < fmt.min_size:
        raise FormatError(f"file length ({len(data)}) is too short for {fmt.name} image -- {name}")

    if fmt.compressed:
        pixels, end = rle_codec.decompress(data, fmt, HEADER_SIZE)
    else:
        end = HEADER_SIZE + PIXEL_BYTES
        pixels = data[HEADER_SIZE:end]
    if len(data) > end:
        logger.debug("%s: ignoring %d trailing bytes", name, len(data) - end)

    return DegasImage(fmt, list(fields[1:]), bytes(pixels))


def load_image(path) -> Union[SourceImage, DegasImage]:
    """Open a PNG or a Degas file, telling them apart by the PNG signature."""
    path = Path(path)
    data = path.read_bytes()
    if data.startswith(PNG_SIGNATURE):
        try:
            return SourceImage.from_png(data)
        except (OSError, SyntaxError) as err:
            raise FormatError(f"invalid PNG image ({err}) -- {path.name}") from err
    return parse_degas(data, path.name)
