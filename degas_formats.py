"""
degas_formats.py — The six Degas image formats.

Every format stores 32000 bytes of interleaved bitplanes behind a 34-byte
header (2-byte big-endian id + 16 palette words). The PC variants keep
the same pixels run-length compressed, one scanline-plane at a time.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from degas_errors import UnsupportedDimensions

HEADER_SIZE = 34
PALETTE_WORDS = 16
PIXEL_BYTES = 32000
TILE_WIDTH = 16
COMPRESSED_FLAG = 0x8000


@dataclass(frozen=True)
class DegasFormat:
    name: str
    magic: int
    min_size: int
    width: int
    height: int
    log2_planes: int
    palette_size: int
    compressed: bool

    @property
    def planes(self) -> int:
        return 1 << self.log2_planes

    @property
    def max_colors(self) -> int:
        # monochrome still addresses 2 colours through its single plane
        return 1 << self.planes

    @property
    def plane_row_bytes(self) -> int:
        """Bytes of one bitplane for one scanline (40 or 80)."""
        return self.width // TILE_WIDTH * 2

    @property
    def row_bytes(self) -> int:
        return self.plane_row_bytes * self.planes

    @property
    def extension(self) -> str:
        return "." + self.name.lower()

    def variant(self, compressed: bool) -> "DegasFormat":
        """The raw (PIx) or compressed (PCx) sibling of this format."""
        return format_by_magic(self.magic & ~COMPRESSED_FLAG | (COMPRESSED_FLAG if compressed else 0))


FORMATS = (
    DegasFormat("PI1", 0x0000, 32034, 320, 200, 2, 16, False),
    DegasFormat("PC1", 0x8000, 1634, 320, 200, 2, 16, True),
    DegasFormat("PI2", 0x0001, 32034, 640, 200, 1, 4, False),
    DegasFormat("PC2", 0x8001, 839, 640, 200, 1, 4, True),
    DegasFormat("PI3", 0x0002, 32034, 640, 400, 0, 0, False),
    DegasFormat("PC3", 0x8002, 854, 640, 400, 0, 0, True),
)

_BY_MAGIC = {fmt.magic: fmt for fmt in FORMATS}
_BY_NAME = {fmt.name: fmt for fmt in FORMATS}


def format_by_magic(magic: int) -> Optional[DegasFormat]:
    return _BY_MAGIC.get(magic)


def format_by_name(name: str) -> DegasFormat:
    return _BY_NAME[name.upper()]


def format_for_size(width: int, height: int, compressed: bool = False) -> DegasFormat:
    for fmt in FORMATS:
        if fmt.width == width and fmt.height == height and fmt.compressed == compressed:
            return fmt
    raise UnsupportedDimensions(width, height)


def compression_from_path(path) -> Optional[bool]:
    """Guess compression from a Degas file extension.

    ``.pc1``-``.pc3`` mean compressed; any other 3-letter extension means
    raw. Returns None when the path has no usable extension.
    """
    ext = Path(path).suffix
    if len(ext) != 4:
        return None
    return ext[1].lower() == "p" and ext[2].lower() == "c" and ext[3] in "123"
