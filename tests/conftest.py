import struct
import zlib
from typing import List, Tuple

import numpy as np
import pytest
from PIL import Image

from color_model import ColorModel, DEFAULT_MODE
from pixel_sampler import PNG_SIGNATURE


def stf_colors(n: int) -> List[Tuple[int, int, int]]:
    """n distinct 8-bit colours that survive the default STf mode exactly."""
    model = ColorModel(DEFAULT_MODE)
    out = []
    for i in range(n):
        r, g, b = i & 7, (i >> 3) & 7, (i >> 6) & 7
        out.append(model.rgb8((r << 9) | (g << 5) | (b << 1)))
    return out


def pattern_image(width: int, height: int, colors) -> Image.Image:
    """Stripes using every colour of ``colors`` at least once."""
    pal = np.array(colors, dtype=np.uint8)
    xs = np.arange(width) // 20
    ys = np.arange(height)
    idx = (xs[None, :] + ys[:, None]) % len(colors)
    return Image.fromarray(pal[idx])


@pytest.fixture
def sixteen_color_image():
    return pattern_image(320, 200, stf_colors(16))


def png_bytes(width: int, height: int, depth: int, color_type: int, rows, plte: bytes = b"") -> bytes:
    """A minimal PNG file with the given IHDR depth and colour type.

    ``rows`` are already packed scanlines (filter type 0 is prepended).
    """
    def chunk(tag, body):
        crc = zlib.crc32(tag + body) & 0xFFFFFFFF
        return struct.pack(">I", len(body)) + tag + body + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, depth, color_type, 0, 0, 0)
    out = PNG_SIGNATURE + chunk(b"IHDR", ihdr)
    if plte:
        out += chunk(b"PLTE", plte)
    idat = zlib.compress(b"".join(b"\x00" + row for row in rows))
    return out + chunk(b"IDAT", idat) + chunk(b"IEND", b"")
