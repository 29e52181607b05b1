"""
rle_codec.py — Run-length coding of PC1/PC2/PC3 pixel data.

Control byte c:
    00..7f  copy the next c+1 bytes                [1..128]
    80..ff  repeat the next byte 257-c times       [2..129]

Every scanline of every bitplane is coded on its own, so a run never
crosses a row or a plane.
"""

import logging
from typing import Tuple

import numpy as np

import bitplane_codec
from degas_errors import RLEOverflow, RLETruncated
from degas_formats import DegasFormat

logger = logging.getLogger(__name__)

MAX_COPY = 128
MAX_FILL = 129


def _emit_copy(out: bytearray, data: bytes) -> None:
    for i in range(0, len(data), MAX_COPY):
        chunk = data[i:i + MAX_COPY]
        out.append(len(chunk) - 1)
        out += chunk


def _emit_fill(out: bytearray, value: int, length: int) -> None:
    while length >= 2:
        n = length
        if n > MAX_FILL:
            # 129+1 would leave a single byte that cannot be a fill
            n = MAX_FILL - 1 if n == MAX_FILL + 1 else MAX_FILL
        out.append(257 - n)
        out.append(value)
        length -= n
    assert length == 0


def encode_row(raw: bytes) -> bytes:
    """Compress one scanline-plane."""
    out = bytearray()
    n = len(raw)
    i = start = 0
    while i < n:
        value = raw[i]
        k = i + 1
        while k < n and raw[k] == value:
            k += 1
        if k - i >= 2:
            if i > start:
                _emit_copy(out, raw[start:i])
            _emit_fill(out, value, k - i)
            start = k
        i = k
    _emit_copy(out, raw[start:n])
    return bytes(out)


def decode_row(data: bytes, size: int, offset: int = 0) -> Tuple[bytes, int]:
    """Expand exactly ``size`` bytes starting at ``data[offset]``.

    Returns the row and the offset of the first unread byte.
    """
    out = bytearray()
    pos = offset
    while len(out) < size:
        if pos >= len(data):
            raise RLETruncated(f"compressed data ends at offset {pos} "
                               f"with {len(out)}/{size} bytes decoded")
        code = data[pos]
        pos += 1
        count = code + 1 if code < 128 else 257 - code
        if len(out) + count > size:
            kind = "copy" if code < 128 else "repeat"
            raise RLEOverflow(f"{kind} of {count} at offset {pos - 1} overflows "
                              f"row ({len(out)}+{count} > {size})")
        if code < 128:
            chunk = data[pos:pos + count]
            if len(chunk) < count:
                raise RLETruncated(f"copy of {count} at offset {pos - 1} "
                                   f"has only {len(chunk)} bytes")
            out += chunk
            pos += count
        else:
            if pos >= len(data):
                raise RLETruncated(f"repeat at offset {pos - 1} has no value byte")
            out += bytes((data[pos],)) * count
            pos += 1
    return bytes(out), pos


# ---------------------------------------------------------------------
# Whole image
# ---------------------------------------------------------------------
def compress(pixels: bytes, fmt: DegasFormat) -> bytes:
    """Interleaved 32000-byte pixel data -> PCx stream."""
    rows = bitplane_codec.split_planes(pixels, fmt.width, fmt.height, fmt.log2_planes)
    out = bytearray()
    for y in range(fmt.height):
        for z in range(fmt.planes):
            out += encode_row(rows[y, z].tobytes())
    logger.debug("%s: %d bytes compressed to %d", fmt.name, len(pixels), len(out))
    return bytes(out)


def decompress(data: bytes, fmt: DegasFormat, offset: int = 0) -> Tuple[bytes, int]:
    """PCx stream at ``data[offset]`` -> interleaved pixel data.

    Returns the pixels and the offset just past the compressed stream.
    """
    size = fmt.plane_row_bytes
    rows = np.zeros((fmt.height, fmt.planes, size), dtype=np.uint8)
    pos = offset
    for y in range(fmt.height):
        for z in range(fmt.planes):
            try:
                row, pos = decode_row(data, size, pos)
            except (RLEOverflow, RLETruncated) as err:
                raise type(err)(f"{fmt.name} row {y} plane {z}: {err}") from err
            rows[y, z] = np.frombuffer(row, dtype=np.uint8)
    return bitplane_codec.join_planes(rows, fmt.width, fmt.height, fmt.log2_planes), pos
