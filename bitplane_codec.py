"""
bitplane_codec.py — Palette index matrix <-> interleaved ST bitplanes.

Each scanline is cut into 16-pixel tiles. A tile is stored as one
big-endian word per plane, plane 0 first; bit 15 of every word is the
leftmost pixel. All the words of a tile come before the next tile.
"""

import numpy as np

from degas_formats import TILE_WIDTH


def pack(indices: np.ndarray, log2_planes: int) -> bytes:
    """height x width index matrix -> width*height*planes/8 bytes."""
    planes = 1 << log2_planes
    height, width = indices.shape
    tiles = indices.astype(np.uint8).reshape(height, width // TILE_WIDTH, TILE_WIDTH)
    # bits[h, tile, plane, 16]
    bits = np.stack([(tiles >> z) & 1 for z in range(planes)], axis=2)
    words = np.packbits(bits, axis=-1, bitorder="big")
    return words.tobytes()


def unpack(data: bytes, width: int, height: int, log2_planes: int) -> np.ndarray:
    """Inverse of ``pack``: rebuild the height x width index matrix."""
    planes = 1 << log2_planes
    words = np.frombuffer(data, dtype=np.uint8).reshape(height, width // TILE_WIDTH, planes, 2)
    bits = np.unpackbits(words, axis=-1, bitorder="big")
    indices = np.zeros((height, width // TILE_WIDTH, TILE_WIDTH), dtype=np.uint8)
    for z in range(planes):
        indices |= bits[:, :, z, :] << z
    return indices.reshape(height, width)


def split_planes(data: bytes, width: int, height: int, log2_planes: int) -> np.ndarray:
    """De-interleave to [row, plane, plane_row_bytes] (the RLE unit)."""
    planes = 1 << log2_planes
    words = np.frombuffer(data, dtype=np.uint8).reshape(height, width // TILE_WIDTH, planes, 2)
    return words.transpose(0, 2, 1, 3).reshape(height, planes, width // TILE_WIDTH * 2)


def join_planes(rows: np.ndarray, width: int, height: int, log2_planes: int) -> bytes:
    """Inverse of ``split_planes``."""
    planes = 1 << log2_planes
    words = rows.reshape(height, planes, width // TILE_WIDTH, 2)
    return np.ascontiguousarray(words.transpose(0, 2, 1, 3)).tobytes()
