"""
4-bit indexed BMP encoder for sandpile states.

Layout (all fields little-endian):
    14 byte file header, 40 byte BITMAPINFOHEADER, 16 x 4 byte palette,
    pixel rows stored bottom-up, two pixels per byte (high nibble first),
    each row zero-padded to a multiple of 4 bytes.

Grid row ``y`` of the array lands at stored row ``height - 1 - y``.
"""

from __future__ import annotations

import os
import struct
from pathlib import Path

import numpy as np

BITS_PER_PIXEL = 4
FILE_HEADER = struct.Struct("<2sIHHI")
INFO_HEADER = struct.Struct("<IiiHHIIiiII")
PALETTE_ENTRIES = 16
COLORS_USED = 5
MAX_INDEX = COLORS_USED - 1

# Raw palette quads as written to the file, indices 0-4; the rest stay zero.
PALETTE = np.zeros((PALETTE_ENTRIES, 4), dtype=np.uint8)
PALETTE[:COLORS_USED] = [
    (255, 255, 255, 0),
    (0, 255, 0, 0),
    (255, 0, 255, 0),
    (0, 255, 255, 0),
    (0, 0, 0, 0),
]

PIXEL_OFFSET = FILE_HEADER.size + INFO_HEADER.size + PALETTE.nbytes


def row_stride(width: int) -> int:
    """Bytes per stored row: ``width`` nibbles rounded up to 32 bits."""
    return ((width * BITS_PER_PIXEL + 31) // 32) * 4


def color_indices(grains: np.ndarray) -> np.ndarray:
    """Palette index per cell: the grain count, saturated at 4."""
    grains = np.asarray(grains)
    return np.minimum(grains, np.asarray(MAX_INDEX, dtype=grains.dtype)).astype(np.uint8)


def pack_pixels(grains: np.ndarray) -> bytes:
    """Pack a ``[y, x]`` grain array into the bottom-up 4-bit pixel array."""
    indices = color_indices(grains)
    height, width = indices.shape
    if width % 2:
        indices = np.pad(indices, ((0, 0), (0, 1)))
    packed = (indices[:, 0::2] << 4) | indices[:, 1::2]

    rows = np.zeros((height, row_stride(width)), dtype=np.uint8)
    rows[:, : packed.shape[1]] = packed
    return rows[::-1].tobytes()


def encode_bitmap(grains: np.ndarray) -> bytes:
    """Return the complete BMP file contents for ``grains``."""
    grains = np.asarray(grains)
    if grains.ndim != 2:
        raise ValueError(f"expected a 2D grain array, got shape {grains.shape}")
    height, width = grains.shape
    pixels = pack_pixels(grains)
    image_size = len(pixels)

    file_header = FILE_HEADER.pack(b"BM", PIXEL_OFFSET + image_size, 0, 0, PIXEL_OFFSET)
    info_header = INFO_HEADER.pack(
        INFO_HEADER.size,
        width,
        height,
        1,  # planes
        BITS_PER_PIXEL,
        0,  # BI_RGB
        image_size,
        0,
        0,
        COLORS_USED,
        0,
    )
    return b"".join((file_header, info_header, PALETTE.tobytes(), pixels))


def write_bitmap(path: str | os.PathLike[str], grains: np.ndarray) -> Path:
    """Encode ``grains`` and write it to ``path``. Raises ``OSError`` on failure."""
    data = encode_bitmap(grains)
    path = Path(path)
    with open(path, "wb") as fh:
        fh.write(data)
    return path


__all__ = [
    "PALETTE",
    "PIXEL_OFFSET",
    "color_indices",
    "encode_bitmap",
    "pack_pixels",
    "row_stride",
    "write_bitmap",
]
