"""
Copyright (C) 2012-2023, Leif Theden <leif.theden@gmail.com>

This file is part of tmxregion.

tmxregion is free software: you can redistribute it and/or modify
it under the terms of the GNU Lesser General Public License as
published by the Free Software Foundation, either version 3 of the
License, or (at your option) any later version.

tmxregion is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Lesser General Public License for more details.

You should have received a copy of the GNU Lesser General Public
License along with tmxregion.  If not, see <https://www.gnu.org/licenses/>.

"""
from __future__ import annotations

import binascii
import gzip
import logging
import struct
import zlib
from base64 import b64decode
from collections import namedtuple
from itertools import product
from typing import List, Optional, Sequence, Tuple

from .errors import ParseError, UnresolvedReferenceError, UnsupportedEncodingError

__all__ = (
    "TileFlags",
    "decode_gid",
    "find_tileset",
    "unpack_gids",
    "GID_TRANS_FLIPX",
    "GID_TRANS_FLIPY",
    "GID_TRANS_ROT",
    "GID_TRANS_HEXROT",
    "TILE_ID_MASK",
)

logger = logging.getLogger(__name__)

# Tiled gid flags
GID_TRANS_FLIPX = 1 << 31
GID_TRANS_FLIPY = 1 << 30
GID_TRANS_ROT = 1 << 29
GID_TRANS_HEXROT = 1 << 28
TILE_ID_MASK = 0x1FFFFFFF

flag_names = (
    "flipped_horizontally",
    "flipped_vertically",
    "flipped_diagonally",
    "rotated_hexagonal",
)

TileFlags = namedtuple("TileFlags", flag_names)
empty_flags = TileFlags(False, False, False, False)

# every combination of the four flag bits, indexed by raw_gid >> 28
_flag_table = tuple(
    TileFlags(h, v, d, r) for h, v, d, r in product((False, True), repeat=4)
)


def decode_gid(raw_gid: int) -> Tuple[int, TileFlags]:
    """Decode a GID from TMX data.

    Args:
        raw_gid (int): GID, as reported by Tiled.

    Returns:
        Tuple[int, TileFlags]: Tuple of the GID without flip flags, and TileFlags object

    """
    return raw_gid & TILE_ID_MASK, _flag_table[(raw_gid >> 28) & 0xF]


def _parse_csv(text: str) -> List[int]:
    gids = list()
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        if not (token.isascii() and token.isdigit()):
            msg = 'invalid CSV layer data: "{0}"'.format(token)
            logger.debug(msg)
            raise ParseError(msg, token)
        gids.append(int(token))
    return gids


def _parse_base64(text: str, compression: Optional[str]) -> List[int]:
    try:
        data = b64decode(text.strip(), validate=False)
    except (binascii.Error, ValueError) as error:
        raise ParseError("invalid base64 layer data") from error

    try:
        if compression == "gzip":
            data = gzip.decompress(data)
        elif compression == "zlib":
            data = zlib.decompress(data)
        elif compression:
            raise UnsupportedEncodingError(
                "layer compression {} is not supported.".format(compression)
            )
    except (OSError, EOFError, zlib.error) as error:
        raise ParseError(
            "cannot decompress {} layer data".format(compression)
        ) from error

    if len(data) % 4:
        raise ParseError(
            "layer data length {} is not a multiple of 4 bytes".format(len(data))
        )
    fmt = "<%dL" % (len(data) // 4)
    return list(struct.unpack(fmt, data))


def unpack_gids(
    text: str,
    encoding: Optional[str] = "csv",
    compression: Optional[str] = None,
) -> List[int]:
    """Return all raw gids from encoded/compressed layer data

    Args:
        text (str): Layer data in text format.
        encoding (Optional[str]): "csv" or "base64"; None is read as csv.
        compression (Optional[str]): "zlib", "gzip" or None, for base64 data.

    Raises:
        ParseError: If the data is malformed.
        UnsupportedEncodingError: For unknown encodings and compressions.

    Returns:
        List[int]: List of all the raw GIDs, flags included.

    """
    if not encoding or encoding == "csv":
        return _parse_csv(text or "")
    elif encoding == "base64":
        return _parse_base64(text or "", compression)
    raise UnsupportedEncodingError("layer encoding {} is not supported.".format(encoding))


def find_tileset(tilesets: Sequence, gid: int):
    """Return the tileset reference that owns the gid.

    `tilesets` must be ordered by ascending firstgid, as Tiled writes them.

    Args:
        tilesets (Sequence): Tileset references with a `firstgid` attribute.
        gid (int): GID with the flip flags already removed.

    Raises:
        UnresolvedReferenceError: if no tileset owns the gid.

    """
    if gid > 0:
        for tileset in reversed(tilesets):
            if tileset.firstgid <= gid:
                return tileset
    raise UnresolvedReferenceError("no tileset found for GID {0}".format(gid))
