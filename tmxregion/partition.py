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

import logging
import threading
from typing import Callable, Dict, List, Mapping, Tuple, Union

from .errors import UnresolvedReferenceError
from .geometry import Rect

__all__ = ("ChunkPartitionStore", "LayerCache")

logger = logging.getLogger(__name__)


class ChunkPartitionStore:
    """Decoded tiles of one infinite layer, keyed by the pixel rect of each chunk.

    Chunks are decoded only when a query touches them.  Decoding runs
    outside the lock; insertion is serialized and the first writer wins, so
    concurrent queries may decode a chunk twice but store it once.

    The decoder returns the tiles of a chunk and whether the decode was
    complete.  Incomplete results are returned but not stored, so the chunk
    is decoded again by the next query.

    """

    def __init__(
        self,
        chunks: Mapping[Rect, object],
        decoder: Callable[[object], Tuple[List, bool]],
    ) -> None:
        self.decoder = decoder
        self._sources: Dict[Rect, object] = dict(chunks)
        self._partitions: Dict[Rect, List] = dict()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._partitions)

    def __contains__(self, rect) -> bool:
        with self._lock:
            return rect in self._partitions

    @property
    def rects(self) -> List[Rect]:
        return list(self._sources)

    def intersecting(self, region: Rect) -> List[Rect]:
        """Chunk rects overlapping the region by at least one pixel."""
        return [rect for rect in self._sources if rect.intersects(region)]

    def ensure_decoded(self, rect: Rect) -> List:
        """Decode the chunk at `rect` unless it is already stored.

        Raises:
            UnresolvedReferenceError: if the layer has no chunk at `rect`.

        Returns:
            List: The tiles of the chunk.

        """
        with self._lock:
            tiles = self._partitions.get(rect)
        if tiles is not None:
            return tiles

        try:
            source = self._sources[rect]
        except KeyError:
            raise UnresolvedReferenceError("no chunk at {0}".format(rect))

        logger.debug("decoding chunk {0}".format(rect))
        tiles, complete = self.decoder(source)
        if not complete:
            logger.debug("not storing incomplete chunk {0}".format(rect))
            return tiles
        with self._lock:
            return self._partitions.setdefault(rect, tiles)

    def query(self, region: Rect) -> List:
        """Return the tiles of every chunk overlapping `region`.

        Chunks outside the region are never decoded.

        """
        tiles = list()
        for rect in self.intersecting(region):
            tiles.extend(self.ensure_decoded(rect))
        return tiles


class LayerCache:
    """Per-layer decode results of one map, keyed by layer index.

    A finite layer maps to its dense tile list; a layer of an infinite map
    maps to its ChunkPartitionStore.  Entries are never invalidated, so
    callers only store complete decodes.

    """

    def __init__(self) -> None:
        self._layers: Dict[int, Union[List, ChunkPartitionStore]] = dict()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._layers)

    def __contains__(self, index) -> bool:
        with self._lock:
            return index in self._layers

    def get(self, index: int):
        with self._lock:
            return self._layers.get(index)

    def setdefault(self, index: int, entry: Union[List, ChunkPartitionStore]):
        """Store `entry` unless the layer has one; return the stored entry."""
        with self._lock:
            return self._layers.setdefault(index, entry)

    def get_or_create(self, index: int, factory: Callable[[], Union[List, ChunkPartitionStore]]):
        """Return the entry for a layer, building it with `factory` if missing."""
        entry = self.get(index)
        if entry is not None:
            return entry
        return self.setdefault(index, factory())

    def clear(self) -> None:
        with self._lock:
            self._layers.clear()
