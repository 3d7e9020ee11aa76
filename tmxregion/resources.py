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
import posixpath
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .documents import TiledMap, TiledTemplate, TiledTileset, TiledTilesetRef
from .errors import (
    DuplicateLoadError,
    StructuralError,
    TiledException,
    UnresolvedReferenceError,
    UnsupportedEncodingError,
)
from .partition import LayerCache
from .renderer import RegionQuery
from .utils import normalize_key, read_file

__all__ = ("LoadRecord", "LoadState", "ResourceLoadCoordinator")

logger = logging.getLogger(__name__)

Document = Union[TiledMap, TiledTileset, TiledTemplate]

# document type for each file extension
document_types = {
    ".tmx": TiledMap,
    ".tsx": TiledTileset,
    ".tx": TiledTemplate,
}


class LoadState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass
class LoadRecord:
    key: str
    state: LoadState = LoadState.UNLOADED
    document: Any = None
    dependencies: List[str] = field(default_factory=list)
    error: Optional[Exception] = None


class ResourceLoadCoordinator:
    """Tracks the load state of every map, tileset and template by key.

    Every state change happens under one lock.  Only one caller can move a
    key from UNLOADED to LOADING; any other attempt while the key is loading
    or loaded raises DuplicateLoadError.  Decoding runs outside the lock.

    """

    def __init__(self, loader: Callable[[str], bytes] = read_file) -> None:
        """
        Args:
            loader (Callable[[str], bytes]): Returns the bytes stored under a key.

        """
        self.loader = loader
        self._records: Dict[str, LoadRecord] = dict()
        self._caches: Dict[str, LayerCache] = dict()
        self._lock = threading.Lock()

    def __contains__(self, key) -> bool:
        return self.state(key) is LoadState.LOADED

    def record(self, key: str) -> LoadRecord:
        """Return a snapshot of the record for a key."""
        key = normalize_key(key)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return LoadRecord(key)
            return replace(record, dependencies=list(record.dependencies))

    def state(self, key: str) -> LoadState:
        return self.record(key).state

    def get(self, key: str) -> Document:
        """Return a loaded document.

        Raises:
            UnresolvedReferenceError: if the key is not loaded.

        """
        record = self.record(key)
        if record.state is not LoadState.LOADED:
            raise UnresolvedReferenceError(
                'Resource "{0}" is not loaded'.format(record.key)
            )
        return record.document

    def try_begin_load(self, key: str) -> str:
        """Move a key from UNLOADED to LOADING.

        Raises:
            DuplicateLoadError: if the key is loading or loaded.

        Returns:
            str: The normalized key.

        """
        key = normalize_key(key)
        with self._lock:
            record = self._records.setdefault(key, LoadRecord(key))
            if record.state is not LoadState.UNLOADED:
                raise DuplicateLoadError(key, record.state)
            record.state = LoadState.LOADING
            record.error = None
        return key

    def complete_load(self, key: str, document: Document) -> None:
        """Publish a decoded document and the keys it depends on."""
        key = normalize_key(key)
        dependencies = document.dependencies()
        with self._lock:
            record = self._records.get(key)
            if record is None or record.state is not LoadState.LOADING:
                raise TiledException('Resource "{0}" is not loading'.format(key))
            record.state = LoadState.LOADED
            record.document = document
            record.dependencies = dependencies
        logger.debug("loaded {0}".format(key))

    def fail_load(self, key: str, error: Exception) -> None:
        """Return a loading key to UNLOADED, keeping the error on the record."""
        key = normalize_key(key)
        with self._lock:
            record = self._records.setdefault(key, LoadRecord(key))
            record.state = LoadState.UNLOADED
            record.document = None
            record.dependencies = list()
            record.error = error
            self._caches.pop(key, None)
        logger.error('failed to load "{0}": {1}'.format(key, error))

    def unload(self, key: str) -> None:
        """Discard a loaded document and, for maps, its decoded layers.

        Raises:
            UnresolvedReferenceError: if the key is not loaded.

        """
        key = normalize_key(key)
        with self._lock:
            record = self._records.get(key)
            if record is None or record.state is not LoadState.LOADED:
                raise UnresolvedReferenceError('Resource "{0}" is not loaded'.format(key))
            record.state = LoadState.UNLOADED
            record.document = None
            record.dependencies = list()
            self._caches.pop(key, None)
        logger.debug("unloaded {0}".format(key))

    def decode(self, key: str, data: bytes) -> Document:
        """Decode a document, choosing the type by file extension."""
        extension = posixpath.splitext(key)[1].lower()
        try:
            cls = document_types[extension]
        except KeyError:
            raise UnsupportedEncodingError(
                'unsupported resource type "{0}"'.format(extension)
            )
        return cls.from_xml_string(data, key)

    def load(self, path: str) -> Document:
        """Read, decode and publish one document.

        Raises:
            DuplicateLoadError: if the key is loading or loaded.
            ParseError: for malformed documents.
            StructuralError: for documents missing required parts.

        """
        key = self.try_begin_load(path)
        try:
            document = self.decode(key, self.loader(key))
        except Exception as error:
            self.fail_load(key, error)
            raise
        self.complete_load(key, document)
        return document

    def _load_dependency(self, key: str) -> None:
        try:
            document = self.load(key)
        except DuplicateLoadError as error:
            logger.debug("skipping dependency: {0}".format(error))
            return
        # tileset dependencies are images, which are not documents
        if not isinstance(document, TiledTileset):
            for dependency in document.dependencies():
                self._load_dependency(dependency)

    def load_map(self, path: str) -> TiledMap:
        """Load a map and every tileset and template it references.

        Dependencies that are already loading or loaded are skipped.  Objects
        that use a template are filled in from it.  If a dependency fails to
        load, the map goes back to UNLOADED with the error, so the whole map
        can be loaded again; dependencies that did load stay loaded.

        """
        tiledmap = self.load(path)
        if not isinstance(tiledmap, TiledMap):
            raise StructuralError('"{0}" is not a map'.format(path))

        map_key = normalize_key(path)
        try:
            for key in tiledmap.dependencies():
                self._load_dependency(key)
        except Exception as error:
            self.fail_load(map_key, error)
            raise

        for obj in tiledmap.objects:
            if not obj.template_source or obj.template is not None:
                continue
            try:
                template = self.get(obj.template_source)
            except UnresolvedReferenceError as error:
                logger.warning("object {0} keeps its own values: {1}".format(obj, error))
                continue
            obj.apply_template(template)

        return tiledmap

    def resolve_tileset(self, ref: TiledTilesetRef) -> TiledTileset:
        """Return the tileset for a reference, embedded or loaded.

        Raises:
            UnresolvedReferenceError: if an external tileset is not loaded.

        """
        if ref.tileset is not None:
            return ref.tileset
        tileset = self.get(ref.source)
        if not isinstance(tileset, TiledTileset):
            raise UnresolvedReferenceError('"{0}" is not a tileset'.format(ref.source))
        return tileset

    def dependency_graph(self) -> Dict[str, List[str]]:
        """Dependency keys of every loaded document."""
        with self._lock:
            return {
                key: list(record.dependencies)
                for key, record in self._records.items()
                if record.state is LoadState.LOADED
            }

    def dependencies(self, key: str) -> List[str]:
        record = self.record(key)
        if record.state is not LoadState.LOADED:
            raise UnresolvedReferenceError('Resource "{0}" is not loaded'.format(record.key))
        return record.dependencies

    def load_order(self, key: str) -> List[str]:
        """Keys reachable from `key`, every dependency before its dependents.

        Images and documents that are not loaded are leaves.

        Raises:
            StructuralError: if the graph has a cycle.

        """
        graph = self.dependency_graph()
        order = list()
        visiting = set()

        def visit(node):
            if node in order:
                return
            if node in visiting:
                raise StructuralError('dependency cycle through "{0}"'.format(node))
            visiting.add(node)
            for dependency in graph.get(node, ()):
                visit(dependency)
            visiting.discard(node)
            order.append(node)

        visit(normalize_key(key))
        return order

    def region_query(self, key: str) -> RegionQuery:
        """Return a RegionQuery for a loaded map, sharing this coordinator's cache."""
        tiledmap = self.get(key)
        if not isinstance(tiledmap, TiledMap):
            raise UnresolvedReferenceError('"{0}" is not a map'.format(key))
        key = normalize_key(key)
        with self._lock:
            cache = self._caches.setdefault(key, LayerCache())
        return RegionQuery(tiledmap, self.resolve_tileset, cache)
