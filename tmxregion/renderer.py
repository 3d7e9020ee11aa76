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
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .codec import TileFlags, decode_gid, empty_flags
from .documents import Orientation, RenderOrder, TiledMap, TiledTileLayer, TiledTileset, TiledTilesetRef
from .errors import ParseError, StructuralError, UnresolvedReferenceError, UnsupportedEncodingError
from .geometry import IDENTITY, Matrix, Point, Rect
from .partition import ChunkPartitionStore, LayerCache

__all__ = (
    "DrawMode",
    "PositionedTile",
    "RegionQuery",
    "Tile",
    "decode_tiles",
    "render",
    "tile_transform",
)

logger = logging.getLogger(__name__)

TilesetResolver = Callable[[TiledTilesetRef], TiledTileset]


class DrawMode(Enum):
    NORMAL = "normal"  # whole map, absolute coordinates
    REGIONAL = "regional"  # relative to the top left of the region
    SCENE = "scene"  # absolute coordinates, then the view matrix


@dataclass(frozen=True)
class Tile:
    id: int  # local to the tileset
    gid: int
    tileset: str
    image: str
    column: int
    row: int
    x: int
    y: int
    width: int
    height: int
    source: Rect
    flags: TileFlags = empty_flags

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class PositionedTile:
    tile: Tile
    source_rect: Rect
    transform: Matrix
    opacity: float = 1.0  # of the layer


def tileset_key(ref: TiledTilesetRef) -> str:
    if ref.source:
        return ref.source
    return "{0}#{1}".format(ref.tileset.name, ref.firstgid)


def decode_tiles(
    tiledmap: TiledMap,
    gids: Sequence[int],
    columns: int,
    resolve_tileset: TilesetResolver,
    origin: Tuple[int, int] = (0, 0),
    offset: Point = Point(0, 0),
) -> Tuple[List[Tile], bool]:
    """Turn raw cell values into positioned tiles.

    Empty cells are dropped.  A cell whose tileset cannot be resolved, or
    whose tile id is past the end of its tileset, is skipped with a warning.

    Args:
        tiledmap (TiledMap): Map that owns the tileset references.
        gids (Sequence[int]): Raw cell values, row major.
        columns (int): Cells per row.
        resolve_tileset (TilesetResolver): Returns the tileset of a reference.
        origin (Tuple[int, int]): Column and row of the first cell.
        offset (Point): Pixel offset of the layer.

    Returns:
        Tuple[List[Tile], bool]: Decoded tiles, in cell order, and False if
            a tileset could not be resolved yet.

    """
    cellwidth = tiledmap.tilewidth
    cellheight = tiledmap.tileheight
    resolved = dict()
    tiles = list()
    complete = True

    for index, raw_gid in enumerate(gids):
        gid, flags = decode_gid(raw_gid)
        if gid == 0:
            continue

        try:
            ref = tiledmap.find_tileset_by_gid(gid)
        except UnresolvedReferenceError:
            logger.warning("skipping tile with unknown GID {0}".format(gid))
            continue

        if ref.firstgid not in resolved:
            try:
                resolved[ref.firstgid] = resolve_tileset(ref)
            except UnresolvedReferenceError as error:
                logger.warning("skipping tiles of tileset {0}: {1}".format(ref, error))
                resolved[ref.firstgid] = None
                complete = False
        tileset = resolved[ref.firstgid]
        if tileset is None:
            continue

        tile_id = gid - ref.firstgid
        if tileset.tilecount and tile_id >= tileset.tilecount:
            logger.warning(
                'skipping GID {0}: tileset "{1}" has {2} tiles'.format(
                    gid, tileset.name, tileset.tilecount
                )
            )
            continue

        row, column = divmod(index, columns)
        column += origin[0]
        row += origin[1]
        tiles.append(
            Tile(
                id=tile_id,
                gid=gid,
                tileset=tileset_key(ref),
                image=tileset.image.source,
                column=column,
                row=row,
                x=column * cellwidth + tileset.offset.x + offset.x,
                y=row * cellheight + cellheight - tileset.tileheight + tileset.offset.y + offset.y,
                width=tileset.tilewidth,
                height=tileset.tileheight,
                source=tileset.source_rect(tile_id),
                flags=flags,
            )
        )
    return tiles, complete


def tile_transform(
    tile: Tile,
    mode: DrawMode = DrawMode.NORMAL,
    region: Optional[Rect] = None,
    view: Optional[Matrix] = None,
) -> Matrix:
    """Return the matrix that draws the tile image at its place.

    Flips are applied first, diagonal then horizontal then vertical, then
    the tile is moved to its position for the draw mode.

    """
    width = tile.width
    height = tile.height
    flags = tile.flags
    matrix = IDENTITY

    if flags.flipped_diagonally:
        matrix = matrix.rotate(90).scale(-1, 1).translate(height - width, 0)
    if flags.flipped_horizontally:
        matrix = matrix.scale(-1, 1).translate(width, 0)
    if flags.flipped_vertically:
        matrix = matrix.scale(1, -1).translate(0, height)

    if mode is DrawMode.REGIONAL and region is not None:
        return matrix.translate(tile.x - region.x, tile.y - region.y)
    matrix = matrix.translate(tile.x, tile.y)
    if mode is DrawMode.SCENE:
        matrix = matrix.concat(view or IDENTITY)
    return matrix


# sort keys for each render order, in cell coordinates
render_order_keys = {
    RenderOrder.RIGHT_DOWN: lambda tile: (tile.row, tile.column),
    RenderOrder.RIGHT_UP: lambda tile: (-tile.row, tile.column),
    RenderOrder.LEFT_DOWN: lambda tile: (tile.row, -tile.column),
    RenderOrder.LEFT_UP: lambda tile: (-tile.row, -tile.column),
}


class RegionQuery:
    """Answers "which tiles are visible in this rect, and where do they go".

    Finite layers are decoded in full on first use.  Layers of infinite maps
    decode only the chunks a query touches.  Decoded tiles are kept in the
    LayerCache, which may be shared with other queries of the same map.

    """

    def __init__(
        self,
        tiledmap: TiledMap,
        resolve_tileset: TilesetResolver,
        cache: Optional[LayerCache] = None,
    ) -> None:
        self.tiledmap = tiledmap
        self.resolve_tileset = resolve_tileset
        self.cache = LayerCache() if cache is None else cache
        if tiledmap.orientation is not Orientation.ORTHOGONAL:
            logger.warning(
                "{0} maps are drawn as orthogonal".format(tiledmap.orientation)
            )

    def _decode_layer(self, layer: TiledTileLayer) -> Tuple[List[Tile], bool]:
        columns = layer.width or self.tiledmap.width
        rows = layer.height or self.tiledmap.height
        gids = layer.raw_gids()
        if len(gids) != columns * rows:
            raise StructuralError(
                'layer "{0}" has {1} cells, expected {2}'.format(
                    layer.name, len(gids), columns * rows
                )
            )
        return decode_tiles(
            self.tiledmap, gids, columns, self.resolve_tileset, offset=layer.offset
        )

    def _chunk_store(self, layer: TiledTileLayer) -> ChunkPartitionStore:
        tiledmap = self.tiledmap

        def decode_chunk(chunk):
            return decode_tiles(
                tiledmap,
                layer.raw_gids(chunk),
                chunk.width,
                self.resolve_tileset,
                (chunk.x, chunk.y),
                layer.offset,
            )

        chunks = {
            chunk.rect(tiledmap.tilewidth, tiledmap.tileheight): chunk
            for chunk in layer.chunks
        }
        return ChunkPartitionStore(chunks, decode_chunk)

    def layer_tiles(self, index: int, region: Rect) -> List[Tile]:
        """Decoded tiles of one layer that may fall inside `region`.

        A layer with tiles from a tileset that is not loaded yet is decoded
        again on the next call instead of being cached.

        """
        layer = self.tiledmap.layers[index]
        if self.tiledmap.infinite:
            store = self.cache.get_or_create(index, lambda: self._chunk_store(layer))
            return store.query(region)

        tiles = self.cache.get(index)
        if tiles is not None:
            return tiles
        tiles, complete = self._decode_layer(layer)
        if complete:
            tiles = self.cache.setdefault(index, tiles)
        return tiles

    def _layer_indexes(self, layer_name: Optional[str]) -> List[int]:
        layers = self.tiledmap.layers
        if layer_name is None:
            return [i for i, layer in enumerate(layers) if layer.visible]
        try:
            layer = self.tiledmap.get_layer_by_name(layer_name)
        except ValueError:
            logger.warning('layer "{0}" not found'.format(layer_name))
            return []
        if not layer.visible:
            return []
        return [i for i, other in enumerate(layers) if other is layer]

    def query_visible(
        self,
        region: Optional[Rect] = None,
        mode: DrawMode = DrawMode.NORMAL,
        layer_name: Optional[str] = None,
        view: Optional[Matrix] = None,
    ) -> List[PositionedTile]:
        """Return every visible tile overlapping the region, ready to draw.

        Args:
            region (Optional[Rect]): Pixel space rect; defaults to the map bounds.
            mode (DrawMode): How device coordinates are computed.
            layer_name (Optional[str]): Query only this layer.
            view (Optional[Matrix]): View matrix for DrawMode.SCENE.

        Returns:
            List[PositionedTile]: Tiles in layer order, then render order.

        """
        if region is None:
            region = self.tiledmap.bounds
        order_key = render_order_keys[self.tiledmap.renderorder]

        positioned = list()
        for index in self._layer_indexes(layer_name):
            opacity = self.tiledmap.layers[index].opacity
            try:
                tiles = self.layer_tiles(index, region)
            except (ParseError, StructuralError, UnsupportedEncodingError) as error:
                logger.error(
                    'error while drawing layer "{0}": {1}'.format(
                        self.tiledmap.layers[index].name, error
                    )
                )
                continue

            visible = sorted(
                (tile for tile in tiles if tile.rect.intersects(region)),
                key=order_key,
            )
            for tile in visible:
                positioned.append(
                    PositionedTile(
                        tile,
                        tile.source,
                        tile_transform(tile, mode, region, view),
                        opacity,
                    )
                )
        return positioned

    def whole_map(self) -> List[PositionedTile]:
        return self.query_visible()

    def layer(self, name: str) -> List[PositionedTile]:
        return self.query_visible(layer_name=name)

    def region(self, region: Rect) -> List[PositionedTile]:
        return self.query_visible(region, DrawMode.REGIONAL)

    def layer_region(self, name: str, region: Rect) -> List[PositionedTile]:
        return self.query_visible(region, DrawMode.REGIONAL, name)

    def scene(self, viewport: Rect, view: Matrix) -> List[PositionedTile]:
        return self.query_visible(viewport, DrawMode.SCENE, view=view)

    def scene_layer(self, name: str, viewport: Rect, view: Matrix) -> List[PositionedTile]:
        return self.query_visible(viewport, DrawMode.SCENE, name, view)


def render(blit: Callable[[str, Rect, Matrix], None], positioned_tiles) -> int:
    """Hand each tile to the blit primitive; returns the number of tiles drawn.

    Args:
        blit (Callable[[str, Rect, Matrix], None]): Called with the image key,
            the source rect inside that image, and the destination matrix.
        positioned_tiles (Iterable[PositionedTile]): Output of a RegionQuery.

    """
    count = 0
    for positioned in positioned_tiles:
        blit(positioned.tile.image, positioned.source_rect, positioned.transform)
        count += 1
    return count
