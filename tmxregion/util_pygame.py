# -*- coding: utf-8 -*-
"""
Copyright (C) 2012-2017, Leif Theden <leif.theden@gmail.com>

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
import logging
from typing import Callable, Dict, Iterable, Optional

from tmxregion.codec import TileFlags
from tmxregion.documents import TiledMap
from tmxregion.geometry import Rect
from tmxregion.renderer import PositionedTile, RegionQuery

logger = logging.getLogger(__name__)

try:
    from pygame.transform import flip, rotate, scale
    import pygame
except ImportError:
    logger.error("cannot import pygame (is it installed?)")
    raise

__all__ = [
    "blit_tiles",
    "buffer_region",
    "handle_transformation",
    "load_images",
    "pygame_image_loader",
]


def handle_transformation(
    tile: pygame.Surface,
    flags: TileFlags,
) -> pygame.Surface:
    """
    Transform tile according to the flags and return a new one

    Parameters:
        tile: tile surface to transform
        flags: TileFlags object

    Returns:
        new tile surface

    """
    if flags.flipped_diagonally:
        tile = flip(rotate(tile, 270), True, False)
    if flags.flipped_horizontally or flags.flipped_vertically:
        tile = flip(tile, flags.flipped_horizontally, flags.flipped_vertically)
    return tile


def smart_convert(
    original: pygame.Surface,
    colorkey: Optional[pygame.Color],
    pixelalpha: bool,
) -> pygame.Surface:
    """
    Return new pygame Surface with optimal pixel/data format

    Requires a display mode to be set.

    Parameters:
        original: surface to inspect
        colorkey: optional colorkey for the tileset image
        pixelalpha: if true, prefer per-pixel alpha surfaces

    Returns:
        new surface

    """
    # tiled set a colorkey
    if colorkey:
        image = original.convert()
        image.set_colorkey(colorkey, pygame.RLEACCEL)
        return image

    # no colorkey, so use a mask to determine if there are transparent pixels
    width, height = original.get_size()
    threshold = 254  # the default
    try:
        px = pygame.mask.from_surface(original, threshold).count()
    except (AttributeError, NotImplementedError):
        # the mask module is optional in some builds
        return original.convert_alpha()

    # there are no transparent pixels in the image
    if px == width * height:
        return original.convert()

    # there are transparent pixels, and set for perpixel alpha
    elif pixelalpha:
        return original.convert_alpha()

    # there are transparent pixels, and we won't handle them
    return original.convert()


def pygame_image_loader(
    filename: str,
    colorkey: Optional[str] = None,
    pixelalpha: bool = True,
) -> pygame.Surface:
    """
    Load a tileset image with pygame

    Parameters:
        filename: filename, including path, to load
        colorkey: hex color from the "trans" attribute of the image
        pixelalpha: if true, prefer per-pixel alpha surfaces

    Returns:
        the converted surface

    """
    if colorkey:
        colorkey = pygame.Color("#{0}".format(colorkey.lstrip("#")))
    image = pygame.image.load(filename)
    return smart_convert(image, colorkey, pixelalpha)


def load_images(
    tiledmap: TiledMap,
    resolve_tileset: Callable,
    image_loader: Callable = pygame_image_loader,
    **kwargs,
) -> Dict[str, pygame.Surface]:
    """
    Load the image of every tileset used by a map

    Tilesets that cannot be resolved are skipped.

    Parameters:
        tiledmap: map whose tilesets are loaded
        resolve_tileset: returns the tileset of a tileset reference,
            for example ResourceLoadCoordinator.resolve_tileset
        image_loader: called with the image key, the colorkey and kwargs

    Returns:
        dictionary of image key to surface

    """
    images = dict()
    for ref in tiledmap.tilesets:
        try:
            tileset = resolve_tileset(ref)
        except LookupError as error:
            logger.warning("not loading image of {0}: {1}".format(ref, error))
            continue
        source = tileset.image.source
        if source not in images:
            images[source] = image_loader(source, tileset.image.trans, **kwargs)
    return images


def blit_tiles(
    surface: pygame.Surface,
    positioned_tiles: Iterable[PositionedTile],
    images: Dict[str, pygame.Surface],
) -> int:
    """
    Draw tiles returned by a RegionQuery onto a surface

    The destination of each tile is the bounding box of its transform, so
    view matrices may translate and scale, but not rotate.  Tiles of
    translucent layers are drawn with the layer opacity as surface alpha.

    Parameters:
        surface: destination surface
        positioned_tiles: output of a RegionQuery
        images: dictionary of image key to surface, see load_images

    Returns:
        number of tiles drawn

    """
    cache = dict()
    count = 0
    for positioned in positioned_tiles:
        tile = positioned.tile
        try:
            image = images[tile.image]
        except KeyError:
            logger.warning("no image loaded for {0}".format(tile.image))
            continue

        key = (tile.image, positioned.source_rect, tile.flags)
        tile_surface = cache.get(key)
        if tile_surface is None:
            try:
                tile_surface = image.subsurface(positioned.source_rect)
            except ValueError:
                logger.error("Tile bounds outside bounds of tileset image")
                raise
            tile_surface = handle_transformation(tile_surface, tile.flags)
            cache[key] = tile_surface

        dest = positioned.transform.bounds(tile.width, tile.height)
        size = (round(dest.width), round(dest.height))
        if size != tile_surface.get_size():
            tile_surface = scale(tile_surface, size)
        if positioned.opacity < 1.0:
            tile_surface = tile_surface.copy()
            tile_surface.set_alpha(round(255 * positioned.opacity))
        surface.blit(tile_surface, (round(dest.x), round(dest.y)))
        count += 1
    return count


def buffer_region(
    query: RegionQuery,
    region: Rect,
    images: Dict[str, pygame.Surface],
    layer_name: Optional[str] = None,
) -> pygame.Surface:
    """
    Draw one region of the map onto a new surface the size of the region

    Parameters:
        query: RegionQuery of the map
        region: pixel space rect of the map to draw
        images: dictionary of image key to surface, see load_images
        layer_name: draw only this layer

    Returns:
        new surface with per-pixel alpha

    """
    size = (int(region.width), int(region.height))
    surface = pygame.Surface(size, pygame.SRCALPHA)
    if layer_name is None:
        tiles = query.region(region)
    else:
        tiles = query.layer_region(layer_name, region)
    blit_tiles(surface, tiles, images)
    return surface
