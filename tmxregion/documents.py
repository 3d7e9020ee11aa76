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
from enum import Enum
from itertools import chain
from operator import attrgetter
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union
from xml.etree import ElementTree

from .attributes import AttributeTable, convert_to_bool, convert_to_float, convert_to_int, object_types, types
from .codec import TileFlags, decode_gid, find_tileset, unpack_gids
from .errors import ParseError, StructuralError, UnsupportedEncodingError
from .geometry import Point, Rect
from .utils import read_file, resolve_source_path

__all__ = (
    "Orientation",
    "RenderOrder",
    "TiledChunk",
    "TiledElement",
    "TiledImage",
    "TiledMap",
    "TiledObject",
    "TiledObjectGroup",
    "TiledTemplate",
    "TiledTileLayer",
    "TiledTileset",
    "TiledTilesetRef",
    "parse_document",
    "parse_properties",
    "parse_property_types",
)

logger = logging.getLogger(__name__)


class Orientation(Enum):
    ORTHOGONAL = "orthogonal"
    ISOMETRIC = "isometric"
    STAGGERED = "staggered"
    HEXAGONAL = "hexagonal"

    @classmethod
    def parse(cls, value: str) -> Orientation:
        try:
            return cls(value)
        except ValueError:
            raise ParseError('unknown map orientation "{}"'.format(value), value)

    def __str__(self):
        return self.value


class RenderOrder(Enum):
    RIGHT_DOWN = "right-down"
    RIGHT_UP = "right-up"
    LEFT_DOWN = "left-down"
    LEFT_UP = "left-up"

    @classmethod
    def parse(cls, value: str) -> RenderOrder:
        try:
            return cls(value)
        except ValueError:
            raise ParseError('unknown map render order "{}"'.format(value), value)

    def __str__(self):
        return self.value


# casting for properties type
prop_type = {
    "bool": convert_to_bool,
    "color": str,
    "file": str,
    "float": convert_to_float,
    "int": convert_to_int,
    "object": convert_to_int,
    "string": str,
}


def parse_xml_string(xml_string: Union[str, bytes]) -> ElementTree.Element:
    """Parse markup, reporting malformed xml as ParseError."""
    try:
        return ElementTree.fromstring(xml_string)
    except ElementTree.ParseError as error:
        raise ParseError("malformed xml: {0}".format(error)) from error


def parse_properties(node: ElementTree.Element) -> Dict:
    """Parse a Tiled xml node and return a dict.

    Properties of class type are returned as nested dictionaries.  Properties
    of unknown type are kept as strings.

    Args:
        node (ElementTree.Element): Etree element to inspect.

    Returns:
        Dict: Dictionary of the properties, as set in the Tiled editor.

    """
    d = dict()
    for child in node.findall("properties"):
        for subnode in child.findall("property"):
            name = subnode.get("name")
            type_name = subnode.get("type", "string")
            if type_name == "class":
                d[name] = parse_properties(subnode)
                continue
            value = subnode.get("value")
            if value is None:
                value = subnode.text or ""
            try:
                cls = prop_type[type_name]
            except KeyError:
                logger.info(
                    "Type {} Not a built-in type. Defaulting to string-cast.".format(
                        type_name
                    )
                )
                cls = str
            d[name] = cls(value)
    return d


def parse_property_types(node: ElementTree.Element) -> Dict[str, str]:
    """Return the custom type name of each property that declares one.

    Tiled writes the name of a project property type in "propertytype".
    The type definitions live in the project file, which is not read, so
    only the names are kept.

    """
    d = dict()
    for child in node.findall("properties"):
        for subnode in child.findall("property"):
            type_name = subnode.get("propertytype")
            if type_name:
                d[subnode.get("name")] = type_name
    return d


class TiledElement:
    """Base class for all tmxregion types.

    Attributes of the xml element are kept in an AttributeTable; the
    properties set by the user in Tiled are kept in a dictionary.

    """

    vocabulary = types

    def __init__(self) -> None:
        self.attributes = AttributeTable(self.vocabulary)
        self.properties = dict()
        self.property_types = dict()

    @classmethod
    def from_xml_string(cls, xml_string: Union[str, bytes], filename: Optional[str] = None):
        """Return a TiledElement object from a xml string.

        Args:
            xml_string (Union[str, bytes]): String containing xml data.
            filename (Optional[str]): Resource key of the document, used to
                resolve relative paths.

        Returns:
            TiledElement: The TiledElement from the xml string.

        """
        element = cls()
        element.filename = filename
        return element.parse_xml(parse_xml_string(xml_string))

    def _set_properties(self, node: ElementTree.Element) -> None:
        """Read the xml attributes and Tiled "properties" from an XML node."""
        self.attributes = AttributeTable.from_node(node, self.vocabulary)
        self.properties = parse_properties(node)
        self.property_types = parse_property_types(node)

    @property
    def name(self) -> str:
        return self.attributes.get_str("name", "")

    def __repr__(self):
        if "id" in self.attributes:
            return '<{}[{}]: "{}">'.format(
                self.__class__.__name__, self.attributes.get_int("id"), self.name
            )
        else:
            return '<{}: "{}">'.format(self.__class__.__name__, self.name)


class TiledImage(TiledElement):
    """Image reference of a tileset."""

    def __init__(self, node: ElementTree.Element, filename: Optional[str] = None) -> None:
        TiledElement.__init__(self)
        self._set_properties(node)
        source = self.attributes.get_str("source")
        if not source:
            raise StructuralError("image element has no source")
        self.attributes.set("source", resolve_source_path(filename, source))

    @property
    def source(self) -> str:
        return self.attributes.get_str("source")

    @property
    def width(self) -> int:
        return self.attributes.get_int("width", 0)

    @property
    def height(self) -> int:
        return self.attributes.get_int("height", 0)

    @property
    def trans(self) -> Optional[str]:
        return self.attributes.get_str("trans", None)


class TiledTileset(TiledElement):
    """Represents a Tiled Tileset, from a .tsx file or embedded in a map.

    The tileset image is sliced into a regular grid of tiles.  Tile ids are
    local to the tileset; the owning map adds its firstgid to get the GID.

    """

    def __init__(self, filename: Optional[str] = None, node: Optional[ElementTree.Element] = None) -> None:
        TiledElement.__init__(self)
        self.filename = filename
        self.offset = Point(0, 0)
        self.image = None
        self.tile_properties = dict()
        if node is not None:
            self.parse_xml(node)

    def parse_xml(self, node: ElementTree.Element) -> TiledTileset:
        """Parse a Tileset from ElementTree xml element.

        Args:
            node (ElementTree.Element): Node to parse.

        Raises:
            StructuralError: if the tileset has no image or the image does
                not fit the tile grid.

        Returns:
            TiledTileset: self

        """
        if node.tag != "tileset":
            raise StructuralError('expected a tileset, got "{}"'.format(node.tag))

        self._set_properties(node)

        if self.tilewidth <= 0 or self.tileheight <= 0:
            raise StructuralError(
                'tileset "{}" must have positive tile size'.format(self.name)
            )

        # handle the optional 'tileoffset' node
        offset_node = node.find("tileoffset")
        if offset_node is not None:
            offset = AttributeTable.from_node(offset_node)
            self.offset = Point(offset.get_int("x", 0), offset.get_int("y", 0))

        image_node = node.find("image")
        if image_node is None:
            msg = 'tileset "{}" has no image'.format(self.name)
            logger.error(msg)
            raise StructuralError(msg)
        self.image = TiledImage(image_node, self.filename)
        self._check_image_size()

        for child in node.findall("tile"):
            tile_id = convert_to_int(child.get("id"))
            properties = parse_properties(child)
            if properties:
                self.tile_properties[tile_id] = properties

        return self

    def _check_image_size(self) -> None:
        width = self.image.width
        height = self.image.height
        if width <= 0 or height <= 0:
            raise StructuralError(
                'tileset "{}" image has no size'.format(self.name)
            )
        step = self.tilewidth + self.spacing
        if (width - 2 * self.margin + self.spacing) % step:
            msg = 'tileset "{}" image width {} is not a multiple of tile width {}'.format(
                self.name, width, self.tilewidth
            )
            logger.error(msg)
            raise StructuralError(msg)

    @property
    def version(self) -> str:
        return self.attributes.get_str("version", "")

    @property
    def tiledversion(self) -> str:
        return self.attributes.get_str("tiledversion", "")

    @property
    def tilewidth(self) -> int:
        return self.attributes.get_int("tilewidth", 0)

    @property
    def tileheight(self) -> int:
        return self.attributes.get_int("tileheight", 0)

    @property
    def spacing(self) -> int:
        return self.attributes.get_int("spacing", 0)

    @property
    def margin(self) -> int:
        return self.attributes.get_int("margin", 0)

    @property
    def tilecount(self) -> int:
        return self.attributes.get_int("tilecount", 0)

    @property
    def columns(self) -> int:
        columns = self.attributes.get_int("columns", 0)
        if columns:
            return columns
        step = self.tilewidth + self.spacing
        return (self.image.width - 2 * self.margin + self.spacing) // step

    def source_rect(self, tile_id: int) -> Rect:
        """Return the rect of a local tile id inside the tileset image."""
        row, column = divmod(tile_id, self.columns)
        return Rect(
            self.margin + column * (self.tilewidth + self.spacing),
            self.margin + row * (self.tileheight + self.spacing),
            self.tilewidth,
            self.tileheight,
        )

    def get_tile_properties(self, tile_id: int) -> Optional[Dict]:
        return self.tile_properties.get(tile_id)

    def dependencies(self) -> List[str]:
        return [self.image.source]


class TiledTilesetRef(TiledElement):
    """A <tileset> element of a map or template.

    External tilesets are referenced by `source`, rewritten to a resource
    key.  Embedded tilesets are parsed in place and kept in `tileset`.

    """

    def __init__(self, node: ElementTree.Element, filename: Optional[str] = None) -> None:
        TiledElement.__init__(self)
        self.tileset = None
        self._set_properties(node)
        if "firstgid" not in self.attributes:
            raise StructuralError("tileset reference has no firstgid")
        source = self.attributes.get_str("source")
        if source:
            self.attributes.set("source", resolve_source_path(filename, source))
        else:
            self.tileset = TiledTileset(filename, node)

    @property
    def firstgid(self) -> int:
        return self.attributes.get_int("firstgid", 0)

    @property
    def source(self) -> str:
        return self.attributes.get_str("source", "")

    @property
    def is_embedded(self) -> bool:
        return self.tileset is not None

    def __repr__(self):
        return "<{}: {} {}>".format(
            self.__class__.__name__, self.firstgid, self.source or "(embedded)"
        )


class TiledChunk(TiledElement):
    """Fixed-size piece of an infinite layer, positioned in tile units."""

    def __init__(self, node: ElementTree.Element) -> None:
        TiledElement.__init__(self)
        self._set_properties(node)
        self.data = (node.text or "").strip()

    @property
    def x(self) -> int:
        return self.attributes.get_int("x", 0)

    @property
    def y(self) -> int:
        return self.attributes.get_int("y", 0)

    @property
    def width(self) -> int:
        return self.attributes.get_int("width", 0)

    @property
    def height(self) -> int:
        return self.attributes.get_int("height", 0)

    def rect(self, cellwidth: int, cellheight: int) -> Rect:
        """Pixel space rect covered by the chunk."""
        return Rect(
            self.x * cellwidth,
            self.y * cellheight,
            self.width * cellwidth,
            self.height * cellheight,
        )

    def __eq__(self, other):
        if not isinstance(other, TiledChunk):
            return NotImplemented
        return self.attributes == other.attributes and self.data == other.data

    __hash__ = None


class TiledTileLayer(TiledElement):
    """Represents a TileLayer.

    A finite layer holds one dense payload in `data`; a layer of an infinite
    map holds a list of TiledChunk.  Decoded tiles are never stored here.

    """

    def __init__(self, parent, node: ElementTree.Element, group_visible: bool = True) -> None:
        TiledElement.__init__(self)
        self.parent = parent
        self.group_visible = group_visible
        self.data = ""
        self.chunks = list()
        self.encoding = "csv"
        self.compression = None
        self.parse_xml(node)

    def __iter__(self):
        return self.iter_data()

    def parse_xml(self, node: ElementTree.Element) -> TiledTileLayer:
        """Parse a Tile Layer from ElementTree xml node.

        Args:
            node (ElementTree.Element): Node to parse.

        Returns:
            TiledTileLayer: The parsed tile layer.

        """
        self._set_properties(node)
        data_node = node.find("data")
        if data_node is None:
            raise StructuralError('layer "{}" has no data'.format(self.name))

        data_attributes = AttributeTable.from_node(data_node)
        self.encoding = data_attributes.get_str("encoding", "csv")
        self.compression = data_attributes.get_str("compression", None)

        if data_node.find("tile") is not None:
            raise UnsupportedEncodingError(
                "XML tile elements are no longer supported. Must use base64 or csv map formats."
            )

        self.chunks = [TiledChunk(child) for child in data_node.findall("chunk")]
        if not self.chunks:
            self.data = (data_node.text or "").strip()
        return self

    @property
    def id(self) -> int:
        return self.attributes.get_int("id", 0)

    @property
    def width(self) -> int:
        return self.attributes.get_int("width", 0)

    @property
    def height(self) -> int:
        return self.attributes.get_int("height", 0)

    @property
    def visible(self) -> bool:
        return self.group_visible and self.attributes.get_bool("visible", True)

    @property
    def opacity(self) -> float:
        return self.attributes.get_float("opacity", 1.0)

    @property
    def offset(self) -> Point:
        return Point(
            self.attributes.get_float("offsetx", 0.0),
            self.attributes.get_float("offsety", 0.0),
        )

    @property
    def is_infinite(self) -> bool:
        return bool(self.chunks)

    def raw_gids(self, chunk: Optional[TiledChunk] = None) -> List[int]:
        """Return the undecoded cell values of the layer, or of one chunk."""
        text = self.data if chunk is None else chunk.data
        return unpack_gids(text, self.encoding, self.compression)

    def iter_data(self) -> Iterator[Tuple[int, int, int]]:
        """Yields X, Y, raw GID tuples for every cell of the layer.

        Returns:
            Iterator[Tuple[int, int, int]]: X, Y, GID tuples, in tile units.

        """
        if self.chunks:
            for chunk in self.chunks:
                for i, gid in enumerate(self.raw_gids(chunk)):
                    y, x = divmod(i, chunk.width)
                    yield chunk.x + x, chunk.y + y, gid
        else:
            for i, gid in enumerate(self.raw_gids()):
                y, x = divmod(i, self.width)
                yield x, y, gid

    def __eq__(self, other):
        if not isinstance(other, TiledTileLayer):
            return NotImplemented
        return (
            self.attributes == other.attributes
            and self.properties == other.properties
            and self.encoding == other.encoding
            and self.compression == other.compression
            and self.data == other.data
            and self.chunks == other.chunks
        )

    __hash__ = None


def read_points(text: str) -> Tuple[Point, ...]:
    """Parse a text string of float tuples and return ((x, y),...)"""
    return tuple(Point(*map(float, i.split(","))) for i in text.split())


class TiledObject(TiledElement):
    """Represents any Tiled Object.

    Supported types: Box, Ellipse, Point, Tile Object, Polyline, Polygon, Text.

    """

    vocabulary = object_types
    shapes = ("ellipse", "point", "polygon", "polyline", "text")

    def __init__(self, parent, node: ElementTree.Element) -> None:
        TiledElement.__init__(self)
        self.parent = parent
        self.shape = "rectangle"
        self.points = tuple()
        self.text = None
        self.template = None
        self.tileset = None
        self.parse_xml(node)

    def parse_xml(self, node: ElementTree.Element) -> TiledObject:
        self._set_properties(node)
        filename = getattr(self.parent, "filename", None)
        template = self.attributes.get_str("template")
        if template:
            self.attributes.set("template", resolve_source_path(filename, template))

        for shape in self.shapes:
            child = node.find(shape)
            if child is None:
                continue
            self.shape = shape
            if shape in ("polygon", "polyline"):
                points = read_points(child.get("points", ""))
                self.points = tuple(Point(p.x + self.x, p.y + self.y) for p in points)
            elif shape == "text":
                self.text = child.text or ""
            break
        return self

    def apply_template(self, template: TiledTemplate) -> TiledObject:
        """Fill everything this object does not declare from a template.

        Attributes and properties set on the instance win.  A tile gid that
        comes from the template refers to the template's own tileset.

        """
        source = template.object
        gid_from_template = "gid" not in self.attributes and "gid" in source.attributes
        for key, typed in source.attributes.items():
            if key not in self.attributes and key in self.vocabulary:
                self.attributes.set(key, typed.value)
        for key, value in source.property_types.items():
            if key not in self.properties:
                self.property_types[key] = value
        for key, value in source.properties.items():
            self.properties.setdefault(key, value)
        if self.shape == "rectangle" and source.shape != "rectangle":
            self.shape = source.shape
            self.points = tuple(
                Point(p.x - source.x + self.x, p.y - source.y + self.y)
                for p in source.points
            )
            self.text = source.text
        if gid_from_template:
            self.tileset = template.tileset
        self.template = template
        return self

    @property
    def id(self) -> int:
        return self.attributes.get_int("id", 0)

    @property
    def type(self) -> str:
        return self.attributes.get_str("class", "") or self.attributes.get_str("type", "")

    @property
    def x(self) -> float:
        return self.attributes.get_float("x", 0.0)

    @property
    def y(self) -> float:
        return self.attributes.get_float("y", 0.0)

    @property
    def width(self) -> float:
        return self.attributes.get_float("width", 0.0)

    @property
    def height(self) -> float:
        return self.attributes.get_float("height", 0.0)

    @property
    def rotation(self) -> float:
        return self.attributes.get_float("rotation", 0.0)

    @property
    def visible(self) -> bool:
        return self.attributes.get_bool("visible", True)

    @property
    def template_source(self) -> str:
        return self.attributes.get_str("template", "")

    @property
    def raw_gid(self) -> int:
        return self.attributes.get_int("gid", 0)

    @property
    def gid(self) -> int:
        return decode_gid(self.raw_gid)[0]

    @property
    def flags(self) -> TileFlags:
        return decode_gid(self.raw_gid)[1]


class TiledObjectGroup(TiledElement, list):
    """Represents a Tiled ObjectGroup

    Supports any operation of a normal list.

    """

    def __init__(self, parent, node: ElementTree.Element, group_visible: bool = True) -> None:
        TiledElement.__init__(self)
        self.parent = parent
        self.group_visible = group_visible
        self.parse_xml(node)

    def parse_xml(self, node: ElementTree.Element) -> TiledObjectGroup:
        """Parse an Object Group from ElementTree xml node

        Args:
            node (ElementTree.Element): Node to parse.

        """
        self._set_properties(node)
        self.extend(TiledObject(self.parent, child) for child in node.findall("object"))
        return self

    @property
    def id(self) -> int:
        return self.attributes.get_int("id", 0)

    @property
    def visible(self) -> bool:
        return self.group_visible and self.attributes.get_bool("visible", True)

    @property
    def color(self) -> Optional[str]:
        return self.attributes.get_str("color", None)

    @property
    def draworder(self) -> str:
        return self.attributes.get_str("draworder", "topdown")

    __hash__ = None


class TiledTemplate(TiledElement):
    """Object template from a .tx file.

    Holds exactly one object and, for tile objects, the tileset the
    object's gid refers to.

    """

    def __init__(self, filename: Optional[str] = None, node: Optional[ElementTree.Element] = None) -> None:
        TiledElement.__init__(self)
        self.filename = filename
        self.tileset = None
        self.object = None
        if node is not None:
            self.parse_xml(node)

    def parse_xml(self, node: ElementTree.Element) -> TiledTemplate:
        if node.tag != "template":
            raise StructuralError('expected a template, got "{}"'.format(node.tag))
        self._set_properties(node)
        tileset_node = node.find("tileset")
        if tileset_node is not None:
            self.tileset = TiledTilesetRef(tileset_node, self.filename)
        object_node = node.find("object")
        if object_node is None:
            raise StructuralError("template {} has no object".format(self.filename))
        self.object = TiledObject(self, object_node)
        return self

    def dependencies(self) -> List[str]:
        if self.tileset is not None and self.tileset.source:
            return [self.tileset.source]
        return []


class TiledMap(TiledElement):
    """Contains the layers, objects and tileset references of a .tmx map."""

    def __init__(
        self,
        filename: Optional[str] = None,
        loader: Optional[Callable[[str], bytes]] = None,
    ) -> None:
        """Load new Tiled map from a .tmx file.

        Args:
            filename (Optional[str]): Filename of tiled map to load.
            loader (Callable[[str], bytes]): Function returning the bytes of a file.

        """
        TiledElement.__init__(self)
        self.filename = filename
        self.tilesets = list()  # TiledTilesetRef objects, ascending firstgid
        self.layers = list()  # all tile layers in proper order
        self.layernames = dict()
        self.objectgroups = list()
        self.objects_by_id = dict()

        if filename:
            self.parse_xml(parse_xml_string((loader or read_file)(filename)))

    def __repr__(self):
        return '<{0}: "{1}">'.format(self.__class__.__name__, self.filename)

    # iterate over layers and objects in map
    def __iter__(self):
        return chain(self.layers, self.objects)

    def parse_xml(self, node: ElementTree.Element) -> TiledMap:
        """Parse a map from ElementTree xml node.

        Args:
            node (ElementTree.Element): ElementTree xml node to parse.

        Raises:
            ParseError: for malformed attribute values
            StructuralError: for missing elements or non-positive sizes

        """
        if node.tag != "map":
            raise StructuralError('expected a map, got "{}"'.format(node.tag))

        self._set_properties(node)

        # enum attributes are validated here, so accessors cannot fail later
        Orientation.parse(self.attributes.get_str("orientation", "orthogonal"))
        RenderOrder.parse(self.attributes.get_str("renderorder", "right-down"))

        for name in ("width", "height", "tilewidth", "tileheight"):
            if self.attributes.get_int(name, 0) <= 0:
                msg = 'map {} must be greater than 0'.format(name)
                logger.error(msg)
                raise StructuralError(msg)

        refs = [TiledTilesetRef(child, self.filename) for child in node.findall("tileset")]
        self.tilesets = sorted(refs, key=attrgetter("firstgid"))

        self._parse_layers(node, True)
        return self

    def _parse_layers(self, node: ElementTree.Element, visible: bool) -> None:
        # group layers are flattened, in document order
        for child in node:
            if child.tag == "layer":
                self.add_layer(TiledTileLayer(self, child, visible))
            elif child.tag == "objectgroup":
                self.add_objectgroup(TiledObjectGroup(self, child, visible))
            elif child.tag == "group":
                group_visible = AttributeTable.from_node(child).get_bool("visible", True)
                self._parse_layers(child, visible and group_visible)

    def add_layer(self, layer: TiledTileLayer) -> None:
        assert isinstance(layer, TiledTileLayer)
        self.layers.append(layer)
        self.layernames[layer.name] = layer

    def add_objectgroup(self, objectgroup: TiledObjectGroup) -> None:
        assert isinstance(objectgroup, TiledObjectGroup)
        self.objectgroups.append(objectgroup)
        for obj in objectgroup:
            self.objects_by_id[obj.id] = obj

    @property
    def version(self) -> str:
        return self.attributes.get_str("version", "unknown")

    @property
    def tiledversion(self) -> str:
        return self.attributes.get_str("tiledversion", "unknown")

    @property
    def orientation(self) -> Orientation:
        return Orientation.parse(self.attributes.get_str("orientation", "orthogonal"))

    @property
    def renderorder(self) -> RenderOrder:
        return RenderOrder.parse(self.attributes.get_str("renderorder", "right-down"))

    @property
    def width(self) -> int:
        return self.attributes.get_int("width", 0)

    @property
    def height(self) -> int:
        return self.attributes.get_int("height", 0)

    @property
    def tilewidth(self) -> int:
        return self.attributes.get_int("tilewidth", 0)

    @property
    def tileheight(self) -> int:
        return self.attributes.get_int("tileheight", 0)

    @property
    def infinite(self) -> bool:
        return self.attributes.get_bool("infinite", False)

    @property
    def nextlayerid(self) -> int:
        return self.attributes.get_int("nextlayerid", 0)

    @property
    def nextobjectid(self) -> int:
        return self.attributes.get_int("nextobjectid", 0)

    @property
    def background_color(self) -> Optional[str]:
        return self.attributes.get_str("backgroundcolor", None)

    @property
    def bounds(self) -> Rect:
        """Pixel space rect covered by the map.

        For infinite maps this is the union of all chunks.

        """
        rect = Rect(0, 0, self.width * self.tilewidth, self.height * self.tileheight)
        if not self.infinite:
            return rect
        chunk_rects = [
            chunk.rect(self.tilewidth, self.tileheight)
            for layer in self.layers
            for chunk in layer.chunks
        ]
        if not chunk_rects:
            return rect
        bounds = chunk_rects[0]
        for chunk_rect in chunk_rects[1:]:
            bounds = bounds.union(chunk_rect)
        return bounds

    @property
    def objects(self) -> Iterable[TiledObject]:
        """Returns iterator of all the objects associated with the map."""
        return chain(*self.objectgroups)

    @property
    def visible_layers(self) -> Iterable[TiledTileLayer]:
        """Returns iterator of tile layers that are set "visible"."""
        return (layer for layer in self.layers if layer.visible)

    def get_layer_by_name(self, name: str) -> TiledTileLayer:
        """Return a layer by name.

        Args:
            name (str): The layer's name. Case-sensitive!

        Raises:
            ValueError: if layer by name does not exist

        """
        try:
            return self.layernames[name]
        except KeyError:
            msg = 'Layer "{0}" not found.'
            logger.debug(msg.format(name))
            raise ValueError(msg.format(name))

    def get_objectgroup_by_name(self, name: str) -> TiledObjectGroup:
        for objectgroup in self.objectgroups:
            if objectgroup.name == name:
                return objectgroup
        msg = 'Object group "{0}" not found.'
        logger.debug(msg.format(name))
        raise ValueError(msg.format(name))

    def get_object_by_id(self, obj_id: int) -> TiledObject:
        return self.objects_by_id[obj_id]

    def get_object_by_name(self, name: str) -> TiledObject:
        for obj in self.objects:
            if obj.name == name:
                return obj
        raise ValueError('Object "{0}" not found'.format(name))

    def find_tileset_by_gid(self, gid: int) -> TiledTilesetRef:
        """Return the tileset reference that owns the gid.

        Raises:
            UnresolvedReferenceError: if no tileset owns the gid.

        """
        return find_tileset(self.tilesets, gid)

    def template_sources(self) -> List[str]:
        sources = list()
        for obj in self.objects:
            source = obj.template_source
            if source and source not in sources:
                sources.append(source)
        return sources

    def dependencies(self) -> List[str]:
        """Resource keys this map needs: external tilesets, then templates."""
        keys = [ref.source for ref in self.tilesets if ref.source]
        for source in self.template_sources():
            if source not in keys:
                keys.append(source)
        return keys


document_types = {
    "map": TiledMap,
    "tileset": TiledTileset,
    "template": TiledTemplate,
}


def parse_document(data: Union[str, bytes], filename: Optional[str] = None):
    """Decode a .tmx, .tsx or .tx document, picked by its root element.

    Raises:
        ParseError: for malformed markup or attribute values
        StructuralError: for unknown root elements or missing children

    """
    node = parse_xml_string(data)
    try:
        cls = document_types[node.tag]
    except KeyError:
        raise StructuralError('unknown document type "{}"'.format(node.tag))
    document = cls()
    document.filename = filename
    return document.parse_xml(node)
