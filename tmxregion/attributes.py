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
import re
from collections import namedtuple
from enum import Enum
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple
from xml.etree import ElementTree

from .errors import ParseError

__all__ = (
    "AttrType",
    "AttributeTable",
    "TypedValue",
    "convert_to_bool",
    "convert_to_float",
    "convert_to_int",
    "object_types",
    "types",
)

logger = logging.getLogger(__name__)

_int_pattern = re.compile(r"[+-]?[0-9]+")


class AttrType(Enum):
    STRING = "string"
    INTEGER = "int"
    BOOLEAN = "bool"
    FLOAT = "float"


TypedValue = namedtuple("TypedValue", ["type", "value"])


def convert_to_int(value: str) -> int:
    """Strict base-10 integer conversion of a whole token.

    Args:
        value (str): String to convert.

    Raises:
        ParseError: If `value` has any non-digit content.

    Returns:
        int: The converted integer.

    """
    token = str(value).strip()
    if not _int_pattern.fullmatch(token):
        raise ParseError('cannot parse "{}" as int'.format(value), value)
    return int(token)


def convert_to_bool(value: str) -> bool:
    """Convert the Tiled spellings of "true" and "false" to boolean

    Only "1", "true", "0" and "false" are accepted.

    Args:
        value (str): String to test.

    Raises:
        ParseError: If `value` cannot be converted to a boolean.

    Returns:
        bool: The converted boolean.

    """
    token = str(value).strip()
    if token in ("1", "true"):
        return True
    if token in ("0", "false"):
        return False
    raise ParseError('cannot parse "{}" as bool'.format(value), value)


def convert_to_float(value: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ParseError('cannot parse "{}" as float'.format(value), value)


decoders = {
    AttrType.STRING: str,
    AttrType.INTEGER: convert_to_int,
    AttrType.BOOLEAN: convert_to_bool,
    AttrType.FLOAT: convert_to_float,
}

# the attribute vocabulary shared by every document type.
# names not listed here are ignored while parsing.
types: Dict[str, AttrType] = {
    "backgroundcolor": AttrType.STRING,
    "class": AttrType.STRING,
    "color": AttrType.STRING,
    "columns": AttrType.INTEGER,
    "compression": AttrType.STRING,
    "draworder": AttrType.STRING,
    "encoding": AttrType.STRING,
    "firstgid": AttrType.INTEGER,
    "gid": AttrType.INTEGER,
    "height": AttrType.INTEGER,
    "hexsidelength": AttrType.INTEGER,
    "id": AttrType.INTEGER,
    "infinite": AttrType.BOOLEAN,
    "locked": AttrType.BOOLEAN,
    "margin": AttrType.INTEGER,
    "name": AttrType.STRING,
    "nextlayerid": AttrType.INTEGER,
    "nextobjectid": AttrType.INTEGER,
    "offsetx": AttrType.FLOAT,
    "offsety": AttrType.FLOAT,
    "opacity": AttrType.FLOAT,
    "orientation": AttrType.STRING,
    "parallaxx": AttrType.FLOAT,
    "parallaxy": AttrType.FLOAT,
    "propertytype": AttrType.STRING,
    "renderorder": AttrType.STRING,
    "source": AttrType.STRING,
    "spacing": AttrType.INTEGER,
    "staggeraxis": AttrType.STRING,
    "staggerindex": AttrType.STRING,
    "template": AttrType.STRING,
    "tilecount": AttrType.INTEGER,
    "tiledversion": AttrType.STRING,
    "tileheight": AttrType.INTEGER,
    "tilewidth": AttrType.INTEGER,
    "tintcolor": AttrType.STRING,
    "trans": AttrType.STRING,
    "type": AttrType.STRING,
    "value": AttrType.STRING,
    "version": AttrType.STRING,
    "visible": AttrType.BOOLEAN,
    "width": AttrType.INTEGER,
    "x": AttrType.INTEGER,
    "y": AttrType.INTEGER,
}

# tiled writes fractional geometry for objects
object_types: Dict[str, AttrType] = dict(types)
object_types.update(
    {
        "height": AttrType.FLOAT,
        "rotation": AttrType.FLOAT,
        "width": AttrType.FLOAT,
        "x": AttrType.FLOAT,
        "y": AttrType.FLOAT,
    }
)


class AttributeTable:
    """Typed key/value store parsed from the attributes of one element.

    Values are stored as TypedValue tuples, tagged with the type that the
    vocabulary declares for the name.  Reading a key with the wrong type, or
    a key that is not present, returns the default given by the caller.

    """

    def __init__(self, vocabulary: Optional[Mapping[str, AttrType]] = None) -> None:
        self.vocabulary = types if vocabulary is None else vocabulary
        self._values: Dict[str, TypedValue] = dict()

    @classmethod
    def from_items(
        cls,
        items: Iterable[Tuple[str, str]],
        vocabulary: Optional[Mapping[str, AttrType]] = None,
    ) -> AttributeTable:
        table = cls(vocabulary)
        for name, raw in items:
            table.parse(name, raw)
        return table

    @classmethod
    def from_node(
        cls,
        node: ElementTree.Element,
        vocabulary: Optional[Mapping[str, AttrType]] = None,
    ) -> AttributeTable:
        """Parse all attributes of an ElementTree element.

        Args:
            node (ElementTree.Element): Element to read.
            vocabulary (Optional[Mapping[str, AttrType]]): Name to type mapping.

        Raises:
            ParseError: If a known attribute has a malformed value.

        Returns:
            AttributeTable: The parsed table.

        """
        return cls.from_items(node.items(), vocabulary)

    def parse(self, name: str, raw: str) -> Optional[TypedValue]:
        """Parse and store one attribute.

        Args:
            name (str): Attribute name.
            raw (str): Attribute value, as found in the markup.

        Raises:
            ParseError: If the value cannot be decoded as the declared type.

        Returns:
            Optional[TypedValue]: The stored value, or None if the name is unknown.

        """
        try:
            attr_type = self.vocabulary[name]
        except KeyError:
            logger.debug("ignoring unknown attribute {0}".format(name))
            return None

        try:
            value = decoders[attr_type](raw)
        except ParseError as error:
            raise ParseError(
                'invalid {0} attribute "{1}": {2}'.format(attr_type.value, name, raw),
                error.token,
            ) from error

        typed = TypedValue(attr_type, value)
        self._values[name] = typed
        return typed

    def set(self, name: str, value) -> None:
        """Replace a value, keeping the type declared by the vocabulary."""
        attr_type = self.vocabulary[name]
        self._values[name] = TypedValue(attr_type, value)

    def get(self, name: str, attr_type: AttrType, default=None):
        try:
            typed = self._values[name]
        except KeyError:
            return default
        if typed.type is not attr_type:
            return default
        return typed.value

    def get_str(self, name: str, default: str = "") -> str:
        return self.get(name, AttrType.STRING, default)

    def get_int(self, name: str, default: int = 0) -> int:
        return self.get(name, AttrType.INTEGER, default)

    def get_bool(self, name: str, default: bool = False) -> bool:
        return self.get(name, AttrType.BOOLEAN, default)

    def get_float(self, name: str, default: float = 0.0) -> float:
        return self.get(name, AttrType.FLOAT, default)

    def typed(self, name: str) -> Optional[TypedValue]:
        return self._values.get(name)

    def items(self) -> Iterator[Tuple[str, TypedValue]]:
        return iter(self._values.items())

    def __contains__(self, name) -> bool:
        return name in self._values

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __eq__(self, other):
        if not isinstance(other, AttributeTable):
            return NotImplemented
        return self._values == other._values

    def __repr__(self):
        return "<{0}: {1}>".format(
            self.__class__.__name__,
            {k: v.value for k, v in self._values.items()},
        )
