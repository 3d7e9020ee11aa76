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

__all__ = (
    "TiledException",
    "ParseError",
    "StructuralError",
    "UnresolvedReferenceError",
    "DuplicateLoadError",
    "UnsupportedEncodingError",
)


class TiledException(Exception):
    """Base class for all tmxregion errors."""


class ParseError(TiledException, ValueError):
    """A value in the markup could not be parsed.

    Raised for malformed attribute values, bad layer payload tokens and
    malformed XML.

    """

    def __init__(self, message: str, token=None) -> None:
        super().__init__(message)
        self.token = token


class StructuralError(TiledException):
    """A document is missing a required element or violates a size invariant."""


class UnresolvedReferenceError(TiledException, LookupError):
    """A GID without owning tileset, or a dependency that is not loaded."""


class DuplicateLoadError(TiledException):
    """A load was requested for a resource that is already loading or loaded."""

    def __init__(self, key: str, state) -> None:
        super().__init__('Resource "{0}" is already {1}'.format(key, state.value))
        self.key = key
        self.state = state


class UnsupportedEncodingError(TiledException):
    """Layer data uses an encoding or compression that cannot be decoded."""
