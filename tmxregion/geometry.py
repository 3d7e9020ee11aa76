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

from collections import namedtuple
from math import cos, radians, sin
from typing import Union

__all__ = ("Matrix", "Point", "Rect", "IDENTITY")

Number = Union[int, float]

Point = namedtuple("Point", ["x", "y"])

# exact values for quarter turns, so rotated tiles stay on whole pixels
_quarter_turns = ((0, 1), (1, 0), (0, -1), (-1, 0))


class Rect(namedtuple("Rect", ["x", "y", "width", "height"])):
    """Axis-aligned rectangle; hashable, so it can key the chunk cache."""

    __slots__ = ()

    @classmethod
    def from_bounds(cls, minx: Number, miny: Number, maxx: Number, maxy: Number) -> Rect:
        return cls(minx, miny, maxx - minx, maxy - miny)

    @property
    def right(self) -> Number:
        return self.x + self.width

    @property
    def bottom(self) -> Number:
        return self.y + self.height

    @property
    def min(self) -> Point:
        return Point(self.x, self.y)

    @property
    def max(self) -> Point:
        return Point(self.right, self.bottom)

    def intersects(self, other: Rect) -> bool:
        """True if the two rects share at least one pixel.

        Rects that only touch along an edge do not intersect.

        """
        return not (
            other.right <= self.x
            or other.x >= self.right
            or other.bottom <= self.y
            or other.y >= self.bottom
        )

    def union(self, other: Rect) -> Rect:
        return Rect.from_bounds(
            min(self.x, other.x),
            min(self.y, other.y),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )


class Matrix(namedtuple("Matrix", ["a", "b", "c", "d", "tx", "ty"])):
    """2D affine transform.

    A point is mapped as::

        x' = a * x + b * y + tx
        y' = c * x + d * y + ty

    Every operation returns a new matrix with the operation applied *after*
    the current transform, so a chain of calls reads in the order the
    operations happen to the image.

    """

    __slots__ = ()

    def concat(self, other: Matrix) -> Matrix:
        """Return the transform of `self` followed by `other`."""
        return Matrix(
            other.a * self.a + other.b * self.c,
            other.a * self.b + other.b * self.d,
            other.c * self.a + other.d * self.c,
            other.c * self.b + other.d * self.d,
            other.a * self.tx + other.b * self.ty + other.tx,
            other.c * self.tx + other.d * self.ty + other.ty,
        )

    def translate(self, tx: Number, ty: Number) -> Matrix:
        return Matrix(self.a, self.b, self.c, self.d, self.tx + tx, self.ty + ty)

    def scale(self, sx: Number, sy: Number) -> Matrix:
        return Matrix(
            self.a * sx,
            self.b * sx,
            self.c * sy,
            self.d * sy,
            self.tx * sx,
            self.ty * sy,
        )

    def rotate(self, angle: Number) -> Matrix:
        """Rotate by `angle` degrees, clockwise on a y-down screen."""
        if angle % 90 == 0:
            sin_t, cos_t = _quarter_turns[int(angle // 90) % 4]
        else:
            sin_t = sin(radians(angle))
            cos_t = cos(radians(angle))
        return self.concat(Matrix(cos_t, -sin_t, sin_t, cos_t, 0, 0))

    def apply(self, x: Number, y: Number) -> Point:
        return Point(
            self.a * x + self.b * y + self.tx,
            self.c * x + self.d * y + self.ty,
        )

    def bounds(self, width: Number, height: Number) -> Rect:
        """Bounding rect of a width x height rect after this transform."""
        corners = [self.apply(x, y) for x, y in ((0, 0), (width, 0), (0, height), (width, height))]
        xs = [p.x for p in corners]
        ys = [p.y for p in corners]
        return Rect.from_bounds(min(xs), min(ys), max(xs), max(ys))


IDENTITY = Matrix(1, 0, 0, 1, 0, 0)
