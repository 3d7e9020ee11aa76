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
import posixpath
from typing import Optional

__all__ = ["normalize_key", "resolve_source_path", "read_file"]


def normalize_key(path: str) -> str:
    """Return the canonical resource key for a path.

    Keys use forward slashes and have "." and ".." segments collapsed, so the
    same file referenced from two documents produces the same key.

    """
    return posixpath.normpath(str(path).replace("\\", "/"))


def resolve_source_path(base: Optional[str], source: str) -> str:
    """Resolve a `source` attribute relative to the document that holds it.

    Tiled stores paths relative to the referencing file, so a tileset image is
    relative to its .tsx, not to the .tmx that uses the tileset.

    """
    if not base:
        return normalize_key(source)
    folder = posixpath.dirname(normalize_key(base))
    return normalize_key(posixpath.join(folder, normalize_key(source)))


def read_file(path: str) -> bytes:
    """Default byte loader used by the resource coordinator."""
    with open(path, "rb") as fh:
        return fh.read()
