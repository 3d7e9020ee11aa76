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
import logging

from .attributes import *
from .codec import *
from .documents import *
from .errors import *
from .geometry import *
from .partition import *
from .renderer import *
from .resources import *
from .utils import *

logger = logging.getLogger(__name__)

try:
    from tmxregion.util_pygame import blit_tiles, buffer_region, load_images
except ImportError:
    logger.debug("cannot import pygame tools")

__version__ = (1, 0)
__author__ = "bitcraft"
__author_email__ = "leif.theden@gmail.com"
__description__ = "Region queries for Tiled TMX maps - Python 3.7 +"
