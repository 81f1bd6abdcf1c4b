"""Camera module.

The pinhole camera turns a viewport size into a table of normalized world
space ray directions, one per pixel, ordered ``x + y * width`` with y = 0 at
the bottom row.
"""

from .pinhole import WORLD_UP, PinholeCamera

__all__ = [
    "PinholeCamera",
    "WORLD_UP",
]
