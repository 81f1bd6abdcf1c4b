"""Geometry module for the sphere primitive.

Ray-sphere intersection is implemented as Taichi functions (@ti.func) so it can
be called from any render kernel. A miss is reported as a hit distance of
MISS_DISTANCE (-1).
"""

from .sphere import (
    MISS_DISTANCE,
    HitPayload,
    Sphere,
    hit_sphere,
    make_hit_payload,
    make_miss_payload,
)

__all__ = [
    "Sphere",
    "HitPayload",
    "hit_sphere",
    "make_hit_payload",
    "make_miss_payload",
    "MISS_DISTANCE",
]
