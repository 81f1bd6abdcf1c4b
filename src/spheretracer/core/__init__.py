"""Core rendering module.

Components:
    ray: Ray data structure and vector helpers
    integrator: Bounce shader tracing one path per pixel
    accumulation: Per-pixel running sums and packed display image
    renderer: Render driver running one progressive pass per call

All per-pixel work runs inside Taichi kernels.
"""

from .accumulation import AccumulationBuffer, accumulate_sample, pack_rgba
from .ray import (
    Ray,
    generate_ray,
    length_squared,
    make_ray,
    random_offset,
    ray_at,
    reflect,
    vec3,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports
# through the scene package. Import them directly:
#   from spheretracer.core.renderer import Renderer

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "generate_ray",
    "vec3",
    "length_squared",
    "reflect",
    "random_offset",
    "AccumulationBuffer",
    "accumulate_sample",
    "pack_rgba",
]
