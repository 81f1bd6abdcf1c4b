"""Scene module.

Components:
    scene: Host-side Scene, Sphere and Material records plus the default scene
    intersection: Device scene buffers and closest-hit queries

Scene data is uploaded to Structure-of-Arrays Taichi fields once per render
pass, so hosts may edit the Scene freely between passes.
"""

from .intersection import MAX_MATERIALS, MAX_SPHERES, HitInfo, SceneBuffers
from .scene import Material, Scene, Sphere, create_default_scene

__all__ = [
    "Scene",
    "Sphere",
    "Material",
    "create_default_scene",
    "SceneBuffers",
    "HitInfo",
    "MAX_SPHERES",
    "MAX_MATERIALS",
]
