"""Bounce shader: iterative reflection loop producing one sample per pixel.

Each sample follows a primary ray through up to MAX_BOUNCES surface hits.
At every hit the surface is lit by a single fixed directional light, the
contribution is weighted by the current attenuation, and the ray is reflected
about the (roughness-jittered) surface normal. A ray that escapes picks up the
sky color and ends the loop. Exhausting the bounce budget ends the loop without
any sky contribution.

The loop is written with explicit state (origin, direction, attenuation, active
flag) instead of recursion.

Key features:
    - Lambert-style N.L lighting from one directional light
    - Mirror reflection jittered by material roughness
    - Per-bounce energy loss through ``bounce_attenuation``
    - Self-intersection avoidance with a small normal offset

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.core.integrator import trace_sample
    >>> from spheretracer.scene.intersection import SceneBuffers
    >>> from spheretracer.scene.scene import create_default_scene
    >>> buffers = SceneBuffers()
    >>> buffers.upload(create_default_scene())
    >>> sample = trace_sample(buffers, (0.0, 0.0, 6.0), (0.0, 0.0, -1.0))
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from spheretracer.core.ray import make_ray, random_offset, reflect

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Shading Constants
# =============================================================================

# Number of trace iterations per sample
MAX_BOUNCES = 5

# Color returned by rays that escape the scene
SKY_COLOR = vec3(0.6, 0.7, 0.9)

# Direction the light travels, normalize(-1, -1, -1)
_INV_SQRT3 = 1.0 / math.sqrt(3.0)
LIGHT_DIRECTION = vec3(-_INV_SQRT3, -_INV_SQRT3, -_INV_SQRT3)

# Fraction of energy kept after each bounce
BOUNCE_ATTENUATION = 0.5

# Distance the next ray origin is pushed along the normal
RAY_OFFSET = 1e-4


@dataclass
class SampleInfo:
    """Result of tracing one sample from Python.

    Attributes:
        color: The accumulated sample color (RGB).
        bounces: Number of trace iterations that were executed.
    """

    color: tuple[float, float, float]
    bounces: int


@ti.func
def bounce_attenuation(albedo: vec3, roughness: ti.f32, metallic: ti.f32) -> ti.f32:
    """Energy kept by a ray after reflecting off a material.

    Every material currently keeps BOUNCE_ATTENUATION regardless of its
    parameters.
    """
    return BOUNCE_ATTENUATION


@ti.func
def light_intensity(normal: vec3) -> ti.f32:
    """Diffuse intensity of the directional light on a surface."""
    return ti.max(tm.dot(normal, -LIGHT_DIRECTION), 0.0)


@ti.func
def trace_path(scene: ti.template(), origin: vec3, direction: vec3):
    """Run the bounce loop for one primary ray.

    Args:
        scene: SceneBuffers holding the uploaded scene.
        origin: Primary ray origin.
        direction: Primary ray direction.

    Returns:
        A tuple of (color, bounces) where color is the accumulated sample
        (RGB, unclamped) and bounces is the number of trace iterations run.
    """
    ray_origin = origin
    ray_direction = direction
    color = vec3(0.0, 0.0, 0.0)
    attenuation = 1.0
    bounces = 0

    # Active flag for loop continuation
    active = 1

    for _ in range(MAX_BOUNCES):
        if active == 1:
            bounces += 1
            payload = scene.trace_ray(make_ray(ray_origin, ray_direction))

            material_index = -1
            if payload.hit_distance >= 0.0:
                material_index = scene.resolve_material(payload.object_index)

            if material_index < 0:
                # Escaped, or hit a sphere with no material to shade with
                color += SKY_COLOR * attenuation
                active = 0
            else:
                normal = payload.world_normal
                albedo = scene.material_albedos[material_index]
                roughness = scene.material_roughnesses[material_index]
                metallic = scene.material_metallics[material_index]

                color += albedo * light_intensity(normal) * attenuation
                attenuation *= bounce_attenuation(albedo, roughness, metallic)

                ray_origin = payload.world_position + normal * RAY_OFFSET
                ray_direction = reflect(ray_direction, normal + roughness * random_offset())

    return color, bounces


@ti.func
def per_pixel(scene: ti.template(), origin: vec3, direction: vec3) -> tm.vec4:
    """Shade one sample and return it as RGBA with alpha 1."""
    color, _ = trace_path(scene, origin, direction)
    return tm.vec4(color.x, color.y, color.z, 1.0)


@ti.kernel
def _trace_sample_kernel(scene: ti.template(), origin: vec3, direction: vec3) -> tm.vec4:
    """Trace one sample; xyz is the color, w is the bounce count."""
    result = tm.vec4(0.0, 0.0, 0.0, 0.0)
    # Single-iteration outer loop keeps the bounce loop serial
    for _ in range(1):
        color, bounces = trace_path(scene, origin, direction)
        result = tm.vec4(color.x, color.y, color.z, ti.cast(bounces, ti.f32))
    return result


def trace_sample(
    scene,
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> SampleInfo:
    """Trace a single sample from Python.

    This is for testing and debugging. For rendering, use Renderer.render(),
    which shades every pixel in parallel.

    Args:
        scene: SceneBuffers holding the uploaded scene.
        origin: Ray origin.
        direction: Ray direction.

    Returns:
        A SampleInfo with the sample color and the number of bounces.
    """
    result = _trace_sample_kernel(scene, vec3(*origin), vec3(*direction))
    return SampleInfo(
        color=(float(result[0]), float(result[1]), float(result[2])),
        bounces=int(round(float(result[3]))),
    )
