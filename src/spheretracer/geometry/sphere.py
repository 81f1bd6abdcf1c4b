"""Sphere primitive and ray-sphere intersection.

This module provides the device-side Sphere dataclass, the HitPayload record
returned by scene tracing, and the per-sphere root computation.

The ray-sphere intersection is found by solving:
    |origin + t * direction - position|^2 = radius^2

which expands to the quadratic a*t^2 + b*t + c = 0 with:
    a = dot(direction, direction)
    b = 2 * dot(oc, direction)
    c = dot(oc, oc) - radius^2
    oc = origin - position

Only the smaller root (the surface facing the ray) is considered. Distances
that are not strictly positive are reported as a miss, so a sphere that
contains the ray origin is never hit from the inside.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(position=ti.math.vec3(0, 0, 0), radius=1.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Hit distance reported when a ray hits nothing
MISS_DISTANCE = -1.0


@ti.dataclass
class Sphere:
    """A sphere defined by position and radius.

    Attributes:
        position: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    position: vec3
    radius: ti.f32


@ti.dataclass
class HitPayload:
    """Result of tracing a ray against the scene.

    Attributes:
        hit_distance: Distance along the ray to the hit. Negative means miss.
        world_position: The hit point in world space. Only valid on a hit.
        world_normal: The outward unit surface normal at the hit point.
            Only valid on a hit.
        object_index: Index of the hit sphere in the scene, -1 on a miss.
    """

    hit_distance: ti.f32
    world_position: vec3
    world_normal: vec3
    object_index: ti.i32


@ti.func
def hit_sphere(ray_origin: vec3, ray_direction: vec3, sphere: Sphere) -> ti.f32:
    """Compute the distance to the near surface of a sphere.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (need not be normalized).
        sphere: The sphere to test.

    Returns:
        The smaller root t of the intersection quadratic if it is positive,
        otherwise MISS_DISTANCE. Zero-length directions always miss.
    """
    oc = ray_origin - sphere.position

    a = tm.dot(ray_direction, ray_direction)
    b = 2.0 * tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = b * b - 4.0 * a * c

    result = MISS_DISTANCE
    if a > 0.0 and discriminant >= 0.0:
        t = (-b - ti.sqrt(discriminant)) / (2.0 * a)
        if t > 0.0:
            result = t
    return result


@ti.func
def make_miss_payload() -> HitPayload:
    """Create a HitPayload indicating no intersection."""
    return HitPayload(
        hit_distance=MISS_DISTANCE,
        world_position=vec3(0.0, 0.0, 0.0),
        world_normal=vec3(0.0, 0.0, 0.0),
        object_index=-1,
    )


@ti.func
def make_hit_payload(
    ray_origin: vec3,
    ray_direction: vec3,
    t: ti.f32,
    sphere: Sphere,
    object_index: ti.i32,
) -> HitPayload:
    """Fill a HitPayload for the winning sphere of a closest-hit query.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray.
        t: The hit distance along the ray.
        sphere: The sphere that was hit.
        object_index: Index of that sphere in the scene.

    Returns:
        A HitPayload with world-space hit point and outward normal.
    """
    hit_point = ray_origin + t * ray_direction
    return HitPayload(
        hit_distance=t,
        world_position=hit_point,
        world_normal=tm.normalize(hit_point - sphere.position),
        object_index=object_index,
    )
