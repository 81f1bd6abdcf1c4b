"""Ray data structure, vector helpers and per-pixel ray generation.

This module provides the Ray dataclass used throughout the renderer together
with the handful of vector utilities the bounce loop needs. Everything here is
designed to run inside Taichi kernels.

Primary rays are not computed from camera parameters on the device. The camera
precomputes one direction per pixel on the host, the renderer uploads that table
into a field, and ``generate_ray`` simply pairs the camera position with the
table entry for a pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 6.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> hit_point = ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """Half-line traced through the scene.

    Attributes:
        origin: Where the ray starts, in world space.
        direction: The direction vector of the ray (vec3). It is not required
            to be normalized; the intersector handles arbitrary lengths.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Evaluate the ray at distance parameter t.

    Args:
        ray: The ray to evaluate.
        t: Distance in units of the direction length.

    Returns:
        origin + t * direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


@ti.func
def generate_ray(origin: vec3, directions: ti.template(), pixel_index: ti.i32) -> Ray:
    """Build the primary ray for a pixel.

    Args:
        origin: The camera position in world space.
        directions: Field of per-pixel ray directions, indexed by
            ``x + y * width``. Must be sized for the current viewport.
        pixel_index: Flat index of the pixel.

    Returns:
        A Ray starting at the camera with the pixel's precomputed direction.
    """
    return make_ray(origin, directions[pixel_index])


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror a direction about a surface normal.

    The normal is used as given. A perturbed (non-unit) normal yields a
    correspondingly perturbed reflection, which is how rough surfaces scatter.

    Args:
        incident: Direction of travel before the bounce.
        normal: Surface normal, possibly jittered.

    Returns:
        Direction of travel after the bounce.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def random_offset() -> vec3:
    """Generate a random vector with each component uniform in [-0.5, 0.5).

    Used to jitter surface normals in proportion to material roughness.
    """
    return vec3(
        ti.random(ti.f32) - 0.5,
        ti.random(ti.f32) - 0.5,
        ti.random(ti.f32) - 0.5,
    )
