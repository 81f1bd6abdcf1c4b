"""Device-side scene storage and closest-hit ray tracing.

SceneBuffers mirrors a host ``Scene`` in Taichi fields so kernels can read it.
Spheres and materials are stored in a Structure-of-Arrays layout preallocated
to fixed capacities, which keeps kernels from recompiling when the scene
changes size. ``upload`` copies the whole scene in one go and is cheap enough
to call at the start of every render pass.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.scene.intersection import SceneBuffers
    >>> from spheretracer.scene.scene import create_default_scene
    >>> buffers = SceneBuffers()
    >>> buffers.upload(create_default_scene())
    >>> info = buffers.intersect((0.0, 0.0, 6.0), (0.0, 0.0, -1.0))
    >>> info.object_index
    0
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from spheretracer.core.ray import Ray, make_ray
from spheretracer.geometry.sphere import (
    HitPayload,
    Sphere,
    hit_sphere,
    make_hit_payload,
    make_miss_payload,
)
from spheretracer.scene.scene import Scene

# Type alias for 3D vectors
vec3 = tm.vec3

# Maximum number of primitives and materials supported in the scene
MAX_SPHERES = 1024
MAX_MATERIALS = 256

# Upper bound for closest-hit searches
T_MAX = 1e30


@dataclass
class HitInfo:
    """Host-side copy of a HitPayload.

    Attributes:
        hit_distance: Distance to the hit, negative on a miss.
        world_position: Hit point in world space.
        world_normal: Outward unit normal at the hit point.
        object_index: Index of the hit sphere, -1 on a miss.
    """

    hit_distance: float
    world_position: tuple[float, float, float]
    world_normal: tuple[float, float, float]
    object_index: int

    @property
    def hit(self) -> bool:
        """Whether the ray hit any sphere."""
        return self.hit_distance >= 0.0


@ti.data_oriented
class SceneBuffers:
    """Taichi fields holding the spheres and materials of a scene.

    Attributes:
        sphere_positions: Sphere centers.
        sphere_radii: Sphere radii.
        sphere_material_indices: Material index of every sphere, as given by
            the host (may be out of range).
        material_albedos: Material base colors.
        material_roughnesses: Material roughness values.
        material_metallics: Material metallic values (not used by shading).
    """

    def __init__(self, max_spheres: int = MAX_SPHERES, max_materials: int = MAX_MATERIALS) -> None:
        self.max_spheres = max_spheres
        self.max_materials = max_materials

        # Sphere storage: Structure of Arrays layout
        self.sphere_positions = ti.Vector.field(3, dtype=ti.f32, shape=max_spheres)
        self.sphere_radii = ti.field(dtype=ti.f32, shape=max_spheres)
        self.sphere_material_indices = ti.field(dtype=ti.i32, shape=max_spheres)
        self.num_spheres = ti.field(dtype=ti.i32, shape=())

        # Material storage
        self.material_albedos = ti.Vector.field(3, dtype=ti.f32, shape=max_materials)
        self.material_roughnesses = ti.field(dtype=ti.f32, shape=max_materials)
        self.material_metallics = ti.field(dtype=ti.f32, shape=max_materials)
        self.num_materials = ti.field(dtype=ti.i32, shape=())

        # Single-ray query results for intersect()
        self._query_distance = ti.field(dtype=ti.f32, shape=())
        self._query_position = ti.Vector.field(3, dtype=ti.f32, shape=())
        self._query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
        self._query_index = ti.field(dtype=ti.i32, shape=())

    @property
    def sphere_count(self) -> int:
        """Number of spheres currently uploaded."""
        return int(self.num_spheres[None])

    @property
    def material_count(self) -> int:
        """Number of materials currently uploaded."""
        return int(self.num_materials[None])

    def upload(self, scene: Scene) -> None:
        """Copy a host scene into the device fields.

        Args:
            scene: The scene to copy.

        Raises:
            RuntimeError: If the scene exceeds the sphere or material capacity.
        """
        n_spheres = len(scene.spheres)
        n_materials = len(scene.materials)
        if n_spheres > self.max_spheres:
            raise RuntimeError(f"Maximum number of spheres ({self.max_spheres}) exceeded")
        if n_materials > self.max_materials:
            raise RuntimeError(f"Maximum number of materials ({self.max_materials}) exceeded")

        positions = np.zeros((self.max_spheres, 3), dtype=np.float32)
        radii = np.zeros(self.max_spheres, dtype=np.float32)
        material_indices = np.zeros(self.max_spheres, dtype=np.int32)
        for i, sphere in enumerate(scene.spheres):
            positions[i] = sphere.position
            radii[i] = sphere.radius
            material_indices[i] = sphere.material_index

        albedos = np.zeros((self.max_materials, 3), dtype=np.float32)
        roughnesses = np.zeros(self.max_materials, dtype=np.float32)
        metallics = np.zeros(self.max_materials, dtype=np.float32)
        for i, material in enumerate(scene.materials):
            albedos[i] = material.albedo
            roughnesses[i] = material.roughness
            metallics[i] = material.metallic

        self.sphere_positions.from_numpy(positions)
        self.sphere_radii.from_numpy(radii)
        self.sphere_material_indices.from_numpy(material_indices)
        self.num_spheres[None] = n_spheres

        self.material_albedos.from_numpy(albedos)
        self.material_roughnesses.from_numpy(roughnesses)
        self.material_metallics.from_numpy(metallics)
        self.num_materials[None] = n_materials

    @ti.func
    def get_sphere(self, index: ti.i32) -> Sphere:
        """Get a sphere by index."""
        return Sphere(position=self.sphere_positions[index], radius=self.sphere_radii[index])

    @ti.func
    def trace_ray(self, ray: Ray) -> HitPayload:
        """Find the closest sphere hit along a ray.

        Every sphere is tested and the smallest positive distance wins. On a
        hit the world-space point and outward normal are computed for the
        winning sphere only.

        Args:
            ray: The ray to trace.

        Returns:
            A HitPayload for the nearest hit, or a miss payload
            (hit_distance < 0) if no sphere is in front of the ray.
        """
        closest_t = T_MAX
        closest_index = -1

        for i in range(self.num_spheres[None]):
            t = hit_sphere(ray.origin, ray.direction, self.get_sphere(i))
            if t > 0.0 and t < closest_t:
                closest_t = t
                closest_index = i

        result = make_miss_payload()
        if closest_index >= 0:
            result = make_hit_payload(
                ray.origin, ray.direction, closest_t, self.get_sphere(closest_index), closest_index
            )
        return result

    @ti.func
    def resolve_material(self, object_index: ti.i32) -> ti.i32:
        """Get the material index of a sphere, clamped to the material list.

        Returns:
            A valid material index, or -1 if the scene has no materials.
        """
        n = self.num_materials[None]
        index = -1
        if n > 0:
            index = ti.min(ti.max(self.sphere_material_indices[object_index], 0), n - 1)
        return index

    @ti.kernel
    def _intersect_kernel(self, origin: vec3, direction: vec3):
        # Single-iteration outer loop keeps the sphere loop serial
        for _ in range(1):
            payload = self.trace_ray(make_ray(origin, direction))
            self._query_distance[None] = payload.hit_distance
            self._query_position[None] = payload.world_position
            self._query_normal[None] = payload.world_normal
            self._query_index[None] = payload.object_index

    def intersect(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
    ) -> HitInfo:
        """Trace a single ray from Python and return the closest hit.

        Intended for hosts (picking) and tests; rendering traces rays inside
        the render kernel instead.

        Args:
            origin: Ray origin.
            direction: Ray direction (need not be normalized).

        Returns:
            A HitInfo describing the nearest hit or a miss.
        """
        self._intersect_kernel(vec3(*origin), vec3(*direction))

        p = self._query_position[None]
        n = self._query_normal[None]
        return HitInfo(
            hit_distance=float(self._query_distance[None]),
            world_position=(float(p[0]), float(p[1]), float(p[2])),
            world_normal=(float(n[0]), float(n[1]), float(n[2])),
            object_index=int(self._query_index[None]),
        )
