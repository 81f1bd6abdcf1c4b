"""Host-side scene description: materials, spheres and the default scene.

The Scene is plain Python data. Hosts and editors mutate it freely between
frames; the renderer copies it into device buffers at the start of every
render pass (see ``spheretracer.scene.intersection.SceneBuffers``).

Example:
    >>> from spheretracer.scene.scene import Scene
    >>> scene = Scene()
    >>> mirror = scene.add_material(albedo=(1.0, 0.0, 1.0), roughness=0.0)
    >>> scene.add_sphere(position=(0.0, 0.0, 0.0), radius=1.0, material_index=mirror)
    0
"""

from dataclasses import dataclass, field


@dataclass
class Material:
    """Surface appearance of a sphere.

    Attributes:
        albedo: Base color (RGB). Conceptually in [0, 1] but not clamped.
        roughness: Amount of random perturbation applied to reflections.
            0 = mirror, 1 = maximum scatter.
        metallic: Metal/dielectric blend in [0, 1]. Stored and uploaded with
            the material but not used by shading yet.
    """

    albedo: tuple[float, float, float] = (1.0, 1.0, 1.0)
    roughness: float = 1.0
    metallic: float = 0.0


@dataclass
class Sphere:
    """A sphere placed in the scene.

    Attributes:
        position: Center of the sphere in world space.
        radius: Radius of the sphere (positive).
        material_index: Index into the scene's material list.
    """

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float = 0.5
    material_index: int = 0


@dataclass
class Scene:
    """Ordered spheres and materials rendered together.

    Attributes:
        spheres: Spheres in the scene. The list order defines object indices.
        materials: Materials referenced by ``Sphere.material_index``.
    """

    spheres: list[Sphere] = field(default_factory=list)
    materials: list[Material] = field(default_factory=list)

    def add_material(
        self,
        albedo: tuple[float, float, float],
        roughness: float = 1.0,
        metallic: float = 0.0,
    ) -> int:
        """Append a material and return its index.

        Raises:
            ValueError: If roughness or metallic is outside [0, 1].
        """
        if roughness < 0.0 or roughness > 1.0:
            raise ValueError(
                f"Roughness = {roughness} is outside [0, 1]. "
                "Roughness must be between 0 (mirror) and 1 (maximum scatter)."
            )
        if metallic < 0.0 or metallic > 1.0:
            raise ValueError(f"Metallic = {metallic} is outside [0, 1].")

        self.materials.append(
            Material(
                albedo=(float(albedo[0]), float(albedo[1]), float(albedo[2])),
                roughness=float(roughness),
                metallic=float(metallic),
            )
        )
        return len(self.materials) - 1

    def add_sphere(
        self,
        position: tuple[float, float, float],
        radius: float,
        material_index: int = 0,
    ) -> int:
        """Append a sphere and return its index.

        The material index is not checked against the material list; the
        shader clamps out-of-range indices at render time.

        Raises:
            ValueError: If radius is not positive.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")

        self.spheres.append(
            Sphere(
                position=(float(position[0]), float(position[1]), float(position[2])),
                radius=float(radius),
                material_index=int(material_index),
            )
        )
        return len(self.spheres) - 1


def create_default_scene() -> Scene:
    """Create the startup scene: a mirror sphere resting on a large ground sphere."""
    scene = Scene()
    magenta = scene.add_material(albedo=(1.0, 0.0, 1.0), roughness=0.0)
    blue = scene.add_material(albedo=(0.2, 0.3, 1.0), roughness=0.1)
    scene.add_sphere(position=(0.0, 0.0, 0.0), radius=1.0, material_index=magenta)
    scene.add_sphere(position=(0.0, -101.0, 0.0), radius=100.0, material_index=blue)
    return scene
