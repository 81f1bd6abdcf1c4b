"""Pinhole camera that precomputes one ray direction per pixel.

The renderer never builds primary rays from camera parameters itself. Instead
the camera keeps a table of world-space ray directions, one per viewport pixel,
and regenerates it whenever the viewport size or the view changes. The table is
a NumPy array indexed by ``x + y * width`` with ``y = 0`` at the bottom row.

The camera builds an orthonormal basis from its forward direction and the world
up vector:
- forward: the view direction
- right: cross(forward, up)
- up: cross(right, forward)

Example:
    >>> from spheretracer.camera.pinhole import PinholeCamera
    >>> camera = PinholeCamera(vertical_fov=45.0, position=(0.0, 0.0, 6.0))
    >>> camera.on_resize(320, 240)
    True
    >>> camera.ray_directions.shape
    (76800, 3)
"""

from __future__ import annotations

import math

import numpy as np
import numpy.typing as npt

# World-space up vector used to orient the camera
WORLD_UP = (0.0, 1.0, 0.0)


def _normalize(v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    length = np.linalg.norm(v)
    if length < 1e-8:
        raise ValueError("Cannot normalize a zero-length vector")
    return v / length


class PinholeCamera:
    """Perspective camera with a cached per-pixel ray direction table.

    Attributes:
        vertical_fov: Vertical field of view in degrees.
    """

    def __init__(
        self,
        vertical_fov: float = 45.0,
        position: tuple[float, float, float] = (0.0, 0.0, 6.0),
        forward: tuple[float, float, float] = (0.0, 0.0, -1.0),
    ) -> None:
        """Initialize the camera.

        The direction table stays empty until on_resize() gives the camera a
        viewport.

        Args:
            vertical_fov: Vertical field of view in degrees, in (0, 180).
            position: Camera position in world space.
            forward: View direction (normalized internally).

        Raises:
            ValueError: If the field of view is out of range or forward is
                zero-length or parallel to the world up vector.
        """
        if not 0.0 < vertical_fov < 180.0:
            raise ValueError(f"Vertical FOV must be in (0, 180) degrees, got {vertical_fov}")

        self.vertical_fov = float(vertical_fov)
        self._position = np.array(position, dtype=np.float64)
        self._forward = _normalize(np.array(forward, dtype=np.float64))
        self._check_basis(self._forward)

        self._viewport_width = 0
        self._viewport_height = 0
        self._ray_directions = np.zeros((0, 3), dtype=np.float32)

    @staticmethod
    def _check_basis(forward: npt.NDArray[np.float64]) -> None:
        if np.linalg.norm(np.cross(forward, WORLD_UP)) < 1e-6:
            raise ValueError("Camera forward direction must not be parallel to the up vector")

    @property
    def position(self) -> tuple[float, float, float]:
        """Camera position in world space."""
        return (float(self._position[0]), float(self._position[1]), float(self._position[2]))

    @property
    def forward(self) -> tuple[float, float, float]:
        """Unit view direction."""
        return (float(self._forward[0]), float(self._forward[1]), float(self._forward[2]))

    @property
    def right(self) -> tuple[float, float, float]:
        """Unit vector pointing to the right of the view."""
        r = _normalize(np.cross(self._forward, WORLD_UP))
        return (float(r[0]), float(r[1]), float(r[2]))

    @property
    def viewport_width(self) -> int:
        """Width of the viewport the direction table was built for."""
        return self._viewport_width

    @property
    def viewport_height(self) -> int:
        """Height of the viewport the direction table was built for."""
        return self._viewport_height

    @property
    def ray_directions(self) -> npt.NDArray[np.float32]:
        """Per-pixel unit ray directions, shape (width * height, 3)."""
        return self._ray_directions

    def on_resize(self, width: int, height: int) -> bool:
        """Set the viewport size, regenerating directions if it changed.

        Args:
            width: Viewport width in pixels.
            height: Viewport height in pixels.

        Returns:
            True if the size changed and the table was rebuilt.

        Raises:
            ValueError: If either dimension is negative.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Viewport dimensions must be non-negative, got {width}x{height}")
        if width == self._viewport_width and height == self._viewport_height:
            return False

        self._viewport_width = width
        self._viewport_height = height
        self._recalculate_ray_directions()
        return True

    def update(
        self,
        position: tuple[float, float, float] | None = None,
        forward: tuple[float, float, float] | None = None,
    ) -> bool:
        """Move or turn the camera.

        Args:
            position: New position, or None to keep the current one.
            forward: New view direction, or None to keep the current one.

        Returns:
            True if the view changed, meaning accumulated samples are stale
            and the renderer's frame index should be reset.

        Raises:
            ValueError: If forward is zero-length or parallel to world up.
        """
        moved = False

        if position is not None:
            new_position = np.array(position, dtype=np.float64)
            if not np.array_equal(new_position, self._position):
                self._position = new_position
                moved = True

        if forward is not None:
            new_forward = _normalize(np.array(forward, dtype=np.float64))
            self._check_basis(new_forward)
            if not np.allclose(new_forward, self._forward, rtol=0.0, atol=1e-9):
                self._forward = new_forward
                moved = True

        if moved:
            self._recalculate_ray_directions()
        return moved

    def _recalculate_ray_directions(self) -> None:
        """Rebuild the per-pixel direction table for the current view."""
        width = self._viewport_width
        height = self._viewport_height
        if width == 0 or height == 0:
            self._ray_directions = np.zeros((0, 3), dtype=np.float32)
            return

        right = _normalize(np.cross(self._forward, WORLD_UP))
        up = np.cross(right, self._forward)

        # Half extents of the image plane at unit distance
        half_height = math.tan(math.radians(self.vertical_fov) / 2.0)
        half_width = half_height * (width / height)

        # Normalized device coordinates in [-1, 1)
        xs = np.arange(width, dtype=np.float64) / width * 2.0 - 1.0
        ys = np.arange(height, dtype=np.float64) / height * 2.0 - 1.0
        grid_x, grid_y = np.meshgrid(xs, ys)

        directions = (
            self._forward[None, None, :]
            + grid_x[..., None] * half_width * right[None, None, :]
            + grid_y[..., None] * half_height * up[None, None, :]
        )
        directions /= np.linalg.norm(directions, axis=-1, keepdims=True)

        self._ray_directions = directions.reshape(width * height, 3).astype(np.float32)

    def __repr__(self) -> str:
        """Return a string representation of the camera state."""
        return (
            f"PinholeCamera(position={self.position}, forward={self.forward}, "
            f"vertical_fov={self.vertical_fov}, "
            f"viewport={self._viewport_width}x{self._viewport_height})"
        )
