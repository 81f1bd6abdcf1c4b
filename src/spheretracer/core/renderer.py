"""Render driver: one full-frame pass per call, with progressive accumulation.

The Renderer owns the accumulation buffer, a device copy of the camera's ray
direction table and the device scene buffers. Each ``render`` call:

1. resizes the buffers if the camera viewport changed,
2. uploads the scene and the direction table,
3. zeroes the running sums when starting a new accumulation (frame index 1),
4. shades every pixel once in parallel and adds the sample to its slot,
5. recomputes the packed display image,
6. advances the frame index (accumulation on) or pins it at 1 (off).

Pixels are distributed across threads by Taichi's parallel outer loop. Every
iteration writes only its own accumulation slot, so no locking is needed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.camera.pinhole import PinholeCamera
    >>> from spheretracer.core.renderer import Renderer
    >>> from spheretracer.scene.scene import create_default_scene
    >>>
    >>> scene = create_default_scene()
    >>> camera = PinholeCamera()
    >>> camera.on_resize(320, 240)
    >>> renderer = Renderer()
    >>> renderer.render(scene, camera)
    >>> image = renderer.get_final_image()
"""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretracer.camera.pinhole import PinholeCamera
from spheretracer.core.accumulation import AccumulationBuffer, accumulate_sample
from spheretracer.core.integrator import per_pixel
from spheretracer.core.ray import generate_ray
from spheretracer.scene.intersection import SceneBuffers
from spheretracer.scene.scene import Scene

# Type alias for 3D vectors
vec3 = tm.vec3

# Callback receives (frames_rendered, frames_requested)
FrameCallback = Callable[[int, int], None]


@dataclass
class RendererSettings:
    """User-facing renderer options.

    Attributes:
        accumulate: If True, samples are averaged across frames. If False,
            every frame shows only its own sample.
    """

    accumulate: bool = True


@dataclass(frozen=True)
class FinalImage:
    """Read-only view of the packed display image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        data: Packed RGBA words of shape (height, width). Row 0 is the bottom
            row of the viewport. The array is not writeable.
    """

    width: int
    height: int
    data: npt.NDArray[np.uint32]


@ti.kernel
def _render_pass(
    scene: ti.template(),
    directions: ti.template(),
    accumulation: ti.template(),
    origin: vec3,
    width: ti.i32,
    height: ti.i32,
):
    """Shade one sample for every pixel and add it to the running sums."""
    for y, x in ti.ndrange(height, width):
        pixel_index = x + y * width
        ray = generate_ray(origin, directions, pixel_index)
        color = per_pixel(scene, ray.origin, ray.direction)
        accumulate_sample(accumulation, pixel_index, color)


class Renderer:
    """Progressive sphere renderer.

    Attributes:
        settings: The RendererSettings in effect for the next pass.
    """

    def __init__(self, settings: RendererSettings | None = None) -> None:
        """Initialize the renderer with empty (zero-area) buffers.

        Taichi must be initialized before a Renderer is created.

        Args:
            settings: Optional settings. Defaults to accumulation enabled.
        """
        self.settings = settings if settings is not None else RendererSettings()
        self._accumulation = AccumulationBuffer()
        self._scene_buffers = SceneBuffers()
        self._directions = None
        self._directions_tree = None

    @property
    def width(self) -> int:
        """Get the current buffer width."""
        return self._accumulation.width

    @property
    def height(self) -> int:
        """Get the current buffer height."""
        return self._accumulation.height

    @property
    def frame_index(self) -> int:
        """The frame index used as the averaging divisor (always >= 1)."""
        return self._accumulation.frame_index

    @property
    def accumulation_buffer(self) -> AccumulationBuffer:
        """The accumulation buffer owned by this renderer."""
        return self._accumulation

    @property
    def scene_buffers(self) -> SceneBuffers:
        """The device scene buffers, as uploaded by the last render."""
        return self._scene_buffers

    def on_resize(self, width: int, height: int) -> None:
        """Reallocate buffers for a new viewport size.

        Does nothing if the size is unchanged. Otherwise the accumulation is
        reset along with the reallocation.

        Args:
            width: Viewport width in pixels.
            height: Viewport height in pixels.

        Raises:
            ValueError: If either dimension is negative.
        """
        if width == self.width and height == self.height:
            return

        self._accumulation.resize(width, height)

        if self._directions_tree is not None:
            self._directions_tree.destroy()
            self._directions_tree = None
        self._directions = None

        if width > 0 and height > 0:
            builder = ti.FieldsBuilder()
            directions = ti.Vector.field(3, dtype=ti.f32)
            builder.dense(ti.i, width * height).place(directions)
            self._directions_tree = builder.finalize()
            self._directions = directions

    def reset_frame_index(self) -> None:
        """Discard accumulated samples and restart averaging at frame 1."""
        self._accumulation.reset()

    def render(self, scene: Scene, camera: PinholeCamera) -> None:
        """Render one sample per pixel and update the display image.

        A zero-area viewport makes this a no-op.

        Args:
            scene: The scene to render. Read once at the start of the pass.
            camera: Camera providing the position and per-pixel directions.

        Raises:
            ValueError: If the camera's direction table does not match its
                viewport size.
            RuntimeError: If the scene exceeds the device capacity.
        """
        width = camera.viewport_width
        height = camera.viewport_height
        if width == 0 or height == 0:
            return

        self.on_resize(width, height)

        directions = camera.ray_directions
        if directions.shape != (width * height, 3):
            raise ValueError(
                f"Camera ray directions have shape {directions.shape}, "
                f"expected {(width * height, 3)} for a {width}x{height} viewport"
            )

        self._scene_buffers.upload(scene)
        self._directions.from_numpy(np.ascontiguousarray(directions, dtype=np.float32))

        if self._accumulation.frame_index == 1:
            self._accumulation.reset()

        _render_pass(
            self._scene_buffers,
            self._directions,
            self._accumulation.accumulation,
            vec3(*camera.position),
            width,
            height,
        )

        self._accumulation.compute_display()

        if self.settings.accumulate:
            self._accumulation.advance_frame()
        else:
            self._accumulation.rewind_frame()

    def render_frames(
        self,
        scene: Scene,
        camera: PinholeCamera,
        num_frames: int = 1,
        callback: FrameCallback | None = None,
    ) -> None:
        """Render several passes back to back.

        Args:
            scene: The scene to render.
            camera: The camera to render from.
            num_frames: Number of passes to run.
            callback: Optional callback called after each pass with
                (frames_rendered, num_frames).
        """
        for frame in range(num_frames):
            self.render(scene, camera)
            if callback is not None:
                callback(frame + 1, num_frames)

    def get_final_image(self) -> FinalImage | None:
        """Get the packed display image of the last pass.

        Returns:
            A FinalImage, or None while the viewport has zero area.
        """
        if self.width == 0 or self.height == 0:
            return None

        data = self._accumulation.get_image_data_numpy().reshape(self.height, self.width)
        data.flags.writeable = False
        return FinalImage(width=self.width, height=self.height, data=data)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"frame_index={self.frame_index}, accumulate={self.settings.accumulate})"
        )
