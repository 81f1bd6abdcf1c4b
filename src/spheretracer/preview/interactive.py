"""Interactive viewport using Taichi GGUI.

This module provides a reference host for the renderer: a window that renders
one frame per display refresh, shows the progressively refined image, and lets
the user move the camera and edit the scene live.

Features:
    - Progressive rendering with a Render button, an Accumulate toggle and a
      Reset button
    - Viewport follows the window size, so resizing restarts accumulation
    - Scene panel with sphere and material sliders (edits restart accumulation)
    - WASD/QE camera movement, arrow keys to turn (movement restarts
      accumulation)
    - PNG export with timestamp

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from spheretracer.preview.interactive import InteractiveViewport
    >>> viewport = InteractiveViewport(800, 600)
    >>> viewport.run()
"""

from __future__ import annotations

import math
import os
import platform
import time
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from spheretracer.camera.pinhole import PinholeCamera
from spheretracer.core.renderer import Renderer, RendererSettings
from spheretracer.preview.display import final_image_to_float
from spheretracer.scene.scene import Scene, create_default_scene

if TYPE_CHECKING:
    import numpy.typing as npt

# Camera speeds in world units per second and radians per second
MOVE_SPEED = 5.0
TURN_SPEED = 1.5

# Slider ranges for the scene panel
POSITION_RANGE = 10.0
MAX_RADIUS = 150.0


def _differs(old, new) -> bool:
    """Compare slider values, ignoring float32 round-off from the GUI."""
    return not np.allclose(old, new, rtol=1e-6, atol=1e-6)


class InteractiveViewport:
    """Interactive render window backed by a Renderer.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        scene: The scene being rendered and edited.
        camera: The camera being rendered from.
        renderer: The progressive renderer.
        display_image: Taichi field storing the display image (RGB float),
            or None while the viewport has zero area.
        last_render_time_ms: Duration of the most recent render pass.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        scene: Scene | None = None,
        camera: PinholeCamera | None = None,
        settings: RendererSettings | None = None,
        title: str = "Sphere Tracer",
    ) -> None:
        """Initialize the viewport.

        Args:
            width: Window width in pixels.
            height: Window height in pixels.
            scene: Scene to render. Defaults to create_default_scene().
            camera: Camera to render from. Defaults to PinholeCamera().
            settings: Renderer settings. Defaults to accumulation on.
            title: Window title.

        Note:
            Taichi must be initialized first. The window is created lazily
            when run() is called.
        """
        self.width = width
        self.height = height
        self._title = title

        self.scene = scene if scene is not None else create_default_scene()
        self.camera = camera if camera is not None else PinholeCamera()
        self.renderer = Renderer(settings)
        self.last_render_time_ms = 0.0

        # Defer window creation until run() to support headless checks
        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None

        self._display_tree = None
        self.display_image: ti.MatrixField | None = None
        self._allocate_display_image()

    def _allocate_display_image(self) -> None:
        """(Re)create the display field at the current viewport size."""
        if self._display_tree is not None:
            self._display_tree.destroy()
            self._display_tree = None
        self.display_image = None

        if self.width > 0 and self.height > 0:
            builder = ti.FieldsBuilder()
            display_image = ti.Vector.field(3, dtype=ti.f32)
            builder.dense(ti.ij, (self.width, self.height)).place(display_image)
            self._display_tree = builder.finalize()
            self.display_image = display_image

    def resize_viewport(self, width: int, height: int) -> bool:
        """Track a new window size.

        The renderer and camera pick the size up on the next render_frame().

        Args:
            width: Window width in pixels.
            height: Window height in pixels.

        Returns:
            True if the size changed.

        Raises:
            ValueError: If either dimension is negative.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Viewport dimensions must be non-negative, got {width}x{height}")
        if (width, height) == (self.width, self.height):
            return False

        self.width = width
        self.height = height
        self._allocate_display_image()
        return True

    def _initialize_window(self) -> None:
        """Create the Taichi GGUI window and canvas if needed."""
        if self._window is not None:
            return

        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=True,
        )
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        """Get the canvas for rendering."""
        self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    def render_frame(self) -> None:
        """Run one render pass for the current window size and time it."""
        start = time.perf_counter()

        self.camera.on_resize(self.width, self.height)
        self.renderer.on_resize(self.width, self.height)
        self.renderer.render(self.scene, self.camera)

        self.last_render_time_ms = (time.perf_counter() - start) * 1000.0

    def update_image(self, image: npt.NDArray[np.float32]) -> None:
        """Update the display image from a numpy array.

        Args:
            image: NumPy array of shape (height, width, 3) with dtype float32,
                top row first, values in [0, 1].

        Raises:
            ValueError: If image shape doesn't match (height, width, 3).
        """
        expected_shape = (self.height, self.width, 3)
        if image.shape != expected_shape:
            raise ValueError(
                f"Image shape {image.shape} doesn't match expected {expected_shape}"
            )
        if self.display_image is None:
            return

        # Taichi fields are indexed (x, y) with y = 0 at the bottom
        image_transposed = np.ascontiguousarray(
            np.transpose(np.flipud(image), (1, 0, 2))
        )
        self.display_image.from_numpy(image_transposed)

    def _handle_camera_input(self, dt: float) -> bool:
        """Move the camera from keyboard state.

        Returns:
            True if the camera moved.
        """
        window = self.window
        forward = np.array(self.camera.forward)
        right = np.array(self.camera.right)
        up = np.array((0.0, 1.0, 0.0))

        step = np.zeros(3)
        if window.is_pressed("w"):
            step += forward
        if window.is_pressed("s"):
            step -= forward
        if window.is_pressed("d"):
            step += right
        if window.is_pressed("a"):
            step -= right
        if window.is_pressed("e"):
            step += up
        if window.is_pressed("q"):
            step -= up

        yaw = 0.0
        if window.is_pressed(ti.ui.LEFT):
            yaw += TURN_SPEED * dt
        if window.is_pressed(ti.ui.RIGHT):
            yaw -= TURN_SPEED * dt

        new_position = None
        if np.any(step):
            new_position = tuple(np.array(self.camera.position) + step * MOVE_SPEED * dt)

        new_forward = None
        if yaw != 0.0:
            # Rotate forward about the world up axis
            c, s = math.cos(yaw), math.sin(yaw)
            fx, fy, fz = forward
            new_forward = (c * fx + s * fz, fy, -s * fx + c * fz)

        return self.camera.update(position=new_position, forward=new_forward)

    def _draw_settings_panel(self) -> None:
        """Draw the Settings panel: timing, render, accumulate, reset, export."""
        with self.window.GUI.sub_window("Settings", 0.02, 0.02, 0.28, 0.2) as gui:
            gui.text(f"Last render: {self.last_render_time_ms:.3f}ms")
            gui.text(f"Frame: {self.renderer.frame_index}")
            if gui.button("Render"):
                self.render_frame()
            self.renderer.settings.accumulate = gui.checkbox(
                "Accumulate", self.renderer.settings.accumulate
            )
            if gui.button("Reset"):
                self.renderer.reset_frame_index()
            if gui.button("Export PNG"):
                self._export_png()

    def _draw_scene_panel(self) -> bool:
        """Draw the Scene panel with sphere and material controls.

        Returns:
            True if any scene value changed.
        """
        changed = False
        max_material = max(len(self.scene.materials) - 1, 0)

        with self.window.GUI.sub_window("Scene", 0.02, 0.24, 0.28, 0.72) as gui:
            for i, sphere in enumerate(self.scene.spheres):
                gui.text(f"Sphere {i}")
                x = gui.slider_float(f"X##s{i}", sphere.position[0], -POSITION_RANGE, POSITION_RANGE)
                y = gui.slider_float(
                    f"Y##s{i}", sphere.position[1], -MAX_RADIUS - POSITION_RANGE, POSITION_RANGE
                )
                z = gui.slider_float(f"Z##s{i}", sphere.position[2], -POSITION_RANGE, POSITION_RANGE)
                radius = gui.slider_float(f"Radius##s{i}", sphere.radius, 0.01, MAX_RADIUS)
                material_index = gui.slider_int(
                    f"Material##s{i}", sphere.material_index, 0, max_material
                )

                if _differs(sphere.position, (x, y, z)) or _differs(sphere.radius, radius):
                    sphere.position = (x, y, z)
                    sphere.radius = radius
                    changed = True
                if material_index != sphere.material_index:
                    sphere.material_index = material_index
                    changed = True

            for i, material in enumerate(self.scene.materials):
                gui.text(f"Material {i}")
                albedo = tuple(gui.color_edit_3(f"Albedo##m{i}", material.albedo))
                roughness = gui.slider_float(f"Roughness##m{i}", material.roughness, 0.0, 1.0)
                metallic = gui.slider_float(f"Metallic##m{i}", material.metallic, 0.0, 1.0)

                if (
                    _differs(material.albedo, albedo)
                    or _differs(material.roughness, roughness)
                    or _differs(material.metallic, metallic)
                ):
                    material.albedo = albedo
                    material.roughness = roughness
                    material.metallic = metallic
                    changed = True

        return changed

    def run(self) -> None:
        """Run the main window event loop until the window is closed.

        Each iteration picks up the window size, handles input, draws the
        panels, renders one pass and presents the result.
        """
        self._initialize_window()
        last_time = time.perf_counter()

        while self.window.running:
            now = time.perf_counter()
            dt = now - last_time
            last_time = now

            self.resize_viewport(*self.window.get_window_shape())

            if self._handle_camera_input(dt):
                self.renderer.reset_frame_index()

            self._draw_settings_panel()
            if self._draw_scene_panel():
                self.renderer.reset_frame_index()

            self.render_frame()

            final_image = self.renderer.get_final_image()
            if final_image is not None and self.display_image is not None:
                self.update_image(final_image_to_float(final_image))
                self.canvas.set_image(self.display_image)
            self.window.show()

    def close(self) -> None:
        """Close the viewport window."""
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering.

        Returns:
            True if a display is available, False for headless environments.
        """
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")
        system = platform.system()

        # On macOS, display is always available if not in SSH
        if system == "Darwin":
            ssh_connection = os.environ.get("SSH_CONNECTION")
            return not (ssh_connection and not display)

        # Windows generally always has display
        if system == "Windows":
            return True

        # On Linux, check for X11 or Wayland
        return bool(display or wayland)

    def _export_png(self) -> None:
        """Export the current image to a timestamped PNG file."""
        from spheretracer.preview.export import save_png

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"spheres_{timestamp}.png"

        if self.renderer.get_final_image() is not None:
            save_png(self.renderer, filename)
            print(f"Exported: {filename} (frame {self.renderer.frame_index})")
        else:
            print("Error: No image available for export")
