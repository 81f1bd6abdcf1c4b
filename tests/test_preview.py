"""Tests for the preview module.

This module tests the preview/display, preview/export and preview/interactive
functionality including:
- Unpacking the packed final image
- Gamma correction
- PNG export
- Interactive viewport setup and resizing without opening a window

Note: Tests avoid displaying actual windows by not calling show_preview or
InteractiveViewport.run in automated tests.
"""

import numpy as np
import pytest
from PIL import Image as PILImage


def _two_row_image():
    """A 1x2 FinalImage: red bottom row, green top row."""
    from spheretracer.core.renderer import FinalImage

    data = np.array([[0xFF0000FF], [0xFF00FF00]], dtype=np.uint32)
    return FinalImage(width=1, height=2, data=data)


class TestUnpack:
    """Test conversion of packed images."""

    def test_unpack_rgba_flips_rows(self):
        """Test that the top row of the viewport comes first."""
        from spheretracer.preview.display import unpack_rgba

        rgba = unpack_rgba(_two_row_image())

        assert rgba.shape == (2, 1, 4)
        assert rgba.dtype == np.uint8
        assert tuple(rgba[0, 0]) == (0, 255, 0, 255)
        assert tuple(rgba[1, 0]) == (255, 0, 0, 255)

    def test_final_image_to_float(self):
        """Test float conversion drops alpha and scales to [0, 1]."""
        from spheretracer.preview.display import final_image_to_float

        image = final_image_to_float(_two_row_image())

        assert image.shape == (2, 1, 3)
        assert image.dtype == np.float32
        assert np.allclose(image[0, 0], [0.0, 1.0, 0.0])
        assert np.allclose(image[1, 0], [1.0, 0.0, 0.0])


class TestApplyGamma:
    """Test gamma correction."""

    def test_gamma_1_no_change(self):
        """Test that gamma 1.0 leaves the image unchanged."""
        from spheretracer.preview.display import apply_gamma

        image = np.random.rand(10, 10, 3).astype(np.float32)
        assert np.allclose(apply_gamma(image, gamma=1.0), image)

    def test_gamma_brightens_midtones(self):
        """Test that gamma 2.2 brightens midtones."""
        from spheretracer.preview.display import apply_gamma

        image = np.full((4, 4, 3), 0.5, dtype=np.float32)
        result = apply_gamma(image, gamma=2.2)

        assert np.allclose(result, 0.5 ** (1.0 / 2.2), atol=1e-5)

    def test_gamma_clamps_negative(self):
        """Test that negative input does not produce NaN."""
        from spheretracer.preview.display import apply_gamma

        image = np.full((4, 4, 3), -1.0, dtype=np.float32)
        result = apply_gamma(image, gamma=2.2)

        assert np.all(np.isfinite(result))
        assert np.all(result == 0.0)

    @pytest.mark.parametrize("gamma", [0.0, -2.2])
    def test_invalid_gamma_raises(self, gamma):
        """Test that non-positive gamma is rejected."""
        from spheretracer.preview.display import apply_gamma

        with pytest.raises(ValueError, match="Gamma must be positive"):
            apply_gamma(np.zeros((2, 2, 3), dtype=np.float32), gamma=gamma)


class TestShowPreview:
    """Test show_preview error handling."""

    def test_no_image_raises(self):
        """Test that previewing an unrendered renderer raises."""
        from spheretracer.core.renderer import Renderer
        from spheretracer.preview.display import show_preview

        with pytest.raises(RuntimeError, match="no image"):
            show_preview(Renderer(), block=False)


class TestSavePng:
    """Test PNG export."""

    def test_save_final_image_rgb(self, tmp_path):
        """Test that a FinalImage is written top row first as RGB."""
        from spheretracer.preview.export import save_png

        path = save_png(_two_row_image(), tmp_path / "out.png")

        img = PILImage.open(path)
        assert img.size == (1, 2)
        assert img.mode == "RGB"
        assert img.getpixel((0, 0)) == (0, 255, 0)
        assert img.getpixel((0, 1)) == (255, 0, 0)

    def test_save_with_alpha(self, tmp_path):
        """Test RGBA output."""
        from spheretracer.preview.export import save_png

        path = save_png(_two_row_image(), tmp_path / "out.png", alpha=True)

        img = PILImage.open(path)
        assert img.mode == "RGBA"
        assert img.getpixel((0, 0)) == (0, 255, 0, 255)

    def test_save_from_renderer(self, tmp_path, mirror_scene):
        """Test saving the current image of a renderer."""
        from spheretracer.camera.pinhole import PinholeCamera
        from spheretracer.core.renderer import Renderer
        from spheretracer.preview.export import save_png

        camera = PinholeCamera()
        camera.on_resize(16, 12)
        renderer = Renderer()
        renderer.render(mirror_scene, camera)

        path = save_png(renderer, str(tmp_path / "render.png"), gamma=2.2)

        img = PILImage.open(path)
        assert img.size == (16, 12)

    def test_save_without_image_raises(self, tmp_path):
        """Test that exporting before rendering raises."""
        from spheretracer.core.renderer import Renderer
        from spheretracer.preview.export import save_png

        with pytest.raises(RuntimeError, match="no image"):
            save_png(Renderer(), tmp_path / "empty.png")


class TestModuleExports:
    """Test that module exports are correct."""

    def test_preview_exports(self):
        """Test that the preview package exports its public functions."""
        from spheretracer.preview import (
            InteractiveViewport,
            apply_gamma,
            final_image_to_float,
            save_png,
            show_preview,
            unpack_rgba,
        )

        for item in (
            InteractiveViewport,
            apply_gamma,
            final_image_to_float,
            save_png,
            show_preview,
            unpack_rgba,
        ):
            assert callable(item)


class TestInteractiveViewport:
    """Tests for the InteractiveViewport class.

    Note: These tests avoid creating actual GUI windows by testing
    the initialization, rendering and data handling logic only.
    """

    def test_init_creates_display_field(self):
        """Test that initialization creates the display image field."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(64, 48)

        assert viewport.width == 64
        assert viewport.height == 48
        # Shape should be (width, height) for Taichi field
        assert viewport.display_image.shape == (64, 48)

    def test_init_defers_window_creation(self):
        """Test that window creation is deferred until run."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(32, 32)

        assert viewport._window is None
        assert viewport._canvas is None

    def test_defaults(self):
        """Test default scene, camera and title."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(32, 32)

        assert len(viewport.scene.spheres) == 2
        assert viewport.camera.position == (0.0, 0.0, 6.0)
        assert viewport.renderer.settings.accumulate is True
        assert viewport._title == "Sphere Tracer"

    def test_render_frame_sizes_and_accumulates(self):
        """Test that render_frame renders at the window size and times it."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(16, 12)
        viewport.render_frame()
        viewport.render_frame()

        assert viewport.renderer.width == 16
        assert viewport.renderer.height == 12
        assert viewport.renderer.frame_index == 3
        assert viewport.last_render_time_ms > 0.0

    def test_resize_viewport_reallocates_display_field(self):
        """Test that a new window size reshapes the display field."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(16, 12)

        assert viewport.resize_viewport(20, 10) is True
        assert viewport.width == 20
        assert viewport.height == 10
        assert viewport.display_image.shape == (20, 10)

    def test_resize_viewport_same_size_is_noop(self):
        """Test that an unchanged window size keeps the display field."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(16, 12)
        field = viewport.display_image

        assert viewport.resize_viewport(16, 12) is False
        assert viewport.display_image is field

    def test_resize_viewport_negative_raises(self):
        """Test that negative dimensions are rejected."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(16, 12)

        with pytest.raises(ValueError, match="non-negative"):
            viewport.resize_viewport(-1, 12)

    def test_resize_viewport_zero_area(self):
        """Test that a minimized window drops the display field."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(16, 12)

        assert viewport.resize_viewport(0, 0) is True
        assert viewport.display_image is None
        viewport.render_frame()
        assert viewport.renderer.get_final_image() is None

    def test_render_after_resize_uses_new_size(self):
        """Test that the next render pass follows the window size."""
        from spheretracer.preview.display import final_image_to_float
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(16, 12)
        viewport.render_frame()
        viewport.render_frame()
        assert viewport.renderer.frame_index == 3

        viewport.resize_viewport(10, 8)
        viewport.render_frame()

        assert viewport.renderer.width == 10
        assert viewport.renderer.height == 8
        assert viewport.camera.viewport_width == 10
        assert viewport.camera.viewport_height == 8
        # Resizing restarts accumulation
        assert viewport.renderer.frame_index == 2

        image = final_image_to_float(viewport.renderer.get_final_image())
        viewport.update_image(image)
        assert viewport.display_image.to_numpy().shape == (10, 8, 3)

    def test_update_image_validates_shape(self):
        """Test that update_image validates the input shape."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(32, 24)

        wrong_shape = np.zeros((10, 10, 3), dtype=np.float32)
        with pytest.raises(ValueError, match="doesn't match expected"):
            viewport.update_image(wrong_shape)

    def test_update_image_keeps_bottom_row_at_y0(self):
        """Test that the top row of the array ends up at the top of the field."""
        from spheretracer.preview.interactive import InteractiveViewport

        viewport = InteractiveViewport(2, 2)
        image = np.zeros((2, 2, 3), dtype=np.float32)
        image[0, :, 0] = 1.0  # top row red

        viewport.update_image(image)

        result = viewport.display_image.to_numpy()
        assert np.allclose(result[:, 1, 0], 1.0)
        assert np.allclose(result[:, 0, 0], 0.0)

    def test_is_display_available_returns_bool(self):
        """Test that is_display_available returns a boolean."""
        from spheretracer.preview.interactive import InteractiveViewport

        assert isinstance(InteractiveViewport.is_display_available(), bool)

    def test_is_display_available_headless_linux(self, monkeypatch):
        """Test that Linux without X11 or Wayland reports no display."""
        from spheretracer.preview import interactive

        monkeypatch.setattr(interactive.platform, "system", lambda: "Linux")
        monkeypatch.delenv("DISPLAY", raising=False)
        monkeypatch.delenv("WAYLAND_DISPLAY", raising=False)

        assert interactive.InteractiveViewport.is_display_available() is False
