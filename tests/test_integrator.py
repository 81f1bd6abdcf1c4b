"""Tests for the bounce shader.

These tests drive the bounce loop through trace_sample with roughness-0
materials so every path is deterministic.

Tests cover:
- Sky color for escaping rays
- Directional light intensity
- Single hit followed by escape
- Termination after the bounce budget with no sky contribution
- Shading with missing or out-of-range materials
"""

import math

import numpy as np
import pytest
import taichi as ti

INV_SQRT3 = 1.0 / math.sqrt(3.0)
SKY = (0.6, 0.7, 0.9)


def _buffers(scene):
    from spheretracer.scene.intersection import SceneBuffers

    buffers = SceneBuffers(max_spheres=8, max_materials=4)
    buffers.upload(scene)
    return buffers


class TestLightIntensity:
    """Tests for light_intensity."""

    @staticmethod
    def _intensity(normal):
        from spheretracer.core.integrator import light_intensity, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(n: vec3):
            result[None] = light_intensity(n)

        test_kernel(vec3(*normal))
        return result[None]

    def test_facing_the_light(self):
        """Test full intensity for a surface facing the light."""
        assert abs(self._intensity((INV_SQRT3, INV_SQRT3, INV_SQRT3)) - 1.0) < 1e-5

    def test_facing_away_is_zero(self):
        """Test that back-lit surfaces get no light."""
        assert self._intensity((-INV_SQRT3, -INV_SQRT3, -INV_SQRT3)) == 0.0
        assert self._intensity((0.0, 0.0, -1.0)) == 0.0

    def test_axis_aligned_normal(self):
        """Test intensity for a surface facing +z."""
        assert abs(self._intensity((0.0, 0.0, 1.0)) - INV_SQRT3) < 1e-5


class TestTraceSample:
    """Tests for the full bounce loop."""

    def test_escaping_ray_returns_sky(self):
        """Test that a ray hitting nothing returns the sky color."""
        from spheretracer.core.integrator import trace_sample
        from spheretracer.scene.scene import Scene

        sample = trace_sample(_buffers(Scene()), (0.0, 0.0, 6.0), (0.0, 0.0, -1.0))

        assert sample.color == pytest.approx(SKY, abs=1e-6)
        assert sample.bounces == 1

    def test_single_hit_then_sky(self, mirror_scene):
        """Test one mirror bounce that escapes back toward the camera."""
        from spheretracer.core.integrator import trace_sample

        sample = trace_sample(_buffers(mirror_scene), (0.0, 0.0, 6.0), (0.0, 0.0, -1.0))

        # Lit hit at (0, 0, 1) plus half-strength sky after reflecting to +z
        expected = (
            INV_SQRT3 + 0.5 * SKY[0],
            0.5 * SKY[1],
            INV_SQRT3 + 0.5 * SKY[2],
        )
        assert sample.color == pytest.approx(expected, abs=1e-5)
        assert sample.bounces == 2

    def test_bounce_budget_ends_without_sky(self):
        """Test that a ray trapped between two mirrors stops after five bounces."""
        from spheretracer.core.integrator import MAX_BOUNCES, trace_sample
        from spheretracer.scene.scene import Scene

        scene = Scene()
        white = scene.add_material(albedo=(1.0, 1.0, 1.0), roughness=0.0)
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, white)
        scene.add_sphere((0.0, 0.0, 3.0), 1.0, white)

        sample = trace_sample(_buffers(scene), (0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        # Hits alternate between a lit face (+z normal) and a back-lit one
        # (-z normal); attenuation halves on every bounce
        expected = INV_SQRT3 * (1.0 + 0.25 + 0.0625)
        assert sample.bounces == MAX_BOUNCES
        assert sample.color == pytest.approx((expected, expected, expected), abs=1e-4)

    def test_missing_materials_shade_as_sky(self):
        """Test that a hit with no materials in the scene is shaded as sky."""
        from spheretracer.core.integrator import trace_sample
        from spheretracer.scene.scene import Scene

        scene = Scene()
        scene.add_sphere((0.0, 0.0, 0.0), 1.0)

        sample = trace_sample(_buffers(scene), (0.0, 0.0, 6.0), (0.0, 0.0, -1.0))

        assert sample.color == pytest.approx(SKY, abs=1e-6)
        assert sample.bounces == 1

    def test_out_of_range_material_is_clamped(self):
        """Test that an invalid material index uses the last material."""
        from spheretracer.core.integrator import trace_sample
        from spheretracer.scene.scene import Scene

        scene = Scene()
        scene.add_material(albedo=(0.0, 1.0, 0.0), roughness=0.0)
        scene.add_material(albedo=(1.0, 0.0, 0.0), roughness=0.0)
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, material_index=9)

        sample = trace_sample(_buffers(scene), (0.0, 0.0, 6.0), (0.0, 0.0, -1.0))

        assert sample.color[0] == pytest.approx(INV_SQRT3 + 0.5 * SKY[0], abs=1e-5)
        assert sample.color[1] == pytest.approx(0.5 * SKY[1], abs=1e-5)

    def test_rough_surface_stays_finite(self):
        """Test that a rough material produces finite, non-negative samples."""
        from spheretracer.core.integrator import trace_sample
        from spheretracer.scene.scene import create_default_scene

        buffers = _buffers(create_default_scene())
        for _ in range(10):
            # Aim at the ground sphere, which has roughness 0.1
            sample = trace_sample(buffers, (0.0, 0.0, 6.0), (0.0, -0.3, -1.0))
            color = np.array(sample.color)
            assert np.all(np.isfinite(color))
            assert np.all(color >= 0.0)
            assert 1 <= sample.bounces <= 5
