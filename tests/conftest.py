"""Pytest configuration for sphere tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. Every renderer and
    buffer owns its fields, so no per-test cleanup is needed.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture
def mirror_scene():
    """A deterministic scene: one roughness-0 magenta sphere at the origin."""
    from spheretracer.scene.scene import Scene

    scene = Scene()
    magenta = scene.add_material(albedo=(1.0, 0.0, 1.0), roughness=0.0)
    scene.add_sphere(position=(0.0, 0.0, 0.0), radius=1.0, material_index=magenta)
    return scene
