"""Progressive sphere ray tracer built on Taichi.

This package renders scenes made of spheres on the CPU or GPU. Every render
pass traces one path per pixel with up to five mirror-like bounces and adds the
result to a per-pixel running sum, so the displayed image converges as passes
accumulate.

Subpackages:
    core: Ray helpers, the bounce shader, the accumulation buffer and the
        render driver
    geometry: Ray-sphere intersection and hit payloads
    scene: Host-side scene description and device scene buffers
    camera: Pinhole camera producing per-pixel ray directions
    preview: Image conversion, PNG export and interactive viewport
"""

__version__ = "0.1.0"
