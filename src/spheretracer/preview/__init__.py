"""Preview module for output and visualization.

Components:
    display: Packed image conversion and Matplotlib preview
    export: PNG export via Pillow
    interactive: Taichi GGUI interactive viewport

Example:
    >>> from spheretracer.preview import save_png
    >>> renderer.render(scene, camera)
    >>> save_png(renderer, "output.png")
"""

from spheretracer.preview.display import (
    apply_gamma,
    final_image_to_float,
    show_preview,
    unpack_rgba,
)
from spheretracer.preview.export import save_png
from spheretracer.preview.interactive import InteractiveViewport

__all__ = [
    # Interactive viewport
    "InteractiveViewport",
    # Display functions
    "show_preview",
    "unpack_rgba",
    "final_image_to_float",
    "apply_gamma",
    # Export functions
    "save_png",
]
