"""Image export utilities for rendered images.

Supported formats:
    - PNG (8-bit RGBA or RGB via Pillow)

Example:
    >>> from spheretracer.preview.export import save_png
    >>> renderer.render(scene, camera)
    >>> save_png(renderer, "output.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image as PILImage

from spheretracer.core.renderer import FinalImage
from spheretracer.preview.display import apply_gamma, unpack_rgba

if TYPE_CHECKING:
    from spheretracer.core.renderer import Renderer


def save_png(
    source: Renderer | FinalImage,
    filepath: str | Path,
    *,
    gamma: float = 1.0,
    alpha: bool = False,
) -> Path:
    """Save a rendered image as a PNG file.

    Args:
        source: A Renderer (its current final image is saved) or a FinalImage.
        filepath: Output file path (should end in .png).
        gamma: Gamma correction applied to the color channels. The default
            1.0 writes the display colors unchanged.
        alpha: If True, write RGBA; otherwise RGB.

    Returns:
        The path that was written.

    Raises:
        RuntimeError: If a renderer without an image is given.
    """
    image = source if isinstance(source, FinalImage) else source.get_final_image()
    if image is None:
        raise RuntimeError("Renderer has no image. Call render() with a non-empty viewport first.")

    rgba = unpack_rgba(image)
    if gamma != 1.0:
        corrected = apply_gamma(rgba[..., :3].astype(np.float32) / 255.0, gamma)
        rgba[..., :3] = (corrected * 255).astype(np.uint8)

    path = Path(filepath)
    if alpha:
        PILImage.fromarray(rgba).save(path)
    else:
        PILImage.fromarray(np.ascontiguousarray(rgba[..., :3])).save(path)
    return path
