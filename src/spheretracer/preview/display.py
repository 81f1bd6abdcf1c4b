"""Conversion and Matplotlib display helpers for the packed final image.

The renderer's display buffer stores one packed RGBA word per pixel with the
bottom row first. Hosts usually want a conventional top-row-first array, either
as 8-bit RGBA or as floats in [0, 1]; these helpers do the conversion.

Example:
    >>> from spheretracer.preview.display import show_preview
    >>> renderer.render(scene, camera)
    >>> show_preview(renderer, gamma=1.0)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from spheretracer.core.renderer import FinalImage, Renderer


def unpack_rgba(image: FinalImage) -> npt.NDArray[np.uint8]:
    """Unpack a FinalImage into an 8-bit RGBA array.

    Args:
        image: The packed final image.

    Returns:
        Array of shape (height, width, 4), dtype uint8, with the top row of
        the viewport first.
    """
    words = image.data.astype(np.uint32)
    channels = np.stack(
        [(words >> shift) & 0xFF for shift in (0, 8, 16, 24)],
        axis=-1,
    ).astype(np.uint8)
    return np.ascontiguousarray(np.flipud(channels))


def final_image_to_float(image: FinalImage) -> npt.NDArray[np.float32]:
    """Convert a FinalImage to an RGB float array in [0, 1].

    Returns:
        Array of shape (height, width, 3), dtype float32, top row first.
    """
    rgba = unpack_rgba(image)
    return (rgba[..., :3].astype(np.float32) / 255.0).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Apply gamma correction for display.

    Args:
        image: Linear image array in [0, 1] range.
        gamma: Gamma value (default 2.2 for sRGB). Must be positive.

    Returns:
        Gamma corrected image.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    # Clamp to [0, 1] before gamma to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)

    # Apply gamma encoding: out = in^(1/gamma)
    result = np.power(image, 1.0 / gamma)

    return result.astype(np.float32)


def show_preview(
    renderer: Renderer,
    *,
    gamma: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Display the renderer's current image as a Matplotlib figure.

    The frame index is displayed in the title.

    Args:
        renderer: The Renderer to display.
        gamma: Gamma correction value. The packed image is already display
            ready, so the default 1.0 shows it unchanged.
        title: Custom title (default shows the frame index).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.

    Raises:
        RuntimeError: If the renderer has no image yet.
    """
    import matplotlib.pyplot as plt

    final_image = renderer.get_final_image()
    if final_image is None:
        raise RuntimeError("Renderer has no image. Call render() with a non-empty viewport first.")

    display_image = apply_gamma(final_image_to_float(final_image), gamma)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        title = f"Render Preview - frame {renderer.frame_index}"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)
