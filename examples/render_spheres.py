#!/usr/bin/env python3
"""Render the default sphere scene to a PNG file.

This script renders the startup scene (a mirror sphere on a large ground
sphere) offline. Every frame adds one sample per pixel to the running average,
so more frames give a smoother image.

Usage:
    python -m examples.render_spheres [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 480)
    --frames FRAMES     Number of render passes (default: 64)
    --output OUTPUT     Output file path (default: spheres.png)
    --no-accumulate     Show only the last pass instead of the average
    --quiet             Suppress progress output

Example:
    python -m examples.render_spheres --width 320 --height 240 --frames 16
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the default sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=640,
        help="Image width in pixels (default: 640)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=480,
        help="Image height in pixels (default: 480)",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=64,
        help="Number of render passes (default: 64)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path (default: spheres.png)",
    )
    parser.add_argument(
        "--no-accumulate",
        action="store_true",
        help="Show only the last pass instead of the running average",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_spheres(
    width: int = 640,
    height: int = 480,
    num_frames: int = 64,
    output_path: str = "spheres.png",
    accumulate: bool = True,
    quiet: bool = False,
) -> Path:
    """Render the default scene and save it to a file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        num_frames: Number of render passes.
        output_path: Output file path (PNG).
        accumulate: If False, each pass replaces the previous one.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from spheretracer.camera.pinhole import PinholeCamera
    from spheretracer.core.renderer import Renderer, RendererSettings
    from spheretracer.preview.export import save_png
    from spheretracer.scene.scene import create_default_scene

    if not quiet:
        print(f"Creating default scene ({width}x{height})...")

    scene = create_default_scene()
    camera = PinholeCamera()
    camera.on_resize(width, height)

    renderer = Renderer(RendererSettings(accumulate=accumulate))

    if not quiet:
        print(f"Rendering {num_frames} frames...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            frames_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} frames "
                f"({progress_pct:.1f}%) - {frames_per_sec:.1f} fps",
                end="",
                flush=True,
            )

    renderer.render_frames(scene, camera, num_frames=num_frames, callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = save_png(renderer, output_path)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_spheres(
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            output_path=args.output,
            accumulate=not args.no_accumulate,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
