#!/usr/bin/env python3
"""Interactive sphere renderer with live scene editing.

This script opens a window that renders one pass per display refresh and
shows the image converging as samples accumulate.

Usage:
    python -m examples.interactive_spheres [--width WIDTH] [--height HEIGHT]

Controls:
    - W/S: Move forward/backward
    - A/D: Move left/right
    - Q/E: Move down/up
    - Left/Right arrows: Turn
    - Settings panel: Accumulate toggle, Reset, Export PNG
    - Scene panel: Sphere position/radius/material and material sliders

Any camera move or scene edit restarts accumulation.
"""

from __future__ import annotations

import argparse
import platform
import sys
from pathlib import Path

# Ensure the project's src directory is in the Python path for direct execution
_src_root = Path(__file__).parent.parent / "src"
if str(_src_root) not in sys.path:
    sys.path.insert(0, str(_src_root))

import taichi as ti  # noqa: E402


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    On macOS, prefers Metal. Falls back to CPU if GPU is unavailable.

    Returns:
        Name of the backend being used.
    """
    system = platform.system()

    if system == "Darwin":
        # macOS: prefer Metal
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    # Try generic GPU (CUDA on Linux/Windows, Vulkan as fallback)
    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    # Fall back to CPU
    ti.init(arch=ti.cpu)
    return "CPU"


def main() -> int:
    """Main entry point for the interactive renderer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = argparse.ArgumentParser(description="Interactive sphere renderer.")
    parser.add_argument("--width", type=int, default=1280, help="Window width (default: 1280)")
    parser.add_argument("--height", type=int, default=720, help="Window height (default: 720)")
    args = parser.parse_args()

    # Initialize Taichi first (before creating any fields)
    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    from spheretracer.preview.interactive import InteractiveViewport

    if not InteractiveViewport.is_display_available():
        print("Error: No display available. Cannot run interactive viewport.")
        print("This script requires a graphical display environment.")
        return 1

    print(f"Creating interactive viewport ({args.width}x{args.height})...")
    viewport = InteractiveViewport(args.width, args.height)

    print("Starting interactive rendering...")
    print("  - WASD/QE to move, arrow keys to turn")
    print("  - Adjust sliders to edit the scene")
    print("  - Click 'Export PNG' to save current render")
    print("  - Close window to exit")
    print()

    try:
        viewport.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        viewport.close()
        print("Viewport closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
