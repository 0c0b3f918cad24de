"""PixelForge command-line entry point (``python -m pixelforge``)."""

from __future__ import annotations

from pixelforge.cli import main

if __name__ == "__main__":
    main()
