"""Run the live camera overlay with the metrics panel.

Usage:
    python -m api.main                 # (separate, for the status server)
    python scripts/live_overlay.py     # (to see camera overlay window)
    python scripts/live_overlay.py --headless --tick-mode frame

Press 'q' to quit the window.
"""
from __future__ import annotations
import argparse
import logging
import sys

from facetrust.config import Settings
from facetrust.detector import DeepFaceDetector
from facetrust.loop import RenderLoop
from facetrust.overlay import LogRenderer, WindowRenderer


def build_loop(settings: Settings, headless: bool = False) -> RenderLoop:
    renderer = LogRenderer() if headless else WindowRenderer()
    loop = RenderLoop(settings, DeepFaceDetector(settings), renderer)
    if isinstance(renderer, WindowRenderer):
        renderer.on_quit = loop.stop
    return loop


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Live face metrics overlay")
    p.add_argument("--camera", type=int, default=None, help="Camera index")
    p.add_argument("--tick-mode", choices=["interval", "frame"], default=None,
                   help="Fixed interval ticks or one tick per camera frame")
    p.add_argument("--interval", type=float, default=None, help="Seconds between ticks in interval mode")
    p.add_argument("--headless", action="store_true", help="Log metrics instead of opening a window")
    args = p.parse_args(argv)

    overrides = {}
    if args.camera is not None:
        overrides["CAMERA_INDEX"] = args.camera
    if args.tick_mode is not None:
        overrides["TICK_MODE"] = args.tick_mode
    if args.interval is not None:
        overrides["TICK_INTERVAL"] = args.interval
    settings = Settings(**overrides)
    logging.basicConfig(level=settings.LOG_LEVEL)

    loop = build_loop(settings, headless=args.headless)
    try:
        ok = loop.run()
    except KeyboardInterrupt:
        ok = True
    finally:
        loop.stop()
    if not ok:
        print(f"❌ {loop.error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
