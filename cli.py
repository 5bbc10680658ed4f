#!/usr/bin/env python3
"""
BytePusher Launcher / CLI
=========================
Loads a BytePusher program image and runs it, either in a pygame window
(with sound and keyboard) or headless for a fixed number of frames.

Usage:
  python cli.py PROGRAM [--scale N] [--no-audio] [--paused] [--fps F]
  python cli.py PROGRAM --headless [--frames N]

In the window: keys 1-4 / q-r / a-f / z-v are the 16-key pad, SPACE
pauses or resumes, ESC quits.
"""

from __future__ import annotations
import argparse
import sys

from bytepusher import BytePusherError
from scheduler import FPS
from system import BytePusherSystem


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BytePusher virtual machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python cli.py demos/Palette.BytePusher --scale 3\n"
               "  python cli.py demos/Sine.BytePusher --headless --frames 120\n"
    )
    parser.add_argument("program", type=str,
                        help="BytePusher memory image to load")
    parser.add_argument("--scale", type=int, default=2, metavar="N",
                        help="Pixel scale factor for the window (default: 2)")
    parser.add_argument("--no-audio", action="store_true",
                        help="Do not open the audio mixer")
    parser.add_argument("--paused", action="store_true",
                        help="Start with the machine stopped (SPACE resumes)")
    parser.add_argument("--fps", type=float, default=FPS,
                        help=f"Logical frame rate (default: {FPS})")
    parser.add_argument("--headless", action="store_true",
                        help="Run without a window and print the final state")
    parser.add_argument("--frames", type=int, default=60, metavar="N",
                        help="Frames to run in headless mode (default: 60)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.fps <= 0:
        print("--fps must be positive", file=sys.stderr)
        return 2

    sys_emu = BytePusherSystem(frame_duration=1000 / args.fps,
                               running=not args.paused)
    try:
        sys_emu.load_image_file(args.program)
    except OSError as e:
        print(f"Cannot read '{args.program}': {e}", file=sys.stderr)
        return 1
    except BytePusherError as e:
        print(f"Load error: {e}", file=sys.stderr)
        return 1
    print(f"Loaded '{args.program}' (PC={sys_emu.pc:#08x})")

    # ---- Headless: fixed frame count, then dump ----------------------
    if args.headless:
        from display import HeadlessDisplay
        sys_emu.scheduler.start()
        disp = HeadlessDisplay(sys_emu, keep=1)
        try:
            done = disp.pump(args.frames)
        except BytePusherError as e:
            print(f"[bytepusher] fault after {sys_emu.frame_count} frames: {e}",
                  file=sys.stderr)
            print(sys_emu.dump_state(), file=sys.stderr)
            return 1
        print(f"[bytepusher] ran {done} frames")
        print(sys_emu.dump_state())
        return 0

    # ---- Window -------------------------------------------------------
    try:
        from display import FramebufferDisplay
        import pygame  # noqa: F401
    except ImportError as e:
        print(f"[display] pygame not available: {e}", file=sys.stderr)
        print("[display] Install with: pip install pygame, or use --headless",
              file=sys.stderr)
        return 1

    disp = FramebufferDisplay(sys_emu, scale=args.scale,
                              audio=not args.no_audio)
    try:
        disp.run()
    except KeyboardInterrupt:
        print()
    if disp.error is not None:
        print(sys_emu.dump_state(), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
