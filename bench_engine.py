#!/usr/bin/env python3
"""
bench_engine.py: Burst loop vs per-instruction stepping
=======================================================

Runs a self-looping ByteByteJump program under the inlined burst loop
and under per-instruction ``step()`` calls, and reports frames/second.
60 frames/s is the machine's real-time rate.

Usage:
    python bench_engine.py             # 60 frames each way
    python bench_engine.py --frames 300
"""

import argparse
import time

from bytepusher import (Memory, ByteByteJump, ITERATIONS_PER_FRAME, PC_ADDR,
                        encode_instruction)


def make_bench_program() -> bytes:
    """
    Build the smallest runnable image:
        0x000002: PC = 0x000009
        0x000009: A=0x000009  B=0x000009  C=0x000009   ; copy self, jump self
    """
    prog = bytearray(18)
    prog[PC_ADDR:PC_ADDR + 3] = (9).to_bytes(3, "big")
    prog[9:18] = encode_instruction(9, 9, 9)
    return bytes(prog)


def _engine() -> ByteByteJump:
    mem = Memory()
    mem.load_image(make_bench_program())
    return ByteByteJump(mem)


def run_burst(frames: int) -> float:
    """Run N frames through run_burst(), return elapsed seconds."""
    cpu = _engine()
    t0 = time.perf_counter()
    for _ in range(frames):
        cpu.run_burst()
    t1 = time.perf_counter()
    return t1 - t0


def run_perstep(frames: int) -> float:
    """Run N frames one step() call at a time, return elapsed seconds."""
    cpu = _engine()
    t0 = time.perf_counter()
    for _ in range(frames):
        pc = cpu.memory.read_uint24(PC_ADDR)
        for _ in range(ITERATIONS_PER_FRAME):
            pc = cpu.step(pc)
    t1 = time.perf_counter()
    return t1 - t0


def main():
    parser = argparse.ArgumentParser(description="BytePusher engine benchmark")
    parser.add_argument("--frames", type=int, default=60,
                        help="Number of frames to execute (default: 60)")
    args = parser.parse_args()

    frames = args.frames
    iters = frames * ITERATIONS_PER_FRAME
    print(f"Benchmark: {frames:,} frames ({iters:,} instructions)")
    print()

    print("Running inlined run_burst()...", end=" ", flush=True)
    t_burst = run_burst(frames)
    print(f"{t_burst:.3f}s  ({frames / t_burst:,.1f} frames/s, "
          f"{iters / t_burst:,.0f} instr/s)")

    print("Running per-instruction step()...", end=" ", flush=True)
    t_step = run_perstep(frames)
    print(f"{t_step:.3f}s  ({frames / t_step:,.1f} frames/s, "
          f"{iters / t_step:,.0f} instr/s)")

    print()
    print(f"Speedup (burst vs step):  {t_step / t_burst:.1f}×")
    print(f"Real-time headroom:       {frames / t_burst / 60:.2f}× of 60 Hz")


if __name__ == "__main__":
    main()
