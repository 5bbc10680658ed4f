"""
BytePusher System Emulator
==========================
Wires together:
  - one Memory (bytepusher.py), the single shared substrate
  - the ByteByteJump engine
  - the memory-mapped keyboard, video and audio devices (devices.py)
  - a FrameScheduler that paces run_frame() at 60 Hz

One frame is strictly: keyboard write -> burst -> video decode -> audio
decode.  Nothing else touches memory between those steps.
"""

from __future__ import annotations
from typing import Callable, NamedTuple, Optional

import numpy as np

from bytepusher import (
    Memory, ByteByteJump, ITERATIONS_PER_FRAME, PC_ADDR,
)
from devices import Keyboard, VideoDecoder, AudioDecoder
from scheduler import FrameScheduler, FRAME_DURATION_MS


class Frame(NamedTuple):
    """Output of one emulated frame."""
    pixels: np.ndarray      # (256, 256) uint32, 0xRRGGBBAA, [y, x]
    samples: np.ndarray     # (256,) float32 in [-1.0, 1.0)
    index: int              # 0-based frame number


class BytePusherSystem:
    """Complete BytePusher machine: memory + engine + I/O devices."""

    def __init__(self, frame_duration: float = FRAME_DURATION_MS,
                 running: bool = True,
                 on_frame: Optional[Callable[[Frame], None]] = None):
        self.memory = Memory()
        self.cpu = ByteByteJump(self.memory)
        self.keyboard = Keyboard(self.memory)
        self.video = VideoDecoder(self.memory)
        self.audio = AudioDecoder(self.memory)
        self.on_frame = on_frame
        self.frame_count: int = 0
        self.last_frame: Optional[Frame] = None
        self.scheduler = FrameScheduler(self.run_frame,
                                        frame_duration=frame_duration,
                                        running=running)

    # -----------------------------------------------------------------
    #  Loading
    # -----------------------------------------------------------------

    def load_image(self, data: bytes | bytearray):
        """Replace memory with a program image (zero-filled past its end)."""
        self.memory.load_image(data)

    def load_image_file(self, path: str):
        self.memory.load_image_file(path)

    def reset(self):
        """Clear memory, keys and counters.  Run state is left alone."""
        self.memory.clear()
        self.keyboard.reset()
        self.cpu.bursts = 0
        self.cpu.last_pc = 0
        self.frame_count = 0
        self.last_frame = None

    # -----------------------------------------------------------------
    #  Execution
    # -----------------------------------------------------------------

    def run_frame(self) -> Frame:
        """Execute one complete frame and return its picture and sound."""
        self.keyboard.write()
        self.cpu.run_burst(ITERATIONS_PER_FRAME)
        frame = Frame(self.video.decode(), self.audio.decode(),
                      self.frame_count)
        self.frame_count += 1
        self.last_frame = frame
        if self.on_frame is not None:
            self.on_frame(frame)
        return frame

    def run(self, frames: int) -> Optional[Frame]:
        """Run *frames* frames back to back, ignoring wall-clock pacing."""
        frame = None
        for _ in range(frames):
            frame = self.run_frame()
        return frame

    # -----------------------------------------------------------------
    #  Introspection
    # -----------------------------------------------------------------

    @property
    def keyboard_word(self) -> int:
        d = self.memory.data
        return (d[0] << 8) | d[1]

    @property
    def pc(self) -> int:
        return self.memory.read_uint24(PC_ADDR)

    @property
    def framebuffer_address(self) -> int:
        return self.video.framebuffer_address

    @property
    def audio_address(self) -> int:
        return self.audio.audio_address

    def dump_state(self) -> str:
        sched = self.scheduler
        lines = ["=== Machine ===", self.cpu.dump_regs()]
        lines.append("")
        lines.append("=== Devices ===")
        lines.append(f"  Keyboard: held={self.keyboard.state:#06x}")
        lines.append(f"  Video: fb={self.framebuffer_address:#08x}")
        lines.append(f"  Audio: samples={self.audio_address:#08x}")
        lines.append(f"  Scheduler: {'running' if sched.running else 'stopped'} "
                     f"frames={sched.frames} "
                     f"period={sched.frame_duration:.3f}ms")
        lines.append(f"  Frames executed: {self.frame_count}")
        if sched.error is not None:
            lines.append(f"  Fault: {sched.error}")
        return "\n".join(lines)
