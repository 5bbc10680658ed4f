"""
Front-End Tests for the BytePusher Display
==========================================
Pixel/sample conversion helpers, the headless display driver, and the
pygame window's event routing.

The event-routing tests use a stand-in for the pygame module so they run
anywhere.  The one test that opens a real window is marked ``pygame``
and skips when pygame is not installed; conftest.py points SDL at its
dummy drivers.
"""

from __future__ import annotations

import time
import unittest
from types import SimpleNamespace

import numpy as np
import pytest

from bytepusher import OutOfBoundsError, PC_ADDR, encode_instruction
from devices import PALETTE, SAMPLES_PER_FRAME
from display import (
    FramebufferDisplay, HeadlessDisplay, SAMPLE_RATE,
    pixels_to_rgb, resample_pcm,
)
from system import BytePusherSystem


# ---------------------------------------------------------------------------
#  Helpers
# ---------------------------------------------------------------------------

def idle_system(**kwargs) -> BytePusherSystem:
    img = bytearray(0x109)
    img[PC_ADDR:PC_ADDR + 3] = (0x100).to_bytes(3, "big")
    img[5] = 1
    img[0x100:0x109] = encode_instruction(0x100, 0x100, 0x100)
    sys_emu = BytePusherSystem(**kwargs)
    sys_emu.load_image(img)
    return sys_emu


def fake_pygame(captions: list[str]) -> SimpleNamespace:
    """Just enough of the pygame API for FramebufferDisplay._handle_event."""
    return SimpleNamespace(
        QUIT=256, KEYDOWN=768, KEYUP=769,
        K_ESCAPE=27, K_SPACE=32,
        key=SimpleNamespace(name=lambda k: chr(k)),
        display=SimpleNamespace(set_caption=captions.append),
    )


def key_event(pg, kind: str, ch: str) -> SimpleNamespace:
    return SimpleNamespace(type=getattr(pg, kind), key=ord(ch))


# ---------------------------------------------------------------------------
#  Conversion helpers
# ---------------------------------------------------------------------------

class TestPixelsToRGB(unittest.TestCase):
    def test_shape_and_orientation(self):
        pixels = np.full((256, 256), PALETTE[0], dtype=np.uint32)
        pixels[3, 7] = 0xFF336699       # y=3, x=7
        rgb = pixels_to_rgb(pixels)
        self.assertEqual(rgb.shape, (256, 256, 3))
        self.assertEqual(rgb.dtype, np.uint8)
        self.assertEqual(list(rgb[7, 3]), [0xFF, 0x33, 0x66])
        self.assertEqual(list(rgb[3, 7]), [0, 0, 0])
        self.assertTrue(rgb.flags["C_CONTIGUOUS"])


class TestResamplePCM(unittest.TestCase):
    def test_native_rate_unchanged(self):
        pcm = np.arange(SAMPLES_PER_FRAME, dtype=np.int16)
        out = resample_pcm(pcm, SAMPLE_RATE, 1)
        self.assertTrue(np.array_equal(out, pcm))

    def test_stereo_duplicates_channel(self):
        pcm = np.arange(SAMPLES_PER_FRAME, dtype=np.int16)
        out = resample_pcm(pcm, SAMPLE_RATE, 2)
        self.assertEqual(out.shape, (SAMPLES_PER_FRAME, 2))
        self.assertTrue(np.array_equal(out[:, 0], out[:, 1]))

    def test_upsample_length(self):
        pcm = np.zeros(SAMPLES_PER_FRAME, dtype=np.int16)
        out = resample_pcm(pcm, 44100, 1)
        self.assertEqual(len(out), round(SAMPLES_PER_FRAME * 44100 / SAMPLE_RATE))
        self.assertEqual(out.dtype, np.int16)

    def test_sample_rate(self):
        self.assertEqual(SAMPLE_RATE, 15360)


# ---------------------------------------------------------------------------
#  Headless
# ---------------------------------------------------------------------------

class TestHeadlessDisplay(unittest.TestCase):
    def test_pump_runs_exact_frames(self):
        sys_emu = idle_system()
        disp = HeadlessDisplay(sys_emu)
        self.assertEqual(disp.pump(3), 3)
        self.assertEqual(sys_emu.frame_count, 3)
        self.assertEqual(len(disp.snapshots), 3)
        self.assertEqual(len(disp.sound), 3)
        self.assertEqual(len(disp.snapshots[0]), 256 * 256 * 4)
        # three 16.67 ms periods on a 1 ms clock
        self.assertIn(disp.clock_ms, (50, 51))

    def test_keep_limits_history(self):
        disp = HeadlessDisplay(idle_system(), keep=1)
        disp.pump(2)
        self.assertEqual(len(disp.snapshots), 1)
        self.assertEqual(len(disp.sound), 1)

    def test_paused_runs_nothing(self):
        disp = HeadlessDisplay(idle_system(running=False))
        self.assertEqual(disp.pump(5), 0)
        self.assertEqual(disp.clock_ms, 0)

    def test_fault_propagates(self):
        sys_emu = BytePusherSystem()
        sys_emu.load_image(b"\x00\x00\xFF\xFF\xFD")
        disp = HeadlessDisplay(sys_emu)
        with self.assertRaises(OutOfBoundsError):
            disp.pump(1)
        self.assertFalse(sys_emu.scheduler.running)
        self.assertEqual(disp.snapshots, [])

    def test_snapshot_is_index_bytes(self):
        sys_emu = idle_system()
        sys_emu.memory.write_byte(0x010000, 42)
        snap = HeadlessDisplay(sys_emu).snapshot()
        self.assertEqual(len(snap), 65536)
        self.assertEqual(snap[0], 42)


# ---------------------------------------------------------------------------
#  Window event routing
# ---------------------------------------------------------------------------

class TestEventRouting(unittest.TestCase):
    def setUp(self):
        self.captions: list[str] = []
        self.pg = fake_pygame(self.captions)
        self.sys = idle_system()
        self.disp = FramebufferDisplay(self.sys, audio=False)

    def test_quit_closes(self):
        ev = SimpleNamespace(type=self.pg.QUIT)
        self.assertFalse(self.disp._handle_event(self.pg, ev))

    def test_escape_closes(self):
        ev = SimpleNamespace(type=self.pg.KEYDOWN, key=self.pg.K_ESCAPE)
        self.assertFalse(self.disp._handle_event(self.pg, ev))

    def test_space_toggles_run_state(self):
        ev = SimpleNamespace(type=self.pg.KEYDOWN, key=self.pg.K_SPACE)
        self.assertTrue(self.disp._handle_event(self.pg, ev))
        self.assertFalse(self.sys.scheduler.running)
        self.assertEqual(self.captions[-1], "BytePusher [Stopped]")
        self.disp._handle_event(self.pg, ev)
        self.assertTrue(self.sys.scheduler.running)
        self.assertEqual(self.captions[-1], "BytePusher [Running]")

    def test_pad_keys(self):
        self.disp._handle_event(self.pg, key_event(self.pg, "KEYDOWN", "q"))
        self.disp._handle_event(self.pg, key_event(self.pg, "KEYDOWN", "4"))
        self.assertEqual(self.sys.keyboard.state, (1 << 0x4) | (1 << 0xC))
        self.disp._handle_event(self.pg, key_event(self.pg, "KEYUP", "q"))
        self.assertEqual(self.sys.keyboard.state, 1 << 0xC)

    def test_unmapped_key_ignored(self):
        self.assertTrue(
            self.disp._handle_event(self.pg, key_event(self.pg, "KEYDOWN", "p")))
        self.assertEqual(self.sys.keyboard.state, 0)

    def test_scale_floor(self):
        self.assertEqual(FramebufferDisplay(self.sys, scale=0).scale, 1)


# ---------------------------------------------------------------------------
#  Real window (dummy SDL driver)
# ---------------------------------------------------------------------------

@pytest.mark.pygame
def test_window_runs_frames():
    pytest.importorskip("pygame")
    sys_emu = idle_system()
    disp = FramebufferDisplay(sys_emu, scale=1, audio=False)
    disp.start()
    try:
        deadline = time.monotonic() + 10.0
        while sys_emu.frame_count < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        disp.stop()
    assert sys_emu.frame_count >= 2
    assert disp.error is None
    assert not disp.running
