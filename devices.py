"""
BytePusher Memory-Mapped Devices
================================
The machine has no I/O ports.  Every device is a fixed region of main
memory.  The classes here decode (or encode) those
regions once per frame:

  VideoDecoder  : 256x256 indexed pixels at (mem[0x05] << 16)
  AudioDecoder  : 256 signed 8-bit samples at uint24(mem[0x06..0x08])
  Keyboard      : 16-bit key word written to 0x000000 before each burst

All three share the system's Memory instance and keep no copy of it.
"""

from __future__ import annotations

import numpy as np

from bytepusher import (
    Memory, KEYBOARD_ADDR, FB_PAGE_ADDR, AUDIO_ADDR,
)

# ---------------------------------------------------------------------------
#  Geometry / rates
# ---------------------------------------------------------------------------

SCREEN_WIDTH = 256
SCREEN_HEIGHT = 256
FB_BYTES = SCREEN_WIDTH * SCREEN_HEIGHT

SAMPLES_PER_FRAME = 256
SAMPLE_DIVISOR = 128.0

NUM_KEYS = 16

# ---------------------------------------------------------------------------
#  Palette
# ---------------------------------------------------------------------------

WEBSAFE_LEVELS = (0x00, 0x33, 0x66, 0x99, 0xCC, 0xFF)
OPAQUE_BLACK = 0x000000FF


def _build_palette() -> tuple[int, ...]:
    """216-colour web-safe cube (R-major), then 40 entries of black.

    Entries are packed 0xRRGGBBAA.
    """
    pal = []
    for r in WEBSAFE_LEVELS:
        for g in WEBSAFE_LEVELS:
            for b in WEBSAFE_LEVELS:
                pal.append((r << 24) | (g << 16) | (b << 8) | 0xFF)
    pal.extend([OPAQUE_BLACK] * (256 - len(pal)))
    return tuple(pal)


PALETTE: tuple[int, ...] = _build_palette()

# Same table as arrays for vectorised lookups.
PALETTE_U32 = np.array(PALETTE, dtype=np.uint32)
PALETTE_RGBA = np.array(
    [((c >> 24) & 0xFF, (c >> 16) & 0xFF, (c >> 8) & 0xFF, c & 0xFF)
     for c in PALETTE],
    dtype=np.uint8,
)
PALETTE_U32.flags.writeable = False
PALETTE_RGBA.flags.writeable = False


# ---------------------------------------------------------------------------
#  Video
# ---------------------------------------------------------------------------

class VideoDecoder:
    """Resolves the framebuffer page through the fixed palette."""

    def __init__(self, memory: Memory):
        self.memory = memory

    @property
    def framebuffer_address(self) -> int:
        return self.memory.read_byte(FB_PAGE_ADDR) << 16

    def indices(self) -> np.ndarray:
        """Raw colour indices as a (256, 256) uint8 array, indexed [y, x]."""
        raw = self.memory.view(self.framebuffer_address, FB_BYTES)
        return np.frombuffer(raw, dtype=np.uint8).reshape(
            SCREEN_HEIGHT, SCREEN_WIDTH)

    def decode(self) -> np.ndarray:
        """Packed 0xRRGGBBAA pixels, (256, 256) uint32, indexed [y, x]."""
        return PALETTE_U32[self.indices()]

    def decode_rgba(self) -> np.ndarray:
        """Pixels as a (256, 256, 4) uint8 array, indexed [y, x, channel]."""
        return PALETTE_RGBA[self.indices()]


# ---------------------------------------------------------------------------
#  Audio
# ---------------------------------------------------------------------------

class AudioDecoder:
    """Extracts one frame of signed 8-bit samples.

    Float conversion divides by 128 without rescaling, so -128 maps to
    exactly -1.0 and 127 to 0.9921875.
    """

    def __init__(self, memory: Memory):
        self.memory = memory

    @property
    def audio_address(self) -> int:
        return self.memory.read_uint24(AUDIO_ADDR)

    def raw(self) -> np.ndarray:
        """256 int8 samples.  A block running off the buffer end reads as zeros."""
        view = self.memory.view(self.audio_address, SAMPLES_PER_FRAME)
        samples = np.zeros(SAMPLES_PER_FRAME, dtype=np.int8)
        samples[:len(view)] = np.frombuffer(view, dtype=np.int8)
        return samples

    def decode(self) -> np.ndarray:
        return self.raw().astype(np.float32) / np.float32(SAMPLE_DIVISOR)


# ---------------------------------------------------------------------------
#  Keyboard
# ---------------------------------------------------------------------------

# Host key name -> BytePusher key index.  The 4x4 hex pad
#   1 2 3 C      1 2 3 4
#   4 5 6 D  ->  q w e r
#   7 8 9 E      a s d f
#   A 0 B F      z x c v
HOST_KEYMAP: dict[str, int] = {
    "1": 0x1, "2": 0x2, "3": 0x3, "4": 0xC,
    "q": 0x4, "w": 0x5, "e": 0x6, "r": 0xD,
    "a": 0x7, "s": 0x8, "d": 0x9, "f": 0xE,
    "z": 0xA, "x": 0x0, "c": 0xB, "v": 0xF,
}


class Keyboard:
    """16-bit key-state word, written big-endian at 0x000000 each frame."""

    def __init__(self, memory: Memory, keymap: dict[str, int] | None = None):
        self.memory = memory
        self.keymap = dict(HOST_KEYMAP if keymap is None else keymap)
        if len(set(self.keymap.values())) != len(self.keymap):
            raise ValueError("Keymap must assign each key index at most once")
        for idx in self.keymap.values():
            self._check_key(idx)
        self.state: int = 0

    @staticmethod
    def _check_key(key: int):
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key index {key} out of range 0..{NUM_KEYS - 1}")

    def press(self, key: int):
        self._check_key(key)
        self.state |= 1 << key

    def release(self, key: int):
        self._check_key(key)
        self.state &= ~(1 << key) & 0xFFFF

    def is_pressed(self, key: int) -> bool:
        self._check_key(key)
        return bool(self.state & (1 << key))

    def press_host(self, name: str) -> bool:
        """Press by host key name.  Returns False for unmapped keys."""
        key = self.keymap.get(name.lower())
        if key is None:
            return False
        self.press(key)
        return True

    def release_host(self, name: str) -> bool:
        key = self.keymap.get(name.lower())
        if key is None:
            return False
        self.release(key)
        return True

    def reset(self):
        self.state = 0

    def write(self):
        self.memory.write_uint16(KEYBOARD_ADDR, self.state)
