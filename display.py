"""
BytePusher Display / Sound / Keyboard Front-End
===============================================
Drives a BytePusherSystem from a pygame window:

  - the window loop calls ``scheduler.tick(pygame.time.get_ticks())``
    every pass, so the machine runs at 60 Hz whatever the refresh rate
  - each new frame's pixels are blitted (numpy -> surfarray) and scaled
  - each frame's 256 samples are queued on a pygame.mixer channel
  - host key presses are translated through devices.HOST_KEYMAP

Keys:  ESC closes the window, SPACE pauses/resumes the machine.

Usage (programmatic):
    from display import FramebufferDisplay
    disp = FramebufferDisplay(system, scale=3)
    disp.run()          # blocks until the window closes
    # or disp.start() ... disp.stop() to run on a background thread

Usage (CLI):
    python cli.py program.BytePusher --scale 3
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Optional

import numpy as np

from bytepusher import BytePusherError
from devices import SCREEN_WIDTH, SCREEN_HEIGHT, SAMPLES_PER_FRAME
from scheduler import FPS

if TYPE_CHECKING:
    from system import BytePusherSystem, Frame

SAMPLE_RATE = SAMPLES_PER_FRAME * FPS   # 15360 Hz
LOOP_HZ = 240                           # host loop rate; frames are paced separately


def pixels_to_rgb(pixels: np.ndarray) -> np.ndarray:
    """(256, 256) 0xRRGGBBAA [y, x] -> (256, 256, 3) uint8 [x, y] for surfarray."""
    rgb = np.empty(pixels.shape + (3,), dtype=np.uint8)
    rgb[..., 0] = (pixels >> 24) & 0xFF
    rgb[..., 1] = (pixels >> 16) & 0xFF
    rgb[..., 2] = (pixels >> 8) & 0xFF
    return np.ascontiguousarray(rgb.transpose(1, 0, 2))


def resample_pcm(pcm: np.ndarray, rate: int, channels: int) -> np.ndarray:
    """Fit one frame of 15360 Hz mono PCM to the mixer's actual format."""
    if rate != SAMPLE_RATE:
        n_out = max(1, round(len(pcm) * rate / SAMPLE_RATE))
        x_out = np.linspace(0, len(pcm) - 1, n_out)
        pcm = np.interp(x_out, np.arange(len(pcm)), pcm).astype(np.int16)
    if channels > 1:
        pcm = np.repeat(pcm[:, None], channels, axis=1)
    return np.ascontiguousarray(pcm)


# ── Window ────────────────────────────────────────────────────────────


class FramebufferDisplay:
    """pygame window presenting a BytePusherSystem."""

    def __init__(self, system: "BytePusherSystem", scale: int = 2,
                 title: str = "BytePusher", audio: bool = True):
        self.sys = system
        self.scale = max(1, scale)
        self.title = title
        self.audio_enabled = audio
        self.error: Optional[BytePusherError] = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._started = threading.Event()
        self._channel = None
        self._mixer_fmt: tuple[int, int] | None = None

    # -- public API -------------------------------------------------------

    def start(self):
        """Run the window loop on a background thread."""
        self._stop_event.clear()
        self._started.clear()
        self._thread = threading.Thread(target=self.run, daemon=True,
                                        name="bytepusher-display")
        self._thread.start()
        self._started.wait(timeout=5.0)

    def stop(self):
        """Signal the window loop to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=3.0)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self):
        """Window loop.  Returns when the window closes or the machine faults."""
        import pygame

        if self.audio_enabled:
            pygame.mixer.pre_init(SAMPLE_RATE, -16, 1, SAMPLES_PER_FRAME)
        pygame.init()
        self._update_caption(pygame)

        win_w = SCREEN_WIDTH * self.scale
        win_h = SCREEN_HEIGHT * self.scale
        screen = pygame.display.set_mode((win_w, win_h))
        clock = pygame.time.Clock()
        fb_surface = pygame.Surface((SCREEN_WIDTH, SCREEN_HEIGHT))
        if self.audio_enabled:
            self._init_audio(pygame)

        sched = self.sys.scheduler
        self._started.set()
        try:
            while not self._stop_event.is_set():
                for event in pygame.event.get():
                    if not self._handle_event(pygame, event):
                        return

                try:
                    ran = sched.tick(pygame.time.get_ticks())
                except BytePusherError as e:
                    self.error = e
                    print(f"\n[display] machine fault: {e}")
                    return

                if ran:
                    frame = self.sys.last_frame
                    pygame.surfarray.blit_array(fb_surface,
                                                pixels_to_rgb(frame.pixels))
                    pygame.transform.scale(fb_surface, (win_w, win_h), screen)
                    pygame.display.flip()
                    if self._channel is not None:
                        self._queue_audio(pygame, frame)

                clock.tick(LOOP_HZ)
        finally:
            self._started.set()
            pygame.quit()

    # -- internals --------------------------------------------------------

    def _handle_event(self, pygame, event) -> bool:
        """Route one pygame event.  Returns False when the window should close."""
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                return False
            if event.key == pygame.K_SPACE:
                self.sys.scheduler.toggle()
                self._update_caption(pygame)
            else:
                self.sys.keyboard.press_host(pygame.key.name(event.key))
        elif event.type == pygame.KEYUP:
            self.sys.keyboard.release_host(pygame.key.name(event.key))
        return True

    def _update_caption(self, pygame):
        state = "Running" if self.sys.scheduler.running else "Stopped"
        pygame.display.set_caption(f"{self.title} [{state}]")

    def _init_audio(self, pygame):
        if pygame.mixer.get_init() is None:
            try:
                pygame.mixer.init(SAMPLE_RATE, -16, 1, SAMPLES_PER_FRAME)
            except pygame.error as e:
                print(f"[display] audio unavailable: {e}")
                return
        rate, _fmt, channels = pygame.mixer.get_init()
        self._mixer_fmt = (rate, channels)
        self._channel = pygame.mixer.Channel(0)

    def _queue_audio(self, pygame, frame: "Frame"):
        pcm = (frame.samples * 32768.0).astype(np.int16)
        rate, channels = self._mixer_fmt
        sound = pygame.sndarray.make_sound(resample_pcm(pcm, rate, channels))
        if self._channel.get_busy():
            self._channel.queue(sound)
        else:
            self._channel.play(sound)


# ── Headless ──────────────────────────────────────────────────────────


class HeadlessDisplay:
    """No window.  Drives the scheduler from a synthetic 1 kHz clock and
    records what a real display would have shown."""

    def __init__(self, system: "BytePusherSystem", keep: int = 0):
        self.sys = system
        self.keep = keep            # 0 = keep every snapshot
        self.clock_ms: float = 0
        self.snapshots: list[bytes] = []
        self.sound: list[np.ndarray] = []

    def pump(self, frames: int) -> int:
        """Advance the clock until *frames* frames have run (or the
        scheduler is stopped).  Returns the number of frames run."""
        sched = self.sys.scheduler
        done = 0
        while done < frames and sched.running:
            self.clock_ms += 1
            if sched.tick(self.clock_ms):
                self._record(self.sys.last_frame)
                done += 1
        return done

    def _record(self, frame: "Frame"):
        self.snapshots.append(frame.pixels.tobytes())
        self.sound.append(frame.samples)
        if self.keep and len(self.snapshots) > self.keep:
            del self.snapshots[0]
            del self.sound[0]

    def snapshot(self) -> bytes:
        """Current framebuffer indices as raw bytes (row-major)."""
        return self.sys.video.indices().tobytes()
