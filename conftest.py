"""
Pytest configuration for the BytePusher test suite.

    python -m pytest                  # everything
    python -m pytest -m "not pygame"  # skip tests that open SDL

Tests that need a real pygame install are marked ``pygame`` and skip
themselves when it is missing.  SDL is pointed at its dummy video and
audio drivers so those tests run on machines without a display or a
sound card.
"""

import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers",
        "pygame: tests that drive a real pygame window (dummy SDL driver)")
