"""Tests for display buffer adapters."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np
import pytest
from chip8_vm.render import to_array, to_text
from chip8_vm.state import blank_display


@pytest.fixture
def display():
    buf = blank_display()
    buf[0][0] = True
    buf[31][63] = True
    return buf


class TestToText:

    def test_dimensions(self, display):
        lines = to_text(display).split("\n")
        assert len(lines) == 32
        assert all(len(line) == 64 for line in lines)

    def test_pixels(self, display):
        lines = to_text(display, on="X", off=" ").split("\n")
        assert lines[0][0] == "X"
        assert lines[0][1] == " "
        assert lines[31][63] == "X"


class TestToArray:

    def test_unscaled(self, display):
        pixels = to_array(display)
        assert pixels.shape == (32, 64)
        assert pixels.dtype == np.uint8
        assert pixels[0, 0] == 255
        assert pixels[0, 1] == 0
        assert pixels.sum() == 2 * 255

    def test_scaled(self, display):
        pixels = to_array(display, scale=4)
        assert pixels.shape == (128, 256)
        assert (pixels[0:4, 0:4] == 255).all()
        assert pixels[4, 4] == 0
        assert (pixels[124:128, 252:256] == 255).all()

    def test_invalid_scale(self, display):
        with pytest.raises(ValueError):
            to_array(display, scale=0)
