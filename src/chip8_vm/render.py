"""Display buffer adapters for renderers outside the VM.

The VM only exposes a 64x32 grid of booleans. These helpers turn it into
something a terminal or an image widget can show.
"""

from typing import List

import numpy as np


def to_text(display: List[List[bool]], on: str = "#", off: str = ".") -> str:
    """Render the display as one line of text per row."""
    return "\n".join("".join(on if px else off for px in row) for row in display)


def to_array(display: List[List[bool]], scale: int = 1) -> np.ndarray:
    """Render the display as a uint8 image, 255 for lit pixels.

    Args:
        display: Rows of booleans
        scale: Integer upscale factor applied to both axes

    Returns:
        Array of shape (rows * scale, cols * scale)
    """
    if scale < 1:
        raise ValueError(f"scale must be >= 1, got {scale}")
    pixels = np.asarray(display, dtype=bool).astype(np.uint8) * 255
    if scale > 1:
        pixels = np.kron(pixels, np.ones((scale, scale), dtype=np.uint8))
    return pixels
