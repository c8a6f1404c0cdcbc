"""Program loading for the CHIP-8 VM.

Builds a fresh MachineState: the built-in hex glyphs go to 0x000, the
program image goes to 0x200 and the program counter points at it.
"""

import logging
from pathlib import Path
from typing import Union

from .errors import LoadError
from .state import MachineState, MAX_PROGRAM_SIZE, PROGRAM_START


logger = logging.getLogger(__name__)

GLYPH_HEIGHT = 5

# Hex digits 0-F, 5 rows each, high nibble is the visible 4-pixel row
GLYPHS = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


def create_initial_state(program: bytes) -> MachineState:
    """Create initial machine state with a loaded program.

    Args:
        program: Raw program image, big-endian instructions, no header

    Returns:
        Fresh MachineState with glyphs and program in memory, PC at 0x200

    Raises:
        LoadError: If the program is larger than 3584 bytes
    """
    data = bytes(program)
    if len(data) > MAX_PROGRAM_SIZE:
        raise LoadError(
            f"Program is {len(data)} bytes, at most {MAX_PROGRAM_SIZE} fit above 0x{PROGRAM_START:03X}"
        )

    state = MachineState()
    state.memory[0:len(GLYPHS)] = GLYPHS
    state.memory[PROGRAM_START:PROGRAM_START + len(data)] = data
    state.pc = PROGRAM_START
    logger.debug("Loaded %d byte program at 0x%03X", len(data), PROGRAM_START)
    return state


def read_rom(path: Union[str, Path]) -> bytes:
    """Read a program image from disk.

    Raises:
        LoadError: If the file is missing or unreadable
    """
    rom_path = Path(path)
    try:
        data = rom_path.read_bytes()
    except OSError as e:
        raise LoadError(f"Cannot read program {rom_path}: {e.strerror or e}") from e
    logger.info("Loading rom %s (%d bytes)", rom_path, len(data))
    return data


def parse_hex(text: str) -> bytes:
    """Parse a whitespace-separated hex listing such as "6105 7103".

    Each word may carry its own 0x prefix.

    Raises:
        LoadError: If the text is not an even number of hex digits
    """
    digits = "".join(
        word[2:] if word.lower().startswith("0x") else word
        for word in text.split()
    )
    try:
        return bytes.fromhex(digits)
    except ValueError as e:
        raise LoadError(f"Invalid hex program: {e}") from e
