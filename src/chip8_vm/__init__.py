"""chip8-vm: Interpreter for the CHIP-8 fantasy computer.

This package implements the CHIP-8 virtual machine core: machine state,
program loading, opcode decode and the semantics of the base instruction
set. Windowing, keyboard mapping, audio and wall-clock pacing stay
outside; the VM takes a keypad mask and a timer-tick flag per step and
hands back a display buffer.

Architecture:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> TIMERS
               |         |        |        |           |
           [PC-based] [nibbles] [OP_*] [handlers]  [60 Hz ticks]

Modules:
    state: MachineState dataclass and architectural constants
    loader: Glyph table and program image loading
    decode: Opcode fetch and field decode
    registry: Instruction semantics (OP_CLS, OP_DRW, etc.)
    timers: Delay/sound timer decrement and tick scheduling
    cpu: Main Chip8VM orchestrator
    render: Display buffer adapters for renderers
"""

__version__ = "0.1.0"
__author__ = "chip8-vm contributors"

from .state import MachineState
from .errors import Chip8Error, LoadError, MachineFault
from .decode import Decoder, DecodeResult
from .registry import InstructionRegistry
from .timers import TickScheduler
from .cpu import Chip8VM, StepResult

__all__ = [
    "MachineState",
    "Chip8Error",
    "LoadError",
    "MachineFault",
    "Decoder",
    "DecodeResult",
    "InstructionRegistry",
    "TickScheduler",
    "Chip8VM",
    "StepResult",
]
