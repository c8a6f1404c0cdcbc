"""MachineState: Mutable state representation for the CHIP-8 VM.

This module defines the complete state of the virtual machine. The
interpreter is the only owner and mutates it in place, one instruction
at a time.

State Components:
    - Memory: 4096 bytes, 0x000-0x1FF reserved for the glyph table
    - Registers: V0-VF (16 x 8-bit, VF doubles as the flag register)
    - Index register I (16-bit) and program counter (16-bit)
    - Call stack: 16 return addresses plus stack pointer
    - Display: 64x32 monochrome pixels, row-major, origin top-left
    - Keypad: 16-bit mask, bit i set while key i is held
    - Delay and sound timers (8-bit, count down at 60 Hz)
    - Halted: Set after a fatal fault
    - Cycle count: Total executed steps
"""

from dataclasses import dataclass, field
from typing import Dict, List


MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START

NUM_REGISTERS = 16
FLAG_REGISTER = 0xF
STACK_SIZE = 16

DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32

BYTE_MASK = 0xFF
WORD_MASK = 0xFFFF


def blank_display() -> List[List[bool]]:
    """Create an all-off display buffer (indexed [row][column])."""
    return [[False] * DISPLAY_WIDTH for _ in range(DISPLAY_HEIGHT)]


@dataclass
class MachineState:
    """Complete mutable VM state.

    Attributes:
        memory: 4096 addressable bytes
        registers: V0-VF, each 0..255
        index_register: I, 0..0xFFFF
        pc: Program counter, address of the next instruction
        stack: Return addresses (16 slots)
        sp: Stack pointer, 0..15; slot 0 is never written
        display: 32 rows of 64 booleans
        keypad: Input latch bitmask
        delay_timer: 0..255
        sound_timer: 0..255
        halted: Whether a fatal fault stopped execution
        cycle_count: Number of executed steps
    """
    memory: bytearray = field(default_factory=lambda: bytearray(MEMORY_SIZE))
    registers: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)
    index_register: int = 0
    pc: int = 0
    stack: List[int] = field(default_factory=lambda: [0] * STACK_SIZE)
    sp: int = 0
    display: List[List[bool]] = field(default_factory=blank_display)
    keypad: int = 0
    delay_timer: int = 0
    sound_timer: int = 0
    halted: bool = False
    cycle_count: int = 0

    def snapshot(self) -> dict:
        """Copy the register-level state for inspection.

        Memory and display are excluded; use the fields directly.
        """
        return {
            "registers": list(self.registers),
            "index_register": self.index_register,
            "pc": self.pc,
            "stack": list(self.stack),
            "sp": self.sp,
            "keypad": self.keypad,
            "delay_timer": self.delay_timer,
            "sound_timer": self.sound_timer,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
        }

    def validate(self) -> bool:
        """Check structural invariants.

        Returns:
            True if every field is within its architectural range
        """
        if len(self.memory) != MEMORY_SIZE:
            return False
        if len(self.registers) != NUM_REGISTERS:
            return False
        if any(not 0 <= v <= BYTE_MASK for v in self.registers):
            return False
        if not 0 <= self.index_register <= WORD_MASK:
            return False
        if not 0 <= self.pc <= WORD_MASK:
            return False
        if len(self.stack) != STACK_SIZE or not 0 <= self.sp < STACK_SIZE:
            return False
        if len(self.display) != DISPLAY_HEIGHT:
            return False
        if any(len(row) != DISPLAY_WIDTH for row in self.display):
            return False
        if not 0 <= self.keypad <= WORD_MASK:
            return False
        if not 0 <= self.delay_timer <= BYTE_MASK:
            return False
        if not 0 <= self.sound_timer <= BYTE_MASK:
            return False
        return self.cycle_count >= 0

    def get_register(self, index: int) -> int:
        """Get value of V[index].

        Raises:
            IndexError: If index is not 0..15
        """
        if not 0 <= index < NUM_REGISTERS:
            raise IndexError(f"Invalid register: V{index}")
        return self.registers[index]

    def set_register(self, index: int, value: int) -> None:
        """Set V[index], wrapping the value to 8 bits.

        Raises:
            IndexError: If index is not 0..15
        """
        if not 0 <= index < NUM_REGISTERS:
            raise IndexError(f"Invalid register: V{index}")
        self.registers[index] = value & BYTE_MASK

    def key_pressed(self, key: int) -> bool:
        """Whether keypad key 0..15 is currently held; larger values never are."""
        return 0 <= key < 16 and bool((self.keypad >> key) & 1)

    @property
    def sound_on(self) -> bool:
        """The buzzer sounds while the sound timer is nonzero."""
        return self.sound_timer > 0

    def clear_display(self) -> None:
        for row in self.display:
            for x in range(DISPLAY_WIDTH):
                row[x] = False

    def dump_registers(self) -> Dict[str, int]:
        """Get a copy of all register values keyed V0..VF."""
        return {f"V{i:X}": v for i, v in enumerate(self.registers)}

    def __str__(self) -> str:
        regs = " ".join(f"V{i:X}={v:02X}" for i, v in enumerate(self.registers))
        return (
            f"[Cycle {self.cycle_count}] PC={self.pc:03X} I={self.index_register:03X} "
            f"SP={self.sp} DT={self.delay_timer} ST={self.sound_timer} {regs}"
            f"{' HALTED' if self.halted else ''}"
        )
