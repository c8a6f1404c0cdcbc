"""Chip8VM: Main orchestrator for the CHIP-8 virtual machine.

This module implements the execution pipeline:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> TIMERS

One call to step() runs exactly one instruction to completion. Input,
timer ticks and display forwarding are the caller's business: the
keypad mask and the tick flag go in, a StepResult comes out.
"""

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .decode import Decoder
from .errors import MachineFault
from .loader import create_initial_state, read_rom
from .registry import InstructionRegistry
from .state import MachineState, WORD_MASK
from .timers import TIMER_HZ, TickScheduler, decrement_timers


logger = logging.getLogger(__name__)

FrameCallback = Callable[[List[List[bool]]], None]


@dataclass
class StepResult:
    """Outcome of one fetch-decode-execute cycle.

    Attributes:
        cycle: Cycle number (0-indexed)
        address: Address the opcode was fetched from
        opcode: Raw 16-bit instruction
        key: Operation key the opcode decoded to
        display_changed: Whether the display buffer should be redrawn
        sound_on: Whether the sound timer is running after this step
    """
    cycle: int
    address: int
    opcode: int
    key: str
    display_changed: bool
    sound_on: bool


class Chip8VM:
    """CHIP-8 interpreter.

    Attributes:
        decoder: Decoder for opcode fields
        registry: InstructionRegistry with the instruction set
        state: Current machine state (None until a program is loaded)
        scheduler: TickScheduler used by run()
        max_cycles: Optional safety limit on executed steps
    """

    DEFAULT_CPU_HZ = 500
    TIMER_HZ = TIMER_HZ

    def __init__(
        self,
        cpu_hz: int = DEFAULT_CPU_HZ,
        max_cycles: Optional[int] = None,
        seed: Optional[int] = None,
    ):
        """Initialize the VM.

        Args:
            cpu_hz: Instructions per emulated second, used to pace timer ticks
            max_cycles: Raise once this many steps have run (None = unlimited)
            seed: Seed for the CXNN random source
        """
        self.decoder = Decoder()
        self.registry = InstructionRegistry(rng=random.Random(seed))
        self.scheduler = TickScheduler(cpu_hz, self.TIMER_HZ)
        self.cpu_hz = cpu_hz
        self.max_cycles = max_cycles
        self.state: Optional[MachineState] = None

    def load_program(self, program: bytes) -> None:
        """Load a raw program image at 0x200 and reset all state.

        Raises:
            LoadError: If the image does not fit
        """
        self.state = create_initial_state(program)
        self.scheduler.reset()

    def load_rom(self, path: Union[str, Path]) -> None:
        """Load a program image from a file.

        Raises:
            LoadError: If the file is unreadable or too large
        """
        self.load_program(read_rom(path))

    def step(self, keypad: int = 0, tick: bool = False) -> StepResult:
        """Execute a single instruction.

        Args:
            keypad: Input latch, bit i set while key i is held
            tick: Whether this step falls on a 60 Hz timer tick

        Returns:
            StepResult for the executed instruction

        Raises:
            RuntimeError: If no program is loaded, the VM is halted, or
                max_cycles is exceeded
            MachineFault: On a fatal fault; the VM is halted first
        """
        state = self._require_state()
        if state.halted:
            raise RuntimeError("VM is halted")
        if self.max_cycles is not None and state.cycle_count >= self.max_cycles:
            raise RuntimeError(f"Max cycles ({self.max_cycles}) exceeded")

        state.keypad = keypad & WORD_MASK
        address = state.pc

        try:
            opcode = self.decoder.fetch(state.memory, address)
            state.pc = (address + 2) & WORD_MASK
            decoded = self.decoder.decode(opcode)
            params = dict(decoded.params, opcode=opcode, address=address)
            display_changed = self.registry.execute(state, decoded.key, params)
        except MachineFault as e:
            state.pc = address
            state.halted = True
            logger.error("Halting: %s", e)
            raise

        if tick:
            decrement_timers(state)

        result = StepResult(
            cycle=state.cycle_count,
            address=address,
            opcode=opcode,
            key=decoded.key,
            display_changed=display_changed,
            sound_on=state.sound_on,
        )
        state.cycle_count += 1
        return result

    def run(
        self,
        cycles: int,
        keypad: int = 0,
        on_frame: Optional[FrameCallback] = None,
    ) -> int:
        """Run a fixed number of steps with scheduled timer ticks.

        Args:
            cycles: Number of instructions to execute
            keypad: Input latch held for the whole run
            on_frame: Called with the display buffer after each step that
                changed it

        Returns:
            Number of steps executed
        """
        self._require_state()
        for _ in range(cycles):
            result = self.step(keypad, tick=self.scheduler.next())
            if result.display_changed and on_frame is not None:
                on_frame(self.state.display)
        return cycles

    def get_register(self, index: int) -> int:
        return self._require_state().get_register(index)

    def dump_registers(self) -> Dict[str, int]:
        return self._require_state().dump_registers()

    def get_pc(self) -> int:
        return self._require_state().pc

    def get_cycle_count(self) -> int:
        if self.state is None:
            return 0
        return self.state.cycle_count

    def is_halted(self) -> bool:
        if self.state is None:
            return True
        return self.state.halted

    @property
    def display(self) -> List[List[bool]]:
        return self._require_state().display

    @property
    def sound_on(self) -> bool:
        return self.state is not None and self.state.sound_on

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with cycle count, halt status and register-level state
        """
        if self.state is None:
            return {"cycles": 0, "halted": True, "registers": {}}
        snap = self.state.snapshot()
        return {
            "cycles": snap["cycle_count"],
            "halted": snap["halted"],
            "registers": self.dump_registers(),
            "pc": snap["pc"],
            "index_register": snap["index_register"],
            "sp": snap["sp"],
            "delay_timer": snap["delay_timer"],
            "sound_timer": snap["sound_timer"],
            "pixels_on": sum(sum(row) for row in self.state.display),
        }

    def _require_state(self) -> MachineState:
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state
