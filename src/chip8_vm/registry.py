"""InstructionRegistry: Instruction semantics for the CHIP-8 VM.

Each decoded operation key maps to a handler that applies the
instruction's effect to the MachineState in place. The registry is frozen
after construction so the instruction set cannot change at runtime.

Handler signature: (MachineState, params) -> bool

The return value reports whether the display buffer was touched. params
holds the decoded fields (x, y, n, nn, nnn) plus the opcode and the
address it was fetched from.

The program counter has already been advanced past the instruction when
a handler runs, so jumps assign and skips add a further 2.
"""

import logging
import random
from typing import Any, Callable, Dict, Optional

from .errors import MachineFault
from .state import (
    BYTE_MASK,
    DISPLAY_HEIGHT,
    DISPLAY_WIDTH,
    FLAG_REGISTER,
    MEMORY_SIZE,
    STACK_SIZE,
    WORD_MASK,
    MachineState,
)
from .loader import GLYPH_HEIGHT


logger = logging.getLogger(__name__)

Handler = Callable[[MachineState, Dict[str, Any]], bool]


class InstructionRegistry:
    """Frozen registry of instruction handlers.

    Attributes:
        rng: Random source for CXNN
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._handlers: Dict[str, Handler] = {}
        self._frozen = False
        self._register_all()
        self.freeze()

    def _register_all(self) -> None:
        # Display and flow control
        self.register("OP_CLS", self._op_cls)
        self.register("OP_RET", self._op_ret)
        self.register("OP_JP", self._op_jp)
        self.register("OP_CALL", self._op_call)
        self.register("OP_JP_V0", self._op_jp_v0)

        # Conditional skips
        self.register("OP_SE_IMM", self._op_se_imm)
        self.register("OP_SNE_IMM", self._op_sne_imm)
        self.register("OP_SE_REG", self._op_se_reg)
        self.register("OP_SNE_REG", self._op_sne_reg)
        self.register("OP_SKP", self._op_skp)
        self.register("OP_SKNP", self._op_sknp)

        # Register loads and ALU
        self.register("OP_LD_IMM", self._op_ld_imm)
        self.register("OP_ADD_IMM", self._op_add_imm)
        self.register("OP_LD_REG", self._op_ld_reg)
        self.register("OP_OR", self._op_or)
        self.register("OP_AND", self._op_and)
        self.register("OP_XOR", self._op_xor)
        self.register("OP_ADD_REG", self._op_add_reg)
        self.register("OP_SUB", self._op_sub)
        self.register("OP_SHR", self._op_shr)
        self.register("OP_SUBN", self._op_subn)
        self.register("OP_SHL", self._op_shl)
        self.register("OP_RND", self._op_rnd)

        # Index register and memory
        self.register("OP_LD_I", self._op_ld_i)
        self.register("OP_ADD_I", self._op_add_i)
        self.register("OP_LD_GLYPH", self._op_ld_glyph)
        self.register("OP_BCD", self._op_bcd)
        self.register("OP_STORE_REGS", self._op_store_regs)
        self.register("OP_LOAD_REGS", self._op_load_regs)
        self.register("OP_DRW", self._op_drw)

        # Timers and keypad
        self.register("OP_LD_DT_READ", self._op_ld_dt_read)
        self.register("OP_LD_DT", self._op_ld_dt)
        self.register("OP_LD_ST", self._op_ld_st)
        self.register("OP_LD_KEY", self._op_ld_key)

        self.register("OP_INVALID", self._op_invalid)

    def register(self, key: str, handler: Handler) -> None:
        """Register an instruction handler.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register handlers: registry is frozen")
        if key in self._handlers:
            raise ValueError(f"Handler already registered: {key}")
        self._handlers[key] = handler

    def freeze(self) -> None:
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_keys(self) -> set:
        return set(self._handlers.keys())

    def execute(self, state: MachineState, key: str, params: Dict[str, Any]) -> bool:
        """Apply a registered instruction to state.

        Returns:
            True if the display buffer was mutated

        Raises:
            KeyError: If key not in registry
            MachineFault: On stack or memory range violations
        """
        if key not in self._handlers:
            raise KeyError(f"Unknown operation key: {key}")
        return self._handlers[key](state, params)

    # =========================================================================
    # Display and flow control
    # =========================================================================

    def _op_cls(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """00E0 - Clear the display."""
        state.clear_display()
        return True

    def _op_ret(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """00EE - Return from subroutine."""
        if state.sp == 0:
            raise self._fault("Stack underflow on return", params)
        state.pc = state.stack[state.sp]
        state.sp -= 1
        return False

    def _op_jp(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """1NNN - Jump to NNN."""
        state.pc = params["nnn"]
        return False

    def _op_call(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """2NNN - Call subroutine at NNN, pushing the return address."""
        if state.sp >= STACK_SIZE - 1:
            raise self._fault("Stack overflow on call", params)
        state.sp += 1
        state.stack[state.sp] = state.pc
        state.pc = params["nnn"]
        return False

    def _op_jp_v0(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """BNNN - Jump to V0 + NNN."""
        state.pc = (state.registers[0] + params["nnn"]) & WORD_MASK
        return False

    # =========================================================================
    # Conditional skips
    # =========================================================================

    def _skip_if(self, state: MachineState, condition: bool) -> bool:
        if condition:
            state.pc = (state.pc + 2) & WORD_MASK
        return False

    def _op_se_imm(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """3XNN - Skip if VX == NN."""
        return self._skip_if(state, state.registers[params["x"]] == params["nn"])

    def _op_sne_imm(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """4XNN - Skip if VX != NN."""
        return self._skip_if(state, state.registers[params["x"]] != params["nn"])

    def _op_se_reg(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """5XY0 - Skip if VX == VY."""
        regs = state.registers
        return self._skip_if(state, regs[params["x"]] == regs[params["y"]])

    def _op_sne_reg(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """9XY0 - Skip if VX != VY."""
        regs = state.registers
        return self._skip_if(state, regs[params["x"]] != regs[params["y"]])

    def _op_skp(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """EX9E - Skip if key VX is pressed."""
        return self._skip_if(state, state.key_pressed(state.registers[params["x"]]))

    def _op_sknp(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """EXA1 - Skip if key VX is not pressed."""
        return self._skip_if(state, not state.key_pressed(state.registers[params["x"]]))

    # =========================================================================
    # Register loads and ALU
    #
    # VF is written before VX is computed. When X or Y is F the new flag
    # value is the operand, and for X == F the result replaces the flag.
    # =========================================================================

    def _op_ld_imm(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """6XNN - VX = NN."""
        state.registers[params["x"]] = params["nn"]
        return False

    def _op_add_imm(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """7XNN - VX += NN, no carry flag."""
        x = params["x"]
        state.registers[x] = (state.registers[x] + params["nn"]) & BYTE_MASK
        return False

    def _op_ld_reg(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY0 - VX = VY."""
        state.registers[params["x"]] = state.registers[params["y"]]
        return False

    def _op_or(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY1 - VX |= VY."""
        regs = state.registers
        regs[params["x"]] |= regs[params["y"]]
        return False

    def _op_and(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY2 - VX &= VY."""
        regs = state.registers
        regs[params["x"]] &= regs[params["y"]]
        return False

    def _op_xor(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY3 - VX ^= VY."""
        regs = state.registers
        regs[params["x"]] ^= regs[params["y"]]
        return False

    def _op_add_reg(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY4 - VX += VY, VF = carry."""
        regs, x, y = state.registers, params["x"], params["y"]
        regs[FLAG_REGISTER] = int(regs[x] + regs[y] > BYTE_MASK)
        regs[x] = (regs[x] + regs[y]) & BYTE_MASK
        return False

    def _op_sub(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY5 - VX -= VY, VF = 1 if VX > VY."""
        regs, x, y = state.registers, params["x"], params["y"]
        regs[FLAG_REGISTER] = int(regs[x] > regs[y])
        regs[x] = (regs[x] - regs[y]) & BYTE_MASK
        return False

    def _op_shr(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY6 - VF = low bit of VX, VX >>= 1."""
        regs, x = state.registers, params["x"]
        regs[FLAG_REGISTER] = regs[x] & 0x1
        regs[x] >>= 1
        return False

    def _op_subn(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XY7 - VX = VY - VX, VF = 1 if VY > VX."""
        regs, x, y = state.registers, params["x"], params["y"]
        regs[FLAG_REGISTER] = int(regs[y] > regs[x])
        regs[x] = (regs[y] - regs[x]) & BYTE_MASK
        return False

    def _op_shl(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """8XYE - VF = high bit of VX, VX <<= 1."""
        regs, x = state.registers, params["x"]
        regs[FLAG_REGISTER] = regs[x] >> 7
        regs[x] = (regs[x] << 1) & BYTE_MASK
        return False

    def _op_rnd(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """CXNN - VX = random byte & NN."""
        state.registers[params["x"]] = self.rng.randrange(256) & params["nn"]
        return False

    # =========================================================================
    # Index register and memory
    # =========================================================================

    def _op_ld_i(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """ANNN - I = NNN."""
        state.index_register = params["nnn"]
        return False

    def _op_add_i(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX1E - I += VX."""
        state.index_register = (state.index_register + state.registers[params["x"]]) & WORD_MASK
        return False

    def _op_ld_glyph(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX29 - I = address of the built-in glyph for digit VX."""
        state.index_register = state.registers[params["x"]] * GLYPH_HEIGHT
        return False

    def _op_bcd(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX33 - Store hundreds, tens, ones of VX at I, I+1, I+2."""
        base = state.index_register
        self._check_range(base, 3, params)
        value = state.registers[params["x"]]
        state.memory[base] = value // 100
        state.memory[base + 1] = (value // 10) % 10
        state.memory[base + 2] = value % 10
        return False

    def _op_store_regs(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX55 - Copy V0..VX to memory starting at I."""
        count = params["x"] + 1
        base = state.index_register
        self._check_range(base, count, params)
        state.memory[base:base + count] = bytes(state.registers[:count])
        return False

    def _op_load_regs(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX65 - Copy memory starting at I into V0..VX."""
        count = params["x"] + 1
        base = state.index_register
        self._check_range(base, count, params)
        state.registers[:count] = list(state.memory[base:base + count])
        return False

    def _op_drw(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """DXYN - XOR an 8xN sprite from memory[I] onto the display at (VX, VY).

        Coordinates wrap around both edges. VF is cleared first and set
        to 1 if any lit pixel is turned off.
        """
        regs = state.registers
        regs[FLAG_REGISTER] = 0
        x0, y0 = regs[params["x"]], regs[params["y"]]
        collision = 0

        for row in range(params["n"]):
            sprite = state.memory[(state.index_register + row) % MEMORY_SIZE]
            line = state.display[(y0 + row) % DISPLAY_HEIGHT]
            for bit in range(8):
                if not (sprite >> (7 - bit)) & 0x1:
                    continue
                col = (x0 + bit) % DISPLAY_WIDTH
                if line[col]:
                    collision = 1
                line[col] = not line[col]

        regs[FLAG_REGISTER] = collision
        return True

    # =========================================================================
    # Timers and keypad
    # =========================================================================

    def _op_ld_dt_read(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX07 - VX = delay timer."""
        state.registers[params["x"]] = state.delay_timer
        return False

    def _op_ld_dt(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX15 - Delay timer = VX."""
        state.delay_timer = state.registers[params["x"]]
        return False

    def _op_ld_st(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX18 - Sound timer = VX."""
        state.sound_timer = state.registers[params["x"]]
        return False

    def _op_ld_key(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """FX0A - Wait for a key, store the highest pressed key in VX.

        With no key held the program counter is wound back so the same
        instruction runs again on the next step.
        """
        if state.keypad == 0:
            state.pc = (state.pc - 2) & WORD_MASK
            return False
        state.registers[params["x"]] = state.keypad.bit_length() - 1
        return False

    # =========================================================================
    # Invalid
    # =========================================================================

    def _op_invalid(self, state: MachineState, params: Dict[str, Any]) -> bool:
        """Unrecognized opcode: report and continue."""
        logger.warning(
            "Ignoring unrecognized opcode 0x%04X at 0x%03X",
            params.get("opcode", 0),
            params.get("address", 0),
        )
        return False

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _check_range(self, base: int, count: int, params: Dict[str, Any]) -> None:
        if base + count > MEMORY_SIZE:
            raise self._fault(
                f"Memory access 0x{base:04X}..0x{base + count - 1:04X} outside memory", params
            )

    @staticmethod
    def _fault(reason: str, params: Dict[str, Any]) -> MachineFault:
        return MachineFault(reason, opcode=params.get("opcode"), address=params.get("address"))
