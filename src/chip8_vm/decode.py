"""Decoder: Opcode fetch and decode for the CHIP-8 VM.

Architecture:
    memory[pc], memory[pc+1] -> opcode -> Decoder -> (operation_key, params)

Every opcode is split into the same fields before dispatch:

    F X Y N       family nibble, register X, register Y, low nibble
        N N       low byte (immediate)
      N N N       low 12 bits (address)

Families 0x0, 0x8, 0xE and 0xF dispatch further on the low nibble or
byte. Anything outside the base instruction set decodes to OP_INVALID.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from .errors import MachineFault


@dataclass
class DecodeResult:
    """Result of instruction decode operation.

    Attributes:
        key: Operation key (e.g., "OP_ADD_IMM")
        params: Decoded fields (x, y, n, nn, nnn)
        valid: Whether the opcode belongs to the instruction set
        error: Error message if decode failed
        opcode: Original 16-bit opcode
    """
    key: str
    params: Dict[str, int] = field(default_factory=dict)
    valid: bool = True
    error: Optional[str] = None
    opcode: int = 0


class Decoder:
    """Bit-field decoder for the base CHIP-8 instruction set."""

    VALID_KEYS: Set[str] = {
        "OP_CLS", "OP_RET",
        "OP_JP", "OP_CALL",
        "OP_SE_IMM", "OP_SNE_IMM", "OP_SE_REG",
        "OP_LD_IMM", "OP_ADD_IMM",
        "OP_LD_REG", "OP_OR", "OP_AND", "OP_XOR",
        "OP_ADD_REG", "OP_SUB", "OP_SHR", "OP_SUBN", "OP_SHL",
        "OP_SNE_REG",
        "OP_LD_I", "OP_JP_V0", "OP_RND", "OP_DRW",
        "OP_SKP", "OP_SKNP",
        "OP_LD_DT_READ", "OP_LD_KEY", "OP_LD_DT", "OP_LD_ST",
        "OP_ADD_I", "OP_LD_GLYPH", "OP_BCD", "OP_STORE_REGS", "OP_LOAD_REGS",
        "OP_INVALID",
    }

    _ALU = {
        0x0: "OP_LD_REG",
        0x1: "OP_OR",
        0x2: "OP_AND",
        0x3: "OP_XOR",
        0x4: "OP_ADD_REG",
        0x5: "OP_SUB",
        0x6: "OP_SHR",
        0x7: "OP_SUBN",
        0xE: "OP_SHL",
    }

    _MISC = {
        0x07: "OP_LD_DT_READ",
        0x0A: "OP_LD_KEY",
        0x15: "OP_LD_DT",
        0x18: "OP_LD_ST",
        0x1E: "OP_ADD_I",
        0x29: "OP_LD_GLYPH",
        0x33: "OP_BCD",
        0x55: "OP_STORE_REGS",
        0x65: "OP_LOAD_REGS",
    }

    _SIMPLE = {
        0x1: "OP_JP",
        0x2: "OP_CALL",
        0x3: "OP_SE_IMM",
        0x4: "OP_SNE_IMM",
        0x6: "OP_LD_IMM",
        0x7: "OP_ADD_IMM",
        0xA: "OP_LD_I",
        0xB: "OP_JP_V0",
        0xC: "OP_RND",
        0xD: "OP_DRW",
    }

    @staticmethod
    def fetch(memory: bytearray, pc: int) -> int:
        """Read the big-endian opcode at pc.

        Raises:
            MachineFault: If pc or pc+1 is outside memory
        """
        if pc < 0 or pc + 1 >= len(memory):
            raise MachineFault("Instruction fetch outside memory", address=pc)
        return (memory[pc] << 8) | memory[pc + 1]

    @staticmethod
    def fields(opcode: int) -> Dict[str, int]:
        return {
            "x": (opcode >> 8) & 0xF,
            "y": (opcode >> 4) & 0xF,
            "n": opcode & 0xF,
            "nn": opcode & 0xFF,
            "nnn": opcode & 0xFFF,
        }

    def decode(self, opcode: int) -> DecodeResult:
        """Decode a 16-bit opcode to operation key and fields.

        Args:
            opcode: Instruction word, 0x0000-0xFFFF

        Returns:
            DecodeResult; OP_INVALID with valid=False for unknown opcodes
        """
        opcode &= 0xFFFF
        params = self.fields(opcode)
        family = opcode >> 12
        key = None

        if family == 0x0:
            if opcode == 0x00E0:
                key = "OP_CLS"
            elif opcode == 0x00EE:
                key = "OP_RET"
        elif family in self._SIMPLE:
            key = self._SIMPLE[family]
        elif family == 0x5 and params["n"] == 0:
            key = "OP_SE_REG"
        elif family == 0x9 and params["n"] == 0:
            key = "OP_SNE_REG"
        elif family == 0x8:
            key = self._ALU.get(params["n"])
        elif family == 0xE:
            if params["nn"] == 0x9E:
                key = "OP_SKP"
            elif params["nn"] == 0xA1:
                key = "OP_SKNP"
        elif family == 0xF:
            key = self._MISC.get(params["nn"])

        if key is None:
            return DecodeResult(
                "OP_INVALID",
                params,
                False,
                error=f"Unrecognized opcode 0x{opcode:04X}",
                opcode=opcode,
            )
        return DecodeResult(key, params, True, opcode=opcode)
