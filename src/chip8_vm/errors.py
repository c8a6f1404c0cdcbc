"""Exception types raised by the CHIP-8 virtual machine.

Load errors and machine faults are fatal. Unrecognized opcodes are not
errors at all: they are logged and skipped by the registry.
"""

from typing import Optional


class Chip8Error(Exception):
    """Base class for all VM errors."""


class LoadError(Chip8Error, ValueError):
    """Program image could not be read or does not fit in memory."""


class MachineFault(Chip8Error, RuntimeError):
    """Fatal execution fault (stack or memory range violation).

    Attributes:
        reason: Short description of what went wrong
        opcode: Offending opcode, if one was fetched
        address: Address the opcode was fetched from
    """

    def __init__(self, reason: str, opcode: Optional[int] = None, address: Optional[int] = None):
        self.reason = reason
        self.opcode = opcode
        self.address = address
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.reason]
        if self.opcode is not None:
            parts.append(f"opcode=0x{self.opcode:04X}")
        if self.address is not None:
            parts.append(f"address=0x{self.address:03X}")
        return " ".join(parts)
