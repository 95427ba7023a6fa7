"""
Fault conditions raised by the CHIP-8 core.

Unknown opcodes are *not* represented here: they are reported through
:mod:`chip8emu.core.logger` and execution continues.
"""

from __future__ import annotations

from typing import Optional


class Chip8Error(Exception):
    """Base class for fatal interpreter faults."""


class StackUnderflowError(Chip8Error):
    """Raised when 00EE (return) executes with an empty call stack.

    Parameters
    ----------
    address:
        Address of the faulting return instruction.
    """

    def __init__(self, address: int) -> None:
        super().__init__(f"Return with empty call stack at ${address:03X}")
        self.address: int = address


class AddressOverflowError(Chip8Error, IndexError):
    """Raised when an access falls outside the 4 KB memory.

    Parameters
    ----------
    address:
        First out-of-range address touched.
    opcode:
        The instruction word being executed, or ``None`` for a fetch fault.
    """

    def __init__(self, address: int, opcode: Optional[int] = None) -> None:
        if opcode is None:
            message = f"Instruction fetch outside memory at ${address:04X}"
        else:
            message = f"Opcode {opcode:04X} accessed memory outside bounds at ${address:04X}"
        super().__init__(message)
        self.address: int = address
        self.opcode: Optional[int] = opcode
