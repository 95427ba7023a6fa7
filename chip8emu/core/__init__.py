"""
CHIP-8 interpreter core: machine state, decoder, interpreter.

Typical usage::

    from chip8emu.core import Interpreter, MachineState

    state = MachineState.create_with_font()
    state.memory[0x200:0x200 + len(rom)] = rom
    interpreter = Interpreter()
    while True:
        interpreter.step(state)
"""

from chip8emu.core.decoder import decode
from chip8emu.core.display import Display
from chip8emu.core.errors import AddressOverflowError, Chip8Error, StackUnderflowError
from chip8emu.core.interpreter import Interpreter
from chip8emu.core.machine import Chip8Machine
from chip8emu.core.machine_state import (
    DISPLAY_HEIGHT,
    DISPLAY_WIDTH,
    FONT_BASE_ADDRESS,
    FONT_TABLE,
    MEMORY_SIZE,
    PROGRAM_START_ADDRESS,
    REGISTER_COUNT,
    MachineState,
    create_with_font,
)
from chip8emu.core.types import Instruction, Op

__all__ = [
    "AddressOverflowError",
    "Chip8Error",
    "Chip8Machine",
    "DISPLAY_HEIGHT",
    "DISPLAY_WIDTH",
    "Display",
    "FONT_BASE_ADDRESS",
    "FONT_TABLE",
    "Instruction",
    "Interpreter",
    "MEMORY_SIZE",
    "MachineState",
    "Op",
    "PROGRAM_START_ADDRESS",
    "REGISTER_COUNT",
    "StackUnderflowError",
    "create_with_font",
    "decode",
]
