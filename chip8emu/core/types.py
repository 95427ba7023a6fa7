"""
Core enumerations and type definitions for the CHIP-8 interpreter.

:class:`Op` is the closed set of instruction variants the decoder can
produce.  Member names follow the opcode pattern they match, so
``Op.ADD_VX_VY`` is ``8XY4`` and ``Op.SKIP_KEY_DOWN`` is ``EX9E``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Op(IntEnum):
    UNKNOWN = 0
    # 0NNN family
    CLS = 1                 # 00E0
    RET = 2                 # 00EE
    # flow control
    JP = 3                  # 1NNN
    CALL = 4                # 2NNN
    SE_VX_NN = 5            # 3XNN
    SNE_VX_NN = 6           # 4XNN
    SE_VX_VY = 7            # 5XY0
    LD_VX_NN = 8            # 6XNN
    ADD_VX_NN = 9           # 7XNN
    # arithmetic / logic sub-table
    LD_VX_VY = 10           # 8XY0
    OR = 11                 # 8XY1
    AND = 12                # 8XY2
    XOR = 13                # 8XY3
    ADD_VX_VY = 14          # 8XY4
    SUB = 15                # 8XY5
    SHR = 16                # 8XY6
    SUBN = 17               # 8XY7
    SHL = 18                # 8XYE
    SNE_VX_VY = 19          # 9XY0
    LD_I = 20               # ANNN
    JP_OFFSET = 21          # BNNN
    RND = 22                # CXNN
    DRW = 23                # DXYN
    SKIP_KEY_DOWN = 24      # EX9E
    SKIP_KEY_UP = 25        # EXA1
    # device / memory family
    LD_VX_DT = 26           # FX07
    WAIT_KEY = 27           # FX0A
    LD_DT_VX = 28           # FX15
    LD_ST_VX = 29           # FX18
    ADD_I_VX = 30           # FX1E
    LD_FONT = 31            # FX29
    BCD = 32                # FX33
    STORE_REGS = 33         # FX55
    LOAD_REGS = 34          # FX65


@dataclass(frozen=True)
class Instruction:
    """A decoded 16-bit instruction word.

    ``x``, ``y`` and ``n`` are the second, third and fourth nibbles;
    ``nn`` is the low byte and ``nnn`` the low 12 bits.
    """

    raw: int
    op: Op
    x: int
    y: int
    n: int
    nn: int
    nnn: int

    def __str__(self) -> str:
        return f"{self.raw:04X} {self.op.name}"
