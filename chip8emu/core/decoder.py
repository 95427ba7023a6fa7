"""
Instruction decoding for the CHIP-8.

:func:`decode` splits a two-byte instruction word into its four nibbles
once and maps it onto a member of :class:`~chip8emu.core.types.Op`.
Patterns with no matching variant decode to ``Op.UNKNOWN``; the
interpreter decides what to do with them.
"""

from __future__ import annotations

from chip8emu.core.types import Instruction, Op

# 8XY? sub-table, keyed by the fourth nibble.
_ALU_OPS: dict[int, Op] = {
    0x0: Op.LD_VX_VY,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_VX_VY,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# EX?? keyed by the low byte.
_KEY_OPS: dict[int, Op] = {
    0x9E: Op.SKIP_KEY_DOWN,
    0xA1: Op.SKIP_KEY_UP,
}

# FX?? keyed by the low byte.
_DEVICE_OPS: dict[int, Op] = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.WAIT_KEY,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I_VX,
    0x29: Op.LD_FONT,
    0x33: Op.BCD,
    0x55: Op.STORE_REGS,
    0x65: Op.LOAD_REGS,
}

# First nibbles whose variant is fully determined by that nibble.
_SIMPLE_OPS: dict[int, Op] = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_VX_NN,
    0x4: Op.SNE_VX_NN,
    0x6: Op.LD_VX_NN,
    0x7: Op.ADD_VX_NN,
    0xA: Op.LD_I,
    0xB: Op.JP_OFFSET,
    0xC: Op.RND,
    0xD: Op.DRW,
}


def _classify(family: int, x: int, n: int, nn: int) -> Op:
    """Pick the variant for an instruction from its fields."""
    op = _SIMPLE_OPS.get(family)
    if op is not None:
        return op

    if family == 0x0:
        if x == 0x0 and nn == 0xE0:
            return Op.CLS
        if x == 0x0 and nn == 0xEE:
            return Op.RET
    elif family == 0x5:
        if n == 0x0:
            return Op.SE_VX_VY
    elif family == 0x9:
        if n == 0x0:
            return Op.SNE_VX_VY
    elif family == 0x8:
        return _ALU_OPS.get(n, Op.UNKNOWN)
    elif family == 0xE:
        return _KEY_OPS.get(nn, Op.UNKNOWN)
    elif family == 0xF:
        return _DEVICE_OPS.get(nn, Op.UNKNOWN)

    return Op.UNKNOWN


def decode(high: int, low: int) -> Instruction:
    """Decode the instruction made of bytes *high* (first) and *low*.

    >>> decode(0x8A, 0xB4).op.name
    'ADD_VX_VY'
    """
    family = (high >> 4) & 0xF
    x = high & 0xF
    y = (low >> 4) & 0xF
    n = low & 0xF
    return Instruction(
        raw=(high << 8) | low,
        op=_classify(family, x, n, low),
        x=x,
        y=y,
        n=n,
        nn=low,
        nnn=(x << 8) | low,
    )


def decode_word(word: int) -> Instruction:
    """Decode a 16-bit instruction word."""
    return decode((word >> 8) & 0xFF, word & 0xFF)
