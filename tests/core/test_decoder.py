from __future__ import annotations

import pytest

from chip8emu.core.decoder import decode, decode_word
from chip8emu.core.types import Op


@pytest.mark.parametrize(
    "word,op",
    [
        (0x00E0, Op.CLS),
        (0x00EE, Op.RET),
        (0x1234, Op.JP),
        (0x2ABC, Op.CALL),
        (0x3A12, Op.SE_VX_NN),
        (0x4A12, Op.SNE_VX_NN),
        (0x5AB0, Op.SE_VX_VY),
        (0x6A12, Op.LD_VX_NN),
        (0x7A12, Op.ADD_VX_NN),
        (0x8AB0, Op.LD_VX_VY),
        (0x8AB1, Op.OR),
        (0x8AB2, Op.AND),
        (0x8AB3, Op.XOR),
        (0x8AB4, Op.ADD_VX_VY),
        (0x8AB5, Op.SUB),
        (0x8AB6, Op.SHR),
        (0x8AB7, Op.SUBN),
        (0x8ABE, Op.SHL),
        (0x9AB0, Op.SNE_VX_VY),
        (0xA123, Op.LD_I),
        (0xB123, Op.JP_OFFSET),
        (0xCA12, Op.RND),
        (0xDAB5, Op.DRW),
        (0xEA9E, Op.SKIP_KEY_DOWN),
        (0xEAA1, Op.SKIP_KEY_UP),
        (0xFA07, Op.LD_VX_DT),
        (0xFA0A, Op.WAIT_KEY),
        (0xFA15, Op.LD_DT_VX),
        (0xFA18, Op.LD_ST_VX),
        (0xFA1E, Op.ADD_I_VX),
        (0xFA29, Op.LD_FONT),
        (0xFA33, Op.BCD),
        (0xFA55, Op.STORE_REGS),
        (0xFA65, Op.LOAD_REGS),
    ],
)
def test_decodes_every_variant(word: int, op: Op) -> None:
    assert decode_word(word).op is op


@pytest.mark.parametrize(
    "word",
    [0x0000, 0x0123, 0x01E0, 0x00E1, 0x5AB1, 0x9AB3, 0x8AB8, 0x8ABF, 0xEA00, 0xFA00, 0xFAFF],
)
def test_unmatched_patterns_are_unknown(word: int) -> None:
    assert decode_word(word).op is Op.UNKNOWN


def test_operand_fields() -> None:
    ins = decode(0xDA, 0xB5)

    assert ins.raw == 0xDAB5
    assert ins.x == 0xA
    assert ins.y == 0xB
    assert ins.n == 0x5
    assert ins.nn == 0xB5
    assert ins.nnn == 0xAB5


def test_instruction_str() -> None:
    assert str(decode_word(0x00E0)) == "00E0 CLS"
