from __future__ import annotations

import random

import pytest

from chip8emu.core.errors import AddressOverflowError, Chip8Error, StackUnderflowError
from chip8emu.core.interpreter import Interpreter
from chip8emu.core.logger import LOG_WARNING, RecordingLogger
from chip8emu.core.machine_state import FONT_BASE_ADDRESS
from chip8emu.core.types import Op


def _run(state, count: int, interpreter: Interpreter | None = None) -> Interpreter:
    interpreter = interpreter or Interpreter()
    for _ in range(count):
        interpreter.step(state)
    return interpreter


# ---------------------------------------------------------------------------
# End-to-end programs
# ---------------------------------------------------------------------------

def test_load_then_add(program_state) -> None:
    state = program_state(0x600A, 0x7005)

    _run(state, 2)

    assert state.registers[0] == 15
    assert state.program_counter == 0x204


def test_draw_font_glyph_zero(program_state) -> None:
    state = program_state(0xA050, 0xD005)

    _run(state, 2)

    assert state.index_register == FONT_BASE_ADDRESS
    expected = ["1111", "1001", "1001", "1001", "1111"]
    for y, pattern in enumerate(expected):
        for x, bit in enumerate(pattern):
            assert state.display.get_pixel(x, y) == (bit == "1")
    assert state.display.lit_count() == 14
    assert state.registers[0xF] == 0


def test_step_returns_instruction_and_counts(program_state) -> None:
    state = program_state(0x00E0)
    interpreter = Interpreter()

    ins = interpreter.step(state)

    assert ins.op is Op.CLS
    assert interpreter.instruction_count == 1


# ---------------------------------------------------------------------------
# Flow control
# ---------------------------------------------------------------------------

def test_cls_clears_display(program_state) -> None:
    state = program_state(0x00E0)
    state.display.toggle_pixel(10, 10)

    _run(state, 1)

    assert state.display.lit_count() == 0
    assert state.program_counter == 0x202


def test_jump(program_state) -> None:
    state = program_state(0x1ABC)
    _run(state, 1)
    assert state.program_counter == 0xABC


def test_call_and_return_balance(program_state) -> None:
    # $200 CALL $206 / $202 LD V1,1 / $204 JP $204 / $206 LD V0,7 / $208 RET
    state = program_state(0x2206, 0x6101, 0x1204, 0x6007, 0x00EE)

    _run(state, 1)
    assert state.call_stack == [0x202]
    assert state.program_counter == 0x206

    _run(state, 2)
    assert state.call_stack == []
    assert state.program_counter == 0x202
    assert state.registers[0] == 7

    _run(state, 1)
    assert state.registers[1] == 1


def test_return_on_empty_stack_raises(program_state) -> None:
    state = program_state(0x00EE)

    with pytest.raises(StackUnderflowError) as excinfo:
        _run(state, 1)

    assert isinstance(excinfo.value, Chip8Error)
    assert excinfo.value.address == 0x200


@pytest.mark.parametrize(
    "words,v0,expected_pc",
    [
        ((0x3012,), 0x12, 0x204),
        ((0x3012,), 0x13, 0x202),
        ((0x4012,), 0x12, 0x202),
        ((0x4012,), 0x13, 0x204),
    ],
)
def test_skip_immediate(program_state, words, v0: int, expected_pc: int) -> None:
    state = program_state(*words)
    state.registers[0] = v0

    _run(state, 1)

    assert state.program_counter == expected_pc


def test_skip_register_compare(program_state) -> None:
    state = program_state(0x5010)
    state.registers[0] = state.registers[1] = 3
    _run(state, 1)
    assert state.program_counter == 0x204

    state = program_state(0x9010)
    state.registers[0] = 3
    state.registers[1] = 4
    _run(state, 1)
    assert state.program_counter == 0x204


def test_jump_with_offset(program_state) -> None:
    state = program_state(0xB300)
    state.registers[0] = 0x10
    state.registers[3] = 0x20

    _run(state, 1)

    assert state.program_counter == 0x310


def test_jump_with_offset_quirks(program_state) -> None:
    state = program_state(0xB300, quirks=True)
    state.registers[0] = 0x10
    state.registers[3] = 0x20

    _run(state, 1)

    assert state.program_counter == 0x320


# ---------------------------------------------------------------------------
# Arithmetic and logic
# ---------------------------------------------------------------------------

def test_add_immediate_wraps_without_flag(program_state) -> None:
    state = program_state(0x70FF)
    state.registers[0] = 0x02
    state.registers[0xF] = 0x55

    _run(state, 1)

    assert state.registers[0] == 0x01
    assert state.registers[0xF] == 0x55


def test_bitwise_ops(program_state) -> None:
    state = program_state(0x8011, 0x8022, 0x8033)
    state.registers[0] = 0b1100
    state.registers[1] = 0b1010
    state.registers[2] = 0b0110
    state.registers[3] = 0b0101

    _run(state, 1)
    assert state.registers[0] == 0b1110
    _run(state, 1)
    assert state.registers[0] == 0b0110
    _run(state, 1)
    assert state.registers[0] == 0b0011


def test_load_register(program_state) -> None:
    state = program_state(0x8AB0)
    state.registers[0xB] = 0x77
    _run(state, 1)
    assert state.registers[0xA] == 0x77


def test_add_registers_with_carry(program_state) -> None:
    state = program_state(0x8014)
    state.registers[0] = 0xF0
    state.registers[1] = 0x20

    _run(state, 1)

    assert state.registers[0] == 0x10
    assert state.registers[0xF] == 1


def test_add_registers_without_carry_keeps_flag(program_state) -> None:
    state = program_state(0x8014)
    state.registers[0] = 0x01
    state.registers[1] = 0x02
    state.registers[0xF] = 0x07

    _run(state, 1)

    assert state.registers[0] == 0x03
    assert state.registers[0xF] == 0x07


def test_subtract_without_borrow(program_state) -> None:
    state = program_state(0x8015)
    state.registers[0] = 5
    state.registers[1] = 3

    _run(state, 1)

    assert state.registers[0] == 2
    assert state.registers[0xF] == 1


def test_subtract_with_borrow_wraps(program_state) -> None:
    state = program_state(0x8015)
    state.registers[0] = 3
    state.registers[1] = 5

    _run(state, 1)

    assert state.registers[0] == 0xFE
    assert state.registers[0xF] == 0


def test_subtract_equal_operands_sets_flag(program_state) -> None:
    state = program_state(0x8015)
    state.registers[0] = state.registers[1] = 9

    _run(state, 1)

    assert state.registers[0] == 0
    assert state.registers[0xF] == 1


def test_reverse_subtract(program_state) -> None:
    state = program_state(0x8017, 0x8237)
    state.registers[0] = 3
    state.registers[1] = 5
    state.registers[2] = 5
    state.registers[3] = 3

    _run(state, 1)
    assert state.registers[0] == 2
    assert state.registers[0xF] == 1

    _run(state, 1)
    assert state.registers[2] == 0xFE
    assert state.registers[0xF] == 0


def test_shift_right_uses_vy(program_state) -> None:
    state = program_state(0x8016)
    state.registers[0] = 0xFF
    state.registers[1] = 0b0000_0101

    _run(state, 1)

    assert state.registers[0] == 0b0000_0010
    assert state.registers[0xF] == 1


def test_shift_left_uses_vy(program_state) -> None:
    state = program_state(0x801E)
    state.registers[1] = 0b1000_0001

    _run(state, 1)

    assert state.registers[0] == 0b0000_0010
    assert state.registers[0xF] == 1


def test_shift_flags_are_zero_or_one(program_state) -> None:
    state = program_state(0x801E, 0x8236)
    state.registers[1] = 0x40
    state.registers[3] = 0x80

    _run(state, 1)
    assert state.registers[0xF] == 0
    _run(state, 1)
    assert state.registers[0xF] == 0


def test_shift_quirks_use_vx(program_state) -> None:
    state = program_state(0x8016, 0x823E, quirks=True)
    state.registers[0] = 0b0000_0011
    state.registers[1] = 0xF0
    state.registers[2] = 0b1100_0000
    state.registers[3] = 0x00

    _run(state, 1)
    assert state.registers[0] == 0b0000_0001
    assert state.registers[0xF] == 1

    _run(state, 1)
    assert state.registers[2] == 0b1000_0000
    assert state.registers[0xF] == 1


@pytest.mark.parametrize(
    "word,vf,vy,expected_vf",
    [
        (0x8F14, 0xF0, 0x20, 1),  # carry
        (0x8F14, 0x10, 0x20, 0x30),  # no carry: VF keeps the sum
        (0x8F15, 0x05, 0x03, 1),  # no borrow
        (0x8F15, 0x03, 0x05, 0),  # borrow
        (0x8F17, 0x05, 0x03, 0),  # reverse borrow
        (0x8F17, 0x03, 0x05, 1),  # reverse, no borrow
        (0x8F16, 0x00, 0x02, 0),  # shifted-out bit
        (0x8F1E, 0x00, 0x80, 1),  # shifted-out high bit
    ],
)
def test_flag_wins_when_x_is_vf(program_state, word: int, vf: int, vy: int, expected_vf: int) -> None:
    state = program_state(word)
    state.registers[0xF] = vf
    state.registers[1] = vy

    _run(state, 1)

    assert state.registers[0xF] == expected_vf


def test_random_is_masked_and_seeded(program_state) -> None:
    state_a = program_state(0xC00F, 0xC10F)
    state_b = program_state(0xC00F, 0xC10F)

    _run(state_a, 2, Interpreter(rng=random.Random(1234)))
    _run(state_b, 2, Interpreter(rng=random.Random(1234)))

    assert state_a.registers[0] <= 0x0F
    assert state_a.registers[1] <= 0x0F
    assert bytes(state_a.registers) == bytes(state_b.registers)


def test_random_with_zero_mask(program_state) -> None:
    state = program_state(0xC000)
    state.registers[0] = 0x33
    _run(state, 1)
    assert state.registers[0] == 0


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def test_draw_twice_erases_and_flags_collision(program_state) -> None:
    state = program_state(0xA050, 0xD005, 0xD005)

    _run(state, 2)
    assert state.display.lit_count() == 14
    assert state.registers[0xF] == 0

    _run(state, 1)
    assert state.display.lit_count() == 0
    assert state.registers[0xF] == 1


def test_draw_start_position_wraps(program_state) -> None:
    state = program_state(0xA300, 0xD011)
    state.memory[0x300] = 0x80
    state.registers[0] = 64 + 3
    state.registers[1] = 32 + 2

    _run(state, 2)

    assert state.display.get_pixel(3, 2)
    assert state.display.lit_count() == 1


def test_draw_clips_at_right_and_bottom(program_state) -> None:
    state = program_state(0xA300, 0xD013)
    state.memory[0x300:0x303] = bytes([0xFF, 0xFF, 0xFF])
    state.registers[0] = 60
    state.registers[1] = 30

    _run(state, 2)

    # 4 columns x 2 rows survive; nothing wraps to the left or top.
    assert state.display.lit_count() == 8
    assert state.display.get_pixel(63, 31)
    assert not state.display.get_pixel(0, 0)
    assert not any(state.display.get_pixel(x, 0) for x in range(64))


def test_draw_with_zero_rows(program_state) -> None:
    state = program_state(0xA050, 0xD000)
    state.registers[0xF] = 1

    _run(state, 2)

    assert state.display.lit_count() == 0
    assert state.registers[0xF] == 0


def test_draw_past_memory_end_raises(program_state) -> None:
    state = program_state(0xAFFE, 0xD005)
    _run(state, 1)

    with pytest.raises(AddressOverflowError):
        _run(state, 1)
    assert state.display.lit_count() == 0


# ---------------------------------------------------------------------------
# Keys and timers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("key", [0x0, 0x7, 0xF])
def test_skip_if_key_down(program_state, key: int) -> None:
    state = program_state(0xE09E)
    state.registers[0] = key
    state.set_key_state(key, True)

    _run(state, 1)

    assert state.program_counter == 0x204


def test_skip_if_key_up(program_state) -> None:
    state = program_state(0xE0A1, 0xE0A1)
    state.registers[0] = 0x5

    _run(state, 1)
    assert state.program_counter == 0x204

    state.program_counter = 0x202
    state.set_key_state(0x5, True)
    _run(state, 1)
    assert state.program_counter == 0x204


def test_key_register_uses_low_nibble(program_state) -> None:
    state = program_state(0xE09E)
    state.registers[0] = 0x1F
    state.set_key_state(0xF, True)

    _run(state, 1)

    assert state.program_counter == 0x204


def test_wait_for_key(program_state) -> None:
    state = program_state(0xF30A)
    interpreter = Interpreter()

    interpreter.step(state)
    assert state.program_counter == 0x200
    interpreter.step(state)
    assert state.program_counter == 0x200

    state.set_key_state(0xF, True)
    interpreter.step(state)
    assert state.registers[3] == 0xF
    assert state.program_counter == 0x202


def test_wait_for_key_picks_lowest(program_state) -> None:
    state = program_state(0xF00A)
    state.set_key_state(0x9, True)
    state.set_key_state(0x4, True)

    _run(state, 1)

    assert state.registers[0] == 0x4


def test_timer_registers(program_state) -> None:
    state = program_state(0x6033, 0xF015, 0xF018, 0xF107)

    _run(state, 3)
    assert state.delay_timer == 0x33
    assert state.sound_timer == 0x33

    state.tick_timers()
    _run(state, 1)
    assert state.registers[1] == 0x32


# ---------------------------------------------------------------------------
# Index register and memory
# ---------------------------------------------------------------------------

def test_load_index(program_state) -> None:
    state = program_state(0xA123)
    _run(state, 1)
    assert state.index_register == 0x123


def test_add_to_index(program_state) -> None:
    state = program_state(0xF01E)
    state.index_register = 0x100
    state.registers[0] = 0x10
    state.registers[0xF] = 0

    _run(state, 1)

    assert state.index_register == 0x110
    assert state.registers[0xF] == 0


def test_add_to_index_wraps_and_flags(program_state) -> None:
    state = program_state(0xF01E)
    state.index_register = 0xFFF
    state.registers[0] = 0x02

    _run(state, 1)

    assert state.index_register == 0x001
    assert state.registers[0xF] == 1


def test_font_address(program_state) -> None:
    state = program_state(0xF029)
    state.registers[0] = 0x2
    _run(state, 1)
    assert state.index_register == FONT_BASE_ADDRESS + 0x2


def test_bcd(program_state) -> None:
    state = program_state(0xF033)
    state.registers[0] = 254
    state.index_register = 0x300

    _run(state, 1)

    assert bytes(state.memory[0x300:0x303]) == bytes([2, 5, 4])
    assert state.index_register == 0x300


def test_store_and_load_registers(program_state) -> None:
    state = program_state(0xF255, 0x6000, 0x6100, 0x6200, 0x6355, 0xF265)
    state.index_register = 0x400
    state.registers[0:4] = bytes([1, 2, 3, 4])

    _run(state, 1)
    assert bytes(state.memory[0x400:0x404]) == bytes([1, 2, 3, 0])
    assert state.index_register == 0x400

    _run(state, 5)
    assert bytes(state.registers[0:4]) == bytes([1, 2, 3, 0x55])


def test_store_registers_past_end_raises_before_writing(program_state) -> None:
    state = program_state(0xF355)
    state.index_register = 0xFFE
    state.registers[0:4] = bytes([9, 9, 9, 9])

    with pytest.raises(AddressOverflowError) as excinfo:
        _run(state, 1)

    assert isinstance(excinfo.value, IndexError)
    assert state.memory[0xFFE] == 0
    assert state.memory[0xFFF] == 0


def test_bcd_past_end_raises(program_state) -> None:
    state = program_state(0xF033)
    state.index_register = 0xFFE

    with pytest.raises(AddressOverflowError):
        _run(state, 1)


def test_fetch_past_memory_end_raises_without_advancing(program_state) -> None:
    state = program_state()
    state.program_counter = 0xFFF

    with pytest.raises(AddressOverflowError):
        _run(state, 1)
    assert state.program_counter == 0xFFF


# ---------------------------------------------------------------------------
# Unknown opcodes and diagnostics
# ---------------------------------------------------------------------------

def test_unknown_opcode_is_logged_and_skipped(program_state) -> None:
    state = program_state(0x0123, 0x6042)
    logger = RecordingLogger(LOG_WARNING)
    interpreter = Interpreter(logger)

    ins = interpreter.step(state)
    assert ins.op is Op.UNKNOWN
    assert state.program_counter == 0x202
    assert logger.records == [(LOG_WARNING, "Unknown instruction 0123 at $200")]

    interpreter.step(state)
    assert state.registers[0] == 0x42


def test_debug_trace_when_enabled(program_state) -> None:
    state = program_state(0x600A)
    logger = RecordingLogger()

    _run(state, 1, Interpreter(logger))

    assert any("$200" in message and "LD_VX_NN" in message for _, message in logger.records)


def test_fetch_does_not_execute(program_state) -> None:
    state = program_state(0x600A)

    ins = Interpreter().fetch(state)

    assert ins.op is Op.LD_VX_NN
    assert state.program_counter == 0x200
    assert state.registers[0] == 0


def test_nested_calls_unwind_in_order(program_state) -> None:
    # $200 CALL $300 ; $300 CALL $310 ; $310 CALL $320 ; $320 RET ; $312 RET ; $302 RET
    state = program_state(0x2300)
    state.memory[0x300:0x304] = b"\x23\x10\x00\xEE"
    state.memory[0x310:0x314] = b"\x23\x20\x00\xEE"
    state.memory[0x320:0x322] = b"\x00\xEE"
    interpreter = Interpreter()

    _run(state, 3, interpreter)
    assert state.call_stack == [0x202, 0x302, 0x312]

    for expected_pc in (0x312, 0x302, 0x202):
        _run(state, 1, interpreter)
        assert state.program_counter == expected_pc
    assert state.call_stack == []


@pytest.mark.parametrize("a", [0x00, 0x01, 0x7F, 0x80, 0xFE, 0xFF])
@pytest.mark.parametrize("b", [0x00, 0x01, 0x80, 0xFF])
def test_add_and_subtract_registers_over_values(program_state, a: int, b: int) -> None:
    state = program_state(0x8124)
    state.registers[1] = a
    state.registers[2] = b
    state.registers[0xF] = 0x77
    _run(state, 1)
    assert state.registers[1] == (a + b) % 256
    assert state.registers[0xF] == (1 if a + b > 255 else 0x77)

    state = program_state(0x8125)
    state.registers[1] = a
    state.registers[2] = b
    _run(state, 1)
    assert state.registers[1] == (a - b) % 256
    assert state.registers[0xF] == (1 if a >= b else 0)
