"""
CHIP-8 interpreter core.

Implements the fetch-decode-execute cycle for the original CHIP-8
instruction set, plus the two CHIP-48 / SUPER-CHIP behaviours selected by
:attr:`MachineState.quirks_mode <chip8emu.core.machine_state.MachineState.quirks_mode>`.

Key behaviours:

* The program counter advances by 2 *before* the instruction executes, so
  skips add another 2 and FX0A waits by rewinding 2.
* 8XY4 sets VF only on carry and leaves it alone otherwise.  8XY5 / 8XY7
  set VF to 1 when no borrow occurs and to 0 on borrow.  8XY6 / 8XYE put
  the shifted-out bit in VF.  In all of them VF is written after VX, so
  with X = F the flag is what remains.
* DXYN wraps the start coordinate but clips the sprite at the right and
  bottom edges.
* Unknown opcodes are reported through the core logger and skipped.
  Stack underflow and out-of-range memory access raise
  :class:`~chip8emu.core.errors.Chip8Error` subclasses before any state
  of the faulting instruction is modified.
"""

from __future__ import annotations

import random
from typing import Callable, Dict, Optional

from chip8emu.core.decoder import decode
from chip8emu.core.errors import AddressOverflowError, StackUnderflowError
from chip8emu.core.logger import DEFAULT_LOGGER, LOG_DEBUG, LOG_WARNING, ILogger
from chip8emu.core.machine_state import (
    ADDRESS_SPACE,
    FLAG_REGISTER,
    FONT_BASE_ADDRESS,
    MEMORY_SIZE,
    MachineState,
)
from chip8emu.core.types import Instruction, Op

Handler = Callable[[MachineState, Instruction], None]


class Interpreter:
    """Executes CHIP-8 instructions against a :class:`MachineState`.

    The interpreter itself holds no machine state; the same instance can
    drive any number of states.

    Parameters
    ----------
    logger:
        Diagnostic channel for unknown opcodes and instruction traces.
    rng:
        Random source for CXNN.  Pass a seeded :class:`random.Random` for
        reproducible runs.
    """

    def __init__(
        self,
        logger: Optional[ILogger] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.logger: ILogger = logger if logger is not None else DEFAULT_LOGGER
        self.rng: random.Random = rng if rng is not None else random.Random()
        self.instruction_count: int = 0

        self._opcode_table: Dict[Op, Handler] = self._build_opcode_table()

    # ------------------------------------------------------------------
    # Fetch / decode / execute
    # ------------------------------------------------------------------

    def step(self, s: MachineState) -> Instruction:
        """Perform exactly one fetch-decode-execute cycle on *s*.

        Returns:
            The decoded instruction that was executed.

        Raises:
            AddressOverflowError: If the fetch or a memory operand falls
                outside memory.
            StackUnderflowError: On 00EE with an empty call stack.
        """
        pc = s.program_counter
        if pc < 0 or pc + 1 >= MEMORY_SIZE:
            raise AddressOverflowError(pc)

        ins = decode(s.memory[pc], s.memory[pc + 1])
        s.program_counter = pc + 2

        if self.logger.level >= LOG_DEBUG:
            self.logger.log(LOG_DEBUG, f"${pc:03X}: {ins}")

        self._opcode_table[ins.op](s, ins)
        self.instruction_count += 1
        return ins

    def fetch(self, s: MachineState) -> Instruction:
        """Decode the instruction at the program counter without executing it."""
        pc = s.program_counter
        if pc < 0 or pc + 1 >= MEMORY_SIZE:
            raise AddressOverflowError(pc)
        return decode(s.memory[pc], s.memory[pc + 1])

    # ------------------------------------------------------------------
    # Memory bounds
    # ------------------------------------------------------------------

    @staticmethod
    def _check_range(start: int, length: int, ins: Instruction) -> None:
        """Raise if ``[start, start + length)`` is not inside memory."""
        if start < 0:
            raise AddressOverflowError(start, ins.raw)
        last = start + length - 1
        if length > 0 and last >= MEMORY_SIZE:
            raise AddressOverflowError(max(start, MEMORY_SIZE), ins.raw)

    # ------------------------------------------------------------------
    # Instruction implementations -- flow control
    # ------------------------------------------------------------------

    def i_unknown(self, s: MachineState, ins: Instruction) -> None:
        self.logger.log(
            LOG_WARNING,
            f"Unknown instruction {ins.raw:04X} at ${s.program_counter - 2:03X}",
        )

    def i_cls(self, s: MachineState, ins: Instruction) -> None:
        s.clear_display()

    def i_ret(self, s: MachineState, ins: Instruction) -> None:
        if not s.call_stack:
            raise StackUnderflowError(s.program_counter - 2)
        s.program_counter = s.call_stack.pop()

    def i_jp(self, s: MachineState, ins: Instruction) -> None:
        s.program_counter = ins.nnn

    def i_call(self, s: MachineState, ins: Instruction) -> None:
        s.call_stack.append(s.program_counter)
        s.program_counter = ins.nnn

    def i_jp_offset(self, s: MachineState, ins: Instruction) -> None:
        """BNNN -- V0 is the offset, or VX under SUPER-CHIP quirks."""
        offset_reg = ins.x if s.quirks_mode else 0
        s.program_counter = ins.nnn + s.registers[offset_reg]

    def skip_if(self, s: MachineState, cond: bool) -> None:
        if cond:
            s.program_counter += 2

    # ------------------------------------------------------------------
    # Instruction implementations -- load / arithmetic
    # ------------------------------------------------------------------

    def i_add_nn(self, s: MachineState, ins: Instruction) -> None:
        """7XNN -- wraps, never touches VF."""
        s.registers[ins.x] = (s.registers[ins.x] + ins.nn) & 0xFF

    def i_add_vy(self, s: MachineState, ins: Instruction) -> None:
        """8XY4 -- VF = 1 on carry, unchanged otherwise."""
        total = s.registers[ins.x] + s.registers[ins.y]
        s.registers[ins.x] = total & 0xFF
        if total > 0xFF:
            s.registers[FLAG_REGISTER] = 1

    def i_sub(self, s: MachineState, ins: Instruction) -> None:
        """8XY5 -- VX = VX - VY, VF = NOT borrow."""
        vx = s.registers[ins.x]
        vy = s.registers[ins.y]
        s.registers[ins.x] = (vx - vy) & 0xFF
        s.registers[FLAG_REGISTER] = 1 if vx >= vy else 0

    def i_subn(self, s: MachineState, ins: Instruction) -> None:
        """8XY7 -- VX = VY - VX, VF = NOT borrow."""
        vx = s.registers[ins.x]
        vy = s.registers[ins.y]
        s.registers[ins.x] = (vy - vx) & 0xFF
        s.registers[FLAG_REGISTER] = 1 if vy >= vx else 0

    def i_shr(self, s: MachineState, ins: Instruction) -> None:
        """8XY6 -- shifts VY into VX, or VX in place under quirks."""
        src = s.registers[ins.x] if s.quirks_mode else s.registers[ins.y]
        s.registers[ins.x] = src >> 1
        s.registers[FLAG_REGISTER] = src & 0x01

    def i_shl(self, s: MachineState, ins: Instruction) -> None:
        """8XYE -- shifts VY into VX, or VX in place under quirks."""
        src = s.registers[ins.x] if s.quirks_mode else s.registers[ins.y]
        s.registers[ins.x] = (src << 1) & 0xFF
        s.registers[FLAG_REGISTER] = (src >> 7) & 0x01

    def i_rnd(self, s: MachineState, ins: Instruction) -> None:
        s.registers[ins.x] = ins.nn & self.rng.getrandbits(8)

    # ------------------------------------------------------------------
    # Instruction implementations -- display
    # ------------------------------------------------------------------

    def i_drw(self, s: MachineState, ins: Instruction) -> None:
        """DXYN -- XOR an 8 x N sprite from memory[I] onto the display.

        The start position wraps; the sprite does not.  Rows past the
        bottom edge and columns past the right edge are dropped.  VF is
        set to 1 if any lit pixel is turned off, else 0.
        """
        display = s.display
        draw_x = s.registers[ins.x] % display.width
        draw_y = s.registers[ins.y] % display.height
        rows = min(ins.n, display.height - draw_y)
        cols = min(8, display.width - draw_x)
        index = s.index_register

        self._check_range(index, rows, ins)

        collision = 0
        for row in range(rows):
            sprite = s.memory[index + row]
            py = draw_y + row
            for col in range(cols):
                if sprite & (0x80 >> col):
                    if display.toggle_pixel(draw_x + col, py):
                        collision = 1
        s.registers[FLAG_REGISTER] = collision

    # ------------------------------------------------------------------
    # Instruction implementations -- keys and timers
    # ------------------------------------------------------------------

    def i_wait_key(self, s: MachineState, ins: Instruction) -> None:
        """FX0A -- re-executes until any key is held."""
        key = s.lowest_key_down()
        if key < 0:
            s.program_counter -= 2
        else:
            s.registers[ins.x] = key

    # ------------------------------------------------------------------
    # Instruction implementations -- index register and memory
    # ------------------------------------------------------------------

    def i_add_i(self, s: MachineState, ins: Instruction) -> None:
        """FX1E -- wraps I at 12 bits and flags the wrap in VF."""
        index = s.index_register + s.registers[ins.x]
        if index >= ADDRESS_SPACE:
            index %= ADDRESS_SPACE
            s.registers[FLAG_REGISTER] = 1
        s.index_register = index

    def i_ld_font(self, s: MachineState, ins: Instruction) -> None:
        s.index_register = FONT_BASE_ADDRESS + s.registers[ins.x]

    def i_bcd(self, s: MachineState, ins: Instruction) -> None:
        index = s.index_register
        self._check_range(index, 3, ins)
        vx = s.registers[ins.x]
        s.memory[index] = vx // 100
        s.memory[index + 1] = (vx // 10) % 10
        s.memory[index + 2] = vx % 10

    def i_store_regs(self, s: MachineState, ins: Instruction) -> None:
        index = s.index_register
        count = ins.x + 1
        self._check_range(index, count, ins)
        s.memory[index:index + count] = s.registers[:count]

    def i_load_regs(self, s: MachineState, ins: Instruction) -> None:
        index = s.index_register
        count = ins.x + 1
        self._check_range(index, count, ins)
        s.registers[:count] = s.memory[index:index + count]

    # ------------------------------------------------------------------
    # Opcode dispatch table
    # ------------------------------------------------------------------

    def _build_opcode_table(self) -> Dict[Op, Handler]:
        """Map every :class:`Op` member to its handler."""
        t: Dict[Op, Handler] = {}

        t[Op.UNKNOWN] = self.i_unknown
        t[Op.CLS] = self.i_cls
        t[Op.RET] = self.i_ret
        t[Op.JP] = self.i_jp
        t[Op.CALL] = self.i_call

        def op_se_vx_nn(s, ins):
            self.skip_if(s, s.registers[ins.x] == ins.nn)
        t[Op.SE_VX_NN] = op_se_vx_nn

        def op_sne_vx_nn(s, ins):
            self.skip_if(s, s.registers[ins.x] != ins.nn)
        t[Op.SNE_VX_NN] = op_sne_vx_nn

        def op_se_vx_vy(s, ins):
            self.skip_if(s, s.registers[ins.x] == s.registers[ins.y])
        t[Op.SE_VX_VY] = op_se_vx_vy

        def op_sne_vx_vy(s, ins):
            self.skip_if(s, s.registers[ins.x] != s.registers[ins.y])
        t[Op.SNE_VX_VY] = op_sne_vx_vy

        def op_ld_vx_nn(s, ins):
            s.registers[ins.x] = ins.nn
        t[Op.LD_VX_NN] = op_ld_vx_nn

        t[Op.ADD_VX_NN] = self.i_add_nn

        def op_ld_vx_vy(s, ins):
            s.registers[ins.x] = s.registers[ins.y]
        t[Op.LD_VX_VY] = op_ld_vx_vy

        def op_or(s, ins):
            s.registers[ins.x] |= s.registers[ins.y]
        t[Op.OR] = op_or

        def op_and(s, ins):
            s.registers[ins.x] &= s.registers[ins.y]
        t[Op.AND] = op_and

        def op_xor(s, ins):
            s.registers[ins.x] ^= s.registers[ins.y]
        t[Op.XOR] = op_xor

        t[Op.ADD_VX_VY] = self.i_add_vy
        t[Op.SUB] = self.i_sub
        t[Op.SHR] = self.i_shr
        t[Op.SUBN] = self.i_subn
        t[Op.SHL] = self.i_shl

        def op_ld_i(s, ins):
            s.index_register = ins.nnn
        t[Op.LD_I] = op_ld_i

        t[Op.JP_OFFSET] = self.i_jp_offset
        t[Op.RND] = self.i_rnd
        t[Op.DRW] = self.i_drw

        def op_skip_key_down(s, ins):
            self.skip_if(s, s.is_key_down(s.registers[ins.x] & 0xF))
        t[Op.SKIP_KEY_DOWN] = op_skip_key_down

        def op_skip_key_up(s, ins):
            self.skip_if(s, not s.is_key_down(s.registers[ins.x] & 0xF))
        t[Op.SKIP_KEY_UP] = op_skip_key_up

        def op_ld_vx_dt(s, ins):
            s.registers[ins.x] = s.delay_timer
        t[Op.LD_VX_DT] = op_ld_vx_dt

        t[Op.WAIT_KEY] = self.i_wait_key

        def op_ld_dt_vx(s, ins):
            s.delay_timer = s.registers[ins.x]
        t[Op.LD_DT_VX] = op_ld_dt_vx

        def op_ld_st_vx(s, ins):
            s.sound_timer = s.registers[ins.x]
        t[Op.LD_ST_VX] = op_ld_st_vx

        t[Op.ADD_I_VX] = self.i_add_i
        t[Op.LD_FONT] = self.i_ld_font
        t[Op.BCD] = self.i_bcd
        t[Op.STORE_REGS] = self.i_store_regs
        t[Op.LOAD_REGS] = self.i_load_regs

        missing = [op.name for op in Op if op not in t]
        assert not missing, f"Opcode table is missing handlers: {missing}"
        return t

    # ------------------------------------------------------------------
    # Debug / repr
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"Interpreter(executed={self.instruction_count})"
