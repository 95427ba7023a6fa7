"""
MachineState -- every piece of mutable CHIP-8 state in one object.

The state is passed explicitly into :meth:`Interpreter.step
<chip8emu.core.interpreter.Interpreter.step>`; nothing in the core keeps
module-level mutable state.  Hosts own the instance and serialise access
to it (one loop drives both ``step`` and :meth:`MachineState.tick_timers`).

Memory map
----------

=============  ===============================================
Range          Use
=============  ===============================================
$000 - $04F    unused
$050 - $09F    hex digit font (:data:`FONT_TABLE`)
$0A0 - $1FF    unused
$200 - $FFF    program (loaded by the host at
               :data:`PROGRAM_START_ADDRESS`)
=============  ===============================================
"""

from __future__ import annotations

from typing import List

from chip8emu.core.display import Display

MEMORY_SIZE: int = 4096
DISPLAY_WIDTH: int = 64
DISPLAY_HEIGHT: int = 32
REGISTER_COUNT: int = 16
KEY_COUNT: int = 16

# 12-bit address space used by I-relative arithmetic (FX1E).
ADDRESS_SPACE: int = 0x1000

# Conventional font location; interpreters that put it at $000 also exist.
FONT_BASE_ADDRESS: int = 0x050
PROGRAM_START_ADDRESS: int = 0x200

# VF doubles as carry / borrow / collision flag.
FLAG_REGISTER: int = 0xF

# Host cadence for tick_timers().
TIMER_HZ: int = 60

FONT_GLYPH_BYTES: int = 5

# fmt: off
FONT_TABLE: bytes = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])
# fmt: on

assert len(FONT_TABLE) == 16 * FONT_GLYPH_BYTES, f"Font table must have 80 bytes, got {len(FONT_TABLE)}"


class MachineState:
    """Complete CHIP-8 machine state.

    A freshly constructed instance has zeroed memory and no font; use
    :meth:`create_with_font` for a bootable machine.

    Attributes
    ----------
    memory:
        4096 bytes of RAM.
    display:
        64 x 32 :class:`~chip8emu.core.display.Display`.
    program_counter:
        Address of the next instruction to fetch.
    index_register:
        The ``I`` register used by memory-relative opcodes.
    call_stack:
        Return addresses; the last element is the top of the stack.
    delay_timer, sound_timer:
        8-bit countdown timers, decremented by :meth:`tick_timers`.
    registers:
        ``V0`` .. ``VF``.
    keyboard_state:
        16-bit mask, bit *k* set while key *k* is held.
    quirks_mode:
        Select CHIP-48 / SUPER-CHIP semantics for 8XY6, 8XYE and BNNN.
    """

    font_table: bytes = FONT_TABLE

    def __init__(self, quirks_mode: bool = False) -> None:
        self.memory: bytearray = bytearray(MEMORY_SIZE)
        self.display: Display = Display(DISPLAY_WIDTH, DISPLAY_HEIGHT)
        self.program_counter: int = PROGRAM_START_ADDRESS
        self.index_register: int = 0
        self.call_stack: List[int] = []
        self.delay_timer: int = 0
        self.sound_timer: int = 0
        self.registers: bytearray = bytearray(REGISTER_COUNT)
        self.keyboard_state: int = 0
        self.quirks_mode: bool = quirks_mode

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create_with_font(cls, quirks_mode: bool = False) -> MachineState:
        """Create a state with the hex font copied to :data:`FONT_BASE_ADDRESS`."""
        state = cls(quirks_mode)
        end = FONT_BASE_ADDRESS + len(FONT_TABLE)
        state.memory[FONT_BASE_ADDRESS:end] = FONT_TABLE
        return state

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def set_key_state(self, key: int, pressed: bool) -> None:
        """Press or release *key* (0x0 - 0xF)."""
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"key must be in [0, {KEY_COUNT}), got {key}")
        bit = 1 << key
        if pressed:
            self.keyboard_state |= bit
        else:
            self.keyboard_state &= ~bit & 0xFFFF

    def is_key_down(self, key: int) -> bool:
        """Return ``True`` while *key* (0x0 - 0xF) is held.

        The bit is tested for non-zero, so every key reads correctly and
        not just key 0.
        """
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"key must be in [0, {KEY_COUNT}), got {key}")
        return (self.keyboard_state & (1 << key)) != 0

    def lowest_key_down(self) -> int:
        """Return the lowest-numbered held key, or -1 if none is held."""
        for key in range(KEY_COUNT):
            if self.keyboard_state & (1 << key):
                return key
        return -1

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def tick_timers(self) -> None:
        """Decrement both timers toward zero.

        Must be called at :data:`TIMER_HZ` regardless of how often the
        interpreter steps.
        """
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    @property
    def sound_active(self) -> bool:
        """``True`` while the host should be producing a tone."""
        return self.sound_timer > 0

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def clear_display(self) -> None:
        """Turn every pixel off.  Equivalent to instruction 00E0."""
        self.display.clear()

    # ------------------------------------------------------------------
    # Save-state support
    # ------------------------------------------------------------------

    def copy_state_from(self, source: MachineState) -> None:
        """Deep-copy every field of *source* into this instance.

        *source* is left untouched and no buffers are shared afterwards.
        """
        self.memory[:] = source.memory
        self.display.copy_from(source.display)
        self.call_stack = list(source.call_stack)
        self.registers[:] = source.registers
        self.program_counter = source.program_counter
        self.index_register = source.index_register
        self.delay_timer = source.delay_timer
        self.sound_timer = source.sound_timer
        self.keyboard_state = source.keyboard_state
        self.quirks_mode = source.quirks_mode

    def clone(self) -> MachineState:
        """Return an independent deep copy of this state."""
        copy = MachineState(self.quirks_mode)
        copy.copy_state_from(self)
        return copy

    def get_snapshot(self) -> dict:
        """Return a serialisable snapshot of every field."""
        return {
            "memory": bytes(self.memory),
            "display": list(self.display.cells),
            "program_counter": self.program_counter,
            "index_register": self.index_register,
            "call_stack": list(self.call_stack),
            "delay_timer": self.delay_timer,
            "sound_timer": self.sound_timer,
            "registers": bytes(self.registers),
            "keyboard_state": self.keyboard_state,
            "quirks_mode": self.quirks_mode,
        }

    def restore_snapshot(self, snapshot: dict) -> None:
        """Restore every field from a :meth:`get_snapshot` dict.

        Raises:
            ValueError: If a buffer in *snapshot* has the wrong length.
        """
        memory = snapshot["memory"]
        if len(memory) != MEMORY_SIZE:
            raise ValueError(
                f"Snapshot memory size mismatch: expected {MEMORY_SIZE}, got {len(memory)}"
            )
        registers = snapshot["registers"]
        if len(registers) != REGISTER_COUNT:
            raise ValueError(
                f"Snapshot register count mismatch: expected {REGISTER_COUNT}, got {len(registers)}"
            )
        display = snapshot["display"]
        if len(display) != len(self.display):
            raise ValueError(
                f"Snapshot display size mismatch: expected {len(self.display)}, got {len(display)}"
            )

        self.memory[:] = memory
        self.registers[:] = registers
        self.display.cells[:] = [bool(c) for c in display]
        self.call_stack = list(snapshot["call_stack"])
        self.program_counter = snapshot["program_counter"]
        self.index_register = snapshot["index_register"]
        self.delay_timer = snapshot["delay_timer"]
        self.sound_timer = snapshot["sound_timer"]
        self.keyboard_state = snapshot["keyboard_state"]
        self.quirks_mode = snapshot.get("quirks_mode", False)

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        regs = " ".join(f"{v:02X}" for v in self.registers)
        return (
            f"MachineState(PC=${self.program_counter:03X} I=${self.index_register:03X} "
            f"V=[{regs}] SP={len(self.call_stack)} "
            f"DT={self.delay_timer} ST={self.sound_timer})"
        )


def create_with_font(quirks_mode: bool = False) -> MachineState:
    """Module-level alias for :meth:`MachineState.create_with_font`."""
    return MachineState.create_with_font(quirks_mode)
