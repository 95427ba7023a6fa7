"""
Chip8Machine -- a bootable CHIP-8 built around one :class:`MachineState`.

The machine wires the interpreter to a state, loads the program, and
advances emulation one video frame at a time:

* :meth:`Chip8Machine.compute_next_frame` runs ``cycles_per_frame``
  instructions and then ticks the timers once, so calling it at
  :data:`~chip8emu.core.machine_state.TIMER_HZ` gives both the instruction
  rate and the 60 Hz timer cadence from a single host loop.
* A fatal fault halts the machine (:attr:`machine_halt`) until
  :meth:`reset`.
* An optional rewind buffer keeps the last ``rewind_depth`` frame-start
  states.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from typing import Deque, Optional

from chip8emu.core.errors import Chip8Error
from chip8emu.core.interpreter import Interpreter
from chip8emu.core.logger import ILogger
from chip8emu.core.machine_state import (
    MEMORY_SIZE,
    PROGRAM_START_ADDRESS,
    TIMER_HZ,
    MachineState,
)

logger = logging.getLogger(__name__)

DEFAULT_CPU_HZ: int = 500


class Chip8Machine:
    """A CHIP-8 with its program loaded.

    Parameters
    ----------
    rom:
        Program bytes, written at :data:`PROGRAM_START_ADDRESS`.
    quirks_mode:
        Enable CHIP-48 / SUPER-CHIP shift and jump semantics.
    cpu_hz:
        Target instruction rate.  Clamped so at least one instruction runs
        per frame.
    seed:
        Seed for the CXNN random source; ``None`` for nondeterministic.
    core_logger:
        Diagnostic channel handed to the interpreter.
    rewind_depth:
        Number of frame snapshots kept for :meth:`rewind`.  0 disables it.
    """

    def __init__(
        self,
        rom: bytes,
        *,
        quirks_mode: bool = False,
        cpu_hz: int = DEFAULT_CPU_HZ,
        seed: Optional[int] = None,
        core_logger: Optional[ILogger] = None,
        rewind_depth: int = 0,
    ) -> None:
        self.rom: bytes = bytes(rom)
        check_rom_fits(self.rom)

        self.quirks_mode: bool = quirks_mode
        self.cpu_hz: int = cpu_hz
        self.cycles_per_frame: int = max(1, cpu_hz // TIMER_HZ)
        self.frame_hz: int = TIMER_HZ

        self.interpreter: Interpreter = Interpreter(core_logger, random.Random(seed))
        self.state: MachineState = MachineState.create_with_font(quirks_mode)

        # Machine run-state.
        self.machine_halt: bool = False
        self.fault: Optional[Chip8Error] = None
        self.frame_number: int = 0

        self._rewind: Deque[MachineState] = deque(maxlen=max(0, rewind_depth))

        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return to power-on state with the program reloaded."""
        self.state = MachineState.create_with_font(self.quirks_mode)
        load_program(self.state, self.rom)
        self.machine_halt = False
        self.fault = None
        self.frame_number = 0
        self._rewind.clear()
        logger.debug("Machine reset (%d byte program)", len(self.rom))

    def step(self) -> None:
        """Execute a single instruction.  Does nothing while halted."""
        if self.machine_halt:
            return
        try:
            self.interpreter.step(self.state)
        except Chip8Error as exc:
            self._halt(exc)

    def compute_next_frame(self) -> None:
        """Advance the emulation by one 60 Hz frame.

        If :attr:`machine_halt` is ``True`` the method returns
        immediately without doing any work.
        """
        if self.machine_halt:
            return
        if self._rewind.maxlen:
            self._rewind.append(self.state.clone())

        self.frame_number += 1
        step = self.interpreter.step
        state = self.state
        try:
            for _ in range(self.cycles_per_frame):
                step(state)
        except Chip8Error as exc:
            self._halt(exc)
            return
        state.tick_timers()

    def _halt(self, exc: Chip8Error) -> None:
        logger.error("Machine halted at frame %d: %s", self.frame_number, exc)
        self.machine_halt = True
        self.fault = exc

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_key_state(self, key: int, pressed: bool) -> None:
        self.state.set_key_state(key, pressed)

    # ------------------------------------------------------------------
    # Serialisation helpers (save-state support)
    # ------------------------------------------------------------------

    def get_snapshot(self) -> dict:
        """Return a serialisable snapshot of the machine."""
        snapshot = self.state.get_snapshot()
        snapshot["machine_halt"] = self.machine_halt
        snapshot["frame_number"] = self.frame_number
        snapshot["fault"] = str(self.fault) if self.fault is not None else None
        return snapshot

    def restore_snapshot(self, snapshot: dict) -> None:
        """Restore the machine from a previous :meth:`get_snapshot`."""
        self.state.restore_snapshot(snapshot)
        self.machine_halt = snapshot.get("machine_halt", False)
        self.frame_number = snapshot.get("frame_number", 0)
        self.quirks_mode = self.state.quirks_mode
        if self.machine_halt:
            self.fault = Chip8Error(snapshot.get("fault") or "Halted in restored snapshot")
        else:
            self.fault = None

    def load_state(self, source: MachineState) -> None:
        """Copy *source* into the running state and clear any halt."""
        self.state.copy_state_from(source)
        if source.quirks_mode != self.quirks_mode:
            logger.info("Loaded state switches quirks mode to %s", source.quirks_mode)
        self.quirks_mode = source.quirks_mode
        self.machine_halt = False
        self.fault = None

    @property
    def rewind_available(self) -> int:
        """Number of frames that :meth:`rewind` can step back."""
        return len(self._rewind)

    def rewind(self) -> bool:
        """Restore the most recent frame-start state.

        Returns:
            ``False`` if the rewind buffer is empty.
        """
        if not self._rewind:
            return False
        self.state.copy_state_from(self._rewind.pop())
        self.frame_number = max(0, self.frame_number - 1)
        self.machine_halt = False
        self.fault = None
        return True

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"rom={len(self.rom)} bytes, "
            f"cpu_hz={self.cpu_hz}, "
            f"quirks={self.quirks_mode}, "
            f"frame={self.frame_number}, "
            f"halted={self.machine_halt})"
        )


# ----------------------------------------------------------------------
# Program loading
# ----------------------------------------------------------------------

MAX_PROGRAM_SIZE: int = MEMORY_SIZE - PROGRAM_START_ADDRESS


def check_rom_fits(rom: bytes) -> None:
    """Raise ``ValueError`` if *rom* does not fit in program memory."""
    if len(rom) > MAX_PROGRAM_SIZE:
        raise ValueError(
            f"Program is {len(rom)} bytes; at most {MAX_PROGRAM_SIZE} fit "
            f"between ${PROGRAM_START_ADDRESS:03X} and ${MEMORY_SIZE - 1:03X}"
        )


def load_program(state: MachineState, rom: bytes) -> None:
    """Copy *rom* into *state* memory at :data:`PROGRAM_START_ADDRESS`."""
    check_rom_fits(rom)
    state.memory[PROGRAM_START_ADDRESS:PROGRAM_START_ADDRESS + len(rom)] = rom
