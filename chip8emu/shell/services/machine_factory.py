"""
Machine creation factory for the CHIP-8 host.

Creates a fully-loaded :class:`Chip8Machine` from a ROM file path plus
the command-line options.

Typical usage::

    machine = MachineFactory.create("pong.ch8")
    machine = MachineFactory.create("blinky.ch8", quirks=True, cpu_hz=700)
"""

from __future__ import annotations

import logging
from typing import Optional

from chip8emu.core.logger import ILogger
from chip8emu.core.machine import DEFAULT_CPU_HZ, Chip8Machine
from chip8emu.shell.services.rom_bytes_service import RomBytesService

logger = logging.getLogger(__name__)

_MIN_CPU_HZ: int = 60
_MAX_CPU_HZ: int = 100_000


class MachineFactory:
    """Create a CHIP-8 machine from a ROM file."""

    @staticmethod
    def create(
        rom_path: str,
        *,
        quirks: bool = False,
        cpu_hz: int = DEFAULT_CPU_HZ,
        seed: Optional[int] = None,
        core_logger: Optional[ILogger] = None,
        rewind_depth: int = 0,
    ) -> Chip8Machine:
        """Load *rom_path* and return a machine ready to run.

        Raises:
            FileNotFoundError: If *rom_path* does not exist.
            ValueError: If the ROM does not fit in memory.
        """
        rom = RomBytesService.read(rom_path)

        clamped_hz = max(_MIN_CPU_HZ, min(_MAX_CPU_HZ, cpu_hz))
        if clamped_hz != cpu_hz:
            logger.warning("cpu_hz %d out of range; using %d", cpu_hz, clamped_hz)

        machine = Chip8Machine(
            rom,
            quirks_mode=quirks,
            cpu_hz=clamped_hz,
            seed=seed,
            core_logger=core_logger,
            rewind_depth=rewind_depth,
        )
        logger.info(
            "Loaded %s: %d bytes, %d Hz (%d instructions/frame), quirks=%s",
            rom_path,
            len(rom),
            machine.cpu_hz,
            machine.cycles_per_frame,
            quirks,
        )
        return machine

    @staticmethod
    def describe(rom_path: str) -> dict:
        """Return ROM metadata without creating a machine."""
        return RomBytesService.describe(rom_path)
