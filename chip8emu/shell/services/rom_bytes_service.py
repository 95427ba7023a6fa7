"""
ROM loading service for the CHIP-8 host.

Responsibilities:
  - Read ROM files from disk.
  - Check that a program fits in memory above the program start address.
  - Write program bytes into a :class:`MachineState`.

The ROM format itself is not validated: a CHIP-8 program is raw
instruction bytes with no header.
"""

from __future__ import annotations

import hashlib
import os

from chip8emu.core.machine import MAX_PROGRAM_SIZE, check_rom_fits, load_program
from chip8emu.core.machine_state import PROGRAM_START_ADDRESS, MachineState

# Extensions commonly used for CHIP-8 programs.
ROM_EXTENSIONS: frozenset[str] = frozenset({".ch8", ".c8", ".rom", ".bin"})


class RomBytesService:
    """Static utility for loading ROM files and describing them."""

    # -- reading -----------------------------------------------------------

    @staticmethod
    def read(path: str) -> bytes:
        """Read a ROM file from *path*.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file is larger than program memory.
            OSError: On general I/O failure.
        """
        with open(path, "rb") as fh:
            data = fh.read(MAX_PROGRAM_SIZE + 1)
        check_rom_fits(data)
        return data

    @staticmethod
    def load_into(state: MachineState, rom: bytes) -> None:
        """Write *rom* into *state* at :data:`PROGRAM_START_ADDRESS`.

        Raises:
            ValueError: If *rom* does not fit.
        """
        load_program(state, rom)

    # -- metadata ----------------------------------------------------------

    @staticmethod
    def describe(path: str) -> dict:
        """Return human-readable metadata for the ROM at *path*."""
        size = os.path.getsize(path)
        with open(path, "rb") as fh:
            data = fh.read()
        ext = os.path.splitext(path)[1].lower()
        return {
            "file": os.path.basename(path),
            "size": size,
            "fits": size <= MAX_PROGRAM_SIZE,
            "free_bytes": max(0, MAX_PROGRAM_SIZE - size),
            "load_address": f"${PROGRAM_START_ADDRESS:03X}",
            "known_extension": ext in ROM_EXTENSIONS,
            "md5": hashlib.md5(data).hexdigest(),
        }
