"""
Save-state files for the CHIP-8 host.

A save state is a little-endian binary file:

==========  ==========================  ===============================
Offset      Field                       Format
==========  ==========================  ===============================
0           magic ``b"CHIP8SS"``        7 bytes
7           format version              ``B``
8           program counter             ``H``
10          index register              ``H``
12          delay timer                 ``B``
13          sound timer                 ``B``
14          keyboard mask               ``H``
16          quirks flag                 ``B``
17          call-stack depth *n*        ``H``
19          call stack, bottom first    *n* x ``H``
..          registers V0-VF             16 bytes
..          memory                      4096 bytes
..          display, 8 pixels per byte  256 bytes (MSB = leftmost)
==========  ==========================  ===============================
"""

from __future__ import annotations

import logging
import struct

from chip8emu.core.machine_state import (
    DISPLAY_HEIGHT,
    DISPLAY_WIDTH,
    MEMORY_SIZE,
    REGISTER_COUNT,
    MachineState,
)

logger = logging.getLogger(__name__)

MAGIC: bytes = b"CHIP8SS"
VERSION: int = 1

_HEADER = struct.Struct("<7sBHHBBHBH")
_DISPLAY_BYTES: int = DISPLAY_WIDTH * DISPLAY_HEIGHT // 8


def _pack_display(cells: list[bool]) -> bytes:
    out = bytearray(_DISPLAY_BYTES)
    for i, lit in enumerate(cells):
        if lit:
            out[i >> 3] |= 0x80 >> (i & 7)
    return bytes(out)


def _unpack_display(data: bytes) -> list[bool]:
    return [bool(data[i >> 3] & (0x80 >> (i & 7))) for i in range(len(data) * 8)]


class SaveStateService:
    """Static utility for encoding machine states to and from bytes."""

    @staticmethod
    def encode(state: MachineState) -> bytes:
        """Serialise every field of *state*."""
        stack = state.call_stack
        parts = [
            _HEADER.pack(
                MAGIC,
                VERSION,
                state.program_counter,
                state.index_register,
                state.delay_timer,
                state.sound_timer,
                state.keyboard_state,
                1 if state.quirks_mode else 0,
                len(stack),
            ),
            struct.pack(f"<{len(stack)}H", *stack),
            bytes(state.registers),
            bytes(state.memory),
            _pack_display(state.display.cells),
        ]
        return b"".join(parts)

    @staticmethod
    def decode(data: bytes) -> MachineState:
        """Rebuild a :class:`MachineState` from :meth:`encode` output.

        Raises:
            ValueError: On a bad magic number, unknown version or
                truncated / oversized data.
        """
        if len(data) < _HEADER.size:
            raise ValueError(f"Save state too short: {len(data)} bytes")

        (magic, version, pc, index, delay, sound,
         keys, quirks, depth) = _HEADER.unpack_from(data, 0)
        if magic != MAGIC:
            raise ValueError(f"Not a CHIP-8 save state (magic {magic!r})")
        if version != VERSION:
            raise ValueError(f"Unsupported save-state version {version}")

        expected = _HEADER.size + depth * 2 + REGISTER_COUNT + MEMORY_SIZE + _DISPLAY_BYTES
        if len(data) != expected:
            raise ValueError(
                f"Save state size mismatch: expected {expected}, got {len(data)}"
            )

        offset = _HEADER.size
        stack = list(struct.unpack_from(f"<{depth}H", data, offset))
        offset += depth * 2
        registers = data[offset:offset + REGISTER_COUNT]
        offset += REGISTER_COUNT
        memory = data[offset:offset + MEMORY_SIZE]
        offset += MEMORY_SIZE
        display = _unpack_display(data[offset:offset + _DISPLAY_BYTES])

        state = MachineState()
        state.restore_snapshot({
            "memory": memory,
            "display": display,
            "program_counter": pc,
            "index_register": index,
            "call_stack": stack,
            "delay_timer": delay,
            "sound_timer": sound,
            "registers": registers,
            "keyboard_state": keys,
            "quirks_mode": bool(quirks),
        })
        return state

    # -- files -------------------------------------------------------------

    @staticmethod
    def save(path: str, state: MachineState) -> None:
        """Write *state* to *path*."""
        data = SaveStateService.encode(state)
        with open(path, "wb") as fh:
            fh.write(data)
        logger.info("Saved state to %s (%d bytes)", path, len(data))

    @staticmethod
    def load(path: str) -> MachineState:
        """Read a state previously written by :meth:`save`.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file is not a valid save state.
        """
        with open(path, "rb") as fh:
            data = fh.read()
        state = SaveStateService.decode(data)
        logger.info("Loaded state from %s", path)
        return state
