from __future__ import annotations

import os
import sys
from typing import Callable, Iterable

import pytest

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from chip8emu.core.machine_state import PROGRAM_START_ADDRESS, MachineState  # noqa: E402


def words_to_bytes(words: Iterable[int]) -> bytes:
    out = bytearray()
    for word in words:
        out.append((word >> 8) & 0xFF)
        out.append(word & 0xFF)
    return bytes(out)


@pytest.fixture
def program_state() -> Callable[..., MachineState]:
    """Factory: a font-loaded state with *words* placed at $200."""

    def _make(*words: int, quirks: bool = False) -> MachineState:
        state = MachineState.create_with_font(quirks)
        rom = words_to_bytes(words)
        state.memory[PROGRAM_START_ADDRESS:PROGRAM_START_ADDRESS + len(rom)] = rom
        return state

    return _make
