"""
chip8emu -- CHIP-8 interpreter with a pygame host.

The :mod:`chip8emu.core` package is the interpreter itself and has no
pygame dependency.  :mod:`chip8emu.shell` and :mod:`chip8emu.platform`
supply the ROM loader, renderer, audio and input collaborators.
"""

__version__ = "1.0.0"
