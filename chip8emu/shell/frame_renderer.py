"""
Frame renderer for the CHIP-8 host.
Converts the machine's boolean :class:`~chip8emu.core.display.Display`
into an RGB pygame Surface.

The interpreter produces one boolean per pixel.  This module maps lit and
unlit pixels to two colours with a single numpy ``where`` and blits the
result into a reusable native-resolution surface; the window scales it.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
import pygame

from chip8emu.core.display import Display

logger = logging.getLogger(__name__)

Colour = Tuple[int, int, int]

DEFAULT_ON_COLOUR: Colour = (0xE0, 0xE0, 0xE0)
DEFAULT_OFF_COLOUR: Colour = (0x10, 0x10, 0x10)


def display_to_rgb(
    display: Display,
    on_colour: Colour = DEFAULT_ON_COLOUR,
    off_colour: Colour = DEFAULT_OFF_COLOUR,
) -> np.ndarray:
    """Return an ``(height, width, 3)`` uint8 image of *display*."""
    lit = np.asarray(display.cells, dtype=bool).reshape(display.height, display.width)
    on = np.asarray(on_colour, dtype=np.uint8)
    off = np.asarray(off_colour, dtype=np.uint8)
    return np.where(lit[:, :, None], on, off).astype(np.uint8)


class FrameRenderer:
    """Convert a machine's display into a :class:`pygame.Surface` each frame.

    Parameters
    ----------
    machine:
        The emulated machine.  Expected attributes:

        * ``state.display`` -- a :class:`~chip8emu.core.display.Display`
    on_colour, off_colour:
        RGB colours for lit and unlit pixels.
    """

    def __init__(
        self,
        machine: object,
        on_colour: Colour = DEFAULT_ON_COLOUR,
        off_colour: Colour = DEFAULT_OFF_COLOUR,
    ) -> None:
        self._machine = machine
        display = machine.state.display  # type: ignore[attr-defined]
        self._width: int = display.width
        self._height: int = display.height
        self._on_colour: Colour = on_colour
        self._off_colour: Colour = off_colour

        self._surface: pygame.Surface = pygame.Surface((self._width, self._height))

        logger.info("FrameRenderer: %dx%d", self._width, self._height)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def surface(self) -> pygame.Surface:
        """The internal pygame Surface (updated on each :meth:`render` call)."""
        return self._surface

    def render(self) -> pygame.Surface:
        """Render the current display and return the surface.

        The machine's state is looked up on every call because
        :meth:`Chip8Machine.reset` replaces it.
        """
        display = self._machine.state.display  # type: ignore[attr-defined]
        rgb = display_to_rgb(display, self._on_colour, self._off_colour)

        # pygame surfarray expects (W, H, 3) -- transpose width and height.
        pygame.surfarray.blit_array(self._surface, rgb.transpose(1, 0, 2))
        return self._surface

    def set_colours(self, on_colour: Colour, off_colour: Colour) -> None:
        """Replace the lit / unlit colours at runtime."""
        self._on_colour = on_colour
        self._off_colour = off_colour
