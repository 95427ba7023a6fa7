"""
Input handler for the CHIP-8 host.
Maps keyboard keys and gamepad buttons to the 16-key hex keypad.

Keyboard layout
---------------

The keypad is laid out on the left of a QWERTY keyboard, matching the
COSMAC VIP positions::

    Keypad          Keyboard
    1 2 3 C         1 2 3 4
    4 5 6 D         Q W E R
    7 8 9 E         A S D F
    A 0 B F         Z X C V

===================  ============================
Key                  Action
===================  ============================
Escape               Quit
P                    Pause / resume
F1                   Reset
F5                   Save state to the quick slot
F9                   Load state from the quick slot
Backspace            Rewind one frame
===================  ============================

When a pygame joystick / gamepad is connected the D-pad maps to keys
2 / 8 / 4 / 6 (the usual CHIP-8 directions) and button 0 to key 5.
"""

from __future__ import annotations

import logging

import pygame

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Keyboard -> keypad mappings
# ---------------------------------------------------------------------------

_KEY_MAP: dict[int, int] = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}

# Joystick hat (D-pad) directions -> keypad keys.
# Hat values are (x, y) with x: -1=left, 1=right; y: -1=down, 1=up.
_HAT_MAP: dict[tuple[int, int], list[int]] = {
    (0,  1): [0x2],
    (0, -1): [0x8],
    (-1, 0): [0x4],
    (1,  0): [0x6],
    (-1,  1): [0x4, 0x2],
    (1,   1): [0x6, 0x2],
    (-1, -1): [0x4, 0x8],
    (1,  -1): [0x6, 0x8],
    (0,   0): [],  # centre -- release all
}

# Joystick button -> keypad key.
_JOY_BUTTON_MAP: dict[int, int] = {
    0: 0x5,
    1: 0x0,
}


class InputHandler:
    """Translates pygame keyboard and joystick events into keypad state.

    Parameters
    ----------
    machine:
        The emulated machine.  Expected interface:

        * ``set_key_state(key: int, pressed: bool)``

    Host commands (pause, save, load, rewind, reset) are not applied here;
    they are latched as request flags that the window consumes with
    :meth:`take_requests`.
    """

    def __init__(self, machine: object) -> None:
        self._machine = machine
        self._quit_requested: bool = False
        self._requests: set[str] = set()

        # Previous hat state for edge detection.
        self._prev_hat_keys: list[int] = []

        self._joysticks: list[pygame.joystick.Joystick] = []
        self._init_joysticks()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def quit_requested(self) -> bool:
        """``True`` if the user pressed Escape or closed the window."""
        return self._quit_requested

    def take_requests(self) -> set[str]:
        """Return and clear pending host commands.

        Members are ``"pause"``, ``"reset"``, ``"save"``, ``"load"`` and
        ``"rewind"``.
        """
        requests = self._requests
        self._requests = set()
        return requests

    def poll(self) -> None:
        """Pump the pygame event queue and process all pending events.

        This should be called once at the top of each frame.
        """
        for event in pygame.event.get():
            self.handle_event(event)

    def handle_event(self, event: pygame.event.Event) -> None:
        """Process a single pygame event."""
        if event.type == pygame.QUIT:
            self._quit_requested = True
            return

        if event.type == pygame.KEYDOWN:
            self._on_key_down(event)
        elif event.type == pygame.KEYUP:
            self._on_key_up(event)
        elif event.type == pygame.JOYHATMOTION:
            self._on_joy_hat(event)
        elif event.type == pygame.JOYBUTTONDOWN:
            self._on_joy_button(event, down=True)
        elif event.type == pygame.JOYBUTTONUP:
            self._on_joy_button(event, down=False)
        elif event.type in (pygame.JOYDEVICEADDED, pygame.JOYDEVICEREMOVED):
            self._init_joysticks()

    def clear_all(self) -> None:
        """Release every keypad key."""
        for key in range(16):
            self._send(key, False)
        self._prev_hat_keys.clear()

    # ------------------------------------------------------------------
    # Keyboard handlers
    # ------------------------------------------------------------------

    def _on_key_down(self, event: pygame.event.Event) -> None:
        key = event.key

        if key == pygame.K_ESCAPE:
            self._quit_requested = True
            return
        if key == pygame.K_p:
            self._requests.add("pause")
            return
        if key == pygame.K_F1:
            self._requests.add("reset")
            return
        if key == pygame.K_F5:
            self._requests.add("save")
            return
        if key == pygame.K_F9:
            self._requests.add("load")
            return
        if key == pygame.K_BACKSPACE:
            self._requests.add("rewind")
            return

        pad = _KEY_MAP.get(key)
        if pad is not None:
            self._send(pad, True)

    def _on_key_up(self, event: pygame.event.Event) -> None:
        pad = _KEY_MAP.get(event.key)
        if pad is not None:
            self._send(pad, False)

    # ------------------------------------------------------------------
    # Joystick handlers
    # ------------------------------------------------------------------

    def _on_joy_hat(self, event: pygame.event.Event) -> None:
        """Handle D-pad hat switch events."""
        new_keys = _HAT_MAP.get(event.value, [])

        for pad in self._prev_hat_keys:
            if pad not in new_keys:
                self._send(pad, False)
        for pad in new_keys:
            if pad not in self._prev_hat_keys:
                self._send(pad, True)

        self._prev_hat_keys = list(new_keys)

    def _on_joy_button(self, event: pygame.event.Event, *, down: bool) -> None:
        pad = _JOY_BUTTON_MAP.get(event.button)
        if pad is not None:
            self._send(pad, down)

    # ------------------------------------------------------------------
    # Joystick initialisation
    # ------------------------------------------------------------------

    def _init_joysticks(self) -> None:
        """(Re-)detect connected joysticks."""
        self._joysticks.clear()
        for i in range(pygame.joystick.get_count()):
            try:
                js = pygame.joystick.Joystick(i)
                js.init()
                self._joysticks.append(js)
                logger.info("Joystick %d: %s", i, js.get_name())
            except pygame.error as exc:
                logger.warning("Failed to init joystick %d: %s", i, exc)

    # ------------------------------------------------------------------
    # Machine bridge
    # ------------------------------------------------------------------

    def _send(self, key: int, down: bool) -> None:
        self._machine.set_key_state(key, down)  # type: ignore[attr-defined]
