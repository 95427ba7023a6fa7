"""
Main application window for the CHIP-8 host.
Uses pygame to create a display, drive the emulation main loop, and
coordinate audio, video, and input subsystems.

Typical usage::

    from chip8emu.platform.window import Window

    machine = MachineFactory.create("pong.ch8")
    window = Window(machine, scale=10)
    window.run()
"""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

import pygame

from chip8emu.core.machine import Chip8Machine
from chip8emu.platform.audio import AudioDevice
from chip8emu.platform.input_handler import InputHandler
from chip8emu.shell.frame_renderer import FrameRenderer
from chip8emu.shell.services.save_state_service import SaveStateService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_WINDOW_TITLE: str = "CHIP-8"

# Minimum / maximum allowed display scale factors.
MIN_SCALE: int = 1
MAX_SCALE: int = 20


class Window:
    """Pygame window that owns the emulation main loop.

    Parameters
    ----------
    machine:
        The machine to run.  One :meth:`Chip8Machine.compute_next_frame`
        call is made per displayed frame.
    scale:
        Integer scale factor applied to the native 64 x 32 resolution.
    enable_audio:
        Set to ``False`` to mute sound output entirely.
    title:
        Text shown in the window title before the status.
    state_path:
        Save-state file used by F5 / F9.  When ``None`` an in-memory
        quick slot is used instead.
    """

    def __init__(
        self,
        machine: Chip8Machine,
        scale: int = 10,
        *,
        enable_audio: bool = True,
        title: Optional[str] = None,
        state_path: Optional[str] = None,
    ) -> None:
        self._machine = machine
        self._scale: int = max(MIN_SCALE, min(MAX_SCALE, scale))
        self._title: str = title or _WINDOW_TITLE
        self._running: bool = False
        self._paused: bool = False
        self._quick_slot: Optional[dict] = None
        self._state_path: Optional[str] = state_path

        display = machine.state.display
        self._frame_hz: int = machine.frame_hz

        if not pygame.get_init():
            pygame.init()
        if not pygame.joystick.get_init():
            pygame.joystick.init()

        self._display_width: int = display.width * self._scale
        self._display_height: int = display.height * self._scale
        self._screen: pygame.Surface = pygame.display.set_mode(
            (self._display_width, self._display_height),
            pygame.RESIZABLE,
        )
        pygame.display.set_caption(self._title)

        self._clock: pygame.time.Clock = pygame.time.Clock()

        # ---- subsystems --------------------------------------------------
        self._frame_renderer: FrameRenderer = FrameRenderer(machine)
        self._audio: AudioDevice = AudioDevice(machine, enabled=enable_audio)
        self._input: InputHandler = InputHandler(machine)

        # ---- performance counters ----------------------------------------
        self._frame_count: int = 0
        self._fps_update_time: float = 0.0
        self._fps_display: float = 0.0

        logger.info(
            "Window: %dx%d display (scale=%d, %d Hz, %d instructions/frame)",
            self._display_width,
            self._display_height,
            self._scale,
            self._frame_hz,
            machine.cycles_per_frame,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    @paused.setter
    def paused(self, value: bool) -> None:
        self._paused = value

    @property
    def fps(self) -> float:
        """The measured frames-per-second (updated once per second)."""
        return self._fps_display

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Enter the main emulation loop.

        This method blocks until the user closes the window or presses
        Escape.  Each iteration:

        1. Polls input and applies host commands.
        2. Calls ``machine.compute_next_frame()``.
        3. Starts or stops the buzzer.
        4. Renders the display.
        5. Throttles to 60 Hz.
        """
        self._running = True
        self._fps_update_time = time.monotonic()
        self._frame_count = 0

        logger.info("Entering main loop (target %d fps)", self._frame_hz)

        try:
            while self._running:
                self._tick()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._shutdown()

    def _tick(self) -> None:
        """Execute one iteration of the main loop."""
        self._input.poll()
        if self._input.quit_requested:
            self._running = False
            return
        self._apply_requests(self._input.take_requests())

        if not self._paused:
            self._machine.compute_next_frame()
        self._audio.update()

        surface = self._frame_renderer.render()
        current_size = self._screen.get_size()
        if surface.get_size() != current_size:
            scaled = pygame.transform.scale(surface, current_size)
        else:
            scaled = surface
        self._screen.blit(scaled, (0, 0))
        pygame.display.flip()

        self._clock.tick(self._frame_hz)
        self._update_fps()

    def _apply_requests(self, requests: set[str]) -> None:
        """Carry out host commands latched by the input handler."""
        machine = self._machine
        if "pause" in requests:
            self._paused = not self._paused
            logger.info("Paused" if self._paused else "Resumed")
        if "reset" in requests:
            machine.reset()
            logger.info("Reset")
        if "save" in requests:
            if self._state_path is not None:
                try:
                    SaveStateService.save(self._state_path, machine.state)
                except OSError as exc:
                    logger.warning("Could not write save state %s: %s", self._state_path, exc)
            else:
                self._quick_slot = machine.get_snapshot()
                logger.info("State saved to quick slot (frame %d)", machine.frame_number)
        if "load" in requests:
            self._load_state()
        if "rewind" in requests:
            if not machine.rewind():
                logger.info("Nothing to rewind")

    def _load_state(self) -> None:
        machine = self._machine
        if self._state_path is not None:
            if not os.path.isfile(self._state_path):
                logger.info("No save state at %s", self._state_path)
                return
            try:
                loaded = SaveStateService.load(self._state_path)
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring save state %s: %s", self._state_path, exc)
                return
            machine.load_state(loaded)
            return

        if self._quick_slot is None:
            logger.info("Quick slot is empty")
            return
        machine.restore_snapshot(self._quick_slot)
        logger.info("State loaded from quick slot (frame %d)", machine.frame_number)

    # ------------------------------------------------------------------
    # FPS tracking
    # ------------------------------------------------------------------

    def _update_fps(self) -> None:
        """Update the displayed FPS counter roughly once per second."""
        self._frame_count += 1
        now = time.monotonic()
        elapsed = now - self._fps_update_time
        if elapsed >= 1.0:
            self._fps_display = self._frame_count / elapsed
            self._frame_count = 0
            self._fps_update_time = now

            status = "halted" if self._machine.machine_halt else f"{self._fps_display:.1f} fps"
            if self._paused:
                status = "paused"
            pygame.display.set_caption(f"{self._title}  [{status}]")

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def _shutdown(self) -> None:
        """Clean up all subsystems."""
        logger.info("Shutting down")
        self._audio.shutdown()
        pygame.quit()
