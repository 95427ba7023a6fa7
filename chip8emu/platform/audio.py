"""
Audio output device for the CHIP-8 host.
Uses pygame.mixer to sound a tone while the machine's sound timer is
non-zero.

The CHIP-8 has a single buzzer with no pitch or volume control: the
interpreter only maintains ``sound_timer``.  This module synthesises one
buffer of square wave with numpy at start-up, loops it on a dedicated
channel while the timer runs, and stops it when the timer reaches zero.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pygame

logger = logging.getLogger(__name__)

_SAMPLE_RATE: int = 44100
_TONE_HZ: int = 440
_AMPLITUDE: int = 6000

# Minimum pygame mixer buffer size (in samples).  Smaller values reduce
# latency but may cause underruns on slower machines.
_MIXER_BUFFER_SAMPLES: int = 512


def square_wave(tone_hz: int, sample_rate: int, amplitude: int) -> np.ndarray:
    """Return one whole number of periods of a signed 16-bit square wave.

    The buffer length is a multiple of the period so it loops without a
    click.
    """
    period = max(2, sample_rate // tone_hz)
    periods = max(1, sample_rate // (period * 10))
    t = np.arange(period * periods)
    wave = np.where((t % period) < period // 2, amplitude, -amplitude)
    return wave.astype(np.int16)


class AudioDevice:
    """Play the buzzer for the emulated machine.

    Parameters
    ----------
    machine:
        The emulated machine.  Expected attributes:

        * ``state.sound_timer`` -- ``int``
    enabled:
        Set to ``False`` to create the device in a silent / no-op mode.
    tone_hz:
        Pitch of the buzzer.
    """

    def __init__(
        self,
        machine: object,
        *,
        enabled: bool = True,
        tone_hz: int = _TONE_HZ,
    ) -> None:
        self._machine = machine
        self._enabled: bool = enabled
        self._tone_hz: int = tone_hz
        self._channel: Optional[pygame.mixer.Channel] = None
        self._tone: Optional[pygame.mixer.Sound] = None
        self._playing: bool = False
        self._mixer_rate: int = _SAMPLE_RATE

        if not self._enabled:
            logger.info("AudioDevice: disabled (silent mode)")
            return

        self._init_mixer()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def playing(self) -> bool:
        return self._playing

    def update(self) -> None:
        """Start or stop the tone to follow the sound timer.

        Call this once per frame, **after** :meth:`machine.compute_next_frame`.
        """
        if not self._enabled or self._channel is None or self._tone is None:
            return

        active = self._machine.state.sound_timer > 0  # type: ignore[attr-defined]
        if active and not self._playing:
            self._channel.play(self._tone, loops=-1)
            self._playing = True
        elif not active and self._playing:
            self._channel.stop()
            self._playing = False

    def shutdown(self) -> None:
        """Stop playback and release the mixer."""
        self._shutdown_mixer()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _init_mixer(self) -> None:
        """Initialise (or re-initialise) the pygame mixer and the tone."""
        try:
            pygame.mixer.quit()
        except pygame.error:
            pass

        try:
            pygame.mixer.init(
                frequency=_SAMPLE_RATE,
                size=-16,       # signed 16-bit
                channels=1,     # mono
                buffer=_MIXER_BUFFER_SAMPLES,
            )
        except pygame.error as exc:
            logger.error("AudioDevice: mixer init failed: %s", exc)
            self._enabled = False
            return

        actual_freq, actual_size, actual_channels = pygame.mixer.get_init()
        self._mixer_rate = actual_freq

        wave = square_wave(self._tone_hz, actual_freq, _AMPLITUDE)
        if actual_channels > 1:
            # The mixer may refuse mono; duplicate into every channel.
            wave = np.repeat(wave[:, None], actual_channels, axis=1)
        self._tone = pygame.mixer.Sound(buffer=wave.tobytes())

        pygame.mixer.set_num_channels(8)
        self._channel = pygame.mixer.Channel(0)

        logger.info(
            "AudioDevice: mixer ready at %d Hz, %d-bit, %d ch (tone %d Hz)",
            actual_freq,
            abs(actual_size),
            actual_channels,
            self._tone_hz,
        )

    def _shutdown_mixer(self) -> None:
        """Stop the mixer channel and release resources."""
        if self._channel is not None:
            try:
                self._channel.stop()
            except pygame.error:
                pass
            self._channel = None
        self._tone = None
        self._playing = False

        try:
            pygame.mixer.quit()
        except pygame.error:
            pass
