"""pygame window, audio and input for the CHIP-8 host."""
