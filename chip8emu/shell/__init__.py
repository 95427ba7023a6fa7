"""Host-side services and rendering for the CHIP-8 interpreter."""
