"""
chip8emu -- CHIP-8 interpreter with a pygame window.

Parses command-line arguments, creates the machine from a ROM file, and
launches the display window.

Usage examples::

    # Run a ROM at the default 500 instructions per second
    chip8emu roms/pong.ch8

    # CHIP-48 / SUPER-CHIP shift and jump behaviour, faster CPU
    chip8emu roms/blinky.ch8 --quirks --cpu-hz 1000

    # Print ROM metadata without launching
    chip8emu roms/pong.ch8 --info
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from chip8emu.core.logger import LOG_DEBUG, LOG_WARNING, ConsoleLogger
from chip8emu.core.machine import DEFAULT_CPU_HZ
from chip8emu.shell.services.machine_factory import MachineFactory


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chip8emu",
        description="CHIP-8 interpreter.  Load a ROM file and run it in a pygame window.",
    )

    parser.add_argument(
        "rom",
        help="Path to the ROM file (.ch8)",
    )

    # Interpreter
    parser.add_argument(
        "--quirks", "-q",
        action="store_true",
        default=False,
        help="Use CHIP-48 / SUPER-CHIP semantics for 8XY6, 8XYE and BNNN.",
    )
    parser.add_argument(
        "--cpu-hz",
        type=int,
        default=DEFAULT_CPU_HZ,
        metavar="HZ",
        help=f"Instructions per second.  Default: {DEFAULT_CPU_HZ}.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the CXNN random number source.",
    )
    parser.add_argument(
        "--rewind",
        type=int,
        default=600,
        metavar="FRAMES",
        help="Frames kept for Backspace rewind (0 disables).  Default: 600.",
    )
    parser.add_argument(
        "--state-file",
        default=None,
        metavar="PATH",
        help="Save-state file used by F5 / F9 (default: in-memory slot).",
    )

    # Display
    parser.add_argument(
        "--scale", "-s",
        type=int,
        default=10,
        help="Display scale factor (1-20).  Default: 10.",
    )

    # Audio
    parser.add_argument(
        "--no-audio",
        action="store_true",
        default=False,
        help="Disable audio output.",
    )

    # Debugging / info
    parser.add_argument(
        "--info",
        action="store_true",
        default=False,
        help="Print ROM metadata and exit without launching the emulator.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG).",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        default=False,
        help="Print every executed instruction to the console.",
    )

    return parser


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(verbosity: int) -> None:
    """Set up the root logger based on requested verbosity."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Info mode
# ---------------------------------------------------------------------------

def _print_rom_info(rom_path: str) -> int:
    """Print human-readable metadata for a ROM."""
    try:
        info = MachineFactory.describe(rom_path)
    except OSError as exc:
        print(f"Error reading ROM: {exc}", file=sys.stderr)
        return 1

    print("CHIP-8 ROM Information")
    print("=" * 40)
    for key, value in info.items():
        label = key.replace("_", " ").title()
        print(f"  {label:20s}: {value}")
    print("=" * 40)
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` to use ``sys.argv``.

    Returns
    -------
    int
        Exit code (0 on success).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    logger = logging.getLogger("chip8emu.main")

    rom_path: str = os.path.expanduser(args.rom)
    if not os.path.isfile(rom_path):
        print(f"Error: ROM file not found: {rom_path}", file=sys.stderr)
        return 1

    if args.info:
        return _print_rom_info(rom_path)

    core_logger = ConsoleLogger(LOG_DEBUG if args.trace else LOG_WARNING)

    try:
        machine = MachineFactory.create(
            rom_path,
            quirks=args.quirks,
            cpu_hz=args.cpu_hz,
            seed=args.seed,
            core_logger=core_logger,
            rewind_depth=max(0, args.rewind),
        )
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    # Imported here so --info works without a display.
    from chip8emu.platform.window import Window

    logger.info("Starting emulation ...")
    try:
        window = Window(
            machine,
            scale=args.scale,
            enable_audio=not args.no_audio,
            title=f"CHIP-8 - {os.path.basename(rom_path)}",
            state_path=args.state_file,
        )
        window.run()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        logger.exception("Fatal error during emulation")
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1

    if machine.machine_halt:
        print(f"Machine halted: {machine.fault}", file=sys.stderr)
        return 1

    logger.info("Exited cleanly")
    return 0


if __name__ == "__main__":
    sys.exit(main())
