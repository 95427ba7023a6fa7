"""ROM loading, machine assembly and save-state files."""

from chip8emu.shell.services.machine_factory import MachineFactory
from chip8emu.shell.services.rom_bytes_service import RomBytesService
from chip8emu.shell.services.save_state_service import SaveStateService

__all__ = ["MachineFactory", "RomBytesService", "SaveStateService"]
