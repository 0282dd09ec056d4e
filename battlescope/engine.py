"""
Emulator backend interface
Battlescope doesn't emulate hardware itself. A backend wraps a Game Boy
emulator and hands out Engine instances; the trial loop only talks to this
interface.

Memory hooks are called synchronously from inside Engine.step() on the calling
thread, and get the engine passed in explicitly so they can inspect registers
and ROM without holding a reference back to it.
"""

import importlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Union

from battlescope.config import backend_path_from_env
from battlescope.errors import BackendUnavailable

logger = logging.getLogger(__name__)


class HardwareModel(Enum):
    DMG = "dmg"
    SGB = "sgb"
    CGB = "cgb"
    AGB = "agb"


class Button(Enum):
    A = "a"
    B = "b"
    SELECT = "select"
    START = "start"
    RIGHT = "right"
    LEFT = "left"
    UP = "up"
    DOWN = "down"


class MemoryRegion(Enum):
    ROM = "rom"
    WRAM = "wram"
    HRAM = "hram"


class InvalidState(Exception):
    """Raised by a backend when a save state can't be loaded"""


@dataclass(frozen=True)
class Registers:
    pc: int
    sp: int = 0
    af: int = 0
    bc: int = 0
    de: int = 0
    hl: int = 0


@dataclass(frozen=True)
class DirectAccess:
    """Raw view of a memory region plus the bank currently mapped in"""
    data: Union[bytes, bytearray, memoryview]
    bank: int


class MemoryHooks(Protocol):
    def read_memory(self, engine: "Engine", address: int, original: int) -> int:
        ...

    def write_memory(self, engine: "Engine", address: int, value: int) -> bool:
        ...


class Engine(ABC):
    """One emulated machine, owned by a single thread"""

    @abstractmethod
    def load_rom(self, data: bytes) -> None:
        """Load a ROM image"""

    @abstractmethod
    def load_snapshot(self, data: bytes) -> None:
        """Restore a save state; raise InvalidState if it doesn't fit"""

    @abstractmethod
    def create_snapshot(self) -> bytes:
        """Serialize the current machine state"""

    @abstractmethod
    def step(self) -> None:
        """Advance the machine by one step"""

    @abstractmethod
    def rom_title(self) -> str:
        """Title from the loaded ROM header"""

    @abstractmethod
    def registers(self) -> Registers:
        ...

    @abstractmethod
    def direct_access(self, region: MemoryRegion) -> DirectAccess:
        ...

    @abstractmethod
    def set_callbacks(self, hooks: Optional[MemoryHooks]) -> None:
        """Install (or clear) the memory read/write hooks"""

    @abstractmethod
    def set_button(self, button: Button, pressed: bool) -> None:
        ...

    @abstractmethod
    def is_odd_frame(self) -> bool:
        ...

    def set_memory_callbacks_enabled(self, enabled: bool) -> None:
        """Backends that always run hooks can ignore this"""

    def set_turbo(self, enabled: bool) -> None:
        """Run as fast as possible instead of real time"""


class Backend(ABC):
    """Factory for engines of a given hardware model"""

    @abstractmethod
    def model_for_snapshot(self, snapshot: bytes) -> HardwareModel:
        """Hardware model a save state was made on; raise InvalidState if unknown"""

    @abstractmethod
    def create(self, model: HardwareModel) -> Engine:
        ...


def load_backend(path: Optional[str] = None) -> Backend:
    """
    Resolve a backend from a "package.module:attribute" path

    Args:
        path: dotted path; falls back to the BATTLESCOPE_BACKEND variable

    Returns:
        The attribute called with no arguments (a class or factory function)
    """
    path = path or backend_path_from_env()
    if not path:
        raise BackendUnavailable(
            "No emulator backend configured; pass --backend or set BATTLESCOPE_BACKEND"
        )

    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise BackendUnavailable(f"Backend path must look like 'module:attribute', got {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise BackendUnavailable(f"Can't import backend module {module_name}: {e}") from e

    factory = getattr(module, attribute, None)
    if factory is None:
        raise BackendUnavailable(f"Backend module {module_name} has no attribute {attribute}")

    backend = factory()
    logger.debug("Loaded emulator backend %s", path)
    return backend
