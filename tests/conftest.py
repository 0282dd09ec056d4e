import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from battlescope.engine import (
    Backend,
    Button,
    DirectAccess,
    Engine,
    HardwareModel,
    InvalidState,
    MemoryRegion,
    Registers,
)

SNAPSHOT_MAGIC = b"SNAP"
MODELS = list(HardwareModel)

# Script events
NOP = ("nop",)
DECISION = "decision"  # write value placeholder: pop from the backend's queue


def read(address: int) -> Tuple:
    return ("read", address)


def write(address: int, value, pc: int = 0x0150, bank: int = 1) -> Tuple:
    return ("write", address, value, pc, bank)


def make_rom(title: str, size: int = 0x8000) -> bytearray:
    """ROM with the title in the cartridge header"""
    rom = bytearray(size)
    encoded = title.encode("ascii")
    rom[0x134:0x134 + len(encoded)] = encoded
    return rom


def make_snapshot(position: int = 0, model: HardwareModel = HardwareModel.CGB) -> bytes:
    return SNAPSHOT_MAGIC + bytes([MODELS.index(model)]) + position.to_bytes(4, "little")


def snapshot_position(snapshot: bytes) -> int:
    return int.from_bytes(snapshot[5:9], "little")


class ScriptedEngine(Engine):
    """Engine whose steps replay a fixed list of memory events"""

    def __init__(self, backend: "ScriptedBackend", model: HardwareModel):
        self.backend = backend
        self.model = model
        self.rom = b""
        self.position = 0
        self.pc = 0x0100
        self.bank = 1
        self.hooks = None
        self.turbo = False
        self.callbacks_enabled = False
        self.buttons: List[Tuple[Button, bool]] = []
        self.read_values: List[int] = []
        self.restored_from: List[int] = []
        self.snapshots_taken = 0

    def load_rom(self, data: bytes) -> None:
        self.rom = bytes(data)

    def load_snapshot(self, data: bytes) -> None:
        if data[:4] != SNAPSHOT_MAGIC or len(data) != 9:
            raise InvalidState("not a scripted snapshot")
        if MODELS[data[4]] != self.model:
            raise InvalidState("hardware model mismatch")
        self.position = snapshot_position(data)
        self.restored_from.append(self.position)

    def create_snapshot(self) -> bytes:
        self.snapshots_taken += 1
        return make_snapshot(self.position, self.model)

    def step(self) -> None:
        script = self.backend.script
        event = script[self.position] if self.position < len(script) else NOP
        self.position += 1

        if event[0] == "read" and self.hooks is not None:
            self.read_values.append(self.hooks.read_memory(self, event[1], 0))
        elif event[0] == "write":
            _, address, value, pc, bank = event
            if value == DECISION:
                value = self.backend.next_decision()
            self.pc = pc
            self.bank = bank
            if self.hooks is not None:
                self.hooks.write_memory(self, address, value)

        if self.backend.step_delay:
            time.sleep(self.backend.step_delay)

    def rom_title(self) -> str:
        return self.rom[0x134:0x144].rstrip(b"\x00").decode("ascii", errors="replace")

    def registers(self) -> Registers:
        return Registers(pc=self.pc)

    def direct_access(self, region: MemoryRegion) -> DirectAccess:
        assert region == MemoryRegion.ROM
        return DirectAccess(data=self.rom, bank=self.bank)

    def set_callbacks(self, hooks) -> None:
        self.hooks = hooks

    def set_button(self, button: Button, pressed: bool) -> None:
        self.buttons.append((button, pressed))

    def is_odd_frame(self) -> bool:
        return (self.position // self.backend.frame_length) % 2 == 1

    def set_memory_callbacks_enabled(self, enabled: bool) -> None:
        self.callbacks_enabled = enabled

    def set_turbo(self, enabled: bool) -> None:
        self.turbo = enabled


class ScriptedBackend(Backend):
    """Backend handing out ScriptedEngines that share one script"""

    def __init__(self,
                 script: Sequence[Tuple],
                 decisions: Optional[Sequence[int]] = None,
                 frame_length: int = 1,
                 step_delay: float = 0.0):
        self.script = list(script)
        self.decisions = list(decisions or [])
        self.frame_length = frame_length
        self.step_delay = step_delay
        self.engines: List[ScriptedEngine] = []
        self._lock = threading.Lock()

    def model_for_snapshot(self, snapshot: bytes) -> HardwareModel:
        if snapshot[:4] != SNAPSHOT_MAGIC or len(snapshot) < 5 or snapshot[4] >= len(MODELS):
            raise InvalidState("not a scripted snapshot")
        return MODELS[snapshot[4]]

    def create(self, model: HardwareModel) -> ScriptedEngine:
        engine = ScriptedEngine(self, model)
        with self._lock:
            self.engines.append(engine)
        return engine

    def next_decision(self) -> int:
        with self._lock:
            if not self.decisions:
                return 0
            return self.decisions.pop(0)


def wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll until condition() holds or the timeout passes"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def red_rom() -> bytes:
    return bytes(make_rom("POKEMON RED"))


@pytest.fixture
def base_snapshot() -> bytes:
    return make_snapshot(0)


def red_backend() -> ScriptedBackend:
    """Backend factory for tests that resolve backends by dotted path"""
    return ScriptedBackend([read(0xFFD3), write(0xCCDD, 5)])
