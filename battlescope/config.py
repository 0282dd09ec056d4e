"""
Battlescope configuration
Tunables live at module scope; RunConfig carries one CLI run's settings.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# =============================================================================
# Game Boy memory layout
# =============================================================================

ROM_BANK_SIZE = 0x4000      # Switchable ROM banks are mapped at 0x4000-0x7FFF
SIGNATURE_LENGTH = 6        # Bytes matched around the move-number store
MAX_IDENTITY_BYTES = 64     # ROM titles echoed back in errors are cut to this

# =============================================================================
# Trial loop
# =============================================================================

RAPID_FIRE_PERIOD = 6       # Frame-parity transitions per input cycle
RAPID_FIRE_HELD = 3         # Transitions per cycle with the button held

# =============================================================================
# Front end
# =============================================================================

POLL_INTERVAL = 0.25            # Seconds between progress refreshes
STALL_WARNING_SECONDS = 5       # Warn about a bad save state after this long
BACKEND_ENV_VAR = "BATTLESCOPE_BACKEND"


def backend_path_from_env() -> Optional[str]:
    """Dotted backend path from the environment, if set"""
    value = os.environ.get(BACKEND_ENV_VAR, "").strip()
    return value or None


@dataclass
class RunConfig:
    """Settings for a single simulation run"""
    rom: Path
    save_state: Path
    jobs: Optional[int] = None
    trials: Optional[int] = None
    quiet: bool = False
    backend: Optional[str] = None
    seed: Optional[int] = None
    json_output: Optional[Path] = None
    verbose: bool = False

    def resolved_backend(self) -> Optional[str]:
        """Backend from the command line, falling back to the environment"""
        return self.backend or backend_path_from_env()

    def thread_count(self) -> int:
        """Worker count; 0 or unset means every available CPU"""
        if self.jobs:
            return self.jobs
        return os.cpu_count() or 1
