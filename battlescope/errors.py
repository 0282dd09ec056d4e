"""
Battlescope error types
Everything the simulator raises on purpose derives from BattlescopeError.
"""

from battlescope.config import MAX_IDENTITY_BYTES


class BattlescopeError(Exception):
    """Base class for simulator errors"""


class InvalidSaveState(BattlescopeError):
    """The save state can't be used with the loaded ROM / hardware model"""

    def __init__(self, message: str = "Can't read save state"):
        super().__init__(message)


class UnrecognizedGame(BattlescopeError):
    """The ROM title isn't one of the supported games"""

    def __init__(self, identity: str):
        # Keep at most MAX_IDENTITY_BYTES of UTF-8 without splitting a character
        raw = identity.encode('utf-8')[:MAX_IDENTITY_BYTES]
        self.identity = raw.decode('utf-8', errors='ignore')
        super().__init__(f"Unknown game {self.identity} from ROM")


class BackendUnavailable(BattlescopeError):
    """No emulator backend is configured, or the configured one can't be loaded"""
