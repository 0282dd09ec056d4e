"""
Battlescope: Monte Carlo estimates of a Game Boy battle AI's move choice
"""

from battlescope.engine import Backend, Engine, InvalidState, load_backend
from battlescope.errors import BackendUnavailable, BattlescopeError, InvalidSaveState, UnrecognizedGame
from battlescope.moves import label as move_name
from battlescope.profiles import Game, GameProfile
from battlescope.simulator import Simulator

__version__ = "0.1.0"

__all__ = [
    "Backend",
    "BackendUnavailable",
    "BattlescopeError",
    "Engine",
    "Game",
    "GameProfile",
    "InvalidSaveState",
    "InvalidState",
    "Simulator",
    "UnrecognizedGame",
    "load_backend",
    "move_name",
]
