"""
Game profiles
Maps a ROM header title to the addresses the battle AI touches: the hardware
RNG ports it reads and the cell it writes its chosen move into.

Generation I games accept any nonzero write to the move cell. Generation II
games write the same cell from several code paths, so a write only counts when
the ROM bytes at the current PC match the signature of the AI's move store.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from battlescope.config import ROM_BANK_SIZE, SIGNATURE_LENGTH
from battlescope.errors import UnrecognizedGame


class Game(Enum):
    RED = "red"
    BLUE = "blue"
    YELLOW = "yellow"
    GOLD = "gold"
    SILVER = "silver"
    CRYSTAL = "crystal"


DISPLAY_NAMES = {
    Game.RED: "Pokémon: Red Version",
    Game.BLUE: "Pokémon: Blue Version",
    Game.YELLOW: "Pokémon Yellow Version: Special Pikachu Edition",
    Game.GOLD: "Pokémon: Gold Version",
    Game.SILVER: "Pokémon: Silver Version",
    Game.CRYSTAL: "Pokémon: Crystal Version",
}


@dataclass(frozen=True)
class GameProfile:
    """Addresses needed to intercept one game's AI"""
    game: Game
    title: str
    generation: int
    rng_addresses: Tuple[int, ...]
    decision_address: int
    signature_address: Optional[int] = None

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self.game]

    @property
    def signature(self) -> Optional[bytes]:
        """Code bytes around `ld [signature_address], a` in the AI's move store"""
        if self.signature_address is None:
            return None
        low = self.signature_address & 0xFF
        high = (self.signature_address >> 8) & 0xFF
        return bytes([0x79, 0xEA, low, high, 0xC9, 0x91])

    def is_rng_port(self, address: int) -> bool:
        return address in self.rng_addresses

    def signature_matches(self, pc: int, rom: bytes, bank: int) -> bool:
        """
        Check the signature against the ROM at the current PC

        Args:
            pc: program counter at the time of the write
            rom: full ROM image as seen by the engine
            bank: switchable ROM bank currently mapped at 0x4000

        Returns:
            True when the profile has no signature, or the bytes at the
            banked PC equal it
        """
        signature = self.signature
        if signature is None:
            return True
        if pc <= ROM_BANK_SIZE:
            return False

        start = ROM_BANK_SIZE * bank + (pc - ROM_BANK_SIZE)
        window = bytes(rom[start:start + SIGNATURE_LENGTH])
        return window == signature


def _gen1(game: Game, title: str) -> GameProfile:
    return GameProfile(
        game=game,
        title=title,
        generation=1,
        rng_addresses=(0xFFD3, 0xFFD4),
        decision_address=0xCCDD,
    )


# Exact ROM header titles
PROFILES: Dict[str, GameProfile] = {
    "POKEMON RED": _gen1(Game.RED, "POKEMON RED"),
    "POKEMON BLUE": _gen1(Game.BLUE, "POKEMON BLUE"),
    "POKEMON YELLOW": _gen1(Game.YELLOW, "POKEMON YELLOW"),
    "POKEMON_GLDAAUE": GameProfile(
        game=Game.GOLD,
        title="POKEMON_GLDAAUE",
        generation=2,
        rng_addresses=(0xFFE3, 0xFFE4),
        decision_address=0xCBC2,
        signature_address=0xCBC7,
    ),
    "POKEMON_SLVAAXE": GameProfile(
        game=Game.SILVER,
        title="POKEMON_SLVAAXE",
        generation=2,
        rng_addresses=(0xFFE3, 0xFFE4),
        decision_address=0xCBC2,
        signature_address=0xCBC7,
    ),
    "PM_CRYSTAL": GameProfile(
        game=Game.CRYSTAL,
        title="PM_CRYSTAL",
        generation=2,
        rng_addresses=(0xFFE1, 0xFFE2),
        decision_address=0xC6E4,
        signature_address=0xC6E9,
    ),
}


def lookup(title: str) -> GameProfile:
    """Return the profile for a ROM title, or raise UnrecognizedGame"""
    try:
        return PROFILES[title]
    except KeyError:
        raise UnrecognizedGame(title) from None


def supported_titles() -> Tuple[str, ...]:
    return tuple(PROFILES)
