import pytest

from battlescope import profiles
from battlescope.errors import UnrecognizedGame
from battlescope.profiles import Game


@pytest.mark.parametrize(
    "title, game, rng, decision, signature_address",
    [
        ("POKEMON RED", Game.RED, (0xFFD3, 0xFFD4), 0xCCDD, None),
        ("POKEMON BLUE", Game.BLUE, (0xFFD3, 0xFFD4), 0xCCDD, None),
        ("POKEMON YELLOW", Game.YELLOW, (0xFFD3, 0xFFD4), 0xCCDD, None),
        ("POKEMON_GLDAAUE", Game.GOLD, (0xFFE3, 0xFFE4), 0xCBC2, 0xCBC7),
        ("POKEMON_SLVAAXE", Game.SILVER, (0xFFE3, 0xFFE4), 0xCBC2, 0xCBC7),
        ("PM_CRYSTAL", Game.CRYSTAL, (0xFFE1, 0xFFE2), 0xC6E4, 0xC6E9),
    ],
)
def test_lookup_returns_profile_for_every_supported_title(title, game, rng, decision, signature_address) -> None:
    profile = profiles.lookup(title)
    assert profile.game == game
    assert profile.title == title
    assert profile.rng_addresses == rng
    assert profile.decision_address == decision
    assert profile.signature_address == signature_address
    assert profile.generation == (1 if signature_address is None else 2)


@pytest.mark.parametrize("title", ["POKEMON GREEN", "pokemon red", "POKEMON RED ", "", "TETRIS"])
def test_lookup_rejects_unknown_titles(title) -> None:
    with pytest.raises(UnrecognizedGame) as excinfo:
        profiles.lookup(title)
    assert excinfo.value.identity == title
    assert "Unknown game" in str(excinfo.value)


def test_unrecognized_identity_is_truncated() -> None:
    error = UnrecognizedGame("X" * 200)
    assert error.identity == "X" * 64


def test_unrecognized_identity_truncation_keeps_whole_characters() -> None:
    error = UnrecognizedGame("é" * 40)
    assert len(error.identity.encode("utf-8")) <= 64
    assert error.identity == "é" * 32


def test_crystal_signature_embeds_move_number_address() -> None:
    profile = profiles.lookup("PM_CRYSTAL")
    assert profile.signature == bytes([0x79, 0xEA, 0xE9, 0xC6, 0xC9, 0x91])


def test_generation_one_has_no_signature_and_always_matches() -> None:
    profile = profiles.lookup("POKEMON YELLOW")
    assert profile.signature is None
    assert profile.signature_matches(0x0000, b"", 0)


def test_signature_matches_at_banked_offset() -> None:
    profile = profiles.lookup("POKEMON_GLDAAUE")
    rom = bytearray(0x10000)
    rom[0x8123:0x8129] = profile.signature
    assert profile.signature_matches(0x4123, bytes(rom), 2)
    assert not profile.signature_matches(0x4123, bytes(rom), 1)
    assert not profile.signature_matches(0x4124, bytes(rom), 2)


def test_signature_needs_pc_in_switchable_bank() -> None:
    profile = profiles.lookup("POKEMON_GLDAAUE")
    rom = bytearray(0x8000)
    rom[0x0000:0x0006] = profile.signature
    assert not profile.signature_matches(0x4000, bytes(rom), 1)
    assert not profile.signature_matches(0x0150, bytes(rom), 1)


def test_signature_window_past_end_of_rom_does_not_match() -> None:
    profile = profiles.lookup("PM_CRYSTAL")
    rom = bytes(0x8000)
    assert not profile.signature_matches(0x7FFE, rom, 1)
    assert not profile.signature_matches(0x4100, rom, 40)


def test_display_names() -> None:
    assert profiles.lookup("PM_CRYSTAL").display_name == "Pokémon: Crystal Version"
    assert set(profiles.supported_titles()) == set(profiles.PROFILES)
