"""
Move names for Generation I and II, indexed by in-game move number
Index 0 is unused: the AI writes 0 to mean "no decision yet".
"""

from typing import Optional

UNKNOWN = "unknown"

MOVE_NAMES = (
    None,
    # 1-40
    "Pound", "Karate Chop", "Double Slap", "Comet Punch", "Mega Punch",
    "Pay Day", "Fire Punch", "Ice Punch", "Thunder Punch", "Scratch",
    "Vice Grip", "Guillotine", "Razor Wind", "Swords Dance", "Cut",
    "Gust", "Wing Attack", "Whirlwind", "Fly", "Bind",
    "Slam", "Vine Whip", "Stomp", "Double Kick", "Mega Kick",
    "Jump Kick", "Rolling Kick", "Sand Attack", "Headbutt", "Horn Attack",
    "Fury Attack", "Horn Drill", "Tackle", "Body Slam", "Wrap",
    "Take Down", "Thrash", "Double-Edge", "Tail Whip", "Poison Sting",
    # 41-80
    "Twineedle", "Pin Missile", "Leer", "Bite", "Growl",
    "Roar", "Sing", "Supersonic", "Sonic Boom", "Disable",
    "Acid", "Ember", "Flamethrower", "Mist", "Water Gun",
    "Hydro Pump", "Surf", "Ice Beam", "Blizzard", "Psybeam",
    "Bubble Beam", "Aurora Beam", "Hyper Beam", "Peck", "Drill Peck",
    "Submission", "Low Kick", "Counter", "Seismic Toss", "Strength",
    "Absorb", "Mega Drain", "Leech Seed", "Growth", "Razor Leaf",
    "Solar Beam", "Poison Powder", "Stun Spore", "Sleep Powder", "Petal Dance",
    # 81-120
    "String Shot", "Dragon Rage", "Fire Spin", "Thunder Shock", "Thunderbolt",
    "Thunder Wave", "Thunder", "Rock Throw", "Earthquake", "Fissure",
    "Dig", "Toxic", "Confusion", "Psychic", "Hypnosis",
    "Meditate", "Agility", "Quick Attack", "Rage", "Teleport",
    "Night Shade", "Mimic", "Screech", "Double Team", "Recover",
    "Harden", "Minimize", "Smokescreen", "Confuse Ray", "Withdraw",
    "Defense Curl", "Barrier", "Light Screen", "Haze", "Reflect",
    "Focus Energy", "Bide", "Metronome", "Mirror Move", "Self-Destruct",
    # 121-165
    "Egg Bomb", "Lick", "Smog", "Sludge", "Bone Club",
    "Fire Blast", "Waterfall", "Clamp", "Swift", "Skull Bash",
    "Spike Cannon", "Constrict", "Amnesia", "Kinesis", "Soft-Boiled",
    "High Jump Kick", "Glare", "Dream Eater", "Poison Gas", "Barrage",
    "Leech Life", "Lovely Kiss", "Sky Attack", "Transform", "Bubble",
    "Dizzy Punch", "Spore", "Flash", "Psywave", "Splash",
    "Acid Armor", "Crabhammer", "Explosion", "Fury Swipes", "Bonemerang",
    "Rest", "Rock Slide", "Hyper Fang", "Sharpen", "Conversion",
    "Tri Attack", "Super Fang", "Slash", "Substitute", "Struggle",
    # 166-210 (Generation II)
    "Sketch", "Triple Kick", "Thief", "Spider Web", "Mind Reader",
    "Nightmare", "Flame Wheel", "Snore", "Curse", "Flail",
    "Conversion 2", "Aeroblast", "Cotton Spore", "Reversal", "Spite",
    "Powder Snow", "Protect", "Mach Punch", "Scary Face", "Feint Attack",
    "Sweet Kiss", "Belly Drum", "Sludge Bomb", "Mud-Slap", "Octazooka",
    "Spikes", "Zap Cannon", "Foresight", "Destiny Bond", "Perish Song",
    "Icy Wind", "Detect", "Bone Rush", "Lock-On", "Outrage",
    "Sandstorm", "Giga Drain", "Endure", "Charm", "Rollout",
    "False Swipe", "Swagger", "Milk Drink", "Spark", "Fury Cutter",
    # 211-251
    "Steel Wing", "Mean Look", "Attract", "Sleep Talk", "Heal Bell",
    "Return", "Present", "Frustration", "Safeguard", "Pain Split",
    "Sacred Fire", "Magnitude", "Dynamic Punch", "Megahorn", "Dragon Breath",
    "Baton Pass", "Encore", "Pursuit", "Rapid Spin", "Sweet Scent",
    "Iron Tail", "Metal Claw", "Vital Throw", "Morning Sun", "Synthesis",
    "Moonlight", "Hidden Power", "Cross Chop", "Twister", "Rain Dance",
    "Sunny Day", "Crunch", "Mirror Coat", "Psych Up", "Extreme Speed",
    "Ancient Power", "Shadow Ball", "Future Sight", "Rock Smash", "Whirlpool",
    "Beat Up",
)

MOVE_COUNT = len(MOVE_NAMES) - 1


def move_name(code: int) -> Optional[str]:
    """Name of the move with this index, or None if there isn't one"""
    if 0 < code < len(MOVE_NAMES):
        return MOVE_NAMES[code]
    return None


def label(code: int) -> str:
    """Human-readable name for a decision code"""
    return move_name(code) or UNKNOWN


def display_label(code: int) -> str:
    """Name for tables; unknown codes show their raw value"""
    return move_name(code) or f"UNK (0x{code:02X})"
