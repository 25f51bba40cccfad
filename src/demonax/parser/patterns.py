"""Compiled regex patterns and format constants for the decoders."""

import re

# --- Binary magics ---

PLAYER_MAGIC = b"DXUS"
CATALOG_MAGIC = b"DXOB"
SECTOR_MAGIC = b"DXSC"
FORMAT_VERSION = 1

# --- Player snapshots ---

# Skill ids in Skill = (...) tuples and binary skill records
SKILL_NAMES = {
    6: "fist",
    7: "club",
    8: "sword",
    9: "axe",
    10: "distance",
    11: "shielding",
    14: "fishing",
}
LEVEL_SKILL_ID = 0
MAGIC_LEVEL_SKILL_ID = 1
# Text Skill tuples carry at least this many fields; experience sits at index 11
MIN_SKILL_FIELDS = 15
SKILL_EXPERIENCE_INDEX = 11
EQUIPMENT_SLOTS = range(1, 11)

# Snapshot date embedded in a file name
# Example: usr/2024-05-17/00042.usr
SNAPSHOT_DATE_PATTERN = re.compile(r"(?P<date>\d{4}-\d{2}-\d{2})")

# --- Item catalog ---

# Bit order of the catalog flags bitset. Bit 17 (Take) marks portable items.
ITEM_FLAG_NAMES = (
    "Bank",
    "Clip",
    "Bottom",
    "Top",
    "Container",
    "Chest",
    "Cumulative",
    "UseEvent",
    "MultiUse",
    "DistUse",
    "Key",
    "Food",
    "Rune",
    "Text",
    "LiquidContainer",
    "Unpass",
    "Unmove",
    "Take",
    "Hang",
    "Rotate",
    "Light",
    "Height",
    "Wearout",
    "Expire",
    "Weapon",
    "Shield",
    "Bow",
    "Throw",
    "Wand",
    "Ammo",
    "Armor",
    "Corpse",
)
TAKE_FLAG_BIT = ITEM_FLAG_NAMES.index("Take")
# Type ids up to this value are reserved engine objects
MAX_RESERVED_TYPE_ID = 10


# --- NPC behaviour ---

# Example: "sell","rope" -> Type=3003, Amount=1, Price=15, "Do you want to sell ..."
TYPE_PRICE_PATTERN = re.compile(r"Type\s*=\s*(?P<type_id>\d+).*?Price\s*=\s*(?P<price>\d+)")
TYPE_PATTERN = re.compile(r"Type\s*=\s*(?P<type_id>\d+)")
PRICE_PATTERN = re.compile(r"Price\s*=\s*(?P<price>\d+)")
SELL_TRIGGER_PATTERN = re.compile(r"\bsell\b", re.IGNORECASE)
SPELL_TEACHING_PATTERN = re.compile(r"(learn|buy) the spell", re.IGNORECASE)
# Example: Druid,"learn","light","magic" -> ...
VOCATION_PATTERNS = {
    "Knight": re.compile(r"\bknight\s*,", re.IGNORECASE),
    "Paladin": re.compile(r"\bpaladin\s*,", re.IGNORECASE),
    "Druid": re.compile(r"\bdruid\s*,", re.IGNORECASE),
    "Sorcerer": re.compile(r"\bsorcerer\s*,", re.IGNORECASE),
}

# Example: Sorcerer,"wand","of","vortex" -> Type=3074, Price=500, "This wand is only for sorcerers ..."
RUNE_ITEM_PATTERN = re.compile(r"rune|wand|rod", re.IGNORECASE)
RUNE_CHARGES_PATTERN = re.compile(r"Data\s*=\s*(?P<charges>\d+)")
# Bulk offers ("%1 runes") repeat a single-item offer
BULK_OFFER_MARKER = "%1"
RUNE_VOCATION_PREFIX_PATTERN = re.compile(
    r"^(?P<vocation>knight|paladin|druid|sorcerer)\s*,", re.IGNORECASE
)
RUNE_VOCATION_TEXT_PATTERN = re.compile(
    r"only for (?P<vocation>knight|paladin|druid|sorcerer)", re.IGNORECASE
)
# NPC file name markers for the account type of an offer
# Example: tibra-free-runes.npc, xodet-prem-runes.npc
FREE_ACCOUNT_MARKERS = ("-free-",)
PREMIUM_ACCOUNT_MARKERS = ("-prem-", "-max-")

# --- Map sectors ---

# Example: 1024-1006-7.sec
SECTOR_FILENAME_PATTERN = re.compile(r"^(?P<x>\d+)-(?P<y>\d+)-(?P<z>\d+)$")
SECTOR_SIZE = 32
# Text sector object line
# Example: 12-7: Content={4515, 2853 ChestQuestNumber=4 Content={3031 Amount=50, 3035}}
SECTOR_OFFSET_PATTERN = re.compile(r"^\s*(?P<ox>\d+)-(?P<oy>\d+):")
CHEST_QUEST_PATTERN = re.compile(r"ChestQuestNumber\s*=\s*(?P<quest>\d+)")
KEY_NUMBER_PATTERN = re.compile(r"KeyNumber\s*=\s*(?P<key>\d+)")
CONTENT_PATTERN = re.compile(r"Content\s*=\s*\{(?P<content>[^}]*)\}")
SECTOR_ATTR_QUEST = 0x01
SECTOR_ATTR_KEY = 0x02
SECTOR_ATTR_CONTENT = 0x04

# Quest numbers that only exist on the starter island
ROOK_QUEST_NUMBERS = frozenset(list(range(17, 36)) + [58, 59, 223, 224, 255])

# --- Raids ---

# Example: # Process: three waves, orcs then orc warlords
PROCESS_COMMENT_PATTERN = re.compile(r"^#\s*Process:(?P<text>.*)$", re.IGNORECASE | re.MULTILINE)
WAVE_WORDS = ("one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten")
SECONDS_PER_DAY = 86400

# --- Spells ---

INIT_SPELLS_ANCHOR = re.compile(r"\bInitSpells\s*\(")
# Example: Spell = CreateSpell(23, "exevo", "gran mas vis");
CREATE_SPELL_PATTERN = re.compile(r"CreateSpell\s*\(\s*(?P<args>[^;]*?)\)\s*;")
# Example: Spell->Mana = 80;
SPELL_PROPERTY_PATTERN = re.compile(
    r'Spell\s*->\s*(?P<name>\w+)\s*=\s*(?P<value>"[^"]*"|[^;]+)\s*;'
)
QUOTED_PATTERN = re.compile(r'"(?P<text>[^"]*)"')
C_COMMENT_PATTERN = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)

# --- Creatures ---

# Helper monsters that are not real creatures
EXCLUDED_MONSTER_FILES = frozenset({
    "deathslicer.mon",
    "slime2.mon",
    "illusion.mon",
    "butterflyblue.mon",
    "butterflyyellow.mon",
    "butterflyred.mon",
    "butterflypurple.mon",
    "mimic.mon",
    "halloweenhare.mon",
    "flamethrower.mon",
    "magicthrower.mon",
    "plaguethrower.mon",
    "shredderthrower.mon",
    "gamemaster.mon",
    "human.mon",
})
EXCLUDED_RAID_FILES = frozenset({"halloweenhare.evt"})
