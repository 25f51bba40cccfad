"""Global test fixtures."""

import struct
from pathlib import Path

import pytest

from demonax.core.scheduler import FileScheduler
from demonax.db.connection import Database
from demonax.db.repository import Repository
from demonax.parser.patterns import (
    CATALOG_MAGIC,
    FORMAT_VERSION,
    PLAYER_MAGIC,
    SECTOR_ATTR_CONTENT,
    SECTOR_ATTR_KEY,
    SECTOR_ATTR_QUEST,
    SECTOR_MAGIC,
    TAKE_FLAG_BIT,
)

TAKE = 1 << TAKE_FLAG_BIT


# --- Binary record builders ---


def str8(text: str) -> bytes:
    raw = text.encode("latin-1")
    return struct.pack("<B", len(raw)) + raw


def str16(text: str) -> bytes:
    raw = text.encode("latin-1")
    return struct.pack("<H", len(raw)) + raw


def build_player(
    name="Bubble",
    player_id=42,
    level=20,
    experience=98800,
    magic_level=3,
    skills=(),
    equipment=(),
    quests=(),
    bestiary=(),
    skinning=(),
) -> bytes:
    """DXUS player file. Collections are sequences of (id, value) pairs."""
    data = PLAYER_MAGIC + struct.pack("<B", FORMAT_VERSION)
    data += struct.pack("<I", player_id) + str8(name)
    data += struct.pack("<HIH", level, experience, magic_level)
    data += struct.pack("<B", len(skills))
    data += b"".join(struct.pack("<BH", s, v) for s, v in skills)
    data += struct.pack("<B", len(equipment))
    data += b"".join(struct.pack("<BH", s, t) for s, t in equipment)
    data += struct.pack("<H", len(quests))
    data += b"".join(struct.pack("<HH", q, v) for q, v in quests)
    data += struct.pack("<H", len(bestiary))
    data += b"".join(struct.pack("<HI", r, k) for r, k in bestiary)
    data += struct.pack("<H", len(skinning))
    data += b"".join(struct.pack("<HH", r, c) for r, c in skinning)
    return data


def catalog_record(type_id, name, flags=TAKE, attributes=(), description="") -> bytes:
    data = struct.pack("<H", type_id) + str8(name) + struct.pack("<I", flags)
    data += struct.pack("<B", len(attributes))
    data += b"".join(str8(k) + struct.pack("<I", v) for k, v in attributes)
    return data + str16(description)


def build_catalog(*records: bytes) -> bytes:
    """DXOB catalog from catalog_record() outputs."""
    return CATALOG_MAGIC + struct.pack("<BI", FORMAT_VERSION, len(records)) + b"".join(records)


def sector_object(ox, oy, type_id=2853, quest=None, key=None, contents=None) -> bytes:
    mask = 0
    tail = b""
    if quest is not None:
        mask |= SECTOR_ATTR_QUEST
        tail += struct.pack("<H", quest)
    if key is not None:
        mask |= SECTOR_ATTR_KEY
        tail += struct.pack("<H", key)
    if contents is not None:
        mask |= SECTOR_ATTR_CONTENT
        tail += struct.pack("<B", len(contents))
        tail += b"".join(struct.pack("<H", c) for c in contents)
    return struct.pack("<BBHB", ox, oy, type_id, mask) + tail


def build_sector(*objects: bytes) -> bytes:
    """DXSC sector from sector_object() outputs."""
    return SECTOR_MAGIC + struct.pack("<BH", FORMAT_VERSION, len(objects)) + b"".join(objects)


# --- Text fixtures ---

RAT_MON = """# Rat
RaceNumber    = 21
Name          = "rat"
Article       = "a"
Outfit        = (21, 0-0-0-0)
Flags         = {KickBoxes}
Skills        = {(HitPoints, 20, 0, 20, 0, 0, 0), (GoStrength, 10, 0, 10, 0, 0, 0)}
Attack        = 8
Defend        = 2
Armor         = 1
Experience    = 5
Inventory     = {(3031, 4, 999), (3607, 1, 399), (3031, 2, 100)}
"""

DEMON_MON = """RaceNumber    = 35
Name          = "Demon"
Experience    = 6000
Attack        = 100
Defend        = 50
Armor         = 40
Skills        = {(HitPoints, 8200, 0, 8200, 0, 0, 0)}
Inventory     = {(3031, 100, 999), (3264, 1, 499)}
"""

TRADER_NPC = """# Trader
Name = "Sam"
Behaviour = {
ADDRESS,"hello$",! -> "Hello, %N."
"sell","sword" -> Type=3264, Amount=1, Price=25, "Do you want to sell a sword for %P gold?", Topic=1
"buy","sword" -> Type=3264, Amount=1, Price=120, "Do you want to buy a sword for %P gold?", Topic=2
"sell","mace" -> Type=3286, Amount=1, Price=30, "Do you want to sell a mace?", Topic=1
}
"""

TEACHER_NPC = """Name = "Elane"
Behaviour = {
Paladin,"learn","spell","light" -> Type=10, Price=100, "Do you want to learn the spell 'Light' for %P gold?", Topic=5
"learn","spell","find" -> Type=20, Price=500, "Do you want to learn the spell 'Find Person' for %P gold?", Topic=5
}
"""

RUNE_NPC = """Name = "Tibra"
Behaviour = {
ADDRESS,"hello$",! -> "Welcome to the rune shop, %N."
"sudden","death" -> Type=3155, Data=1, Price=325, "Do you want to buy a sudden death rune for %P gold?", Topic=1
"%1","sudden","death" -> Type=3155, Data=1, Amount=%1, Price=325*%1, "Do you want to buy %1 sudden death runes?", Topic=1
Sorcerer,"wand","of","vortex" -> Type=3074, Price=500, "This wand is only for sorcerers. Do you want to buy it?", Topic=2
"snakebite" -> Type=3066, Price=500, "This rod is only for druids. Do you want to buy it?", Topic=3
"blank" -> Type=3147, Price=10, "Do you want to buy a blank rune for %P gold?", Topic=4
}
"""

RAID_EVT = """# Orc raid
# Process: two waves of orcs
Type     = BigRaid
Interval = 3600
Delay    = 0
Message  = "Orcs are coming!"
Race     = 5
Count    = (5, 10)
Position = [32000, 32100, 7]
Radius   = 5
Delay    = 120
Message  = "The warlord arrives."
Race     = 5
Count    = (1, 1)
Race     = 35
"""

MAGIC_CC = """// spell table
void InitSpells(void){
    TSpellData *Spell;

    Spell = CreateSpell(10, "utevo", "lux");
    Spell->Mana = 20;
    Spell->Level = 8;
    Spell->Flags = 0;
    Spell->Comment = "Light";

    Spell = CreateSpell(20, "exiva", "");
    Spell->Mana = 20;
    Spell->Level = 8;
    Spell->Comment = "Find Person";

    Spell = CreateSpell(21, "adori", "vita", "vis");
    Spell->RuneGr = 79;
    Spell->RuneNr = 8;
    Spell->Level = 45;
    Spell->RuneLevel = 15;
    Spell->Amount = 1;
    Spell->Flags = 3;
    Spell->Comment = "Sudden Death";
}

void Other(void){
    Spell = CreateSpell(99, "not", "scanned");
}
"""

RECIPES_CSV = """tool_id,corpse_id,next_corpse_id,percent_chance,reward_id,race_id
5908,4011,4012,25,5878,21
5908,4019,4020,10,5876,35
"""


def write(path: Path, content) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="latin-1")
    return path


@pytest.fixture
def game_path(tmp_path):
    """A small game directory with every input family."""
    root = tmp_path / "game"
    write(root / "mon" / "rat.mon", RAT_MON)
    write(root / "mon" / "demon.mon", DEMON_MON)
    write(root / "mon" / "gamemaster.mon", 'RaceNumber = 1\nName = "gamemaster"\n')
    write(root / "mon" / "orcs.evt", RAID_EVT)
    write(root / "mon" / "halloweenhare.evt", "Type = BigRaid\nRace = 9\n")
    write(
        root / "dat" / "objects.srv",
        build_catalog(
            catalog_record(5, "reserved"),
            catalog_record(1000, "a wall", flags=0),
            catalog_record(3031, "a gold coin", attributes=[("Weight", 10)]),
            catalog_record(3264, "a sword", attributes=[("Weight", 3500), ("Attack", 14)]),
            catalog_record(3607, "a cheese", description="It smells."),
        ),
    )
    write(root / "npc" / "sam.npc", TRADER_NPC)
    write(root / "npc" / "elane.npc", TEACHER_NPC)
    write(
        root / "map" / "1000-1000-7.sec",
        build_sector(
            sector_object(3, 4, quest=4, contents=[3264, 3031]),
            sector_object(5, 5),
        ),
    )
    write(
        root / "map" / "1001-1000-7.sec",
        "0-0: Content={4515}\n"
        "1-2: Content={2853 ChestQuestNumber=4 KeyNumber=77 Content={3607, 3031 Amount=50}}\n"
        "2-2: Content={2853 ChestQuestNumber=20 Content={3031}}\n",
    )
    write(root / "map" / "readme.sec", "not a sector")
    write(root / "src" / "magic.cc", MAGIC_CC)
    write(root / "harvesting.csv", RECIPES_CSV)
    return root


# --- Database fixtures ---


@pytest.fixture
def db(tmp_path):
    """Create a temporary database."""
    db_path = tmp_path / "test.db"
    db = Database(db_path)
    db.connect()
    yield db
    db.close()


@pytest.fixture
def repo(db):
    """Create a repository."""
    return Repository(db)


@pytest.fixture
def scheduler():
    return FileScheduler(max_workers=2)
