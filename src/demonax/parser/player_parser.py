"""Player snapshot decoder for .usr files.

Two encodings are accepted. Files starting with the DXUS magic use the fixed
binary layout:

    magic "DXUS", u8 version
    u32 player_id, str8 name
    u16 level, u32 experience, u16 magic_level
    u8  n x (u8 skill_id, u16 value)
    u8  n x (u8 slot, u16 type_id)
    u16 n x (u16 quest_id, u16 value)
    u16 n x (u16 race_id, u32 kills)
    u16 n x (u16 race_id, u16 skins)

Anything else is read as the server's structured text dialect (ID, Name,
Skill tuples, QuestValues, Bestiary, Harvesting, Inventory).
"""

from pathlib import Path
from typing import Any

from demonax.core.errors import DecodeError
from demonax.core.models import PlayerSnapshot
from demonax.parser.binary import ByteCursor, has_magic
from demonax.parser.patterns import (
    EQUIPMENT_SLOTS,
    FORMAT_VERSION,
    LEVEL_SKILL_ID,
    MAGIC_LEVEL_SKILL_ID,
    MIN_SKILL_FIELDS,
    PLAYER_MAGIC,
    SKILL_EXPERIENCE_INDEX,
    SKILL_NAMES,
)
from demonax.parser.structured_text import (
    Assignment,
    Compound,
    as_int,
    as_sequence,
    as_text,
    parse_document,
)


def skill_name(skill_id: int) -> str:
    return SKILL_NAMES.get(skill_id, f"skill_{skill_id}")


def parse_player_file(path: Path) -> PlayerSnapshot:
    """
    Decode one .usr file.

    Args:
        path: Path to the .usr file

    Returns:
        PlayerSnapshot

    Raises:
        DecodeError: If the file is truncated or malformed
    """
    data = path.read_bytes()
    if has_magic(data, PLAYER_MAGIC):
        return parse_player_binary(data)
    return parse_player_text(data.decode("latin-1"))


def parse_player_binary(data: bytes) -> PlayerSnapshot:
    cursor = ByteCursor(data)
    cursor.expect_magic(PLAYER_MAGIC)
    cursor.expect_version(FORMAT_VERSION)

    snapshot = PlayerSnapshot(name="")
    snapshot.player_id = cursor.read_u32()
    snapshot.name = cursor.read_string(prefix=1)
    if not snapshot.name:
        raise DecodeError("player name is empty")
    snapshot.level = cursor.read_u16()
    snapshot.experience = cursor.read_u32()
    snapshot.magic_level = cursor.read_u16()

    for _ in range(cursor.read_u8()):
        skill_id = cursor.read_u8()
        snapshot.skills[skill_name(skill_id)] = cursor.read_u16()

    for _ in range(cursor.read_u8()):
        slot = cursor.read_u8()
        type_id = cursor.read_u16()
        if slot not in EQUIPMENT_SLOTS:
            raise DecodeError(f"equipment slot {slot} out of range")
        snapshot.equipment[slot] = type_id

    for _ in range(cursor.read_u16()):
        quest_id = cursor.read_u16()
        snapshot.quests[quest_id] = cursor.read_u16()

    for _ in range(cursor.read_u16()):
        race = cursor.read_u16()
        snapshot.bestiary[race] = cursor.read_u32()

    for _ in range(cursor.read_u16()):
        race = cursor.read_u16()
        snapshot.skinning[race] = cursor.read_u16()

    cursor.expect_end()
    return snapshot


def parse_player_text(text: str) -> PlayerSnapshot:
    doc = parse_document(text)

    if "ID" not in doc:
        raise DecodeError("missing ID field")
    if "Name" not in doc:
        raise DecodeError("missing Name field")

    snapshot = PlayerSnapshot(
        name=as_text(doc.get("Name"), "Name"),
        player_id=as_int(doc.get("ID"), "ID"),
    )

    for fields in doc.get_all("Skill"):
        # Short tuples are legacy placeholders
        if not isinstance(fields, tuple) or len(fields) < MIN_SKILL_FIELDS:
            continue
        skill_id = as_int(fields[0], "Skill id")
        value = as_int(fields[1], "Skill value")
        if skill_id == LEVEL_SKILL_ID:
            snapshot.level = value
            snapshot.experience = as_int(fields[SKILL_EXPERIENCE_INDEX], "experience")
        elif skill_id == MAGIC_LEVEL_SKILL_ID:
            snapshot.magic_level = value
        elif skill_id in SKILL_NAMES:
            snapshot.skills[skill_name(skill_id)] = value

    snapshot.quests = _pair_map(doc.get("QuestValues"), "QuestValues")
    snapshot.bestiary = _pair_map(doc.get("Bestiary"), "Bestiary")
    snapshot.skinning = _pair_map(doc.get("Harvesting"), "Harvesting")
    snapshot.equipment = _equipment(doc.get("Inventory"))
    return snapshot


def _pair_map(value: Any, what: str) -> dict[int, int]:
    """Turn ``{(id, count), ...}`` into an ordered dict."""
    if value is None:
        return {}
    result = {}
    for pair in as_sequence(value, what):
        if not isinstance(pair, tuple) or len(pair) != 2:
            raise DecodeError(f"{what}: expected (id, value) pairs, found {pair!r}")
        result[as_int(pair[0], what)] = as_int(pair[1], what)
    return result


def _equipment(value: Any) -> dict[int, int]:
    """Map body slots to the outermost item type in each slot."""
    if value is None:
        return {}
    equipment = {}
    for entry in as_sequence(value, "Inventory"):
        if not isinstance(entry, Compound):
            continue
        atoms = entry.atoms()
        content = entry.assignments().get("Content")
        if not atoms or not isinstance(atoms[0], int):
            continue
        if not isinstance(content, list) or not content:
            continue
        slot = atoms[0]
        if slot not in EQUIPMENT_SLOTS:
            continue
        first = content[0]
        if isinstance(first, Compound):
            first = first.atoms()[0] if first.atoms() else None
        if isinstance(first, Assignment) or not isinstance(first, int):
            continue
        equipment[slot] = first
    return equipment
