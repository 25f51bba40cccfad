"""Creature decoder for .mon files."""

from pathlib import Path
from typing import Any

from demonax.core.errors import DecodeError
from demonax.core.models import Creature, LootEntry
from demonax.parser.structured_text import (
    Document,
    as_int,
    as_sequence,
    parse_document,
    read_latin1,
)


def parse_creature_file(path: Path) -> Creature:
    """
    Decode one .mon file.

    Args:
        path: Path to the .mon file

    Returns:
        Creature with its full loot table (duplicate item ids kept)

    Raises:
        DecodeError: If Name or RaceNumber is missing or loot is malformed
    """
    creature = parse_creature_text(read_latin1(path))
    creature.source_file = path.name
    return creature


def parse_creature_text(text: str) -> Creature:
    doc = parse_document(text)

    if "RaceNumber" not in doc:
        raise DecodeError("missing RaceNumber field")
    name = doc.get("Name")
    if not isinstance(name, str) or not name.strip():
        raise DecodeError("missing Name field")

    skills = _skills(doc)
    return Creature(
        race=as_int(doc.get("RaceNumber"), "RaceNumber"),
        name=name.strip(),
        article=str(doc.get("Article", "")).strip(),
        experience=_optional_int(doc, "Experience"),
        hit_points=skills.get("HitPoints", 0),
        attack=_optional_int(doc, "Attack"),
        defense=_optional_int(doc, "Defend"),
        armor=_optional_int(doc, "Armor"),
        flags=[str(flag) for flag in as_sequence(doc.get("Flags", []), "Flags")],
        skills=skills,
        loot=_loot(doc.get("Inventory")),
    )


def _optional_int(doc: Document, key: str) -> int:
    value = doc.get(key)
    return 0 if value is None else as_int(value, key)


def _skills(doc: Document) -> dict[str, int]:
    """``Skills = {(HitPoints, 8200, 0, 8200, 0, 0, 0), ...}`` -> name: value."""
    skills = {}
    for entry in as_sequence(doc.get("Skills", []), "Skills"):
        if not isinstance(entry, tuple) or len(entry) < 2:
            raise DecodeError(f"Skills: malformed entry {entry!r}")
        skills[str(entry[0])] = as_int(entry[1], f"Skills {entry[0]}")
    return skills


def _loot(value: Any) -> list[LootEntry]:
    """``Inventory = {(item, count, chance), ...}``. Order and duplicates are kept."""
    if value is None:
        return []
    loot = []
    for slot, entry in enumerate(as_sequence(value, "Inventory")):
        if not isinstance(entry, tuple) or len(entry) != 3:
            raise DecodeError(f"Inventory: expected (item, count, chance), found {entry!r}")
        item_id, count, chance = (as_int(v, "Inventory") for v in entry)
        loot.append(
            LootEntry(item_id=item_id, max_amount=count, chance_raw=chance, slot=slot)
        )
    return loot
