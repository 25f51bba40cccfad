"""Normalizer - turns decoded file contents into persistable records.

Pure functions. Lookups against already persisted data (creature names,
spell levels) are passed in as plain dicts by the pipeline.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from demonax.core.errors import SchemaViolation
from demonax.core.models import (
    Creature,
    PlayerSnapshot,
    Quest,
    QuestChest,
    RaidEvent,
    RaidKind,
    RaidRecord,
    SnapshotRecord,
    SpellTeacherRecord,
    SpellTeaching,
)
from demonax.parser.patterns import (
    ROOK_QUEST_NUMBERS,
    SECONDS_PER_DAY,
    SNAPSHOT_DATE_PATTERN,
    WAVE_WORDS,
)

logger = logging.getLogger(__name__)

MIN_CHANCE = 1
MAX_CHANCE = 999


# --- Creatures ---


def validate_loot(creature: Creature) -> list[SchemaViolation]:
    """
    Drop loot rows whose raw chance is outside 1..999.

    The creature is modified in place. Slots of the kept rows are unchanged.

    Returns:
        One SchemaViolation per dropped row
    """
    violations = []
    kept = []
    for entry in creature.loot:
        if MIN_CHANCE <= entry.chance_raw <= MAX_CHANCE:
            kept.append(entry)
            continue
        violations.append(
            SchemaViolation(
                "creature_loot",
                (creature.race, entry.item_id),
                f"chance {entry.chance_raw} outside {MIN_CHANCE}..{MAX_CHANCE}",
            )
        )
    creature.loot = kept
    return violations


# --- Quests ---


def aggregate_quests(chests: Iterable[QuestChest]) -> list[Quest]:
    """
    Group chests by quest number.

    Chests are visited in (sector, x, y) order so the result does not depend
    on decode order. The quest takes the first chest's coordinates and the
    order-preserving union of all chest contents. Rook-only quest numbers
    are dropped.
    """
    ordered = sorted(chests, key=lambda c: (c.sector_name, c.x, c.y, c.z))
    quests: dict[int, Quest] = {}
    for chest in ordered:
        if chest.quest_number in ROOK_QUEST_NUMBERS:
            continue
        quest = quests.get(chest.quest_number)
        if quest is None:
            quest = Quest(
                id=chest.quest_number,
                name=chest.name,
                x=chest.x,
                y=chest.y,
                z=chest.z,
            )
            quests[chest.quest_number] = quest
        quest.chests.append(chest)
        for item_id in chest.item_ids:
            if item_id not in quest.reward_items:
                quest.reward_items.append(item_id)
    return [quests[number] for number in sorted(quests)]


# --- Raids ---


def count_word(count: int) -> str:
    """1 -> "one" ... 10 -> "ten", digits beyond that."""
    if 1 <= count <= len(WAVE_WORDS):
        return WAVE_WORDS[count - 1]
    return str(count)


def raid_races(raid: RaidEvent) -> list[int]:
    """Races spawned by a raid, first-seen order."""
    races: list[int] = []
    for wave in raid.waves:
        for spawn in wave.spawns:
            if spawn.race not in races:
                races.append(spawn.race)
    return races


def build_raid_record(raid: RaidEvent, creature_names: dict[int, str]) -> RaidRecord:
    """
    Flatten a raid event into its table row.

    Args:
        raid: Decoded raid event
        creature_names: Race -> creature name; unknown races print as "Race N"

    Returns:
        RaidRecord with exactly one interval column set (or none when the
        file has no Interval)
    """
    interval_seconds: Optional[int] = None
    interval_days: Optional[float] = None
    if raid.interval is not None:
        if raid.kind is RaidKind.CYCLIC:
            interval_days = raid.interval / SECONDS_PER_DAY
        else:
            interval_seconds = raid.interval

    # race -> [min total, max total]
    totals: dict[int, list[int]] = {}
    for wave in raid.waves:
        for spawn in wave.spawns:
            total = totals.setdefault(spawn.race, [0, 0])
            total[0] += spawn.min_count
            total[1] += spawn.max_count

    parts = []
    for race in raid_races(raid):
        low, high = totals[race]
        name = creature_names.get(race, f"Race {race}")
        parts.append(f"{low} {name}" if low == high else f"{low} to {high} {name}")

    messages = [wave.message for wave in raid.waves if wave.message]
    composition = [
        {
            "wave": wave.number,
            "delay": wave.delay,
            "spawns": [
                {"race": s.race, "min": s.min_count, "max": s.max_count}
                for s in wave.spawns
            ],
        }
        for wave in raid.waves
    ]

    return RaidRecord(
        name=raid.name,
        kind=raid.kind,
        raid_type=raid.raid_type,
        waves=raid.process_word or count_word(len(raid.waves)),
        interval_seconds=interval_seconds,
        interval_days=interval_days,
        message="; ".join(messages) if messages else None,
        creatures=", ".join(parts) if parts else "Unknown",
        spawn_composition=composition,
    )


# --- Spell teachers ---


def build_teacher_records(
    offers: Iterable[SpellTeaching],
    spells: dict[int, tuple[str, int]],
) -> list[SpellTeacherRecord]:
    """
    Attach spell name and level to teaching offers.

    Offers for spell ids missing from `spells` keep the name "Spell N" and
    no level. Repeated (npc, spell, vocation) offers keep the last price.
    """
    records: dict[tuple[str, int, str], SpellTeacherRecord] = {}
    for offer in offers:
        name, level = spells.get(offer.spell_id, (f"Spell {offer.spell_id}", None))
        records[(offer.npc_name, offer.spell_id, offer.vocation)] = SpellTeacherRecord(
            npc_name=offer.npc_name,
            spell_id=offer.spell_id,
            spell_name=name,
            price=offer.price,
            vocation=offer.vocation,
            level_required=level,
        )
    return list(records.values())


# --- Player snapshots ---


def snapshot_date_for(path: Path, override: Optional[date] = None) -> date:
    """
    Date a .usr file belongs to.

    An explicit date wins, then a YYYY-MM-DD anywhere in the path, then today.
    """
    if override is not None:
        return override
    match = SNAPSHOT_DATE_PATTERN.search(str(path))
    if match:
        try:
            return date.fromisoformat(match.group("date"))
        except ValueError:
            logger.debug("Ignoring invalid date in %s", path)
    return date.today()


def build_snapshot_record(
    path: Path, snapshot: PlayerSnapshot, snapshot_date: date
) -> SnapshotRecord:
    return SnapshotRecord(snapshot=snapshot, snapshot_date=snapshot_date, source_file=path.name)
