"""Tests for record normalization."""

from datetime import date
from pathlib import Path

import pytest

from demonax.core.models import (
    Creature,
    LootEntry,
    QuestChest,
    RaidKind,
    SpellTeaching,
)
from demonax.core.normalizer import (
    aggregate_quests,
    build_raid_record,
    build_teacher_records,
    count_word,
    snapshot_date_for,
    validate_loot,
)
from demonax.parser.raid_parser import parse_raid_text
from tests.conftest import RAID_EVT


def chest(quest, sector, x, y, items, key=None):
    return QuestChest(
        quest_number=quest, item_ids=items, x=x, y=y, z=7, sector_name=sector, key_number=key
    )


class TestValidateLoot:
    def test_out_of_range_chances_are_dropped(self):
        creature = Creature(
            race=1,
            name="x",
            loot=[
                LootEntry(item_id=1, max_amount=1, chance_raw=0, slot=0),
                LootEntry(item_id=2, max_amount=1, chance_raw=500, slot=1),
                LootEntry(item_id=3, max_amount=1, chance_raw=1000, slot=2),
            ],
        )
        violations = validate_loot(creature)
        assert [e.item_id for e in creature.loot] == [2]
        assert creature.loot[0].slot == 1
        assert len(violations) == 2
        assert violations[0].entity == "creature_loot"
        assert violations[0].key == (1, 1)


class TestAggregateQuests:
    def test_first_chest_gives_coordinates(self):
        quests = aggregate_quests(
            [
                chest(4, "1001-1000-7", 32033, 32002, [3607, 3031]),
                chest(4, "1000-1000-7", 32003, 32004, [3264, 3031]),
            ]
        )
        assert len(quests) == 1
        quest = quests[0]
        assert quest.id == 4
        assert quest.name == "Quest 4"
        assert (quest.x, quest.y, quest.z) == (32003, 32004, 7)
        assert quest.reward_items == [3264, 3031, 3607]
        assert [c.sector_name for c in quest.chests] == ["1000-1000-7", "1001-1000-7"]

    def test_input_order_does_not_matter(self):
        chests = [
            chest(4, "b", 1, 1, [1]),
            chest(4, "a", 5, 5, [2]),
            chest(6, "a", 2, 2, [3]),
        ]
        forward = aggregate_quests(chests)
        backward = aggregate_quests(list(reversed(chests)))
        assert [(q.id, q.x, q.reward_items) for q in forward] == [
            (q.id, q.x, q.reward_items) for q in backward
        ]
        assert [q.id for q in forward] == [4, 6]

    def test_rook_quests_dropped(self):
        quests = aggregate_quests([chest(17, "a", 1, 1, [1]), chest(255, "a", 2, 2, [1])])
        assert quests == []


class TestRaidRecord:
    def test_one_time_raid(self):
        raid = parse_raid_text(RAID_EVT, "orcs")
        record = build_raid_record(raid, {35: "Demon"})
        assert record.kind is RaidKind.ONE_TIME
        assert record.interval_seconds == 3600
        assert record.interval_days is None
        assert record.waves == "two"
        assert record.message == "Orcs are coming!; The warlord arrives."
        assert record.creatures == "6 to 11 Race 5, 1 Demon"
        assert record.spawn_composition == [
            {"wave": 1, "delay": 0, "spawns": [{"race": 5, "min": 5, "max": 10}]},
            {
                "wave": 2,
                "delay": 120,
                "spawns": [{"race": 5, "min": 1, "max": 1}, {"race": 35, "min": 1, "max": 1}],
            },
        ]

    def test_cyclic_raid_interval_in_days(self):
        raid = parse_raid_text("Type = CyclicRaid\nInterval = 172800\nRace = 5\n", "rats")
        record = build_raid_record(raid, {5: "Rat"})
        assert record.kind is RaidKind.CYCLIC
        assert record.interval_days == pytest.approx(2.0)
        assert record.interval_seconds is None
        assert record.waves == "one"
        assert record.creatures == "1 Rat"
        assert record.message is None

    def test_no_spawns(self):
        record = build_raid_record(parse_raid_text("Type = x\n", "empty"), {})
        assert record.creatures == "Unknown"

    def test_count_word(self):
        assert count_word(3) == "three"
        assert count_word(12) == "12"


class TestTeacherRecords:
    def test_enriched_from_spell_lookup(self):
        offers = [
            SpellTeaching(npc_name="Elane", spell_id=10, price=100, vocation="Paladin"),
            SpellTeaching(npc_name="Elane", spell_id=77, price=300, vocation="Druid"),
        ]
        records = build_teacher_records(offers, {10: ("Light", 8)})
        assert (records[0].spell_name, records[0].level_required) == ("Light", 8)
        assert (records[1].spell_name, records[1].level_required) == ("Spell 77", None)

    def test_repeated_offer_last_wins(self):
        offers = [
            SpellTeaching(npc_name="Elane", spell_id=10, price=100, vocation="Paladin"),
            SpellTeaching(npc_name="Elane", spell_id=10, price=150, vocation="Paladin"),
        ]
        records = build_teacher_records(offers, {})
        assert len(records) == 1
        assert records[0].price == 150


class TestSnapshotDate:
    def test_override_wins(self):
        assert snapshot_date_for(Path("2024-01-02/a.usr"), date(2025, 5, 5)) == date(2025, 5, 5)

    def test_date_from_path(self):
        assert snapshot_date_for(Path("/backup/2024-01-02/00/a.usr")) == date(2024, 1, 2)

    def test_invalid_date_falls_back_to_today(self):
        assert snapshot_date_for(Path("/backup/2024-13-45/a.usr")) == date.today()
