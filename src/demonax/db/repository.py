"""Repository - batched UPSERTs and queries for all entities."""

import json
import logging
import sqlite3
from datetime import datetime
from itertools import groupby
from typing import Any, Callable, Iterable, Optional, Sequence

from demonax.core.errors import PersistenceError, SchemaViolation
from demonax.core.models import (
    BatchResult,
    Creature,
    Item,
    ItemPrice,
    Quest,
    RaidRecord,
    RuneSeller,
    SkinningRecipe,
    SnapshotRecord,
    SpellEntry,
    SpellTeacherRecord,
)
from demonax.db.connection import Database

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500

RowWriter = Callable[[sqlite3.Cursor, Any], None]


def _placeholders(count: int) -> str:
    return ", ".join("?" * count)


def _chunks(records: Sequence, size: int) -> Iterable[Sequence]:
    for start in range(0, len(records), size):
        yield records[start:start + size]


class Repository:
    """Data access layer for all entities."""

    def __init__(self, db: Database) -> None:
        self.db = db
        # record type -> (entity name, key function, row writer)
        self._writers: dict[type, tuple[str, Callable[[Any], Any], RowWriter]] = {
            SnapshotRecord: (
                "daily_snapshots",
                lambda r: (r.snapshot.name, r.snapshot_date.isoformat()),
                self._write_snapshot,
            ),
            Creature: ("creatures", lambda r: r.race, self._write_creature),
            Item: ("items", lambda r: r.type_id, self._write_item),
            ItemPrice: (
                "item_prices",
                lambda r: (r.item_id, r.npc_name, r.mode.value),
                self._write_price,
            ),
            Quest: ("quests", lambda r: r.id, self._write_quest),
            RaidRecord: ("raids", lambda r: r.name, self._write_raid),
            SkinningRecipe: (
                "skinning_recipes",
                lambda r: (r.tool_id, r.corpse_id),
                self._write_recipe,
            ),
            SpellEntry: ("spells", lambda r: r.id, self._write_spell),
            SpellTeacherRecord: (
                "spell_teachers",
                lambda r: (r.npc_name, r.spell_id, r.vocation),
                self._write_teacher,
            ),
            RuneSeller: (
                "rune_sellers",
                lambda r: (r.npc_name, r.item_id, r.vocation),
                self._write_rune_seller,
            ),
        }

    # --- Settings ---

    def get_setting(self, key: str) -> Optional[str]:
        """Get a setting value by key."""
        row = self.db.fetchone("SELECT value FROM settings WHERE key = ?", (key,))
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        """Set a setting value."""
        self.db.execute(
            "INSERT OR REPLACE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
            (key, value, datetime.now().isoformat()),
        )

    # --- Batched writes ---

    def upsert_batch(self, records: Sequence) -> BatchResult:
        """
        Write records in one transaction per record type.

        Rows violating a constraint are skipped and returned as
        SchemaViolation errors. A locked or failing database is retried once,
        then PersistenceError is raised.

        Args:
            records: Decoded records of any supported type

        Returns:
            BatchResult with the number of rows written and the violations
        """
        result = BatchResult()
        for record_type, group in groupby(records, key=type):
            if record_type not in self._writers:
                raise TypeError(f"No writer for {record_type.__name__}")
            entity, key, writer = self._writers[record_type]
            result.merge(self._write_batch(entity, list(group), key, writer))
        return result

    def write_chunked(self, records: Sequence, batch_size: int = DEFAULT_BATCH_SIZE) -> BatchResult:
        """Write records in transactions of at most `batch_size` rows."""
        result = BatchResult()
        for chunk in _chunks(records, batch_size):
            result.merge(self.upsert_batch(chunk))
        return result

    def _write_batch(
        self,
        entity: str,
        records: list,
        key: Callable[[Any], Any],
        writer: RowWriter,
    ) -> BatchResult:
        for attempt in (1, 2):
            result = BatchResult()
            try:
                with self.db.transaction() as cursor:
                    for record in records:
                        cursor.execute("SAVEPOINT row_write")
                        try:
                            writer(cursor, record)
                        except sqlite3.IntegrityError as e:
                            cursor.execute("ROLLBACK TO row_write")
                            cursor.execute("RELEASE row_write")
                            result.errors.append(SchemaViolation(entity, key(record), str(e)))
                            continue
                        cursor.execute("RELEASE row_write")
                        result.written += 1
                return result
            except sqlite3.OperationalError as e:
                if attempt == 2:
                    raise PersistenceError(
                        f"Writing {len(records)} {entity} row(s) failed twice: {e}"
                    ) from e
                logger.warning("Write of %d %s row(s) failed, retrying: %s", len(records), entity, e)
        return BatchResult()

    @staticmethod
    def _delete_stale(
        cursor: sqlite3.Cursor, table: str, parent_col: str, parent_id: int, key_col: str, keys: list
    ) -> None:
        """Delete child rows of one parent whose key is not in `keys`."""
        if keys:
            cursor.execute(
                f"DELETE FROM {table} WHERE {parent_col} = ? AND {key_col} NOT IN ({_placeholders(len(keys))})",
                (parent_id, *keys),
            )
        else:
            cursor.execute(f"DELETE FROM {table} WHERE {parent_col} = ?", (parent_id,))

    # --- Players ---

    def _write_snapshot(self, cursor: sqlite3.Cursor, record: SnapshotRecord) -> None:
        snap = record.snapshot
        day = record.snapshot_date.isoformat()
        cursor.execute(
            """INSERT INTO players (name, first_seen, last_seen) VALUES (?, ?, ?)
               ON CONFLICT(name) DO UPDATE SET
                   first_seen = MIN(first_seen, excluded.first_seen),
                   last_seen = MAX(last_seen, excluded.last_seen)""",
            (snap.name, day, day),
        )
        player_id = cursor.execute(
            "SELECT id FROM players WHERE name = ?", (snap.name,)
        ).fetchone()[0]

        cursor.execute(
            """INSERT INTO daily_snapshots
               (player_id, snapshot_date, game_player_id, level, experience, magic_level,
                skills_json, equipment_json, source_file, processed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(player_id, snapshot_date) DO UPDATE SET
                   game_player_id = excluded.game_player_id,
                   level = excluded.level,
                   experience = excluded.experience,
                   magic_level = excluded.magic_level,
                   skills_json = excluded.skills_json,
                   equipment_json = excluded.equipment_json,
                   source_file = excluded.source_file""",
            (
                player_id,
                day,
                snap.player_id,
                snap.level,
                snap.experience,
                snap.magic_level,
                json.dumps(snap.skills),
                json.dumps({str(slot): type_id for slot, type_id in sorted(snap.equipment.items())}),
                record.source_file,
                datetime.now().isoformat(),
            ),
        )
        snapshot_id = cursor.execute(
            "SELECT id FROM daily_snapshots WHERE player_id = ? AND snapshot_date = ?",
            (player_id, day),
        ).fetchone()[0]

        cursor.executemany(
            """INSERT INTO daily_quests (snapshot_id, quest_id, value, completed)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(snapshot_id, quest_id) DO UPDATE SET
                   value = excluded.value, completed = excluded.completed""",
            [(snapshot_id, qid, value, 1 if value > 0 else 0) for qid, value in snap.quests.items()],
        )
        self._delete_stale(cursor, "daily_quests", "snapshot_id", snapshot_id, "quest_id", list(snap.quests))

        cursor.executemany(
            """INSERT INTO bestiary (snapshot_id, monster_id, kill_count) VALUES (?, ?, ?)
               ON CONFLICT(snapshot_id, monster_id) DO UPDATE SET kill_count = excluded.kill_count""",
            [(snapshot_id, race, kills) for race, kills in snap.bestiary.items()],
        )
        self._delete_stale(cursor, "bestiary", "snapshot_id", snapshot_id, "monster_id", list(snap.bestiary))

        cursor.executemany(
            """INSERT INTO skinning (snapshot_id, race_id, skin_count) VALUES (?, ?, ?)
               ON CONFLICT(snapshot_id, race_id) DO UPDATE SET skin_count = excluded.skin_count""",
            [(snapshot_id, race, count) for race, count in snap.skinning.items()],
        )
        self._delete_stale(cursor, "skinning", "snapshot_id", snapshot_id, "race_id", list(snap.skinning))

    def get_player_count(self) -> int:
        row = self.db.fetchone("SELECT COUNT(*) as count FROM players")
        return row["count"]

    def get_players(self) -> list[dict]:
        rows = self.db.fetchall("SELECT * FROM players ORDER BY name")
        return [dict(row) for row in rows]

    def get_player_snapshots(self, name: str) -> list[dict]:
        """All snapshots of one player with their child rows, oldest first."""
        rows = self.db.fetchall(
            """SELECT s.* FROM daily_snapshots s JOIN players p ON p.id = s.player_id
               WHERE p.name = ? ORDER BY s.snapshot_date""",
            (name,),
        )
        snapshots = []
        for row in rows:
            snapshot = dict(row)
            snapshot["skills"] = json.loads(snapshot.pop("skills_json"))
            snapshot["equipment"] = {
                int(slot): type_id
                for slot, type_id in json.loads(snapshot.pop("equipment_json")).items()
            }
            sid = snapshot["id"]
            snapshot["quests"] = {
                r["quest_id"]: r["value"]
                for r in self.db.fetchall(
                    "SELECT quest_id, value FROM daily_quests WHERE snapshot_id = ? ORDER BY quest_id", (sid,)
                )
            }
            snapshot["bestiary"] = {
                r["monster_id"]: r["kill_count"]
                for r in self.db.fetchall(
                    "SELECT monster_id, kill_count FROM bestiary WHERE snapshot_id = ? ORDER BY monster_id", (sid,)
                )
            }
            snapshot["skinning"] = {
                r["race_id"]: r["skin_count"]
                for r in self.db.fetchall(
                    "SELECT race_id, skin_count FROM skinning WHERE snapshot_id = ? ORDER BY race_id", (sid,)
                )
            }
            snapshots.append(snapshot)
        return snapshots

    # --- Creatures ---

    def _write_creature(self, cursor: sqlite3.Cursor, creature: Creature) -> None:
        cursor.execute(
            """INSERT INTO creatures
               (race, name, short_name, article, experience, hit_points, attack, defense,
                armor, creature_type, has_loot, flags_json, skills_json, source_file)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(race) DO UPDATE SET
                   name = excluded.name,
                   short_name = excluded.short_name,
                   article = excluded.article,
                   experience = excluded.experience,
                   hit_points = excluded.hit_points,
                   attack = excluded.attack,
                   defense = excluded.defense,
                   armor = excluded.armor,
                   creature_type = excluded.creature_type,
                   has_loot = excluded.has_loot,
                   flags_json = excluded.flags_json,
                   skills_json = excluded.skills_json,
                   source_file = excluded.source_file""",
            (
                creature.race,
                creature.name,
                creature.short_name,
                creature.article,
                creature.experience,
                creature.hit_points,
                creature.attack,
                creature.defense,
                creature.armor,
                creature.creature_type,
                1 if creature.has_loot else 0,
                json.dumps(creature.flags),
                json.dumps(creature.skills),
                creature.source_file,
            ),
        )
        creature_id = cursor.execute(
            "SELECT id FROM creatures WHERE race = ?", (creature.race,)
        ).fetchone()[0]

        cursor.executemany(
            """INSERT INTO creature_loot
               (creature_id, slot, item_id, min_amount, max_amount, chance_raw, chance_percent)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(creature_id, slot) DO UPDATE SET
                   item_id = excluded.item_id,
                   min_amount = excluded.min_amount,
                   max_amount = excluded.max_amount,
                   chance_raw = excluded.chance_raw,
                   chance_percent = excluded.chance_percent""",
            [
                (
                    creature_id,
                    entry.slot,
                    entry.item_id,
                    entry.min_amount,
                    entry.max_amount,
                    entry.chance_raw,
                    entry.chance_percent,
                )
                for entry in creature.loot
            ],
        )
        self._delete_stale(
            cursor, "creature_loot", "creature_id", creature_id, "slot",
            [entry.slot for entry in creature.loot],
        )

    def refresh_loot_values(self) -> None:
        """
        Recompute loot and creature values from NPC buy-back prices.

        average_value = chance% * mean amount * best price an NPC pays.
        Items nobody buys are worth 0.
        """
        with self.db.transaction() as cursor:
            cursor.execute(
                """UPDATE creature_loot SET average_value =
                       chance_percent / 100.0
                       * (min_amount + max_amount) / 2.0
                       * COALESCE((SELECT MAX(p.price) FROM item_prices p
                                   WHERE p.item_id = creature_loot.item_id
                                     AND p.mode = 'sell'), 0)"""
            )
            cursor.execute(
                """UPDATE creatures SET avg_value = COALESCE(
                       (SELECT SUM(l.average_value) FROM creature_loot l
                        WHERE l.creature_id = creatures.id), 0)"""
            )

    def lookup_creature_names(self, races: Iterable[int]) -> dict[int, str]:
        """Race -> creature name, read through the read-only pool."""
        races = sorted(set(races))
        if not races:
            return {}
        with self.db.reader() as conn:
            rows = conn.execute(
                f"SELECT race, name FROM creatures WHERE race IN ({_placeholders(len(races))})",
                races,
            ).fetchall()
        return {row["race"]: row["name"] for row in rows}

    def get_creature_count(self) -> int:
        row = self.db.fetchone("SELECT COUNT(*) as count FROM creatures")
        return row["count"]

    def get_creatures(self, limit: int = 100, offset: int = 0) -> list[dict]:
        rows = self.db.fetchall(
            "SELECT * FROM creatures ORDER BY race LIMIT ? OFFSET ?", (limit, offset)
        )
        return [self._row_to_creature(row) for row in rows]

    def get_creature(self, race: int) -> Optional[dict]:
        row = self.db.fetchone("SELECT * FROM creatures WHERE race = ?", (race,))
        if not row:
            return None
        creature = self._row_to_creature(row)
        creature["loot"] = [
            dict(loot)
            for loot in self.db.fetchall(
                """SELECT l.slot, l.item_id, i.name AS item_name, l.min_amount, l.max_amount,
                          l.chance_raw, l.chance_percent, l.average_value
                   FROM creature_loot l LEFT JOIN items i ON i.type_id = l.item_id
                   WHERE l.creature_id = ? ORDER BY l.slot""",
                (row["id"],),
            )
        ]
        return creature

    def _row_to_creature(self, row) -> dict:
        creature = dict(row)
        creature["has_loot"] = bool(creature["has_loot"])
        creature["flags"] = json.loads(creature.pop("flags_json"))
        creature["skills"] = json.loads(creature.pop("skills_json"))
        return creature

    # --- Items ---

    def _write_item(self, cursor: sqlite3.Cursor, item: Item) -> None:
        cursor.execute(
            """INSERT INTO items (type_id, name, description, flags, flag_names, attributes)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(type_id) DO UPDATE SET
                   name = excluded.name,
                   description = excluded.description,
                   flags = excluded.flags,
                   flag_names = excluded.flag_names,
                   attributes = excluded.attributes""",
            (
                item.type_id,
                item.name,
                item.description,
                item.flags,
                ", ".join(item.flag_names),
                json.dumps(item.attributes),
            ),
        )

    def _write_price(self, cursor: sqlite3.Cursor, price: ItemPrice) -> None:
        cursor.execute(
            """INSERT INTO item_prices (item_id, npc_name, mode, price) VALUES (?, ?, ?, ?)
               ON CONFLICT(item_id, npc_name, mode) DO UPDATE SET price = excluded.price""",
            (price.item_id, price.npc_name, price.mode.value, price.price),
        )

    def get_item_count(self) -> int:
        row = self.db.fetchone("SELECT COUNT(*) as count FROM items")
        return row["count"]

    def get_items(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> list[dict]:
        if search:
            rows = self.db.fetchall(
                "SELECT * FROM items WHERE name LIKE ? ORDER BY type_id LIMIT ? OFFSET ?",
                (f"%{search}%", limit, offset),
            )
        else:
            rows = self.db.fetchall(
                "SELECT * FROM items ORDER BY type_id LIMIT ? OFFSET ?", (limit, offset)
            )
        return [self._row_to_item(row) for row in rows]

    def get_item(self, type_id: int) -> Optional[dict]:
        row = self.db.fetchone("SELECT * FROM items WHERE type_id = ?", (type_id,))
        if not row:
            return None
        item = self._row_to_item(row)
        item["prices"] = self.get_prices_for_item(type_id)
        return item

    def get_prices_for_item(self, type_id: int) -> list[dict]:
        rows = self.db.fetchall(
            "SELECT npc_name, mode, price FROM item_prices WHERE item_id = ? ORDER BY mode, npc_name",
            (type_id,),
        )
        return [dict(row) for row in rows]

    def _row_to_item(self, row) -> dict:
        item = dict(row)
        item["attributes"] = json.loads(item["attributes"])
        item["flag_names"] = [f for f in item["flag_names"].split(", ") if f]
        return item

    # --- Quests ---

    def _write_quest(self, cursor: sqlite3.Cursor, quest: Quest) -> None:
        cursor.execute(
            """INSERT INTO quests (id, name, description, x, y, z, reward_items_json)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name,
                   description = excluded.description,
                   x = excluded.x,
                   y = excluded.y,
                   z = excluded.z,
                   reward_items_json = excluded.reward_items_json""",
            (quest.id, quest.name, quest.description, quest.x, quest.y, quest.z, json.dumps(quest.reward_items)),
        )
        cursor.executemany(
            """INSERT INTO quest_chests (quest_id, x, y, z, sector_name, key_number, contents_json)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(x, y, z) DO UPDATE SET
                   quest_id = excluded.quest_id,
                   sector_name = excluded.sector_name,
                   key_number = excluded.key_number,
                   contents_json = excluded.contents_json""",
            [
                (quest.id, c.x, c.y, c.z, c.sector_name, c.key_number, json.dumps(c.item_ids))
                for c in quest.chests
            ],
        )
        # Chests are keyed by position, so stale ones are found by coordinates
        existing = cursor.execute(
            "SELECT id, x, y, z FROM quest_chests WHERE quest_id = ?", (quest.id,)
        ).fetchall()
        current = {(c.x, c.y, c.z) for c in quest.chests}
        stale = [(row[0],) for row in existing if (row[1], row[2], row[3]) not in current]
        cursor.executemany("DELETE FROM quest_chests WHERE id = ?", stale)

    def get_quest_count(self) -> int:
        row = self.db.fetchone("SELECT COUNT(*) as count FROM quests")
        return row["count"]

    def get_quests(self) -> list[dict]:
        quests = []
        for row in self.db.fetchall("SELECT * FROM quests ORDER BY id"):
            quest = dict(row)
            quest["reward_items"] = json.loads(quest.pop("reward_items_json"))
            quest["chests"] = [
                {
                    "x": chest["x"],
                    "y": chest["y"],
                    "z": chest["z"],
                    "sector_name": chest["sector_name"],
                    "key_number": chest["key_number"],
                    "contents": json.loads(chest["contents_json"]),
                }
                for chest in self.db.fetchall(
                    "SELECT * FROM quest_chests WHERE quest_id = ? ORDER BY sector_name, x, y, z",
                    (row["id"],),
                )
            ]
            quests.append(quest)
        return quests

    def link_item_quest_rewards(self) -> int:
        """
        Set items.rewarded_from from the quest reward lists.

        Referenced items get the comma-joined quest names in quest id order,
        every other item gets NULL.

        Returns:
            Number of items that carry a reward source
        """
        sources: dict[int, list[str]] = {}
        for row in self.db.fetchall("SELECT name, reward_items_json FROM quests ORDER BY id"):
            for type_id in json.loads(row["reward_items_json"]):
                names = sources.setdefault(type_id, [])
                if row["name"] not in names:
                    names.append(row["name"])

        with self.db.transaction() as cursor:
            cursor.execute("UPDATE items SET rewarded_from = NULL WHERE rewarded_from IS NOT NULL")
            cursor.executemany(
                "UPDATE items SET rewarded_from = ? WHERE type_id = ?",
                [(", ".join(names), type_id) for type_id, names in sources.items()],
            )
        row = self.db.fetchone("SELECT COUNT(*) as count FROM items WHERE rewarded_from IS NOT NULL")
        return row["count"]

    # --- Raids ---

    def _write_raid(self, cursor: sqlite3.Cursor, raid: RaidRecord) -> None:
        cursor.execute(
            """INSERT INTO raids
               (name, kind, raid_type, waves, interval_seconds, interval_days, message,
                creatures, spawn_composition_json)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(name) DO UPDATE SET
                   kind = excluded.kind,
                   raid_type = excluded.raid_type,
                   waves = excluded.waves,
                   interval_seconds = excluded.interval_seconds,
                   interval_days = excluded.interval_days,
                   message = excluded.message,
                   creatures = excluded.creatures,
                   spawn_composition_json = excluded.spawn_composition_json""",
            (
                raid.name,
                raid.kind.value,
                raid.raid_type,
                raid.waves,
                raid.interval_seconds,
                raid.interval_days,
                raid.message,
                raid.creatures,
                json.dumps(raid.spawn_composition),
            ),
        )

    def get_raids(self) -> list[dict]:
        raids = []
        for row in self.db.fetchall("SELECT * FROM raids ORDER BY name"):
            raid = dict(row)
            raid["spawn_composition"] = json.loads(raid.pop("spawn_composition_json"))
            raids.append(raid)
        return raids

    # --- Skinning recipes ---

    def _write_recipe(self, cursor: sqlite3.Cursor, recipe: SkinningRecipe) -> None:
        cursor.execute(
            """INSERT INTO skinning_recipes
               (tool_id, corpse_id, next_corpse_id, percent_chance, reward_id, race_id)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(tool_id, corpse_id) DO UPDATE SET
                   next_corpse_id = excluded.next_corpse_id,
                   percent_chance = excluded.percent_chance,
                   reward_id = excluded.reward_id,
                   race_id = excluded.race_id""",
            (
                recipe.tool_id,
                recipe.corpse_id,
                recipe.next_corpse_id,
                recipe.percent_chance,
                recipe.reward_id,
                recipe.race_id,
            ),
        )

    def get_skinning_recipes(self) -> list[SkinningRecipe]:
        rows = self.db.fetchall(
            "SELECT * FROM skinning_recipes ORDER BY tool_id, corpse_id"
        )
        return [self._row_to_recipe(row) for row in rows]

    def _row_to_recipe(self, row) -> SkinningRecipe:
        return SkinningRecipe(
            tool_id=row["tool_id"],
            corpse_id=row["corpse_id"],
            next_corpse_id=row["next_corpse_id"],
            percent_chance=row["percent_chance"],
            reward_id=row["reward_id"],
            race_id=row["race_id"],
        )

    # --- Spells ---

    def _write_spell(self, cursor: sqlite3.Cursor, spell: SpellEntry) -> None:
        cursor.execute(
            """INSERT INTO spells
               (id, name, words, level, magic_level, mana, soul_points, flags, is_rune,
                rune_type_id, charges, spell_type, premium)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name,
                   words = excluded.words,
                   level = excluded.level,
                   magic_level = excluded.magic_level,
                   mana = excluded.mana,
                   soul_points = excluded.soul_points,
                   flags = excluded.flags,
                   is_rune = excluded.is_rune,
                   rune_type_id = excluded.rune_type_id,
                   charges = excluded.charges,
                   spell_type = excluded.spell_type,
                   premium = excluded.premium""",
            (
                spell.id,
                spell.name,
                spell.words,
                spell.level,
                spell.magic_level,
                spell.mana,
                spell.soul_points,
                spell.flags,
                1 if spell.is_rune else 0,
                spell.rune_type_id,
                spell.charges,
                spell.spell_type,
                1 if spell.premium else 0,
            ),
        )

    def _write_teacher(self, cursor: sqlite3.Cursor, teacher: SpellTeacherRecord) -> None:
        cursor.execute(
            """INSERT INTO spell_teachers
               (npc_name, spell_id, spell_name, vocation, price, level_required)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(npc_name, spell_id, vocation) DO UPDATE SET
                   spell_name = excluded.spell_name,
                   price = excluded.price,
                   level_required = excluded.level_required""",
            (
                teacher.npc_name,
                teacher.spell_id,
                teacher.spell_name,
                teacher.vocation,
                teacher.price,
                teacher.level_required,
            ),
        )

    def lookup_spells(self, spell_ids: Iterable[int]) -> dict[int, tuple[str, int]]:
        """Spell id -> (name, level), read through the read-only pool."""
        spell_ids = sorted(set(spell_ids))
        if not spell_ids:
            return {}
        with self.db.reader() as conn:
            rows = conn.execute(
                f"SELECT id, name, level FROM spells WHERE id IN ({_placeholders(len(spell_ids))})",
                spell_ids,
            ).fetchall()
        return {row["id"]: (row["name"], row["level"]) for row in rows}

    def get_spell_count(self) -> int:
        row = self.db.fetchone("SELECT COUNT(*) as count FROM spells")
        return row["count"]

    def get_spells(self) -> list[dict]:
        rows = self.db.fetchall("SELECT * FROM spells ORDER BY id")
        return [self._row_to_spell(row) for row in rows]

    def get_spell(self, spell_id: int) -> Optional[dict]:
        row = self.db.fetchone("SELECT * FROM spells WHERE id = ?", (spell_id,))
        if not row:
            return None
        spell = self._row_to_spell(row)
        spell["teachers"] = [
            dict(t)
            for t in self.db.fetchall(
                """SELECT npc_name, vocation, price, level_required FROM spell_teachers
                   WHERE spell_id = ? ORDER BY npc_name, vocation""",
                (spell_id,),
            )
        ]
        return spell

    def get_untaught_spells(self) -> list[dict]:
        """Spells no NPC teaches, runes excluded."""
        rows = self.db.fetchall(
            """SELECT s.id, s.name, s.words, s.level FROM spells s
               LEFT JOIN spell_teachers t ON t.spell_id = s.id
               WHERE t.id IS NULL AND s.is_rune = 0
               ORDER BY s.level, s.id"""
        )
        return [dict(row) for row in rows]

    def _row_to_spell(self, row) -> dict:
        spell = dict(row)
        spell["is_rune"] = bool(spell["is_rune"])
        spell["premium"] = bool(spell["premium"])
        return spell

    # --- Rune sellers ---

    def _write_rune_seller(self, cursor: sqlite3.Cursor, seller: RuneSeller) -> None:
        cursor.execute(
            """INSERT INTO rune_sellers
               (npc_name, item_id, item_category, vocation, price, charges, account_type)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(npc_name, item_id, vocation) DO UPDATE SET
                   item_category = excluded.item_category,
                   price = excluded.price,
                   charges = excluded.charges,
                   account_type = excluded.account_type""",
            (
                seller.npc_name,
                seller.item_id,
                seller.item_category,
                seller.vocation,
                seller.price,
                seller.charges,
                seller.account_type,
            ),
        )

    def clear_rune_sellers(self) -> None:
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM rune_sellers")

    def link_rune_seller_spells(self) -> int:
        """
        Set rune_sellers.spell_id to the spell creating the sold rune.

        Returns:
            Number of rune sellers linked to a spell
        """
        with self.db.transaction() as cursor:
            cursor.execute(
                """UPDATE rune_sellers SET spell_id = (
                       SELECT s.id FROM spells s
                       WHERE s.is_rune = 1 AND s.rune_type_id = rune_sellers.item_id
                       ORDER BY s.id LIMIT 1
                   )
                   WHERE item_category = 'rune'"""
            )
        row = self.db.fetchone("SELECT COUNT(*) as count FROM rune_sellers WHERE spell_id IS NOT NULL")
        return row["count"]

    def get_rune_sellers(self, item_id: Optional[int] = None) -> list[dict]:
        sql = """SELECT r.npc_name, r.item_id, i.name as item_name, r.spell_id,
                        s.name as spell_name, r.item_category, r.vocation, r.price,
                        r.charges, r.account_type
                 FROM rune_sellers r
                 LEFT JOIN items i ON i.type_id = r.item_id
                 LEFT JOIN spells s ON s.id = r.spell_id"""
        params: tuple = ()
        if item_id is not None:
            sql += " WHERE r.item_id = ?"
            params = (item_id,)
        sql += " ORDER BY r.item_category, r.item_id, r.npc_name, r.vocation"
        return [dict(row) for row in self.db.fetchall(sql, params)]

    # --- Status ---

    def get_table_counts(self) -> dict[str, int]:
        tables = [
            "players",
            "daily_snapshots",
            "creatures",
            "creature_loot",
            "items",
            "item_prices",
            "quests",
            "raids",
            "skinning_recipes",
            "spells",
            "spell_teachers",
            "rune_sellers",
        ]
        return {
            table: self.db.fetchone(f"SELECT COUNT(*) as count FROM {table}")["count"]
            for table in tables
        }
