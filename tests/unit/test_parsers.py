"""Tests for the file decoders."""

import pytest

from demonax.core.errors import DecodeError, UnexpectedEof
from demonax.core.models import PriceMode, RaidKind, SpellEntry, SpellSkip
from demonax.parser.creature_parser import parse_creature_file, parse_creature_text
from demonax.parser.item_parser import (
    clean_item_name,
    parse_catalog_binary,
    parse_catalog_text,
    parse_item_catalog,
)
from demonax.parser.map_parser import (
    parse_sector_binary,
    parse_sector_file,
    parse_sector_text,
    sector_origin,
)
from demonax.parser.npc_parser import (
    extract_prices,
    extract_rune_sellers,
    extract_spell_teaching,
    parse_npc_file,
    parse_npc_text,
)
from demonax.parser.player_parser import (
    parse_player_binary,
    parse_player_file,
    parse_player_text,
)
from demonax.parser.raid_parser import parse_raid_text, process_word, raid_kind
from demonax.parser.recipe_parser import parse_recipe_file, parse_recipe_text
from demonax.parser.spell_parser import parse_spell_source
from tests.conftest import (
    DEMON_MON,
    MAGIC_CC,
    RAID_EVT,
    RAT_MON,
    RECIPES_CSV,
    RUNE_NPC,
    TAKE,
    TEACHER_NPC,
    TRADER_NPC,
    build_catalog,
    build_player,
    build_sector,
    catalog_record,
    sector_object,
    write,
)


class TestCreatureParser:
    def test_parse_rat(self):
        rat = parse_creature_text(RAT_MON)
        assert rat.race == 21
        assert rat.name == "rat"
        assert rat.article == "a"
        assert rat.experience == 5
        assert rat.hit_points == 20
        assert (rat.attack, rat.defense, rat.armor) == (8, 2, 1)
        assert rat.flags == ["KickBoxes"]
        assert rat.skills == {"HitPoints": 20, "GoStrength": 10}
        assert rat.creature_type == "Regular"

    def test_duplicate_loot_items_are_kept(self):
        rat = parse_creature_text(RAT_MON)
        assert [(e.item_id, e.max_amount, e.chance_raw) for e in rat.loot] == [
            (3031, 4, 999),
            (3607, 1, 399),
            (3031, 2, 100),
        ]
        assert [e.slot for e in rat.loot] == [0, 1, 2]

    def test_boss_without_article(self):
        demon = parse_creature_text(DEMON_MON)
        assert demon.article == ""
        assert demon.creature_type == "Boss"
        assert demon.short_name == "demon"

    def test_chance_percent(self):
        entry = parse_creature_text(RAT_MON).loot[1]
        assert entry.chance_percent == pytest.approx(400 / 999 * 100)

    def test_missing_name(self):
        with pytest.raises(DecodeError, match="Name"):
            parse_creature_text("RaceNumber = 3\n")

    def test_missing_race(self):
        with pytest.raises(DecodeError, match="RaceNumber"):
            parse_creature_text('Name = "rat"\n')

    def test_malformed_loot(self):
        with pytest.raises(DecodeError, match="Inventory"):
            parse_creature_text('RaceNumber = 3\nName = "x"\nInventory = {(3031, 4)}\n')

    def test_no_inventory_means_no_loot(self):
        creature = parse_creature_text('RaceNumber = 3\nName = "x"\n')
        assert creature.loot == []
        assert not creature.has_loot

    def test_source_file(self, tmp_path):
        path = write(tmp_path / "rat.mon", RAT_MON)
        assert parse_creature_file(path).source_file == "rat.mon"


class TestItemParser:
    def test_clean_item_name(self):
        assert clean_item_name("a gold coin") == "Gold Coin"
        assert clean_item_name("an ORC shield") == "Orc Shield"
        assert clean_item_name("Demon armor") == "Demon Armor"

    def test_binary_keeps_portable_entries(self):
        data = build_catalog(
            catalog_record(10, "reserved"),
            catalog_record(1000, "a wall", flags=0),
            catalog_record(3031, "a gold coin", attributes=[("Weight", 10)], description="Shiny."),
        )
        items = parse_catalog_binary(data)
        assert len(items) == 1
        coin = items[0]
        assert coin.type_id == 3031
        assert coin.name == "Gold Coin"
        assert coin.attributes == {"Weight": 10}
        assert coin.description == "Shiny."
        assert "Take" in coin.flag_names

    def test_binary_empty_description_is_none(self):
        items = parse_catalog_binary(build_catalog(catalog_record(3031, "coin")))
        assert items[0].description is None

    def test_binary_truncated(self):
        data = build_catalog(catalog_record(3031, "a gold coin"))
        with pytest.raises(UnexpectedEof):
            parse_catalog_binary(data[:-3])

    def test_binary_trailing_bytes(self):
        data = build_catalog(catalog_record(3031, "a gold coin")) + b"\x00"
        with pytest.raises(DecodeError, match="trailing"):
            parse_catalog_binary(data)

    def test_text_catalog(self):
        text = (
            'TypeID = 3031\nName = "a gold coin"\nFlags = {Cumulative,Take}\n'
            "Attributes = {Weight=10}\n\n"
            'TypeID = 1000\nName = "a wall"\nFlags = {Bank}\n\n'
            'TypeID = 3264\nName = "a sword"\nFlags = {Take}\nDescription = "Sharp."\n'
        )
        items = parse_catalog_text(text)
        assert [i.type_id for i in items] == [3031, 3264]
        assert items[0].attributes == {"Weight": 10}
        assert items[0].flags & TAKE
        assert items[1].description == "Sharp."

    def test_catalog_file_dispatch(self, tmp_path):
        binary = write(tmp_path / "a.srv", build_catalog(catalog_record(3031, "coin")))
        text = write(tmp_path / "b.srv", 'TypeID = 3031\nName = "coin"\nFlags = {Take}\n')
        assert parse_item_catalog(binary)[0].type_id == 3031
        assert parse_item_catalog(text)[0].type_id == 3031


class TestNpcParser:
    def test_name_and_behaviour(self):
        script = parse_npc_text(TRADER_NPC)
        assert script.name == "Sam"
        assert len(script.behaviour) == 4

    def test_name_falls_back_to_file_stem(self, tmp_path):
        path = write(tmp_path / "oswald.npc", 'Behaviour = {\n"hi" -> "Hello."\n}\n')
        script = parse_npc_file(path)
        assert script.name == "oswald"
        assert script.source_file == "oswald.npc"

    def test_prices_keep_both_modes(self):
        prices = extract_prices(parse_npc_text(TRADER_NPC))
        assert [(p.item_id, p.mode, p.price) for p in prices] == [
            (3264, PriceMode.SELL, 25),
            (3264, PriceMode.BUY, 120),
            (3286, PriceMode.SELL, 30),
        ]
        assert all(p.npc_name == "Sam" for p in prices)

    def test_sell_in_reply_text_does_not_flip_mode(self):
        script = parse_npc_text(
            'Name = "X"\nBehaviour = {\n"buy","axe" -> Type=3274, Price=40, "I also sell maces."\n}\n'
        )
        assert extract_prices(script)[0].mode is PriceMode.BUY

    def test_teaching_lines_are_not_prices(self):
        assert extract_prices(parse_npc_text(TEACHER_NPC)) == []

    def test_spell_teaching_vocations(self):
        offers = extract_spell_teaching(parse_npc_text(TEACHER_NPC))
        light = [o for o in offers if o.spell_id == 10]
        find = [o for o in offers if o.spell_id == 20]
        assert [o.vocation for o in light] == ["Paladin"]
        assert light[0].price == 100
        assert [o.vocation for o in find] == ["Knight", "Paladin", "Druid", "Sorcerer"]
        assert all(o.npc_name == "Elane" for o in offers)


class TestRuneSellers:
    def test_offers(self):
        sellers = extract_rune_sellers(parse_npc_text(RUNE_NPC))
        assert [(s.item_id, s.item_category, s.vocation, s.charges, s.price) for s in sellers] == [
            (3155, "rune", "All", 1, 325),
            (3074, "wand", "Sorcerer", None, 500),
            (3066, "rod", "Druid", None, 500),
            (3147, "rune", "All", None, 10),
        ]
        assert all(s.npc_name == "Tibra" for s in sellers)
        assert all(s.account_type is None for s in sellers)

    def test_bulk_offers_are_skipped(self):
        sellers = extract_rune_sellers(parse_npc_text(RUNE_NPC))
        assert [s.item_id for s in sellers].count(3155) == 1

    @pytest.mark.parametrize(
        "file_name, account_type",
        [
            ("tibra-free-runes.npc", "Free"),
            ("xodet-prem-runes.npc", "Premium"),
            ("rachel-max-runes.npc", "Premium"),
            ("tibra.npc", None),
        ],
    )
    def test_account_type_from_file_name(self, tmp_path, file_name, account_type):
        path = write(tmp_path / file_name, RUNE_NPC)
        sellers = extract_rune_sellers(parse_npc_file(path))
        assert {s.account_type for s in sellers} == {account_type}

    def test_lines_without_type_or_price(self):
        script = parse_npc_text(
            'Name = "X"\nBehaviour = {\n'
            '"rune" -> "I sell all kinds of runes."\n'
            '"wand" -> Type=3074, "A fine wand."\n'
            '"rod" -> Price=500, "A fine rod."\n'
            "}\n"
        )
        assert extract_rune_sellers(script) == []

    def test_teaching_lines_are_not_offers(self):
        script = parse_npc_text(
            'Name = "X"\nBehaviour = {\n'
            '"learn","sudden","death" -> Type=21, Price=3000, '
            '"Do you want to learn the spell \'Sudden Death\' rune for %P gold?"\n'
            "}\n"
        )
        assert extract_rune_sellers(script) == []

    def test_trader_sells_no_runes(self):
        assert extract_rune_sellers(parse_npc_text(TRADER_NPC)) == []


class TestMapParser:
    def test_sector_origin(self):
        assert sector_origin("1000-1001-7") == (32000, 32032, 7)
        assert sector_origin("readme") is None

    def test_binary_sector(self):
        data = build_sector(
            sector_object(3, 4, quest=4, key=77, contents=[3264, 3031]),
            sector_object(5, 5, contents=[3031]),
        )
        chests = parse_sector_binary(data, "1000-1000-7", (32000, 32000, 7))
        assert len(chests) == 1
        chest = chests[0]
        assert (chest.x, chest.y, chest.z) == (32003, 32004, 7)
        assert chest.quest_number == 4
        assert chest.key_number == 77
        assert chest.item_ids == [3264, 3031]
        assert chest.name == "Quest 4"

    def test_binary_offset_outside_sector(self):
        data = build_sector(sector_object(32, 0, quest=1))
        with pytest.raises(DecodeError, match="outside sector"):
            parse_sector_binary(data, "1-1-7", (32, 32, 7))

    def test_text_sector(self):
        text = (
            "0-0: Content={4515}\n"
            "12-7: Content={4515, 2853 ChestQuestNumber=4 Content={3031 Amount=50, 3035}}\n"
        )
        chests = parse_sector_text(text, "1000-1000-7", (32000, 32000, 7))
        assert len(chests) == 1
        assert (chests[0].x, chests[0].y) == (32012, 32007)
        assert chests[0].item_ids == [3031, 3035]
        assert chests[0].key_number is None

    def test_text_sector_without_offset(self):
        with pytest.raises(DecodeError):
            parse_sector_text("Content={2853 ChestQuestNumber=4}\n", "1-1-7", (32, 32, 7))

    def test_no_chests_is_empty(self, tmp_path):
        path = write(tmp_path / "1-1-7.sec", build_sector(sector_object(1, 1)))
        assert parse_sector_file(path) == []

    def test_non_sector_filename_is_empty(self, tmp_path):
        path = write(tmp_path / "notes.sec", "12-7: ChestQuestNumber=4\n")
        assert parse_sector_file(path) == []


class TestRaidParser:
    def test_waves_and_spawns(self):
        raid = parse_raid_text(RAID_EVT, "orcs")
        assert raid.name == "orcs"
        assert raid.raid_type == "BigRaid"
        assert raid.kind is RaidKind.ONE_TIME
        assert raid.interval == 3600
        assert raid.process_word == "two"
        assert len(raid.waves) == 2
        first, second = raid.waves
        assert first.delay == 0
        assert first.message == "Orcs are coming!"
        assert (first.spawns[0].min_count, first.spawns[0].max_count) == (5, 10)
        assert first.spawns[0].position == (32000, 32100, 7)
        assert first.spawns[0].radius == 5
        assert second.delay == 120
        assert [s.race for s in second.spawns] == [5, 35]
        assert (second.spawns[1].min_count, second.spawns[1].max_count) == (1, 1)

    def test_spawns_before_delay_form_first_wave(self):
        raid = parse_raid_text("Type = SmallRaid\nRace = 5\nDelay = 60\nRace = 6\n", "x")
        assert [w.number for w in raid.waves] == [1, 2]
        assert raid.waves[0].spawns[0].race == 5
        assert raid.waves[0].delay == 0

    def test_messages_join_within_wave(self):
        raid = parse_raid_text('Delay = 0\nMessage = "a"\nMessage = "b"\n', "x")
        assert raid.waves[0].message == "a; b"

    def test_count_before_race(self):
        with pytest.raises(DecodeError, match="before any Race"):
            parse_raid_text("Count = (1, 2)\n", "x")

    def test_raid_kind(self):
        assert raid_kind("CyclicRaid") is RaidKind.CYCLIC
        assert raid_kind("BigRaid") is RaidKind.ONE_TIME

    def test_process_word(self):
        assert process_word("# Process: Three waves\nType = x\n") == "three"
        assert process_word("# Process: someone\n") is None
        assert process_word("Type = x\n") is None

    def test_missing_type_is_unknown(self):
        assert parse_raid_text("Race = 1\n", "x").raid_type == "unknown"


class TestSpellParser:
    def test_entries(self):
        results = parse_spell_source(MAGIC_CC)
        assert [r.id for r in results] == [10, 20, 21]
        light, find, death = results
        assert light.words == "utevo lux"
        assert light.name == "Light"
        assert (light.mana, light.level) == (20, 8)
        assert light.spell_type == "utility"
        assert find.words == "exiva"
        assert death.is_rune
        assert death.rune_type_id == 3155
        assert death.magic_level == 15
        assert death.charges == 1
        assert death.premium
        assert death.spell_type == "attack"

    def test_comments_are_ignored(self):
        source = (
            "void InitSpells(){\n"
            '  // Spell = CreateSpell(1, "old", "spell");\n'
            '  /* Spell = CreateSpell(2, "x"); */\n'
            '  Spell = CreateSpell(3, "exura"); // heal\n'
            "  Spell->Mana = 20;\n"
            "}\n"
        )
        results = parse_spell_source(source)
        assert [r.id for r in results] == [3]
        assert results[0].name == "Spell 3"

    def test_skips_do_not_stop_scan(self):
        source = (
            "void InitSpells(){\n"
            '  Spell = CreateSpell(X, "bad");\n'
            '  Spell = CreateSpell(5, "ok");\n'
            "  Spell->Level = high;\n"
            '  Spell = CreateSpell(6, "fine");\n'
            "  Spell->Level = 0x10;\n"
            "}\n"
        )
        results = parse_spell_source(source)
        assert isinstance(results[0], SpellSkip)
        assert results[0].line == 2
        assert isinstance(results[1], SpellSkip)
        assert results[1].spell_id == 5
        assert isinstance(results[2], SpellEntry)
        assert results[2].level == 16

    def test_missing_words(self):
        results = parse_spell_source('void InitSpells(){\n Spell = CreateSpell(7);\n}\n')
        assert isinstance(results[0], SpellSkip)

    def test_missing_anchor(self):
        with pytest.raises(DecodeError, match="InitSpells"):
            parse_spell_source('Spell = CreateSpell(1, "a");\n')

    def test_plain_spell_has_no_rune_columns(self):
        light = parse_spell_source(MAGIC_CC)[0]
        assert not light.is_rune
        assert light.magic_level is None
        assert light.charges is None
        assert light.rune_type_id is None

    def test_rune_group_without_number(self):
        source = (
            "void InitSpells(){\n"
            '  Spell = CreateSpell(30, "adori", "gran");\n'
            "  Spell->RuneGr = 79;\n"
            "}\n"
        )
        (spell,) = parse_spell_source(source)
        assert spell.rune_group == 79
        assert not spell.is_rune
        assert spell.rune_type_id is None

    def test_quoted_comment_with_semicolon(self):
        source = (
            "void InitSpells(){\n"
            '  Spell = CreateSpell(31, "exevo", "flam");\n'
            '  Spell->Comment = "Fire; Ice";\n'
            "  Spell->Mana = 40;\n"
            "}\n"
        )
        (spell,) = parse_spell_source(source)
        assert spell.name == "Fire; Ice"
        assert spell.mana == 40


class TestRecipeParser:
    def test_rows(self):
        recipes = parse_recipe_text(RECIPES_CSV)
        assert len(recipes) == 2
        assert recipes[0].tool_id == 5908
        assert recipes[0].race_id == 21

    def test_utf8_bom_header(self, tmp_path):
        path = tmp_path / "h.csv"
        path.write_bytes(b"\xef\xbb\xbf" + RECIPES_CSV.encode())
        assert len(parse_recipe_file(path)) == 2

    def test_non_integer_field_names_line(self):
        text = RECIPES_CSV + "5908,4021,x,10,5876,35\n"
        with pytest.raises(DecodeError) as exc_info:
            parse_recipe_text(text)
        assert exc_info.value.line == 4
        assert "next_corpse_id" in str(exc_info.value)

    def test_missing_column(self):
        with pytest.raises(DecodeError, match="race_id"):
            parse_recipe_text("tool_id,corpse_id,next_corpse_id,percent_chance,reward_id\n1,2,3,4,5\n")

    def test_missing_field(self):
        with pytest.raises(DecodeError):
            parse_recipe_text(RECIPES_CSV + "5908,4021\n")

    def test_malformed_csv_is_decode_error(self):
        # Fields over the csv module's size limit raise csv.Error
        text = RECIPES_CSV + "5908," + "9" * 200000 + ",1,1,1,1\n"
        with pytest.raises(DecodeError, match="malformed CSV") as exc_info:
            parse_recipe_text(text)
        assert exc_info.value.line is not None

    def test_file_errors_carry_path(self, tmp_path):
        path = write(tmp_path / "harvesting.csv", RECIPES_CSV + "5908,4021,x,10,5876,35\n")
        with pytest.raises(DecodeError) as exc_info:
            parse_recipe_file(path)
        assert exc_info.value.path == path
        assert str(exc_info.value).startswith(f"{path}:4: ")


PLAYER_TEXT = """ID = 42
Name = "Bubble"
Skill = (0, 20, 0, 0, 0, 0, 0, 0, 0, 0, 0, 98800, 0, 0, 0)
Skill = (1, 3, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1600, 0, 0, 0)
Skill = (8, 45, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0)
Skill = (8, 99)
QuestValues = {(4, 1), (20, 2)}
Bestiary = {(21, 150)}
Harvesting = {(21, 3)}
Inventory = {1 Content={3355}, 5 Content={3410 Amount=1, 3031}, 11 Content={3031}}
"""


class TestPlayerParser:
    def test_binary(self):
        data = build_player(
            skills=[(8, 45), (14, 20)],
            equipment=[(1, 3355)],
            quests=[(4, 1)],
            bestiary=[(21, 150)],
            skinning=[(21, 3)],
        )
        snapshot = parse_player_binary(data)
        assert snapshot.name == "Bubble"
        assert snapshot.player_id == 42
        assert (snapshot.level, snapshot.experience, snapshot.magic_level) == (20, 98800, 3)
        assert snapshot.skills == {"sword": 45, "fishing": 20}
        assert snapshot.equipment == {1: 3355}
        assert snapshot.quests == {4: 1}
        assert snapshot.bestiary == {21: 150}
        assert snapshot.skinning == {21: 3}

    def test_binary_truncated(self):
        data = build_player(quests=[(4, 1)])
        with pytest.raises(UnexpectedEof):
            parse_player_binary(data[:-5])

    def test_binary_bad_slot(self):
        with pytest.raises(DecodeError, match="slot"):
            parse_player_binary(build_player(equipment=[(11, 3355)]))

    def test_binary_empty_name(self):
        with pytest.raises(DecodeError, match="name"):
            parse_player_binary(build_player(name=""))

    def test_text(self):
        snapshot = parse_player_text(PLAYER_TEXT)
        assert snapshot.name == "Bubble"
        assert snapshot.player_id == 42
        assert (snapshot.level, snapshot.experience, snapshot.magic_level) == (20, 98800, 3)
        assert snapshot.skills == {"sword": 45}
        assert snapshot.quests == {4: 1, 20: 2}
        assert snapshot.bestiary == {21: 150}
        assert snapshot.skinning == {21: 3}
        assert snapshot.equipment == {1: 3355, 5: 3410}

    def test_text_requires_id(self):
        with pytest.raises(DecodeError, match="ID"):
            parse_player_text('Name = "x"\n')

    def test_file_dispatch(self, tmp_path):
        binary = write(tmp_path / "a.usr", build_player(name="Alpha"))
        text = write(tmp_path / "b.usr", PLAYER_TEXT)
        assert parse_player_file(binary).name == "Alpha"
        assert parse_player_file(text).name == "Bubble"
