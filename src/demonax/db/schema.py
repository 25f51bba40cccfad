"""Database schema - DDL statements for SQLite."""

SCHEMA_VERSION = 3

# Settings table - key/value configuration
CREATE_SETTINGS = """
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

# Players - one row per character name
CREATE_PLAYERS = """
CREATE TABLE IF NOT EXISTS players (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    first_seen TEXT NOT NULL,
    last_seen TEXT NOT NULL
)
"""

# Daily snapshots - one per player per date
CREATE_DAILY_SNAPSHOTS = """
CREATE TABLE IF NOT EXISTS daily_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    player_id INTEGER NOT NULL,
    snapshot_date TEXT NOT NULL,
    game_player_id INTEGER,
    level INTEGER NOT NULL DEFAULT 0,
    experience INTEGER NOT NULL DEFAULT 0,
    magic_level INTEGER NOT NULL DEFAULT 0,
    skills_json TEXT NOT NULL DEFAULT '{}',
    equipment_json TEXT NOT NULL DEFAULT '{}',
    source_file TEXT,
    processed_at TEXT NOT NULL,
    UNIQUE (player_id, snapshot_date),
    FOREIGN KEY (player_id) REFERENCES players(id) ON DELETE CASCADE
)
"""

# Snapshot children - keyed by their natural id within the snapshot
CREATE_DAILY_QUESTS = """
CREATE TABLE IF NOT EXISTS daily_quests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    snapshot_id INTEGER NOT NULL,
    quest_id INTEGER NOT NULL,
    value INTEGER NOT NULL,
    completed INTEGER NOT NULL DEFAULT 0,
    UNIQUE (snapshot_id, quest_id),
    FOREIGN KEY (snapshot_id) REFERENCES daily_snapshots(id) ON DELETE CASCADE
)
"""

CREATE_BESTIARY = """
CREATE TABLE IF NOT EXISTS bestiary (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    snapshot_id INTEGER NOT NULL,
    monster_id INTEGER NOT NULL,
    kill_count INTEGER NOT NULL,
    UNIQUE (snapshot_id, monster_id),
    FOREIGN KEY (snapshot_id) REFERENCES daily_snapshots(id) ON DELETE CASCADE
)
"""

CREATE_SKINNING = """
CREATE TABLE IF NOT EXISTS skinning (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    snapshot_id INTEGER NOT NULL,
    race_id INTEGER NOT NULL,
    skin_count INTEGER NOT NULL,
    UNIQUE (snapshot_id, race_id),
    FOREIGN KEY (snapshot_id) REFERENCES daily_snapshots(id) ON DELETE CASCADE
)
"""

# Creatures - keyed by race number
CREATE_CREATURES = """
CREATE TABLE IF NOT EXISTS creatures (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    race INTEGER NOT NULL UNIQUE,
    name TEXT NOT NULL,
    short_name TEXT NOT NULL,
    article TEXT NOT NULL DEFAULT '',
    experience INTEGER NOT NULL DEFAULT 0,
    hit_points INTEGER NOT NULL DEFAULT 0,
    attack INTEGER NOT NULL DEFAULT 0,
    defense INTEGER NOT NULL DEFAULT 0,
    armor INTEGER NOT NULL DEFAULT 0,
    creature_type TEXT NOT NULL,
    has_loot INTEGER NOT NULL DEFAULT 0,
    flags_json TEXT NOT NULL DEFAULT '[]',
    skills_json TEXT NOT NULL DEFAULT '{}',
    avg_value REAL NOT NULL DEFAULT 0,
    source_file TEXT
)
"""

# Loot rows - slot is the position in the creature's loot table
CREATE_CREATURE_LOOT = """
CREATE TABLE IF NOT EXISTS creature_loot (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    creature_id INTEGER NOT NULL,
    slot INTEGER NOT NULL,
    item_id INTEGER NOT NULL,
    min_amount INTEGER NOT NULL DEFAULT 1,
    max_amount INTEGER NOT NULL,
    chance_raw INTEGER NOT NULL CHECK (chance_raw BETWEEN 1 AND 999),
    chance_percent REAL NOT NULL,
    average_value REAL NOT NULL DEFAULT 0,
    UNIQUE (creature_id, slot),
    FOREIGN KEY (creature_id) REFERENCES creatures(id) ON DELETE CASCADE
)
"""

# Items - portable catalog entries
CREATE_ITEMS = """
CREATE TABLE IF NOT EXISTS items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type_id INTEGER NOT NULL UNIQUE,
    name TEXT NOT NULL,
    description TEXT,
    flags INTEGER NOT NULL DEFAULT 0,
    flag_names TEXT NOT NULL DEFAULT '',
    attributes TEXT NOT NULL DEFAULT '{}',
    rewarded_from TEXT
)
"""

# Item prices - item_id is a type id and may dangle
CREATE_ITEM_PRICES = """
CREATE TABLE IF NOT EXISTS item_prices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id INTEGER NOT NULL,
    npc_name TEXT NOT NULL,
    mode TEXT NOT NULL CHECK (mode IN ('buy', 'sell')),
    price INTEGER NOT NULL,
    UNIQUE (item_id, npc_name, mode)
)
"""

# Quests - keyed by quest number
CREATE_QUESTS = """
CREATE TABLE IF NOT EXISTS quests (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    x INTEGER NOT NULL,
    y INTEGER NOT NULL,
    z INTEGER NOT NULL,
    reward_items_json TEXT NOT NULL DEFAULT '[]'
)
"""

CREATE_QUEST_CHESTS = """
CREATE TABLE IF NOT EXISTS quest_chests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    quest_id INTEGER NOT NULL,
    x INTEGER NOT NULL,
    y INTEGER NOT NULL,
    z INTEGER NOT NULL,
    sector_name TEXT NOT NULL,
    key_number INTEGER,
    contents_json TEXT NOT NULL DEFAULT '[]',
    UNIQUE (x, y, z),
    FOREIGN KEY (quest_id) REFERENCES quests(id) ON DELETE CASCADE
)
"""

# Raids - keyed by event file name
CREATE_RAIDS = """
CREATE TABLE IF NOT EXISTS raids (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    kind TEXT NOT NULL CHECK (kind IN ('cyclic', 'one-time')),
    raid_type TEXT NOT NULL,
    waves TEXT NOT NULL,
    interval_seconds INTEGER,
    interval_days REAL,
    message TEXT,
    creatures TEXT NOT NULL,
    spawn_composition_json TEXT NOT NULL DEFAULT '[]',
    CHECK ((interval_seconds IS NULL) OR (interval_days IS NULL))
)
"""

CREATE_SKINNING_RECIPES = """
CREATE TABLE IF NOT EXISTS skinning_recipes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tool_id INTEGER NOT NULL,
    corpse_id INTEGER NOT NULL,
    next_corpse_id INTEGER NOT NULL,
    percent_chance INTEGER NOT NULL,
    reward_id INTEGER NOT NULL,
    race_id INTEGER NOT NULL,
    UNIQUE (tool_id, corpse_id)
)
"""

# Spells - keyed by the spell id from magic.cc. magic_level and charges are
# set for runes only.
SPELLS_TABLE = """
CREATE TABLE IF NOT EXISTS {name} (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    words TEXT NOT NULL,
    level INTEGER NOT NULL DEFAULT 0,
    magic_level INTEGER,
    mana INTEGER NOT NULL DEFAULT 0,
    soul_points INTEGER NOT NULL DEFAULT 0,
    flags INTEGER NOT NULL DEFAULT 0,
    is_rune INTEGER NOT NULL DEFAULT 0,
    rune_type_id INTEGER,
    charges INTEGER,
    spell_type TEXT NOT NULL,
    premium INTEGER NOT NULL DEFAULT 0
)
"""
CREATE_SPELLS = SPELLS_TABLE.format(name="spells")

CREATE_SPELL_TEACHERS = """
CREATE TABLE IF NOT EXISTS spell_teachers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    npc_name TEXT NOT NULL,
    spell_id INTEGER NOT NULL,
    spell_name TEXT NOT NULL,
    vocation TEXT NOT NULL,
    price INTEGER NOT NULL,
    level_required INTEGER,
    UNIQUE (npc_name, spell_id, vocation)
)
"""

# Rune, wand and rod offers. spell_id is linked after insert, item_id may dangle.
CREATE_RUNE_SELLERS = """
CREATE TABLE IF NOT EXISTS rune_sellers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    npc_name TEXT NOT NULL,
    item_id INTEGER NOT NULL,
    spell_id INTEGER,
    item_category TEXT NOT NULL CHECK (item_category IN ('rune', 'wand', 'rod')),
    vocation TEXT NOT NULL,
    price INTEGER NOT NULL,
    charges INTEGER,
    account_type TEXT,
    UNIQUE (npc_name, item_id, vocation)
)
"""

# Version 1 - base tables
ALL_CREATE_STATEMENTS = [
    CREATE_SETTINGS,
    CREATE_PLAYERS,
    CREATE_DAILY_SNAPSHOTS,
    CREATE_DAILY_QUESTS,
    CREATE_BESTIARY,
    CREATE_SKINNING,
    CREATE_CREATURES,
    CREATE_CREATURE_LOOT,
    CREATE_ITEMS,
    CREATE_ITEM_PRICES,
    CREATE_QUESTS,
    CREATE_QUEST_CHESTS,
    CREATE_RAIDS,
    CREATE_SKINNING_RECIPES,
    CREATE_SPELLS,
    CREATE_SPELL_TEACHERS,
    CREATE_RUNE_SELLERS,
]

# Version 2 - lookup indexes
INDEX_STATEMENTS = [
    "CREATE INDEX IF NOT EXISTS idx_snapshots_date ON daily_snapshots(snapshot_date)",
    "CREATE INDEX IF NOT EXISTS idx_loot_item ON creature_loot(item_id)",
    "CREATE INDEX IF NOT EXISTS idx_prices_item ON item_prices(item_id)",
    "CREATE INDEX IF NOT EXISTS idx_chests_quest ON quest_chests(quest_id)",
    "CREATE INDEX IF NOT EXISTS idx_teachers_spell ON spell_teachers(spell_id)",
]

# Version 3 - nullable rune columns on spells, rune sellers.
# Rebuilds spells so non-rune rows carry NULL magic_level and charges.
SPELL_RUNE_STATEMENTS = [
    SPELLS_TABLE.format(name="spells_v3"),
    """
    INSERT INTO spells_v3 (
        id, name, words, level, magic_level, mana, soul_points, flags,
        is_rune, rune_type_id, charges, spell_type, premium
    )
    SELECT
        id, name, words, level,
        CASE WHEN is_rune THEN magic_level END,
        mana, soul_points, flags, is_rune, rune_type_id,
        CASE WHEN is_rune THEN charges END,
        spell_type, premium
    FROM spells
    """,
    "DROP TABLE spells",
    "ALTER TABLE spells_v3 RENAME TO spells",
    CREATE_RUNE_SELLERS,
    "CREATE INDEX IF NOT EXISTS idx_rune_sellers_item ON rune_sellers(item_id)",
]

# Ordered, additive. Each entry upgrades the schema to its version.
MIGRATIONS: list[tuple[int, list[str]]] = [
    (1, ALL_CREATE_STATEMENTS),
    (2, INDEX_STATEMENTS),
    (3, SPELL_RUNE_STATEMENTS),
]
