"""Pydantic schemas for API responses."""

from typing import Optional

from pydantic import BaseModel


class StatusResponse(BaseModel):
    """Server status with row counts per table."""

    status: str
    db_path: str
    schema_version: int
    counts: dict[str, int]


# --- Creatures ---


class LootResponse(BaseModel):
    """One loot table row."""

    slot: int
    item_id: int
    item_name: Optional[str] = None  # None when the item is not in the catalog
    min_amount: int
    max_amount: int
    chance_raw: int
    chance_percent: float
    average_value: float


class CreatureResponse(BaseModel):
    """Creature summary."""

    race: int
    name: str
    short_name: str
    article: str
    experience: int
    hit_points: int
    attack: int
    defense: int
    armor: int
    creature_type: str
    has_loot: bool
    avg_value: float
    flags: list[str]
    skills: dict[str, int]
    source_file: Optional[str] = None


class CreatureDetailResponse(CreatureResponse):
    """Creature with its loot table."""

    loot: list[LootResponse]


class CreatureListResponse(BaseModel):
    creatures: list[CreatureResponse]
    total: int


# --- Items ---


class PriceResponse(BaseModel):
    """An NPC trade offer."""

    npc_name: str
    mode: str  # "buy" = NPC sells, "sell" = NPC buys
    price: int


class ItemResponse(BaseModel):
    """Catalog item."""

    type_id: int
    name: str
    description: Optional[str] = None
    flags: int
    flag_names: list[str]
    attributes: dict[str, int]
    rewarded_from: Optional[str] = None


class ItemDetailResponse(ItemResponse):
    prices: list[PriceResponse]


class ItemListResponse(BaseModel):
    items: list[ItemResponse]
    total: int


# --- World ---


class ChestResponse(BaseModel):
    x: int
    y: int
    z: int
    sector_name: str
    key_number: Optional[int] = None
    contents: list[int]


class QuestResponse(BaseModel):
    """Quest with its chests."""

    id: int
    name: str
    description: Optional[str] = None
    x: int
    y: int
    z: int
    reward_items: list[int]
    chests: list[ChestResponse]


class SpawnResponse(BaseModel):
    race: int
    min: int
    max: int


class WaveResponse(BaseModel):
    wave: int
    delay: int
    spawns: list[SpawnResponse]


class RaidResponse(BaseModel):
    """Raid event."""

    name: str
    kind: str
    raid_type: str
    waves: str
    interval_seconds: Optional[int] = None
    interval_days: Optional[float] = None
    message: Optional[str] = None
    creatures: str
    spawn_composition: list[WaveResponse]


# --- Spells ---


class TeacherResponse(BaseModel):
    npc_name: str
    vocation: str
    price: int
    level_required: Optional[int] = None


class SpellResponse(BaseModel):
    """Spell table entry."""

    id: int
    name: str
    words: str
    level: int
    magic_level: Optional[int] = None
    mana: int
    soul_points: int
    flags: int
    is_rune: bool
    rune_type_id: Optional[int] = None
    charges: Optional[int] = None
    spell_type: str
    premium: bool


class SpellDetailResponse(SpellResponse):
    teachers: list[TeacherResponse]


class RuneSellerResponse(BaseModel):
    """An NPC offer for a rune, wand or rod."""

    npc_name: str
    item_id: int
    item_name: Optional[str] = None
    spell_id: Optional[int] = None
    spell_name: Optional[str] = None
    item_category: str
    vocation: str
    price: int
    charges: Optional[int] = None
    account_type: Optional[str] = None


# --- Players ---


class PlayerResponse(BaseModel):
    name: str
    first_seen: str
    last_seen: str


class SnapshotResponse(BaseModel):
    """One daily player snapshot."""

    snapshot_date: str
    game_player_id: Optional[int] = None
    level: int
    experience: int
    magic_level: int
    skills: dict[str, int]
    equipment: dict[int, int]
    quests: dict[int, int]
    bestiary: dict[int, int]
    skinning: dict[int, int]
    source_file: Optional[str] = None
