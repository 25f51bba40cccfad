"""Core domain models - dataclasses with no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Optional


class PriceMode(Enum):
    """Direction of an NPC trade, seen from the NPC."""

    BUY = "buy"  # NPC sells to the player
    SELL = "sell"  # NPC buys from the player


class RaidKind(Enum):
    """Scheduling class of a raid event."""

    CYCLIC = "cyclic"
    ONE_TIME = "one-time"


VOCATIONS = ("Knight", "Paladin", "Druid", "Sorcerer")

# Rune item type id = base + rune number
RUNE_TYPE_BASE = 3147


# --- Player snapshots ---


@dataclass
class PlayerSnapshot:
    """One character's state as read from a single .usr file."""

    name: str
    player_id: Optional[int] = None
    level: int = 0
    experience: int = 0
    magic_level: int = 0
    skills: dict[str, int] = field(default_factory=dict)  # skill name -> value
    equipment: dict[int, int] = field(default_factory=dict)  # slot -> type id
    quests: dict[int, int] = field(default_factory=dict)  # quest id -> value
    bestiary: dict[int, int] = field(default_factory=dict)  # race -> kills
    skinning: dict[int, int] = field(default_factory=dict)  # race -> skins


@dataclass
class SnapshotRecord:
    """A player snapshot bound to the date it was taken."""

    snapshot: PlayerSnapshot
    snapshot_date: date
    source_file: Optional[str] = None


# --- Creatures ---


@dataclass
class LootEntry:
    """One loot table row of a creature."""

    item_id: int
    max_amount: int
    chance_raw: int  # 1..999 as stored in the .mon file
    min_amount: int = 1
    slot: int = 0  # position in the creature's loot table

    @property
    def chance_percent(self) -> float:
        """Drop chance in percent, unrounded."""
        return (self.chance_raw + 1) / 999 * 100


@dataclass
class Creature:
    """A monster definition from a .mon file."""

    race: int
    name: str
    article: str = ""
    experience: int = 0
    hit_points: int = 0
    attack: int = 0
    defense: int = 0
    armor: int = 0
    flags: list[str] = field(default_factory=list)
    skills: dict[str, int] = field(default_factory=dict)
    loot: list[LootEntry] = field(default_factory=list)
    source_file: Optional[str] = None

    @property
    def short_name(self) -> str:
        return self.name.replace(" ", "").lower()

    @property
    def creature_type(self) -> str:
        """Regular monsters carry an indefinite article, bosses do not."""
        return "Regular" if self.article.lower() in ("a", "an") else "Boss"

    @property
    def has_loot(self) -> bool:
        return bool(self.loot)


# --- Items and NPC trade ---


@dataclass
class Item:
    """A portable object type from the item catalog."""

    type_id: int
    name: str
    flags: int = 0  # bitset, see ITEM_FLAG_NAMES
    flag_names: list[str] = field(default_factory=list)
    attributes: dict[str, int] = field(default_factory=dict)
    description: Optional[str] = None


@dataclass
class ItemPrice:
    """A price an NPC asks or pays for an item."""

    item_id: int  # item type id, may not exist in items
    npc_name: str
    mode: PriceMode
    price: int


@dataclass
class NpcScript:
    """A parsed .npc file: name plus raw behaviour lines."""

    name: str
    behaviour: list[str] = field(default_factory=list)
    source_file: Optional[str] = None


@dataclass
class SpellTeaching:
    """An NPC offer to teach a spell to one vocation."""

    npc_name: str
    spell_id: int
    price: int
    vocation: str


@dataclass
class SpellTeacherRecord:
    """A teaching offer enriched with spell name and level."""

    npc_name: str
    spell_id: int
    spell_name: str
    price: int
    vocation: str
    level_required: Optional[int] = None


ALL_VOCATIONS = "All"


@dataclass
class RuneSeller:
    """An NPC offer for a rune, wand or rod."""

    npc_name: str
    item_id: int
    price: int
    item_category: str  # "rune", "wand" or "rod"
    vocation: str = ALL_VOCATIONS
    charges: Optional[int] = None  # Data= of the offer
    account_type: Optional[str] = None  # "Free", "Premium" or unknown


# --- Quests ---


@dataclass
class QuestChest:
    """A quest chest found in a map sector."""

    quest_number: int
    item_ids: list[int]
    x: int
    y: int
    z: int
    sector_name: str
    key_number: Optional[int] = None

    @property
    def name(self) -> str:
        return f"Quest {self.quest_number}"

    @property
    def location(self) -> str:
        return f"{self.x},{self.y},{self.z} ({self.sector_name})"


@dataclass
class Quest:
    """A quest aggregated from all chests sharing one quest number."""

    id: int
    name: str
    x: int
    y: int
    z: int
    reward_items: list[int] = field(default_factory=list)
    chests: list[QuestChest] = field(default_factory=list)
    description: Optional[str] = None


# --- Raids ---


@dataclass
class RaidSpawn:
    """A creature group spawned during one raid wave."""

    race: int
    min_count: int
    max_count: int
    position: Optional[tuple[int, int, int]] = None
    radius: Optional[int] = None

    def describe(self, name: str) -> str:
        if self.min_count == self.max_count:
            return f"{self.min_count} {name}"
        return f"{self.min_count} to {self.max_count} {name}"


@dataclass
class RaidWave:
    """One timed step of a raid."""

    number: int
    delay: int = 0  # seconds after the previous wave
    message: Optional[str] = None
    spawns: list[RaidSpawn] = field(default_factory=list)


@dataclass
class RaidEvent:
    """A decoded .evt file."""

    name: str
    raid_type: str
    kind: RaidKind
    interval: Optional[int] = None  # seconds as written in the file
    waves: list[RaidWave] = field(default_factory=list)
    process_word: Optional[str] = None  # from the "# Process:" comment
    source_file: Optional[str] = None


@dataclass
class RaidRecord:
    """A raid row ready for persistence."""

    name: str
    kind: RaidKind
    raid_type: str
    waves: str
    interval_seconds: Optional[int]
    interval_days: Optional[float]
    message: Optional[str]
    creatures: str
    spawn_composition: list[dict]


# --- Spells ---


@dataclass
class SpellEntry:
    """A spell table entry mined from magic.cc."""

    id: int
    words: str
    name: str
    mana: int = 0
    level: int = 0
    magic_level: Optional[int] = None  # RuneLevel, runes only
    soul_points: int = 0
    flags: int = 0
    rune_group: Optional[int] = None
    rune_number: Optional[int] = None
    charges: Optional[int] = None  # Amount, runes only

    @property
    def is_rune(self) -> bool:
        """Both RuneGr and RuneNr are set and the group is not 0."""
        if self.rune_group is None or self.rune_number is None:
            return False
        return self.rune_group != 0

    @property
    def rune_type_id(self) -> Optional[int]:
        return RUNE_TYPE_BASE + self.rune_number if self.is_rune else None

    @property
    def premium(self) -> bool:
        return bool(self.flags & 0x02)

    @property
    def spell_type(self) -> str:
        """Coarse classification from flags and spell words."""
        words = self.words.lower()
        if self.flags & 0x01:
            if "mas" in words or "grav" in words:
                return "area"
            return "attack"
        if self.flags & 0x08 or "ura" in words:
            return "healing"
        if "evo res" in words:
            return "summon"
        if "hur" in words and "mort" not in words:
            return "support"
        if "lux" in words or "evo" in words:
            return "utility"
        return "other"


@dataclass
class SpellSkip:
    """A spell table the scanner could not turn into an entry."""

    reason: str
    spell_id: Optional[int] = None
    line: Optional[int] = None


# --- Skinning ---


@dataclass
class SkinningRecipe:
    """A corpse harvesting rule from the recipe CSV."""

    tool_id: int
    corpse_id: int
    next_corpse_id: int
    percent_chance: int
    reward_id: int
    race_id: int


# --- Ingestion results ---


@dataclass
class FileFailure:
    """A file skipped during a stage, with the reason."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


@dataclass
class BatchResult:
    """Outcome of one batched write."""

    written: int = 0
    errors: list = field(default_factory=list)  # SchemaViolation instances

    def merge(self, other: "BatchResult") -> None:
        self.written += other.written
        self.errors.extend(other.errors)


@dataclass
class StageSummary:
    """What one pipeline command did."""

    command: str
    written: dict[str, int] = field(default_factory=dict)  # entity -> rows
    warnings: list[str] = field(default_factory=list)
    skipped: list[FileFailure] = field(default_factory=list)

    def add_written(self, entity: str, count: int) -> None:
        self.written[entity] = self.written.get(entity, 0) + count

    def summary_line(self) -> str:
        parts = [f"{count} {entity}" for entity, count in self.written.items()]
        wrote = ", ".join(parts) if parts else "nothing"
        line = f"{self.command}: wrote {wrote}; skipped {len(self.skipped)} file(s)"
        if self.warnings:
            line += f"; {len(self.warnings)} warning(s)"
        return line
