"""Ingestion pipeline - one entry point per command.

Each stage checks its required inputs, decodes files in parallel, then
persists the results on the calling thread and runs its derived passes.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from demonax.core.errors import IoError
from demonax.core.models import (
    FileFailure,
    ItemPrice,
    RuneSeller,
    SpellEntry,
    SpellSkip,
    SpellTeaching,
    StageSummary,
)
from demonax.core.normalizer import (
    aggregate_quests,
    build_raid_record,
    build_snapshot_record,
    build_teacher_records,
    raid_races,
    snapshot_date_for,
    validate_loot,
)
from demonax.core.scheduler import FILE_ERRORS, FileScheduler
from demonax.core.skinning_rules import generate_rules, insert_rules
from demonax.db.repository import DEFAULT_BATCH_SIZE, Repository
from demonax.parser.creature_parser import parse_creature_file
from demonax.parser.item_parser import parse_item_catalog
from demonax.parser.map_parser import parse_sector_file
from demonax.parser.npc_parser import (
    extract_prices,
    extract_rune_sellers,
    extract_spell_teaching,
    parse_npc_file,
)
from demonax.parser.patterns import EXCLUDED_MONSTER_FILES, EXCLUDED_RAID_FILES
from demonax.parser.player_parser import parse_player_file
from demonax.parser.raid_parser import parse_raid_file
from demonax.parser.recipe_parser import parse_recipe_file
from demonax.parser.spell_parser import parse_spell_file

logger = logging.getLogger(__name__)

CATALOG_RELATIVE_PATH = Path("dat/objects.srv")


def find_files(directory: Path, extension: str, exclude: frozenset[str] = frozenset()) -> list[Path]:
    """
    All files below `directory` with the given extension, sorted.

    Raises:
        IoError: If the directory does not exist
    """
    if not directory.is_dir():
        raise IoError(f"Directory not found: {directory}", path=directory)
    return sorted(
        path
        for path in directory.rglob(f"*.{extension}")
        if path.is_file() and path.name.lower() not in exclude
    )


def require_file(path: Path) -> Path:
    if not path.is_file():
        raise IoError(f"File not found: {path}", path=path)
    return path


def _decode_npc_prices(path: Path) -> list[ItemPrice]:
    return extract_prices(parse_npc_file(path))


def _decode_npc_offers(path: Path) -> tuple[list[SpellTeaching], list[RuneSeller]]:
    script = parse_npc_file(path)
    return extract_spell_teaching(script), extract_rune_sellers(script)


class Pipeline:
    """Runs ingestion stages against one repository."""

    def __init__(
        self,
        repo: Repository,
        scheduler: Optional[FileScheduler] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.repo = repo
        self.scheduler = scheduler or FileScheduler()
        self.batch_size = batch_size

    def _persist(self, summary: StageSummary, entity: str, records: Sequence) -> None:
        result = self.repo.write_chunked(records, self.batch_size)
        summary.add_written(entity, result.written)
        for error in result.errors:
            logger.warning("Dropped row: %s", error)
            summary.warnings.append(str(error))

    # --- Creatures ---

    def update_creatures(self, game_path: Path) -> StageSummary:
        """Decode mon/*.mon and refresh loot values."""
        summary = StageSummary("update-creatures")
        paths = find_files(game_path / "mon", "mon", EXCLUDED_MONSTER_FILES)
        logger.info("Decoding %d creature file(s)", len(paths))

        decoded = self.scheduler.run(paths, parse_creature_file)
        summary.skipped.extend(decoded.failures)

        creatures = []
        for _, creature in decoded.ordered():
            for violation in validate_loot(creature):
                logger.warning("Dropped row: %s", violation)
                summary.warnings.append(str(violation))
            creatures.append(creature)

        self._persist(summary, "creatures", creatures)
        self.repo.refresh_loot_values()
        return summary

    # --- Items ---

    def update_items_core(self, game_path: Path) -> StageSummary:
        """Decode the item catalog and NPC prices, then refresh loot values."""
        summary = StageSummary("update-items-core")
        catalog = require_file(game_path / CATALOG_RELATIVE_PATH)

        try:
            items = parse_item_catalog(catalog)
        except FILE_ERRORS as e:
            logger.warning("Skipping %s: %s", catalog, e)
            summary.skipped.append(FileFailure(path=catalog, reason=str(e)))
            items = []
        self._persist(summary, "items", items)

        npc_dir = game_path / "npc"
        if npc_dir.is_dir():
            decoded = self.scheduler.run(find_files(npc_dir, "npc"), _decode_npc_prices)
            summary.skipped.extend(decoded.failures)
            prices = [price for _, found in decoded.ordered() for price in found]
            self._persist(summary, "item_prices", prices)
        else:
            logger.warning("NPC directory not found: %s", npc_dir)
            summary.warnings.append(f"NPC directory not found: {npc_dir}")

        self.repo.refresh_loot_values()
        return summary

    def update_quest_overview(self, game_path: Path) -> StageSummary:
        """Decode map sectors into quests and their chests."""
        summary = StageSummary("update-quest-overview")
        paths = find_files(game_path / "map", "sec")
        logger.info("Scanning %d sector file(s)", len(paths))

        decoded = self.scheduler.run(paths, parse_sector_file)
        summary.skipped.extend(decoded.failures)
        chests = [chest for _, found in decoded.ordered() for chest in found]

        self._persist(summary, "quests", aggregate_quests(chests))
        return summary

    def update_items_quests(self) -> StageSummary:
        """Link items to the quests that reward them."""
        summary = StageSummary("update-items-quests")
        if self.repo.get_item_count() == 0:
            summary.warnings.append("No items in database; run update-items-core first")
        if self.repo.get_quest_count() == 0:
            summary.warnings.append("No quests in database; run update-quest-overview first")
        for warning in summary.warnings:
            logger.warning(warning)
        summary.add_written("items", self.repo.link_item_quest_rewards())
        return summary

    # --- Raids ---

    def update_raids(self, game_path: Path) -> StageSummary:
        """Decode mon/*.evt raid events."""
        summary = StageSummary("update-raids")
        paths = find_files(game_path / "mon", "evt", EXCLUDED_RAID_FILES)

        decoded = self.scheduler.run(paths, parse_raid_file)
        summary.skipped.extend(decoded.failures)
        raids = [raid for _, raid in decoded.ordered()]

        races = {race for raid in raids for race in raid_races(raid)}
        names = self.repo.lookup_creature_names(races)
        missing = sorted(races - set(names))
        if missing:
            logger.info("No creature name for race(s) %s", missing)

        self._persist(summary, "raids", [build_raid_record(raid, names) for raid in raids])
        return summary

    # --- Skinning ---

    def update_skinning(self, recipe_csv: Path) -> StageSummary:
        """Load the harvesting recipe CSV."""
        summary = StageSummary("update-skinning")
        require_file(recipe_csv)
        try:
            recipes = parse_recipe_file(recipe_csv)
        except FILE_ERRORS as e:
            logger.warning("Skipping %s: %s", recipe_csv, e)
            summary.skipped.append(FileFailure(path=recipe_csv, reason=str(e)))
            recipes = []
        self._persist(summary, "skinning_recipes", recipes)
        return summary

    def update_moveuse_skinning(self, recipe_csv: Path, moveuse_path: Path) -> StageSummary:
        """Rewrite the harvesting section of moveuse.dat from the recipe CSV."""
        summary = StageSummary("update-moveuse-skinning")
        require_file(recipe_csv)
        require_file(moveuse_path)

        rules = generate_rules(parse_recipe_file(recipe_csv))
        content = moveuse_path.read_text(encoding="latin-1")
        moveuse_path.write_text(insert_rules(content, rules), encoding="latin-1")
        logger.info("Wrote %d harvesting rule(s) to %s", len(rules), moveuse_path)
        summary.add_written("rules", len(rules))
        return summary

    # --- Spells ---

    def update_spells(self, magic_cc: Path, npc_dir: Optional[Path] = None) -> StageSummary:
        """
        Decode magic.cc, then the spell teaching and rune offers of all NPCs.

        Rune sellers are replaced as a whole and linked to the spell that
        creates the rune.
        """
        summary = StageSummary("update-spells")
        require_file(magic_cc)

        try:
            results = parse_spell_file(magic_cc)
        except FILE_ERRORS as e:
            logger.warning("Skipping %s: %s", magic_cc, e)
            summary.skipped.append(FileFailure(path=magic_cc, reason=str(e)))
            results = []

        spells = []
        for entry in results:
            if isinstance(entry, SpellSkip):
                where = f" (line {entry.line})" if entry.line is not None else ""
                message = f"Skipped spell{where}: {entry.reason}"
                logger.warning(message)
                summary.warnings.append(message)
            elif isinstance(entry, SpellEntry):
                spells.append(entry)
        self._persist(summary, "spells", spells)

        if npc_dir is None:
            return summary
        if not npc_dir.is_dir():
            logger.warning("NPC directory not found: %s", npc_dir)
            summary.warnings.append(f"NPC directory not found: {npc_dir}")
            return summary

        decoded = self.scheduler.run(find_files(npc_dir, "npc"), _decode_npc_offers)
        summary.skipped.extend(decoded.failures)
        offers: list[SpellTeaching] = []
        sellers: list[RuneSeller] = []
        for _, (teaching, runes) in decoded.ordered():
            offers.extend(teaching)
            sellers.extend(runes)
        known = self.repo.lookup_spells(offer.spell_id for offer in offers)
        self._persist(summary, "spell_teachers", build_teacher_records(offers, known))

        self.repo.clear_rune_sellers()
        self._persist(summary, "rune_sellers", sellers)
        linked = self.repo.link_rune_seller_spells()
        logger.info("Linked %d of %d rune seller(s) to spells", linked, len(sellers))
        return summary

    # --- Players ---

    def process_usr(self, input_dir: Path, snapshot_date: Optional[date] = None) -> StageSummary:
        """Decode player files into dated snapshots."""
        summary = StageSummary("process-usr")
        paths = find_files(input_dir, "usr")
        if not paths:
            logger.info("No .usr files found in %s", input_dir)

        decoded = self.scheduler.run(paths, parse_player_file)
        summary.skipped.extend(decoded.failures)
        records = [
            build_snapshot_record(path, snapshot, snapshot_date_for(path, snapshot_date))
            for path, snapshot in decoded.ordered()
        ]
        self._persist(summary, "snapshots", records)
        return summary
