"""CLI commands for ingestion and serving."""

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from demonax import __version__
from demonax.config.logging import get_logger, setup_logging
from demonax.config.settings import Settings, find_magic_cc, find_recipe_csv
from demonax.core.errors import DemonaxError, IoError, PersistenceError
from demonax.core.models import StageSummary
from demonax.core.pipeline import Pipeline
from demonax.core.scheduler import FileScheduler
from demonax.db.connection import Database
from demonax.db.repository import Repository

StageRunner = Callable[[Pipeline, Settings, argparse.Namespace], StageSummary]


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_args(
        db_path=args.database,
        log_file=args.log_file,
        game_path=getattr(args, "game_path", None),
        workers=args.workers,
        batch_size=args.batch_size,
        verbosity=args.verbose,
    )


def print_summary(summary: StageSummary) -> None:
    """Print the one-line stage summary followed by each skipped file."""
    print(summary.summary_line())
    for failure in summary.skipped:
        print(f"  skipped {failure.path}: {failure.reason}")


def _run_stage(
    args: argparse.Namespace,
    runner: StageRunner,
    require_game_path: bool = True,
) -> int:
    """Open the database, run one pipeline stage and report the outcome."""
    settings = _settings(args)
    logger = setup_logging(settings.verbosity, settings.log_file)

    errors = settings.validate(require_game_path=require_game_path)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    logger.info("Database: %s", settings.db_path)
    db = Database(settings.db_path)
    try:
        db.connect()
        pipeline = Pipeline(
            Repository(db),
            scheduler=FileScheduler(max_workers=settings.workers),
            batch_size=settings.batch_size,
        )
        summary = runner(pipeline, settings, args)
    except PersistenceError as e:
        logger.error("Stage aborted: %s", e)
        print(f"Error: stage aborted: {e}", file=sys.stderr)
        return 1
    except DemonaxError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print_summary(summary)
    return 0


def _magic_cc(settings: Settings, args: argparse.Namespace) -> Path:
    if args.magic_cc:
        return Path(args.magic_cc)
    found = find_magic_cc(settings.game_path)
    if found is None:
        raise IoError(f"magic.cc not found below {settings.game_path} (use --magic-cc)")
    return found


def _recipe_csv(settings: Settings, args: argparse.Namespace) -> Path:
    if args.harvesting_csv:
        return Path(args.harvesting_csv)
    found = find_recipe_csv(settings.game_path)
    if found is None:
        raise IoError("harvesting.csv not found (use --harvesting-csv)")
    return found


def cmd_update_creatures(args: argparse.Namespace) -> int:
    """Load creatures and their loot from mon/*.mon."""
    return _run_stage(args, lambda p, s, a: p.update_creatures(s.game_path))


def cmd_update_items_core(args: argparse.Namespace) -> int:
    """Load the item catalog and NPC prices."""
    return _run_stage(args, lambda p, s, a: p.update_items_core(s.game_path))


def cmd_update_quest_overview(args: argparse.Namespace) -> int:
    """Load quests from map sectors."""
    return _run_stage(args, lambda p, s, a: p.update_quest_overview(s.game_path))


def cmd_update_items_quests(args: argparse.Namespace) -> int:
    """Link items to the quests that reward them."""
    return _run_stage(args, lambda p, s, a: p.update_items_quests(), require_game_path=False)


def cmd_update_raids(args: argparse.Namespace) -> int:
    """Load raid events from mon/*.evt."""
    return _run_stage(args, lambda p, s, a: p.update_raids(s.game_path))


def cmd_update_skinning(args: argparse.Namespace) -> int:
    """Load harvesting recipes."""
    return _run_stage(
        args,
        lambda p, s, a: p.update_skinning(_recipe_csv(s, a)),
        require_game_path=False,
    )


def cmd_update_moveuse_skinning(args: argparse.Namespace) -> int:
    """Rewrite the harvesting rules in moveuse.dat."""

    def run(pipeline: Pipeline, settings: Settings, args: argparse.Namespace) -> StageSummary:
        if args.moveuse:
            moveuse = Path(args.moveuse)
        elif settings.game_path:
            moveuse = settings.game_path / "dat" / "moveuse.dat"
        else:
            raise IoError("moveuse.dat location unknown (use --moveuse or --game-path)")
        return pipeline.update_moveuse_skinning(_recipe_csv(settings, args), moveuse)

    return _run_stage(args, run, require_game_path=False)


def cmd_update_spells(args: argparse.Namespace) -> int:
    """Load spells from magic.cc and teaching offers from NPC scripts."""

    def run(pipeline: Pipeline, settings: Settings, args: argparse.Namespace) -> StageSummary:
        return pipeline.update_spells(_magic_cc(settings, args), settings.game_path / "npc")

    return _run_stage(args, run)


def cmd_process_usr(args: argparse.Namespace) -> int:
    """Store player snapshots from .usr files."""
    return _run_stage(
        args,
        lambda p, s, a: p.process_usr(Path(a.input_dir), a.snapshot_date),
        require_game_path=False,
    )


def cmd_show_status(args: argparse.Namespace) -> int:
    """Print row counts for every table."""
    settings = _settings(args)
    logger = setup_logging(settings.verbosity, settings.log_file)

    db = Database(settings.db_path)
    try:
        db.connect()
    except PersistenceError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    try:
        repo = Repository(db)
        print(f"Database: {settings.db_path} (schema {db.schema_version()})")
        for table, count in repo.get_table_counts().items():
            print(f"  {table:<18} {count}")
        untaught = repo.get_untaught_spells()
        if untaught:
            print(f"\n{len(untaught)} spell(s) without a teacher:")
            for spell in untaught:
                print(f"  [{spell['id']:>3}] {spell['name']} ({spell['words']}), level {spell['level']}")
    finally:
        db.close()
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the read-only query API."""
    settings = _settings(args)
    logger = setup_logging(max(settings.verbosity, 1), settings.log_file)

    try:
        import uvicorn
    except ImportError:
        logger.error("Uvicorn is required for the serve command.")
        logger.error("Install with: pip install uvicorn")
        return 1

    from demonax.api.app import create_app

    logger.info(f"Demonax v{__version__} starting...")
    logger.info(f"Database: {settings.db_path}")

    db = Database(settings.db_path)
    try:
        db.connect()
    except PersistenceError as e:
        logger.error("%s", e)
        return 1
    try:
        app = create_app(db)
        uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    finally:
        db.close()
    return 0


def _snapshot_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value}")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="demonax",
        description="Game server data ingestion into SQLite",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--database",
        type=str,
        help="Database file path (default: $DEMONAX_DATABASE or ./demonax.sqlite)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write log records to this file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of decode workers",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Rows per write transaction (default: 500)",
    )

    # Shared --game-path option
    game = argparse.ArgumentParser(add_help=False)
    game.add_argument(
        "--game-path",
        type=str,
        help="Game directory containing mon/, npc/, map/ and dat/ (default: $DEMONAX_GAME_PATH)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("update-creatures", parents=[game], help="Load creatures from mon/*.mon")
    subparsers.add_parser("update-items-core", parents=[game], help="Load item catalog and NPC prices")
    subparsers.add_parser("update-quest-overview", parents=[game], help="Load quests from map sectors")
    subparsers.add_parser("update-items-quests", help="Link items to quest rewards")
    subparsers.add_parser("update-raids", parents=[game], help="Load raid events from mon/*.evt")

    skinning_parser = subparsers.add_parser(
        "update-skinning", parents=[game], help="Load harvesting recipes"
    )
    skinning_parser.add_argument("--harvesting-csv", type=str, help="Path to harvesting.csv")

    moveuse_parser = subparsers.add_parser(
        "update-moveuse-skinning", parents=[game], help="Rewrite harvesting rules in moveuse.dat"
    )
    moveuse_parser.add_argument("--harvesting-csv", type=str, help="Path to harvesting.csv")
    moveuse_parser.add_argument("--moveuse", type=str, help="Path to moveuse.dat")

    spells_parser = subparsers.add_parser(
        "update-spells", parents=[game], help="Load spells and spell teachers"
    )
    spells_parser.add_argument("--magic-cc", type=str, help="Path to magic.cc")

    usr_parser = subparsers.add_parser("process-usr", help="Store player snapshots from .usr files")
    usr_parser.add_argument(
        "--input-dir",
        type=str,
        required=True,
        help="Directory containing .usr files (searched recursively)",
    )
    usr_parser.add_argument(
        "--snapshot-date",
        type=_snapshot_date,
        help="Snapshot date YYYY-MM-DD (default: date in path, else today)",
    )

    subparsers.add_parser("show-status", help="Show table counts and untaught spells")

    serve_parser = subparsers.add_parser("serve", help="Start the query API")
    serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "update-creatures": cmd_update_creatures,
        "update-items-core": cmd_update_items_core,
        "update-quest-overview": cmd_update_quest_overview,
        "update-items-quests": cmd_update_items_quests,
        "update-raids": cmd_update_raids,
        "update-skinning": cmd_update_skinning,
        "update-moveuse-skinning": cmd_update_moveuse_skinning,
        "update-spells": cmd_update_spells,
        "process-usr": cmd_process_usr,
        "show-status": cmd_show_status,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func is None:
        print(f"Unknown command: {args.command}")
        return 1

    get_logger().debug("Running %s", args.command)
    return cmd_func(args)


if __name__ == "__main__":
    sys.exit(main())
