"""Phaser - certification phase-transition engine."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from phaser.errors import SettingsError
from phaser.logging_config import setup_logging
from phaser.settings import PhaserSettings, load_settings


async def init_database(settings: PhaserSettings) -> int:
    """Create the database and bring its schema up to date.

    Returns:
        Exit code
    """
    from phaser.storage import Storage

    async with Storage(settings.data_dir, settings.database_name) as storage:
        version = await storage.db.get_schema_version()

    print("Database initialized successfully!")
    print(f"  Database: {settings.data_dir / settings.database_name}")
    print(f"  Schema version: {version}")
    print()
    print("Run 'phaser --status' to see due transitions")
    print("Run 'phaser --scan' to run one transition pass")
    return 0


async def show_status(settings: PhaserSettings) -> int:
    """Show due counts and the phase histogram.

    Returns:
        Exit code
    """
    from phaser.domain import utc_now
    from phaser.storage import Storage

    db_path = settings.data_dir / settings.database_name
    if not db_path.exists():
        print(f"Error: No database found at {db_path}")
        print("Run with --init to create it first.")
        return 1

    async with Storage(settings.data_dir, settings.database_name) as storage:
        now = utc_now()
        certs_due = await storage.count_due_certifications(now)
        items_due = await storage.count_due_items(now)
        histogram = await storage.phase_histogram()
        events = await storage.event_log.count()

    print(f"Time: {now.isoformat()}")
    print(f"Certifications due: {certs_due}")
    print(f"Certification items due: {items_due}")
    print()
    print("Certifications by phase:")
    if not histogram:
        print("  (none)")
    for phase, count in sorted(
        histogram.items(), key=lambda kv: -1 if kv[0] is None else kv[0].ordinal
    ):
        name = phase.value if phase is not None else "not started"
        print(f"  {name}: {count}")
    print()
    print(f"Audit events: {events}")
    return 0


async def run_scan(settings: PhaserSettings) -> int:
    """Run one transition pass with the standard handlers.

    SIGINT asks the pass to stop before its next certification or item.

    Returns:
        Exit code
    """
    from tqdm import tqdm

    from phaser.engine import CertificationPhaser
    from phaser.handlers import standard_handler_factories
    from phaser.storage import Storage

    db_path = settings.data_dir / settings.database_name
    if not db_path.exists():
        print(f"Error: No database found at {db_path}")
        print("Run with --init to create it first.")
        return 1

    owner = settings.resolved_lock_owner
    print(f"Running transition pass as {owner}...")

    bars: dict[str, tqdm] = {}

    def update_progress(stage: str, processed: int, total: int) -> None:
        bar = bars.get(stage)
        if bar is None:
            bar = tqdm(total=total, desc=f"  {stage}", unit=stage[:-1] if stage.endswith("s") else stage)
            bars[stage] = bar
        bar.update(processed - bar.n)

    async with Storage(
        settings.data_dir,
        settings.database_name,
        lock_timeout=settings.lock_timeout,
    ) as storage:
        phaser = CertificationPhaser(
            storage,
            standard_handler_factories(),
            owner,
            audit=storage.event_log,
        )

        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, phaser.terminate)
        try:
            await phaser.transition_due(progress=update_progress)
        finally:
            loop.remove_signal_handler(signal.SIGINT)
            for bar in bars.values():
                bar.close()

        await phaser.save_results()

    print()
    print(phaser.trace_results())
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for phaser."""
    parser = argparse.ArgumentParser(
        description="Phaser - certification phase-transition engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  phaser --init             # Create the database
  phaser --status           # Show due transitions
  phaser --scan             # Run one transition pass
        """,
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=None,
        help="Data directory (default: from settings, data/)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the database schema and exit",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show due counts and phases and exit",
    )
    parser.add_argument(
        "--scan",
        action="store_true",
        help="Run one transition pass over everything due",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to console",
    )

    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except SettingsError as e:
        print(f"Error: {e}")
        return 2
    if args.data is not None:
        settings = settings.model_copy(update={"data_dir": args.data})

    console_level = logging.DEBUG if args.debug else settings.console_level_value
    log_path = setup_logging(
        settings.data_dir,
        log_level=settings.log_level_value,
        console_level=console_level,
    )

    from phaser import __version__
    print(f"Phaser v{__version__}")
    print(f"Data directory: {settings.data_dir.absolute()}")
    print(f"Log file: {log_path}")
    print()

    if args.init:
        return asyncio.run(init_database(settings))

    if args.scan:
        return asyncio.run(run_scan(settings))

    if args.status:
        return asyncio.run(show_status(settings))

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
