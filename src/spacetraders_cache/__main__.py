"""Entry point: python -m spacetraders_cache

Builds the systems cache if it is missing, then opens the main menu.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from spacetraders_cache.config import Settings, load_settings

logger = logging.getLogger("spacetraders_cache")


def setup_logging(log_dir: Path, *, verbose: bool = False) -> None:
    """Log to stdout and to data/logs/cache.log."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "cache.log"

    formatter = logging.Formatter(
        "[%(asctime)s] %(message)s", datefmt="%H:%M:%S",
    )

    file_handler = logging.FileHandler(log_file, mode="a")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root = logging.getLogger("spacetraders_cache")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    # Silence noisy HTTP request logging
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.debug("Logging to %s", log_file)


async def run(settings: Settings, *, refresh: bool = False) -> int:
    from spacetraders_cache.bootstrap import ensure_cache_ready
    from spacetraders_cache.client import SpaceTradersClient, SpaceTradersError
    from spacetraders_cache.data import catalog
    from spacetraders_cache.data.database import Database, StoreError
    from spacetraders_cache.menu import Menu

    try:
        db = Database.connect(settings.database_url, settings.db_max_connections)
    except StoreError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        async with SpaceTradersClient(settings) as client:
            try:
                await ensure_cache_ready(
                    client, db, page_size=settings.page_size, force=refresh,
                )
            except (SpaceTradersError, StoreError) as exc:
                logger.error("Bootstrap failed, cache left unbuilt: %s", exc)
                return 1
            counts = await catalog.count_rows(db)
            logger.info(
                "Cache ready: %d systems, %d waypoints",
                counts["systems"], counts["waypoints"],
            )
            await Menu(client, db).run()
    finally:
        db.close()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Cache the SpaceTraders systems catalog in PostgreSQL",
    )
    parser.add_argument(
        "--refresh", action="store_true",
        help="Rebuild the cache even if both tables exist",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    try:
        settings = load_settings()
    except ValidationError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        sys.exit(1)
    missing = settings.missing()
    if missing:
        print(f"Missing required settings: {', '.join(missing)}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.data_dir / "logs", verbose=args.verbose)

    try:
        sys.exit(asyncio.run(run(settings, refresh=args.refresh)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
