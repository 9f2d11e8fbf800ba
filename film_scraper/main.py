"""CLI entry point and orchestrator."""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from .config import AppConfig, load_config
from .downloader import Downloader
from .errors import StorageError
from .export import export_dataset, load_seed
from .logger import setup_logger
from .models import ItemStatus
from .sources import ALL_SOURCES
from .store import WorklistStore

logger = logging.getLogger("film_scraper")


def enabled_sources(config: AppConfig, source_name: Optional[str] = None) -> List[str]:
    if source_name:
        return [source_name]
    names = []
    for name in ALL_SOURCES:
        src_config = config.sources.get(name)
        if src_config and not src_config.enabled:
            logger.info(f"[{name}] Disabled in config, skipping.")
            continue
        names.append(name)
    return names


def open_stores(config: AppConfig, names: List[str]) -> Dict[str, WorklistStore]:
    stores = {}
    try:
        for name in names:
            stores[name] = WorklistStore.load(config.db_path, name)
    except StorageError:
        close_stores(stores)
        raise
    return stores


def close_stores(stores: Dict[str, WorklistStore]):
    for store in stores.values():
        store.close()


def run_enrichment(config: AppConfig, stores: Dict[str, WorklistStore],
                   limit: Optional[int] = None, downloader: Optional[Downloader] = None):
    """Enrich every pending item of each source, strictly one request at a time."""
    downloader = downloader or Downloader(config)
    try:
        for name, store in stores.items():
            print(f"\n{'='*60}")
            print(f"  Source: {name}")
            print(f"{'='*60}")

            source = ALL_SOURCES[name](config, store, downloader)
            source.run(limit=limit)
    finally:
        downloader.close()


def seed_source(config: AppConfig, store: WorklistStore, csv_path: str) -> int:
    source = ALL_SOURCES[store.source](config, store, downloader=None)
    return source.seed(load_seed(csv_path))


def show_stats(stores: Dict[str, WorklistStore]):
    """Display item counts per source and status."""
    statuses = [s.value for s in ItemStatus]
    width = 10 + 18 * len(statuses)
    print("\n" + "=" * width)
    print("  WORKLIST STATUS")
    print("=" * width)
    print(f"{'Source':<10}" + "".join(f"{s:>18}" for s in statuses))
    print("-" * width)

    totals = dict.fromkeys(statuses, 0)
    for name, store in stores.items():
        counts = store.status_counts()
        print(f"{name:<10}" + "".join(f"{counts.get(s, 0):>18}" for s in statuses))
        for s in statuses:
            totals[s] += counts.get(s, 0)

    print("-" * width)
    print(f"{'TOTAL':<10}" + "".join(f"{totals[s]:>18}" for s in statuses))
    print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Film metadata scraper (Wikipedia, IMDb, IMSDb)")
    parser.add_argument("--source", type=str, default=None,
                        choices=list(ALL_SOURCES.keys()),
                        help="Work on a single source instead of all enabled ones")
    parser.add_argument("--seed", type=str, metavar="CSV",
                        help="Add items from a CSV with 'identity' and optional 'locator' columns")
    parser.add_argument("--reset", type=str, default=None,
                        choices=[s.value for s in ItemStatus if s != ItemStatus.PENDING],
                        help="Put items with this status back to pending")
    parser.add_argument("--export", type=str, metavar="CSV",
                        help="Write the merged dataset of all selected sources to CSV")
    parser.add_argument("--stats", action="store_true",
                        help="Show worklist status counts")
    parser.add_argument("--limit", type=int, default=None,
                        help="Process at most N pending items per source")
    parser.add_argument("--config", type=str, default="config.yaml",
                        help="Path to config file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.seed and not args.source:
        parser.error("--seed needs --source")

    config = load_config(args.config)
    setup_logger(config.log_dir, config.log_level)

    try:
        stores = open_stores(config, enabled_sources(config, args.source))
    except StorageError as e:
        logger.error(f"Cannot load worklist: {e}")
        return 1

    try:
        if args.seed:
            seed_source(config, stores[args.source], args.seed)
            show_stats(stores)
        elif args.reset:
            for store in stores.values():
                store.reset(ItemStatus(args.reset))
            show_stats(stores)
        elif args.export:
            export_dataset({name: store.items() for name, store in stores.items()}, args.export)
        elif args.stats:
            show_stats(stores)
        else:
            print("Film Scraper")
            print(f"Database: {config.db_path}")
            run_enrichment(config, stores, args.limit)
            show_stats(stores)
    except StorageError as e:
        logger.error(f"Storage failure, aborting run: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted; unfinished items stay pending for the next run")
        show_stats(stores)
        return 130
    finally:
        close_stores(stores)

    return 0


if __name__ == "__main__":
    sys.exit(main())
