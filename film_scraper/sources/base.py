"""Abstract base class for all enrichment sources."""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, Optional

from ..config import AppConfig, RuleConfig, SourceConfig
from ..downloader import Downloader
from ..extractor import ExtractionRule, build_rule, fetch_and_extract
from ..models import ItemStatus
from ..store import WorklistStore

logger = logging.getLogger("film_scraper")


class BaseSource(ABC):
    name: str = ""
    BASE_URL: str = ""
    DEFAULT_RULE: RuleConfig = RuleConfig()

    def __init__(self, config: AppConfig, store: WorklistStore, downloader: Downloader):
        self.config = config
        self.store = store
        self.downloader = downloader
        self.source_config: SourceConfig = config.sources.get(
            self.name, SourceConfig(rate_limit=config.download.default_rate_limit)
        )
        self.base_url = self.source_config.base_url or self.BASE_URL
        self.rule: ExtractionRule = build_rule(self.source_config.rule or self.DEFAULT_RULE)

    @abstractmethod
    def locator_for(self, identity: str) -> str:
        """Default locator for a bare identity (used when seeding without URLs)."""
        ...

    def fetch(self, url: str) -> str:
        return self.downloader.fetch_text(url, self.name, self.source_config.rate_limit)

    def seed(self, rows) -> int:
        """Add ``(identity, locator-or-None)`` rows to the worklist."""
        added = 0
        for identity, locator in rows:
            try:
                locator = locator or self.locator_for(identity)
            except ValueError as e:
                logger.warning(f"[{self.name}] Skipping {identity!r}: {e}")
                continue
            if self.store.add_item(identity, locator):
                added += 1
        logger.info(f"[{self.name}] Seeded {added} new item(s)")
        return added

    def run(self, limit: Optional[int] = None) -> Dict[str, int]:
        """Fetch, extract and merge every pending item, one at a time."""
        pending = self.store.count(ItemStatus.PENDING)
        total = pending if limit is None else min(pending, limit)
        logger.info(f"[{self.name}] Starting enrichment: {pending} pending, processing {total}")

        counts: Counter = Counter()
        processed = 0
        for item in self.store.pending_items():
            if limit is not None and processed >= limit:
                break
            processed += 1

            outcome = fetch_and_extract(item.locator, self.rule, self.fetch, base_url=self.base_url)
            updated = self.store.mark(item.identity, outcome, self.rule.anchor_fields)
            counts[updated.status.value] += 1

            if outcome.ok:
                logger.info(
                    f"[{self.name}] {processed}/{total} {item.identity}: {updated.status.value} "
                    f"({len(updated.present_fields())} fields)"
                )
            else:
                logger.warning(
                    f"[{self.name}] {processed}/{total} {item.identity}: {outcome.kind} "
                    f"-> {updated.status.value} ({outcome.error})"
                )

        logger.info(
            f"[{self.name}] Done: {processed} processed, "
            + ", ".join(f"{counts.get(s.value, 0)} {s.value}" for s in ItemStatus)
        )
        return dict(counts)
