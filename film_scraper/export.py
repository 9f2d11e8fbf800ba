"""Tabular seed import and merged dataset export (pandas)."""

import logging
import os
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .models import Item

logger = logging.getLogger("film_scraper")


def load_seed(csv_path: str) -> List[Tuple[str, Optional[str]]]:
    """Read ``identity[,locator]`` rows. A blank locator comes back as None."""
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    if "identity" not in df.columns:
        raise ValueError(f"{csv_path}: seed file needs an 'identity' column")

    rows = []
    for record in df.to_dict("records"):
        identity = record["identity"].strip()
        if not identity:
            continue
        locator = (record.get("locator") or "").strip() or None
        rows.append((identity, locator))
    return rows


def items_frame(items: List[Item], source: str) -> pd.DataFrame:
    """One row per item, indexed by identity, with a ``<source>_status`` column."""
    status_col = f"{source}_status"
    rows = []
    for item in items:
        row = {"identity": item.identity, status_col: item.status.value}
        row.update(item.present_fields())
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=["identity", status_col]).set_index("identity")
    return pd.DataFrame(rows).set_index("identity")


def merged_frame(items_by_source: Dict[str, List[Item]]) -> pd.DataFrame:
    """Join per-source frames on identity; the first source to capture a field wins."""
    merged = None
    for source, items in items_by_source.items():
        frame = items_frame(items, source)
        merged = frame if merged is None else merged.combine_first(frame)
    if merged is None:
        return pd.DataFrame()
    return merged


def export_dataset(items_by_source: Dict[str, List[Item]], csv_path: str) -> int:
    frame = merged_frame(items_by_source)
    out_dir = os.path.dirname(csv_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    frame.to_csv(csv_path, index_label="identity")
    logger.info(f"Exported {len(frame)} rows x {len(frame.columns)} columns to {csv_path}")
    return len(frame)
