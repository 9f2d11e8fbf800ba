"""Merge policy: fold a fetch outcome into an item without regressing captured data."""

from dataclasses import replace
from typing import Iterable

from .models import Item, ItemStatus, Outcome, is_missing

_FAILURE_STATUS = {
    Outcome.NOT_FOUND: ItemStatus.FAILED_NOT_FOUND,
    Outcome.NO_DATA: ItemStatus.FAILED_NO_DATA,
}


def merge_fields(existing: dict, incoming: dict) -> dict:
    """Return a new field mapping; existing non-missing values always win."""
    merged = dict(existing)
    for name, value in incoming.items():
        if name not in merged:
            merged[name] = value
        elif is_missing(merged[name]) and not is_missing(value):
            merged[name] = value
    return merged


def has_anchors(fields: dict, anchor_fields: Iterable[str]) -> bool:
    anchors = list(anchor_fields)
    if not anchors:
        # No anchor configured: any captured value confirms the page matched.
        return any(not is_missing(v) for v in fields.values())
    return all(not is_missing(fields.get(name)) for name in anchors)


def merge(item: Item, outcome: Outcome, anchor_fields: Iterable[str] = ()) -> Item:
    """Pure: returns an updated copy of ``item``."""
    if outcome.kind == Outcome.SUCCESS:
        fields = merge_fields(item.fields, outcome.fields)
        if item.status == ItemStatus.COMPLETE or has_anchors(fields, anchor_fields):
            status = ItemStatus.COMPLETE
        else:
            status = ItemStatus.PENDING
        error = None if status == ItemStatus.COMPLETE else "anchor fields missing"
        return replace(item, fields=fields, status=status, error=error)

    # Failures never touch fields, and a finished item is never downgraded.
    if item.status == ItemStatus.COMPLETE:
        return replace(item, fields=dict(item.fields))

    if outcome.kind in _FAILURE_STATUS:
        return replace(item, fields=dict(item.fields),
                       status=_FAILURE_STATUS[outcome.kind], error=outcome.error)

    if outcome.kind == Outcome.TRANSIENT:
        return replace(item, fields=dict(item.fields), error=outcome.error)

    raise ValueError(f"Unknown outcome kind: {outcome.kind!r}")
