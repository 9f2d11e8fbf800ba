"""Data models for the enrichment pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

# Marker for a field whose element was found but whose value was empty or unparsable.
MISSING = None

FieldSet = Dict[str, Any]


def is_missing(value: Any) -> bool:
    return value is MISSING


class ItemStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED_NOT_FOUND = "failed_not_found"
    FAILED_NO_DATA = "failed_no_data"


@dataclass
class Item:
    identity: str
    locator: str
    fields: FieldSet = field(default_factory=dict)
    status: ItemStatus = ItemStatus.PENDING
    error: Optional[str] = None  # last failure reason, for operators

    def present_fields(self) -> FieldSet:
        return {k: v for k, v in self.fields.items() if not is_missing(v)}


@dataclass(frozen=True)
class Outcome:
    """Classified result of one fetch-extract attempt."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    NO_DATA = "no_data"
    TRANSIENT = "transient"

    kind: str
    fields: FieldSet = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def success(cls, fields: FieldSet) -> "Outcome":
        return cls(cls.SUCCESS, dict(fields))

    @classmethod
    def not_found(cls, error: str) -> "Outcome":
        return cls(cls.NOT_FOUND, error=error)

    @classmethod
    def no_data(cls, error: str) -> "Outcome":
        return cls(cls.NO_DATA, error=error)

    @classmethod
    def transient(cls, error: str) -> "Outcome":
        return cls(cls.TRANSIENT, error=error)

    @property
    def ok(self) -> bool:
        return self.kind == self.SUCCESS
