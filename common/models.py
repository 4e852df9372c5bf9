"""
Domain model dataclasses for index deduplication.

IndexRecord is the deduplication-relevant projection of one indexed
document. It is built only from a fetched document (from_document()) and
never mutated afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from common.config import config


@dataclass(frozen=True)
class FieldMapping:
    """Names of the four index fields the job reads."""
    id: str = "id"
    weight: str = "boost"
    modified_at: str = "tstamp"
    fingerprint: str = "digest"
    timestamp_unit: str = "s"

    @classmethod
    def from_config(cls) -> "FieldMapping":
        unit = config.get("index.fields.timestamp_unit")
        if unit not in ("s", "ms"):
            raise ValueError(f"index.fields.timestamp_unit must be 's' or 'ms', got {unit!r}")
        return cls(
            id=config.get("index.fields.id"),
            weight=config.get("index.fields.weight"),
            modified_at=config.get("index.fields.modified_at"),
            fingerprint=config.get("index.fields.fingerprint"),
            timestamp_unit=unit,
        )

    @property
    def projection(self) -> List[str]:
        """Field list requested from the index for every scan."""
        return [self.id, self.weight, self.modified_at, self.fingerprint]


def parse_timestamp(value: Any, unit: str = "s") -> float:
    """
    Normalises an index timestamp to epoch seconds.

    Accepts numbers (in *unit*), numeric strings, ISO-8601 strings
    (including Solr's trailing 'Z') and datetime objects. Naive datetimes
    are taken as UTC.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return float(value) / 1000.0 if unit == "ms" else float(value)
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            return parse_timestamp(float(text), unit)
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    else:
        raise ValueError(f"invalid timestamp: {value!r}")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


@dataclass(frozen=True)
class IndexRecord:
    """One document's id, fingerprint, relevance weight and modification time."""
    id: str
    fingerprint: str
    weight: float
    modified_at: float

    @classmethod
    def from_document(cls, doc: Dict[str, Any], fields: FieldMapping) -> "IndexRecord":
        """
        Builds a record from a fetched index document.

        Raises:
            KeyError: a projected field is missing from the document
            ValueError: weight or timestamp cannot be interpreted
        """
        missing = [name for name in fields.projection if doc.get(name) is None]
        if missing:
            raise KeyError(f"document {doc.get(fields.id)!r} is missing fields {missing}")

        return cls(
            id=str(doc[fields.id]),
            fingerprint=str(doc[fields.fingerprint]),
            weight=float(doc[fields.weight]),
            modified_at=parse_timestamp(doc[fields.modified_at], fields.timestamp_unit),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'fingerprint': self.fingerprint,
            'weight': self.weight,
            'modified_at': self.modified_at,
        }


@dataclass(frozen=True)
class PartitionRange:
    """A contiguous slice [start, start + count) of the index ordering."""
    start: int
    count: int

    @property
    def end(self) -> int:
        return self.start + self.count

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def __str__(self) -> str:
        return f"partition[{self.start}:{self.end}]"


@dataclass
class FingerprintGroup:
    """All records sharing one fingerprint. Member order carries no meaning."""
    fingerprint: str
    records: List[IndexRecord] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.records)

    @property
    def is_singleton(self) -> bool:
        return len(self.records) == 1


@dataclass(frozen=True)
class PendingDeletion:
    """An id queued for removal from the index."""
    id: str
    fingerprint: Optional[str] = None
