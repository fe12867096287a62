"""JSON envelope for exported digram snapshots.

Machine consumers get the same shape regardless of whether a snapshot was
filtered to one context or grouped across all of them:

    {"metadata": {...}, "records": [{"predecessor", "event", "count", "percentage"}, ...],
     "status": "SUCCESS" | "NO_RESULTS", "error": null}
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from digrams.utils import schemas
from digrams.utils.report import digram_of, percentage


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def make_metadata(source: str, total: int, context: Optional[str] = None, order: str = "descending", threshold: int = 0) -> Dict[str, Any]:
    return {
        "source": source,
        "context": context,
        "total": total,
        "order": order,
        "threshold": threshold,
        "generated_at": _now_iso(),
    }


@dataclass
class Envelope:
    """Snapshot envelope.

    Usage:
        total, rows = manager.snapshot()
        env = Envelope.from_snapshot('~/.digrams', total, rows)
        s = env.to_json()
    """

    metadata: Dict[str, Any]
    records: List[Dict[str, Any]]
    status: str = "SUCCESS"
    error: Optional[str] = None

    @classmethod
    def from_snapshot(
        cls,
        source: str,
        total: int,
        rows: Sequence[Tuple[Hashable, int]],
        context: Optional[str] = None,
        order: str = "descending",
        threshold: int = 0,
    ) -> "Envelope":
        records = []
        for key, count in rows:
            predecessor, event = digram_of(key)
            records.append({
                "predecessor": predecessor,
                "event": event,
                "count": count,
                "percentage": round(percentage(count, total), 4),
            })
        metadata = make_metadata(source, total, context=context, order=order, threshold=threshold)
        status = "SUCCESS" if records else "NO_RESULTS"
        return cls(metadata=metadata, records=records, status=status, error=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata,
            "records": self.records,
            "status": self.status,
            "error": self.error,
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), default=str, indent=indent)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Envelope":
        return cls(metadata=d.get("metadata", {}), records=d.get("records", []), status=d.get("status", "SUCCESS"), error=d.get("error"))

    @classmethod
    def from_json(cls, s: str) -> "Envelope":
        return cls.from_dict(json.loads(s))

    def validate(self) -> bool:
        return validate_envelope(self.to_dict())


def validate_envelope(env: Dict[str, Any]) -> bool:
    try:
        schemas.EnvelopeModel.model_validate(env)
    except ValidationError:
        return False
    return True


__all__ = ["Envelope", "make_metadata", "validate_envelope"]
