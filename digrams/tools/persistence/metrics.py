"""Process-local counters for the digram store.

``PersistentLog`` reports one entry per store file (keyed by file name):

* ``load`` / ``save`` / ``discard``: completed operations with wall time.
* ``<op>_error``: operations that raised.
* ``contention``: save attempts that found the lock held elsewhere.

Nothing is exported; ``snapshot()`` exists for diagnostics and tests.
"""
from __future__ import annotations
import threading
from typing import Dict, Tuple

_counter: Dict[Tuple[str, str], int] = {}
_latency: Dict[Tuple[str, str], Dict[str, float]] = {}
_guard = threading.Lock()


def inc(op: str, target: str, amount: int = 1):
    key = (op, target)
    with _guard:
        _counter[key] = _counter.get(key, 0) + amount


def observe(op: str, target: str, ms: float):
    """Fold one duration (milliseconds) into the op's min/max/total."""
    key = (op, target)
    with _guard:
        timing = _latency.setdefault(key, {"count": 0, "total": 0.0, "min": ms, "max": ms})
        timing["count"] += 1
        timing["total"] += ms
        timing["min"] = min(timing["min"], ms)
        timing["max"] = max(timing["max"], ms)


def count(op: str, target: str) -> int:
    with _guard:
        return _counter.get((op, target), 0)


def snapshot():
    """Rows of ``{op, target, count}`` sorted by op, with timings where observed."""
    with _guard:
        counts = dict(_counter)
        timings = {k: dict(v) for k, v in _latency.items()}
    rows = []
    for (op, target), n in counts.items():
        row = {"op": op, "target": target, "count": n}
        timing = timings.get((op, target))
        if timing and timing["count"]:
            row["lat_min_ms"] = round(timing["min"], 2)
            row["lat_max_ms"] = round(timing["max"], 2)
            row["lat_avg_ms"] = round(timing["total"] / timing["count"], 2)
        rows.append(row)
    return sorted(rows, key=lambda r: (r["op"], r["target"]))


def reset():
    with _guard:
        _counter.clear()
        _latency.clear()


__all__ = ["inc", "observe", "count", "snapshot", "reset"]
