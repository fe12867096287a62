"""Text rendering of digram snapshots.

Consumes ``(total, rows)`` as returned by ``CounterStore.extract_sorted`` or
``DigramManager.snapshot``. Row keys may be reduced ``(predecessor, event)``
pairs or full ``(context, predecessor, event)`` keys.

Modes:
- ``plain``: count and digram.
- ``percentage``: adds count/total as a percentage and, when a ``where_is``
  callable is supplied, the binding it reports for the event.
- ``raw``: ``COUNT PREDECESSOR EVENT``, single spaces, for scripts.
- a callable ``(count, percentage, predecessor, event) -> str`` per row.
"""

from __future__ import annotations

from typing import Callable, Hashable, List, Optional, Sequence, Tuple, Union

PLAIN = "plain"
PERCENTAGE = "percentage"
RAW = "raw"
MODES = (PLAIN, PERCENTAGE, RAW)

RowFormatter = Callable[[int, float, str, str], str]
WhereIs = Callable[[str], Optional[str]]


def percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return count * 100.0 / total


def digram_of(key: Hashable) -> Tuple[str, str]:
    parts = tuple(key)  # type: ignore[arg-type]
    if len(parts) == 3:
        return parts[1], parts[2]
    if len(parts) == 2:
        return parts[0], parts[1]
    raise ValueError(f"not a digram key: {key!r}")


def format_row(
    count: int,
    total: int,
    key: Hashable,
    mode: Union[str, RowFormatter] = PLAIN,
    where_is: Optional[WhereIs] = None,
) -> str:
    predecessor, event = digram_of(key)
    pct = percentage(count, total)
    if callable(mode):
        return mode(count, pct, predecessor, event)
    if mode == RAW:
        return f"{count} {predecessor} {event}"
    if mode == PLAIN:
        return f"{count:7d}  {predecessor} -> {event}"
    if mode == PERCENTAGE:
        line = f"{count:7d}  {pct:6.2f}%  {predecessor} -> {event}"
        binding = where_is(event) if where_is else None
        if binding:
            line += f"  ({binding})"
        return line
    raise ValueError(f"unknown report mode {mode!r}; expected one of {', '.join(MODES)} or a callable")


def render(
    total: int,
    rows: Sequence[Tuple[Hashable, int]],
    mode: Union[str, RowFormatter] = PLAIN,
    where_is: Optional[WhereIs] = None,
    title: Optional[str] = None,
) -> str:
    lines: List[str] = []
    if title and mode in (PLAIN, PERCENTAGE):
        lines.append(f"{title}: {total} digrams, {len(rows)} shown")
        lines.append("")
    for key, count in rows:
        lines.append(format_row(count, total, key, mode, where_is))
    return "\n".join(lines) + ("\n" if lines else "")


__all__ = ["PLAIN", "PERCENTAGE", "RAW", "MODES", "percentage", "digram_of", "format_row", "render"]
