"""Turn the host's stream of command notifications into digram counts.

The recorder keeps one piece of state, the pending antecedent: the last
qualifying event seen. Each new event E in context C then does:

- not a named command, or C is not a non-blank string: ignored, state
  unchanged.
- excluded: the chain is cut (no pending antecedent) and E itself is
  dropped, so it can neither end nor start a digram.
- E equal to the antecedent: no count, E stays pending.
- otherwise: count (C, antecedent, E) and E becomes pending.
"""

from __future__ import annotations

from typing import Iterable, Optional

from digrams.tools.counter_store import CounterStore, DigramKey


def is_named_command(event: object) -> bool:
    return isinstance(event, str) and bool(event.strip())


class EventRecorder:
    def __init__(self, store: CounterStore, excluded: Optional[Iterable[str]] = None):
        self.store = store
        self.excluded = frozenset(excluded or ())
        self._pending: Optional[str] = None

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    def reset_chain(self) -> None:
        self._pending = None

    def record(self, event: object, context: str) -> bool:
        """Feed one event; returns True when a digram was counted."""
        if not is_named_command(event) or not is_named_command(context):
            return False
        if event in self.excluded:
            self._pending = None
            return False
        counted = False
        antecedent = self._pending
        if antecedent is not None and event != antecedent:
            self.store.increment(DigramKey(context, antecedent, event))
            counted = True
        self._pending = event
        return counted


__all__ = ["EventRecorder", "is_named_command"]
