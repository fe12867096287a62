"""Minimal tools package init.

Keep this file light so `import digrams.tools.counter_store` does not pull
in the persistence layer and its psutil dependency.
"""

from .counter_store import CounterStore, DigramKey, DigramPair, Order

__all__ = ["CounterStore", "DigramKey", "DigramPair", "Order"]
