"""Command digram statistics.

Records pairs of consecutive host commands per editing context, merges them
into a shared on-disk store guarded by a lock file, and reports on them.
Start from `digrams.control_layer.DigramManager`.
"""

__version__ = "0.3.0"
