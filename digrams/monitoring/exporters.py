from typing import Any, Dict, Union
import logging
import os

logger = logging.getLogger('digrams.monitoring')


def _sanitize(obj: Any) -> Any:
    """Turn payload values into plain printable types (paths, sets, tuples)."""
    if isinstance(obj, dict):
        return {str(k): _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(x) for x in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(_sanitize(x) for x in obj)
    if isinstance(obj, os.PathLike):
        return os.fspath(obj)
    return obj


def log_event(event: Union[str, Dict[str, Any]], payload: Dict[str, Any] | None = None, level: int = logging.INFO):
    """Log a monitoring event to the central logger.

    Flexible signature supports:
      - log_event({'event': 'name', ...})
      - log_event('name', {...}) (preferred)
    """
    if isinstance(event, str):
        record = {'event': event, **(payload or {})}
    else:
        record = event
    logger.log(level, 'MONITOR_EVENT %s', _sanitize(record))
