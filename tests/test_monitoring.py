import logging
from pathlib import Path

import pytest

from digrams.monitoring import log_event
from digrams.tools.counter_store import CounterStore, DigramKey
from digrams.tools.persistence import metrics
from digrams.tools.persistence.exceptions import CorruptStoreError
from digrams.tools.persistence.lock_file import LockFile


def test_log_event_sanitizes_payload(caplog):
    with caplog.at_level(logging.INFO, logger="digrams.monitoring"):
        log_event("store.saved", {"path": Path("/tmp/digrams"), "excluded": {"b", "a"}, "key": ("c", "p", "e")})
    message = caplog.records[-1].getMessage()
    assert message.startswith("MONITOR_EVENT ")
    assert "'path': '/tmp/digrams'" in message
    assert "'excluded': ['a', 'b']" in message
    assert "'key': ['c', 'p', 'e']" in message


def test_log_event_accepts_a_prebuilt_record(caplog):
    with caplog.at_level(logging.WARNING, logger="digrams.monitoring"):
        log_event({"event": "lock.stale_reclaimed", "pid": 4}, level=logging.WARNING)
    assert caplog.records[-1].levelno == logging.WARNING
    assert "lock.stale_reclaimed" in caplog.records[-1].getMessage()


def test_save_records_metrics(plog, store_path):
    delta = CounterStore()
    delta.increment(DigramKey("c", "a", "b"))
    plog.save(delta)
    rows = {row["op"]: row for row in metrics.snapshot() if row["target"] == store_path.name}
    assert rows["save"]["count"] == 1
    assert rows["save"]["lat_min_ms"] >= 0
    metrics.reset()
    assert metrics.snapshot() == []


def test_contention_and_errors_are_counted_per_store(plog, store_path, lock_path, other_pid):
    LockFile(lock_path, pid=other_pid).try_claim()
    delta = CounterStore()
    delta.increment(DigramKey("c", "a", "b"))
    assert not plog.save(delta)
    lock_path.unlink()
    store_path.write_text("garbage (")
    assert plog.exists()
    with pytest.raises(CorruptStoreError):
        plog.load_into(CounterStore())
    rows = {row["op"]: row for row in metrics.snapshot()}
    assert rows["contention"] == {"op": "contention", "target": store_path.name, "count": 1}
    assert rows["load_error"]["count"] == 1
    assert rows["load"]["count"] == 1
