import os

import pytest

from digrams.tools.persistence.lock_file import LockFile


def test_claim_writes_pid_and_is_exclusive(lock_path, other_pid):
    mine = LockFile(lock_path)
    theirs = LockFile(lock_path, pid=other_pid)
    assert mine.try_claim()
    assert lock_path.read_text() == str(os.getpid())
    assert not theirs.try_claim()
    assert mine.current_owner() == os.getpid()
    # Not reentrant: claiming our own lock again fails too
    assert not mine.try_claim()


def test_release_is_idempotent(lock_path):
    lock = LockFile(lock_path)
    assert lock.try_claim()
    assert lock.release()
    assert not lock_path.exists()
    assert lock.release()


def test_current_owner_absent_or_malformed(lock_path):
    lock = LockFile(lock_path)
    assert lock.current_owner() is None
    lock_path.write_text("not-a-pid")
    assert lock.current_owner() is None
    lock_path.write_text("")
    assert lock.current_owner() is None
    lock_path.write_text(" 1234\n")
    assert lock.current_owner() == 1234


def test_is_stale(lock_path, other_pid, dead_pid):
    lock = LockFile(lock_path)
    assert not lock.is_stale()  # absent
    lock_path.write_text(str(other_pid))
    assert not lock.is_stale()
    lock_path.write_text(str(dead_pid))
    assert lock.is_stale()
    lock_path.write_text("garbage")
    assert not lock.is_stale()  # undeterminable counts as live


def test_reclaim_if_stale_only_removes_orphans(lock_path, other_pid, dead_pid):
    lock = LockFile(lock_path)
    lock_path.write_text(str(other_pid))
    assert not lock.reclaim_if_stale()
    assert lock_path.exists()
    lock_path.write_text(str(dead_pid))
    assert lock.reclaim_if_stale()
    assert not lock_path.exists()


def test_reclaim_keeps_lock_claimed_after_staleness_check(lock_path, other_pid, dead_pid):
    lock_path.write_text(str(dead_pid))
    lock = LockFile(lock_path)
    check_stale = lock._stale_owner

    def check_then_lose_race():
        owner = check_stale()
        # another process reclaims the orphan and claims the lock first
        lock_path.unlink()
        assert LockFile(lock_path, pid=other_pid).try_claim()
        return owner

    lock._stale_owner = check_then_lose_race
    assert not lock.reclaim_if_stale()
    assert lock_path.read_text() == str(other_pid)


def test_scoped_claim_releases_on_error(lock_path):
    lock = LockFile(lock_path)
    with pytest.raises(RuntimeError):
        with lock.claim() as held:
            assert held
            assert lock_path.exists()
            raise RuntimeError("boom")
    assert not lock_path.exists()


def test_scoped_claim_does_not_release_foreign_lock(lock_path, other_pid):
    LockFile(lock_path, pid=other_pid).try_claim()
    with LockFile(lock_path).claim() as held:
        assert not held
    assert lock_path.read_text() == str(other_pid)


def test_stale_lock_is_reclaimed_by_acquire(lock_path, dead_pid):
    lock_path.write_text(str(dead_pid))
    lock = LockFile(lock_path)
    with lock.claim() as held:
        assert held
        assert lock.owned_by_me()
    assert not lock_path.exists()


def test_io_error_counts_as_failed_claim(tmp_path):
    lock = LockFile(tmp_path / "missing-dir" / "digrams.lock")
    assert not lock.try_claim()
    with lock.claim() as held:
        assert not held
