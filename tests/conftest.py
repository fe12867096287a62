import os

import psutil
import pytest  # noqa

from digrams.config.settings import Settings
from digrams.tools.persistence import metrics
from digrams.tools.persistence.lock_file import LockFile
from digrams.tools.persistence.service import PersistentLog

# Settings read from the environment (and any .env file) must not leak into tests.
_DIGRAM_ENV_VARS = (
    "DIGRAMS_FILE",
    "DIGRAMS_LOCK_FILE",
    "DIGRAMS_EXCLUDED",
    "DIGRAMS_AUTOSAVE_INTERVAL",
    "DIGRAMS_REPORT_TARGET",
    "DIGRAMS_SAVE_RETRY_DELAY",
    "DIGRAMS_SAVE_MAX_ATTEMPTS",
    "DIGRAMS_ENABLED",
)


@pytest.fixture(autouse=True)
def _clean_digram_env(monkeypatch):
    for var in _DIGRAM_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "digrams"


@pytest.fixture
def lock_path(tmp_path):
    return tmp_path / "digrams.lock"


@pytest.fixture
def plog(store_path, lock_path):
    return PersistentLog(store_path, lock=LockFile(lock_path), retry_delay=0.01)


@pytest.fixture
def settings(store_path, lock_path):
    return Settings(
        store_path=store_path,
        lock_path=lock_path,
        autosave_interval=0,
        save_retry_delay=0.01,
    )


@pytest.fixture
def other_pid():
    """A live process that is not this one, standing in for a second host process."""
    return os.getppid()


@pytest.fixture
def dead_pid():
    pid = 999_999
    while psutil.pid_exists(pid):
        pid += 1
    return pid
