"""Key/value persistence medium with in-memory / file / Redis swap.

Every collection lives under one string key whose value is a JSON document.
The medium only deals in strings: it never parses what it stores. A refused
write raises StorageWriteError and leaves the previous value under that key
untouched.

Usage:
    from storage_backend import init_storage, get_storage
    init_storage(app)          # called once in create_app()
    medium = get_storage()     # module-level accessor
    medium.set_item("courses", "[]")
    raw = medium.get_item("courses")
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from errors import StorageQuotaExceeded, StorageWriteError

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


# ── Protocol ───────────────────────────────────────────────

class StorageMedium(Protocol):
    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...
    def keys(self) -> list[str]: ...
    def clear(self) -> None: ...


# ── In-Memory Implementation ──────────────────────────────

class InMemoryStorage:
    """Dict-backed medium with an optional byte quota."""

    def __init__(self, quota_bytes: int = 0) -> None:
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            if self.quota_bytes:
                used = sum(_entry_size(k, v) for k, v in self._items.items() if k != key)
                needed = used + _entry_size(key, value)
                if needed > self.quota_bytes:
                    raise StorageQuotaExceeded(key, needed, self.quota_bytes)
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def usage(self) -> int:
        with self._lock:
            return sum(_entry_size(k, v) for k, v in self._items.items())


# ── File Implementation ───────────────────────────────────

class FileStorage:
    """One JSON file per key inside a directory.

    Writes land in a temp file in the same directory and are moved into place
    with os.replace, so a reader sees either the old or the new document.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str | Path, quota_bytes: int = 0) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"invalid storage key {key!r}")
        return self.directory / f"{key}{self.SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("File storage read error (key=%s): %s", key, e)
            return None

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        if self.quota_bytes:
            needed = self._usage(exclude=key) + _entry_size(key, value)
            if needed > self.quota_bytes:
                raise StorageQuotaExceeded(key, needed, self.quota_bytes)

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise StorageWriteError(f"could not write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob(f"*{self.SUFFIX}") if not p.name.startswith("."))

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)

    def _usage(self, exclude: str = "") -> int:
        total = 0
        for key in self.keys():
            if key == exclude:
                continue
            try:
                total += len(key.encode("utf-8")) + self._path(key).stat().st_size
            except OSError:
                continue
        return total


# ── Redis Implementation ──────────────────────────────────

class RedisStorage:
    """Wraps redis.Redis; transient connection errors on write are retried."""

    def __init__(self, redis_client, prefix: str = "schoolhub:") -> None:
        import redis

        self._redis = redis_client
        self._prefix = prefix
        self._errors = (redis.RedisError,)
        self._transient = (redis.ConnectionError, redis.TimeoutError)

    def _k(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get_item(self, key: str) -> str | None:
        try:
            raw = self._redis.get(self._k(key))
        except self._errors as e:
            logger.warning("Redis GET error (key=%s): %s", key, e)
            return None
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else raw

    def set_item(self, key: str, value: str) -> None:
        setter = retry(
            retry=retry_if_exception_type(self._transient),
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=0.1, max=1),
            reraise=True,
        )(self._redis.set)
        try:
            setter(self._k(key), value)
        except self._errors as e:
            raise StorageWriteError(f"could not write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._redis.delete(self._k(key))
        except self._errors as e:
            logger.warning("Redis DELETE error (key=%s): %s", key, e)

    def keys(self) -> list[str]:
        try:
            raw = self._redis.keys(f"{self._prefix}*")
        except self._errors as e:
            logger.warning("Redis KEYS error: %s", e)
            return []
        names = [k.decode("utf-8") if isinstance(k, bytes) else k for k in raw]
        return sorted(n[len(self._prefix):] for n in names)

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)


# ── Module-level singleton ────────────────────────────────

_storage: StorageMedium | None = None


def init_storage(app) -> StorageMedium:
    """Initialize the persistence medium. Call once from create_app()."""
    global _storage

    backend = app.config.get("STORAGE_BACKEND", "file")
    quota = int(app.config.get("STORAGE_QUOTA_BYTES", 0) or 0)
    path = app.config.get("STORAGE_PATH") or str(Path(app.root_path) / "school_data")

    if backend == "redis":
        import redis

        redis_url = app.config.get("REDIS_URL", "")
        try:
            client = redis.Redis.from_url(redis_url, decode_responses=False)
            client.ping()
            _storage = RedisStorage(client)
            app.logger.info("Storage backend: Redis (%s)", redis_url)
            return _storage
        except (redis.RedisError, ValueError) as e:
            app.logger.warning("Redis connection failed (%s); falling back to file storage.", e)
            backend = "file"

    if backend == "memory":
        _storage = InMemoryStorage(quota_bytes=quota)
        app.logger.info("Storage backend: in-memory")
    else:
        _storage = FileStorage(path, quota_bytes=quota)
        app.logger.info("Storage backend: files under %s", path)
    return _storage


def get_storage() -> StorageMedium:
    """Return the active medium. Lazily initializes an in-memory one if needed."""
    global _storage
    if _storage is None:
        _storage = InMemoryStorage()
    return _storage
