"""Tests for storage_backend.py: InMemoryStorage, FileStorage and RedisStorage."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest


class TestInMemoryStorage:
    def test_set_and_get(self):
        from storage_backend import InMemoryStorage
        medium = InMemoryStorage()
        medium.set_item("courses", "[]")
        assert medium.get_item("courses") == "[]"

    def test_get_missing_key(self):
        from storage_backend import InMemoryStorage
        assert InMemoryStorage().get_item("nothing") is None

    def test_remove_and_clear(self):
        from storage_backend import InMemoryStorage
        medium = InMemoryStorage()
        medium.set_item("a", "1")
        medium.set_item("b", "2")
        medium.remove_item("a")
        assert medium.keys() == ["b"]
        medium.clear()
        assert medium.keys() == []

    def test_quota_refuses_write_and_keeps_old_value(self):
        from errors import StorageQuotaExceeded
        from storage_backend import InMemoryStorage
        medium = InMemoryStorage(quota_bytes=20)
        medium.set_item("k", "small")
        with pytest.raises(StorageQuotaExceeded):
            medium.set_item("k", "x" * 100)
        assert medium.get_item("k") == "small"

    def test_quota_counts_replacement_not_sum(self):
        from storage_backend import InMemoryStorage
        medium = InMemoryStorage(quota_bytes=12)
        medium.set_item("k", "1234567890")
        medium.set_item("k", "0987654321")
        assert medium.usage() == 11

    def test_quota_error_is_a_write_error(self):
        from errors import StorageError, StorageQuotaExceeded, StorageWriteError
        assert issubclass(StorageQuotaExceeded, StorageWriteError)
        assert issubclass(StorageWriteError, StorageError)


class TestFileStorage:
    def test_roundtrip_creates_one_file_per_key(self, tmp_path):
        from storage_backend import FileStorage
        medium = FileStorage(tmp_path / "data")
        medium.set_item("quiz_attempts", '[{"id": "a"}]')
        assert (tmp_path / "data" / "quiz_attempts.json").exists()
        assert medium.get_item("quiz_attempts") == '[{"id": "a"}]'
        assert medium.keys() == ["quiz_attempts"]

    def test_missing_key_reads_none(self, tmp_path):
        from storage_backend import FileStorage
        assert FileStorage(tmp_path).get_item("courses") is None

    def test_invalid_key_rejected(self, tmp_path):
        from storage_backend import FileStorage
        with pytest.raises(ValueError):
            FileStorage(tmp_path).set_item("../escape", "[]")

    def test_no_temp_files_left_behind(self, tmp_path):
        from storage_backend import FileStorage
        medium = FileStorage(tmp_path)
        medium.set_item("classes", "[]")
        medium.set_item("classes", '[{"id": "c1"}]')
        assert [p.name for p in tmp_path.iterdir()] == ["classes.json"]

    def test_failed_replace_keeps_previous_value(self, tmp_path):
        from errors import StorageWriteError
        from storage_backend import FileStorage
        medium = FileStorage(tmp_path)
        medium.set_item("courses", "[1]")
        with patch("storage_backend.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageWriteError):
                medium.set_item("courses", "[2]")
        assert medium.get_item("courses") == "[1]"
        assert [p.name for p in tmp_path.iterdir()] == ["courses.json"]

    def test_quota(self, tmp_path):
        from errors import StorageQuotaExceeded
        from storage_backend import FileStorage
        medium = FileStorage(tmp_path, quota_bytes=30)
        medium.set_item("a", "x" * 10)
        with pytest.raises(StorageQuotaExceeded):
            medium.set_item("b", "y" * 25)
        assert medium.get_item("b") is None

    def test_remove_missing_key_is_noop(self, tmp_path):
        from storage_backend import FileStorage
        FileStorage(tmp_path).remove_item("never_written")


class TestRedisStorage:
    def test_get_decodes_bytes(self):
        from storage_backend import RedisStorage
        client = MagicMock()
        client.get.return_value = b"[]"
        medium = RedisStorage(client)
        assert medium.get_item("courses") == "[]"
        client.get.assert_called_once_with("schoolhub:courses")

    def test_read_error_reads_as_missing(self):
        import redis
        from storage_backend import RedisStorage
        client = MagicMock()
        client.get.side_effect = redis.RedisError("down")
        assert RedisStorage(client).get_item("courses") is None

    def test_transient_write_error_is_retried(self):
        import redis
        from storage_backend import RedisStorage
        client = MagicMock()
        client.set.side_effect = [redis.ConnectionError("blip"), True]
        RedisStorage(client).set_item("courses", "[]")
        assert client.set.call_count == 2

    def test_persistent_write_error_becomes_storage_error(self):
        import redis
        from errors import StorageWriteError
        from storage_backend import RedisStorage
        client = MagicMock()
        client.set.side_effect = redis.ResponseError("OOM command not allowed")
        with pytest.raises(StorageWriteError):
            RedisStorage(client).set_item("courses", "[]")
        assert client.set.call_count == 1

    def test_keys_strip_prefix(self):
        from storage_backend import RedisStorage
        client = MagicMock()
        client.keys.return_value = [b"schoolhub:classes", b"schoolhub:all_users"]
        assert RedisStorage(client).keys() == ["all_users", "classes"]


class TestInitStorage:
    def test_memory_backend(self, app):
        from storage_backend import InMemoryStorage, get_storage
        assert isinstance(get_storage(), InMemoryStorage)

    def test_file_backend(self, tmp_path):
        from flask import Flask
        from storage_backend import FileStorage, init_storage
        app = Flask(__name__)
        app.config.update(STORAGE_BACKEND="file", STORAGE_PATH=str(tmp_path / "files"))
        assert isinstance(init_storage(app), FileStorage)

    def test_redis_failure_falls_back_to_file(self, tmp_path):
        import redis
        from flask import Flask
        from storage_backend import FileStorage, init_storage
        app = Flask(__name__)
        app.config.update(STORAGE_BACKEND="redis", REDIS_URL="redis://localhost:1/0",
                          STORAGE_PATH=str(tmp_path / "files"))
        with patch("redis.Redis.from_url") as from_url:
            from_url.return_value.ping.side_effect = redis.ConnectionError("refused")
            assert isinstance(init_storage(app), FileStorage)
