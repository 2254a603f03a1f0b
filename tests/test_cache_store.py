"""Tests for LocalCacheStore."""

import io

import pytest
from remote_modules.errors import CacheWriteError
from remote_modules.module_resolution.cache_store import LocalCacheStore


class FailingStream(io.BytesIO):
    """Stream that fails after the first read."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise OSError("connection reset")
        return super().read(4)


class TestLocalCacheStore:
    @pytest.fixture
    def store(self, cache_root):
        return LocalCacheStore(cache_root)

    def test_write_then_open_is_byte_identical(self, store):
        content = bytes(range(256)) * 1000
        path = store.write(io.BytesIO(content), "org/example/foo/main/foo.jar")

        assert path == store.cache_root / "org/example/foo/main/foo.jar"
        with store.open("org/example/foo/main/foo.jar") as f:
            assert f.read() == content

    def test_exists(self, store):
        assert not store.exists("org/example/foo/main/module.xml")
        store.write(io.BytesIO(b"<module/>"), "org/example/foo/main/module.xml")
        assert store.exists("org/example/foo/main/module.xml")

    def test_directory_is_not_an_entry(self, store):
        (store.cache_root / "org/example").mkdir(parents=True)
        assert not store.exists("org/example")

    def test_stream_closed_on_success(self, store):
        stream = io.BytesIO(b"data")
        store.write(stream, "a/b/file")
        assert stream.closed

    def test_blocked_parent_raises_and_closes_stream(self, store):
        store.cache_root.mkdir(parents=True)
        (store.cache_root / "org").write_text("not a directory")
        stream = io.BytesIO(b"data")

        with pytest.raises(CacheWriteError) as exc_info:
            store.write(stream, "org/example/foo/main/module.xml")

        assert isinstance(exc_info.value.cause, OSError)
        assert exc_info.value.path == store.cache_root / "org/example/foo/main/module.xml"
        assert stream.closed

    def test_failed_read_leaves_no_partial_entry(self, store):
        stream = FailingStream(b"0123456789")

        with pytest.raises(CacheWriteError):
            store.write(stream, "org/example/foo/main/foo.jar")

        module_dir = store.cache_root / "org/example/foo/main"
        assert not store.exists("org/example/foo/main/foo.jar")
        assert list(module_dir.iterdir()) == []
        assert stream.closed

    def test_open_missing_entry_raises(self, store):
        with pytest.raises(FileNotFoundError):
            store.open("missing/module.xml")

    def test_iter_modules(self, store):
        store.write(io.BytesIO(b"<module/>"), "org/b/main/module.xml")
        store.write(io.BytesIO(b"<module/>"), "org/a/main/module.xml")
        store.write(io.BytesIO(b"jar"), "org/a/main/a.jar")

        assert store.iter_modules("module.xml") == [
            store.cache_root / "org/a/main",
            store.cache_root / "org/b/main",
        ]

    def test_iter_modules_without_cache_root(self, store):
        assert store.iter_modules("module.xml") == []
