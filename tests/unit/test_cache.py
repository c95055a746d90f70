"""
内容缓存单元测试

测试指纹计算与目录缓存的查询、提交以及损坏记录的处理。
"""

import hashlib
import io
import json

import pytest

from relpack.build.cache import CacheError, DirectoryCache, Fingerprint


KEY = "ab" * 32


class TestFingerprint:
    """Fingerprint 测试"""

    def test_hex_digest(self):
        fp = Fingerprint()
        fp.add_str("hello")
        digest = fp.final()
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_deterministic(self):
        def compute():
            fp = Fingerprint()
            fp.add_str("name")
            fp.add_file(io.BytesIO(b"content"))
            return fp.final()

        assert compute() == compute()

    def test_length_prefixed(self):
        """测试相邻字段拼接不会产生相同指纹"""
        first = Fingerprint()
        first.add_str("ab")
        first.add_str("c")

        second = Fingerprint()
        second.add_str("a")
        second.add_str("bc")

        assert first.final() != second.final()

    def test_add_file_returns_size(self):
        fp = Fingerprint()
        assert fp.add_file(io.BytesIO(b"x" * 200000), chunk_size=4096) == 200000

    def test_file_content_sensitive(self):
        """测试文件内容变化一个字节即改变指纹"""
        first = Fingerprint()
        first.add_file(io.BytesIO(b"content-a"))

        second = Fingerprint()
        second.add_file(io.BytesIO(b"content-b"))

        assert first.final() != second.final()

    def test_add_file_uses_selected_algorithm(self):
        """测试文件内容摘要与指纹使用同一种算法"""
        fp = Fingerprint("sha512")
        fp.add_file(io.BytesIO(b"data"))

        expected = hashlib.sha512()
        expected.update((4).to_bytes(8, 'little'))
        expected.update(hashlib.sha512(b"data").digest())
        assert fp.final() == expected.hexdigest()


class TestDirectoryCache:
    """DirectoryCache 测试"""

    def _commit(self, cache, content=b"archive bytes", file_name="pkg.tar.gz"):
        path = cache.output_path(KEY, file_name)
        path.write_bytes(content)
        cache.commit(KEY, path)
        return path

    def test_output_path_layout(self, tmp_path):
        """测试输出位置与目录创建"""
        cache = DirectoryCache(tmp_path / "cache")
        path = cache.output_path(KEY, "pkg.zip")

        assert path == tmp_path / "cache" / "o" / KEY / "pkg.zip"
        assert path.parent.is_dir()
        assert not path.exists()

    def test_lookup_miss(self, tmp_path):
        cache = DirectoryCache(tmp_path / "cache")
        assert cache.lookup(KEY, "pkg.tar.gz") is None

    def test_commit_then_lookup(self, tmp_path):
        """测试提交后可以查询到归档"""
        cache = DirectoryCache(tmp_path / "cache")
        path = self._commit(cache)

        assert cache.lookup(KEY, "pkg.tar.gz") == path

        record = json.loads((tmp_path / "cache" / "m" / f"{KEY}.json").read_text())
        assert record["key"] == KEY
        assert record["file_name"] == "pkg.tar.gz"
        assert record["size"] == len(b"archive bytes")
        assert len(record["sha256"]) == 64

    def test_no_temp_files_left(self, tmp_path):
        """测试提交记录的临时文件被替换掉"""
        cache = DirectoryCache(tmp_path / "cache")
        self._commit(cache)

        assert [p.name for p in (tmp_path / "cache" / "m").iterdir()] == [f"{KEY}.json"]

    def test_output_without_commit(self, tmp_path):
        """测试未提交的归档不会被命中"""
        cache = DirectoryCache(tmp_path / "cache")
        cache.output_path(KEY, "pkg.tar.gz").write_bytes(b"partial")

        assert cache.lookup(KEY, "pkg.tar.gz") is None

    def test_file_name_mismatch(self, tmp_path):
        cache = DirectoryCache(tmp_path / "cache")
        self._commit(cache)

        assert cache.lookup(KEY, "pkg.zip") is None

    def test_size_mismatch(self, tmp_path):
        """测试归档被截断时视为未命中"""
        cache = DirectoryCache(tmp_path / "cache")
        path = self._commit(cache)
        path.write_bytes(b"short")

        assert cache.lookup(KEY, "pkg.tar.gz") is None

    def test_archive_removed(self, tmp_path):
        cache = DirectoryCache(tmp_path / "cache")
        path = self._commit(cache)
        path.unlink()

        assert cache.lookup(KEY, "pkg.tar.gz") is None

    def test_corrupt_record(self, tmp_path):
        """测试损坏的提交记录视为未命中"""
        cache = DirectoryCache(tmp_path / "cache")
        self._commit(cache)
        (tmp_path / "cache" / "m" / f"{KEY}.json").write_text("{not json")

        assert cache.lookup(KEY, "pkg.tar.gz") is None

    def test_non_dict_record(self, tmp_path):
        cache = DirectoryCache(tmp_path / "cache")
        self._commit(cache)
        (tmp_path / "cache" / "m" / f"{KEY}.json").write_text("[1, 2]")

        assert cache.lookup(KEY, "pkg.tar.gz") is None

    def test_commit_missing_file(self, tmp_path):
        """测试提交不存在的文件"""
        cache = DirectoryCache(tmp_path / "cache")
        with pytest.raises(CacheError):
            cache.commit(KEY, tmp_path / "missing.tar.gz")

        assert not (tmp_path / "cache" / "m" / f"{KEY}.json").exists()

    def test_output_path_on_file(self, tmp_path):
        """测试缓存根目录被普通文件占用"""
        blocker = tmp_path / "cache"
        blocker.write_text("not a directory")

        cache = DirectoryCache(blocker)
        with pytest.raises(CacheError):
            cache.output_path(KEY, "pkg.tar.gz")

    def test_new_fingerprint(self, tmp_path):
        cache = DirectoryCache(tmp_path)
        assert isinstance(cache.new_fingerprint(), Fingerprint)
