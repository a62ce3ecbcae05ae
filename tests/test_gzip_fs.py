"""
gzip外层测试
"""

import gzip
import pickle

import pytest

import unifs
from unifs.exceptions import TransactionAborted, UnsupportedOperation
from unifs.implementations.gzip_fs import GzipFileSystem


class TestGzipFileSystem:
    """gzip外层测试类"""

    def test_write_compresses(self):
        """测试写入时压缩到内层"""
        with unifs.open("gzip::memory://logs/a.gz", "wb") as f:
            f.write(b"line1\nline2\n")
        inner, path = unifs.url_to_fs("memory://logs/a.gz")
        assert gzip.decompress(inner.cat_file(path)) == b"line1\nline2\n"

    def test_read_decompresses(self):
        """测试读取时解压"""
        inner, _ = unifs.url_to_fs("memory://")
        inner.pipe_file("/logs/b.gz", gzip.compress(b"hello"))
        with unifs.open("gzip::memory://logs/b.gz", "r") as f:
            assert f.read() == "hello"

    def test_info_size_unknown(self):
        """测试解压后大小未知"""
        inner, _ = unifs.url_to_fs("memory://")
        data = gzip.compress(b"x" * 100)
        inner.pipe_file("/c.gz", data)
        fs, path = unifs.url_to_fs("gzip::memory://c.gz")
        info = fs.info(path)
        assert info.size is None
        assert info.extra["compressed_size"] == len(data)

    def test_no_range_reads(self):
        """测试不支持范围读取"""
        fs, path = unifs.url_to_fs("gzip::memory://c.gz")
        with pytest.raises(UnsupportedOperation):
            fs.open_read(path, (0, 1))

    def test_compresslevel_from_query(self):
        """测试外层选项来自查询参数"""
        fs, _ = unifs.url_to_fs("gzip://?compresslevel=1::memory://c.gz")
        assert isinstance(fs, GzipFileSystem)
        assert fs.compresslevel == 1
        assert fs.target_protocol == "memory"

    def test_transaction_on_wrapper(self):
        """测试外层上的事务写入在提交时压缩"""
        fs, path = unifs.url_to_fs("gzip::memory://t/a.gz")
        with fs.transaction():
            fs.pipe_file(path, b"staged")
            assert not fs.exists(path)
        assert gzip.decompress(fs.target.cat_file(path)) == b"staged"

    def test_delegates_directory_operations(self):
        """测试目录操作交给内层"""
        fs, _ = unifs.url_to_fs("gzip::memory://d")
        fs.mkdir("/d/sub")
        assert fs.target.isdir("/d/sub")
        assert [e.basename for e in fs.ls("/d")] == ["sub"]
        fs.delete("/d", recursive=True)
        assert not fs.target.exists("/d")

    def test_pickle(self):
        """测试外层序列化后重建到同一实例"""
        fs, _ = unifs.url_to_fs("gzip::memory://x.gz")
        assert pickle.loads(pickle.dumps(fs)) is fs

    def test_chained_write_joins_inner_transaction(self):
        """测试通过链式位置写入时加入内层后端的事务，中止后不可见"""
        inner = unifs.filesystem("memory")
        with pytest.raises(TransactionAborted):
            with inner.transaction():
                with unifs.open("gzip::memory://chained/a.gz", "wb") as f:
                    f.write(b"payload")
                assert not inner.exists("/chained/a.gz")
                raise ValueError("stop")
        assert not inner.exists("/chained/a.gz")

    def test_chained_write_commits_with_inner_transaction(self):
        """测试内层事务提交后压缩内容可见"""
        inner = unifs.filesystem("memory")
        with inner.transaction() as txn:
            with unifs.open("gzip::memory://chained/b.gz", "wb") as f:
                f.write(b"payload")
        assert len(txn.committed) == 1
        assert gzip.decompress(inner.cat_file("/chained/b.gz")) == b"payload"
