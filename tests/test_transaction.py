"""
事务测试
"""

import threading
from unittest.mock import patch

import pytest

from unifs.core.transaction import current_transaction
from unifs.domain.transaction_state import TransactionState
from unifs.exceptions import TransactionAborted
from unifs.implementations.local import LocalFileSystem
from unifs.implementations.memory import MemoryFileSystem


class TestTransaction:
    """事务测试类"""

    def test_commit_on_success(self, memfs):
        """测试作用域正常结束时提交"""
        with memfs.transaction() as txn:
            memfs.pipe_file("/out/a", b"a")
            memfs.pipe_file("/out/b", b"b")
            assert not memfs.exists("/out/a")
            assert txn.pending == ["/out/a", "/out/b"]
        assert txn.state == TransactionState.COMMITTED
        assert txn.committed == ["/out/a", "/out/b"]
        assert memfs.cat_file("/out/a") == b"a"
        assert memfs.cat_file("/out/b") == b"b"
        assert memfs.info("/out/a").size == 1
        assert memfs.info("/out/b").size == 1
        assert txn.commit_time is not None

    def test_abort_on_error(self, memfs):
        """测试作用域内出错时全部丢弃"""
        with pytest.raises(TransactionAborted) as exc_info:
            with memfs.transaction() as txn:
                memfs.pipe_file("/out/a", b"a")
                raise ValueError("bad row")
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.discarded == ["/out/a"]
        assert exc_info.value.txn_id == txn.txn_id
        assert txn.state == TransactionState.ABORTED
        assert not memfs.exists("/out/a")

    def test_base_exception_propagates(self, memfs):
        """测试非Exception的中断原样抛出"""
        with pytest.raises(KeyboardInterrupt):
            with memfs.transaction() as txn:
                memfs.pipe_file("/out/a", b"a")
                raise KeyboardInterrupt()
        assert txn.state == TransactionState.ABORTED
        assert not memfs.exists("/out/a")

    def test_write_after_commit_goes_direct(self, memfs):
        """测试事务结束后写入直接生效"""
        with memfs.transaction():
            memfs.pipe_file("/a", b"1")
        assert current_transaction(memfs) is None
        memfs.pipe_file("/b", b"2")
        assert memfs.exists("/b")

    def test_open_stream_at_commit(self, memfs):
        """测试提交时仍打开的写入流被关闭并提交"""
        with memfs.transaction() as txn:
            f = memfs.open_write("/a")
            f.write(b"late")
        assert f.closed
        assert txn.committed == ["/a"]
        assert memfs.cat_file("/a") == b"late"

    def test_discarded_stream_skipped(self, memfs):
        """测试事务内被丢弃的写入不提交"""
        with memfs.transaction() as txn:
            f = memfs.open_write("/a")
            f.write(b"x")
            f.discard()
            memfs.pipe_file("/b", b"b")
        assert txn.committed == ["/b"]
        assert not memfs.exists("/a")

    def test_partial_commit_failure(self, memfs):
        """测试第k个条目提交失败"""
        original = MemoryFileSystem._store

        def failing_store(fs, path, buffer):
            if path == "/out/b":
                raise OSError("quota exceeded")
            return original(fs, path, buffer)

        with patch.object(MemoryFileSystem, "_store", failing_store):
            with pytest.raises(TransactionAborted) as exc_info:
                with memfs.transaction() as txn:
                    memfs.pipe_file("/out/a", b"a")
                    memfs.pipe_file("/out/b", b"b")
                    memfs.pipe_file("/out/c", b"c")

        error = exc_info.value
        assert error.committed == ["/out/a"]
        assert error.failed == "/out/b"
        assert error.discarded == ["/out/b", "/out/c"]
        assert txn.state == TransactionState.ABORTED
        assert memfs.exists("/out/a")
        assert not memfs.exists("/out/c")

    def test_nested_transaction_rejected(self, memfs):
        """测试同一上下文中对同一后端重复开启事务"""
        with memfs.transaction():
            with pytest.raises(RuntimeError):
                memfs.transaction().begin()

    def test_begin_twice(self, memfs):
        """测试同一事务开始两次"""
        txn = memfs.transaction()
        txn.begin()
        with pytest.raises(RuntimeError):
            txn.begin()
        txn.abort()

    def test_commit_not_open(self, memfs):
        """测试未开始的事务不能提交"""
        with pytest.raises(RuntimeError):
            memfs.transaction().commit()

    def test_abort_idempotent(self, memfs):
        """测试重复中止"""
        txn = memfs.transaction()
        txn.begin()
        memfs.pipe_file("/a", b"a")
        assert txn.abort() == ["/a"]
        assert txn.abort() == []

    def test_independent_backends(self):
        """测试事务只影响关联的后端实例"""
        fs1, fs2 = MemoryFileSystem(), MemoryFileSystem()
        with fs1.transaction():
            fs2.pipe_file("/a", b"direct")
            assert fs2.exists("/a")
            fs1.pipe_file("/a", b"staged")
            assert not fs1.exists("/a")

    def test_other_thread_not_affected(self, memfs):
        """测试其他线程的写入不进入事务"""
        seen = {}

        def writer():
            seen["txn"] = current_transaction(memfs)
            memfs.pipe_file("/thread", b"t")

        with memfs.transaction():
            t = threading.Thread(target=writer)
            t.start()
            t.join()
            assert memfs.exists("/thread")
        assert seen["txn"] is None

    def test_get_status(self, memfs):
        """测试事务状态"""
        with memfs.transaction() as txn:
            memfs.pipe_file("/a", b"a")
            status = txn.get_status()
            assert status["state"] == "open"
            assert status["num_staged"] == 1
        assert txn.get_status()["num_committed"] == 1


class TestLocalTransaction:
    """本地后端事务测试类"""

    def test_commit_to_disk(self, tmp_path):
        """测试提交后文件落盘且大小等于暂存字节数"""
        fs = LocalFileSystem()
        target = tmp_path / "out" / "a.bin"
        with fs.transaction() as txn:
            fs.pipe_file(str(target), b"12345")
            assert not target.exists()
        assert txn.state == TransactionState.COMMITTED
        assert target.read_bytes() == b"12345"
        assert fs.info(str(target)).size == 5

    def test_abort_leaves_no_files(self, tmp_path):
        """测试中止后目标路径不存在"""
        fs = LocalFileSystem()
        target = tmp_path / "b.bin"
        with pytest.raises(TransactionAborted):
            with fs.transaction():
                fs.pipe_file(str(target), b"data")
                raise ValueError("stop")
        assert not target.exists()
        assert list(tmp_path.iterdir()) == []
