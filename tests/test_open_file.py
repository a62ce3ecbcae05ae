"""
文件句柄门面与分发入口测试
"""

import gzip
import pickle

import pytest

import unifs
from unifs.core.open_file import OpenFile, infer_compression
from unifs.exceptions import InvalidLocation, TransactionAborted, UnknownProtocol


class TestOpenFile:
    """文件句柄门面测试类"""

    def test_no_io_on_construction(self, counting_protocol):
        """测试构造时不解析后端"""
        of = unifs.open("counting://a.txt")
        assert counting_protocol.instances == 0
        assert of.path == "a.txt"

    def test_binary_roundtrip(self):
        """测试二进制读写"""
        with unifs.open("memory://data/a.bin", "wb") as f:
            f.write(b"\x00\x01")
        with unifs.open("memory://data/a.bin", "rb") as f:
            assert f.read() == b"\x00\x01"

    def test_text_roundtrip(self):
        """测试文本读写"""
        with unifs.open("memory://data/a.txt", "w", encoding="utf-8") as f:
            f.write("你好\n")
        with unifs.open("memory://data/a.txt", "r", encoding="utf-8") as f:
            assert f.read() == "你好\n"

    def test_error_discards_write(self):
        """测试作用域内出错时不提交"""
        with pytest.raises(RuntimeError):
            with unifs.open("memory://data/bad.txt", "w") as f:
                f.write("partial")
                raise RuntimeError("boom")
        fs, path = unifs.url_to_fs("memory://data/bad.txt")
        assert not fs.exists(path)

    def test_gzip_compression(self):
        """测试gzip压缩写入"""
        with unifs.open("memory://data/a.txt.gz", "w", compression="infer") as f:
            f.write("compressed")
        fs, path = unifs.url_to_fs("memory://data/a.txt.gz")
        assert gzip.decompress(fs.cat_file(path)) == b"compressed"
        with unifs.open("memory://data/a.txt.gz", "r", compression="gzip") as f:
            assert f.read() == "compressed"

    def test_pickle_before_open(self):
        """测试句柄可以序列化"""
        of = unifs.open("memory://data/p.txt", "w", anon=True)
        clone = pickle.loads(pickle.dumps(of))
        assert clone.urlpath == of.urlpath
        assert clone.storage_options == {"anon": True}
        with clone as f:
            f.write("x")
        with unifs.open("memory://data/p.txt", "r", anon=True) as f:
            assert f.read() == "x"

    def test_reenter_open_handle(self):
        """测试重复进入同一个句柄"""
        of = unifs.open("memory://data/r.txt", "w")
        with of:
            with pytest.raises(RuntimeError):
                of.__enter__()

    def test_read_missing(self):
        """测试读取不存在的文件"""
        with pytest.raises(FileNotFoundError):
            with unifs.open("memory://missing.txt"):
                pass

    @pytest.mark.parametrize("kwargs", [{"mode": "a"}, {"compression": "bz2"}, {"cache_type": "lru"}])
    def test_invalid_arguments(self, kwargs):
        """测试非法参数"""
        with pytest.raises(ValueError):
            OpenFile("memory://a", **kwargs)

    def test_infer_compression(self):
        """测试压缩格式推断"""
        assert infer_compression("a.CSV.GZ") == "gzip"
        assert infer_compression("a.csv") is None

    def test_local_default(self, tmp_path):
        """测试无协议路径使用本地后端"""
        target = tmp_path / "local.txt"
        with unifs.open(str(target), "w") as f:
            f.write("local")
        assert target.read_text() == "local"


class TestDispatch:
    """分发入口测试类"""

    def test_unknown_protocol(self):
        """测试未注册的协议"""
        with pytest.raises(UnknownProtocol):
            unifs.url_to_fs("nosuch://a")

    def test_outer_layer_must_wrap(self):
        """测试不能包装其他协议的后端出现在外层"""
        with pytest.raises(InvalidLocation):
            unifs.url_to_fs("memory::memory://a")

    def test_chained_options_routed_by_protocol(self):
        """测试以协议名为键的选项作用于对应层"""
        fs, path = unifs.url_to_fs("gzip::memory://a.gz", gzip={"compresslevel": 1}, anon=True)
        assert fs.protocol == "gzip"
        assert fs.compresslevel == 1
        assert fs.target_options == {"anon": True}
        assert path == "a.gz"

    def test_transaction_helper(self):
        """测试按位置字符串开启事务"""
        with unifs.transaction("memory://"):
            with unifs.open("memory://t/a", "wb") as f:
                f.write(b"a")
            fs, _ = unifs.url_to_fs("memory://")
            assert not fs.exists("/t/a")
        assert fs.cat_file("/t/a") == b"a"

    def test_transaction_helper_abort(self):
        """测试事务作用域出错时写入全部丢弃"""
        with pytest.raises(TransactionAborted):
            with unifs.transaction("memory://"):
                with unifs.open("memory://t/b", "wb") as f:
                    f.write(b"b")
                raise ValueError("stop")
        fs, _ = unifs.url_to_fs("memory://")
        assert not fs.exists("/t/b")
