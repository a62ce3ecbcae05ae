"""
位置解析测试
"""

import pathlib

import pytest

from unifs.core.location import Location, parse_location, unparse_location
from unifs.exceptions import InvalidLocation


class TestParseLocation:
    """位置字符串解析测试类"""

    def test_plain_path_uses_default_protocol(self):
        """测试无协议的路径按本地文件处理"""
        layers = parse_location("/tmp/data.csv")
        assert layers == [Location("file", "/tmp/data.csv")]

    def test_relative_path(self):
        """测试相对路径"""
        assert parse_location("data/a.txt") == [Location("file", "data/a.txt")]

    def test_pathlike(self):
        """测试os.PathLike输入"""
        layers = parse_location(pathlib.PurePosixPath("/tmp/x"))
        assert layers[0].protocol == "file"
        assert layers[0].path == "/tmp/x"

    def test_protocol_and_path(self):
        """测试协议与路径拆分"""
        layers = parse_location("memory://bucket/key.csv")
        assert layers == [Location("memory", "bucket/key.csv")]

    def test_protocol_lowercased(self):
        """测试协议名大小写不敏感"""
        assert parse_location("MEMORY://a")[0].protocol == "memory"

    def test_query_options_coerced(self):
        """测试查询参数转换为选项"""
        layers = parse_location("zk://app/config?hosts=zk1:2181&timeout=10&anon=true&tag=v1")
        assert layers[0].path == "app/config"
        assert layers[0].options == {"hosts": "zk1:2181", "timeout": 10, "anon": True, "tag": "v1"}

    def test_false_option(self):
        """测试false转换为布尔值"""
        assert parse_location("memory://a?anon=False")[0].options == {"anon": False}

    def test_http_keeps_full_url(self):
        """测试HTTP路径保留完整URL与查询串"""
        layers = parse_location("https://example.com/data/a.csv?sig=abc")
        assert layers == [Location("https", "https://example.com/data/a.csv?sig=abc")]

    def test_chained_location(self):
        """测试链式位置，最内层在最后"""
        layers = parse_location("gzip::memory://data/a.gz")
        assert [layer.protocol for layer in layers] == ["gzip", "memory"]
        assert layers[0].path == ""
        assert layers[-1].path == "data/a.gz"

    def test_chained_outer_options(self):
        """测试外层携带选项"""
        layers = parse_location("gzip://?compresslevel=1::memory://a.gz")
        assert layers[0] == Location("gzip", "", {"compresslevel": 1})

    def test_chained_with_ipv6_inner(self):
        """测试内层主机为IPv6地址"""
        layers = parse_location("gzip::http://[::1]:8080/a.gz")
        assert [layer.protocol for layer in layers] == ["gzip", "http"]
        assert layers[-1].path == "http://[::1]:8080/a.gz"

    def test_caller_options_override_query(self):
        """测试调用方选项覆盖URL查询参数"""
        layers = parse_location("memory://a?anon=true", options={"anon": False})
        assert layers[-1].options == {"anon": False}

    @pytest.mark.parametrize("urlpath", ["", "   ", None])
    def test_empty_location(self, urlpath):
        """测试空位置字符串"""
        with pytest.raises(InvalidLocation):
            parse_location(urlpath)

    @pytest.mark.parametrize("urlpath", ["gzip::", "://a", "memory:/a", "memory:"])
    def test_malformed_location(self, urlpath):
        """测试格式错误的位置字符串"""
        with pytest.raises(InvalidLocation):
            parse_location(urlpath)

    def test_invalid_location_is_value_error(self):
        """测试InvalidLocation同时是ValueError"""
        with pytest.raises(ValueError):
            parse_location("")


class TestUnparseLocation:
    """位置序列化测试类"""

    @pytest.mark.parametrize("urlpath", [
        "memory://data/a.txt",
        "memory://data/a.txt?anon=true",
        "gzip::memory://data/a.gz",
        "gzip://?compresslevel=1::memory://a.gz",
        "https://example.com/a?x=1",
    ])
    def test_parse_unparse_identity(self, urlpath):
        """测试解析后再序列化得到等价字符串"""
        assert parse_location(unparse_location(parse_location(urlpath))) == parse_location(urlpath)

    def test_options_sorted(self):
        """测试选项按键排序"""
        text = unparse_location([Location("memory", "a", {"b": 2, "a": "x"})])
        assert text == "memory://a?a=x&b=2"

    def test_unencodable_option(self):
        """测试无法嵌入字符串的选项"""
        with pytest.raises(InvalidLocation):
            unparse_location([Location("memory", "a", {"headers": {"X": "1"}})])

    def test_empty_layers(self):
        """测试空列表"""
        with pytest.raises(InvalidLocation):
            unparse_location([])

    def test_to_url(self):
        """测试单层转为URL"""
        assert Location("memory", "a/b").to_url() == "memory://a/b"
