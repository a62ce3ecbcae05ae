"""
配置与日志测试
"""

import logging

import pytest

from unifs import config
from unifs.util.log_util import setup_logging
from unifs.implementations.memory import MemoryFileSystem
from unifs.domain.cache_type import CacheType


class TestConfig:
    """配置测试类"""

    def test_set_and_get_conf(self):
        """测试设置协议默认选项"""
        config.set_conf("memory", anon=True)
        config.set_conf("memory", default_block_size=10)
        assert config.get_conf("memory") == {"anon": True, "default_block_size": 10}

    def test_get_conf_returns_copy(self):
        """测试返回副本"""
        config.set_conf("http", headers={"a": "1"})
        config.get_conf("http")["headers"]["a"] = "2"
        assert config.get_conf("http")["headers"] == {"a": "1"}

    def test_reset_conf(self):
        """测试清空默认选项"""
        config.set_conf("memory", anon=True)
        config.reset_conf()
        assert config.get_conf("memory") == {}

    def test_reserved_options(self):
        """测试核心保留选项"""
        fs = MemoryFileSystem(anon=True, default_block_size=1024, default_cache_type="forward")
        assert fs.anon is True
        assert fs.default_block_size == 1024
        assert fs.default_cache_type == CacheType.FORWARD

    def test_defaults(self):
        """测试默认值"""
        fs = MemoryFileSystem()
        assert fs.anon is False
        assert fs.default_block_size == config.DEFAULT_BLOCK_SIZE
        assert fs.default_cache_type == CacheType.READAHEAD

    def test_invalid_cache_type(self):
        """测试未知缓冲策略"""
        with pytest.raises(ValueError):
            MemoryFileSystem(default_cache_type="lru")


class TestLogging:
    """日志测试类"""

    def test_setup_logging_verbose(self, monkeypatch):
        """测试详细日志级别"""
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
        setup_logging(verbose=True)
        assert calls["level"] == logging.DEBUG
        setup_logging()
        assert calls["level"] == logging.INFO

    def test_operations_logged(self, caplog):
        """测试后端操作写日志"""
        fs = MemoryFileSystem()
        with caplog.at_level(logging.INFO, logger="unifs"):
            fs.mkdir("/logged")
        assert "Created directory: /logged" in caplog.text
