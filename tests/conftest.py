"""
测试公共夹具
"""

import pytest

from unifs.config import reset_conf
from unifs.core.instance_cache import clear_instance_cache
from unifs.core.registry import register_implementation, unregister_implementation
from unifs.implementations.memory import MemoryFileSystem


class CountingMemoryFileSystem(MemoryFileSystem):
    """记录原语调用次数的内存后端"""

    protocol = "counting"
    instances = 0

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        CountingMemoryFileSystem.instances += 1
        self.range_reads = []
        self.full_reads = 0

    def _open_read(self, path, byte_range=None):
        if byte_range is None:
            self.full_reads += 1
        else:
            self.range_reads.append(byte_range)
        return super()._open_read(path, byte_range)


class ForwardOnlyFileSystem(MemoryFileSystem):
    """不支持范围读取的内存后端"""

    protocol = "forward"
    random_access = False


@pytest.fixture(autouse=True)
def clean_state():
    """每个测试前后清空实例缓存和默认配置"""
    clear_instance_cache()
    reset_conf()
    yield
    clear_instance_cache()
    reset_conf()


@pytest.fixture
def counting_protocol():
    """注册计数后端"""
    CountingMemoryFileSystem.instances = 0
    register_implementation("counting", CountingMemoryFileSystem)
    yield CountingMemoryFileSystem
    unregister_implementation("counting")


@pytest.fixture
def forward_protocol():
    """注册只能顺序读取的后端"""
    register_implementation("forward", ForwardOnlyFileSystem)
    yield ForwardOnlyFileSystem
    unregister_implementation("forward")


@pytest.fixture
def memfs():
    """独立的内存文件系统实例"""
    return MemoryFileSystem()
