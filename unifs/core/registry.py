"""
后端注册表
协议名 -> 后端工厂（类或可调用对象）

内置后端以"模块路径.类名"字符串登记在 known_implementations 中，首次解析时才导入，
因此缺少可选依赖（requests、kazoo）只影响对应协议。
"""

import importlib
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Union

from ..exceptions import UnknownProtocol

logger = logging.getLogger(__name__)

Factory = Callable[..., Any]

known_implementations: Dict[str, Dict[str, str]] = {
    "file": {"class": "unifs.implementations.local.LocalFileSystem"},
    "local": {"class": "unifs.implementations.local.LocalFileSystem"},
    "memory": {"class": "unifs.implementations.memory.MemoryFileSystem"},
    "http": {
        "class": "unifs.implementations.http.HTTPFileSystem",
        "err": "HTTP(S) locations require the 'requests' package",
    },
    "https": {
        "class": "unifs.implementations.http.HTTPFileSystem",
        "err": "HTTP(S) locations require the 'requests' package",
    },
    "zk": {
        "class": "unifs.implementations.zookeeper.ZooKeeperFileSystem",
        "err": "ZooKeeper locations require the 'kazoo' package",
    },
    "gzip": {"class": "unifs.implementations.gzip_fs.GzipFileSystem"},
}

# 已解析的工厂，注册阶段写入，之后只读
_registry: Dict[str, Factory] = {}
_write_lock = threading.Lock()


def _import_factory(path: str) -> Factory:
    module_name, _, attr = path.rpartition(".")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


def register_implementation(name: str, factory: Union[str, Factory],
                            clobber: bool = True, errtxt: Optional[str] = None) -> None:
    """
    注册后端实现

    Args:
        name: 协议名
        factory: 后端类、工厂函数，或"模块路径.类名"字符串（延迟导入）
        clobber: 同名已注册时是否覆盖
        errtxt: 延迟导入失败时的提示信息

    Raises:
        ValueError: clobber为False且协议已注册
    """
    with _write_lock:
        if not clobber and (name in _registry or name in known_implementations):
            raise ValueError(f"Protocol already registered: {name}")
        if isinstance(factory, str):
            known_implementations[name] = {"class": factory, "err": errtxt or ""}
            _registry.pop(name, None)
        else:
            _registry[name] = factory
        logger.debug(f"Registered implementation for protocol: {name}")


def unregister_implementation(name: str) -> None:
    """移除注册（主要用于测试）"""
    with _write_lock:
        _registry.pop(name, None)
        known_implementations.pop(name, None)


def get_filesystem_class(protocol: str) -> Factory:
    """
    解析协议对应的工厂

    Args:
        protocol: 协议名

    Returns:
        后端工厂

    Raises:
        UnknownProtocol: 未注册的协议
        ImportError: 内置后端缺少依赖
    """
    factory = _registry.get(protocol)
    if factory is not None:
        return factory

    entry = known_implementations.get(protocol)
    if entry is None:
        raise UnknownProtocol(protocol)

    try:
        factory = _import_factory(entry["class"])
    except ImportError as e:
        logger.error(f"Failed to import implementation for {protocol}: {e}")
        raise ImportError(entry.get("err") or f"Cannot import {entry['class']}") from e

    with _write_lock:
        _registry.setdefault(protocol, factory)
    return _registry[protocol]


def registered_protocols() -> List[str]:
    """列出所有可解析的协议名"""
    return sorted(set(_registry) | set(known_implementations))
