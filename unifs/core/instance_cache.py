"""
文件系统实例缓存
每个 (协议, 规范化选项) 在进程内只对应一个后端实例

生命周期：进程启动时为空，首次解析时惰性创建，之后一直保留，
直到调用 clear() / evict() 显式失效（测试中常用）。
"""

import logging
import threading
from typing import Any, Dict, Hashable, Iterable, Optional, Tuple

from .registry import get_filesystem_class

logger = logging.getLogger(__name__)

# 核心层消费、不参与缓存键的调用方提示
CALLER_HINTS = frozenset({"skip_instance_cache"})

CacheKey = Tuple[str, Hashable]


def _construct(factory: Any, protocol: str, options: Dict[str, Any]) -> Any:
    instance = factory(**options)
    # 记录解析时的协议名（别名、http/https），序列化重建时回到同一个缓存键
    if hasattr(instance, "storage_options"):
        instance.protocol = protocol
    return instance


def _freeze(value: Any) -> Hashable:
    """将选项值转换为可哈希、顺序稳定的形式"""
    if isinstance(value, dict):
        return tuple(sorted((str(k), _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(repr(_freeze(v)) for v in value))
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def make_key(protocol: str, options: Dict[str, Any], excludes: Iterable[str] = ()) -> CacheKey:
    """
    计算缓存键

    Args:
        protocol: 协议名
        options: 后端选项
        excludes: 额外不参与缓存键的选项名

    Returns:
        (协议, 规范化选项) 元组
    """
    skipped = CALLER_HINTS.union(excludes)
    canonical = {k: v for k, v in options.items() if k not in skipped}
    return protocol, _freeze(canonical)


class InstanceCache:
    """文件系统实例缓存"""

    def __init__(self):
        self._instances: Dict[CacheKey, Any] = {}
        # 按键的构造锁，保证同一个键最多调用一次工厂
        self._key_locks: Dict[CacheKey, threading.Lock] = {}
        self._lock = threading.Lock()

    def get_instance(self, protocol: str, options: Optional[Dict[str, Any]] = None) -> Any:
        """
        获取或创建后端实例

        Args:
            protocol: 协议名
            options: 后端选项

        Returns:
            共享的后端实例

        Raises:
            UnknownProtocol: 协议未注册
        """
        options = dict(options or {})
        factory = get_filesystem_class(protocol)
        skip_cache = bool(options.pop("skip_instance_cache", False))
        if skip_cache:
            logger.debug(f"Bypassing instance cache for {protocol}")
            return _construct(factory, protocol, options)

        key = make_key(protocol, options, getattr(factory, "cache_key_excludes", ()))
        with self._lock:
            instance = self._instances.get(key)
            if instance is not None:
                return instance
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                instance = self._instances.get(key)
            if instance is not None:
                return instance

            instance = _construct(factory, protocol, options)
            with self._lock:
                self._instances[key] = instance
                self._key_locks.pop(key, None)
            logger.info(f"Created {type(instance).__name__} instance for protocol: {protocol}")
            return instance

    def evict(self, protocol: str, options: Optional[Dict[str, Any]] = None) -> bool:
        """
        使某个键失效

        Returns:
            是否有实例被移除
        """
        options = dict(options or {})
        factory = get_filesystem_class(protocol)
        key = make_key(protocol, options, getattr(factory, "cache_key_excludes", ()))
        with self._lock:
            return self._instances.pop(key, None) is not None

    def evict_instance(self, instance: Any) -> bool:
        """按实例对象失效"""
        with self._lock:
            for key, cached in list(self._instances.items()):
                if cached is instance:
                    del self._instances[key]
                    return True
        return False

    def clear(self) -> None:
        """清空缓存"""
        with self._lock:
            self._instances.clear()
        logger.debug("Cleared filesystem instance cache")

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)

    def __contains__(self, instance: Any) -> bool:
        with self._lock:
            return any(cached is instance for cached in self._instances.values())


# 进程级缓存
default_cache = InstanceCache()


def clear_instance_cache() -> None:
    """清空进程级实例缓存"""
    default_cache.clear()
