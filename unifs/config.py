"""
配置模块
全局默认值与按协议设置的默认后端选项
"""

import copy
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

# 未指定协议时使用的本地文件系统协议
DEFAULT_PROTOCOL = "file"

# 预读块大小（字节）
DEFAULT_BLOCK_SIZE = 5 * 2 ** 20

# 缓冲策略: readahead 或 forward
DEFAULT_CACHE_TYPE = "readahead"

# 写入暂存区在内存中的上限，超过后落盘
DEFAULT_SPOOL_SIZE = 5 * 2 ** 20

# 核心保留的选项名
RESERVED_OPTIONS = ("anon", "default_block_size", "default_cache_type")

# 按协议的默认选项，优先级低于URL和调用方传入的选项
conf: Dict[str, Dict[str, Any]] = {}


def set_conf(protocol: str, **options: Any) -> None:
    """
    设置某协议的默认选项（合并到已有配置）

    Args:
        protocol: 协议名
        **options: 默认选项
    """
    conf.setdefault(protocol, {}).update(options)
    logger.debug(f"Default options for {protocol}: {sorted(conf[protocol])}")


def get_conf(protocol: str) -> Dict[str, Any]:
    """获取某协议的默认选项副本"""
    return copy.deepcopy(conf.get(protocol, {}))


def reset_conf() -> None:
    """清空全部默认选项"""
    conf.clear()
