"""
工具模块 - 日志配置
HTTP客户端（requests）与ZooKeeper客户端（kazoo）按需从子模块导入
"""

from .log_util import setup_logging

__all__ = [
    'setup_logging'
]
