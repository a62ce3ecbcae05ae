"""
数据模型模块 - 定义各种数据结构
"""

from .stat_info import StatInfo
from .file_type import FileType
from .cache_type import CacheType
from .transaction_state import TransactionState

__all__ = [
    'StatInfo',
    'FileType',
    'CacheType',
    'TransactionState'
]
