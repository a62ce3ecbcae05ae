"""
读缓冲策略枚举
"""

from enum import Enum


class CacheType(Enum):
    """读缓冲策略"""
    # 随机访问：按块预读，支持任意seek
    READAHEAD = "readahead"
    # 只能顺序向前读
    FORWARD = "forward"
    
    @classmethod
    def get(cls, value) -> 'CacheType':
        """
        根据取值获取缓冲策略
        
        Raises:
            ValueError: 未知策略
        """
        if isinstance(value, cls):
            return value
        for cache_type in cls:
            if cache_type.value == value:
                return cache_type
        raise ValueError(f"Unknown cache type: {value!r}")
    
    def __str__(self):
        return self.value
