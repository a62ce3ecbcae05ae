"""
文件类型枚举
"""

from enum import Enum


class FileType(Enum):
    """文件类型枚举"""
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"
    
    @classmethod
    def get(cls, value: str) -> 'FileType':
        """
        根据取值获取文件类型
        
        Args:
            value: 文件类型字符串，如 "file"、"directory"
            
        Returns:
            对应的文件类型枚举值，无法识别时返回OTHER
        """
        if isinstance(value, cls):
            return value
        for file_type in cls:
            if file_type.value == str(value).lower():
                return file_type
        return cls.OTHER
    
    def __str__(self):
        return self.value
    
    def __repr__(self):
        return f"FileType.{self.name}"
