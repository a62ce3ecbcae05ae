"""
内置后端实现
各后端由注册表按需导入，这里只导出不依赖第三方库的后端
"""

from .local import LocalFileSystem
from .memory import MemoryFileSystem

__all__ = [
    'LocalFileSystem',
    'MemoryFileSystem'
]
