"""
异常定义
统一文件系统层对外暴露的错误类型
"""

import io
from typing import List, Optional


class UnifsError(Exception):
    """unifs异常基类"""
    pass


class InvalidLocation(UnifsError, ValueError):
    """位置字符串为空或格式错误"""
    pass


class UnknownProtocol(UnifsError, ValueError):
    """协议没有注册对应的后端"""

    def __init__(self, protocol: str):
        super().__init__(f"Protocol not known: {protocol!r}")
        self.protocol = protocol


class PathNotFound(UnifsError, FileNotFoundError):
    """路径不存在"""

    def __init__(self, path: str):
        super().__init__(f"No such file or directory: {path!r}")
        self.path = path

    def __reduce__(self):
        return (self.__class__, (self.path,))


class UnsupportedOperation(UnifsError, io.UnsupportedOperation):
    """后端不提供该能力（如范围读取、向后seek）"""
    pass


class BackendConnectionError(UnifsError, ConnectionError):
    """网络或认证失败，核心层不做自动重试"""
    pass


class TransactionAborted(UnifsError):
    """
    事务中止

    Attributes:
        txn_id: 事务ID
        committed: 失败前已提交到最终路径的条目
        failed: 提交失败的路径，作用域内出错时为None
        discarded: 被丢弃的暂存条目
    """

    def __init__(self, message: str, txn_id: str = "",
                 committed: Optional[List[str]] = None,
                 failed: Optional[str] = None,
                 discarded: Optional[List[str]] = None):
        super().__init__(message)
        self.txn_id = txn_id
        self.committed: List[str] = list(committed or [])
        self.failed = failed
        self.discarded: List[str] = list(discarded or [])
