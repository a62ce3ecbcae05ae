"""
事务状态枚举
OPEN -> COMMITTING -> COMMITTED，或 OPEN -> ABORTED
"""

from enum import Enum


class TransactionState(Enum):
    """事务状态"""
    OPEN = "open"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ABORTED = "aborted"
    
    def is_finished(self) -> bool:
        """是否已结束"""
        return self in (TransactionState.COMMITTED, TransactionState.ABORTED)
    
    def __str__(self):
        return self.name
