"""
事务管理
在一个作用域内把对同一后端的多次写入先暂存，作用域正常结束时按记录顺序提交到最终路径，
出错时全部丢弃。

状态机：
    OPEN -> COMMITTING -> COMMITTED
    OPEN -> ABORTED
    COMMITTING -> ABORTED（某个条目提交失败）

提交是按顺序尽力而为的：第k个条目失败时，前k-1个已经可见且不会回滚，
其余条目被丢弃，调用方收到携带部分提交信息的 TransactionAborted。

事务绑定在打开它的线程/任务上下文中（contextvars），
其他线程对同一后端实例的写入不受影响。
"""

import contextvars
import logging
import shutil
import tempfile
import uuid
from datetime import datetime, timezone
from typing import IO, TYPE_CHECKING, Any, Dict, List, Optional

from ..config import DEFAULT_SPOOL_SIZE
from ..domain.transaction_state import TransactionState
from ..exceptions import TransactionAborted
from .fs_output_stream import FSOutputStream

if TYPE_CHECKING:
    from .file_system import FileSystem

logger = logging.getLogger(__name__)

# 当前上下文中处于OPEN状态的事务，键为后端实例id
_active: contextvars.ContextVar[Optional[Dict[int, "Transaction"]]] = contextvars.ContextVar(
    "unifs_active_transactions", default=None
)


def current_transaction(fs: "FileSystem") -> Optional["Transaction"]:
    """
    获取当前上下文中与后端实例关联的OPEN事务

    Args:
        fs: 后端实例

    Returns:
        事务，没有时返回None
    """
    active = _active.get()
    if not active:
        return None
    txn = active.get(id(fs))
    if txn is not None and txn.state == TransactionState.OPEN:
        return txn
    return None


class StagedWrite:
    """暂存写入：目标路径 + 本地暂存缓冲区"""

    def __init__(self, path: str, spool_size: int = DEFAULT_SPOOL_SIZE):
        self.path = path
        self.buffer: IO[bytes] = tempfile.SpooledTemporaryFile(max_size=spool_size)
        self.sink: Optional[FSOutputStream] = None
        self.size = 0
        self.ready = False
        self.discarded = False

    def mark_ready(self, buffer: IO[bytes]):
        """写入流关闭时调用，暂存内容可以提交"""
        buffer.seek(0, 2)
        self.size = buffer.tell()
        buffer.seek(0)
        self.ready = True

    def discard(self):
        """丢弃暂存内容"""
        if self.sink is not None and not self.sink.closed and not self.sink.discarded:
            # sink.discard 会回调到这里
            self.sink.discard()
            return
        self.discarded = True
        self.buffer.close()

    def __repr__(self):
        return f"StagedWrite{{path='{self.path}', size={self.size}, ready={self.ready}, discarded={self.discarded}}}"


class Transaction:
    """
    后端写入事务

    Examples:
        >>> fs = filesystem("memory")
        >>> with fs.transaction():
        ...     fs.pipe_file("/out/a.csv", b"a")
        ...     fs.pipe_file("/out/b.csv", b"b")
        >>> fs.exists("/out/a.csv")
        True
    """

    def __init__(self, fs: "FileSystem"):
        """
        初始化事务，此时尚未生效

        Args:
            fs: 事务关联的后端实例
        """
        self.fs = fs
        self.txn_id = str(uuid.uuid4())
        self.state: Optional[TransactionState] = None
        self.staged: List[StagedWrite] = []
        self.committed: List[str] = []
        self.start_time: Optional[datetime] = None
        self.commit_time: Optional[datetime] = None

    def begin(self) -> None:
        """
        开始事务

        Raises:
            RuntimeError: 事务已开始过，或当前上下文中该后端已有OPEN事务
        """
        if self.state is not None:
            raise RuntimeError(f"Transaction already in state: {self.state}")
        if current_transaction(self.fs) is not None:
            raise RuntimeError(f"A transaction is already open for {self.fs!r} in this context")

        active = dict(_active.get() or {})
        active[id(self.fs)] = self
        _active.set(active)

        self.state = TransactionState.OPEN
        self.start_time = datetime.now(timezone.utc)
        logger.info(f"Began transaction {self.txn_id} on {self.fs!r}")

    def _detach(self) -> None:
        active = dict(_active.get() or {})
        if active.get(id(self.fs)) is self:
            del active[id(self.fs)]
            _active.set(active)

    def stage(self, path: str) -> FSOutputStream:
        """
        为目标路径创建暂存写入流

        Args:
            path: 最终路径

        Returns:
            写入流，关闭时只完成暂存，不写最终路径
        """
        if self.state != TransactionState.OPEN:
            raise RuntimeError(f"Cannot stage writes in state: {self.state}")

        staged = StagedWrite(path)
        sink = FSOutputStream(path, commit=staged.mark_ready, on_discard=staged.discard, buffer=staged.buffer)
        staged.sink = sink
        self.staged.append(staged)
        logger.debug(f"Staged write to {path} in transaction {self.txn_id}")
        return sink

    @property
    def pending(self) -> List[str]:
        """尚未提交、未被丢弃的目标路径"""
        return [s.path for s in self.staged if not s.discarded and s.path not in self.committed]

    def commit(self) -> None:
        """
        提交事务：按记录顺序把暂存内容写到最终路径

        Raises:
            RuntimeError: 事务不在OPEN状态
            TransactionAborted: 某个条目提交失败
        """
        if self.state != TransactionState.OPEN:
            raise RuntimeError(f"Cannot commit in state: {self.state}")

        self.state = TransactionState.COMMITTING
        self._detach()

        for staged in self.staged:
            if staged.sink is not None and not staged.sink.closed:
                staged.sink.close()

        for index, staged in enumerate(self.staged):
            if staged.discarded or not staged.ready:
                continue
            try:
                self._promote(staged)
            except BaseException as e:
                remaining = self.staged[index:]
                discarded = [s.path for s in remaining if not s.discarded]
                for s in remaining:
                    s.discard()
                self.state = TransactionState.ABORTED
                logger.error(f"Transaction {self.txn_id} failed to commit {staged.path}: {e}")
                if not isinstance(e, Exception):
                    raise
                raise TransactionAborted(
                    f"Commit of transaction {self.txn_id} failed at {staged.path}: {e}",
                    txn_id=self.txn_id,
                    committed=self.committed,
                    failed=staged.path,
                    discarded=discarded,
                ) from e
            self.committed.append(staged.path)
            staged.discard()

        self.state = TransactionState.COMMITTED
        self.commit_time = datetime.now(timezone.utc)
        logger.info(f"Committed transaction {self.txn_id}: {len(self.committed)} files")

    def _promote(self, staged: StagedWrite) -> None:
        staged.buffer.seek(0)
        with self.fs._open_write(staged.path) as sink:
            shutil.copyfileobj(staged.buffer, sink)

    def abort(self) -> List[str]:
        """
        中止事务，丢弃全部暂存写入

        Returns:
            被丢弃的目标路径
        """
        if self.state is not None and self.state.is_finished():
            return []

        discarded = [s.path for s in self.staged if not s.discarded]
        for staged in self.staged:
            staged.discard()
        self.state = TransactionState.ABORTED
        self._detach()
        logger.info(f"Aborted transaction {self.txn_id}: discarded {len(discarded)} staged writes")
        return discarded

    def get_status(self) -> Dict[str, Any]:
        """
        获取事务状态

        Returns:
            包含事务状态与统计信息的字典
        """
        return {
            'txn_id': self.txn_id,
            'state': self.state.value if self.state else None,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'commit_time': self.commit_time.isoformat() if self.commit_time else None,
            'num_staged': len(self.staged),
            'num_committed': len(self.committed),
        }

    def __enter__(self):
        self.begin()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
            return False

        discarded = self.abort()
        if issubclass(exc_type, Exception) and not issubclass(exc_type, TransactionAborted):
            raise TransactionAborted(
                f"Transaction {self.txn_id} aborted: {exc_val}",
                txn_id=self.txn_id,
                discarded=discarded,
            ) from exc_val
        return False

    def __repr__(self):
        return f"<Transaction {self.txn_id} state={self.state}>"
