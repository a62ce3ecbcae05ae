"""
文件输出流类
写入先进入本地暂存缓冲区（内存，超过上限后落盘），关闭时一次性提交；
discard() 丢弃缓冲区，数据不会出现在目标路径。
"""

import hashlib
import io
import logging
import tempfile
from typing import IO, Callable, Optional

from ..config import DEFAULT_SPOOL_SIZE

logger = logging.getLogger(__name__)

CommitCallback = Callable[[IO[bytes]], None]


class FSOutputStream(io.IOBase):
    """文件输出流类"""

    def __init__(self, path: str, commit: CommitCallback,
                 on_discard: Optional[Callable[[], None]] = None,
                 buffer: Optional[IO[bytes]] = None,
                 spool_size: int = DEFAULT_SPOOL_SIZE):
        """
        初始化文件输出流

        Args:
            path: 文件路径
            commit: 关闭时调用，参数为定位到开头的暂存缓冲区
            on_discard: 丢弃时调用
            buffer: 外部提供的暂存缓冲区（由提供方负责关闭）
            spool_size: 内部缓冲区留在内存中的上限
        """
        super().__init__()
        self.path = path
        self._commit = commit
        self._on_discard = on_discard
        self._owns_buffer = buffer is None
        self._buffer: IO[bytes] = buffer if buffer is not None else tempfile.SpooledTemporaryFile(max_size=spool_size)
        self.md5_hash = hashlib.md5()
        self.bytes_written = 0
        self.discarded = False

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        """
        写入数据

        Args:
            data: 要写入的数据

        Returns:
            写入的字节数
        """
        self._check_closed()
        data = memoryview(data).cast("B")
        if not data:
            return 0
        self.md5_hash.update(data)
        self._buffer.write(data)
        self.bytes_written += len(data)
        return len(data)

    def write_string(self, text: str, encoding: str = 'utf-8') -> int:
        """
        写入字符串

        Args:
            text: 要写入的字符串
            encoding: 编码格式
        """
        return self.write(text.encode(encoding))

    def tell(self) -> int:
        """获取当前写入位置"""
        return self.bytes_written

    def flush(self):
        """内容在关闭时提交，这里不做任何事"""

    def close(self):
        """关闭流并提交"""
        if self.closed:
            return
        try:
            self._buffer.seek(0)
            self._commit(self._buffer)
            logger.debug(f"Committed {self.bytes_written} bytes for {self.path}")
        finally:
            if self._owns_buffer:
                self._buffer.close()
            super().close()

    def discard(self):
        """丢弃已写入的数据并关闭流"""
        if self.closed or self.discarded:
            return
        self.discarded = True
        try:
            if self._on_discard is not None:
                self._on_discard()
        finally:
            if self._owns_buffer:
                self._buffer.close()
            super().close()
        logger.debug(f"Discarded {self.bytes_written} bytes for {self.path}")

    def get_md5(self) -> str:
        """
        获取当前数据的MD5值

        Returns:
            MD5哈希值
        """
        return self.md5_hash.hexdigest()

    def __repr__(self):
        return f"<FSOutputStream {self.path!r} mode='wb'>"

    def _check_closed(self):
        if self.closed:
            raise ValueError(f"I/O operation on closed file: {self.path}")

    def __exit__(self, exc_type, exc_val, exc_tb):
        # 作用域内出错时不提交
        if exc_type is not None:
            self.discard()
        else:
            self.close()

    def __del__(self):
        # 未关闭就被回收的流视为放弃写入
        if not self.closed and hasattr(self, "_buffer"):
            self.discard()
