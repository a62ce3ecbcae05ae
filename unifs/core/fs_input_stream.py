"""
文件输入流类
在后端"从偏移O读取N字节"原语之上提供可seek的缓冲读取

两种策略：
    READAHEAD: 维护一个预读块，请求区间被块覆盖时直接从内存返回，
               否则发起一次范围读取 [pos, pos + max(n, block_size))，截断到文件大小
    FORWARD:   不支持范围读取的后端只能顺序向前读，向后seek或跳跃seek会失败
"""

import io
import logging
from typing import TYPE_CHECKING, BinaryIO, Optional, Tuple, Union

from ..config import DEFAULT_BLOCK_SIZE
from ..domain.cache_type import CacheType
from ..exceptions import UnsupportedOperation

if TYPE_CHECKING:
    from .file_system import FileSystem

logger = logging.getLogger(__name__)


class FSInputStream(io.IOBase):
    """文件输入流类"""

    def __init__(self, fs: "FileSystem", path: str, size: Optional[int],
                 block_size: int = DEFAULT_BLOCK_SIZE,
                 cache_type: Union[str, CacheType] = CacheType.READAHEAD):
        """
        初始化文件输入流，不发生任何I/O

        Args:
            fs: 后端实例
            path: 文件路径
            size: 文件大小，未知时为None（退化为FORWARD）
            block_size: 预读块大小
            cache_type: 缓冲策略
        """
        super().__init__()
        self.fs = fs
        self.path = path
        self.size = size
        self.block_size = max(int(block_size), 1)
        self.cache_type = CacheType.get(cache_type)
        if not fs.random_access or size is None:
            self.cache_type = CacheType.FORWARD
        self.current_position = 0
        self._buffer = b""
        self._buffer_range: Optional[Tuple[int, int]] = None
        self._stream: Optional[BinaryIO] = None

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return self.cache_type == CacheType.READAHEAD

    def read(self, size: int = -1) -> bytes:
        """
        读取文件数据

        Args:
            size: 读取大小，-1表示读取到文件末尾

        Returns:
            读取的数据，超过文件末尾时返回剩余部分（可能为空）
        """
        self._check_closed()
        if size is None:
            size = -1
        if size == 0:
            return b""

        if self.cache_type == CacheType.FORWARD:
            return self._read_forward(size)

        if size < 0:
            size = self.size - self.current_position
        start = self.current_position
        end = min(start + size, self.size)
        if start >= end:
            return b""

        if not self._covers(start, end):
            self._fill(start, end)

        offset = start - self._buffer_range[0]
        data = self._buffer[offset:offset + (end - start)]
        self.current_position = start + len(data)
        return data

    def _covers(self, start: int, end: int) -> bool:
        return (self._buffer_range is not None
                and self._buffer_range[0] <= start
                and end <= self._buffer_range[1])

    def _fill(self, start: int, end: int):
        """发起一次范围读取，替换预读块"""
        fetch_end = min(start + max(end - start, self.block_size), self.size)
        logger.debug(f"Fetching {self.path} [{start}, {fetch_end})")
        self._buffer = self.fs.read_range(self.path, start, fetch_end)
        self._buffer_range = (start, start + len(self._buffer))

    def _read_forward(self, size: int) -> bytes:
        if self._stream is None:
            self._stream = self.fs.open_read(self.path)
        data = self._stream.read(size) if size > 0 else self._stream.read()
        self.current_position += len(data)
        return data

    def read1(self, size: int = -1) -> bytes:
        return self.read(size)

    def readinto(self, buffer) -> int:
        data = self.read(len(buffer))
        buffer[:len(data)] = data
        return len(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        """
        设置读取位置，只更新位置，不发生I/O

        Args:
            offset: 偏移量
            whence: 参考位置 (0: 文件开头, 1: 当前位置, 2: 文件结尾)

        Returns:
            新位置
        """
        self._check_closed()
        if whence == 0:
            new_position = offset
        elif whence == 1:
            new_position = self.current_position + offset
        elif whence == 2:
            if self.size is None:
                raise UnsupportedOperation(f"Cannot seek from end of {self.path}: size unknown")
            new_position = self.size + offset
        else:
            raise ValueError(f"Invalid whence value: {whence}")

        if new_position < 0:
            new_position = 0
        elif self.size is not None and new_position > self.size:
            new_position = self.size

        if self.cache_type == CacheType.FORWARD and new_position != self.current_position:
            raise UnsupportedOperation(
                f"Forward-only stream for {self.path} cannot seek from "
                f"{self.current_position} to {new_position}"
            )

        self.current_position = new_position
        return new_position

    def tell(self) -> int:
        """获取当前读取位置"""
        return self.current_position

    def close(self):
        """关闭流"""
        if self.closed:
            return
        try:
            if self._stream is not None:
                self._stream.close()
        finally:
            self._stream = None
            self._buffer = b""
            self._buffer_range = None
            super().close()

    def __repr__(self):
        return f"<FSInputStream {self.path!r} mode='rb' cache_type={self.cache_type}>"

    def _check_closed(self):
        if self.closed:
            raise ValueError(f"I/O operation on closed file: {self.path}")
