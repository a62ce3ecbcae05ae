"""
文件句柄门面
只保存位置、模式和选项，构造时不做任何I/O，可以序列化后跨进程传递；
进入 with 作用域时才解析后端并打开底层流，离开作用域时无论成功与否都会释放。
"""

import gzip
import io
import logging
from typing import Any, Dict, List, Optional

from ..domain.cache_type import CacheType
from .fs_output_stream import FSOutputStream
from .location import parse_location

logger = logging.getLogger(__name__)

SUPPORTED_MODES = ("rb", "wb", "r", "w", "rt", "wt")
SUPPORTED_COMPRESSION = (None, "gzip", "infer")


def infer_compression(path: str) -> Optional[str]:
    """根据扩展名推断压缩格式"""
    return "gzip" if path.lower().endswith(".gz") else None


class OpenFile:
    """
    文件句柄门面

    Examples:
        >>> of = OpenFile("memory://data/out.txt", mode="w")
        >>> with of as f:
        ...     f.write("hello")
        >>> with OpenFile("memory://data/out.txt", mode="r") as f:
        ...     f.read()
        'hello'
    """

    def __init__(self, urlpath: str, mode: str = "rb", compression: Optional[str] = None,
                 encoding: Optional[str] = None, errors: Optional[str] = None,
                 newline: Optional[str] = None, block_size: Optional[int] = None,
                 cache_type: Optional[str] = None, **storage_options: Any):
        """
        初始化文件句柄

        Args:
            urlpath: 位置字符串
            mode: rb / wb / r / w（文本模式）
            compression: None、"gzip"，或 "infer"（按.gz扩展名推断）
            encoding: 文本模式编码
            errors: 文本模式编码错误处理
            newline: 文本模式换行处理
            block_size: 读取预读块大小
            cache_type: 读取缓冲策略
            **storage_options: 传给后端的选项
        """
        if mode not in SUPPORTED_MODES:
            raise ValueError(f"Unsupported mode: {mode!r}")
        if compression not in SUPPORTED_COMPRESSION:
            raise ValueError(f"Unsupported compression: {compression!r}")
        if cache_type is not None:
            cache_type = CacheType.get(cache_type).value

        self.urlpath = urlpath
        self.mode = mode
        self.compression = compression
        self.encoding = encoding
        self.errors = errors
        self.newline = newline
        self.block_size = block_size
        self.cache_type = cache_type
        self.storage_options: Dict[str, Any] = storage_options
        self._fobjects: List[Any] = []

    @property
    def path(self) -> str:
        """最内层后端的路径（只解析字符串，不连接后端）"""
        return parse_location(self.urlpath)[-1].path

    @property
    def binary_mode(self) -> str:
        return "wb" if "w" in self.mode else "rb"

    @property
    def is_text(self) -> bool:
        return "b" not in self.mode

    @property
    def is_write(self) -> bool:
        return "w" in self.mode

    def _resolve_compression(self, path: str) -> Optional[str]:
        if self.compression == "infer":
            return infer_compression(path)
        return self.compression

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_fobjects"] = []
        return state

    def __enter__(self):
        from .api import url_to_fs

        if self._fobjects:
            raise RuntimeError(f"{self!r} is already open")

        fs, path = url_to_fs(self.urlpath, **self.storage_options)
        if self.is_write:
            raw = fs.open(path, self.binary_mode)
        else:
            raw = fs.open(path, self.binary_mode, block_size=self.block_size, cache_type=self.cache_type)
        self._fobjects = [raw]

        try:
            if self._resolve_compression(path) == "gzip":
                self._fobjects.append(gzip.GzipFile(fileobj=raw, mode=self.binary_mode))
            if self.is_text:
                self._fobjects.append(io.TextIOWrapper(
                    self._fobjects[-1], encoding=self.encoding or "utf-8",
                    errors=self.errors, newline=self.newline,
                ))
        except BaseException:
            self._release(failed=True)
            raise

        logger.debug(f"Opened {self.urlpath} mode={self.mode}")
        return self._fobjects[-1]

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._release(failed=exc_type is not None)
        return False

    def _release(self, failed: bool):
        fobjects, self._fobjects = self._fobjects, []
        if not fobjects:
            return
        raw = fobjects[0]
        try:
            # 外层包装先刷出到底层流，但不关闭底层流
            for wrapper in reversed(fobjects[1:]):
                if isinstance(wrapper, io.TextIOWrapper):
                    wrapper.detach()
                else:
                    wrapper.close()
        except BaseException:
            if isinstance(raw, FSOutputStream):
                raw.discard()
            else:
                raw.close()
            raise

        if failed and isinstance(raw, FSOutputStream):
            logger.debug(f"Discarding write to {self.urlpath} after error")
            raw.discard()
        else:
            raw.close()

    def __repr__(self):
        return f"<OpenFile '{self.urlpath}' mode={self.mode!r}>"
