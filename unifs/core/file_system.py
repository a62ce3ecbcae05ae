"""
文件系统抽象基类
定义每个后端必须满足的能力契约

后端只需实现以下原语：
    info / ls / delete / mkdir / _open_read / _open_write
其余操作（exists、walk、open、事务写入等）都由原语组合而成。
基类不持有可变状态，实例上只保存构造时传入的只读配置；
连接池、认证令牌等可变状态由各后端自行加锁维护。
"""

import inspect
import logging
import posixpath
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple, Union

from ..config import DEFAULT_BLOCK_SIZE, DEFAULT_CACHE_TYPE
from ..domain.cache_type import CacheType
from ..domain.stat_info import StatInfo
from ..exceptions import PathNotFound, UnsupportedOperation
from .fs_input_stream import FSInputStream
from .fs_output_stream import FSOutputStream
from .instance_cache import default_cache
from .transaction import Transaction, current_transaction

logger = logging.getLogger(__name__)

ByteRange = Tuple[int, int]


def _rebuild(protocol: str, storage_options: Dict[str, Any]) -> "FileSystem":
    """反序列化时通过实例缓存重建后端"""
    return default_cache.get_instance(protocol, storage_options)


class FileSystem(ABC):
    """
    文件系统抽象基类
    定义了通用的文件系统方法和能力声明
    """

    # 主协议名；经实例缓存创建时替换为解析所用的协议名，用于序列化重建
    protocol: str = "abstract"
    # 是否支持按字节范围读取，不支持时读取器退化为只能顺序向前
    random_access: bool = True
    # 是否为包装其他协议的外层（链式协议中的 outer::）
    wraps_target: bool = False
    # 不参与实例缓存键的选项名
    cache_key_excludes: Tuple[str, ...] = ()
    sep = "/"
    storage_options: Dict[str, Any]

    def __new__(cls, *args: Any, **storage_options: Any):
        # 记录构造参数（位置参数按参数名归入），序列化重建时得到相同的缓存键
        if args:
            params = [
                p.name for p in list(inspect.signature(cls.__init__).parameters.values())[1:]
                if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
            ]
            storage_options = {**dict(zip(params, args)), **storage_options}
        instance = super().__new__(cls)
        instance.storage_options = dict(storage_options)
        return instance

    def __init__(self, **storage_options: Any):
        """
        初始化文件系统

        Args:
            **storage_options: 后端选项，保留键：
                anon: 跳过凭证解析
                default_block_size: 预读块大小
                default_cache_type: 缓冲策略（readahead / forward）
        """
        self.anon: bool = bool(storage_options.get("anon", False))
        self.default_block_size: int = int(storage_options.get("default_block_size") or DEFAULT_BLOCK_SIZE)
        self.default_cache_type: CacheType = CacheType.get(
            storage_options.get("default_cache_type") or DEFAULT_CACHE_TYPE
        )

    # ------------------------------------------------------------------
    # 能力契约：后端原语
    # ------------------------------------------------------------------

    @abstractmethod
    def info(self, path: str) -> StatInfo:
        """
        获取路径元数据

        Raises:
            PathNotFound: 路径不存在
        """

    @abstractmethod
    def ls(self, path: str) -> List[StatInfo]:
        """
        列出目录内容；对文件路径返回只含该文件的列表

        Raises:
            PathNotFound: 路径不存在（空目录返回空列表）
        """

    @abstractmethod
    def delete(self, path: str, recursive: bool = False) -> None:
        """
        删除文件或目录

        Raises:
            PathNotFound: 路径不存在
        """

    @abstractmethod
    def mkdir(self, path: str, create_parents: bool = True) -> None:
        """
        创建目录

        Raises:
            FileExistsError: 路径已存在
        """

    @abstractmethod
    def _open_read(self, path: str, byte_range: Optional[ByteRange] = None) -> BinaryIO:
        """打开原始读取流；byte_range 仅在 random_access 为 True 时出现"""

    @abstractmethod
    def _open_write(self, path: str) -> FSOutputStream:
        """打开立即写入流，关闭时数据对最终路径可见"""

    # ------------------------------------------------------------------
    # 契约入口
    # ------------------------------------------------------------------

    def open_read(self, path: str, byte_range: Optional[ByteRange] = None) -> BinaryIO:
        """
        打开读取流

        Args:
            path: 文件路径
            byte_range: 半开区间 [start, end)

        Returns:
            字节流

        Raises:
            UnsupportedOperation: 后端不支持范围读取
        """
        if byte_range is not None:
            if not self.random_access:
                raise UnsupportedOperation(
                    f"{type(self).__name__} does not support byte-range reads: {path}"
                )
            start, end = byte_range
            if start < 0 or end < start:
                raise ValueError(f"Invalid byte range: {byte_range}")
        return self._open_read(path, byte_range)

    def open_write(self, path: str) -> FSOutputStream:
        """
        打开写入流
        在事务内写入会被重定向到暂存区，事务提交时才写到最终路径

        Args:
            path: 文件路径

        Returns:
            写入流
        """
        txn = current_transaction(self)
        if txn is not None:
            return txn.stage(path)
        return self._open_write(path)

    def open(self, path: str, mode: str = "rb", block_size: Optional[int] = None,
             cache_type: Union[str, CacheType, None] = None) -> Union[FSInputStream, FSOutputStream]:
        """
        以二进制模式打开文件

        Args:
            path: 文件路径
            mode: "rb" 或 "wb"
            block_size: 预读块大小，默认使用实例配置
            cache_type: 缓冲策略，默认使用实例配置

        Returns:
            读取流或写入流
        """
        if mode == "rb":
            stat_info = self.info(path)
            if stat_info.is_directory():
                raise IsADirectoryError(f"Is a directory: {path}")
            return FSInputStream(
                self, path, stat_info.size,
                block_size=block_size or self.default_block_size,
                cache_type=cache_type or self.default_cache_type,
            )
        if mode == "wb":
            return self.open_write(path)
        raise ValueError(f"Unsupported mode: {mode!r}")

    def transaction(self) -> Transaction:
        """创建绑定到本实例的事务，配合 with 使用"""
        return Transaction(self)

    # ------------------------------------------------------------------
    # 由原语组合出的便捷操作
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        """检查文件或目录是否存在"""
        try:
            self.info(path)
            return True
        except PathNotFound:
            return False

    def isfile(self, path: str) -> bool:
        """检查是否为文件"""
        try:
            return self.info(path).is_file()
        except PathNotFound:
            return False

    def isdir(self, path: str) -> bool:
        """检查是否为目录"""
        try:
            return self.info(path).is_directory()
        except PathNotFound:
            return False

    def size(self, path: str) -> Optional[int]:
        """获取文件大小"""
        return self.info(path).size

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """递归创建目录"""
        if exist_ok and self.isdir(path):
            return
        self.mkdir(path, create_parents=True)

    def read_range(self, path: str, start: int, end: int) -> bytes:
        """
        读取字节区间 [start, end)，每次调用对应一次后端范围读取
        """
        with self.open_read(path, (start, end)) as f:
            return f.read()

    def cat_file(self, path: str, start: Optional[int] = None, end: Optional[int] = None) -> bytes:
        """
        读取文件内容

        Args:
            path: 文件路径
            start: 起始偏移，负数表示从末尾计算
            end: 结束偏移（不含），负数表示从末尾计算
        """
        if start is None and end is None:
            with self.open_read(path) as f:
                return f.read()

        if (start is not None and start < 0) or end is None or end < 0:
            size = self.size(path) or 0
            if start is not None and start < 0:
                start = max(size + start, 0)
            if end is None:
                end = size
            elif end < 0:
                end = max(size + end, 0)
        start = start or 0
        if end <= start:
            return b""
        return self.read_range(path, start, end)

    def pipe_file(self, path: str, data: bytes) -> None:
        """写入整个文件"""
        with self.open_write(path) as f:
            f.write(data)

    def join(self, base: str, name: str) -> str:
        """拼接路径"""
        if not base:
            return name
        return posixpath.join(base, name) if not base.endswith(self.sep) else base + name

    def walk(self, root: str, maxdepth: Optional[int] = None) -> Iterator[Tuple[str, List[str], List[str]]]:
        """
        遍历目录树，惰性产出 (路径, 子目录名列表, 文件名列表)
        生成器只能消费一次，重新遍历需要再次调用

        Args:
            root: 起始目录
            maxdepth: 最大深度，None表示不限

        Raises:
            PathNotFound: 起始目录不存在（在首次迭代时抛出）
        """
        if maxdepth is not None and maxdepth < 1:
            raise ValueError("maxdepth must be at least 1")

        if self.isfile(root):
            return
        listing = self.ls(root)

        dirs: List[str] = []
        files: List[str] = []
        for entry in listing:
            if entry.is_directory():
                dirs.append(entry.basename)
            else:
                files.append(entry.basename)
        yield root, dirs, files

        if maxdepth is not None:
            maxdepth -= 1
            if maxdepth < 1:
                return
        for name in dirs:
            yield from self.walk(self.join(root, name), maxdepth=maxdepth)

    def __reduce__(self):
        return _rebuild, (self.protocol, self.storage_options)

    def __repr__(self):
        return f"{type(self).__name__}(protocol={self.protocol!r})"
