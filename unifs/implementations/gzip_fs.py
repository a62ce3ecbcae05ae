"""
gzip外层文件系统
以 gzip::<内层位置> 的形式包装另一个后端：读取时解压，写入时压缩。
解压后的大小无法从元数据得知，也无法定位到任意偏移，因此不支持范围读取。
"""

import gzip
import logging
import shutil
from typing import IO, Any, BinaryIO, Dict, List, Optional

from ..core.api import filesystem
from ..core.file_system import ByteRange, FileSystem
from ..core.fs_output_stream import FSOutputStream
from ..domain.stat_info import StatInfo

logger = logging.getLogger(__name__)


class _GzipReader(gzip.GzipFile):
    """关闭时连同内层流一起关闭"""

    def __init__(self, raw: BinaryIO):
        super().__init__(fileobj=raw, mode="rb")
        self._raw = raw

    def close(self):
        try:
            super().close()
        finally:
            self._raw.close()


class GzipFileSystem(FileSystem):
    """gzip外层文件系统"""

    protocol = "gzip"
    random_access = False
    wraps_target = True

    def __init__(self, target_protocol: str, target_options: Optional[Dict[str, Any]] = None,
                 compresslevel: int = 9, **kwargs):
        """
        初始化gzip外层

        Args:
            target_protocol: 内层协议
            target_options: 内层后端选项
            compresslevel: 压缩级别（1-9）
        """
        super().__init__(**kwargs)
        self.target_protocol = target_protocol
        self.target_options: Dict[str, Any] = dict(target_options or {})
        self.compresslevel = int(compresslevel)
        self._target: Optional[FileSystem] = None

    @property
    def target(self) -> FileSystem:
        """内层后端，第一次使用时解析"""
        if self._target is None:
            self._target = filesystem(self.target_protocol, **self.target_options)
        return self._target

    @staticmethod
    def _uncompressed(stat_info: StatInfo) -> StatInfo:
        if not stat_info.is_file():
            return stat_info
        return StatInfo(
            name=stat_info.name,
            size=None,
            file_type=stat_info.type,
            mtime=stat_info.mtime,
            etag=stat_info.etag,
            compressed_size=stat_info.size,
        )

    def info(self, path: str) -> StatInfo:
        return self._uncompressed(self.target.info(path))

    def ls(self, path: str) -> List[StatInfo]:
        return [self._uncompressed(entry) for entry in self.target.ls(path)]

    def _open_read(self, path: str, byte_range: Optional[ByteRange] = None) -> BinaryIO:
        return _GzipReader(self.target.open_read(path))

    def _open_write(self, path: str) -> FSOutputStream:
        return FSOutputStream(path, commit=lambda buffer: self._compress(path, buffer))

    def _compress(self, path: str, buffer: IO[bytes]) -> None:
        with self.target.open_write(path) as sink:
            with gzip.GzipFile(fileobj=sink, mode="wb", compresslevel=self.compresslevel) as gz:
                shutil.copyfileobj(buffer, gz)
        logger.debug(f"Compressed {path} at level {self.compresslevel}")

    def delete(self, path: str, recursive: bool = False) -> None:
        self.target.delete(path, recursive=recursive)

    def mkdir(self, path: str, create_parents: bool = True) -> None:
        self.target.mkdir(path, create_parents=create_parents)

    def __repr__(self):
        return f"GzipFileSystem(target_protocol={self.target_protocol!r})"
