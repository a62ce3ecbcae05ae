"""
内存文件系统实现
数据保存在实例的字典中，主要用于测试和临时数据
"""

import hashlib
import io
import logging
import threading
import time
from typing import IO, BinaryIO, Dict, List, Optional, Set, Tuple

from ..core.file_system import ByteRange, FileSystem
from ..core.fs_output_stream import FSOutputStream
from ..domain.file_type import FileType
from ..domain.stat_info import StatInfo
from ..exceptions import PathNotFound

logger = logging.getLogger(__name__)


class MemoryFileSystem(FileSystem):
    """内存文件系统"""

    protocol = "memory"
    random_access = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # 路径 -> (内容, 修改时间)
        self._files: Dict[str, Tuple[bytes, float]] = {}
        self._dirs: Set[str] = {"/"}
        self._lock = threading.RLock()

    @staticmethod
    def _normalize(path: str) -> str:
        if path.startswith("memory://"):
            path = path[len("memory://"):]
        return "/" + path.strip("/")

    @staticmethod
    def _parent(path: str) -> str:
        return path.rsplit("/", 1)[0] or "/"

    def _file_info(self, path: str) -> StatInfo:
        data, mtime = self._files[path]
        return StatInfo(
            name=path,
            size=len(data),
            file_type=FileType.FILE,
            mtime=mtime,
            etag=hashlib.md5(data).hexdigest(),
        )

    def info(self, path: str) -> StatInfo:
        path = self._normalize(path)
        with self._lock:
            if path in self._files:
                return self._file_info(path)
            if path in self._dirs:
                return StatInfo(name=path, size=0, file_type=FileType.DIRECTORY)
        raise PathNotFound(path)

    def ls(self, path: str) -> List[StatInfo]:
        path = self._normalize(path)
        with self._lock:
            if path in self._files:
                return [self._file_info(path)]
            if path not in self._dirs:
                raise PathNotFound(path)

            entries = [
                StatInfo(name=d, size=0, file_type=FileType.DIRECTORY)
                for d in self._dirs if d != "/" and self._parent(d) == path
            ]
            entries.extend(self._file_info(f) for f in self._files if self._parent(f) == path)
        return sorted(entries, key=lambda e: e.name)

    def _open_read(self, path: str, byte_range: Optional[ByteRange] = None) -> BinaryIO:
        path = self._normalize(path)
        with self._lock:
            if path not in self._files:
                raise PathNotFound(path)
            data = self._files[path][0]
        if byte_range is not None:
            start, end = byte_range
            data = data[start:end]
        return io.BytesIO(data)

    def _open_write(self, path: str) -> FSOutputStream:
        path = self._normalize(path)
        if path == "/":
            raise IsADirectoryError(f"Is a directory: {path}")
        return FSOutputStream(path, commit=lambda buffer: self._store(path, buffer))

    def _store(self, path: str, buffer: IO[bytes]) -> None:
        data = buffer.read()
        with self._lock:
            if path in self._dirs:
                raise IsADirectoryError(f"Is a directory: {path}")
            self._add_parents(path)
            self._files[path] = (data, time.time())
        logger.debug(f"Stored {len(data)} bytes at {path}")

    def _add_parents(self, path: str) -> None:
        parent = self._parent(path)
        while parent not in self._dirs:
            if parent in self._files:
                raise NotADirectoryError(f"Not a directory: {parent}")
            self._dirs.add(parent)
            parent = self._parent(parent)

    def delete(self, path: str, recursive: bool = False) -> None:
        path = self._normalize(path)
        with self._lock:
            if path in self._files:
                del self._files[path]
            elif path in self._dirs:
                prefix = path.rstrip("/") + "/"
                children_files = [f for f in self._files if f.startswith(prefix)]
                children_dirs = [d for d in self._dirs if d != path and d.startswith(prefix)]
                if (children_files or children_dirs) and not recursive:
                    raise OSError(f"Directory not empty: {path}")
                for f in children_files:
                    del self._files[f]
                self._dirs.difference_update(children_dirs)
                if path != "/":
                    self._dirs.discard(path)
            else:
                raise PathNotFound(path)
        logger.info(f"Deleted: {path}")

    def mkdir(self, path: str, create_parents: bool = True) -> None:
        path = self._normalize(path)
        with self._lock:
            if path in self._dirs or path in self._files:
                raise FileExistsError(f"Path already exists: {path}")
            parent = self._parent(path)
            if create_parents:
                self._add_parents(path)
            elif parent not in self._dirs:
                raise PathNotFound(parent)
            self._dirs.add(path)
        logger.info(f"Created directory: {path}")
