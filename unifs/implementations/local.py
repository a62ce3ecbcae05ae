"""
本地文件系统实现
写入先进入暂存缓冲区，关闭时写到同目录下的临时文件再 os.replace 到目标路径，
目标路径上不会出现写了一半的文件。
"""

import io
import logging
import os
import shutil
import stat as stat_mod
import tempfile
from typing import IO, BinaryIO, List, Optional

from ..core.file_system import ByteRange, FileSystem
from ..core.fs_output_stream import FSOutputStream
from ..domain.file_type import FileType
from ..domain.stat_info import StatInfo
from ..exceptions import PathNotFound

logger = logging.getLogger(__name__)


class LocalFileSystem(FileSystem):
    """本地文件系统"""

    protocol = "file"
    random_access = True

    def __init__(self, auto_mkdir: bool = True, **kwargs):
        """
        初始化本地文件系统

        Args:
            auto_mkdir: 写入时自动创建父目录
        """
        super().__init__(**kwargs)
        self.auto_mkdir = auto_mkdir

    def _normalize(self, path: str) -> str:
        if path.startswith("file://"):
            path = path[len("file://"):]
        elif path.startswith("local://"):
            path = path[len("local://"):]
        path = os.path.abspath(os.path.expanduser(path))
        return path.replace(os.sep, "/") if os.sep != "/" else path

    def _stat_info(self, path: str, st: os.stat_result) -> StatInfo:
        if stat_mod.S_ISDIR(st.st_mode):
            file_type = FileType.DIRECTORY
        elif stat_mod.S_ISREG(st.st_mode):
            file_type = FileType.FILE
        else:
            file_type = FileType.OTHER
        return StatInfo(
            name=path,
            size=st.st_size if file_type != FileType.DIRECTORY else 0,
            file_type=file_type,
            mtime=st.st_mtime,
            mode=st.st_mode,
        )

    def info(self, path: str) -> StatInfo:
        path = self._normalize(path)
        try:
            st = os.stat(path)
        except FileNotFoundError as e:
            raise PathNotFound(path) from e
        return self._stat_info(path, st)

    def ls(self, path: str) -> List[StatInfo]:
        path = self._normalize(path)
        if not os.path.exists(path):
            raise PathNotFound(path)
        if not os.path.isdir(path):
            return [self.info(path)]

        entries = []
        with os.scandir(path) as it:
            for entry in it:
                try:
                    entries.append(self._stat_info(f"{path.rstrip('/')}/{entry.name}", entry.stat()))
                except FileNotFoundError:
                    # 列举过程中被删除
                    continue
        return sorted(entries, key=lambda e: e.name)

    def _open_read(self, path: str, byte_range: Optional[ByteRange] = None) -> BinaryIO:
        path = self._normalize(path)
        try:
            f = open(path, "rb")
        except FileNotFoundError as e:
            raise PathNotFound(path) from e
        if byte_range is None:
            return f
        start, end = byte_range
        with f:
            f.seek(start)
            return io.BytesIO(f.read(end - start))

    def _open_write(self, path: str) -> FSOutputStream:
        path = self._normalize(path)
        return FSOutputStream(path, commit=lambda buffer: self._replace(path, buffer))

    def _replace(self, path: str, buffer: IO[bytes]) -> None:
        parent = os.path.dirname(path)
        if self.auto_mkdir:
            os.makedirs(parent, exist_ok=True)
        elif not os.path.isdir(parent):
            raise PathNotFound(parent)

        fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".unifs-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp:
                shutil.copyfileobj(buffer, tmp)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Wrote {path}")

    def delete(self, path: str, recursive: bool = False) -> None:
        path = self._normalize(path)
        if not os.path.lexists(path):
            raise PathNotFound(path)
        if os.path.isdir(path) and not os.path.islink(path):
            if recursive:
                shutil.rmtree(path)
            else:
                os.rmdir(path)
        else:
            os.remove(path)
        logger.info(f"Deleted: {path}")

    def mkdir(self, path: str, create_parents: bool = True) -> None:
        path = self._normalize(path)
        if os.path.exists(path):
            raise FileExistsError(f"Path already exists: {path}")
        try:
            if create_parents:
                os.makedirs(path)
            else:
                os.mkdir(path)
        except FileNotFoundError as e:
            raise PathNotFound(os.path.dirname(path)) from e
        logger.info(f"Created directory: {path}")
