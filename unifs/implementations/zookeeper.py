"""
ZooKeeper文件系统实现
把znode树当作文件系统：有子节点或数据为空的节点视为目录，其余视为文件。
znode只能整体读写，因此不支持范围读取，读取器会退化为顺序模式。
"""

import io
import logging
from typing import IO, BinaryIO, List, Optional

from ..core.file_system import ByteRange, FileSystem
from ..core.fs_output_stream import FSOutputStream
from ..domain.file_type import FileType
from ..domain.stat_info import StatInfo
from ..util.zk_util import ZkUtil

logger = logging.getLogger(__name__)


class ZooKeeperFileSystem(FileSystem):
    """ZooKeeper文件系统"""

    protocol = "zk"
    random_access = False

    def __init__(self, hosts: str = "localhost:2181", timeout: float = 30,
                 username: Optional[str] = None, password: Optional[str] = None, **kwargs):
        """
        初始化ZooKeeper文件系统，连接在第一次操作时建立

        Args:
            hosts: ZooKeeper服务器地址，多个地址用逗号分隔
            timeout: 连接与请求超时时间（秒）
            username: digest认证用户名
            password: digest认证密码
        """
        super().__init__(**kwargs)
        auth_data = None
        if username is not None and not self.anon:
            auth_data = [("digest", f"{username}:{password or ''}")]
        self.zk_util = ZkUtil(hosts=hosts, timeout=timeout, auth_data=auth_data)

    @staticmethod
    def _normalize(path: str) -> str:
        if path.startswith("zk://"):
            path = path[len("zk://"):]
        return "/" + path.strip("/")

    @staticmethod
    def _stat_info(path: str, stat) -> StatInfo:
        # 空数据的叶子节点无法与空目录区分，按目录处理
        is_dir = stat.numChildren > 0 or stat.dataLength == 0
        return StatInfo(
            name=path,
            size=0 if is_dir else stat.dataLength,
            file_type=FileType.DIRECTORY if is_dir else FileType.FILE,
            mtime=stat.mtime / 1000,
            etag=str(stat.version),
            num_children=stat.numChildren,
        )

    def info(self, path: str) -> StatInfo:
        path = self._normalize(path)
        _, stat = self.zk_util.get(path)
        return self._stat_info(path, stat)

    def ls(self, path: str) -> List[StatInfo]:
        path = self._normalize(path)
        _, stat = self.zk_util.get(path)
        if stat.numChildren == 0 and stat.dataLength > 0:
            return [self._stat_info(path, stat)]

        entries = []
        for child in sorted(self.zk_util.get_children(path)):
            child_path = f"{path.rstrip('/')}/{child}"
            child_stat = self.zk_util.exists(child_path)
            if child_stat is None:
                # 列举过程中被删除
                continue
            entries.append(self._stat_info(child_path, child_stat))
        return entries

    def _open_read(self, path: str, byte_range: Optional[ByteRange] = None) -> BinaryIO:
        path = self._normalize(path)
        data, _ = self.zk_util.get(path)
        return io.BytesIO(data or b"")

    def _open_write(self, path: str) -> FSOutputStream:
        path = self._normalize(path)
        return FSOutputStream(path, commit=lambda buffer: self._store(path, buffer))

    def _store(self, path: str, buffer: IO[bytes]) -> None:
        data = buffer.read()
        if self.zk_util.exists(path) is not None:
            self.zk_util.set(path, data)
        else:
            self.zk_util.create(path, data, makepath=True)
        logger.debug(f"Stored {len(data)} bytes at znode {path}")

    def delete(self, path: str, recursive: bool = False) -> None:
        path = self._normalize(path)
        self.zk_util.delete(path, recursive=recursive)
        logger.info(f"Deleted znode: {path}")

    def mkdir(self, path: str, create_parents: bool = True) -> None:
        path = self._normalize(path)
        self.zk_util.create(path, b"", makepath=create_parents)
        logger.info(f"Created znode: {path}")

    def close(self):
        """断开ZooKeeper连接"""
        self.zk_util.disconnect()
