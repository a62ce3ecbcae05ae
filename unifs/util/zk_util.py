"""
ZooKeeper工具类
封装 kazoo 客户端：惰性连接、线程安全的连接管理，以及异常转换
"""

import logging
import threading
from typing import Any, List, Optional, Tuple

from kazoo.client import KazooClient
from kazoo.exceptions import (ConnectionLoss, NodeExistsError, NoNodeError,
                              NotEmptyError, SessionExpiredError)
from kazoo.handlers.threading import KazooTimeoutError

from ..exceptions import BackendConnectionError, PathNotFound

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (ConnectionLoss, SessionExpiredError, KazooTimeoutError)


class ZkUtil:
    """ZooKeeper工具类"""

    def __init__(self, hosts: str = "localhost:2181", timeout: float = 30,
                 auth_data: Optional[List[Tuple[str, str]]] = None):
        """
        初始化ZooKeeper工具

        Args:
            hosts: ZooKeeper服务器地址
            timeout: 连接与请求超时时间（秒）
            auth_data: 认证信息 [(scheme, credential)]
        """
        self.hosts = hosts
        self.timeout = timeout
        self.auth_data = auth_data
        self.zk: Optional[KazooClient] = None
        self._lock = threading.Lock()

    def connect(self) -> KazooClient:
        """连接ZooKeeper（已连接时直接返回）"""
        with self._lock:
            if self.zk is not None:
                return self.zk
            client = KazooClient(hosts=self.hosts, timeout=self.timeout, auth_data=self.auth_data)
            try:
                client.start(timeout=self.timeout)
            except _CONNECTION_ERRORS as e:
                logger.error(f"Failed to connect to ZooKeeper: {self.hosts}, error: {e}")
                raise BackendConnectionError(f"Cannot connect to ZooKeeper at {self.hosts}: {e}") from e
            self.zk = client
            logger.info(f"Connected to ZooKeeper: {self.hosts}")
            return client

    def disconnect(self):
        """断开ZooKeeper连接"""
        with self._lock:
            if self.zk is not None:
                self.zk.stop()
                self.zk.close()
                self.zk = None
                logger.info("Disconnected from ZooKeeper")

    def _call(self, method: str, path: str, *args: Any, **kwargs: Any) -> Any:
        client = self.connect()
        try:
            return getattr(client, method)(path, *args, **kwargs)
        except NoNodeError as e:
            raise PathNotFound(path) from e
        except _CONNECTION_ERRORS as e:
            logger.error(f"ZooKeeper {method} failed: {path}, error: {e}")
            raise BackendConnectionError(f"ZooKeeper {method} {path} failed: {e}") from e

    def exists(self, path: str) -> Any:
        """返回节点的ZnodeStat，不存在时返回None"""
        return self._call("exists", path)

    def get(self, path: str) -> Tuple[bytes, Any]:
        """读取节点数据与状态"""
        return self._call("get", path)

    def get_children(self, path: str) -> List[str]:
        """列出子节点"""
        return self._call("get_children", path)

    def set(self, path: str, data: bytes) -> Any:
        """写入已存在节点的数据"""
        return self._call("set", path, data)

    def create(self, path: str, data: bytes = b"", makepath: bool = False) -> str:
        """
        创建节点

        Raises:
            FileExistsError: 节点已存在
        """
        try:
            return self._call("create", path, data, makepath=makepath)
        except NodeExistsError as e:
            raise FileExistsError(f"Node already exists: {path}") from e

    def delete(self, path: str, recursive: bool = False) -> None:
        """
        删除节点

        Raises:
            OSError: 非递归删除有子节点的节点
        """
        try:
            self._call("delete", path, recursive=recursive)
        except NotEmptyError as e:
            raise OSError(f"Directory not empty: {path}") from e

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
