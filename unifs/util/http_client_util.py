"""
HTTP客户端工具类
带连接池和重试策略的 requests 会话，网络错误统一转换为 BackendConnectionError
"""

import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import BackendConnectionError

logger: logging.Logger = logging.getLogger(__name__)


class HttpClientUtil:
    """HTTP客户端工具类"""

    def __init__(self, max_retries: int = 3, timeout: float = 30,
                 max_connections: int = 100, auth: Optional[Tuple[str, str]] = None,
                 headers: Optional[Dict[str, str]] = None):
        """
        初始化HTTP客户端

        Args:
            max_retries: 最大重试次数（只对幂等请求和5xx生效）
            timeout: 每次请求的超时时间（秒）
            max_connections: 最大连接数
            auth: (用户名, 密码)
            headers: 每次请求附带的请求头
        """
        self.max_retries = max_retries
        self.timeout = timeout
        self.max_connections = max_connections
        self._lock = threading.Lock()

        # 创建Session并配置重试策略
        self.session: requests.Session = requests.Session()
        if auth is not None:
            self.session.auth = tuple(auth)
        if headers:
            self.session.headers.update(headers)

        retry_strategy: Retry = Retry(
            total=max_retries,
            backoff_factor=0.1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=frozenset({"HEAD", "GET", "PUT", "DELETE", "OPTIONS"}),
            raise_on_status=False,
        )

        adapter: HTTPAdapter = HTTPAdapter(
            max_retries=retry_strategy,
            pool_connections=max_connections,
            pool_maxsize=max_connections
        )

        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def request(self, method: str, url: str, **kwargs: Any) -> 'requests.Response':
        """
        发送请求，不检查状态码

        Args:
            method: HTTP方法
            url: 请求URL
            **kwargs: 传给 requests 的其他参数

        Returns:
            requests.Response对象

        Raises:
            BackendConnectionError: 连接失败、超时或认证失败
        """
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} request failed: {url}, error: {e}")
            raise BackendConnectionError(f"{method} {url} failed: {e}") from e

        if response.status_code in (401, 403):
            response.close()
            logger.error(f"{method} request rejected: {url}, status: {response.status_code}")
            raise BackendConnectionError(f"{method} {url} rejected with status {response.status_code}")
        return response

    def head(self, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> 'requests.Response':
        """发送HEAD请求"""
        kwargs.setdefault("allow_redirects", True)
        return self.request("HEAD", url, headers=headers, **kwargs)

    def get(self, url: str, params: Optional[Dict[str, Any]] = None,
            headers: Optional[Dict[str, str]] = None, **kwargs) -> 'requests.Response':
        """
        发送GET请求

        Args:
            url: 请求URL
            params: 查询参数
            headers: 请求头
            **kwargs: 其他参数（如 stream=True）

        Returns:
            requests.Response对象
        """
        return self.request("GET", url, params=params, headers=headers, **kwargs)

    def put(self, url: str, data: Any = None, headers: Optional[Dict[str, str]] = None,
            **kwargs) -> 'requests.Response':
        """
        发送PUT请求

        Args:
            url: 请求URL
            data: 请求体（bytes或文件对象）
            headers: 请求头

        Returns:
            requests.Response对象
        """
        return self.request("PUT", url, data=data, headers=headers, **kwargs)

    def delete(self, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> 'requests.Response':
        """发送DELETE请求"""
        return self.request("DELETE", url, headers=headers, **kwargs)

    def close(self):
        """关闭Session"""
        with self._lock:
            self.session.close()

    def __enter__(self):
        """上下文管理器入口"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """上下文管理器出口"""
        self.close()
