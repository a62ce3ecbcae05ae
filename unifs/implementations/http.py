"""
HTTP(S)文件系统实现
路径就是完整URL；读取使用 HEAD + Range GET，写入使用 PUT，删除使用 DELETE。
目录列举从HTML页面中提取链接，只适用于提供索引页的服务器。
"""

import io
import logging
import re
from email.utils import parsedate_to_datetime
from typing import IO, Any, BinaryIO, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from ..core.file_system import ByteRange, FileSystem
from ..core.fs_output_stream import FSOutputStream
from ..domain.file_type import FileType
from ..domain.stat_info import StatInfo
from ..exceptions import BackendConnectionError, InvalidLocation, PathNotFound, UnsupportedOperation
from ..util.http_client_util import HttpClientUtil

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(r"""href\s*=\s*["']([^"'#?]+)["']""", re.IGNORECASE)


class HTTPFileSystem(FileSystem):
    """HTTP(S)文件系统"""

    protocol = "http"
    random_access = True

    def __init__(self, username: Optional[str] = None, password: Optional[str] = None,
                 headers: Optional[Dict[str, str]] = None, timeout: float = 30,
                 max_retries: int = 3, max_connections: int = 100, **kwargs):
        """
        初始化HTTP文件系统

        Args:
            username: Basic认证用户名
            password: Basic认证密码
            headers: 每次请求附带的请求头
            timeout: 请求超时时间（秒）
            max_retries: 最大重试次数
            max_connections: 连接池大小
        """
        super().__init__(**kwargs)
        auth: Optional[Tuple[str, str]] = None
        if username is not None and not self.anon:
            auth = (username, password or "")
        self.client = HttpClientUtil(
            max_retries=max_retries,
            timeout=timeout,
            max_connections=max_connections,
            auth=auth,
            headers=headers,
        )

    @staticmethod
    def _check_url(path: str) -> str:
        if not path.lower().startswith(("http://", "https://")):
            raise InvalidLocation(f"Not an HTTP(S) URL: {path!r}")
        return path

    @staticmethod
    def _parse_mtime(value: Optional[str]) -> Optional[float]:
        if not value:
            return None
        try:
            return parsedate_to_datetime(value).timestamp()
        except (TypeError, ValueError):
            return None

    def _raise_for_status(self, response: Any, url: str) -> None:
        if response.status_code in (404, 410):
            response.close()
            raise PathNotFound(url)
        if response.status_code >= 400:
            response.close()
            raise BackendConnectionError(f"Request to {url} failed with status {response.status_code}")

    def info(self, path: str) -> StatInfo:
        url = self._check_url(path)
        response = self.client.head(url)
        self._raise_for_status(response, url)

        headers = response.headers
        size: Optional[int] = None
        if "Content-Length" in headers and "Content-Encoding" not in headers:
            size = int(headers["Content-Length"])
        file_type = FileType.DIRECTORY if urlparse(url).path.endswith("/") else FileType.FILE
        return StatInfo(
            name=url,
            size=size if file_type == FileType.FILE else 0,
            file_type=file_type,
            mtime=self._parse_mtime(headers.get("Last-Modified")),
            etag=headers.get("ETag"),
            mimetype=headers.get("Content-Type"),
        )

    def ls(self, path: str) -> List[StatInfo]:
        url = self._check_url(path)
        response = self.client.get(url)
        self._raise_for_status(response, url)

        content_type = response.headers.get("Content-Type", "")
        if "html" not in content_type:
            response.close()
            return [self.info(url)]

        base = url if url.endswith("/") else url + "/"
        seen = set()
        entries: List[StatInfo] = []
        for href in _HREF_RE.findall(response.text):
            link = urljoin(base, href)
            # 只保留当前目录下一层的链接
            if not link.startswith(base) or link == base:
                continue
            relative = link[len(base):]
            if "/" in relative.rstrip("/") or link in seen:
                continue
            seen.add(link)
            is_dir = link.endswith("/")
            entries.append(StatInfo(
                name=link,
                size=0 if is_dir else None,
                file_type=FileType.DIRECTORY if is_dir else FileType.FILE,
            ))
        return sorted(entries, key=lambda e: e.name)

    def _open_read(self, path: str, byte_range: Optional[ByteRange] = None) -> BinaryIO:
        url = self._check_url(path)
        if byte_range is None:
            response = self.client.get(url, stream=True)
            self._raise_for_status(response, url)
            response.raw.decode_content = True
            return response.raw

        start, end = byte_range
        if end <= start:
            return io.BytesIO(b"")
        response = self.client.get(url, headers={"Range": f"bytes={start}-{end - 1}"})
        if response.status_code == 416:
            # 起点超出文件末尾
            response.close()
            return io.BytesIO(b"")
        self._raise_for_status(response, url)
        if response.status_code == 200:
            logger.warning(f"Server ignored Range header, slicing full response: {url}")
            return io.BytesIO(response.content[start:end])
        return io.BytesIO(response.content)

    def _open_write(self, path: str) -> FSOutputStream:
        url = self._check_url(path)
        return FSOutputStream(url, commit=lambda buffer: self._put(url, buffer))

    def _put(self, url: str, buffer: IO[bytes]) -> None:
        response = self.client.put(url, data=buffer)
        self._raise_for_status(response, url)
        response.close()
        logger.info(f"Uploaded: {url}")

    def delete(self, path: str, recursive: bool = False) -> None:
        url = self._check_url(path)
        response = self.client.delete(url)
        self._raise_for_status(response, url)
        response.close()
        logger.info(f"Deleted: {url}")

    def mkdir(self, path: str, create_parents: bool = True) -> None:
        raise UnsupportedOperation(f"HTTP does not support creating directories: {path}")

    def close(self):
        """关闭底层连接池"""
        self.client.close()
