"""
位置解析
将 [outer::]protocol://path[?key=value&...] 形式的字符串拆分为协议层列表

    "s3://bucket/key.csv"              -> [s3 | bucket/key.csv]
    "gzip::memory://data/a.gz"         -> [gzip | ""], [memory | data/a.gz]
    "/tmp/data.csv"                    -> [file | /tmp/data.csv]

列表顺序为由外到内，最内层（真正存储数据的后端）在最后。
"""

import os
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from ..config import DEFAULT_PROTOCOL
from ..exceptions import InvalidLocation

SCHEME_SEPARATOR = "://"
CHAIN_SEPARATOR = "::"

# 路径本身就是完整URL的协议，查询串属于路径
FULL_URL_PROTOCOLS = frozenset({"http", "https"})

_PROTOCOL_PATTERN = r"[A-Za-z][A-Za-z0-9+.\-]*"
_SCHEME_RE = re.compile(rf"^(?P<protocol>{_PROTOCOL_PATTERN})://(?P<rest>.*)$", re.S)
# 外层: "proto::" 或 "proto://path::"，外层路径中不允许出现冒号和方括号（IPv6主机）
_OUTER_RE = re.compile(rf"^(?P<protocol>{_PROTOCOL_PATTERN})(?:://(?P<path>[^:\[]*))?::")
# "s3:" / "s3:/bucket"，单字母（Windows盘符）不算
_BROKEN_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+:(/(?!/).*)?$", re.S)


class Location:
    """单个协议层"""

    def __init__(self, protocol: str, path: str = "", options: Optional[Dict[str, Any]] = None):
        self.protocol: str = protocol
        self.path: str = path
        self.options: Dict[str, Any] = dict(options or {})

    def to_url(self) -> str:
        """序列化为单层位置字符串"""
        return unparse_location([self])

    def __eq__(self, other):
        if not isinstance(other, Location):
            return NotImplemented
        return (self.protocol, self.path, self.options) == (other.protocol, other.path, other.options)

    def __repr__(self):
        return f"Location(protocol={self.protocol!r}, path={self.path!r}, options={self.options!r})"


def _coerce(value: str) -> Any:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit():
        return int(value)
    return value


def _parse_query(query: str) -> Dict[str, Any]:
    return {key: _coerce(value) for key, value in parse_qsl(query, keep_blank_values=True)}


def _split_query(rest: str) -> Tuple[str, Dict[str, Any]]:
    path, sep, query = rest.partition("?")
    return path, (_parse_query(query) if sep else {})


def _parse_layer(segment: str, urlpath: str) -> Location:
    match = _SCHEME_RE.match(segment)
    if match:
        protocol = match.group("protocol").lower()
        if protocol in FULL_URL_PROTOCOLS:
            return Location(protocol, f"{protocol}://{match.group('rest')}")
        path, options = _split_query(match.group("rest"))
        return Location(protocol, path, options)

    if not segment or segment.startswith(":") or _BROKEN_SCHEME_RE.match(segment):
        raise InvalidLocation(f"Malformed location (unterminated scheme separator): {urlpath!r}")

    # 无协议：本地路径，不解析查询串
    return Location(DEFAULT_PROTOCOL, segment)


def parse_location(urlpath, options: Optional[Dict[str, Any]] = None) -> List[Location]:
    """
    解析位置字符串

    Args:
        urlpath: 位置字符串或os.PathLike
        options: 调用方显式传入的选项，合并到最内层并覆盖URL中的同名选项

    Returns:
        协议层列表，最内层在最后

    Raises:
        InvalidLocation: 字符串为空或格式错误
    """
    if isinstance(urlpath, os.PathLike):
        urlpath = os.fspath(urlpath)
    if not isinstance(urlpath, str) or not urlpath.strip():
        raise InvalidLocation(f"Empty location: {urlpath!r}")

    layers: List[Location] = []
    rest = urlpath
    while True:
        match = _OUTER_RE.match(rest)
        if not match:
            break
        path, outer_options = _split_query(match.group("path") or "")
        layers.append(Location(match.group("protocol").lower(), path, outer_options))
        rest = rest[match.end():]

    if layers and not rest:
        raise InvalidLocation(f"Chained location has no inner layer: {urlpath!r}")

    inner = _parse_layer(rest, urlpath)
    if options:
        inner.options.update(options)
    layers.append(inner)
    return layers


def _encode_options(options: Dict[str, Any]) -> str:
    pairs = []
    for key, value in sorted(options.items()):
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif not isinstance(value, (str, int)):
            raise InvalidLocation(f"Option {key!r} of type {type(value).__name__} cannot be embedded in a location")
        pairs.append((key, str(value)))
    return urlencode(pairs)


def unparse_location(layers: List[Location]) -> str:
    """
    将协议层列表序列化为位置字符串，与parse_location互逆

    Args:
        layers: 协议层列表，最内层在最后

    Returns:
        位置字符串
    """
    if not layers:
        raise InvalidLocation("No layers to serialize")

    parts = []
    for index, layer in enumerate(layers):
        innermost = index == len(layers) - 1
        if innermost and layer.protocol in FULL_URL_PROTOCOLS:
            text = layer.path
        elif innermost or layer.path or layer.options:
            text = f"{layer.protocol}{SCHEME_SEPARATOR}{layer.path}"
        else:
            text = layer.protocol
        if layer.options and not (innermost and layer.protocol in FULL_URL_PROTOCOLS):
            text = f"{text}?{_encode_options(layer.options)}"
        parts.append(text)
    return CHAIN_SEPARATOR.join(parts)
