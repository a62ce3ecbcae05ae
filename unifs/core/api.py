"""
分发入口
位置字符串 -> 协议层 -> 注册表 + 实例缓存 -> 后端实例
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import get_conf
from ..exceptions import InvalidLocation
from .file_system import FileSystem
from .instance_cache import default_cache
from .location import Location, parse_location
from .open_file import OpenFile
from .registry import get_filesystem_class
from .transaction import Transaction

logger = logging.getLogger(__name__)


def filesystem(protocol: str, **storage_options: Any) -> FileSystem:
    """
    获取协议对应的后端实例（经过实例缓存）

    Args:
        protocol: 协议名
        **storage_options: 后端选项

    Returns:
        后端实例
    """
    options = get_conf(protocol)
    options.update(storage_options)
    return default_cache.get_instance(protocol, options)


def _split_layer_options(layers: List[Location], kwargs: Dict[str, Any]) -> Tuple[Dict[str, Dict[str, Any]], Dict[str, Any]]:
    """调用方选项中以协议名为键、值为字典的条目作用于对应层，其余作用于最内层"""
    if len(layers) == 1:
        return {}, dict(kwargs)
    protocols = {layer.protocol for layer in layers}
    per_layer: Dict[str, Dict[str, Any]] = {}
    inner: Dict[str, Any] = {}
    for key, value in kwargs.items():
        if key in protocols and isinstance(value, dict):
            per_layer[key] = value
        else:
            inner[key] = value
    return per_layer, inner


def resolve_layers(urlpath: str, **kwargs: Any) -> Tuple[str, Dict[str, Any], str]:
    """
    将位置字符串解析为最外层的 (协议, 选项) 和最内层路径

    外层的选项中带有 target_protocol / target_options，描述它包装的内层。
    选项优先级（低 -> 高）：协议默认配置 < URL查询参数 < 调用方参数
    """
    layers = parse_location(urlpath)
    per_layer, inner_kwargs = _split_layer_options(layers, kwargs)

    inner = layers[-1]
    protocol = inner.protocol
    options = get_conf(protocol)
    options.update(inner.options)
    options.update(per_layer.get(protocol, {}))
    options.update(inner_kwargs)

    for layer in reversed(layers[:-1]):
        factory = get_filesystem_class(layer.protocol)
        if not getattr(factory, "wraps_target", False):
            raise InvalidLocation(f"Protocol {layer.protocol!r} cannot wrap another protocol in {urlpath!r}")
        outer_options = get_conf(layer.protocol)
        outer_options.update(layer.options)
        outer_options.update(per_layer.get(layer.protocol, {}))
        outer_options["target_protocol"] = protocol
        outer_options["target_options"] = options
        protocol, options = layer.protocol, outer_options

    return protocol, options, inner.path


def url_to_fs(urlpath: str, **kwargs: Any) -> Tuple[FileSystem, str]:
    """
    解析位置字符串得到后端实例与路径

    Args:
        urlpath: 位置字符串
        **kwargs: 调用方选项（链式协议可用 协议名={...} 指定某一层）

    Returns:
        (后端实例, 后端路径)

    Raises:
        InvalidLocation: 位置字符串格式错误
        UnknownProtocol: 协议未注册
    """
    protocol, options, path = resolve_layers(urlpath, **kwargs)
    fs = default_cache.get_instance(protocol, options)
    return fs, path


def open(urlpath: str, mode: str = "rb", compression: Optional[str] = None,
         encoding: Optional[str] = None, errors: Optional[str] = None,
         newline: Optional[str] = None, **kwargs: Any) -> OpenFile:
    """
    创建文件句柄门面（不做I/O），配合 with 使用

    Examples:
        >>> with open("memory://tmp/a.txt", "w") as f:
        ...     f.write("data")
    """
    return OpenFile(urlpath, mode=mode, compression=compression, encoding=encoding,
                    errors=errors, newline=newline, **kwargs)


def transaction(target: Union[str, FileSystem], **kwargs: Any) -> Transaction:
    """
    为后端实例或位置字符串对应的后端创建事务

    Args:
        target: 后端实例或位置字符串
        **kwargs: 位置字符串对应的后端选项
    """
    if isinstance(target, FileSystem):
        return target.transaction()
    fs, _ = url_to_fs(target, **kwargs)
    return fs.transaction()
