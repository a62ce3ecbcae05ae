"""
unifs - 统一文件系统抽象
通过 [outer::]protocol://path 形式的位置字符串访问本地、内存、HTTP(S)、ZooKeeper 等后端
"""

__version__ = "1.0.0"
__author__ = "unifs Team"

from .config import get_conf, reset_conf, set_conf
from .core.api import filesystem, open, transaction, url_to_fs
from .core.file_system import FileSystem
from .core.instance_cache import clear_instance_cache
from .core.location import Location, parse_location, unparse_location
from .core.open_file import OpenFile
from .core.registry import get_filesystem_class, register_implementation, registered_protocols
from .core.transaction import Transaction
from .domain.cache_type import CacheType
from .domain.file_type import FileType
from .domain.stat_info import StatInfo
from .domain.transaction_state import TransactionState
from .util.log_util import setup_logging
from .exceptions import (BackendConnectionError, InvalidLocation, PathNotFound,
                         TransactionAborted, UnifsError, UnknownProtocol,
                         UnsupportedOperation)

__all__ = [
    'filesystem',
    'open',
    'transaction',
    'url_to_fs',
    'FileSystem',
    'OpenFile',
    'Transaction',
    'Location',
    'parse_location',
    'unparse_location',
    'get_filesystem_class',
    'register_implementation',
    'registered_protocols',
    'clear_instance_cache',
    'set_conf',
    'get_conf',
    'reset_conf',
    'StatInfo',
    'FileType',
    'CacheType',
    'TransactionState',
    'UnifsError',
    'InvalidLocation',
    'UnknownProtocol',
    'PathNotFound',
    'UnsupportedOperation',
    'BackendConnectionError',
    'TransactionAborted',
    'setup_logging'
]
