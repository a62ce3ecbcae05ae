"""
核心模块 - 能力契约、读写流、事务与分发
"""

from .file_system import FileSystem
from .fs_input_stream import FSInputStream
from .fs_output_stream import FSOutputStream
from .transaction import StagedWrite, Transaction, current_transaction
from .location import Location, parse_location, unparse_location
from .registry import get_filesystem_class, register_implementation, registered_protocols
from .instance_cache import InstanceCache, clear_instance_cache, default_cache
from .open_file import OpenFile
from .api import filesystem, open, transaction, url_to_fs

__all__ = [
    'FileSystem',
    'FSInputStream',
    'FSOutputStream',
    'StagedWrite',
    'Transaction',
    'current_transaction',
    'Location',
    'parse_location',
    'unparse_location',
    'get_filesystem_class',
    'register_implementation',
    'registered_protocols',
    'InstanceCache',
    'clear_instance_cache',
    'default_cache',
    'OpenFile',
    'filesystem',
    'open',
    'transaction',
    'url_to_fs',
]
