"""
文件状态信息类
info/ls 返回的元数据记录
"""

from typing import Any, Dict, Optional
from .file_type import FileType


class StatInfo:
    """文件状态信息类"""

    def __init__(self, name: str = "", size: Optional[int] = 0,
                 file_type: FileType = FileType.FILE, mtime: Optional[float] = None,
                 etag: Optional[str] = None, **extra: Any):
        """
        初始化文件状态信息

        Args:
            name: 完整路径（不含协议前缀）
            size: 文件大小，后端无法得知时为None
            file_type: 文件类型
            mtime: 修改时间（POSIX时间戳）
            etag: 内容版本标识
            **extra: 后端特有字段
        """
        self.name: str = name
        self.size: Optional[int] = size
        self.type: FileType = FileType.get(file_type)
        self.mtime: Optional[float] = mtime
        self.etag: Optional[str] = etag
        self.extra: Dict[str, Any] = extra

    def get_name(self) -> str:
        """获取完整路径"""
        return self.name

    def get_size(self) -> Optional[int]:
        """获取文件大小"""
        return self.size

    def get_type(self) -> FileType:
        """获取文件类型"""
        return self.type

    def get_mtime(self) -> Optional[float]:
        """获取修改时间"""
        return self.mtime

    def is_file(self) -> bool:
        """判断是否为文件"""
        return self.type == FileType.FILE

    def is_directory(self) -> bool:
        """判断是否为目录"""
        return self.type == FileType.DIRECTORY

    @property
    def basename(self) -> str:
        """路径最后一段"""
        return self.name.rstrip("/").rsplit("/", 1)[-1]

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典，必填字段 name/size/type 始终存在"""
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "name": self.name,
            "size": self.size,
            "type": self.type.value,
        })
        if self.mtime is not None:
            data["modified_time"] = self.mtime
        if self.etag is not None:
            data["etag"] = self.etag
        return data

    def __getitem__(self, key: str) -> Any:
        return self.to_dict()[key]

    def __eq__(self, other):
        if not isinstance(other, StatInfo):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __str__(self):
        return f"StatInfo{{name='{self.name}', size={self.size}, type={self.type}, mtime={self.mtime}, etag={self.etag}}}"

    def __repr__(self):
        return self.__str__()
