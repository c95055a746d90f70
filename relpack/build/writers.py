"""
归档写入器工厂

tar 与 zip 写入器对外提供统一的 set_root / write_file / finish 接口，
构建步骤只依赖这个接口。
"""

from typing import BinaryIO, List, Protocol

from .request import ArchiveFormat, FormatKind
from .tar_builder import TarBuilder
from .zip_builder import ZipBuilder


class ArchiveWriter(Protocol):
    """归档写入器协议"""

    def set_root(self, root: str) -> None:
        ...

    def write_file(self, sub_path: str, fileobj: BinaryIO) -> object:
        ...

    def finish(self) -> None:
        ...

    def close(self) -> None:
        ...


class ArchiveWriterFactory:
    """归档写入器工厂"""

    @staticmethod
    def create_writer(archive_format: ArchiveFormat, sink: BinaryIO) -> ArchiveWriter:
        """按格式创建写入器

        Raises:
            ValueError: 不支持的格式
        """
        if archive_format.kind == FormatKind.TAR_GZ:
            return TarBuilder(sink, level=archive_format.level)
        elif archive_format.kind == FormatKind.ZIP:
            return ZipBuilder(sink, level=archive_format.level)
        else:
            raise ValueError(f"不支持的归档格式: {archive_format.kind}")

    @staticmethod
    def get_supported_formats() -> List[FormatKind]:
        return [FormatKind.TAR_GZ, FormatKind.ZIP]
