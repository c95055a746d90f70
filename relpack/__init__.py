"""
relpack - 可复现的发布归档打包工具

将文件与构建制品打包为 tar.gz 或 zip 归档，自动补齐目录记录，
并通过内容寻址缓存避免重复构建。
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .build import ArchiveFormat, ArchiveRequest, Builder, DirectoryCache, build_archive

__all__ = [
    "ArchiveFormat",
    "ArchiveRequest",
    "Builder",
    "DirectoryCache",
    "build_archive",
    "__version__",
]
