"""构建服务模块

提供归档构建的核心功能。
"""

from .artifact import Artifact, ArtifactKind, Linkage
from .build_context import BuildContext, BuildError
from .builder import Builder, BuildResult, build_archive
from .cache import CacheError, ContentCache, DirectoryCache, Fingerprint
from .request import (
    AddArtifactOptions,
    ArchiveFormat,
    ArchiveRequest,
    ArtifactDirectory,
    FileEntry,
    FormatKind,
    SourceFileError,
)
from .tar_builder import TarBuilder
from .writers import ArchiveWriterFactory
from .zip_builder import (
    DosTimestampError,
    NameTooLongError,
    ZipBuilder,
    ZipFormatError,
)

__all__ = [
    # 主构建器
    "Builder",
    "BuildResult",
    "BuildContext",
    "BuildError",
    "build_archive",

    # 请求
    "ArchiveRequest",
    "ArchiveFormat",
    "FormatKind",
    "FileEntry",
    "AddArtifactOptions",
    "ArtifactDirectory",
    "Artifact",
    "ArtifactKind",
    "Linkage",
    "SourceFileError",

    # 缓存
    "ContentCache",
    "DirectoryCache",
    "Fingerprint",
    "CacheError",

    # 写入器
    "ArchiveWriterFactory",
    "TarBuilder",
    "ZipBuilder",
    "ZipFormatError",
    "NameTooLongError",
    "DosTimestampError",
]
