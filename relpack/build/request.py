"""
归档请求

ArchiveRequest 记录要打包的普通文件与制品，构建时由构建管道一次性消费。
文件在添加时不检查是否存在，直到构建开始解析时才访问文件系统。
"""

import os
import stat as stat_module
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..utils.paths import archive_join
from .artifact import Artifact, SourcePath, resolve_source
from .build_context import BuildError


class SourceFileError(BuildError):
    """输入文件缺失、不可读或不是普通文件"""
    pass


class FormatKind(str, Enum):
    """归档格式"""
    TAR_GZ = "tar_gz"
    ZIP = "zip"


@dataclass(frozen=True)
class ArchiveFormat:
    """归档格式与压缩级别"""
    kind: FormatKind = FormatKind.TAR_GZ
    level: int = 9

    def __post_init__(self):
        if not 0 <= self.level <= 9:
            raise ValueError(f"压缩级别必须在 0-9 之间: {self.level}")

    @classmethod
    def tar_gz(cls, level: int = 9) -> 'ArchiveFormat':
        return cls(FormatKind.TAR_GZ, level)

    @classmethod
    def zip(cls, level: int = 6) -> 'ArchiveFormat':
        return cls(FormatKind.ZIP, level)

    def extension(self) -> str:
        if self.kind == FormatKind.ZIP:
            return ".zip"
        return ".tar.gz"


class ArtifactDirectory(str, Enum):
    """制品附带文件的目录策略；除这两个值外也可以直接给出子目录字符串"""
    DEFAULT = "default"
    DISABLED = "disabled"


DirectoryOption = Union[ArtifactDirectory, str]


@dataclass
class AddArtifactOptions:
    bin_dir: DirectoryOption = ArtifactDirectory.DEFAULT
    pdb_dir: DirectoryOption = ArtifactDirectory.DEFAULT
    implib_dir: DirectoryOption = ArtifactDirectory.DEFAULT
    header_dir: DirectoryOption = ArtifactDirectory.DEFAULT


@dataclass
class ResolvedFile:
    """解析后的输入文件"""
    path: Path
    subdir: str
    subpath: str  # 归档内相对 root 的路径
    size: int
    mtime: int
    mode: int


@dataclass
class FileEntry:
    """单个输入文件

    source 为 None 表示制品不会生成该文件，但调用方仍显式要求打包它；
    此时在构建解析阶段报错。
    """
    subdir: str
    source: Optional[SourcePath]
    label: str = ""

    def resolve(self) -> ResolvedFile:
        """解析为具体路径并读取 stat

        Raises:
            SourceFileError: 文件不存在、不可读或不是普通文件
        """
        if self.source is None:
            raise SourceFileError(f"输入文件未生成: {self.label}")

        path = resolve_source(self.source)
        try:
            st = path.stat()
        except OSError as e:
            raise SourceFileError(f"无法访问输入文件 {path}: {e}") from e

        if not stat_module.S_ISREG(st.st_mode):
            raise SourceFileError(f"输入路径不是普通文件: {path}")
        if not os.access(path, os.R_OK):
            raise SourceFileError(f"输入文件不可读: {path}")

        return ResolvedFile(
            path=path,
            subdir=self.subdir,
            subpath=archive_join(self.subdir, path.name),
            size=st.st_size,
            mtime=st.st_mtime_ns // 1_000_000_000,
            mode=stat_module.S_IMODE(st.st_mode),
        )


@dataclass
class ArtifactEntry:
    """一个制品派生出的最多四个输入文件"""
    artifact: Artifact
    bin: Optional[FileEntry] = None
    pdb: Optional[FileEntry] = None
    implib: Optional[FileEntry] = None
    header: Optional[FileEntry] = None

    def files(self) -> List[FileEntry]:
        return [f for f in (self.bin, self.pdb, self.implib, self.header) if f is not None]


def _artifact_file(option: DirectoryOption, default_subdir: Optional[str],
                   source: Optional[SourcePath], label: str) -> Optional[FileEntry]:
    """按目录策略生成 FileEntry

    default_subdir 为 None 表示默认情况下该制品不产出此文件。
    """
    if isinstance(option, ArtifactDirectory):
        if option == ArtifactDirectory.DISABLED or default_subdir is None:
            return None
        return FileEntry(subdir=default_subdir, source=source, label=label)

    return FileEntry(subdir=archive_join(option), source=source, label=label)


class ArchiveRequest:
    """归档请求"""

    def __init__(self, name: str, format: Optional[ArchiveFormat] = None):
        if not name or '/' in name or '\\' in name or name in ('.', '..'):
            raise ValueError(f"归档名称无效: {name!r}")
        self.name = name
        self.format = format or ArchiveFormat()
        self.input_files: List[FileEntry] = []
        self.input_artifacts: List[ArtifactEntry] = []

    def add_file(self, source: SourcePath, subdir: str = "") -> FileEntry:
        """添加文件，保留原文件名放入 subdir（空字符串表示归档根目录）"""
        entry = FileEntry(subdir=archive_join(subdir), source=source, label=str(source))
        self.input_files.append(entry)
        return entry

    def add_artifact(self, artifact: Artifact, options: Optional[AddArtifactOptions] = None) -> ArtifactEntry:
        """添加制品，按制品类型推导各附带文件的目录"""
        options = options or AddArtifactOptions()

        entry = ArtifactEntry(
            artifact=artifact,
            bin=_artifact_file(
                options.bin_dir,
                artifact.default_bin_subdir(),
                artifact.bin,
                f"{artifact.name} (bin)",
            ),
            pdb=_artifact_file(
                options.pdb_dir,
                "bin" if artifact.produces_pdb() else None,
                artifact.pdb,
                f"{artifact.name} (pdb)",
            ),
            implib=_artifact_file(
                options.implib_dir,
                "lib" if artifact.produces_implib() else None,
                artifact.implib,
                f"{artifact.name} (implib)",
            ),
            header=_artifact_file(
                options.header_dir,
                "include" if artifact.produces_header() else None,
                artifact.header,
                f"{artifact.name} (header)",
            ),
        )
        self.input_artifacts.append(entry)
        return entry

    def iter_entries(self) -> Iterator[FileEntry]:
        """按构建顺序遍历所有输入：先普通文件，再按制品依次 bin/pdb/implib/header"""
        yield from self.input_files
        for item in self.input_artifacts:
            yield from item.files()

    def archive_file_name(self) -> str:
        return f"{self.name}{self.format.extension()}"

    def __repr__(self) -> str:
        return (f"ArchiveRequest(name={self.name!r}, format={self.format.kind.value}, "
                f"files={len(self.input_files)}, artifacts={len(self.input_artifacts)})")
