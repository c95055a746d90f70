"""
构建制品描述

描述一个外部构建产物（可执行文件、库、目标文件等）及其附带文件的位置。
路径可以是具体路径，也可以是构建时才求值的可调用对象。
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

# 延迟路径：具体路径，或返回路径的无参可调用对象
SourcePath = Union[str, os.PathLike, Callable[[], Union[str, os.PathLike]]]


class ArtifactKind(str, Enum):
    """制品类型"""
    EXE = "exe"
    TEST = "test"
    LIB = "lib"
    OBJ = "obj"


class Linkage(str, Enum):
    """库的链接方式"""
    STATIC = "static"
    DYNAMIC = "dynamic"


def resolve_source(source: SourcePath) -> Path:
    """将延迟路径求值为具体路径"""
    if callable(source):
        source = source()
    return Path(source)


@dataclass
class Artifact:
    """构建制品

    bin 为主产物；pdb / implib / header 为可选附带文件，
    为 None 表示该制品不会生成对应文件。
    """
    name: str
    kind: ArtifactKind
    bin: SourcePath
    linkage: Optional[Linkage] = None
    pdb: Optional[SourcePath] = None
    implib: Optional[SourcePath] = None
    header: Optional[SourcePath] = None

    def is_dll(self) -> bool:
        return self.kind == ArtifactKind.LIB and self.linkage == Linkage.DYNAMIC

    def produces_pdb(self) -> bool:
        return self.pdb is not None

    def produces_implib(self) -> bool:
        return self.implib is not None

    def produces_header(self) -> bool:
        """只有库会导出头文件"""
        return self.kind == ArtifactKind.LIB and self.header is not None

    def default_bin_subdir(self) -> str:
        """主产物的默认子目录"""
        if self.kind == ArtifactKind.OBJ:
            return "obj"
        if self.kind == ArtifactKind.LIB and not self.is_dll():
            return "lib"
        return "bin"
