"""
配置 Schema 定义

使用 Pydantic 定义严格的 YAML 配置模型，描述一次归档构建的全部输入。
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..build.artifact import ArtifactKind, Linkage
from ..build.request import ArchiveFormat, FormatKind


def _validate_subdir(value: str) -> str:
    normalized = value.strip().replace('\\', '/').strip('/')
    if any(part == '..' for part in normalized.split('/')):
        raise ValueError("子目录不能包含 '..'")
    return normalized


class FormatModel(BaseModel):
    """归档格式配置模型"""
    kind: FormatKind = Field(
        FormatKind.TAR_GZ,
        description="归档格式"
    )
    level: int = Field(
        9,
        description="压缩级别",
        ge=0,
        le=9
    )


class FileInputModel(BaseModel):
    """普通文件输入模型"""
    path: Union[str, Path] = Field(..., description="输入文件路径")
    subdir: str = Field("", description="归档内子目录（空表示根目录）")

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: Union[str, Path]) -> Path:
        return Path(v)

    @field_validator('subdir')
    @classmethod
    def validate_subdir(cls, v: str) -> str:
        return _validate_subdir(v)


class ArtifactModel(BaseModel):
    """构建制品输入模型

    *_dir 字段取值: "default" 按制品类型决定目录, "disabled" 不打包,
    其他字符串视为自定义子目录。
    """
    name: str = Field(..., description="制品名称", min_length=1)
    kind: ArtifactKind = Field(..., description="制品类型")
    linkage: Optional[Linkage] = Field(None, description="库的链接方式")
    bin: Union[str, Path] = Field(..., description="主产物路径")
    pdb: Optional[Union[str, Path]] = Field(None, description="调试符号文件路径")
    implib: Optional[Union[str, Path]] = Field(None, description="导入库路径")
    header: Optional[Union[str, Path]] = Field(None, description="头文件路径")

    bin_dir: str = Field("default", description="主产物目录策略")
    pdb_dir: str = Field("default", description="调试符号目录策略")
    implib_dir: str = Field("default", description="导入库目录策略")
    header_dir: str = Field("default", description="头文件目录策略")

    @field_validator('bin', 'pdb', 'implib', 'header')
    @classmethod
    def validate_paths(cls, v: Optional[Union[str, Path]]) -> Optional[Path]:
        return None if v is None else Path(v)

    @field_validator('bin_dir', 'pdb_dir', 'implib_dir', 'header_dir')
    @classmethod
    def validate_dir(cls, v: str) -> str:
        if v in ("default", "disabled"):
            return v
        normalized = _validate_subdir(v)
        if not normalized:
            raise ValueError("自定义子目录不能为空")
        return normalized

    @model_validator(mode='after')
    def validate_linkage(self) -> 'ArtifactModel':
        """库必须声明链接方式"""
        if self.kind == ArtifactKind.LIB and self.linkage is None:
            raise ValueError("lib 类型的制品必须设置 linkage (static 或 dynamic)")
        return self


class ConfigModel(BaseModel):
    """配置元信息模型"""
    version: int = Field(1, description="配置 schema 版本", ge=1)

    @field_validator('version')
    @classmethod
    def validate_config_version(cls, v: int) -> int:
        SUPPORTED_VERSIONS = [1]
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"不支持的配置版本 {v}，支持的版本: {SUPPORTED_VERSIONS}")
        return v


class ArchiveConfig(BaseModel):
    """归档主配置模型"""

    config: ConfigModel = Field(default_factory=ConfigModel, description="配置元信息")

    name: str = Field(..., description="归档名称（同时作为顶层目录）", min_length=1, max_length=255)
    format: FormatModel = Field(default_factory=FormatModel, description="归档格式")
    files: List[FileInputModel] = Field(default_factory=list, description="普通文件输入")
    artifacts: List[ArtifactModel] = Field(default_factory=list, description="构建制品输入")
    cache_dir: Union[str, Path] = Field(Path(".relpack-cache"), validate_default=True, description="缓存目录")

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
        "str_strip_whitespace": True,
    }

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if '/' in v or '\\' in v or v in ('.', '..'):
            raise ValueError("归档名称不能包含路径分隔符")
        return v

    @field_validator('cache_dir')
    @classmethod
    def validate_cache_dir(cls, v: Union[str, Path]) -> Path:
        return Path(v)

    @model_validator(mode='after')
    def validate_inputs(self) -> 'ArchiveConfig':
        if not self.files and not self.artifacts:
            raise ValueError("至少需要一个文件或制品输入")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        data = self.model_dump(exclude_none=True)

        def convert_values(obj):
            if isinstance(obj, dict):
                return {k: convert_values(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_values(item) for item in obj]
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Path):
                return str(obj)
            else:
                return obj

        return convert_values(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ArchiveConfig':
        """从字典创建配置实例"""
        return cls.model_validate(data)

    def archive_file_name(self) -> str:
        extension = ArchiveFormat(self.format.kind, self.format.level).extension()
        return f"{self.name}{extension}"
