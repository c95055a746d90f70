"""
配置加载器

负责从 YAML 文件加载配置并进行验证，以及将配置转换为归档请求。
"""

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..build.artifact import Artifact
from ..build.request import AddArtifactOptions, ArchiveFormat, ArchiveRequest, ArtifactDirectory
from .schema import ArchiveConfig


class ConfigError(Exception):
    """配置错误基类"""
    pass


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def __init__(self, message: str, errors: List[Dict[str, Any]]):
        super().__init__(message)
        self.errors = errors

    def format_errors(self) -> str:
        """格式化错误信息为人类可读的格式"""
        formatted = []
        for error in self.errors:
            loc = " -> ".join(str(item) for item in error.get('loc', []))
            msg = error.get('msg', '未知错误')
            input_val = error.get('input', '')

            if loc:
                formatted.append(f"字段 '{loc}': {msg}")
                if input_val:
                    formatted.append(f"  输入值: {input_val}")
            else:
                formatted.append(f"根级别: {msg}")

        return "\n".join(formatted)

    def format_errors_json(self) -> str:
        """格式化错误信息为 JSON 格式"""
        return json.dumps(self.errors, ensure_ascii=False, indent=2, default=str)


@dataclass
class ValidationResult:
    """配置验证结果"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    config: Optional[ArchiveConfig] = None


# 需要相对配置文件目录解析的制品路径字段
ARTIFACT_PATH_FIELDS = ('bin', 'pdb', 'implib', 'header')


class ConfigLoader:
    """配置加载器"""

    def __init__(self):
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.width = 4096

    def load_from_file(self, config_path: Union[str, Path]) -> ArchiveConfig:
        """从文件加载配置

        Raises:
            ConfigError: 配置加载错误
            ConfigValidationError: 配置验证错误
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigError(f"配置文件不存在: {config_path}")

        if not config_path.is_file():
            raise ConfigError(f"配置路径不是文件: {config_path}")

        if config_path.suffix.lower() not in ['.yaml', '.yml']:
            raise ConfigError(f"配置文件必须是 .yaml 或 .yml 格式: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                raw_data = self.yaml.load(f)
        except YAMLError as e:
            raise ConfigError(f"YAML 解析错误: {e}") from e
        except OSError as e:
            raise ConfigError(f"文件读取错误: {e}") from e

        if raw_data is None:
            raise ConfigError("配置文件为空")

        if not isinstance(raw_data, dict):
            raise ConfigError("配置文件根级别必须是对象/字典格式")

        return self.load_from_dict(raw_data, config_path.parent.resolve())

    def load_from_dict(self, data: Dict[str, Any], base_path: Optional[Path] = None) -> ArchiveConfig:
        """从字典加载配置

        Args:
            data: 配置数据字典
            base_path: 相对路径的基准路径

        Raises:
            ConfigValidationError: 配置验证错误
        """
        if base_path:
            data = copy.deepcopy(dict(data))
            self._resolve_relative_paths(data, base_path)

        try:
            return ArchiveConfig.from_dict(data)
        except ValidationError as e:
            raise ConfigValidationError("配置验证失败", e.errors()) from e

    def save_to_file(self, config: ArchiveConfig, output_path: Union[str, Path]) -> None:
        """保存配置到文件

        Raises:
            ConfigError: 保存错误
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                self.yaml.dump(config.to_dict(), f)
        except OSError as e:
            raise ConfigError(f"保存配置文件失败: {e}") from e

    def validate_file(self, config_path: Union[str, Path]) -> List[Dict[str, Any]]:
        """验证配置文件并返回错误列表，空列表表示验证通过"""
        try:
            self.load_from_file(config_path)
            return []
        except ConfigValidationError as e:
            return e.errors
        except ConfigError as e:
            return [{
                'loc': [],
                'msg': str(e),
                'type': 'config_error'
            }]

    def _resolve_relative_paths(self, data: Dict[str, Any], base_path: Path) -> None:
        """将配置中的相对路径解析为相对 base_path 的绝对路径"""

        def resolve(value: Any) -> Any:
            if isinstance(value, str) and value and not Path(value).is_absolute():
                return str((base_path / value).resolve())
            return value

        if 'cache_dir' in data:
            data['cache_dir'] = resolve(data['cache_dir'])
        else:
            data['cache_dir'] = str(base_path / ".relpack-cache")

        for item in data.get('files') or []:
            if isinstance(item, dict) and 'path' in item:
                item['path'] = resolve(item['path'])

        for item in data.get('artifacts') or []:
            if not isinstance(item, dict):
                continue
            for key in ARTIFACT_PATH_FIELDS:
                if key in item:
                    item[key] = resolve(item[key])


def _directory_option(value: str):
    if value == "default":
        return ArtifactDirectory.DEFAULT
    if value == "disabled":
        return ArtifactDirectory.DISABLED
    return value


def request_from_config(config: ArchiveConfig) -> ArchiveRequest:
    """将配置转换为归档请求"""
    request = ArchiveRequest(
        config.name,
        ArchiveFormat(config.format.kind, config.format.level),
    )

    for item in config.files:
        request.add_file(item.path, subdir=item.subdir)

    for item in config.artifacts:
        artifact = Artifact(
            name=item.name,
            kind=item.kind,
            bin=item.bin,
            linkage=item.linkage,
            pdb=item.pdb,
            implib=item.implib,
            header=item.header,
        )
        request.add_artifact(artifact, AddArtifactOptions(
            bin_dir=_directory_option(item.bin_dir),
            pdb_dir=_directory_option(item.pdb_dir),
            implib_dir=_directory_option(item.implib_dir),
            header_dir=_directory_option(item.header_dir),
        ))

    return request


# 全局加载器实例
config_loader = ConfigLoader()


def load_config(config_path: Union[str, Path]) -> ArchiveConfig:
    """便捷函数：加载配置文件"""
    return config_loader.load_from_file(config_path)


def validate_config(config_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """便捷函数：验证配置文件"""
    return config_loader.validate_file(config_path)


def validate_config_with_result(config_path: Union[str, Path]) -> ValidationResult:
    """验证配置并返回详细结果"""
    try:
        config = load_config(config_path)
    except ConfigValidationError as e:
        error_messages = []
        for error in e.errors:
            loc = " -> ".join(str(item) for item in error.get('loc', []))
            msg = error.get('msg', '未知错误')
            error_messages.append(f"字段 '{loc}': {msg}" if loc else f"根级别: {msg}")
        return ValidationResult(is_valid=False, errors=error_messages)
    except ConfigError as e:
        return ValidationResult(is_valid=False, errors=[f"配置加载失败: {e}"])

    return ValidationResult(is_valid=True, config=config)


def save_config(config: ArchiveConfig, output_path: Union[str, Path]) -> None:
    """便捷函数：保存配置文件"""
    config_loader.save_to_file(config, output_path)
