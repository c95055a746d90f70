"""配置和 Schema 模块

提供 YAML 配置文件的加载、验证和保存功能。
"""

from .schema import ArchiveConfig
from .loader import (
    ConfigLoader,
    ConfigValidationError,
    ConfigError,
    load_config,
    validate_config,
    validate_config_with_result,
    save_config,
    request_from_config,
    config_loader
)

__all__ = [
    # 主要类
    "ArchiveConfig",
    "ConfigLoader",

    # 异常类
    "ConfigError",
    "ConfigValidationError",

    # 便捷函数
    "load_config",
    "validate_config",
    "validate_config_with_result",
    "save_config",
    "request_from_config",

    # 单例
    "config_loader",
]
