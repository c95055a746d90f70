"""
构建上下文模块

定义构建过程中的共享数据结构和异常类。
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .cache import ContentCache
    from .request import ArchiveRequest, ResolvedFile

# 进度回调类型: (阶段, 当前, 总数, 消息)
ProgressCallback = Callable[[str, int, int, str], None]


class BuildError(Exception):
    """构建错误"""
    pass


@dataclass
class BuildContext:
    """构建上下文，包含构建过程中的共享数据"""
    request: 'ArchiveRequest'
    cache: 'ContentCache'
    progress_callback: Optional[ProgressCallback] = None

    # 构建过程中生成的数据
    files: Optional[List['ResolvedFile']] = None
    cache_key: Optional[str] = None
    archive_path: Optional[Path] = None
    cache_hit: bool = False

    # 统计信息
    build_stats: Dict[str, Any] = field(default_factory=lambda: {
        'start_time': 0,
        'end_time': 0,
        'total_files': 0,
        'total_size': 0,
        'archive_size': 0,
        'compression_ratio': 0.0,
    })

    def report(self, stage: str, current: int, message: str = "") -> None:
        if self.progress_callback:
            self.progress_callback(stage, current, 100, message)
