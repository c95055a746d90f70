"""
构建器主类

build_archive() 是归档构建的纯函数入口：给定请求与缓存，返回归档路径。
Builder 在此之上提供面向命令行的结果对象。
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .build_context import BuildError, ProgressCallback
from .build_pipeline import BuildPipeline
from .cache import ContentCache
from .request import ArchiveRequest


@dataclass
class BuildResult:
    """构建结果"""
    success: bool
    output_path: Optional[Path] = None
    output_size: Optional[int] = None
    build_time: Optional[float] = None
    cache_hit: bool = False
    compression_ratio: Optional[float] = None
    error: Optional[str] = None


def build_archive(
    request: ArchiveRequest,
    cache: ContentCache,
    progress_callback: Optional[ProgressCallback] = None,
) -> Path:
    """构建归档并返回其路径（内容寻址，输入不变时路径不变）

    Raises:
        BuildError: 构建失败
    """
    context = BuildPipeline().execute(request, cache, progress_callback)
    return context.archive_path


class Builder:
    """归档构建器

    使用管道模式协调构建步骤，提供统一的构建接口。
    """

    def __init__(self, pipeline: Optional[BuildPipeline] = None):
        self.pipeline = pipeline or BuildPipeline()

    def build(
        self,
        request: ArchiveRequest,
        cache: ContentCache,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BuildResult:
        """构建归档

        Returns:
            BuildResult: 构建结果；失败时 success 为 False 并带有错误信息
        """
        try:
            context = self.pipeline.execute(request, cache, progress_callback)
        except BuildError as e:
            return BuildResult(success=False, error=str(e))

        stats = context.build_stats
        return BuildResult(
            success=True,
            output_path=context.archive_path,
            output_size=context.archive_path.stat().st_size,
            build_time=stats['end_time'] - stats['start_time'],
            cache_hit=context.cache_hit,
            compression_ratio=None if context.cache_hit else stats['compression_ratio'],
        )

    def get_pipeline(self) -> BuildPipeline:
        """获取构建管道，用于自定义构建流程"""
        return self.pipeline

    def validate_build_pipeline(self) -> List[str]:
        """验证构建管道的完整性"""
        return self.pipeline.validate_pipeline()
