"""
构建管道模块

使用管道模式协调构建步骤的执行：
解析输入 -> 计算指纹 -> 查询缓存 -> (未命中) 写入归档 -> 提交缓存。
"""

import time
from typing import List, Optional

from ..utils import format_size
from ..utils.logging import info, success, error, debug, LogStage
from .build_context import BuildContext, BuildError, ProgressCallback
from .cache import CacheError, ContentCache
from .request import ArchiveRequest
from .steps.build_step import BuildStep
from .steps.resolve_step import ResolveInputsStep
from .steps.fingerprint_step import FingerprintStep
from .steps.cache_lookup_step import CacheLookupStep
from .steps.archive_write_step import ArchiveWriteStep
from .steps.cache_commit_step import CacheCommitStep


class BuildPipeline:
    """构建管道，负责协调构建步骤的执行"""

    def __init__(self):
        self._steps: List[BuildStep] = []
        self._init_default_steps()

    def _init_default_steps(self):
        self._steps = [
            ResolveInputsStep(),
            FingerprintStep(),
            CacheLookupStep(),
            ArchiveWriteStep(),
            CacheCommitStep(),
        ]

    def add_step(self, step: BuildStep, position: Optional[int] = None):
        """添加构建步骤"""
        if position is None:
            self._steps.append(step)
        else:
            self._steps.insert(position, step)

    def remove_step(self, step_name: str):
        """移除构建步骤"""
        self._steps = [step for step in self._steps if step.name != step_name]

    def get_steps(self) -> List[BuildStep]:
        """获取所有构建步骤"""
        return self._steps.copy()

    def execute(
        self,
        request: ArchiveRequest,
        cache: ContentCache,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BuildContext:
        """执行构建管道

        Args:
            request: 归档请求
            cache: 内容缓存
            progress_callback: 进度回调函数

        Returns:
            BuildContext: 构建上下文，包含所有构建结果

        Raises:
            BuildError: 构建失败（原始异常保存在 __cause__ 中）
        """
        context = BuildContext(
            request=request,
            cache=cache,
            progress_callback=progress_callback,
        )

        context.build_stats['start_time'] = time.time()

        try:
            info(f"开始构建归档: {request.archive_file_name()}", stage=LogStage.INIT)
            debug(f"构建请求: {request!r}", stage=LogStage.INIT)

            for step in self._steps:
                if context.cache_hit and not step.runs_on_cache_hit:
                    debug(f"缓存命中，跳过步骤: {step.description}", stage=LogStage.INIT)
                    continue
                info(f"执行步骤: {step.description}", stage=LogStage.INIT)
                step.execute(context)

            context.build_stats['end_time'] = time.time()
            build_time = context.build_stats['end_time'] - context.build_stats['start_time']

            success(f"归档就绪: {context.archive_path}", stage=LogStage.DONE)
            info(f"构建时间: {build_time:.1f}秒")
            if not context.cache_hit:
                info(f"压缩率: {context.build_stats['compression_ratio']:.1f}%")
                info(f"最终大小: {format_size(context.build_stats['archive_size'])}")

            return context

        except BuildError as e:
            context.build_stats['end_time'] = time.time()
            error(f"构建失败: {e}", stage=LogStage.DONE)
            raise
        except CacheError as e:
            context.build_stats['end_time'] = time.time()
            error(f"缓存错误: {e}", stage=LogStage.CACHE)
            raise BuildError(f"缓存错误: {e}") from e
        except Exception as e:
            context.build_stats['end_time'] = time.time()
            error(f"构建失败: {e}", stage=LogStage.DONE)
            raise BuildError(f"构建失败: {e}") from e

    def validate_pipeline(self) -> List[str]:
        """验证构建管道的完整性

        Returns:
            List[str]: 验证错误列表，空列表表示验证通过
        """
        errors = []

        if not self._steps:
            errors.append("构建管道中没有步骤")
            return errors

        prev_end = 0
        for step in self._steps:
            start, end = step.get_progress_range()
            if start != prev_end:
                errors.append(f"步骤 '{step.name}' 的进度范围不连续: 期望起始 {prev_end}%, 实际 {start}%")
            if start >= end:
                errors.append(f"步骤 '{step.name}' 的进度范围无效: {start}% - {end}%")
            prev_end = end

        if prev_end != 100:
            errors.append(f"构建管道的总进度范围不是100%: {prev_end}%")

        return errors
