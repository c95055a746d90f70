"""
缓存查询步骤模块
"""

from ...utils.logging import info, success, LogStage
from relpack.build.build_context import BuildContext, BuildError
from .build_step import BuildStep


class CacheLookupStep(BuildStep):
    """缓存查询步骤：命中时直接返回已有归档"""

    def __init__(self):
        super().__init__("lookup", "查询构建缓存")

    def get_progress_range(self) -> tuple[int, int]:
        return (40, 45)

    def execute(self, context: BuildContext) -> None:
        if context.cache_key is None:
            raise BuildError("指纹尚未计算，无法查询缓存")

        file_name = context.request.archive_file_name()
        cached = context.cache.lookup(context.cache_key, file_name)

        _, end = self.get_progress_range()
        if cached is not None:
            context.cache_hit = True
            context.archive_path = cached
            context.report("查询缓存", 100, "缓存命中")
            success(f"缓存命中: {cached}", stage=LogStage.CACHE)
        else:
            context.report("查询缓存", end, "缓存未命中")
            info("缓存未命中，开始写入归档", stage=LogStage.CACHE)
