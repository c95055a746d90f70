"""
缓存提交步骤模块
"""

from ...utils.logging import success, LogStage
from relpack.build.build_context import BuildContext, BuildError
from .build_step import BuildStep


class CacheCommitStep(BuildStep):
    """缓存提交步骤：归档落盘后写入提交记录"""

    def __init__(self):
        super().__init__("commit", "提交缓存记录")

    def get_progress_range(self) -> tuple[int, int]:
        return (95, 100)

    def execute(self, context: BuildContext) -> None:
        if context.archive_path is None or context.cache_key is None:
            raise BuildError("归档尚未写入，无法提交缓存")

        context.cache.commit(context.cache_key, context.archive_path)

        _, end = self.get_progress_range()
        context.report("提交缓存", end, "完成")
        success("缓存记录已提交", stage=LogStage.COMMIT)
