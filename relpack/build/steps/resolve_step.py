"""
输入解析步骤模块

将请求中的每个输入解析为具体路径并读取 stat。
"""

from ...utils import format_size
from ...utils.logging import info, success, debug, error, warning, LogStage
from relpack.build.build_context import BuildContext, BuildError
from .build_step import BuildStep


class ResolveInputsStep(BuildStep):
    """输入解析步骤"""

    def __init__(self):
        super().__init__("resolve", "解析输入文件")

    def get_progress_range(self) -> tuple[int, int]:
        return (0, 10)

    def execute(self, context: BuildContext) -> None:
        info("解析输入文件", stage=LogStage.RESOLVE)

        entries = list(context.request.iter_entries())
        if not entries:
            warning("归档请求中没有任何输入文件，将只写出顶层目录", stage=LogStage.RESOLVE)

        resolved = []
        for entry in entries:
            try:
                resolved.append(entry.resolve())
            except BuildError as e:
                error(str(e), stage=LogStage.RESOLVE)
                raise

        total_size = sum(f.size for f in resolved)
        context.files = resolved
        context.build_stats['total_files'] = len(resolved)
        context.build_stats['total_size'] = total_size

        _, end = self.get_progress_range()
        context.report("解析输入", end, f"找到 {len(resolved)} 个文件")

        success("输入解析完成", stage=LogStage.RESOLVE)
        info(f"  文件数量: {len(resolved)}")
        info(f"  总大小: {format_size(total_size)}")

        for idx, f in enumerate(resolved[:20]):
            debug(f"文件[{idx}]: {f.subpath} <- {f.path} size={format_size(f.size)} mtime={f.mtime}",
                  stage=LogStage.RESOLVE)
        if len(resolved) > 20:
            debug(f"... 还有 {len(resolved) - 20} 个文件未列出", stage=LogStage.RESOLVE)
