"""
指纹计算步骤模块

对归档名称、格式以及每个输入的子目录、文件名和完整内容计算指纹。
mtime 与源文件所在位置不参与计算。
"""

from ...utils.logging import info, debug, error, LogStage
from relpack.build.build_context import BuildContext, BuildError
from relpack.build.request import SourceFileError
from .build_step import BuildStep

# 指纹格式版本，归档布局规则变化时递增
FINGERPRINT_VERSION = "relpack-archive-v1"


class FingerprintStep(BuildStep):
    """指纹计算步骤"""

    def __init__(self):
        super().__init__("fingerprint", "计算输入指纹")

    def get_progress_range(self) -> tuple[int, int]:
        return (10, 40)

    def execute(self, context: BuildContext) -> None:
        if context.files is None:
            raise BuildError("输入尚未解析，无法计算指纹")

        request = context.request
        fingerprint = context.cache.new_fingerprint()
        fingerprint.add_str(FINGERPRINT_VERSION)
        fingerprint.add_str(request.name)
        fingerprint.add_str(request.format.kind.value)
        fingerprint.add_str(str(request.format.level))

        start, end = self.get_progress_range()
        total = len(context.files)
        for idx, resolved in enumerate(context.files):
            fingerprint.add_str(resolved.subdir)
            fingerprint.add_str(resolved.path.name)
            try:
                with open(resolved.path, 'rb') as f:
                    fingerprint.add_file(f)
            except OSError as e:
                error(f"读取文件失败 {resolved.path}: {e}", stage=LogStage.FINGERPRINT)
                raise SourceFileError(f"读取文件失败 {resolved.path}: {e}") from e

            context.report("计算指纹", start + int((idx + 1) / total * (end - start)), resolved.subpath)

        context.cache_key = fingerprint.final()
        info(f"输入指纹: {context.cache_key}", stage=LogStage.FINGERPRINT)
        debug(f"指纹覆盖 {total} 个文件", stage=LogStage.FINGERPRINT)
