"""
归档写入步骤模块

先写入同目录下的临时文件，刷新并 fsync 后再原子重命名为最终文件名；
任何失败都会删除临时文件。
"""

import os
import tempfile
from pathlib import Path

from ...utils import format_size
from ...utils.logging import info, success, error, LogStage
from relpack.build.build_context import BuildContext, BuildError
from relpack.build.request import SourceFileError
from relpack.build.writers import ArchiveWriterFactory
from relpack.build.zip_builder import ZipFormatError
from .build_step import BuildStep

ARCHIVE_FILE_MODE = 0o644


class ArchiveWriteStep(BuildStep):
    """归档写入步骤"""

    def __init__(self):
        super().__init__("write", "写入归档文件")

    def get_progress_range(self) -> tuple[int, int]:
        return (45, 95)

    def execute(self, context: BuildContext) -> None:
        if context.files is None or context.cache_key is None:
            raise BuildError("输入尚未解析或指纹尚未计算")

        request = context.request
        file_name = request.archive_file_name()
        output_path = context.cache.output_path(context.cache_key, file_name)

        info(f"写入归档 - 格式: {request.format.kind.value}, 级别: {request.format.level}",
             stage=LogStage.WRITE)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{file_name}.", suffix=".partial", dir=output_path.parent)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, 'wb') as sink:
                self._write_archive(context, sink)
                sink.flush()
                os.fsync(sink.fileno())
            os.chmod(tmp_path, ARCHIVE_FILE_MODE)
            os.replace(tmp_path, output_path)
        except BuildError:
            tmp_path.unlink(missing_ok=True)
            raise
        except (ZipFormatError, OSError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            error(f"写入归档失败: {e}", stage=LogStage.WRITE)
            raise BuildError(f"写入归档失败: {e}") from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        archive_size = output_path.stat().st_size
        original_size = context.build_stats.get('total_size', 0)
        context.archive_path = output_path
        context.build_stats['archive_size'] = archive_size
        context.build_stats['compression_ratio'] = (
            (1 - archive_size / original_size) * 100 if original_size > 0 else 0.0
        )

        success(f"归档写入完成: {output_path}", stage=LogStage.WRITE)
        info(f"  原始大小: {format_size(original_size)}")
        info(f"  归档大小: {format_size(archive_size)}")

    def _write_archive(self, context: BuildContext, sink) -> None:
        request = context.request
        writer = ArchiveWriterFactory.create_writer(request.format, sink)

        start, end = self.get_progress_range()
        total = len(context.files)
        try:
            writer.set_root(request.name)
            for idx, resolved in enumerate(context.files):
                try:
                    fileobj = open(resolved.path, 'rb')
                except OSError as e:
                    error(f"读取文件失败 {resolved.path}: {e}", stage=LogStage.WRITE)
                    raise SourceFileError(f"读取文件失败 {resolved.path}: {e}") from e

                with fileobj:
                    writer.write_file(resolved.subpath, fileobj)

                context.report("写入归档", start + int((idx + 1) / total * (end - start)), resolved.subpath)

            writer.finish()
        finally:
            # 失败时也要在 sink 关闭前释放写入器内部的流
            writer.close()
