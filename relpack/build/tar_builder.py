"""
Tar 归档写入器

封装 tarfile 的流式写入，写入文件记录前自动补齐所有上级目录记录：
每个目录只写一次，且父目录总是先于子目录与文件写出。
"""

import gzip
import os
import tarfile
from typing import BinaryIO, Set

from ..utils.logging import debug, LogStage
from ..utils.paths import archive_dirname, archive_join


DEFAULT_DIR_MODE = 0o755


class TarBuilder:
    """tar.gz 归档构建器

    gzip 头部的 mtime 固定为 0 且不写入文件名，保证相同输入得到相同字节。
    finish() 只结束 tar 流和 gzip 成员，不关闭调用方传入的 sink。
    """

    def __init__(self, sink: BinaryIO, level: int = 9):
        self.level = level
        self.root = ""
        # 本次构建已写出的目录（相对 root 的路径）
        self.dirs: Set[str] = set()
        self._gzip = gzip.GzipFile(filename="", mode="wb", compresslevel=level, fileobj=sink, mtime=0)
        self._tar = tarfile.open(fileobj=self._gzip, mode="w|", format=tarfile.PAX_FORMAT, encoding="utf-8")
        self._closed = False

    def set_root(self, root: str) -> None:
        """设置顶层目录，并写出它的目录记录"""
        self.root = archive_join(root)
        if self.root:
            self._tar.addfile(self._dir_info(self.root))

    def write_file(self, sub_path: str, fileobj: BinaryIO) -> tarfile.TarInfo:
        """写入一个文件记录，必要时先写出缺失的上级目录"""
        path = archive_join(sub_path)
        self._write_path(archive_dirname(path))

        stat = os.fstat(fileobj.fileno())
        info = tarfile.TarInfo(archive_join(self.root, path))
        info.type = tarfile.REGTYPE
        info.size = stat.st_size
        info.mode = stat.st_mode & 0o7777
        info.mtime = stat.st_mtime_ns // 1_000_000_000
        info.uid = info.gid = 0
        info.uname = info.gname = ""

        self._tar.addfile(info, fileobj)
        debug(f"tar 条目: {info.name} size={info.size} mode={info.mode:o}", stage=LogStage.WRITE)
        return info

    def _write_path(self, path: str) -> None:
        # 先递归写出祖先，再写出自身，保证集合中只存在祖先齐全的目录
        if not path or path in self.dirs:
            return
        self._write_path(archive_dirname(path))
        self._tar.addfile(self._dir_info(archive_join(self.root, path)))
        self.dirs.add(path)

    @staticmethod
    def _dir_info(name: str) -> tarfile.TarInfo:
        info = tarfile.TarInfo(name)
        info.type = tarfile.DIRTYPE
        info.mode = DEFAULT_DIR_MODE
        info.mtime = 0
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        return info

    def finish(self) -> None:
        """写出 tar 结束块并刷新 gzip 压缩器"""
        self.close()

    def close(self) -> None:
        """结束 tar 流与 gzip 成员，可重复调用；sink 保持打开

        写入中途失败时也要调用，避免内部流在 sink 关闭后才被回收。
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._tar.close()
        finally:
            self._gzip.close()
