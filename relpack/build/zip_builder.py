"""
Zip 归档写入器

逐个条目写入本地文件头与 deflate 压缩数据，同时记录每个条目的元信息；
finish() 时再统一写出中央目录与结尾记录（必要时包含 zip64 结构）。

本地文件头不使用数据描述符（flags 第 3 位），因此每个条目的压缩数据
必须先完整缓存在内存中，才能在头部中声明大小。
"""

import io
import os
import struct
import time
import zlib
from dataclasses import dataclass
from typing import BinaryIO, List, Tuple

from ..utils.logging import debug, LogStage
from ..utils.paths import archive_join


# 签名
LOCAL_FILE_HEADER_SIG = 0x04034B50
CENTRAL_FILE_HEADER_SIG = 0x02014B50
END_RECORD_SIG = 0x06054B50
END_RECORD64_SIG = 0x06064B50
END_LOCATOR64_SIG = 0x07064B50

ZIP64_EXTRA_TAG = 0x0001
ZIP_VERSION = 45
METHOD_DEFLATE = 8
FLAG_UTF8 = 0x0800

MAX_U16 = 0xFFFF
MAX_U32 = 0xFFFFFFFF

LOCAL_FILE_HEADER = struct.Struct("<IHHHHHIIIHH")
CENTRAL_FILE_HEADER = struct.Struct("<IHHHHHHIIIHHHHHII")
END_RECORD = struct.Struct("<IHHHHIIH")
END_RECORD64 = struct.Struct("<IQHHIIQQQQ")
END_LOCATOR64 = struct.Struct("<IIQI")

CHUNK_SIZE = 64 * 1024


class ZipFormatError(Exception):
    """Zip 格式错误"""
    pass


class NameTooLongError(ZipFormatError):
    """条目名称超过 65535 字节"""
    pass


class DosTimestampError(ZipFormatError):
    """时间戳无法用 DOS 日期时间表示（早于 1980 或晚于 2107）"""
    pass


@dataclass
class ZipEntryRecord:
    """已写入条目的元信息，finish() 时用于生成中央目录"""
    filename: bytes
    original_size: int
    compress_size: int
    offset: int
    mtime: int
    crc32: int
    flags: int = 0


class CountingWriter:
    """记录已写入字节数的输出包装器"""

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        self._sink.write(data)
        self.bytes_written += len(data)
        return len(data)


def saturate(value: int, bits: int) -> int:
    """将数值限制在 bits 位无符号整数范围内（溢出写为全 1，而不是回绕）"""
    return min(value, (1 << bits) - 1)


def zip64_extra_field(original_size: int, compress_size: int, offset: int) -> bytes:
    """构建 zip64 扩展字段

    只包含单独超过 32 位上限的值，顺序固定为
    (原始大小, 压缩大小, 本地头偏移)；全部未溢出时返回空字节串。
    """
    values = [value for value in (original_size, compress_size, offset) if value > MAX_U32]
    if not values:
        return b''
    header = struct.pack("<HH", ZIP64_EXTRA_TAG, 8 * len(values))
    return header + struct.pack(f"<{len(values)}Q", *values)


def dos_datetime(timestamp: int) -> Tuple[int, int]:
    """将 Unix 时间戳（UTC）转换为 DOS (time, date)

    date = 7 位 (年-1980) | 4 位月 | 5 位日
    time = 5 位时 | 6 位分 | 5 位 (秒/2)

    Raises:
        DosTimestampError: 年份不在 1980-2107 之间
    """
    try:
        tm = time.gmtime(timestamp)
    except (OverflowError, OSError, ValueError) as e:
        raise DosTimestampError(f"时间戳超出范围: {timestamp}") from e

    if not 1980 <= tm.tm_year <= 2107:
        raise DosTimestampError(f"时间戳无法表示为 DOS 日期 (年份 {tm.tm_year}): {timestamp}")

    dos_date = ((tm.tm_year - 1980) << 9) | (tm.tm_mon << 5) | tm.tm_mday
    dos_time = (tm.tm_hour << 11) | (tm.tm_min << 5) | (tm.tm_sec // 2)
    return dos_time, dos_date


class ZipBuilder:
    """Zip 归档构建器

    用法::

        builder = ZipBuilder(sink, level=6)
        builder.set_root("myapp-1.0")
        builder.write_file("bin/myapp", fileobj)
        builder.finish()
    """

    def __init__(self, sink: BinaryIO, level: int = 6):
        self.level = level
        self.root = ""
        self.entries: List[ZipEntryRecord] = []
        self._inner = CountingWriter(sink)
        self._closed = False

    @property
    def bytes_written(self) -> int:
        return self._inner.bytes_written

    def set_root(self, root: str) -> None:
        """设置所有条目的顶层目录"""
        self.root = root

    def write_file(self, sub_path: str, fileobj: BinaryIO) -> ZipEntryRecord:
        """写入一个文件条目（本地文件头 + 文件名 + 扩展字段 + 压缩数据）

        Raises:
            ZipFormatError: finish() 之后继续写入
            NameTooLongError: 条目名称超过 65535 字节
            DosTimestampError: 文件修改时间无法用 DOS 格式表示
        """
        if self._closed:
            raise ZipFormatError("归档已结束，不能继续写入条目")

        name = archive_join(self.root, sub_path)
        filename = name.encode('utf-8')
        if len(filename) > MAX_U16:
            raise NameTooLongError(f"条目名称过长 ({len(filename)} 字节): {name[:64]}...")
        flags = 0 if name.isascii() else FLAG_UTF8

        stat = os.fstat(fileobj.fileno())
        mtime = stat.st_mtime_ns // 1_000_000_000
        dos_time, dos_date = dos_datetime(mtime)

        crc, original_size, content = self._compress(fileobj)

        entry = ZipEntryRecord(
            filename=filename,
            original_size=original_size,
            compress_size=len(content),
            offset=self._inner.bytes_written,
            mtime=mtime,
            crc32=crc,
            flags=flags,
        )
        self.entries.append(entry)

        # 本地文件头没有偏移字段，扩展字段只携带大小
        extra = zip64_extra_field(entry.original_size, entry.compress_size, 0)

        self._inner.write(LOCAL_FILE_HEADER.pack(
            LOCAL_FILE_HEADER_SIG,
            ZIP_VERSION,
            flags,
            METHOD_DEFLATE,
            dos_time,
            dos_date,
            crc,
            saturate(entry.compress_size, 32),
            saturate(entry.original_size, 32),
            len(filename),
            len(extra),
        ))
        self._inner.write(filename)
        self._inner.write(extra)
        self._inner.write(content)

        debug(f"zip 条目: {name} {original_size} -> {len(content)} crc={crc:08x}", stage=LogStage.WRITE)
        return entry

    def _compress(self, fileobj: BinaryIO) -> Tuple[int, int, bytes]:
        """边读边计算 CRC32 并以 raw deflate 压缩到内存"""
        compressor = zlib.compressobj(self.level, zlib.DEFLATED, -zlib.MAX_WBITS)
        content = io.BytesIO()
        crc = 0
        original_size = 0

        while True:
            chunk = fileobj.read(CHUNK_SIZE)
            if not chunk:
                break
            crc = zlib.crc32(chunk, crc)
            original_size += len(chunk)
            content.write(compressor.compress(chunk))
        content.write(compressor.flush())

        return crc, original_size, content.getvalue()

    def finish(self) -> None:
        """写出中央目录与结尾记录"""
        if self._closed:
            raise ZipFormatError("归档已结束")

        cd_start = self._inner.bytes_written
        total_entries = len(self.entries)

        for entry in self.entries:
            dos_time, dos_date = dos_datetime(entry.mtime)
            extra = zip64_extra_field(entry.original_size, entry.compress_size, entry.offset)

            self._inner.write(CENTRAL_FILE_HEADER.pack(
                CENTRAL_FILE_HEADER_SIG,
                ZIP_VERSION,  # version made by
                ZIP_VERSION,  # version needed to extract
                entry.flags,
                METHOD_DEFLATE,
                dos_time,
                dos_date,
                entry.crc32,
                saturate(entry.compress_size, 32),
                saturate(entry.original_size, 32),
                len(entry.filename),
                len(extra),
                0,  # comment length
                0,  # disk number
                0,  # internal attributes
                0,  # external attributes
                saturate(entry.offset, 32),
            ))
            self._inner.write(entry.filename)
            self._inner.write(extra)

        cd_end = self._inner.bytes_written
        cd_size = cd_end - cd_start

        record_count = saturate(total_entries, 16)
        cd_size_field = saturate(cd_size, 32)
        cd_offset_field = saturate(cd_start, 32)

        if record_count == MAX_U16 or cd_size_field == MAX_U32 or cd_offset_field == MAX_U32:
            debug(f"写入 zip64 结尾记录: entries={total_entries} cd_size={cd_size} cd_offset={cd_start}",
                  stage=LogStage.WRITE)
            self._inner.write(END_RECORD64.pack(
                END_RECORD64_SIG,
                END_RECORD64.size - 12,
                ZIP_VERSION,
                ZIP_VERSION,
                0,
                0,
                total_entries,
                total_entries,
                cd_size,
                cd_start,
            ))
            self._inner.write(END_LOCATOR64.pack(
                END_LOCATOR64_SIG,
                0,
                cd_end,
                1,
            ))

        self._inner.write(END_RECORD.pack(
            END_RECORD_SIG,
            0,
            0,
            record_count,
            record_count,
            cd_size_field,
            cd_offset_field,
            0,
        ))
        self._closed = True

    def close(self) -> None:
        """放弃写入：之后的 write_file / finish 都会报错，不写出中央目录"""
        self._closed = True
