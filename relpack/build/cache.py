"""
内容寻址缓存

指纹按输入的布局与完整内容累积计算；相同指纹直接复用上次构建的归档。
提交记录只在归档完全写入磁盘后才生成，失败的构建不会留下任何记录。
"""

import hashlib
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..utils.logging import debug, warning, LogStage
from ..utils.paths import ensure_directory


class CacheError(Exception):
    """缓存读写错误"""
    pass


class Fingerprint:
    """累积式内容指纹

    每个字段都带长度前缀写入，避免相邻字段拼接产生歧义
    （例如 subdir="ab" + name="c" 与 subdir="a" + name="bc"）。
    """

    def __init__(self, algorithm: str = "sha256"):
        self._hasher = hashlib.new(algorithm)

    def add_bytes(self, data: bytes) -> None:
        self._hasher.update(len(data).to_bytes(8, 'little'))
        self._hasher.update(data)

    def add_str(self, text: str) -> None:
        self.add_bytes(text.encode('utf-8'))

    def add_file(self, fileobj: BinaryIO, chunk_size: int = 64 * 1024) -> int:
        """加入文件完整内容，返回读取的字节数"""
        content = hashlib.new(self._hasher.name)
        total = 0
        while True:
            chunk = fileobj.read(chunk_size)
            if not chunk:
                break
            content.update(chunk)
            total += len(chunk)
        self._hasher.update(total.to_bytes(8, 'little'))
        self._hasher.update(content.digest())
        return total

    def final(self) -> str:
        return self._hasher.hexdigest()


class ContentCache(ABC):
    """构建管道使用的缓存接口"""

    def new_fingerprint(self) -> Fingerprint:
        return Fingerprint()

    @abstractmethod
    def lookup(self, key: str, file_name: str) -> Optional[Path]:
        """查询已提交的结果，未命中返回 None"""
        pass

    @abstractmethod
    def output_path(self, key: str, file_name: str) -> Path:
        """返回该指纹对应的输出位置（目录会被创建）"""
        pass

    @abstractmethod
    def commit(self, key: str, path: Path) -> None:
        """提交结果；只能在 path 已完整落盘后调用"""
        pass


class DirectoryCache(ContentCache):
    """基于目录的缓存

    布局::

        <root>/o/<key>/<file_name>   归档文件
        <root>/m/<key>.json          提交记录
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _manifest_path(self, key: str) -> Path:
        return self.root / "m" / f"{key}.json"

    def lookup(self, key: str, file_name: str) -> Optional[Path]:
        manifest_path = self._manifest_path(key)
        if not manifest_path.exists():
            return None

        try:
            with open(manifest_path, 'r', encoding='utf-8') as f:
                record = json.load(f)
        except json.JSONDecodeError:
            warning(f"缓存记录已损坏，忽略: {manifest_path}", stage=LogStage.CACHE)
            return None
        except OSError as e:
            raise CacheError(f"读取缓存记录失败 {manifest_path}: {e}") from e

        if not isinstance(record, dict) or record.get('file_name') != file_name:
            debug(f"缓存记录与请求不一致: {manifest_path}", stage=LogStage.CACHE)
            return None

        archive_path = self.root / "o" / key / file_name
        try:
            size = archive_path.stat().st_size
        except FileNotFoundError:
            warning(f"缓存记录指向的归档不存在: {archive_path}", stage=LogStage.CACHE)
            return None
        except OSError as e:
            raise CacheError(f"访问缓存归档失败 {archive_path}: {e}") from e

        if size != record.get('size'):
            warning(f"缓存归档大小与记录不符 ({size} != {record.get('size')}): {archive_path}",
                    stage=LogStage.CACHE)
            return None

        return archive_path

    def output_path(self, key: str, file_name: str) -> Path:
        try:
            slot = ensure_directory(self.root / "o" / key)
        except OSError as e:
            raise CacheError(f"创建缓存目录失败: {e}") from e
        return slot / file_name

    def commit(self, key: str, path: Path) -> None:
        path = Path(path)
        try:
            digest = hashlib.sha256()
            with open(path, 'rb') as f:
                for chunk in iter(lambda: f.read(64 * 1024), b''):
                    digest.update(chunk)

            record = {
                'key': key,
                'file_name': path.name,
                'size': path.stat().st_size,
                'sha256': digest.hexdigest(),
            }

            manifest_dir = ensure_directory(self.root / "m")
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=manifest_dir)
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(record, f, indent=2, sort_keys=True)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self._manifest_path(key))
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheError(f"提交缓存记录失败 {key}: {e}") from e

        debug(f"缓存记录已提交: {key}", stage=LogStage.CACHE)
