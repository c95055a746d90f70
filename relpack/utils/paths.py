"""
路径工具

提供路径处理相关的工具函数。
"""

from pathlib import Path
from typing import Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """确保目录存在

    Args:
        path: 目录路径

    Returns:
        Path: 目录路径
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def archive_join(*parts: str) -> str:
    """拼接归档内路径（始终使用正斜杠）

    空片段会被忽略，因此 ``archive_join("", "a.txt") == "a.txt"``。

    Raises:
        ValueError: 片段包含上级目录引用或为绝对路径
    """
    segments = []
    for part in parts:
        normalized = part.replace('\\', '/')
        if normalized.startswith('/'):
            raise ValueError(f"不允许使用绝对路径: {part}")
        for segment in normalized.split('/'):
            if segment in ('', '.'):
                continue
            if segment == '..':
                raise ValueError(f"检测到目录穿越尝试: {part}")
            segments.append(segment)
    return '/'.join(segments)


def archive_dirname(path: str) -> str:
    """归档内路径的父目录，顶层路径返回空字符串"""
    head, _, _ = path.rpartition('/')
    return head


def format_size(size_bytes: int) -> str:
    """格式化文件大小

    Args:
        size_bytes: 字节数

    Returns:
        str: 格式化的大小字符串
    """
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    else:
        return f"{size:.1f} {units[unit_index]}"
