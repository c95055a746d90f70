"""
日志工具 - 统一输出门面

提供带时间戳的统一输出接口，封装底层的 Rich Console。
归档构建的每个阶段（解析、指纹、缓存、写入、提交）都通过这里输出。
"""

import atexit
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from rich.console import Console
from rich.markup import escape


class OutputLevel:
    """输出级别常量"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogStage:
    """日志阶段标记"""
    INIT = "INIT"
    RESOLVE = "RESOLVE"
    FINGERPRINT = "FINGERPRINT"
    CACHE = "CACHE"
    WRITE = "WRITE"
    COMMIT = "COMMIT"
    DONE = "DONE"


_LEVEL_ORDER = {
    OutputLevel.DEBUG: 0,
    OutputLevel.INFO: 1,
    OutputLevel.SUCCESS: 1,
    OutputLevel.WARNING: 2,
    OutputLevel.ERROR: 3,
}

_LEVEL_STYLES = {
    OutputLevel.DEBUG: "dim",
    OutputLevel.INFO: "default",
    OutputLevel.SUCCESS: "green",
    OutputLevel.WARNING: "yellow",
    OutputLevel.ERROR: "red bold",
}


class OutputFacade:
    """输出门面

    统一封装所有输出操作。所有输出都包含时间戳，支持彩色输出，
    并可同时写入日志文件。多个构建线程共享同一个实例，内部加锁。
    """

    def __init__(self):
        self._lock = threading.RLock()
        # 不绑定具体的流对象，每次输出时跟随当前的 sys.stdout / sys.stderr
        self._console = Console(
            color_system="auto",
            markup=True,
            emoji=False,
            highlight=False,
            log_time=False,
            log_path=False,
        )
        self._error_console = Console(stderr=True, highlight=False)
        self._file_handle: Optional[Any] = None
        self._log_level = OutputLevel.INFO
        self._date_format = "%Y-%m-%d %H:%M:%S"
        self._time_format = "%H:%M:%S"

    def _get_timestamp(self, include_date: bool = False) -> str:
        now = datetime.now()
        return now.strftime(self._date_format if include_date else self._time_format)

    def _should_output(self, level: str) -> bool:
        current_level = _LEVEL_ORDER.get(self._log_level, 1)
        return _LEVEL_ORDER.get(level, 1) >= current_level

    def _format_message(self, message: str, level: str, stage: Optional[str] = None,
                        include_date: bool = False) -> str:
        """格式化纯文本消息（用于日志文件）"""
        timestamp = self._get_timestamp(include_date)
        if stage:
            return f"[{timestamp}] [{level}] [{stage}] {message}"
        return f"[{timestamp}] [{level}] {message}"

    def _emit(self, message: str, level: str, stage: Optional[str] = None, **kwargs):
        if not self._should_output(level):
            return

        with self._lock:
            timestamp = self._get_timestamp()
            stage_part = f" [cyan]{stage}[/cyan]" if stage else ""
            formatted = f"[dim]{timestamp}[/dim] [bold]{level}[/bold]{stage_part} {escape(message)}"

            # 错误输出到 stderr
            console = self._error_console if level == OutputLevel.ERROR else self._console
            console.print(formatted, style=_LEVEL_STYLES.get(level, "default"), **kwargs)

            self._write_to_file(message, level, stage)

    def _write_to_file(self, message: str, level: str, stage: Optional[str] = None):
        if not self._file_handle:
            return
        self._file_handle.write(self._format_message(message, level, stage, include_date=True) + "\n")
        self._file_handle.flush()

    def set_level(self, level: str):
        """设置输出级别"""
        with self._lock:
            if level not in _LEVEL_ORDER:
                raise ValueError(f"未知的日志级别: {level}")
            self._log_level = level

    def set_log_file(self, file_path: Union[str, Path]):
        """设置日志文件（追加模式）"""
        with self._lock:
            self._close_file()
            log_path = Path(file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = open(log_path, 'a', encoding='utf-8')

    def debug(self, message: str, stage: Optional[str] = None, **kwargs):
        self._emit(message, OutputLevel.DEBUG, stage, **kwargs)

    def info(self, message: str, stage: Optional[str] = None, **kwargs):
        self._emit(message, OutputLevel.INFO, stage, **kwargs)

    def success(self, message: str, stage: Optional[str] = None, **kwargs):
        self._emit(message, OutputLevel.SUCCESS, stage, **kwargs)

    def warning(self, message: str, stage: Optional[str] = None, **kwargs):
        self._emit(message, OutputLevel.WARNING, stage, **kwargs)

    def error(self, message: str, stage: Optional[str] = None, **kwargs):
        self._emit(message, OutputLevel.ERROR, stage, **kwargs)

    def _close_file(self):
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None

    def close(self):
        """关闭输出门面"""
        with self._lock:
            self._close_file()


# 全局输出门面实例
_output_facade: Optional[OutputFacade] = None
_facade_lock = threading.Lock()


def get_output_facade() -> OutputFacade:
    """获取全局输出门面实例"""
    global _output_facade
    with _facade_lock:
        if _output_facade is None:
            _output_facade = OutputFacade()
        return _output_facade


def debug(message: str, stage: Optional[str] = None, **kwargs):
    """调试信息输出"""
    get_output_facade().debug(message, stage, **kwargs)


def info(message: str, stage: Optional[str] = None, **kwargs):
    """普通信息输出"""
    get_output_facade().info(message, stage, **kwargs)


def success(message: str, stage: Optional[str] = None, **kwargs):
    """成功信息输出"""
    get_output_facade().success(message, stage, **kwargs)


def warning(message: str, stage: Optional[str] = None, **kwargs):
    """警告信息输出"""
    get_output_facade().warning(message, stage, **kwargs)


def error(message: str, stage: Optional[str] = None, **kwargs):
    """错误信息输出"""
    get_output_facade().error(message, stage, **kwargs)


def set_log_level(level: str):
    """设置全局日志级别"""
    get_output_facade().set_level(level)


def set_log_file(file_path: Union[str, Path]):
    """设置全局日志文件"""
    get_output_facade().set_log_file(file_path)


def close_logger():
    """关闭日志系统"""
    global _output_facade
    with _facade_lock:
        if _output_facade:
            _output_facade.close()
            _output_facade = None


class StageLogger:
    """绑定到某个阶段的日志器"""

    def __init__(self, stage: str):
        self.stage = stage

    def debug(self, message: str, **kwargs):
        debug(message, self.stage, **kwargs)

    def info(self, message: str, **kwargs):
        info(message, self.stage, **kwargs)

    def success(self, message: str, **kwargs):
        success(message, self.stage, **kwargs)

    def warning(self, message: str, **kwargs):
        warning(message, self.stage, **kwargs)

    def error(self, message: str, **kwargs):
        error(message, self.stage, **kwargs)


def get_stage_logger(stage: str) -> StageLogger:
    """获取阶段日志器"""
    return StageLogger(stage)


def configure_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None):
    """配置日志系统"""
    set_log_level(level)
    if log_file:
        set_log_file(log_file)


atexit.register(close_logger)
