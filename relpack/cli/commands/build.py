"""
Build 命令实现

根据配置文件构建归档的核心命令。
"""

import traceback
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ...build.builder import Builder
from ...build.cache import DirectoryCache
from ...config import load_config, request_from_config, ConfigError, ConfigValidationError
from ...utils.logging import set_log_level, set_log_file, OutputLevel


console = Console()


def build_command(
    config: str = typer.Option(..., "--config", "-c", help="配置文件路径"),
    cache_dir: Optional[str] = typer.Option(None, "--cache-dir", help="覆盖配置中的缓存目录"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="日志输出文件"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出详细调试日志 (DEBUG 级别)"),
) -> None:
    """构建归档

    从配置文件构建 tar.gz 或 zip 归档；输入内容未变化时直接复用缓存中的结果。

    示例:
        relpack build -c relpack.yaml
        relpack build -c relpack.yaml --cache-dir build/cache -v
    """
    config_path = Path(config)

    set_log_level(OutputLevel.DEBUG if verbose else OutputLevel.INFO)
    if log_file:
        set_log_file(log_file)

    try:
        console.print(f"[cyan]正在加载配置文件[/cyan]: {config_path}")
        config_obj = load_config(config_path)
    except ConfigValidationError as e:
        console.print("[red]配置验证失败:[/red]")
        console.print(e.format_errors())
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]配置错误[/red]: {e}")
        raise typer.Exit(1)

    request = request_from_config(config_obj)
    cache = DirectoryCache(Path(cache_dir) if cache_dir else config_obj.cache_dir)

    def progress_callback(stage: str, current: int, total: int, message: str = "") -> None:
        if verbose and total > 0:
            console.print(f"[blue]{stage}[/blue]: {message} ({current / total * 100:.0f}%)")

    try:
        result = Builder().build(request, cache, progress_callback=progress_callback)
    except Exception as e:
        console.print(f"[red]✗ 构建过程中发生意外错误[/red]: {e}")
        if log_file:
            console.print(f"[yellow]详细错误信息:[/yellow]\n{traceback.format_exc()}")
        raise typer.Exit(1)

    if not result.success:
        console.print(f"[red]✗ 构建失败[/red]: {result.error}")
        if log_file:
            console.print(f"[yellow]请检查日志文件 {log_file} 获取详细信息。[/yellow]")
        raise typer.Exit(1)

    source = "缓存" if result.cache_hit else "新构建"
    console.print(f"[green]✓ 归档就绪[/green] ({source}): {result.output_path}")
    console.print(f"[blue]文件名[/blue]: {request.archive_file_name()}")
    if result.output_size is not None:
        console.print(f"[blue]文件大小[/blue]: {result.output_size / (1024 * 1024):.2f} MB")
    # 供脚本读取的最后一行：归档路径
    typer.echo(str(result.output_path))
