"""
relpack CLI 主入口

提供命令行接口，支持 build/validate/info/example 等命令。
"""

import sys
import zlib
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..utils import configure_logging
from .commands import build, validate


app = typer.Typer(
    name="relpack",
    help="relpack - 可复现的发布归档打包工具 (tar.gz / zip)",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """显示版本信息"""
    if value:
        console.print(f"relpack v{__version__}")
        raise typer.Exit()


def verbose_callback(verbose: bool) -> None:
    """配置详细输出"""
    configure_logging(level="DEBUG" if verbose else "INFO")


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="显示版本信息"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        callback=verbose_callback,
        help="启用详细输出"
    )
) -> None:
    """relpack - 可复现的发布归档打包工具

    使用 --help 查看可用命令的详细信息。
    """
    pass


app.command("build", help="构建归档")(build.build_command)
app.command("validate", help="验证配置文件")(validate.validate_command)


@app.command("info")
def info_command() -> None:
    """显示系统信息"""
    from ..build.writers import ArchiveWriterFactory
    from ..build.request import ArchiveFormat

    table = Table(title="版本信息")
    table.add_column("组件", style="cyan")
    table.add_column("版本", style="green")

    table.add_row("relpack", __version__)
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("zlib", zlib.ZLIB_RUNTIME_VERSION)

    console.print(table)
    console.print()

    format_table = Table(title="支持的归档格式")
    format_table.add_column("格式", style="cyan")
    format_table.add_column("扩展名", style="green")
    format_table.add_column("默认级别", style="green")

    for kind in ArchiveWriterFactory.get_supported_formats():
        default = ArchiveFormat.zip() if kind.value == "zip" else ArchiveFormat.tar_gz()
        format_table.add_row(kind.value, default.extension(), str(default.level))

    console.print(format_table)


@app.command("example")
def example_command(
    output: str = typer.Option(
        "relpack.yaml",
        "--output", "-o",
        help="输出配置文件路径"
    )
) -> None:
    """生成示例配置文件"""
    from ..config import ConfigError, save_config
    from ..config.schema import ArchiveConfig, ArtifactModel, FileInputModel, FormatModel

    config = ArchiveConfig(
        name="myapp-linux-x86_64-1.0.0",
        format=FormatModel(kind="tar_gz", level=9),
        files=[
            FileInputModel(path="./README.md"),
            FileInputModel(path="./LICENSE", subdir="share/doc"),
        ],
        artifacts=[
            ArtifactModel(name="myapp", kind="exe", bin="./zig-out/bin/myapp"),
            ArtifactModel(
                name="mylib",
                kind="lib",
                linkage="static",
                bin="./zig-out/lib/libmylib.a",
                header="./zig-out/include/mylib.h",
            ),
        ],
    )

    try:
        save_config(config, output)
    except ConfigError as e:
        console.print(f"[red]生成示例配置失败: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"✓ 示例配置文件已生成: [green]{output}[/green]")
    console.print("请根据需要修改配置文件，然后运行:")
    console.print(f"  [cyan]relpack build -c {output}[/cyan]")


if __name__ == "__main__":
    app()
