"""
归档请求单元测试

测试格式校验、制品附带文件的目录推导、输入顺序以及构建时的文件解析。
"""

import os
from pathlib import Path

import pytest

from relpack.build.artifact import Artifact, ArtifactKind, Linkage
from relpack.build.build_context import BuildError
from relpack.build.request import (
    AddArtifactOptions,
    ArchiveFormat,
    ArchiveRequest,
    ArtifactDirectory,
    FileEntry,
    FormatKind,
    SourceFileError,
)


def _subdirs(entry):
    return {
        slot: getattr(entry, slot).subdir if getattr(entry, slot) else None
        for slot in ("bin", "pdb", "implib", "header")
    }


class TestArchiveFormat:
    """ArchiveFormat 测试"""

    def test_defaults(self):
        """测试默认格式为 tar.gz 最高压缩级别"""
        fmt = ArchiveFormat()
        assert fmt.kind == FormatKind.TAR_GZ
        assert fmt.level == 9
        assert fmt.extension() == ".tar.gz"

    def test_zip(self):
        fmt = ArchiveFormat.zip()
        assert fmt.kind == FormatKind.ZIP
        assert fmt.level == 6
        assert fmt.extension() == ".zip"

    def test_invalid_level(self):
        """测试压缩级别超出范围"""
        with pytest.raises(ValueError):
            ArchiveFormat.tar_gz(10)
        with pytest.raises(ValueError):
            ArchiveFormat.zip(-1)

    def test_frozen(self):
        fmt = ArchiveFormat.tar_gz(3)
        with pytest.raises(AttributeError):
            fmt.level = 5


class TestArchiveRequest:
    """ArchiveRequest 测试"""

    def test_archive_file_name(self):
        request = ArchiveRequest("myapp-1.0", ArchiveFormat.zip())
        assert request.archive_file_name() == "myapp-1.0.zip"

        request = ArchiveRequest("myapp-1.0")
        assert request.archive_file_name() == "myapp-1.0.tar.gz"

    @pytest.mark.parametrize("name", ["", "a/b", "a\\b", ".", ".."])
    def test_invalid_name(self, name):
        """测试无效的归档名称"""
        with pytest.raises(ValueError):
            ArchiveRequest(name)

    def test_add_file_not_checked(self, tmp_path):
        """测试添加文件时不检查文件是否存在"""
        request = ArchiveRequest("pkg")
        entry = request.add_file(tmp_path / "missing.txt", "share/doc")

        assert entry.subdir == "share/doc"
        assert request.input_files == [entry]

    def test_add_file_subdir_normalized(self, tmp_path):
        """测试子目录中的多余分隔符被规整"""
        request = ArchiveRequest("pkg")
        assert request.add_file(tmp_path / "a", "./share//doc/").subdir == "share/doc"
        assert request.add_file(tmp_path / "a").subdir == ""

    def test_add_file_subdir_escape(self, tmp_path):
        """测试子目录不能跳出归档根目录"""
        request = ArchiveRequest("pkg")
        with pytest.raises(ValueError):
            request.add_file(tmp_path / "a", "../outside")
        with pytest.raises(ValueError):
            request.add_file(tmp_path / "a", "/abs")

    def test_iter_entries_order(self, tmp_path):
        """测试先普通文件，再按制品依次 bin/pdb/implib/header"""
        request = ArchiveRequest("pkg")
        readme = request.add_file(tmp_path / "README")
        lib = request.add_artifact(Artifact(
            name="core",
            kind=ArtifactKind.LIB,
            linkage=Linkage.DYNAMIC,
            bin=tmp_path / "core.dll",
            pdb=tmp_path / "core.pdb",
            implib=tmp_path / "core.lib",
            header=tmp_path / "core.h",
        ))
        exe = request.add_artifact(Artifact(name="app", kind=ArtifactKind.EXE, bin=tmp_path / "app"))
        license_file = request.add_file(tmp_path / "LICENSE")

        entries = list(request.iter_entries())
        assert entries == [readme, license_file, lib.bin, lib.pdb, lib.implib, lib.header, exe.bin]

    def test_repr(self):
        request = ArchiveRequest("pkg", ArchiveFormat.zip())
        assert "pkg" in repr(request)
        assert "zip" in repr(request)


class TestAddArtifact:
    """制品目录推导测试"""

    def test_exe_defaults(self, tmp_path):
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(Artifact(name="app", kind=ArtifactKind.EXE, bin=tmp_path / "app"))
        assert _subdirs(entry) == {"bin": "bin", "pdb": None, "implib": None, "header": None}

    def test_test_defaults(self, tmp_path):
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(Artifact(name="t", kind=ArtifactKind.TEST, bin=tmp_path / "t"))
        assert entry.bin.subdir == "bin"

    def test_obj_defaults(self, tmp_path):
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(Artifact(name="o", kind=ArtifactKind.OBJ, bin=tmp_path / "o.o"))
        assert entry.bin.subdir == "obj"

    def test_static_lib_defaults(self, tmp_path):
        """测试静态库放入 lib，头文件放入 include"""
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(Artifact(
            name="core",
            kind=ArtifactKind.LIB,
            linkage=Linkage.STATIC,
            bin=tmp_path / "libcore.a",
            header=tmp_path / "core.h",
        ))
        assert _subdirs(entry) == {"bin": "lib", "pdb": None, "implib": None, "header": "include"}

    def test_dynamic_lib_defaults(self, tmp_path):
        """测试动态库放入 bin，pdb 放入 bin，导入库放入 lib"""
        artifact = Artifact(
            name="core",
            kind=ArtifactKind.LIB,
            linkage=Linkage.DYNAMIC,
            bin=tmp_path / "core.dll",
            pdb=tmp_path / "core.pdb",
            implib=tmp_path / "core.lib",
        )
        assert artifact.is_dll()

        request = ArchiveRequest("pkg")
        entry = request.add_artifact(artifact)
        assert _subdirs(entry) == {"bin": "bin", "pdb": "bin", "implib": "lib", "header": None}

    def test_header_only_for_lib(self, tmp_path):
        """测试非库制品即使带有头文件路径也不默认打包"""
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(Artifact(
            name="app", kind=ArtifactKind.EXE, bin=tmp_path / "app", header=tmp_path / "app.h",
        ))
        assert entry.header is None

    def test_disabled(self, tmp_path):
        """测试禁用的附带文件不生成条目"""
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(
            Artifact(
                name="core",
                kind=ArtifactKind.LIB,
                linkage=Linkage.DYNAMIC,
                bin=tmp_path / "core.dll",
                pdb=tmp_path / "core.pdb",
            ),
            AddArtifactOptions(bin_dir=ArtifactDirectory.DISABLED, pdb_dir=ArtifactDirectory.DISABLED),
        )
        assert entry.files() == []
        assert list(request.iter_entries()) == []

    def test_override(self, tmp_path):
        """测试自定义子目录"""
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(
            Artifact(name="app", kind=ArtifactKind.EXE, bin=tmp_path / "app", pdb=tmp_path / "app.pdb"),
            AddArtifactOptions(bin_dir="tools/x64", pdb_dir="debug"),
        )
        assert entry.bin.subdir == "tools/x64"
        assert entry.pdb.subdir == "debug"

    def test_override_without_file(self, tmp_path):
        """测试为不会生成的文件指定目录时，构建解析阶段报错"""
        request = ArchiveRequest("pkg")
        entry = request.add_artifact(
            Artifact(name="app", kind=ArtifactKind.EXE, bin=tmp_path / "app"),
            AddArtifactOptions(pdb_dir="debug"),
        )
        assert entry.pdb is not None
        assert entry.pdb.source is None

        with pytest.raises(SourceFileError, match="app"):
            entry.pdb.resolve()


class TestFileEntryResolve:
    """FileEntry 解析测试"""

    def test_resolve(self, tmp_path):
        src = tmp_path / "tool"
        src.write_bytes(b"12345")
        os.chmod(src, 0o755)
        os.utime(src, (1700000000, 1700000000))

        resolved = FileEntry(subdir="bin", source=src).resolve()
        assert resolved.path == src
        assert resolved.subpath == "bin/tool"
        assert resolved.size == 5
        assert resolved.mtime == 1700000000
        assert resolved.mode == 0o755

    def test_resolve_root(self, tmp_path):
        src = tmp_path / "README"
        src.write_text("hi")
        assert FileEntry(subdir="", source=str(src)).resolve().subpath == "README"

    def test_callable_source(self, tmp_path):
        """测试延迟路径在解析时才求值"""
        src = tmp_path / "late.txt"
        calls = []

        def locate():
            calls.append(1)
            return src

        entry = FileEntry(subdir="", source=locate)
        assert calls == []

        src.write_text("late")
        resolved = entry.resolve()
        assert calls == [1]
        assert resolved.path == Path(src)

    def test_missing(self, tmp_path):
        """测试文件不存在"""
        with pytest.raises(SourceFileError):
            FileEntry(subdir="", source=tmp_path / "missing").resolve()

    def test_directory_rejected(self, tmp_path):
        """测试目录不是合法输入"""
        with pytest.raises(SourceFileError, match="普通文件"):
            FileEntry(subdir="", source=tmp_path).resolve()

    def test_source_file_error_is_build_error(self, tmp_path):
        with pytest.raises(BuildError):
            FileEntry(subdir="", source=tmp_path / "missing").resolve()
