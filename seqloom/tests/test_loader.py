"""Tests for program loading from solutions, projects and directories."""

import pytest

from seqloom.core.source_model.loader import (
    discover_projects,
    load_program,
    read_project,
    read_solution,
)
from seqloom.core.source_model.utils import detect_language, get_parser, should_skip_directory


SDK_PROJECT = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
    <AssemblyName>Demo.Core</AssemblyName>
  </PropertyGroup>
</Project>
"""

LEGACY_PROJECT = """<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <ItemGroup>
    <Compile Include="Listed.cs" />
    <Compile Include="Sub\\Nested.cs" />
  </ItemGroup>
</Project>
"""

SOLUTION = """
Microsoft Visual Studio Solution File, Format Version 12.00
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Core", "src\\Core\\Core.csproj", "{11111111-1111-1111-1111-111111111111}"
EndProject
Project("{9A19103F-16F7-4668-BE54-9A1E7A4F7556}") = "Web", "src\\Web\\Web.csproj", "{22222222-2222-2222-2222-222222222222}"
EndProject
Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Gone", "src\\Gone\\Gone.csproj", "{33333333-3333-3333-3333-333333333333}"
EndProject
"""

CLASS = "namespace Demo {{ class {name} {{ public void M() {{ }} }} }}\n"


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


# ── Tests: Projects ───────────────────────────────────────────────────────


class TestReadProject:
    """Tests for .csproj reading."""

    def test_sdk_project_uses_assembly_name_and_globs(self, tmp_path):
        proj = _write(tmp_path / "Core" / "Core.csproj", SDK_PROJECT)
        _write(tmp_path / "Core" / "A.cs", CLASS.format(name="A"))
        _write(tmp_path / "Core" / "Sub" / "B.cs", CLASS.format(name="B"))
        _write(tmp_path / "Core" / "obj" / "Gen.cs", CLASS.format(name="Gen"))

        spec = read_project(str(proj))

        assert spec.name == "Demo.Core"
        assert sorted(p.rsplit("/", 1)[-1] for p in spec.files) == ["A.cs", "B.cs"]

    def test_legacy_project_uses_compile_items(self, tmp_path):
        proj = _write(tmp_path / "Legacy.csproj", LEGACY_PROJECT)
        _write(tmp_path / "Listed.cs", CLASS.format(name="Listed"))
        _write(tmp_path / "Sub" / "Nested.cs", CLASS.format(name="Nested"))
        _write(tmp_path / "Unlisted.cs", CLASS.format(name="Unlisted"))

        spec = read_project(str(proj))

        assert spec.name == "Legacy"
        assert sorted(p.rsplit("/", 1)[-1] for p in spec.files) == ["Listed.cs", "Nested.cs"]

    def test_malformed_project_raises(self, tmp_path):
        proj = _write(tmp_path / "Bad.csproj", "<Project>")
        with pytest.raises(ValueError):
            read_project(str(proj))

    def test_nested_project_directories_excluded(self, tmp_path):
        proj = _write(tmp_path / "App.csproj", SDK_PROJECT.replace("Demo.Core", "App"))
        _write(tmp_path / "Program.cs", CLASS.format(name="Program"))
        _write(tmp_path / "Lib" / "Lib.csproj", SDK_PROJECT)
        _write(tmp_path / "Lib" / "LibClass.cs", CLASS.format(name="LibClass"))

        spec = read_project(str(proj))

        assert [p.rsplit("/", 1)[-1] for p in spec.files] == ["Program.cs"]


# ── Tests: Solutions and directories ──────────────────────────────────────


class TestDiscovery:
    """Tests for solution and directory discovery."""

    def test_solution_lists_existing_csharp_projects(self, tmp_path):
        sln = _write(tmp_path / "Demo.sln", SOLUTION)
        _write(tmp_path / "src" / "Core" / "Core.csproj", SDK_PROJECT)
        _write(tmp_path / "src" / "Core" / "A.cs", CLASS.format(name="A"))
        _write(tmp_path / "src" / "Web" / "Web.csproj", SDK_PROJECT.replace("Demo.Core", "Demo.Web"))
        _write(tmp_path / "src" / "Web" / "W.cs", CLASS.format(name="W"))

        projects = read_solution(str(sln))

        assert [p.name for p in projects] == ["Demo.Core", "Demo.Web"]

    def test_directory_without_projects_is_one_module(self, tmp_path):
        root = tmp_path / "Scripts"
        _write(root / "A.cs", CLASS.format(name="A"))

        projects = discover_projects(str(root))

        assert len(projects) == 1
        assert projects[0].name == "Scripts"

    def test_skip_directories(self):
        assert should_skip_directory("bin")
        assert should_skip_directory(".vs")
        assert not should_skip_directory("src")

    def test_detect_language(self):
        assert detect_language("Foo.CS") == "csharp"
        assert detect_language("foo.py") is None

    def test_unsupported_parser(self):
        with pytest.raises(ValueError):
            get_parser("cobol")


# ── Tests: load_program ───────────────────────────────────────────────────


class TestLoadProgram:
    """Tests for load_program entry point."""

    def test_load_solution_tags_units_with_modules(self, tmp_path):
        sln = _write(tmp_path / "Demo.sln", SOLUTION)
        _write(tmp_path / "src" / "Core" / "Core.csproj", SDK_PROJECT)
        _write(tmp_path / "src" / "Core" / "A.cs", CLASS.format(name="A"))
        _write(tmp_path / "src" / "Web" / "Web.csproj", SDK_PROJECT.replace("Demo.Core", "Demo.Web"))
        _write(tmp_path / "src" / "Web" / "W.cs", CLASS.format(name="W"))

        program = load_program(str(sln))

        assert program.name == "Demo"
        assert program.modules == ["Demo.Core", "Demo.Web"]
        assert all(not u.file_path.startswith(str(tmp_path)) for u in program.units)

    def test_load_single_project(self, tmp_path):
        proj = _write(tmp_path / "Core.csproj", SDK_PROJECT)
        _write(tmp_path / "A.cs", CLASS.format(name="A"))

        program = load_program(str(proj))

        assert [u.module for u in program.units] == ["Demo.Core"]

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_program(str(tmp_path / "nope.sln"))

    def test_unsupported_file(self, tmp_path):
        path = _write(tmp_path / "notes.txt", "hello")
        with pytest.raises(ValueError):
            load_program(str(path))

    def test_no_sources(self, tmp_path):
        with pytest.raises(ValueError):
            load_program(str(tmp_path))
