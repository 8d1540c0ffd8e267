"""Program loading: solutions, projects, directories, in-memory sources.

Produces a Program: every compilation unit tagged with its module
(assembly) name, plus the semantic model built over all of them.

Module naming follows MSBuild: <AssemblyName> from the project file when
present, otherwise the project file name.
"""

import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .csharp_model import CSharpSemanticModel
from .models import CompilationUnit, Program
from .utils import (
    PROJECT_EXTENSIONS,
    SOLUTION_EXTENSIONS,
    get_parser,
    is_supported_file,
    should_skip_directory,
)

logger = logging.getLogger(__name__)

# Project("{FAE04EC0-...}") = "Core", "src\Core\Core.csproj", "{GUID}"
_SLN_PROJECT_RE = re.compile(
    r'^Project\("\{[^}]+\}"\)\s*=\s*"([^"]+)"\s*,\s*"([^"]+\.csproj)"',
    re.MULTILINE | re.IGNORECASE,
)


@dataclass
class ProjectSpec:
    """A module to load: its name and the source files that belong to it."""
    name: str
    root: str
    files: List[str] = field(default_factory=list)


def _strip_namespace(tag: str) -> str:
    """'{http://schemas.microsoft.com/developer/msbuild/2003}Project' -> 'Project'"""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def _normalize(path: str) -> str:
    # Project files use Windows separators
    return path.replace("\\", os.sep).replace("/", os.sep)


# =========================================================================
# Project discovery
# =========================================================================


def read_project(csproj_path: str) -> ProjectSpec:
    """Read a .csproj file into a ProjectSpec.

    SDK-style projects compile every .cs file below the project directory;
    legacy projects list their sources in <Compile Include="..."/> items.

    Raises:
        ValueError: If the project file is not well-formed XML
    """
    root_dir = os.path.dirname(os.path.abspath(csproj_path))
    name = os.path.splitext(os.path.basename(csproj_path))[0]

    try:
        tree = ET.parse(csproj_path)
    except ET.ParseError as e:
        raise ValueError(f"Cannot read project file {csproj_path}: {e}") from e

    compile_items: List[str] = []
    for element in tree.getroot().iter():
        tag = _strip_namespace(element.tag)
        if tag == "AssemblyName" and element.text and element.text.strip():
            name = element.text.strip()
        elif tag == "Compile" and element.get("Include"):
            compile_items.append(element.get("Include"))

    spec = ProjectSpec(name=name, root=root_dir)
    if compile_items and not tree.getroot().get("Sdk"):
        for item in compile_items:
            path = os.path.join(root_dir, _normalize(item))
            if is_supported_file(path) and os.path.isfile(path):
                spec.files.append(path)
            else:
                logger.debug(f"Skipping compile item {item} in {csproj_path}")
    else:
        spec.files = _collect_sources(root_dir)

    logger.info(f"Project {spec.name}: {len(spec.files)} source files")
    return spec


def read_solution(sln_path: str) -> List[ProjectSpec]:
    """Read every C# project referenced by a .sln file."""
    sln_dir = os.path.dirname(os.path.abspath(sln_path))
    with open(sln_path, "r", encoding="utf-8-sig", errors="replace") as f:
        content = f.read()

    projects = []
    for display_name, rel_path in _SLN_PROJECT_RE.findall(content):
        csproj = os.path.join(sln_dir, _normalize(rel_path))
        if not os.path.isfile(csproj):
            logger.warning(f"Solution project {display_name} not found at {csproj}")
            continue
        projects.append(read_project(csproj))
    return projects


def discover_projects(directory: str) -> List[ProjectSpec]:
    """Find every .csproj below a directory.

    With no project files, the whole directory becomes one module named
    after it.
    """
    directory = os.path.abspath(directory)
    project_files = []
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = sorted(d for d in dirnames if not should_skip_directory(d))
        for name in sorted(filenames):
            if os.path.splitext(name)[1].lower() in PROJECT_EXTENSIONS:
                project_files.append(os.path.join(dirpath, name))

    if project_files:
        return [read_project(p) for p in project_files]

    name = os.path.basename(directory.rstrip(os.sep)) or "Program"
    return [ProjectSpec(name=name, root=directory, files=_collect_sources(directory))]


def _collect_sources(root_dir: str) -> List[str]:
    """Source files below root_dir, excluding nested projects' directories."""
    files = []
    for dirpath, dirnames, filenames in os.walk(root_dir):
        kept = []
        for d in sorted(dirnames):
            if should_skip_directory(d):
                continue
            sub = os.path.join(dirpath, d)
            if any(os.path.splitext(n)[1].lower() in PROJECT_EXTENSIONS for n in os.listdir(sub)):
                continue  # owned by its own project
            kept.append(d)
        dirnames[:] = kept
        for name in sorted(filenames):
            if is_supported_file(name):
                files.append(os.path.join(dirpath, name))
    return files


# =========================================================================
# Program construction
# =========================================================================


def load_program(path: str) -> Program:
    """Load a whole program from a .sln, a .csproj, or a directory.

    Raises:
        FileNotFoundError: If the path does not exist
        ValueError: If no C# sources are found
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"No such solution, project or directory: {path}")

    ext = os.path.splitext(path)[1].lower()
    if os.path.isdir(path):
        projects = discover_projects(path)
        base_dir = os.path.abspath(path)
    elif ext in SOLUTION_EXTENSIONS:
        projects = read_solution(path)
        base_dir = os.path.dirname(os.path.abspath(path))
    elif ext in PROJECT_EXTENSIONS:
        projects = [read_project(path)]
        base_dir = os.path.dirname(os.path.abspath(path))
    else:
        raise ValueError(f"Expected a .sln, .csproj or directory, got {path}")

    name = os.path.splitext(os.path.basename(os.path.abspath(path)))[0]
    return build_program(projects, base_dir=base_dir, name=name)


def build_program(projects: List[ProjectSpec], base_dir: str = "", name: str = "") -> Program:
    """Parse every project's files and build the semantic model."""
    parser = get_parser("csharp")
    units: List[CompilationUnit] = []

    for project in projects:
        for file_path in project.files:
            try:
                unit = parser.parse_file(file_path, project.name, project_root=base_dir)
            except OSError as e:
                logger.warning(f"Skipping unreadable source {file_path}: {e}")
                continue
            units.append(unit)

    if not units:
        raise ValueError(f"No C# sources found in {name or base_dir}")

    logger.info(f"Loaded {len(units)} compilation units from {len(projects)} projects")
    return Program(units=units, model=CSharpSemanticModel(units), name=name)


def load_sources(sources: Dict[str, str], module: str = "Program", name: Optional[str] = None) -> Program:
    """Build a Program from in-memory sources (file path -> C# text)."""
    parser = get_parser("csharp")
    units = [parser.parse_source(text, path, module) for path, text in sources.items()]
    return Program(units=units, model=CSharpSemanticModel(units), name=name or module)
