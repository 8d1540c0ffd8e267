"""SeqLoom source model — tree-sitter based program loading.

Public API:
    load_program(path) → Program          (.sln, .csproj or directory)
    load_sources({path: text}, module) → Program
    SemanticModel                          (interface the diagram engine consumes)
"""

from .base import SemanticModel
from .loader import build_program, load_program, load_sources
from .models import (
    CallSite,
    CompilationUnit,
    MethodSymbol,
    NodeKind,
    Program,
    SyntaxNode,
    TypeRef,
)

__all__ = [
    "load_program",
    "load_sources",
    "build_program",
    "SemanticModel",
    "CallSite",
    "CompilationUnit",
    "MethodSymbol",
    "NodeKind",
    "Program",
    "SyntaxNode",
    "TypeRef",
]
