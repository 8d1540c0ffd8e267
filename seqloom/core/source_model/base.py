"""Base interfaces for source models.

Two seams, mirroring the parser package layout:

- ``BaseSourceParser`` turns source text into a language-neutral
  ``SyntaxNode`` tree (one per compilation unit). Shared file handling
  lives here; the grammar walk is delegated to subclasses.
- ``SemanticModel`` answers whole-program symbol and type queries over
  those trees. The diagram engine only ever talks to this interface.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import tree_sitter

from .models import CompilationUnit, MethodSymbol, SyntaxNode, TypeRef

logger = logging.getLogger(__name__)


class SemanticModel(ABC):
    """Whole-program symbol/type queries.

    Subclasses implement:
    - declared_symbol(): symbol declared by a method/constructor node
    - static_type_of(): static type of an expression node
    - inferred_member_name(): member name an invocation/access refers to
    - referenced_methods(): declared methods a call-like node binds to
    """

    @abstractmethod
    def declared_symbol(self, node: SyntaxNode) -> Optional[MethodSymbol]:
        """Return the symbol declared by a method or constructor node."""
        ...

    @abstractmethod
    def static_type_of(self, node: SyntaxNode) -> Optional[TypeRef]:
        """Return the static type of an expression, or None if it has none.

        None means "no type" (a method group, a void call). An expression
        whose type exists but is not a named type (array, type parameter,
        unresolvable symbol) yields a TypeRef with ``is_named=False``.
        """
        ...

    @abstractmethod
    def inferred_member_name(self, node: SyntaxNode) -> Optional[str]:
        """Return the member name an invocation or member access refers to."""
        ...

    @abstractmethod
    def referenced_methods(self, node: SyntaxNode) -> List[MethodSymbol]:
        """Return the declared methods a call-like node refers to.

        Used once per run to build the caller index. Nodes that reference
        nothing return an empty list.
        """
        ...


class BaseSourceParser(ABC):
    """Abstract base for tree-sitter backed source parsers.

    Subclasses implement:
    - get_language(): returns language name string
    - get_tree_sitter_language(): returns tree-sitter Language object
    - convert_tree(): maps the tree-sitter AST onto SyntaxNode
    """

    @abstractmethod
    def get_language(self) -> str:
        """Return the language identifier (e.g., 'csharp')."""
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        """Return the tree-sitter Language object for this language."""
        ...

    @abstractmethod
    def convert_tree(self, tree: tree_sitter.Tree, source: bytes) -> SyntaxNode:
        """Convert a parsed tree-sitter tree into a SyntaxNode tree.

        Args:
            tree: Parsed tree-sitter tree
            source: Raw source bytes

        Returns:
            Root SyntaxNode of the compilation unit
        """
        ...

    def parse_file(self, file_path: str, module: str, project_root: str = "") -> CompilationUnit:
        """Parse a source file into a CompilationUnit.

        Args:
            file_path: Absolute path to the source file
            module: Name of the module (assembly) the file belongs to
            project_root: Root for computing the relative path kept on the unit

        Raises:
            OSError: If the file cannot be read
        """
        if project_root and file_path.startswith(project_root):
            rel_path = file_path[len(project_root):].lstrip("/\\")
        else:
            rel_path = file_path

        with open(file_path, "r", encoding="utf-8-sig", errors="replace") as f:
            source_text = f.read()

        return self.parse_source(source_text, rel_path, module)

    def parse_source(self, source_text: str, file_path: str, module: str) -> CompilationUnit:
        """Parse source code string into a CompilationUnit."""
        source_bytes = source_text.encode("utf-8")

        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        tree = parser.parse(source_bytes)

        has_errors = tree.root_node.has_error
        if has_errors:
            # tree-sitter recovers; keep whatever it produced
            logger.warning(f"Tree-sitter reported parse errors in {file_path}")

        root = self.convert_tree(tree, source_bytes)
        return CompilationUnit(file_path=file_path, module=module, root=root, has_errors=has_errors)
