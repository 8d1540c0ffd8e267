"""Source model data structures.

Language-neutral syntax tree plus the symbol/type records the diagram
engine consumes. These are pure data containers with no parsing logic.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .base import SemanticModel


class NodeKind(Enum):
    """Syntactic kinds the diagram walker dispatches on."""
    COMPILATION_UNIT = "compilation_unit"
    NAMESPACE = "namespace"
    TYPE_DECLARATION = "type_declaration"
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    INVOCATION = "invocation"
    MEMBER_ACCESS = "member_access"
    IDENTIFIER = "identifier"
    IF = "if"
    FOR = "for"
    FOREACH = "foreach"
    WHILE = "while"
    DO = "do"
    OTHER = "other"


class SyntaxNode:
    """A node of a parsed compilation unit.

    Text is either given explicitly or sliced lazily from the shared
    source bytes of the unit, so large files don't hold a copy of their
    source per node.
    """

    __slots__ = (
        "kind", "syntax_type", "children", "parent", "field",
        "line", "column", "start_byte", "end_byte", "_text", "_source",
    )

    def __init__(
        self,
        kind: NodeKind,
        syntax_type: str = "",
        text: Optional[str] = None,
        children: Optional[List["SyntaxNode"]] = None,
        field: Optional[str] = None,
        line: int = 0,
        column: int = 0,
        start_byte: int = 0,
        end_byte: int = 0,
        source: Optional[bytes] = None,
    ):
        self.kind = kind
        self.syntax_type = syntax_type or kind.value
        self.children: List[SyntaxNode] = []
        self.parent: Optional[SyntaxNode] = None
        self.field = field
        self.line = line
        self.column = column
        self.start_byte = start_byte
        self.end_byte = end_byte
        self._text = text
        self._source = source
        for child in children or []:
            self.add_child(child)

    def __repr__(self) -> str:
        return f"SyntaxNode({self.kind.name}, {self.syntax_type!r}, line={self.line})"

    @property
    def text(self) -> str:
        if self._text is None:
            if self._source is None:
                return ""
            self._text = self._source[self.start_byte:self.end_byte].decode("utf-8", errors="replace")
        return self._text

    def add_child(self, child: "SyntaxNode") -> "SyntaxNode":
        child.parent = self
        self.children.append(child)
        return child

    def child(self, field_name: str) -> Optional["SyntaxNode"]:
        """First child occupying the given grammar field."""
        for c in self.children:
            if c.field == field_name:
                return c
        return None

    @property
    def declared_name(self) -> Optional[str]:
        """Text of the ``name`` child (declarations), if any."""
        name = self.child("name")
        return name.text if name is not None else None

    def child_of_type(self, *syntax_types: str) -> Optional["SyntaxNode"]:
        for c in self.children:
            if c.syntax_type in syntax_types:
                return c
        return None

    def enclosing(self, *kinds: NodeKind) -> Optional["SyntaxNode"]:
        """Nearest ancestor (excluding self) whose kind is one of ``kinds``."""
        node = self.parent
        while node is not None and node.kind not in kinds:
            node = node.parent
        return node

    def is_ancestor_of(self, other: "SyntaxNode") -> bool:
        node = other.parent
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def walk(self) -> Iterator["SyntaxNode"]:
        """Pre-order iteration over this node and all descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class TypeRef:
    """Static type of an expression.

    ``is_named`` is False for arrays, pointers, type parameters and
    anything the model could not bind to a type.
    """
    qualified_name: str
    is_named: bool = True

    @property
    def simple_name(self) -> str:
        # System.Collections.Generic.List<Demo.Foo> -> List<Demo.Foo>
        head, sep, generic = self.qualified_name.partition("<")
        return head.rsplit(".", 1)[-1] + sep + generic


# Result type of a call or member the program does not declare
UNKNOWN_TYPE = TypeRef("?", is_named=False)


@dataclass(frozen=True)
class MethodSymbol:
    """A declared method or constructor."""
    module: str
    type_name: str  # qualified name of the declaring type
    name: str
    arity: int = 0
    line: int = 0
    is_constructor: bool = False

    def __str__(self) -> str:
        return f"{self.type_name}.{self.name}/{self.arity}"


@dataclass(frozen=True)
class CallSite:
    """A location in the program that references a method."""
    file_path: str
    line: int
    column: int = 0
    caller: Optional[MethodSymbol] = None


@dataclass
class CompilationUnit:
    """One parsed source file and the module (assembly) it belongs to."""
    file_path: str
    module: str
    root: SyntaxNode
    has_errors: bool = False


@dataclass
class Program:
    """The whole analyzed program: every compilation unit plus the
    semantic model answering symbol and type queries over them."""
    units: List[CompilationUnit]
    model: "SemanticModel"
    name: str = ""

    @property
    def modules(self) -> List[str]:
        seen: List[str] = []
        for unit in self.units:
            if unit.module not in seen:
                seen.append(unit.module)
        return seen
