"""C# source model using tree-sitter.

CSharpParser converts tree-sitter ASTs into SyntaxNode trees.
CSharpSemanticModel indexes every type, member and method declared across
all compilation units and answers the symbol/type queries the diagram
engine needs. Type binding is declaration based: locals, parameters,
fields and properties resolve to their declared types; `var` takes the
type of its initializer; types outside the program are kept as written.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

import tree_sitter
import tree_sitter_c_sharp

from .base import BaseSourceParser, SemanticModel
from .models import UNKNOWN_TYPE, CompilationUnit, MethodSymbol, NodeKind, SyntaxNode, TypeRef

logger = logging.getLogger(__name__)

_CSHARP_LANGUAGE = tree_sitter.Language(tree_sitter_c_sharp.language())

# tree-sitter node type -> NodeKind
_KIND_MAP: Dict[str, NodeKind] = {
    "compilation_unit": NodeKind.COMPILATION_UNIT,
    "namespace_declaration": NodeKind.NAMESPACE,
    "file_scoped_namespace_declaration": NodeKind.NAMESPACE,
    "class_declaration": NodeKind.TYPE_DECLARATION,
    "struct_declaration": NodeKind.TYPE_DECLARATION,
    "record_declaration": NodeKind.TYPE_DECLARATION,
    "record_struct_declaration": NodeKind.TYPE_DECLARATION,
    "interface_declaration": NodeKind.TYPE_DECLARATION,
    "method_declaration": NodeKind.METHOD,
    "constructor_declaration": NodeKind.CONSTRUCTOR,
    "invocation_expression": NodeKind.INVOCATION,
    "member_access_expression": NodeKind.MEMBER_ACCESS,
    "identifier": NodeKind.IDENTIFIER,
    "generic_name": NodeKind.IDENTIFIER,
    "if_statement": NodeKind.IF,
    "for_statement": NodeKind.FOR,
    # grammar versions before 0.21 call it for_each_statement
    "foreach_statement": NodeKind.FOREACH,
    "for_each_statement": NodeKind.FOREACH,
    "while_statement": NodeKind.WHILE,
    "do_statement": NodeKind.DO,
}

# Types that exist but are not named types
_NON_NAMED_TYPES = frozenset({
    "array_type", "pointer_type", "function_pointer_type",
})

_THIS_TYPES = frozenset({"this_expression", "this"})
_BASE_TYPES = frozenset({"base_expression", "base"})

# Keyword tokens kept even where the grammar leaves them anonymous
_KEPT_TOKENS = _THIS_TYPES | _BASE_TYPES

# Parents under which a bare method name is a method-group reference
_VALUE_PARENTS = frozenset({
    "argument", "assignment_expression", "equals_value_clause",
    "variable_declarator", "return_statement", "arrow_expression_clause",
})

_NOT_FOUND = object()


@dataclass
class DeclaredType:
    """A class/struct/record/interface declared in the program.

    Partial declarations across files merge into one DeclaredType.
    """
    name: str
    qualified_name: str
    module: str
    nodes: List[SyntaxNode] = field(default_factory=list)
    bases: List[str] = field(default_factory=list)
    members: Dict[str, Optional[SyntaxNode]] = field(default_factory=dict)  # field/property -> type node
    methods: Dict[str, List[MethodSymbol]] = field(default_factory=dict)


class CSharpParser(BaseSourceParser):
    """tree-sitter based C# parser producing SyntaxNode trees.

    Only named, non-comment nodes (plus the `this`/`base` keywords) are
    kept; the grammar field each node occupies in its parent is preserved
    so callers can ask for ``node.child("function")`` and friends.
    """

    def get_language(self) -> str:
        return "csharp"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _CSHARP_LANGUAGE

    def convert_tree(self, tree: tree_sitter.Tree, source: bytes) -> SyntaxNode:
        return self._convert(tree.root_node, source, None)

    def _convert(self, ts_node: tree_sitter.Node, source: bytes, field_name: Optional[str]) -> SyntaxNode:
        node = SyntaxNode(
            kind=_KIND_MAP.get(ts_node.type, NodeKind.OTHER),
            syntax_type=ts_node.type,
            field=field_name,
            line=ts_node.start_point[0] + 1,
            column=ts_node.start_point[1],
            start_byte=ts_node.start_byte,
            end_byte=ts_node.end_byte,
            source=source,
        )

        cursor = ts_node.walk()
        if cursor.goto_first_child():
            while True:
                child = cursor.node
                if (child.is_named and child.type != "comment") or child.type in _KEPT_TOKENS:
                    node.add_child(self._convert(child, source, cursor.field_name))
                if not cursor.goto_next_sibling():
                    break
        return node


class CSharpSemanticModel(SemanticModel):
    """Declaration-based semantic model over a set of C# compilation units.

    Args:
        units: Every compilation unit of the program (all modules)
    """

    def __init__(self, units: List[CompilationUnit]):
        self._module_by_root: Dict[SyntaxNode, str] = {}
        self._types: Dict[Tuple[str, str], DeclaredType] = {}  # (module, qualified) -> type
        self._types_by_name: Dict[str, List[DeclaredType]] = {}
        self._type_by_node: Dict[SyntaxNode, DeclaredType] = {}
        self._symbols: Dict[SyntaxNode, MethodSymbol] = {}
        self._method_nodes: Dict[MethodSymbol, SyntaxNode] = {}
        self._methods_by_name: Dict[str, List[MethodSymbol]] = {}
        self._scope_decls: Dict[SyntaxNode, List[Tuple[str, SyntaxNode, SyntaxNode]]] = {}

        for unit in units:
            self._module_by_root[unit.root] = unit.module
            self._collect(unit.root, unit, namespace="", outer="")

        logger.info(
            f"Indexed {len(self._types)} types and {len(self._method_nodes)} methods "
            f"across {len(units)} compilation units"
        )

    # =========================================================================
    # Declaration table
    # =========================================================================

    def _collect(self, node: SyntaxNode, unit: CompilationUnit, namespace: str, outer: str) -> None:
        for child in node.children:
            if child.kind == NodeKind.NAMESPACE:
                ns_name = child.declared_name or ""
                full_ns = f"{namespace}.{ns_name}" if namespace and ns_name else (ns_name or namespace)
                self._collect(child, unit, full_ns, outer)
                if child.syntax_type == "file_scoped_namespace_declaration":
                    # `namespace Demo;` covers the declarations that follow it
                    namespace = full_ns
            elif child.syntax_type == "declaration_list":
                self._collect(child, unit, namespace, outer)
            elif child.kind == NodeKind.TYPE_DECLARATION:
                self._declare_type(child, unit, namespace, outer)

    def _declare_type(self, node: SyntaxNode, unit: CompilationUnit, namespace: str, outer: str) -> None:
        name = node.declared_name
        if not name:
            return

        prefix = outer or namespace
        qualified = f"{prefix}.{name}" if prefix else name

        declared = self._types.get((unit.module, qualified))
        if declared is None:
            declared = DeclaredType(name=name, qualified_name=qualified, module=unit.module)
            self._types[(unit.module, qualified)] = declared
            self._types_by_name.setdefault(name, []).append(declared)
        declared.nodes.append(node)
        self._type_by_node[node] = declared

        base_list = node.child_of_type("base_list")
        if base_list:
            for base in base_list.children:
                text = base.text.strip()
                if text:
                    declared.bases.append(text)

        # Primary constructor / positional record parameters behave like members
        params = node.child_of_type("parameter_list")
        if params:
            for param in params.children:
                if param.syntax_type == "parameter" and param.declared_name:
                    declared.members[param.declared_name] = param.child("type")

        body = node.child_of_type("declaration_list")
        if body is None:
            return

        for member in body.children:
            if member.syntax_type in ("field_declaration", "event_field_declaration"):
                var_decl = member.child_of_type("variable_declaration")
                if var_decl is None:
                    continue
                type_node = var_decl.child("type")
                for declarator in var_decl.children:
                    if declarator.syntax_type == "variable_declarator":
                        var_name = self._declarator_name(declarator)
                        if var_name:
                            declared.members[var_name.text] = type_node

            elif member.syntax_type in ("property_declaration", "event_declaration"):
                if member.declared_name:
                    declared.members[member.declared_name] = member.child("type")

            elif member.kind in (NodeKind.METHOD, NodeKind.CONSTRUCTOR):
                self._declare_method(member, unit, declared)

            elif member.kind == NodeKind.TYPE_DECLARATION:
                self._declare_type(member, unit, namespace, qualified)

    def _declare_method(self, node: SyntaxNode, unit: CompilationUnit, declared: DeclaredType) -> None:
        name = node.declared_name
        if not name:
            return

        params = node.child("parameters") or node.child_of_type("parameter_list")
        arity = sum(1 for p in params.children if p.syntax_type == "parameter") if params else 0

        symbol = MethodSymbol(
            module=unit.module,
            type_name=declared.qualified_name,
            name=name,
            arity=arity,
            line=node.line,
            is_constructor=node.kind == NodeKind.CONSTRUCTOR,
        )
        self._symbols[node] = symbol
        self._method_nodes[symbol] = node
        declared.methods.setdefault(name, []).append(symbol)
        if not symbol.is_constructor:
            self._methods_by_name.setdefault(name, []).append(symbol)

    @staticmethod
    def _declarator_name(declarator: SyntaxNode) -> Optional[SyntaxNode]:
        return declarator.child("name") or declarator.child_of_type("identifier")

    # =========================================================================
    # SemanticModel interface
    # =========================================================================

    def declared_symbol(self, node: SyntaxNode) -> Optional[MethodSymbol]:
        return self._symbols.get(node)

    def static_type_of(self, node: SyntaxNode) -> Optional[TypeRef]:
        if node.kind == NodeKind.IDENTIFIER:
            return self._identifier_type(node)

        if node.kind == NodeKind.INVOCATION:
            targets = self._invocation_targets(node)
            return self._return_type(targets[0]) if targets else UNKNOWN_TYPE

        if node.kind == NodeKind.MEMBER_ACCESS:
            if self._is_callee(node):
                return None  # method group
            return self._member_access_type(node)

        st = node.syntax_type
        if st in _THIS_TYPES:
            declared = self._enclosing_type(node)
            return TypeRef(declared.qualified_name) if declared else None

        if st in _BASE_TYPES:
            declared = self._enclosing_type(node)
            if declared is None or not declared.bases:
                return None
            base = self._lookup_type(declared.bases[0], declared.module)
            return TypeRef(base.qualified_name) if base else TypeRef(declared.bases[0])

        if st in ("object_creation_expression", "cast_expression"):
            type_node = node.child("type")
            return self._type_ref(type_node) if type_node else None

        if st == "parenthesized_expression" and node.children:
            return self.static_type_of(node.children[0])

        return None

    def inferred_member_name(self, node: SyntaxNode) -> Optional[str]:
        if node.kind == NodeKind.INVOCATION:
            callee = node.child("function")
            return self._callee_name(callee) if callee else None
        if node.kind == NodeKind.MEMBER_ACCESS:
            name = node.child("name")
            return self._simple_name(name) if name else None
        if node.kind == NodeKind.IDENTIFIER:
            return self._simple_name(node)
        return None

    def referenced_methods(self, node: SyntaxNode) -> List[MethodSymbol]:
        if node.kind == NodeKind.INVOCATION:
            return self._invocation_targets(node)

        if node.parent is None or self._is_callee(node):
            return []
        if node.parent.syntax_type not in _VALUE_PARENTS or node.field in ("name", "left", "type"):
            return []

        # Method group passed or assigned as a value: Task.Run(DoWork)
        if node.kind == NodeKind.IDENTIFIER:
            if self._local_type(node, self._simple_name(node)) is not _NOT_FOUND:
                return []
            return self._methods_in_scope(node, self._simple_name(node))

        if node.kind == NodeKind.MEMBER_ACCESS:
            declared = self._receiver_declaration(node)
            name = self.inferred_member_name(node)
            if declared and name:
                return [m for t in self._type_chain(declared) for m in t.methods.get(name, [])
                        if not m.is_constructor]
        return []

    # =========================================================================
    # Type binding
    # =========================================================================

    def _identifier_type(self, node: SyntaxNode) -> Optional[TypeRef]:
        name = self._simple_name(node)

        local = self._local_type(node, name)
        if local is not _NOT_FOUND:
            return local

        declared = self._enclosing_type(node)
        if declared:
            for t in self._type_chain(declared):
                if name in t.members:
                    type_node = t.members[name]
                    return self._type_ref(type_node) if type_node else TypeRef(name, is_named=False)
            for t in self._type_chain(declared):
                if name in t.methods:
                    return None  # method group

        if self._is_callee(node):
            return None

        target = self._lookup_type(name, self._module_of(node))
        if target:
            return TypeRef(target.qualified_name)

        return TypeRef(name, is_named=False)

    def _local_type(self, node: SyntaxNode, name: str):
        """Type of the nearest local/parameter declaration of ``name``
        preceding ``node`` in its member, or _NOT_FOUND."""
        scope = self._member_scope(node)
        if scope is None:
            return _NOT_FOUND

        best = None
        for decl_name, name_node, site in self._declarations(scope):
            if decl_name != name or name_node is node:
                continue
            if name_node.end_byte > node.start_byte:
                continue
            if site.syntax_type == "variable_declarator" and site.is_ancestor_of(node):
                continue
            if best is None or name_node.start_byte > best[0].start_byte:
                best = (name_node, site)

        if best is None:
            return _NOT_FOUND
        return self._declaration_type(best[1])

    def _declarations(self, scope: SyntaxNode) -> List[Tuple[str, SyntaxNode, SyntaxNode]]:
        cached = self._scope_decls.get(scope)
        if cached is not None:
            return cached

        decls: List[Tuple[str, SyntaxNode, SyntaxNode]] = []
        for n in scope.walk():
            st = n.syntax_type
            if st == "variable_declarator":
                name_node = self._declarator_name(n)
            elif st == "foreach_statement" or st == "for_each_statement":
                name_node = n.child("left")
                if name_node is not None and name_node.kind != NodeKind.IDENTIFIER:
                    name_node = None
            elif st in ("parameter", "catch_declaration", "declaration_expression"):
                name_node = n.child("name")
            elif st == "declaration_pattern":
                name_node = n.child("name") or n.child_of_type("single_variable_designation")
            else:
                continue
            if name_node is not None:
                decls.append((name_node.text, name_node, n))

        self._scope_decls[scope] = decls
        return decls

    def _declaration_type(self, site: SyntaxNode) -> TypeRef:
        if site.syntax_type == "variable_declarator":
            var_decl = site.parent
            type_node = var_decl.child("type") if var_decl is not None else None
        else:
            type_node = site.child("type")

        if type_node is None:
            return TypeRef(self._declarator_label(site), is_named=False)

        if self._is_implicit(type_node):
            if site.syntax_type == "variable_declarator":
                initializer = self._initializer(site)
                inferred = self.static_type_of(initializer) if initializer else None
                if inferred is not None:
                    return inferred
            return TypeRef("var", is_named=False)

        return self._type_ref(type_node) or TypeRef("void", is_named=False)

    @staticmethod
    def _declarator_label(site: SyntaxNode) -> str:
        name = site.child("name")
        return name.text if name else site.syntax_type

    @staticmethod
    def _is_implicit(type_node: SyntaxNode) -> bool:
        return type_node.syntax_type == "implicit_type" or type_node.text.strip() == "var"

    def _initializer(self, declarator: SyntaxNode) -> Optional[SyntaxNode]:
        name_node = self._declarator_name(declarator)
        for child in declarator.children:
            if child is name_node or child.syntax_type in ("bracketed_argument_list", "tuple_pattern"):
                continue
            if child.syntax_type == "equals_value_clause":
                return child.children[0] if child.children else None
            return child
        return None

    def _type_ref(self, type_node: SyntaxNode) -> Optional[TypeRef]:
        """Bind a type syntax node. Returns None for ``void``."""
        text = type_node.text.strip()
        if text == "void":
            return None
        if type_node.syntax_type in _NON_NAMED_TYPES:
            return TypeRef(text, is_named=False)
        if text in self._type_parameters_in_scope(type_node):
            return TypeRef(text, is_named=False)
        if type_node.syntax_type == "predefined_type":
            return TypeRef(text)

        bare = text.rstrip("?")
        declared = self._lookup_type(bare, self._module_of(type_node))
        if declared:
            generic = bare[bare.index("<"):] if "<" in bare else ""
            nullable = "?" if text.endswith("?") else ""
            return TypeRef(declared.qualified_name + generic + nullable)
        return TypeRef(text)

    def _return_type(self, symbol: MethodSymbol) -> Optional[TypeRef]:
        node = self._method_nodes.get(symbol)
        if node is None:
            return None
        returns = node.child("returns") or node.child("type")
        return self._type_ref(returns) if returns else None

    def _member_access_type(self, node: SyntaxNode) -> Optional[TypeRef]:
        declared = self._receiver_declaration(node)
        name = self.inferred_member_name(node)
        if declared is None or not name:
            return UNKNOWN_TYPE
        for t in self._type_chain(declared):
            if name in t.members:
                type_node = t.members[name]
                return self._type_ref(type_node) if type_node else None
            if name in t.methods:
                return None  # method group
        return UNKNOWN_TYPE

    def _receiver_declaration(self, member_access: SyntaxNode) -> Optional[DeclaredType]:
        receiver = member_access.child("expression")
        if receiver is None:
            return None
        receiver_type = self.static_type_of(receiver)
        if receiver_type is None or not receiver_type.is_named:
            return None
        return self._lookup_type(receiver_type.qualified_name.rstrip("?"), self._module_of(member_access))

    # =========================================================================
    # Method binding
    # =========================================================================

    def _invocation_targets(self, node: SyntaxNode) -> List[MethodSymbol]:
        callee = node.child("function")
        if callee is None:
            return []
        argc = self._argument_count(node)

        candidates: List[MethodSymbol] = []
        if callee.kind == NodeKind.IDENTIFIER:
            candidates = self._methods_in_scope(node, self._simple_name(callee))
        elif callee.kind == NodeKind.MEMBER_ACCESS:
            declared = self._receiver_declaration(callee)
            name = self.inferred_member_name(callee)
            if declared and name:
                candidates = [m for t in self._type_chain(declared) for m in t.methods.get(name, [])
                              if not m.is_constructor]
            if not candidates and name:
                # Unresolved receiver or extension method: bind by name
                candidates = list(self._methods_by_name.get(name, []))
        else:
            name = self._callee_name(callee)
            if name:
                candidates = list(self._methods_by_name.get(name, []))

        return self._by_arity(candidates, argc)

    def _methods_in_scope(self, node: SyntaxNode, name: str) -> List[MethodSymbol]:
        """Methods named ``name`` visible unqualified from ``node``:
        the enclosing type, its bases, then any outer types."""
        found: List[MethodSymbol] = []
        type_node = node.enclosing(NodeKind.TYPE_DECLARATION)
        while type_node is not None:
            declared = self._type_by_node.get(type_node)
            if declared:
                for t in self._type_chain(declared):
                    found.extend(m for m in t.methods.get(name, []) if not m.is_constructor)
            if found:
                return found
            type_node = type_node.enclosing(NodeKind.TYPE_DECLARATION)
        return found

    @staticmethod
    def _by_arity(candidates: List[MethodSymbol], argc: int) -> List[MethodSymbol]:
        exact = [m for m in candidates if m.arity == argc]
        return exact or candidates

    @staticmethod
    def _argument_count(invocation: SyntaxNode) -> int:
        args = invocation.child("arguments") or invocation.child_of_type("argument_list")
        if args is None:
            return 0
        return sum(1 for a in args.children if a.syntax_type == "argument")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _is_callee(node: SyntaxNode) -> bool:
        return (
            node.field == "function"
            and node.parent is not None
            and node.parent.kind == NodeKind.INVOCATION
        )

    def _callee_name(self, callee: SyntaxNode) -> Optional[str]:
        if callee.kind == NodeKind.IDENTIFIER:
            return self._simple_name(callee)
        if callee.kind == NodeKind.MEMBER_ACCESS or callee.syntax_type == "member_binding_expression":
            name = callee.child("name")
            return self._simple_name(name) if name else None
        return None

    @staticmethod
    def _simple_name(node: SyntaxNode) -> str:
        if node.syntax_type == "generic_name":
            ident = node.child_of_type("identifier")
            return ident.text if ident else node.text.split("<")[0].strip()
        return node.text

    def _enclosing_type(self, node: SyntaxNode) -> Optional[DeclaredType]:
        type_node = node.enclosing(NodeKind.TYPE_DECLARATION)
        return self._type_by_node.get(type_node) if type_node is not None else None

    def _type_chain(self, declared: DeclaredType) -> Iterator[DeclaredType]:
        """The type itself followed by its program-declared base types."""
        seen: Set[int] = set()
        queue = [declared]
        while queue:
            current = queue.pop(0)
            if id(current) in seen:
                continue
            seen.add(id(current))
            yield current
            for base in current.bases:
                resolved = self._lookup_type(base, current.module)
                if resolved:
                    queue.append(resolved)

    def _lookup_type(self, type_text: str, module: Optional[str]) -> Optional[DeclaredType]:
        """Resolve a type name (possibly qualified or generic) to a program type."""
        bare = type_text.split("<")[0].strip()
        simple = bare.rsplit(".", 1)[-1]
        candidates = self._types_by_name.get(simple)
        if not candidates:
            return None

        if "." in bare:
            qualified = [c for c in candidates if c.qualified_name == bare or c.qualified_name.endswith("." + bare)]
            if not qualified:
                return None
            candidates = qualified

        for c in candidates:
            if c.module == module:
                return c
        return candidates[0]

    def _type_parameters_in_scope(self, node: SyntaxNode) -> Set[str]:
        names: Set[str] = set()
        current = node.enclosing(NodeKind.METHOD, NodeKind.TYPE_DECLARATION)
        while current is not None:
            tpl = current.child_of_type("type_parameter_list")
            if tpl:
                for param in tpl.children:
                    if param.syntax_type == "type_parameter":
                        ident = param.child("name") or param.child_of_type("identifier")
                        names.add(ident.text if ident else param.text.strip())
            current = current.enclosing(NodeKind.METHOD, NodeKind.TYPE_DECLARATION)
        return names

    @staticmethod
    def _member_scope(node: SyntaxNode) -> Optional[SyntaxNode]:
        """The member declaration (method, accessor, field...) containing ``node``."""
        current = node
        while current.parent is not None:
            parent = current.parent
            if parent.syntax_type == "declaration_list" or parent.kind in (
                NodeKind.COMPILATION_UNIT, NodeKind.NAMESPACE,
            ):
                return current
            current = parent
        return None

    def _module_of(self, node: SyntaxNode) -> Optional[str]:
        root = node
        while root.parent is not None:
            root = root.parent
        return self._module_by_root.get(root)
