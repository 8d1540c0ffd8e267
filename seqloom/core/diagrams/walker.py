"""Diagram walker — one depth-first pass over a compilation unit.

Methods nobody calls (entry points) get a diagram; every other method and
every constructor is walked without emitting anything. Inside an entry
point, invocations and member accesses go to the CallEdgeResolver and
if/for/foreach/while/do go to the ControlFlowGrouper; all other nodes are
descended structurally.
"""

import logging
from typing import Callable, Dict, Optional

from ..source_model.base import SemanticModel
from ..source_model.models import CompilationUnit, NodeKind, SyntaxNode
from .caller_index import CallerIndex, CallerQueryError
from .context import TraversalContext
from .grouper import GROUP_KINDS, ControlFlowGrouper
from .resolver import CallEdgeResolver
from .store import DiagramStore

logger = logging.getLogger(__name__)

Visitor = Callable[[SyntaxNode, TraversalContext], None]


def diagram_title(module: str, type_name: str, method_name: str) -> str:
    return f"{module}_{type_name}_{method_name}"


class DiagramWalker:
    """Walks one compilation unit into a DiagramStore.

    Args:
        unit: Compilation unit to walk
        model: Semantic model of the whole program
        callers: Caller index of the whole program
        store: Store receiving the diagrams (owned by the caller)
    """

    def __init__(
        self,
        unit: CompilationUnit,
        model: SemanticModel,
        callers: CallerIndex,
        store: DiagramStore,
        resolver: Optional[CallEdgeResolver] = None,
        grouper: Optional[ControlFlowGrouper] = None,
    ):
        self._unit = unit
        self._model = model
        self._callers = callers
        self._store = store
        self._resolver = resolver or CallEdgeResolver(model)
        self._grouper = grouper or ControlFlowGrouper()

        self._dispatch: Dict[NodeKind, Visitor] = {
            NodeKind.METHOD: self._visit_method,
            NodeKind.CONSTRUCTOR: self._visit_constructor,
            NodeKind.INVOCATION: self._visit_call,
            NodeKind.MEMBER_ACCESS: self._visit_call,
        }
        for kind in GROUP_KINDS:
            self._dispatch[kind] = self._visit_control_flow

    def walk(self) -> DiagramStore:
        self.visit(self._unit.root, TraversalContext())
        return self._store

    def visit(self, node: SyntaxNode, ctx: TraversalContext) -> None:
        if ctx.suppressed:
            self._visit_children(node, ctx)
            return
        self._dispatch.get(node.kind, self._visit_children)(node, ctx)

    def _visit_children(self, node: SyntaxNode, ctx: TraversalContext) -> None:
        for child in node.children:
            self.visit(child, ctx)

    # =========================================================================
    # Declarations
    # =========================================================================

    def _visit_method(self, node: SyntaxNode, ctx: TraversalContext) -> None:
        # only methods without callers are drawn
        title = None if self._has_callers(node) else self.title_for(node)
        if title is None:
            self._visit_children(node, ctx.suppress())
            return

        buffer = self._store.start_diagram(title)
        try:
            self._visit_children(node, ctx.open_diagram(title, buffer))
        finally:
            self._store.finalize(title)

    def _visit_constructor(self, node: SyntaxNode, ctx: TraversalContext) -> None:
        # instance and static constructors are never drawn
        self._visit_children(node, ctx.suppress())

    def _has_callers(self, node: SyntaxNode) -> bool:
        """Caller lookup; anything undeterminable counts as called."""
        symbol = self._model.declared_symbol(node)
        if symbol is None:
            logger.warning(
                f"No symbol for method '{node.declared_name}' at {self._unit.file_path}:{node.line}; "
                f"not drawing it"
            )
            return True
        try:
            return self._callers.has_callers(symbol)
        except CallerQueryError as e:
            logger.warning(f"Caller query failed: {e}; not drawing it")
            return True

    def title_for(self, node: SyntaxNode) -> Optional[str]:
        method_name = node.declared_name
        type_node = node.enclosing(NodeKind.TYPE_DECLARATION)
        type_name = type_node.declared_name if type_node is not None else None
        if not method_name or not type_name:
            logger.warning(f"Cannot title method at {self._unit.file_path}:{node.line}; not drawing it")
            return None
        return diagram_title(self._unit.module, type_name, method_name)

    # =========================================================================
    # Statements and expressions
    # =========================================================================

    def _visit_control_flow(self, node: SyntaxNode, ctx: TraversalContext) -> None:
        self._grouper.group(node, ctx, self._visit_children)

    def _visit_call(self, node: SyntaxNode, ctx: TraversalContext) -> None:
        resolved = self._resolver.resolve(node) if ctx.emitting else None
        if resolved is None:
            self._visit_children(node, ctx)
            return

        ctx.emit(resolved.edge.call_command)
        for child in resolved.sub_expressions:
            self.visit(child, ctx)
        ctx.emit(resolved.edge.return_command)
