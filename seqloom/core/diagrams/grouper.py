"""Control-flow grouping: `group <kind>` ... `end` around loop/branch bodies."""

from typing import Callable, Dict

from ..source_model.models import NodeKind, SyntaxNode
from .constants import GROUP_DO, GROUP_FOR, GROUP_FOREACH, GROUP_IF, GROUP_WHILE
from .context import TraversalContext

GROUP_KINDS: Dict[NodeKind, str] = {
    NodeKind.IF: GROUP_IF,
    NodeKind.FOR: GROUP_FOR,
    NodeKind.FOREACH: GROUP_FOREACH,
    NodeKind.WHILE: GROUP_WHILE,
    NodeKind.DO: GROUP_DO,
}

BodyVisitor = Callable[[SyntaxNode, TraversalContext], None]


class ControlFlowGrouper:
    """Brackets the rendering of a control-flow node.

    The opening line and the closing ``end`` sit at the indent active
    before the block; the body is rendered one level deeper. A block whose
    body wrote nothing leaves no trace: the opening line is retracted
    instead of writing ``end``.
    """

    def group(self, node: SyntaxNode, ctx: TraversalContext, visit_body: BodyVisitor) -> None:
        if not ctx.emitting:
            visit_body(node, ctx)
            return

        opening = f"{ctx.indent}group {GROUP_KINDS[node.kind]}"
        ctx.buffer.append(opening)
        visit_body(node, ctx.deeper())
        ctx.buffer.collapse_or_append(opening, f"{ctx.indent}end")
