"""Call edge resolution.

Turns an invocation or member access whose receiver is a bare identifier
into a call edge (caller type, target type, member, return type):

    Bar()        receiver has no type   -> same-type call   Foo -> Foo: Bar
    repo.Save()  receiver is a named type -> cross-type call Foo -> Demo.Repo: Save
    this.Bar()   explicit this          -> same-type call   Foo -> Foo: Bar

Any other shape (chained access, call on a call result, indexers,
literals, ``base.X``) is declined; the walker still descends into it so
nested calls are found. A member access that is the callee of an
invocation is never an edge of its own.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..source_model.base import SemanticModel
from ..source_model.models import NodeKind, SyntaxNode
from .constants import RETURN_VOID

logger = logging.getLogger(__name__)

_THIS_RECEIVERS = frozenset({"this", "this_expression"})


@dataclass(frozen=True)
class CallEdge:
    """One resolved call, rendered as a call line and a return line."""
    caller_type: str
    target_type: str
    member_name: str
    return_type: str = RETURN_VOID

    @property
    def call_command(self) -> str:
        return f"{self.caller_type} -> {self.target_type}: {self.member_name}"

    @property
    def return_command(self) -> str:
        return f"{self.target_type} --> {self.caller_type}: {self.return_type}"


@dataclass
class ResolvedCall:
    edge: CallEdge
    # Children to visit between the call and return lines (arguments etc.)
    sub_expressions: List[SyntaxNode] = field(default_factory=list)


class CallEdgeResolver:
    """Resolves call-like nodes against a SemanticModel.

    Args:
        model: Semantic model of the program being drawn
    """

    def __init__(self, model: SemanticModel):
        self._model = model

    def resolve(self, node: SyntaxNode) -> Optional[ResolvedCall]:
        """Resolve ``node`` to a call edge, or None to decline."""
        if self._is_callee(node):
            # part of an invocation; resolved (or declined) as a whole
            return None

        caller_type = self.caller_type_of(node)
        if caller_type is None:
            return None

        receiver, sub_expressions = self._isolate_receiver(node)
        if receiver is None:
            return None

        if receiver.syntax_type in _THIS_RECEIVERS:
            target_type = caller_type
            member_name = self._model.inferred_member_name(node)
        else:
            receiver_type = self._model.static_type_of(receiver)
            if receiver_type is None:
                # Names a member of the enclosing type
                target_type = caller_type
                member_name = self._model.inferred_member_name(receiver) or receiver.text
            elif receiver_type.is_named:
                target_type = receiver_type.qualified_name
                member_name = self._model.inferred_member_name(node)
            else:
                logger.debug(f"Receiver '{receiver.text}' at line {node.line} is not a named type; declining")
                return None

        if not member_name:
            logger.debug(f"No member name for call at line {node.line}; declining")
            return None

        return_type = self._model.static_type_of(node)
        edge = CallEdge(
            caller_type=caller_type,
            target_type=target_type,
            member_name=member_name,
            return_type=return_type.simple_name if return_type else RETURN_VOID,
        )
        return ResolvedCall(edge=edge, sub_expressions=sub_expressions)

    @staticmethod
    def caller_type_of(node: SyntaxNode) -> Optional[str]:
        """Name of the type declaring the method/constructor containing ``node``."""
        host = node.enclosing(NodeKind.METHOD, NodeKind.CONSTRUCTOR)
        if host is None:
            return None
        type_node = host.enclosing(NodeKind.TYPE_DECLARATION)
        return type_node.declared_name if type_node is not None else None

    @staticmethod
    def _is_callee(node: SyntaxNode) -> bool:
        return (
            node.field == "function"
            and node.parent is not None
            and node.parent.kind == NodeKind.INVOCATION
        )

    @staticmethod
    def _isolate_receiver(node: SyntaxNode) -> Tuple[Optional[SyntaxNode], List[SyntaxNode]]:
        if node.kind == NodeKind.INVOCATION:
            callee = node.child("function")
            if callee is None:
                return None, []
            if callee.kind == NodeKind.IDENTIFIER:
                receiver = callee
            elif callee.kind == NodeKind.MEMBER_ACCESS:
                receiver = callee.child("expression")
                if receiver is None:
                    return None, []
                if receiver.kind != NodeKind.IDENTIFIER and receiver.syntax_type not in _THIS_RECEIVERS:
                    return None, []
            else:
                return None, []
            # the callee is part of this edge; only the arguments remain
            return receiver, [c for c in node.children if c is not callee]

        if node.kind == NodeKind.MEMBER_ACCESS:
            receiver = node.child("expression")
            if receiver is not None and receiver.kind == NodeKind.IDENTIFIER:
                return receiver, list(node.children)

        return None, []
