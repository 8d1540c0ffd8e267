"""Whole-program caller index.

Built once, before any diagram is drawn, by asking the semantic model
what every call-like node refers to and inverting the answers. Read-only
afterwards, so concurrent walkers can share it.
"""

import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Set

from ..source_model.models import CallSite, MethodSymbol, NodeKind, Program

logger = logging.getLogger(__name__)

_REFERENCE_KINDS = (NodeKind.INVOCATION, NodeKind.MEMBER_ACCESS, NodeKind.IDENTIFIER)


class CallerQueryError(LookupError):
    """The caller set of a method cannot be determined."""


class CallerIndex:
    """Immutable method symbol -> call sites mapping."""

    def __init__(self, callers: Dict[MethodSymbol, FrozenSet[CallSite]], declared: FrozenSet[MethodSymbol]):
        self._callers = MappingProxyType(dict(callers))
        self._declared = frozenset(declared)

    def __len__(self) -> int:
        return len(self._declared)

    def __contains__(self, symbol: MethodSymbol) -> bool:
        return symbol in self._declared

    @classmethod
    def build(cls, program: Program) -> "CallerIndex":
        model = program.model
        callers: Dict[MethodSymbol, Set[CallSite]] = defaultdict(set)
        declared: Set[MethodSymbol] = set()
        reference_count = 0

        for unit in program.units:
            for node in unit.root.walk():
                if node.kind in (NodeKind.METHOD, NodeKind.CONSTRUCTOR):
                    symbol = model.declared_symbol(node)
                    if symbol is not None:
                        declared.add(symbol)
                elif node.kind in _REFERENCE_KINDS:
                    targets = model.referenced_methods(node)
                    if not targets:
                        continue
                    host = node.enclosing(NodeKind.METHOD, NodeKind.CONSTRUCTOR)
                    site = CallSite(
                        file_path=unit.file_path,
                        line=node.line,
                        column=node.column,
                        caller=model.declared_symbol(host) if host is not None else None,
                    )
                    for target in targets:
                        callers[target].add(site)
                    reference_count += 1

        logger.info(
            f"Caller index: {len(declared)} methods, {reference_count} references, "
            f"{len(callers)} methods with callers"
        )
        return cls({symbol: frozenset(sites) for symbol, sites in callers.items()}, frozenset(declared))

    def callers_of(self, symbol: MethodSymbol) -> FrozenSet[CallSite]:
        """Every call site referring to ``symbol``.

        Raises:
            CallerQueryError: If ``symbol`` is not declared in the indexed program
        """
        if symbol not in self._declared:
            raise CallerQueryError(f"{symbol} is not declared in the analyzed program")
        return self._callers.get(symbol, frozenset())

    def has_callers(self, symbol: MethodSymbol) -> bool:
        return bool(self.callers_of(symbol))

    def entry_points(self) -> List[MethodSymbol]:
        """Declared methods (not constructors) nobody calls, in source order."""
        return sorted(
            (s for s in self._declared if not s.is_constructor and s not in self._callers),
            key=lambda s: (s.module, s.type_name, s.line, s.name),
        )
