"""Traversal context: per-path walker state.

Immutable: each recursive visit receives the context of its parent and
derives a new one for its children, so the caller's state is intact on
every return path.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .buffer import CommandBuffer
from .constants import INDENT_UNIT


@dataclass(frozen=True)
class TraversalContext:
    title: Optional[str] = None
    buffer: Optional[CommandBuffer] = None
    suppressed: bool = False
    depth: int = 0

    @property
    def emitting(self) -> bool:
        """True when lines written now would land in an open diagram."""
        return not self.suppressed and self.buffer is not None

    @property
    def indent(self) -> str:
        return INDENT_UNIT * self.depth

    def emit(self, command: str) -> None:
        if self.emitting:
            self.buffer.append(f"{self.indent}{command}")

    def deeper(self) -> "TraversalContext":
        return replace(self, depth=self.depth + 1)

    def suppress(self) -> "TraversalContext":
        return replace(self, suppressed=True)

    def open_diagram(self, title: str, buffer: CommandBuffer) -> "TraversalContext":
        return TraversalContext(title=title, buffer=buffer, suppressed=False, depth=0)
