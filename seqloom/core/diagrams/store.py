"""Diagram store — title -> command buffer, owned by one generation run."""

import logging
from typing import Dict, List

from .buffer import CommandBuffer
from .constants import END_DIAGRAM, HEADER_LENGTH, header_lines

logger = logging.getLogger(__name__)


class DiagramStore:
    """Holds every diagram produced by a run.

    Lifecycle per diagram: ``start_diagram`` writes the header, the walker
    appends lines, ``finalize`` either terminates the diagram with
    ``@enduml`` or discards it when nothing followed the header.

    A title that recurs reuses its buffer; the survival check and the
    discard then apply only to the lines of the current diagram.
    """

    def __init__(self):
        self._buffers: Dict[str, CommandBuffer] = {}
        self._open: Dict[str, int] = {}  # title -> offset where the open diagram starts

    def __contains__(self, title: str) -> bool:
        return title in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)

    def __getitem__(self, title: str) -> List[str]:
        return self._buffers[title].lines

    @property
    def titles(self) -> List[str]:
        return list(self._buffers)

    def begin_or_reuse(self, title: str) -> CommandBuffer:
        buffer = self._buffers.get(title)
        if buffer is None:
            buffer = CommandBuffer(title)
            self._buffers[title] = buffer
        return buffer

    def start_diagram(self, title: str) -> CommandBuffer:
        """Open a diagram and write its header lines.

        Raises:
            ValueError: If a diagram with this title is already open
        """
        if title in self._open:
            raise ValueError(f"Diagram {title} is already open")

        buffer = self.begin_or_reuse(title)
        self._open[title] = len(buffer)
        buffer.extend(header_lines(title))
        return buffer

    def finalize(self, title: str) -> bool:
        """Keep or discard the open diagram ``title``.

        Returns:
            True if the diagram was kept

        Raises:
            ValueError: If no diagram with this title is open
        """
        if title not in self._open:
            raise ValueError(f"Diagram {title} is not open")

        start = self._open.pop(title)
        buffer = self._buffers[title]

        if len(buffer) - start > HEADER_LENGTH:
            buffer.append(END_DIAGRAM)
            logger.debug(f"Kept diagram {title} ({len(buffer) - start} lines)")
            return True

        buffer.truncate(start)
        if not len(buffer):
            del self._buffers[title]
        logger.debug(f"Discarded empty diagram {title}")
        return False

    def merge(self, other: "DiagramStore") -> None:
        """Append another store's diagrams, title by title.

        Raises:
            ValueError: If the other store still has open diagrams
        """
        if other._open:
            raise ValueError(f"Cannot merge a store with open diagrams: {sorted(other._open)}")
        for title, buffer in other._buffers.items():
            self.begin_or_reuse(title).extend(buffer.lines)

    def diagrams(self) -> Dict[str, List[str]]:
        """Finished diagrams as plain ``{title: lines}``, in creation order."""
        return {title: buffer.lines for title, buffer in self._buffers.items()}
