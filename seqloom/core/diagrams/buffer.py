"""Command buffer: the ordered PlantUML lines of one diagram."""

import logging
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


class CommandBuffer:
    """Append-only sequence of diagram lines.

    The only ways to remove lines are ``collapse_or_append`` (undo the
    single most recent line when it is an empty group's opening) and
    ``truncate`` (drop a discarded diagram from a reused buffer).
    """

    def __init__(self, title: str):
        self.title = title
        self._lines: List[str] = []

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)

    def __repr__(self) -> str:
        return f"CommandBuffer({self.title!r}, {len(self._lines)} lines)"

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    @property
    def last(self) -> Optional[str]:
        return self._lines[-1] if self._lines else None

    def append(self, command: str) -> None:
        logger.debug("%s: %s", self.title, command)
        self._lines.append(command)

    def extend(self, commands: List[str]) -> None:
        for command in commands:
            self.append(command)

    def collapse_or_append(self, opening: str, closing: str) -> bool:
        """Close a group, or erase it if nothing was written inside.

        Compares only the single most recent line: if it is exactly
        ``opening``, that line is removed and ``closing`` is not written.
        Nested empty groups therefore collapse one level at a time, each
        leaving the buffer as it was before that group opened.

        Returns:
            True if the closing line was written, False if the group collapsed
        """
        if self._lines and self._lines[-1] == opening:
            self._lines.pop()
            logger.debug("%s: collapsed empty '%s'", self.title, opening.strip())
            return False
        self.append(closing)
        return True

    def truncate(self, length: int) -> None:
        del self._lines[length:]
