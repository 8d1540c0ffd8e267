"""Diagram generation over a whole program.

Builds the caller index once, then walks every compilation unit. With
``max_workers > 1`` units are walked in a thread pool, each into its own
DiagramStore; the partial stores are merged in unit order so the result
is the same as a sequential run.
"""

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from ..source_model.models import CompilationUnit, Program
from .caller_index import CallerIndex
from .store import DiagramStore
from .walker import DiagramWalker

logger = logging.getLogger(__name__)


class DiagramGenerator(ABC):
    """Interface for diagram generators."""

    @property
    @abstractmethod
    def diagrams(self) -> Dict[str, List[str]]:
        ...

    @abstractmethod
    def process(self) -> Dict[str, List[str]]:
        ...


class PlantUmlDiagramGenerator(DiagramGenerator):
    """PlantUML sequence diagrams, one per entry-point method.

    Args:
        program: Loaded program to draw
        max_workers: Compilation units walked concurrently (1 = sequential)
    """

    def __init__(self, program: Program, max_workers: int = 1):
        self._program = program
        self.max_workers = max(1, max_workers)
        self._diagrams: Dict[str, List[str]] = {}
        self._index: Optional[CallerIndex] = None

    @property
    def diagrams(self) -> Dict[str, List[str]]:
        return self._diagrams

    @property
    def caller_index(self) -> Optional[CallerIndex]:
        return self._index

    def process(self) -> Dict[str, List[str]]:
        start = time.time()
        units = self._program.units

        self._index = CallerIndex.build(self._program)

        if self.max_workers == 1 or len(units) < 2:
            store = DiagramStore()
            for unit in units:
                self._walk(unit, store)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="seqloom-walk") as pool:
                partials = list(pool.map(lambda u: self._walk(u, DiagramStore()), units))
            store = DiagramStore()
            for partial in partials:
                store.merge(partial)

        self._diagrams = store.diagrams()
        logger.info(
            f"Generated {len(self._diagrams)} diagrams from {len(units)} compilation units "
            f"in {time.time() - start:.2f}s"
        )
        return self._diagrams

    def _walk(self, unit: CompilationUnit, store: DiagramStore) -> DiagramStore:
        logger.debug(f"Walking {unit.file_path} ({unit.module})")
        return DiagramWalker(unit, self._program.model, self._index, store).walk()


def generate_diagrams(program: Program, max_workers: int = 1) -> Dict[str, List[str]]:
    """Draw every entry-point method of ``program``.

    Returns:
        {title: PlantUML lines}, in source order
    """
    return PlantUmlDiagramGenerator(program, max_workers=max_workers).process()
