"""PlantUML sequence diagram generation.

One diagram per entry-point method (a method nothing in the program
calls), titled ``<module>_<type>_<method>``. Calls resolvable to a typed
participant become ``A -> B: m`` / ``B --> A: r`` pairs; if/for/foreach/
while/do become groups, collapsed when nothing was drawn inside them.

Public API:
  generate_diagrams: whole-program entry point
  PlantUmlDiagramGenerator: same, with access to the caller index
  write_diagrams: .puml/.svg output
"""

from .caller_index import CallerIndex, CallerQueryError
from .generator import DiagramGenerator, PlantUmlDiagramGenerator, generate_diagrams
from .renderer import PlantUmlRenderer, encode_plantuml
from .store import DiagramStore
from .walker import DiagramWalker, diagram_title
from .writer import write_diagrams

__all__ = [
    "CallerIndex",
    "CallerQueryError",
    "DiagramGenerator",
    "DiagramStore",
    "DiagramWalker",
    "PlantUmlDiagramGenerator",
    "PlantUmlRenderer",
    "diagram_title",
    "encode_plantuml",
    "generate_diagrams",
    "write_diagrams",
]
