"""PlantUML sequence diagram vocabulary."""

from typing import List

START_DIAGRAM = "@startuml"
END_DIAGRAM = "@enduml"
AUTOACTIVATE = "autoactivate on"
HIDE_FOOTBOX = "hide footbox"

INDENT_UNIT = "  "

# Lines written when a diagram starts. A diagram with nothing after the
# header is discarded at finalize, so this length is also the survival
# threshold.
HEADER_LENGTH = 4

# Control-flow group labels
GROUP_IF = "if"
GROUP_FOR = "for"
GROUP_FOREACH = "foreach"
GROUP_WHILE = "while"
GROUP_DO = "do/while"

RETURN_VOID = "void"


def header_lines(title: str) -> List[str]:
    return [START_DIAGRAM, f"title {title}", AUTOACTIVATE, HIDE_FOOTBOX]
