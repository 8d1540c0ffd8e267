"""Writes generated diagrams to disk, one file per title."""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from .renderer import PlantUmlRenderer

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("puml", "svg")

_UNSAFE_FILENAME_RE = re.compile(r"[^\w.\-]")


def diagram_filename(title: str, extension: str) -> str:
    return f"{_UNSAFE_FILENAME_RE.sub('_', title)}.{extension}"


def write_diagrams(
    diagrams: Dict[str, List[str]],
    output_dir: str,
    output_format: str = "puml",
    renderer: Optional[PlantUmlRenderer] = None,
) -> List[Path]:
    """Write every diagram as ``<title>.puml`` (plus ``<title>.svg`` for svg).

    A diagram that fails to render keeps its .puml file; the failure is
    logged and the remaining diagrams are still written.

    Returns:
        Paths of the files written

    Raises:
        ValueError: If output_format is not supported
    """
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {output_format}. Supported: {list(OUTPUT_FORMATS)}")
    if output_format == "svg" and renderer is None:
        renderer = PlantUmlRenderer()

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    for title, lines in diagrams.items():
        puml_path = out / diagram_filename(title, "puml")
        puml_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        written.append(puml_path)

        if output_format == "svg":
            try:
                svg = renderer.render(lines)
            except RuntimeError as e:
                logger.error(f"Failed to render {title}: {e}")
                continue
            svg_path = out / diagram_filename(title, "svg")
            svg_path.write_text(svg, encoding="utf-8")
            written.append(svg_path)

    logger.info(f"Wrote {len(written)} files to {out}")
    return written
