"""PlantUML text -> SVG rendering.

Primary:  local JAR, `java -jar plantuml.jar -tsvg -pipe` (no size limit).
Fallback: PlantUML HTTP server, source sent deflate + PlantUML-base64
          encoded in the URL.

Sequence diagrams are laid out by PlantUML itself, so Graphviz is never
required.
"""

import logging
import shutil
import subprocess
import zlib
from pathlib import Path
from typing import List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "https://www.plantuml.com/plantuml"

_PLANTUML_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"


def encode_plantuml(text: str) -> str:
    """Encode PlantUML source for a server URL (raw deflate + custom base64)."""
    data = zlib.compress(text.encode("utf-8"))[2:-4]  # strip zlib header and checksum

    out = []
    for i in range(0, len(data), 3):
        chunk = data[i:i + 3]
        b1, b2, b3 = (chunk + b"\x00\x00")[:3]
        for value in (
            b1 >> 2,
            ((b1 & 0x3) << 4) | (b2 >> 4),
            ((b2 & 0xF) << 2) | (b3 >> 6),
            b3 & 0x3F,
        ):
            out.append(_PLANTUML_ALPHABET[value & 0x3F])
    return "".join(out)


def _looks_like_svg(body: str) -> bool:
    return body.strip().startswith("<") and "<svg" in body[:500]


class PlantUmlRenderer:
    """Renders diagrams to SVG, preferring a local PlantUML JAR.

    Args:
        jar_path: PlantUML JAR; rendering falls back to HTTP when missing
        server_url: PlantUML server base URL for the HTTP fallback
        timeout: Seconds allowed per render (JAR and HTTP)
    """

    def __init__(
        self,
        jar_path: Optional[str] = None,
        server_url: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.jar_path = Path(jar_path) if jar_path else None
        self.server_url = (server_url or DEFAULT_SERVER_URL).rstrip("/")
        self.timeout = timeout
        self._jar_usable: Optional[bool] = None

    def render(self, puml: Union[str, List[str]]) -> str:
        """Render PlantUML source (text or lines) to SVG.

        Raises:
            RuntimeError: If both JAR and HTTP rendering fail
        """
        if not isinstance(puml, str):
            puml = "\n".join(puml)

        if self.jar_usable():
            svg = self._render_via_jar(puml)
            if svg is not None:
                return svg

        return self._render_via_http(puml)

    def jar_usable(self) -> bool:
        """Check once whether local JAR rendering is possible."""
        if self._jar_usable is None:
            if self.jar_path is None or not self.jar_path.is_file():
                logger.info("PlantUML JAR not configured or missing, using HTTP rendering")
                self._jar_usable = False
            elif shutil.which("java") is None:
                logger.info("Java not in PATH, PlantUML JAR unusable, using HTTP rendering")
                self._jar_usable = False
            else:
                logger.info("PlantUML local JAR available at %s", self.jar_path)
                self._jar_usable = True
        return self._jar_usable

    def _render_via_jar(self, puml: str) -> Optional[str]:
        """Returns SVG, or None when the caller should fall back to HTTP."""
        cmd = ["java", "-Djava.awt.headless=true", "-jar", str(self.jar_path), "-tsvg", "-pipe"]
        try:
            result = subprocess.run(
                cmd,
                input=puml.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("PlantUML JAR timed out after %.0fs; falling back to HTTP", self.timeout)
            return None
        except OSError as e:
            logger.warning("PlantUML JAR execution failed: %s; falling back to HTTP", e)
            return None

        stdout = result.stdout.decode("utf-8", errors="replace")
        # Syntax errors still produce an SVG showing the error
        if _looks_like_svg(stdout):
            return stdout

        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        logger.warning(
            "PlantUML JAR produced no SVG (exit=%d, stderr=%s); falling back to HTTP",
            result.returncode,
            stderr[:300] if stderr else "(empty)",
        )
        return None

    def _render_via_http(self, puml: str) -> str:
        url = f"{self.server_url}/svg/{encode_plantuml(puml)}"
        logger.debug("Rendering via %s (url len=%d)", self.server_url, len(url))

        try:
            response = httpx.get(url, timeout=self.timeout, follow_redirects=True)
        except httpx.RequestError as e:
            raise RuntimeError(f"PlantUML server request failed: {e}") from e

        if _looks_like_svg(response.text):
            if response.status_code != 200:
                logger.warning("PlantUML server returned %d with SVG content, using it", response.status_code)
            return response.text

        raise RuntimeError(
            f"PlantUML server returned {response.status_code} with non-SVG body: {response.text[:200]}"
        )

