"""Source model utilities.

Language detection, parser registry, and directory-walking helpers.
"""

import os
from typing import Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .base import BaseSourceParser

# Extension -> language mapping
SUPPORTED_EXTENSIONS: Dict[str, str] = {
    ".cs": "csharp",
}

PROJECT_EXTENSIONS = frozenset({".csproj"})
SOLUTION_EXTENSIONS = frozenset({".sln"})

# Directories to skip during file walking
SKIP_DIRECTORIES = frozenset({
    ".git",
    "node_modules",
    "packages",
    "bin",
    "obj",
    "TestResults",
})

# Parser registry, lazy-loaded
_parser_registry: Dict[str, "BaseSourceParser"] = {}


def detect_language(file_path: str) -> Optional[str]:
    """Detect programming language from file extension.

    Args:
        file_path: Path to the source file

    Returns:
        Language identifier string or None if unsupported
    """
    _, ext = os.path.splitext(file_path)
    return SUPPORTED_EXTENSIONS.get(ext.lower())


def get_parser(language: str) -> "BaseSourceParser":
    """Get a parser instance for the given language.

    Raises:
        ValueError: If language is not supported
    """
    if language not in _parser_registry:
        if language == "csharp":
            from .csharp_model import CSharpParser
            _parser_registry["csharp"] = CSharpParser()
        else:
            raise ValueError(
                f"Unsupported language: {language}. "
                f"Supported: {list(SUPPORTED_EXTENSIONS.values())}"
            )

    return _parser_registry[language]


def should_skip_directory(dir_name: str) -> bool:
    """Check if a directory should be skipped during file walking."""
    return dir_name in SKIP_DIRECTORIES or dir_name.startswith(".")


def is_supported_file(file_path: str) -> bool:
    return detect_language(file_path) is not None
