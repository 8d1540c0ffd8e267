# Lazy imports so `from seqloom.core.config import get_settings` does not
# pull in tree-sitter or httpx.

__all__ = [
    "load_program",
    "load_sources",
    "generate_diagrams",
    "write_diagrams",
    "get_settings",
]

_IMPORT_MAP = {
    "load_program": ".source_model",
    "load_sources": ".source_model",
    "generate_diagrams": ".diagrams",
    "write_diagrams": ".diagrams",
    "get_settings": ".config",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'seqloom.core' has no attribute {name}")
