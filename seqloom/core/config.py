"""Runtime settings.

Defaults, overlaid by ``config/seqloom.yaml`` (when present), overlaid by
environment variables (a ``.env`` file is loaded first).
"""

import logging
import os
from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "seqloom.yaml"

# env var -> settings field
_ENV_OVERRIDES = {
    "SEQLOOM_OUTPUT_DIR": "output_dir",
    "SEQLOOM_OUTPUT_FORMAT": "output_format",
    "SEQLOOM_MAX_WORKERS": "max_workers",
    "SEQLOOM_LOG_LEVEL": "log_level",
    "PLANTUML_SERVER_URL": "plantuml_server_url",
    "PLANTUML_JAR_PATH": "plantuml_jar_path",
    "SEQLOOM_RENDER_TIMEOUT": "render_timeout",
}


@dataclass
class Settings:
    output_dir: str = "diagrams"
    output_format: str = "puml"
    max_workers: int = 1
    log_level: str = "INFO"
    plantuml_server_url: str = "https://www.plantuml.com/plantuml"
    plantuml_jar_path: Optional[str] = None
    render_timeout: float = 30.0


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw YAML/env value to the type of the settings field."""
    if name == "max_workers":
        return int(value)
    if name == "render_timeout":
        return float(value)
    if value is None:
        return None
    return str(value)


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        logger.debug(f"No config file at {config_path}, using defaults")
        return {}

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"{config_path} must contain a mapping, got {type(config).__name__}")
    return config


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Build settings from defaults, the YAML file and the environment.

    Raises:
        ValueError: If the YAML file or an override has an invalid value
    """
    load_dotenv()

    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    for key, value in _load_yaml(path).items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}' in {path}")
            continue
        values[key] = _coerce(key, value)

    for env_name, field_name in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw:
            values[field_name] = _coerce(field_name, raw)

    settings = Settings(**values)
    if settings.output_format not in ("puml", "svg"):
        raise ValueError(f"Invalid output format: {settings.output_format}")
    if settings.max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {settings.max_workers}")
    return settings


@lru_cache(maxsize=None)
def get_settings(config_path: Optional[str] = None) -> Settings:
    """Cached settings, one instance per config path."""
    return load_settings(config_path)
