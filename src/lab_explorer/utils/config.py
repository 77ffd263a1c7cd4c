"""Centralized configuration loading."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_config_cache: Optional[dict] = None
_CONFIG_FILENAME = "configs/config.yaml"

# Environment variables that override individual YAML keys
_ENV_OVERRIDES = {
    "LAB_EXPLORER_CATALOG_URL": ("catalog", "base_url"),
    "LAB_EXPLORER_HAL_URL": ("hal", "base_url"),
    "LAB_EXPLORER_HAL_STRUCT_ID": ("hal", "struct_id"),
}


def _find_project_root() -> Path:
    """Walk up from this file to find the directory containing configs/."""
    current = Path(__file__).resolve().parent
    for _ in range(10):  # safety limit
        if (current / "configs").is_dir():
            return current
        current = current.parent
    # Fallback: assume CWD
    return Path.cwd()


def _apply_env_overrides(config: dict) -> dict:
    load_dotenv()
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config.setdefault(section, {})[key] = value
            logger.debug(f"Config {section}.{key} overridden by {env_name}")
    return config


def load_config(config_path: Optional[str] = None, *, use_cache: bool = True) -> dict:
    """Load and cache the YAML configuration.

    Args:
        config_path: Override path. If None, auto-discovers configs/config.yaml.
        use_cache: If True (default), returns cached result on subsequent calls.
    """
    global _config_cache
    if use_cache and _config_cache is not None and config_path is None:
        return _config_cache

    if config_path:
        path = Path(config_path)
    else:
        path = _find_project_root() / _CONFIG_FILENAME

    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        result = {}
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                result = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            result = {}

    result = _apply_env_overrides(result)

    if config_path is None:
        _config_cache = result
    return result


def clear_config_cache():
    """Clear the cached config (useful for testing)."""
    global _config_cache
    _config_cache = None


@dataclass
class ExplorerSettings:
    """Typed view over the config sections the explorer reads."""

    catalog_url: str = "http://localhost:8000/api"
    catalog_timeout: float = 30.0
    hal_url: str = "https://api.archives-ouvertes.fr/search/"
    hal_struct_id: Optional[str] = None
    hal_rows: int = 50
    root_label: str = "LISTIC"
    facet_cap: int = 30
    max_publications: int = 5
    max_collaborators: int = 10
    max_retries: int = 3
    retry_base_delay: float = 1.0

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> "ExplorerSettings":
        """Build settings from a loaded config dict, keeping defaults for gaps."""
        if config is None:
            config = load_config()
        catalog = config.get("catalog") or {}
        hal = config.get("hal") or {}
        explorer = config.get("explorer") or {}
        retry = config.get("retry") or {}
        defaults = cls()

        struct_id = hal.get("struct_id", defaults.hal_struct_id)
        return cls(
            catalog_url=str(catalog.get("base_url", defaults.catalog_url)).rstrip("/"),
            catalog_timeout=float(catalog.get("timeout", defaults.catalog_timeout)),
            hal_url=str(hal.get("base_url", defaults.hal_url)),
            hal_struct_id=str(struct_id) if struct_id is not None else None,
            hal_rows=int(hal.get("rows", defaults.hal_rows)),
            root_label=str(explorer.get("root_label", defaults.root_label)),
            facet_cap=int(explorer.get("facet_cap", defaults.facet_cap)),
            max_publications=int(explorer.get("max_publications", defaults.max_publications)),
            max_collaborators=int(explorer.get("max_collaborators", defaults.max_collaborators)),
            max_retries=int(retry.get("max_retries", defaults.max_retries)),
            retry_base_delay=float(retry.get("base_delay", defaults.retry_base_delay)),
        )
