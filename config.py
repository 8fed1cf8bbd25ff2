"""Configuration for the IPFS Gallery MCP Server"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("MCP_Server")

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "ipfs-gallery-mcp"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_GATEWAY_BASE = "https://ipfs.io"
DEFAULT_DIRECTORY_URL = "https://ipfs.io/ipfs/QmW9L7oVPdKz1NYN4czALTXPUjJA4gH2Gtda3M19WQ5pVF/"
DEFAULT_ANALYSIS_MODEL = "gemini-3-flash-preview"
DEFAULT_ANALYSIS_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"

HARDCODED_DEFAULTS: Dict[str, Any] = {
    "gateway_base": DEFAULT_GATEWAY_BASE,
    "directory_url": DEFAULT_DIRECTORY_URL,
    "export_dir": str(Path.home() / "Downloads" / "ipfs-gallery"),
    "request_timeout": 30.0,
    "probe_timeout": 10.0,
    "export_delay": 0.3,
    "max_workers": 8,
    "analysis_model": DEFAULT_ANALYSIS_MODEL,
    "analysis_endpoint": DEFAULT_ANALYSIS_ENDPOINT,
}

ENV_VARS = {
    "gateway_base": "IPFS_GALLERY_GATEWAY",
    "directory_url": "IPFS_GALLERY_DIRECTORY_URL",
    "export_dir": "IPFS_GALLERY_EXPORT_DIR",
    "export_delay": "IPFS_GALLERY_EXPORT_DELAY",
    "analysis_model": "IPFS_GALLERY_MODEL",
}

COERCERS: Dict[str, Callable[[Any], Any]] = {
    "request_timeout": float,
    "probe_timeout": float,
    "export_delay": float,
    "max_workers": int,
}


def load_config_file(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load the ``gallery`` section of the JSON config file (empty if absent)"""
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load config file {config_file}: {e}")
        return {}
    section = config.get("gallery", {}) if isinstance(config, dict) else {}
    return section if isinstance(section, dict) else {}


def _get_env_overrides() -> Dict[str, Any]:
    overrides = {}
    for key, env_name in ENV_VARS.items():
        value = os.getenv(env_name)
        if value:
            overrides[key] = value
    return overrides


class GalleryConfig:
    """Effective settings with precedence: explicit > env > config file > hardcoded"""

    def __init__(self, config_file: Path = CONFIG_FILE, **overrides: Any):
        unknown = set(overrides) - set(HARDCODED_DEFAULTS)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        merged = dict(HARDCODED_DEFAULTS)
        merged.update({k: v for k, v in load_config_file(config_file).items() if k in HARDCODED_DEFAULTS})
        merged.update(_get_env_overrides())
        merged.update({k: v for k, v in overrides.items() if v is not None})

        for key, coerce in COERCERS.items():
            try:
                merged[key] = coerce(merged[key])
            except (TypeError, ValueError):
                logger.warning(f"Invalid value {merged[key]!r} for {key}; using default")
                merged[key] = HARDCODED_DEFAULTS[key]

        self.gateway_base: str = str(merged["gateway_base"]).rstrip("/")
        self.directory_url: str = str(merged["directory_url"])
        self.export_dir = Path(merged["export_dir"]).expanduser()
        self.request_timeout: float = merged["request_timeout"]
        self.probe_timeout: float = merged["probe_timeout"]
        self.export_delay: float = max(0.0, merged["export_delay"])
        self.max_workers: int = max(1, merged["max_workers"])
        self.analysis_model: str = str(merged["analysis_model"])
        self.analysis_endpoint: str = str(merged["analysis_endpoint"]).rstrip("/")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gateway_base": self.gateway_base,
            "directory_url": self.directory_url,
            "export_dir": str(self.export_dir),
            "request_timeout": self.request_timeout,
            "probe_timeout": self.probe_timeout,
            "export_delay": self.export_delay,
            "max_workers": self.max_workers,
            "analysis_model": self.analysis_model,
            "analysis_endpoint": self.analysis_endpoint,
        }


def ensure_export_dir(config: GalleryConfig) -> Optional[Path]:
    """Create the export directory if needed; None when it cannot be created"""
    try:
        config.export_dir.mkdir(parents=True, exist_ok=True)
        return config.export_dir
    except OSError as e:
        logger.error(f"Failed to create export directory {config.export_dir}: {e}")
        return None
