"""Snapshot configuration defaults loaded from YAML."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from .constants import CONFIG_FILE
from .core import IntegrityLevel
from .errors import ConfigError


@dataclass
class SnapConfig:
    """Defaults for the CLI; command-line flags override them."""

    skip_hidden: bool = True
    skip_system: bool = True
    enable_hashing: bool = False
    integrity_level: IntegrityLevel = IntegrityLevel.NONE
    max_concurrency: Optional[int] = None
    exclude: List[str] = field(default_factory=list)
    template: Optional[str] = None
    link_root: Optional[str] = None
    open_in_browser: bool = False


def load_snap_config(path: Optional[Path] = None) -> SnapConfig:
    """Load configuration from ``path``, or from .treesnap.yaml in the cwd if present.

    Args:
        path: Explicit config file; it must exist

    Raises:
        ConfigError: If the file is unreadable, not YAML, or has bad values
    """
    explicit = path is not None
    cfg_path = path if explicit else Path.cwd() / CONFIG_FILE
    if not cfg_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {cfg_path}")
        return SnapConfig()

    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config {cfg_path}: {e}") from e

    snap = data.get("snapshot", data) if isinstance(data, dict) else data
    if not isinstance(snap, dict):
        raise ConfigError(f"Config {cfg_path} must be a mapping")

    try:
        exclude = snap.get("exclude", [])
        if isinstance(exclude, str):
            exclude = [exclude]
        workers = snap.get("max_concurrency")
        if workers is not None and int(workers) < 1:
            raise ConfigError(f"max_concurrency in {cfg_path} must be at least 1")
        return SnapConfig(
            skip_hidden=bool(snap.get("skip_hidden", True)),
            skip_system=bool(snap.get("skip_system", True)),
            enable_hashing=bool(snap.get("enable_hashing", False)),
            integrity_level=IntegrityLevel(snap.get("integrity_level", "none")),
            max_concurrency=int(workers) if workers is not None else None,
            exclude=[str(p) for p in exclude],
            template=snap.get("template"),
            link_root=snap.get("link_root"),
            open_in_browser=bool(snap.get("open_in_browser", False)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in config {cfg_path}: {e}") from e
