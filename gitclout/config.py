"""Configuration loading for gitclout (.gitclout.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".gitclout.yml"

DEFAULT_MAX_WORKERS = 12
DEFAULT_TIMEOUT_SECONDS = 60 * 60.0


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AnalysisConfig:
    """Worker pool sizing, timeout guard and path exclusions."""

    max_workers: int = DEFAULT_MAX_WORKERS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class GitCloutConfig:
    """Represents the settings defined in .gitclout.yml."""

    root: Path
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)


def load_config(config_path: Path) -> GitCloutConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return GitCloutConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    analysis = AnalysisConfig()
    analysis_data = _as_dict(data.get("analysis"))
    if analysis_data:
        max_workers = _as_int(analysis_data.get("max_workers"))
        if max_workers is not None and max_workers > 0:
            analysis.max_workers = max_workers
        timeout = _as_float(analysis_data.get("timeout_seconds"))
        if timeout is not None and timeout > 0:
            analysis.timeout_seconds = timeout
        analysis.exclude_paths = _as_str_list(analysis_data.get("exclude_paths"))

    return GitCloutConfig(root=root, analysis=analysis)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AnalysisConfig",
    "ConfigError",
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_TIMEOUT_SECONDS",
    "GitCloutConfig",
    "load_config",
]
