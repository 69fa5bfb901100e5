"""
YAML configuration for scored search.

Example config.yml:

    workspace: ./workspace
    search:
      index_dir: store/search_index
      weighting: bm25f
      fields: [Title, Content]
      boosts: {Title: 2.0, Content: 1.0}
      maximum_number_of_hits: 1000
    logs:
      log_file: logs/search.log
      log_level: INFO
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .index import DEFAULT_WEIGHTING, WEIGHTINGS
from .options import DEFAULT_MAXIMUM_NUMBER_OF_HITS

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def load_yaml_config(path: str | Path) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary."""
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping.")

    return data


def get_section(config: Dict[str, Any], section: str) -> Dict[str, Any]:
    """Return a configuration section, ensuring it is a mapping."""
    value = config.get(section, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Section '{section}' must be a mapping.")
    return value


def _resolve_config_path(workspace: Optional[str], value: Optional[str], default_relative: str) -> str:
    base = Path(workspace or "./workspace")
    candidate = Path(value) if value else Path(default_relative)
    if candidate.is_absolute():
        return str(candidate.resolve())
    return str((base / candidate).resolve())


@dataclass
class LogsConfig:
    log_file: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"logs.log_level is not a logging level: {self.log_level}")


@dataclass
class SearchConfig:
    index_dir: str
    indexname: Optional[str] = None
    weighting: str = DEFAULT_WEIGHTING
    fields: List[str] = field(default_factory=list)
    boosts: Dict[str, float] = field(default_factory=dict)
    maximum_number_of_hits: int = DEFAULT_MAXIMUM_NUMBER_OF_HITS
    logs: LogsConfig = field(default_factory=LogsConfig)

    def __post_init__(self):
        if self.weighting not in WEIGHTINGS:
            raise ConfigurationError(
                f"search.weighting must be one of: {', '.join(sorted(WEIGHTINGS))}"
            )
        if self.maximum_number_of_hits < 1:
            raise ConfigurationError("search.maximum_number_of_hits must be >= 1")
        if not isinstance(self.fields, list):
            raise ConfigurationError("search.fields must be a list")
        if not isinstance(self.boosts, dict):
            raise ConfigurationError("search.boosts must be a mapping")

    @classmethod
    def from_app_config(cls, config: Dict[str, Any]) -> "SearchConfig":
        workspace = config.get("workspace")
        search_section = get_section(config, "search")
        logs_section = get_section(config, "logs")

        log_file = logs_section.get("log_file")
        logs_cfg = LogsConfig(
            log_file=_resolve_config_path(workspace, log_file, "") if log_file else None,
            log_level=str(logs_section.get("log_level", "INFO")),
        )

        return cls(
            index_dir=_resolve_config_path(workspace, search_section.get("index_dir"), "store/search_index"),
            indexname=search_section.get("indexname"),
            weighting=str(search_section.get("weighting", DEFAULT_WEIGHTING)).lower(),
            fields=list(search_section.get("fields") or []),
            boosts=dict(search_section.get("boosts") or {}),
            maximum_number_of_hits=int(
                search_section.get("maximum_number_of_hits", DEFAULT_MAXIMUM_NUMBER_OF_HITS)
            ),
            logs=logs_cfg,
        )

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "SearchConfig":
        return cls.from_app_config(load_yaml_config(config_path))


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure console logging and, optionally, a log file on the root logger."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    if not log_file:
        return

    log_path = Path(log_file)
    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path.resolve():
            return

    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(file_handler)
