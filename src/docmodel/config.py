"""
Configuration Management for DocModel Applications

🔧 Unified Configuration System:
One dataclass tree for the storage backend, cascade propagation and
logging. Sources are layered: per-environment presets first, then a
dictionary, a JSON / YAML file or DOCMODEL_* environment variables.

    config = ApplicationConfig.from_file("docmodel.yaml")
    configure_logging(config.logging)
"""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
import json
import logging
import logging.handlers
import os

import yaml


class Environment(Enum):
    """Deployment environments with their own presets"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class PersistenceConfig:
    """Which document store to open and how"""
    backend: str = "memory"  # "memory" or "mongo"
    url: str = "mongodb://localhost:27017"
    database: str = "docmodel"
    timeout_ms: int = 5000


@dataclass
class CascadeConfigOptions:
    """How denormalized copies are propagated"""
    enabled: bool = True
    await_propagation: bool = False
    operation_timeout: float = 10.0  # seconds per storage call
    max_depth: int = 8


@dataclass
class LoggingConfig:
    """Package logger settings"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


SECTIONS = ("persistence", "cascade", "logging")

_PRESETS: Dict[Environment, Dict[str, Any]] = {
    Environment.DEVELOPMENT: {
        "debug": True,
        "logging": {"level": "DEBUG"},
    },
    Environment.TESTING: {
        "persistence": {"backend": "memory"},
        "cascade": {"await_propagation": True},
        "logging": {"level": "WARNING"},
    },
    Environment.PRODUCTION: {
        "persistence": {"backend": "mongo"},
        "logging": {"level": "INFO", "file_path": "/var/log/docmodel/app.log"},
    },
}


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# (variable, section or None for top level, attribute, converter)
_ENVIRONMENT_VARIABLES: List[Tuple[str, Optional[str], str, Callable[[str], Any]]] = [
    ("DOCMODEL_DEBUG", None, "debug", _flag),
    ("DOCMODEL_BACKEND", "persistence", "backend", str),
    ("DOCMODEL_MONGO_URL", "persistence", "url", str),
    ("DOCMODEL_DATABASE", "persistence", "database", str),
    ("DOCMODEL_LOG_LEVEL", "logging", "level", str.upper),
]

_FILE_LOADERS: Dict[str, Callable[[Any], Any]] = {
    ".json": json.load,
    ".yml": yaml.safe_load,
    ".yaml": yaml.safe_load,
}


def _update_section(section: Any, values: Dict[str, Any]) -> None:
    # Keys the section does not declare are ignored.
    names = {f.name for f in fields(section)}
    for key, value in values.items():
        if key in names:
            setattr(section, key, value)


def _section_dict(section: Any) -> Dict[str, Any]:
    return {f.name: getattr(section, f.name) for f in fields(section)}


@dataclass
class ApplicationConfig:
    """Complete application configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    cascade: CascadeConfigOptions = field(default_factory=CascadeConfigOptions)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    custom: Dict[str, Any] = field(default_factory=dict)

    def apply(self, overrides: Dict[str, Any]) -> 'ApplicationConfig':
        """
        Merge a (partial) configuration dictionary into this one.

        Args:
            overrides: {"debug": ..., "persistence": {...}, "cascade": {...}, ...}

        Returns:
            self, for chaining
        """
        if "debug" in overrides:
            self.debug = bool(overrides["debug"])
        for section in SECTIONS:
            if section in overrides:
                _update_section(getattr(self, section), overrides[section] or {})
        if "custom" in overrides:
            self.custom = dict(overrides["custom"] or {})
        return self

    @classmethod
    def for_environment(cls, environment: Environment) -> 'ApplicationConfig':
        """Defaults plus the preset of `environment`"""
        return cls(environment=environment).apply(_PRESETS.get(environment, {}))

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> 'ApplicationConfig':
        """Build from a dictionary shaped like `to_dict()`; presets are not applied"""
        config_dict = config_dict or {}
        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT.value))
        return cls(environment=environment).apply(config_dict)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'ApplicationConfig':
        """
        Load a JSON or YAML configuration file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: For any other file extension
        """
        config_path = Path(config_path)
        loader = _FILE_LOADERS.get(config_path.suffix.lower())
        if loader is None:
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")
        if not config_path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with config_path.open(encoding="utf-8") as f:
            return cls.from_dict(loader(f))

    @classmethod
    def from_environment(cls) -> 'ApplicationConfig':
        """Preset of DOCMODEL_ENV, overridden by the other DOCMODEL_* variables"""
        config = cls.for_environment(Environment(os.getenv("DOCMODEL_ENV", "development")))

        for variable, section, attribute, convert in _ENVIRONMENT_VARIABLES:
            raw = os.getenv(variable)
            if not raw:
                continue
            target = config if section is None else getattr(config, section)
            setattr(target, attribute, convert(raw))

        return config

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"environment": self.environment.value, "debug": self.debug}
        for section in SECTIONS:
            data[section] = _section_dict(getattr(self, section))
        data["custom"] = dict(self.custom)
        return data


def configure_logging(config: LoggingConfig, logger_name: str = "docmodel") -> logging.Logger:
    """
    Configure the package logger.

    Console output always; a size-rotated file when `file_path` is set.
    Calling it again replaces the handlers installed by the previous call.

    Args:
        config: Logging configuration
        logger_name: Logger to configure (the package root by default)

    Returns:
        The configured logger
    """
    target = logging.getLogger(logger_name)
    target.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(target.handlers):
        if getattr(handler, "_docmodel_handler", False):
            target.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler._docmodel_handler = True
    target.addHandler(console_handler)

    if config.file_path:
        log_file = Path(config.file_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler._docmodel_handler = True
        target.addHandler(file_handler)

    return target


__all__ = [
    "ApplicationConfig", "Environment", "PersistenceConfig", "CascadeConfigOptions",
    "LoggingConfig", "configure_logging",
]
