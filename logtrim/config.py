"""Configuration loading from an optional YAML file and environment variables.

Precedence, lowest to highest: dataclass defaults, YAML file, environment.

Example YAML:

    dedup:
      similarity_threshold: 0.8
      parallel_threshold: 1000
    reader:
      encoding: utf-8
"""

import logging
import os
import sys
from dataclasses import dataclass, field, fields

import yaml

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [LOGTRIM] %(levelname)s %(message)s"

_ENV_PREFIX = "LOGTRIM_"


class ConfigError(ValueError):
    """A configuration value is missing, malformed, or out of range."""


@dataclass(frozen=True)
class DedupConfig:
    similarity_threshold: float = 0.8
    source_threshold: float = 0.7
    parallel_threshold: int = 1000
    inline_group_threshold: int = 10
    workers: int = 0  # 0 = one per CPU
    cache_evict_interval: int = 500
    progress_interval: int = 10

    def __post_init__(self):
        for name in ("similarity_threshold", "source_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be between 0 and 1, got {value}")
        for name in ("parallel_threshold", "inline_group_threshold",
                     "cache_evict_interval", "progress_interval"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.workers < 0:
            raise ConfigError(f"workers must be >= 0, got {self.workers}")


@dataclass(frozen=True)
class ReaderConfig:
    encoding: str = "utf-8"


@dataclass(frozen=True)
class Config:
    dedup: DedupConfig = field(default_factory=DedupConfig)
    reader: ReaderConfig = field(default_factory=ReaderConfig)


def load_yaml_config(path: str | None) -> dict:
    """Load a YAML config file. Returns empty dict if no path or file missing."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _coerce(cls, name: str, raw):
    """Convert *raw* to the declared type of field *name* on *cls*."""
    kind = {f.name: f.type for f in fields(cls)}[name]
    try:
        if kind in (int, "int"):
            return int(raw)
        if kind in (float, "float"):
            return float(raw)
        return str(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e


def _build_section(cls, yaml_section, env: dict[str, str]):
    if yaml_section is None:
        yaml_section = {}
    if not isinstance(yaml_section, dict):
        raise ConfigError(f"Config section for {cls.__name__} must be a mapping")

    known = {f.name for f in fields(cls)}
    unknown = set(yaml_section) - known
    if unknown:
        raise ConfigError(f"Unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")

    values = {name: _coerce(cls, name, raw) for name, raw in yaml_section.items()}
    for name in known:
        env_value = env.get(_ENV_PREFIX + name.upper())
        if env_value is not None:
            values[name] = _coerce(cls, name, env_value)
    return cls(**values)


def load_config(path: str | None = None, env: dict[str, str] | None = None) -> Config:
    """Build Config from defaults, the YAML file at *path*, and env vars.

    *path* falls back to LOGTRIM_CONFIG_PATH. *env* defaults to os.environ.
    """
    env = os.environ if env is None else env
    path = path or env.get(_ENV_PREFIX + "CONFIG_PATH")
    data = load_yaml_config(path)

    return Config(
        dedup=_build_section(DedupConfig, data.get("dedup"), env),
        reader=_build_section(ReaderConfig, data.get("reader"), env),
    )


def configure_logging(level: int = logging.INFO) -> None:
    """Send log output to stderr in the service log format."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
