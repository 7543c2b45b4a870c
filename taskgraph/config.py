"""Configuration loading (.taskgraphrc)."""
from __future__ import annotations
import json
from pathlib import Path

from pydantic import ValidationError

from .errors import ConfigError
from .logging import configure_logging, LoggingConfig, TaskgraphLogger
from .models import TaskgraphConfig

RC_FILE = ".taskgraphrc"


def load_config(directory: Path) -> TaskgraphConfig:
    """Load config from .taskgraphrc or defaults."""
    rc_file = Path(directory) / RC_FILE
    if not rc_file.exists():
        return TaskgraphConfig()

    try:
        data = json.loads(rc_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{rc_file}: invalid JSON ({e.msg})") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{rc_file}: expected a JSON object")

    try:
        return TaskgraphConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"{rc_file}: {e}") from e


def apply_logging(config: TaskgraphConfig, level: str | None = None) -> TaskgraphLogger:
    """Configure logging from config; an explicit level overrides the config value."""
    return configure_logging(
        level=level or config.log_level,
        file=bool(config.log_file),
        file_path=config.log_file or LoggingConfig.file_path,
        json_format=config.log_json,
    )
