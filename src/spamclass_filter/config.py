"""
Filter configuration — JSON file, overridable from the command line.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from spamclass_filter.classes import DEFAULT_CLASS_CONFIG_FILE
from spamclass_filter.errors import ConfigError

DEFAULT_CONFIG_FILE = Path("/etc/mail/smtpd-filter-spamclass.json")


class FilterConfig(BaseModel):
    verbose: bool = False
    class_config_file: str = DEFAULT_CLASS_CONFIG_FILE


def load_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> FilterConfig:
    """Read the config file (defaults if absent) and apply non-None overrides."""
    path = Path(path) if path is not None else DEFAULT_CONFIG_FILE
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        data = {}
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"failed reading config {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"config {path}: expected a JSON object")
    data.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return FilterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"config {path}: {e}")
