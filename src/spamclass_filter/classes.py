"""
Spam classification by per-recipient score thresholds.
"""

import json
import logging
import math
from pathlib import Path
from typing import Optional, Protocol, Union

from pydantic import ValidationError

from spamclass_filter.errors import ConfigError
from spamclass_filter.models.classes import ClassesFile, SpamClass

logger = logging.getLogger(__name__)

DEFAULT_CLASS_CONFIG_FILE = "/etc/mail/filter_rspamd_classes.json"

DEFAULT_CLASSES = [
    SpamClass(name="ham", score=0),
    SpamClass(name="possible", score=3),
    SpamClass(name="probable", score=10),
    SpamClass(name="spam", score=999),
]


class Classifier(Protocol):
    def get_class(self, addresses: list[str], score: float) -> str: ...


def _normalize(levels: list[SpamClass]) -> list[SpamClass]:
    ordered = sorted(levels, key=lambda level: level.score)
    if ordered:
        ordered[-1] = SpamClass(name=ordered[-1].name, score=math.inf)
    return ordered


class SpamClasses:
    """Maps (candidate addresses, score) to a class name."""

    def __init__(
        self,
        classes: Optional[dict[str, list[SpamClass]]] = None,
        default: Optional[list[SpamClass]] = None,
    ):
        self._default = _normalize(DEFAULT_CLASSES if default is None else default)
        self._classes = {
            address.lower(): _normalize(levels) for address, levels in (classes or {}).items()
        }

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SpamClasses":
        path = Path(path)
        try:
            raw = json.loads(path.read_text())
        except FileNotFoundError:
            logger.warning(f"classes file {path} not found; using default thresholds")
            return cls()
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"SpamClasses config error: {path}: {e}")
        try:
            parsed = ClassesFile.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"SpamClasses config error: {path}: {e}")
        logger.debug(f"read classes from {path}")
        return cls(parsed.root)

    def levels(self, addresses: list[str]) -> list[SpamClass]:
        for address in addresses:
            levels = self._classes.get(address.lower())
            if levels is not None:
                return levels
        return self._default

    def get_class(self, addresses: list[str], score: float) -> str:
        for level in self.levels(addresses):
            if score < level.score:
                return level.name
        return ""
