"""
smtpd-filter-spamclass — OpenSMTPD filter adding X-Spam-Class headers.

Reads the rspamd X-Spam-Score header of each incoming message and emits
X-Spam and X-Spam-Class headers from per-recipient score thresholds.
"""

__version__ = "0.1.0"

from spamclass_filter.filter import Filter
from spamclass_filter.store import SessionStore
from spamclass_filter.classes import Classifier, SpamClasses
from spamclass_filter.config import FilterConfig, load_config
from spamclass_filter.address import parse_address
from spamclass_filter.errors import FilterError, ConfigError, ProtocolError, SessionError, StreamError

__all__ = [
    "Filter",
    "SessionStore",
    "Classifier",
    "SpamClasses",
    "FilterConfig",
    "load_config",
    "parse_address",
    "FilterError",
    "ConfigError",
    "ProtocolError",
    "SessionError",
    "StreamError",
]
