"""
Filter error types. Every FilterError is fatal to the filter process.
"""

from typing import Any, Optional


class FilterError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigError(FilterError):
    def __init__(self, message: str, code: str = "config_error"):
        super().__init__(code, message)


class ProtocolError(FilterError):
    def __init__(self, message: str, code: str = "protocol_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class SessionError(FilterError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class StreamError(FilterError):
    def __init__(self, message: str):
        super().__init__("stream_error", message)
