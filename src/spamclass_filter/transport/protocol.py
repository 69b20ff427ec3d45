"""
Filter protocol framing.

Every line is a list of ``|``-separated fields. Event records look like:

    report|<proto>|<ts>|<subsystem>|<event>|<session>|<args...>
    filter|<proto>|<ts>|<subsystem>|<phase>|<session>|<token>|<args...>
"""

from typing import Iterator, TextIO

from spamclass_filter.errors import ProtocolError, StreamError

DELIMITER = "|"

FID_KIND = 0
FID_NAME = 4
FID_SID = 5
FID_TOKEN = 6

MIN_FIELDS = 6

CONFIG_READY = "config|ready"


def split_fields(line: str) -> list[str]:
    return line.split(DELIMITER)


def require_fields(name: str, fields: list[str], count: int) -> None:
    if len(fields) < count:
        raise ProtocolError(
            f"{name}: expected {count} args, got {fields!r}",
            code="arity_error",
            details={"event": name, "expected": count, "got": len(fields)},
        )


def rest_of_line(line: str, fields: list[str], field: int) -> str:
    """Return ``line`` from the start of ``fields[field]`` onward, untouched.

    The offset is computed over the original line so delimiters inside the
    remainder are preserved exactly.
    """
    offset = sum(len(fields[i]) + 1 for i in range(field))
    return line[offset:]


def strip_newline(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def read_lines(stream: TextIO) -> Iterator[str]:
    """Yield lines from ``stream`` without their line terminator."""
    try:
        for line in stream:
            yield strip_newline(line)
    except (OSError, UnicodeDecodeError) as e:
        raise StreamError(f"input failed with: {e}")
