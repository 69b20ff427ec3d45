"""
Protocol writer — registration and filter responses.
"""

import logging
from typing import Iterable, TextIO

from spamclass_filter.errors import StreamError
from spamclass_filter.transport.protocol import DELIMITER

logger = logging.getLogger(__name__)


class ProtocolWriter:
    def __init__(self, output: TextIO):
        self._output = output

    def write_line(self, line: str) -> None:
        try:
            self._output.write(line + "\n")
            self._output.flush()
        except (OSError, ValueError) as e:
            raise StreamError(f"output failed with: {e}")

    def register(self, subsystem: str, reports: Iterable[str], filters: Iterable[str]) -> None:
        """Advertise report events, then filter phases, then ready."""
        for kind, names in (("report", reports), ("filter", filters)):
            for name in names:
                line = DELIMITER.join(["register", kind, subsystem, name])
                logger.debug(f"register: {line}")
                self.write_line(line)
        logger.debug("register: register|ready")
        self.write_line("register|ready")

    def dataline(self, session_id: str, token: str, line: str) -> None:
        self.write_line(DELIMITER.join(["filter-dataline", session_id, token, line]))
