"""
Filter — protocol dispatcher and session/message state handlers.

Lifecycle:
1. config(): read ``config|...`` lines up to ``config|ready``
2. register(): advertise the report events and filter phases we handle
3. run loop: dispatch ``report`` and ``filter`` events until EOF

Any FilterError raised here is fatal; the caller is expected to log it and
exit.
"""

import logging
from typing import Callable, Optional, TextIO

from spamclass_filter import __version__
from spamclass_filter.classes import Classifier
from spamclass_filter.dataline import DataLineFilter
from spamclass_filter.errors import ConfigError, ProtocolError, SessionError
from spamclass_filter.address import parse_address
from spamclass_filter.models.session import (
    STATE_COMMIT,
    STATE_DATA,
    STATE_ROLLBACK,
    Message,
    Session,
)
from spamclass_filter.store import SessionStore
from spamclass_filter.transport.protocol import (
    CONFIG_READY,
    FID_KIND,
    FID_NAME,
    FID_SID,
    FID_TOKEN,
    MIN_FIELDS,
    read_lines,
    require_fields,
    rest_of_line,
    split_fields,
)
from spamclass_filter.transport.writer import ProtocolWriter

logger = logging.getLogger(__name__)

FILTER_NAME = "smtpd-filter-spamclass"
DEFAULT_SUBSYSTEM = "smtp-in"

# Registration order is part of the wire contract
REPORT_EVENTS = (
    "link-connect",
    "link-disconnect",
    "link-auth",
    "tx-reset",
    "tx-begin",
    "tx-mail",
    "tx-rcpt",
    "tx-data",
    "tx-commit",
    "tx-rollback",
)
FILTER_EVENTS = ("data-line",)

# Minimum field count per event, counted over the whole line
REPORT_ARITY = {
    "link-connect": 10,
    "link-disconnect": 6,
    "link-auth": 8,
    "tx-reset": 7,
    "tx-begin": 7,
    "tx-mail": 9,
    "tx-rcpt": 9,
    "tx-data": 8,
    "tx-commit": 8,
    "tx-rollback": 7,
}
FILTER_ARITY = {
    "data-line": 8,
}


class Filter:
    def __init__(
        self,
        input_stream: TextIO,
        output_stream: TextIO,
        classifier: Classifier,
        name: str = FILTER_NAME,
    ):
        self.name = name
        self.protocol: Optional[str] = None
        self.subsystem = DEFAULT_SUBSYSTEM
        self.settings: dict[str, str] = {}
        self.store = SessionStore()
        self._lines = read_lines(input_stream)
        self._writer = ProtocolWriter(output_stream)
        self._dataline = DataLineFilter(classifier)
        self._reports: dict[str, Callable[[list[str]], None]] = {
            "link-connect": self._on_link_connect,
            "link-disconnect": self._on_link_disconnect,
            "link-auth": self._on_link_auth,
            "tx-reset": self._on_tx_reset,
            "tx-begin": self._on_tx_begin,
            "tx-mail": self._on_tx_mail,
            "tx-rcpt": self._on_tx_rcpt,
            "tx-data": self._on_tx_data,
            "tx-commit": self._on_tx_commit,
            "tx-rollback": self._on_tx_rollback,
        }

    # -- handshake --

    def config(self) -> None:
        """Consume the configuration handshake, up to and including ``config|ready``."""
        for line in self._lines:
            logger.debug(f"config: {line}")
            if line == CONFIG_READY:
                return
            fields = line.split("|", 2)
            if len(fields) < 3 or fields[0] != "config":
                raise ConfigError(f"unexpected config line: {line}")
            key, value = fields[1], fields[2]
            if key == "protocol":
                self.protocol = value
            elif key == "subsystem":
                self.subsystem = value
            self.settings[key] = value
        raise ConfigError("config failure: input ended before config|ready")

    def register(self) -> None:
        self._writer.register(self.subsystem, REPORT_EVENTS, FILTER_EVENTS)
        logger.debug(f"registered {len(REPORT_EVENTS)} report events, {len(FILTER_EVENTS)} filter events")

    def run(self) -> None:
        """Run the filter until the input ends. Raises FilterError on any fatal condition."""
        logger.info(f"Starting {self.name} v{__version__}")
        self.config()
        self.register()
        for line in self._lines:
            self.dispatch(line)
        logger.warning(f"{self.name}: unexpected EOF on input")

    # -- dispatch --

    def dispatch(self, line: str) -> None:
        fields = split_fields(line)
        if len(fields) < MIN_FIELDS:
            raise ProtocolError(f"missing atoms: {line}", code="framing_error")
        kind = fields[FID_KIND]
        name = fields[FID_NAME]
        if kind == "report":
            handler = self._reports.get(name)
            if handler is None:
                logger.debug(f"ignoring report event: {name}")
                return
            require_fields(name, fields, REPORT_ARITY[name])
            handler(fields)
        elif kind == "filter":
            if name not in FILTER_ARITY:
                logger.debug(f"ignoring filter phase: {name}")
                return
            require_fields(name, fields, FILTER_ARITY[name])
            self.data_line(fields[FID_SID], fields[FID_TOKEN], rest_of_line(line, fields, 7))
        else:
            raise ProtocolError(f"unexpected input: {line}", code="unexpected_input")

    def _on_link_connect(self, f: list[str]) -> None:
        self.link_connect(f[FID_SID], rdns=f[6], confirmed=f[7], src=f[8], dst=f[9])

    def _on_link_disconnect(self, f: list[str]) -> None:
        self.link_disconnect(f[FID_SID])

    def _on_link_auth(self, f: list[str]) -> None:
        self.link_auth(f[FID_SID], result=f[6], username=f[7])

    def _on_tx_reset(self, f: list[str]) -> None:
        self.tx_reset(f[FID_SID], f[6])

    def _on_tx_begin(self, f: list[str]) -> None:
        self.tx_begin(f[FID_SID], f[6])

    def _on_tx_mail(self, f: list[str]) -> None:
        self.tx_mail(f[FID_SID], f[6], result=f[7], address=f[8])

    def _on_tx_rcpt(self, f: list[str]) -> None:
        self.tx_rcpt(f[FID_SID], f[6], result=f[7], address=f[8])

    def _on_tx_data(self, f: list[str]) -> None:
        self.tx_data(f[FID_SID], f[6], result=f[7])

    def _on_tx_commit(self, f: list[str]) -> None:
        self.tx_commit(f[FID_SID], f[6], size=f[7])

    def _on_tx_rollback(self, f: list[str]) -> None:
        self.tx_rollback(f[FID_SID], f[6])

    # -- store lookups --

    def _session(self, event: str, sid: str) -> Session:
        session = self.store.get_session(sid)
        if session is None:
            raise SessionError(f"{event}: unknown session: {sid}", code="unknown_session",
                               details={"session": sid})
        return session

    def _message(self, event: str, sid: str, mid: Optional[str]) -> tuple[Session, Message]:
        session = self._session(event, sid)
        message = self.store.get_message(sid, mid)
        if message is None:
            raise SessionError(f"{event}: session {sid} unknown messageId: {mid}", code="unknown_message",
                               details={"session": sid, "message": mid})
        return session, message

    # -- state handlers --

    def link_connect(self, sid: str, rdns: str, confirmed: str, src: str, dst: str) -> None:
        logger.debug(f"link-connect: session={sid} rdns={rdns} confirmed={confirmed} src={src} dst={dst}")
        self.store.create_session(Session(
            id=sid, rdns=rdns, confirmed=confirmed == "pass", remote=src, local=dst,
        ))

    def link_disconnect(self, sid: str) -> None:
        logger.debug(f"link-disconnect: session={sid}")
        self._session("link-disconnect", sid)
        self.store.remove_session(sid)

    def session_timeout(self, sid: str) -> None:
        """Expire a session. Same effect as link-disconnect; not driven by the wire protocol."""
        logger.debug(f"session-timeout: session={sid}")
        self._session("session-timeout", sid)
        self.store.remove_session(sid)

    def link_auth(self, sid: str, result: str, username: str) -> None:
        logger.debug(f"link-auth: session={sid} result={result} username={username}")
        session = self._session("link-auth", sid)
        if result == "pass":
            session.authorized_user = username

    def tx_reset(self, sid: str, mid: str) -> None:
        logger.debug(f"tx-reset: session={sid} message={mid}")
        session, _ = self._message("tx-reset", sid, mid)
        self.store.reset_message(session, mid)

    def tx_begin(self, sid: str, mid: str) -> None:
        logger.debug(f"tx-begin: session={sid} message={mid}")
        session = self._session("tx-begin", sid)
        self.store.begin_message(session, mid)

    def tx_mail(self, sid: str, mid: str, result: str, address: str) -> None:
        logger.debug(f"tx-mail: session={sid} message={mid} result={result} address={address}")
        _, message = self._message("tx-mail", sid, mid)
        if result == "ok":
            parsed = parse_address(address)
            if parsed is None:
                logger.warning(f"tx-mail: failed parsing envelope-from: {address}")
            else:
                message.envelope_from.append(parsed)

    def tx_rcpt(self, sid: str, mid: str, result: str, address: str) -> None:
        logger.debug(f"tx-rcpt: session={sid} message={mid} result={result} address={address}")
        _, message = self._message("tx-rcpt", sid, mid)
        if result == "ok":
            parsed = parse_address(address)
            if parsed is None:
                logger.warning(f"tx-rcpt: failed parsing envelope-to: {address}")
            else:
                message.envelope_to.append(parsed)

    def tx_data(self, sid: str, mid: str, result: str) -> None:
        logger.debug(f"tx-data: session={sid} message={mid} result={result}")
        session, message = self._message("tx-data", sid, mid)
        if result == "ok":
            session.data_message = mid
            message.state = STATE_DATA
            message.in_header = True

    def tx_commit(self, sid: str, mid: str, size: str) -> None:
        logger.debug(f"tx-commit: session={sid} message={mid} size={size}")
        _, message = self._message("tx-commit", sid, mid)
        message.state = STATE_COMMIT

    def tx_rollback(self, sid: str, mid: str) -> None:
        logger.debug(f"tx-rollback: session={sid} message={mid}")
        _, message = self._message("tx-rollback", sid, mid)
        message.state = STATE_ROLLBACK

    def data_line(self, sid: str, token: str, line: str) -> None:
        """Filter one body line of the session's data message and emit the response lines."""
        logger.debug(f"data-line: session={sid} token={token} line={line}")
        session = self._session("data-line", sid)
        _, message = self._message("data-line", sid, session.data_message)
        for output in self._dataline.process(message, line):
            self._writer.dataline(sid, token, output)
