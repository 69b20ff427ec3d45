"""Shared fixtures: protocol transcript and a recording classifier."""

import io

import pytest

from spamclass_filter import Filter

PREFIX = "report|0.7|0000000000.000000|smtp-in"
DATA = "filter|0.7|0000000000.000000|smtp-in|data-line|deadbeef|baadf00d|"

INIT_LINES = [
    "config|smtpd-version|7.7.0",
    "config|protocol|0.7",
    "config|smtp-session-timeout|300",
    "config|subsystem|smtp-in",
    "config|ready",
]

SESSION_LINES = [
    f"{PREFIX}|link-connect|deadbeef|sendhost.example.org|pass|1.2.3.4:11223|5.6.7.8:25",
    f"{PREFIX}|link-auth|deadbeef|pass|authuser",
    f"{PREFIX}|tx-begin|deadbeef|cafebabe",
    f"{PREFIX}|tx-mail|deadbeef|cafebabe|ok|fromuser@example.org",
    f"{PREFIX}|tx-rcpt|deadbeef|cafebabe|ok|touser@localdomain.ext",
    f"{PREFIX}|tx-data|deadbeef|cafebabe|ok",
]

BODY = [
    "Received: from localhost",
    "    by mailbox.rstms.net with LMTP",
    "    id SYMsDtUVXGkCNQAA8o/S4",
    "    (envelope-from <bounce+403268.63af5d-rumble=rstms.net@mg-d0.substack.com>)",
    "    for <mkrueger>; Mon, 05 Jan 2026 12:49:41 -0700",
    "X-Spam: no",
    "X-Spam-Score: 1.155 / 100",
    "X-Spam-Class: original",
    "X-Spam-Status: Yes, score=1.155 required=100.000",
    "    tests=[ARC_NA=0.000, ASN=0.000, DKIM_TRACE=0.000",
    "    DMARC_POLICY_ALLOW=00.500,",
    "    ZERO_FONT=0.300]",
    "To: touser@localdomain.ext",
    "From: fromuser@example.org",
    "Subject: filter test message",
    "",
    "first message body line",
    "second message body line with embedded | character",
    "third and last message body line",
    ".",
]

CLOSE_LINES = [
    f"{PREFIX}|tx-commit|deadbeef|cafebabe|1234",
    f"{PREFIX}|link-disconnect|deadbeef",
]


def data_lines(body):
    return [DATA + line for line in body]


class RecordingClassifier:
    """Returns a fixed class and remembers every lookup."""

    def __init__(self, spam_class="possible"):
        self.spam_class = spam_class
        self.calls = []

    def get_class(self, addresses, score):
        self.calls.append((list(addresses), score))
        return self.spam_class


def run_filter(lines, classifier=None):
    """Feed ``lines`` through a Filter; return (filter, output lines)."""
    stdin = io.StringIO("".join(line + "\n" for line in lines))
    stdout = io.StringIO()
    f = Filter(stdin, stdout, classifier or RecordingClassifier())
    f.run()
    return f, stdout.getvalue().splitlines()


def responses(output):
    return [line for line in output if line.startswith("filter-dataline|")]


@pytest.fixture
def classifier():
    return RecordingClassifier()


@pytest.fixture
def transcript():
    return INIT_LINES + SESSION_LINES + data_lines(BODY) + CLOSE_LINES
