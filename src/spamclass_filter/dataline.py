"""
Data-line filter — rewrites the header block of a message in flight.

While a message is in its header block, each body line is inspected:

- ``X-Spam-Score: <n> ...`` records the score and passes through
- ``X-Spam: `` and ``X-Spam-Class: `` lines from upstream are dropped
- ``To: `` and ``From: `` addresses are collected
- the first blank line ends the header block; ``X-Spam`` and, when a class is
  known, ``X-Spam-Class`` are emitted ahead of it

Lines after the header block pass through untouched.
"""

import logging
from typing import Optional

from spamclass_filter.address import parse_address, strip_alias
from spamclass_filter.classes import Classifier
from spamclass_filter.errors import ProtocolError
from spamclass_filter.models.session import Message

logger = logging.getLogger(__name__)

SPAM_SCORE_HEADER = "X-Spam-Score: "
SPAM_HEADER = "X-Spam: "
SPAM_CLASS_HEADER = "X-Spam-Class: "
TO_HEADER = "To: "
FROM_HEADER = "From: "

SPAM_CLASS_NAME = "spam"


def parse_spam_score(line: str) -> float:
    fields = line.split(" ")
    if len(fields) < 2:
        raise ProtocolError(f"spam score parse failed: {line!r}", code="spam_score")
    try:
        return float(fields[1])
    except ValueError as e:
        raise ProtocolError(f"spam score parse failed: {e}", code="spam_score")


class DataLineFilter:
    def __init__(self, classifier: Classifier):
        self._classifier = classifier

    def process(self, message: Message, line: str) -> list[str]:
        """Return the output lines for one input body line, in order."""
        if not message.in_header:
            return [line]
        if line.strip() == "":
            message.in_header = False
        return self.filter_header_line(message, line)

    def filter_header_line(self, message: Message, line: str) -> list[str]:
        if line.startswith(SPAM_SCORE_HEADER):
            message.spam_score = parse_spam_score(line)
            message.spam_score_set = True
            return [line]

        if line.startswith(SPAM_HEADER) or line.startswith(SPAM_CLASS_HEADER):
            return []

        if line.startswith(TO_HEADER):
            address = self._header_address(line)
            if address is not None:
                message.header_to.append(address)
            return [line]

        if line.startswith(FROM_HEADER):
            address = self._header_address(line)
            if address is not None:
                message.header_from.append(address)
            return [line]

        if line.strip() == "":
            return self.end_of_headers(message, line)

        return [line]

    def _header_address(self, line: str) -> Optional[str]:
        value = line.partition(" ")[2]
        address = parse_address(value)
        if address is None:
            logger.warning(f"failed parsing header address: {line}")
        return address

    def end_of_headers(self, message: Message, line: str) -> list[str]:
        """Build the output for the blank line that closes the header block."""
        output = [line]
        logger.debug(f"generating headers for message: {message.model_dump_json()}")

        if not message.spam_score_set:
            logger.warning(f"message {message.id}: X-Spam-Score header not found")
            return output
        if not message.header_to:
            logger.warning(f"message {message.id}: missing To address")
            return output
        if not message.envelope_to:
            logger.warning(f"message {message.id}: missing envelope-to address")
            return output

        if message.envelope_to[0] != message.header_to[0]:
            logger.warning(
                f"message {message.id}: envelope-to ({message.envelope_to[0]}) "
                f"mismatches initial To ({message.header_to[0]})"
            )

        address = strip_alias(message.header_to[0])
        spam_class = self._classifier.get_class([address], message.spam_score)
        logger.debug(f"get_class({[address]}, {message.spam_score}) returned {spam_class!r}")
        if spam_class:
            output.insert(0, SPAM_CLASS_HEADER + spam_class)

        spam_state = "yes" if spam_class == SPAM_CLASS_NAME else "no"
        output.insert(0, SPAM_HEADER + spam_state)
        logger.info(
            f"address={address} score={message.spam_score} class='{spam_class}' spam={spam_state}"
        )
        return output
