"""
Email address extraction for envelope and header values.

Two forms are accepted:

- bracketed: anything, then ``<local@domain.tld>``, then anything
  (``Jane Doe <jane@example.org>``)
- bare: ``local@domain.tld``

The accepted address syntax is deliberately small: a local part of
``[A-Za-z0-9._%+-]``, a domain of ``[A-Za-z0-9.-]`` and a top-level label of
at least two letters. This is not RFC 5322 parsing.
"""

import re
from typing import Optional

_ADDRESS = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"

BRACKETED_ADDRESS_PATTERN = re.compile(rf"^.*<({_ADDRESS})>.*$")
ADDRESS_PATTERN = re.compile(rf"^{_ADDRESS}$")


def parse_address(value: str) -> Optional[str]:
    """Return the bare address in ``value``, or None if it holds none."""
    parsed = value.strip()
    match = BRACKETED_ADDRESS_PATTERN.fullmatch(parsed)
    if match:
        parsed = match.group(1)
    if not ADDRESS_PATTERN.fullmatch(parsed):
        return None
    return parsed


def strip_alias(address: str) -> str:
    """Drop a ``+tag`` suffix from the local part: user+tag@example.org -> user@example.org."""
    local, _, domain = address.partition("@")
    local = local.partition("+")[0]
    return f"{local}@{domain}"
