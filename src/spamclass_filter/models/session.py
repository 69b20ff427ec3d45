"""
Session and message state — one Session per MTA connection, one Message per transaction.
"""

from typing import Optional
from pydantic import BaseModel

STATE_INIT = "init"
STATE_DATA = "data"
STATE_COMMIT = "commit"
STATE_ROLLBACK = "rollback"


class Message(BaseModel):
    id: str
    header_from: list[str] = []
    header_to: list[str] = []
    envelope_from: list[str] = []
    envelope_to: list[str] = []
    state: str = STATE_INIT  # "init" | "data" | "commit" | "rollback"
    in_header: bool = True
    spam_score: float = 0.0
    spam_score_set: bool = False


class Session(BaseModel):
    id: str
    rdns: str = ""
    confirmed: bool = False
    remote: str = ""
    local: str = ""
    authorized_user: Optional[str] = None
    data_message: Optional[str] = None
    messages: dict[str, Message] = {}
