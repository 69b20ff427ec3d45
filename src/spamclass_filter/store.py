"""
In-memory session/message store.

Lookups return None when the session or message is unknown; the dispatcher
decides what that means. Creation enforces the uniqueness invariants.
"""

from __future__ import annotations

from typing import Optional

from spamclass_filter.errors import SessionError
from spamclass_filter.models.session import Message, Session


class SessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def get_message(self, session_id: str, message_id: Optional[str]) -> Optional[Message]:
        session = self._sessions.get(session_id)
        if session is None or message_id is None:
            return None
        return session.messages.get(message_id)

    def create_session(self, session: Session) -> Session:
        if session.id in self._sessions:
            raise SessionError(f"existing session: {session.id}", code="duplicate_session",
                               details={"session": session.id})
        self._sessions[session.id] = session
        return session

    def remove_session(self, session_id: str) -> Optional[Session]:
        """Drop a session and, with it, all of its messages."""
        return self._sessions.pop(session_id, None)

    def begin_message(self, session: Session, message_id: str) -> Message:
        if message_id in session.messages:
            raise SessionError(
                f"session {session.id} has existing message {message_id}",
                code="duplicate_message",
                details={"session": session.id, "message": message_id},
            )
        message = Message(id=message_id)
        session.messages[message_id] = message
        return message

    def reset_message(self, session: Session, message_id: str) -> Message:
        """Replace any message under ``message_id`` with a fresh one."""
        message = Message(id=message_id)
        session.messages[message_id] = message
        return message
