import asyncio
from typing import Dict, Optional

from avatar_bot.models import Session, TypeSelection


class SessionStore:
    """Per-chat storage for dialog sessions, plus one lock per chat."""

    def __init__(self) -> None:
        self._sessions: Dict[int, Session] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def start(self, chat_id: int, name: str) -> TypeSelection:
        session = TypeSelection(name=name)
        self._sessions[chat_id] = session
        return session

    def get(self, chat_id: int) -> Optional[Session]:
        return self._sessions.get(chat_id)

    def set(self, chat_id: int, session: Session) -> None:
        self._sessions[chat_id] = session

    def clear(self, chat_id: int) -> Optional[Session]:
        return self._sessions.pop(chat_id, None)

    def lock(self, chat_id: int) -> asyncio.Lock:
        """Lock that serialises every update for ``chat_id``."""

        lock = self._locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[chat_id] = lock
        return lock

    def __contains__(self, chat_id: int) -> bool:
        return chat_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
