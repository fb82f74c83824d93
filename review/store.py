"""In-memory registry of open review sessions."""
from __future__ import annotations

from typing import Dict, List

from loguru import logger

from core.exceptions import NotFoundError
from .session import DEFAULT_REVIEW_THRESHOLD, ReviewSession


class SessionStore:
    """Sessions keyed by session_id.

    No locking: the embedding layer serializes mutations per session_id.
    """

    def __init__(self, review_threshold: float = DEFAULT_REVIEW_THRESHOLD):
        self.review_threshold = review_threshold
        self._sessions: Dict[str, ReviewSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create(self, location: str = "", period: str = "") -> ReviewSession:
        session = ReviewSession(location=location, period=period, review_threshold=self.review_threshold)
        self._sessions[session.session_id] = session
        logger.debug(f"Created review session {session.session_id} for location '{location}'")
        return session

    def get(self, session_id: str) -> ReviewSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFoundError(f"Unknown review session '{session_id}'") from None

    def discard(self, session_id: str) -> None:
        """Drop a session, typically after finalization and reconciliation."""
        if self._sessions.pop(session_id, None) is not None:
            logger.debug(f"Discarded review session {session_id}")

    def session_ids(self) -> List[str]:
        return list(self._sessions)
