"""Review/confirmation workflow for extracted items."""

from .feedback import REVIEW_ACTIONS, SuggestedAction, confirmation_text, suggest_actions
from .session import ItemState, ReviewEntry, ReviewSession, SessionState
from .store import SessionStore

__all__ = [
    "ItemState",
    "SessionState",
    "ReviewEntry",
    "ReviewSession",
    "SessionStore",
    "SuggestedAction",
    "REVIEW_ACTIONS",
    "confirmation_text",
    "suggest_actions",
]
