"""Typed intake and sale drafts with an explicit commit step."""

from shopkeeper.sessions.intake import IntakeDraft, IntakeSession
from shopkeeper.sessions.sale import SaleSession
from shopkeeper.sessions.state import Session, SessionState

__all__ = [
    "IntakeDraft",
    "IntakeSession",
    "SaleSession",
    "Session",
    "SessionState",
]
