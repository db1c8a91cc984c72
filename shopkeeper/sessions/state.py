"""
Session State Machine

    EMPTY --seed--> DRAFT_PENDING --commit--> COMMITTED
                          |
                          +--discard--> DISCARDED

COMMITTED and DISCARDED are terminal. Discard is also allowed from EMPTY
(the user backed out before the AI answered).
"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from shopkeeper.errors import SessionStateError


class SessionState(str, Enum):
    EMPTY = "EMPTY"
    DRAFT_PENDING = "DRAFT_PENDING"
    COMMITTED = "COMMITTED"
    DISCARDED = "DISCARDED"


TERMINAL_STATES = (SessionState.COMMITTED, SessionState.DISCARDED)


class Session:
    """Common state handling for intake and sale sessions."""

    kind: str = "session"

    def __init__(self):
        self.id: UUID = uuid4()
        self.correlation_id: UUID = uuid4()
        self.opened_at: datetime = datetime.now()
        self._state = SessionState.EMPTY

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state not in TERMINAL_STATES

    def _require(self, operation: str, *allowed: SessionState) -> None:
        if self._state not in allowed:
            raise SessionStateError(operation, self._state.value)

    def _require_pending(self, operation: str) -> None:
        self._require(operation, SessionState.DRAFT_PENDING)

    def discard(self) -> None:
        """Abandon the draft. Nothing reaches the ledger or the catalog."""
        self._require("discard", SessionState.EMPTY, SessionState.DRAFT_PENDING)
        self._state = SessionState.DISCARDED
