"""Review checks for session drafts."""

from shopkeeper.validation.validator import DraftValidator

__all__ = ["DraftValidator"]
