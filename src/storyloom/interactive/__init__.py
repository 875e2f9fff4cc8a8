"""Interactive layer: the assistant session."""

from .session import AssistantSession, AssistantTurnState, TurnResult, attach_autosave

__all__ = ["AssistantSession", "AssistantTurnState", "TurnResult", "attach_autosave"]
