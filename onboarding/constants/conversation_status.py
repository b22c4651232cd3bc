"""Conversation lifecycle states and the allowed transition graph."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[ConversationStatus] = frozenset(
    {
        ConversationStatus.COMPLETED,
        ConversationStatus.ABANDONED,
        ConversationStatus.ERROR,
    }
)

# Terminal states have no outgoing edges.
ALLOWED_TRANSITIONS: Dict[ConversationStatus, FrozenSet[ConversationStatus]] = {
    ConversationStatus.ACTIVE: frozenset(
        {
            ConversationStatus.ACTIVE,
            ConversationStatus.COMPLETED,
            ConversationStatus.ABANDONED,
            ConversationStatus.ERROR,
        }
    ),
    ConversationStatus.COMPLETED: frozenset(),
    ConversationStatus.ABANDONED: frozenset(),
    ConversationStatus.ERROR: frozenset(),
}


def is_allowed_transition(
    current: ConversationStatus, target: ConversationStatus
) -> bool:
    return target in ALLOWED_TRANSITIONS[ConversationStatus(current)]


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
