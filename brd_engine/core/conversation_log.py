"""Append-only record of the dialogue that drives revisions."""

import time
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class TurnRole(str, Enum):
    """Speaker of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationTurn(BaseModel):
    """A single immutable turn."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: TurnRole
    content: str
    timestamp: int = Field(..., description="Epoch milliseconds, strictly increasing per log")


def get_current_timestamp() -> int:
    return int(time.time() * 1000)


class ConversationLog:
    """
    Ordered, append-only sequence of turns.

    Turns are never reordered, edited or removed. ``record`` stamps each new
    turn with a timestamp strictly greater than the previous one, so ordering
    by timestamp and by position always agree.
    """

    def __init__(self) -> None:
        self._turns: list[ConversationTurn] = []

    def append(self, turn: ConversationTurn) -> ConversationTurn:
        if self._turns and turn.timestamp <= self._turns[-1].timestamp:
            raise ValueError("Turn timestamps must be strictly increasing")
        self._turns.append(turn)
        return turn

    def record(self, role: TurnRole | str, content: str) -> ConversationTurn:
        """Create and append a turn stamped with the next timestamp."""
        timestamp = get_current_timestamp()
        if self._turns:
            timestamp = max(timestamp, self._turns[-1].timestamp + 1)
        return self.append(ConversationTurn(role=TurnRole(role), content=content, timestamp=timestamp))

    def all(self) -> list[ConversationTurn]:
        return list(self._turns)

    def recent(self, limit: int) -> list[ConversationTurn]:
        if limit <= 0:
            return []
        return self._turns[-limit:]

    def __len__(self) -> int:
        return len(self._turns)
