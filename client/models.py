from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class Direction(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


_id_lock = threading.Lock()
_last_id = 0


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def new_message_id() -> str:
    """Epoch-millisecond id, bumped so each call returns a larger value."""
    global _last_id
    with _id_lock:
        _last_id = max(now_ms(), _last_id + 1)
        return str(_last_id)


class NotebookMessage(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=new_message_id)
    text: str
    timestamp: int = Field(default_factory=now_ms)
    direction: Direction = Field(..., alias="type")

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.direction.value,
            "text": self.text,
            "timestamp": self.timestamp,
        }


class AssistantMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_message_id)
    text: str = ""
    role: Role
    timestamp: int = Field(default_factory=now_ms)

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role.value, "text": self.text}
