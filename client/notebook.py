from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from client.models import Direction, NotebookMessage
from client.storage import NotebookStorage


logger = logging.getLogger("chat_helper.client")


class Notebook:
    """The user's own sent/received log, persisted in full on every change."""

    def __init__(self, storage: NotebookStorage) -> None:
        self.storage = storage
        self._messages: List[NotebookMessage] = []
        for item in storage.load():
            try:
                self._messages.append(NotebookMessage.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping stored message %r: %s", item, exc)

    @property
    def messages(self) -> Tuple[NotebookMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def send(self, text: str) -> Optional[NotebookMessage]:
        return self._append(text, Direction.SENT)

    def receive(self, text: str) -> Optional[NotebookMessage]:
        return self._append(text, Direction.RECEIVED)

    def clear(self) -> None:
        self._messages = []
        self.storage.remove()

    def to_payload(self) -> List[Dict[str, Any]]:
        return [m.to_payload() for m in self._messages]

    def _append(self, text: str, direction: Direction) -> Optional[NotebookMessage]:
        text = (text or "").strip()
        if not text:
            return None
        message = NotebookMessage(text=text, direction=direction)
        self._messages.append(message)
        self._persist()
        return message

    def _persist(self) -> None:
        if self._messages:
            self.storage.save([m.to_storage() for m in self._messages])
