from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List


logger = logging.getLogger("chat_helper.client")

STORAGE_KEY = "chatMessages"


class NotebookStorage:
    """A single key-value slot holding a JSON array, backed by one file."""

    def __init__(self, data_dir: Path, key: str = STORAGE_KEY) -> None:
        self.path = Path(data_dir) / f"{key}.json"

    def load(self) -> List[Dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable notebook at %s: %s", self.path, exc)
            return []
        if not isinstance(items, list):
            logger.warning("Ignoring notebook at %s: expected a JSON array", self.path)
            return []
        return items

    def save(self, items: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)
