from __future__ import annotations

from typing import Any

from ..core.errors import RequestValidationFailed
from ..db.store import JsonDocumentStore


class RulesService:
    def __init__(self, store: JsonDocumentStore) -> None:
        self.store = store

    def get_rules(self) -> str:
        return self.store.read().get("rules", "")

    def set_rules(self, text: Any) -> None:
        # Stored verbatim; escaping is the renderer's job.
        if not isinstance(text, str):
            raise RequestValidationFailed("Invalid data format. Expected a string for rules.")
        with self.store.transaction() as document:
            document["rules"] = text
