"""Persistent store for saved CV documents."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Dict, List

from ..document import CVDocument, completion_score
from ..errors import DocumentNotFoundError


class DocumentStore:
    """JSON file of titled documents with their completion percentage."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data = self._load()

    def create(self, title: str, document: CVDocument) -> int:
        title = title.strip()
        if not title:
            raise ValueError("Title is required")
        now = time.time()
        doc_id = max((item["id"] for item in self._data), default=0) + 1
        self._data.append(
            {
                "id": doc_id,
                "title": title,
                "data": document.to_payload(),
                "completion_percentage": completion_score(document),
                "created_at": now,
                "updated_at": now,
            }
        )
        self._persist()
        return doc_id

    def update(self, doc_id: int, document: CVDocument) -> None:
        record = self.get_record(doc_id)
        record["data"] = document.to_payload()
        record["completion_percentage"] = completion_score(document)
        record["updated_at"] = time.time()
        self._persist()

    def get(self, doc_id: int) -> CVDocument:
        return CVDocument.model_validate(self.get_record(doc_id)["data"])

    def get_record(self, doc_id: int) -> Dict:
        for item in self._data:
            if item["id"] == doc_id:
                return item
        raise DocumentNotFoundError(doc_id)

    def list(self) -> List[Dict]:
        return sorted(self._data, key=lambda item: (item["updated_at"], item["id"]), reverse=True)

    def delete(self, doc_id: int) -> None:
        record = self.get_record(doc_id)
        self._data = [item for item in self._data if item is not record]
        self._persist()

    def __len__(self) -> int:
        return len(self._data)

    def _load(self) -> List[Dict]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            return []
        return data if isinstance(data, list) else []

    def _persist(self) -> None:
        self.path.write_text(json.dumps(self._data, ensure_ascii=False), encoding="utf-8")


__all__ = ["DocumentStore"]
