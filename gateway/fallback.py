"""Local snapshot of last-known sheet contents, served when the remote store is down."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class FallbackStore(ABC):
    """Abstract base for last-known-good record storage."""

    @abstractmethod
    def save(self, sheet: str, records: Sequence[BaseModel]) -> None:
        """Replace the snapshot for a sheet."""

    @abstractmethod
    def load(self, sheet: str, model: type[ModelT]) -> list[ModelT]:
        """Load the snapshot for a sheet; empty when none was saved."""


class FileFallbackStore(FallbackStore):
    """File-based snapshots.

    Structure:
        base_dir/
            {sheet}.json   (list of record dicts)
    """

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, sheet: str) -> Path:
        return self.base_dir / f"{sheet}.json"

    def save(self, sheet: str, records: Sequence[BaseModel]) -> None:
        data = [r.model_dump(mode="json") for r in records]
        with open(self._path(sheet), "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    def load(self, sheet: str, model: type[ModelT]) -> list[ModelT]:
        path = self._path(sheet)
        if not path.exists():
            return []
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return [model.model_validate(item) for item in data]
