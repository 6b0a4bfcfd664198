"""Collection store - JSON file persistence for collections.

Implements CollectionStoreProtocol. The store path is injected by the app.

Store format (JSON):
{
  "version": "1.0",
  "collections": {
    "test": {
      "name": "test",
      "game": "valheim",
      "plugins": [
        {
          "ident": "denikson-BepInExPack_Valheim-5.4.2202",
          "enabled": true,
          "install_time": "2025-10-26T12:00:00Z"
        }
      ]
    }
  }
}
"""

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from .collection import Collection
from .exceptions import CollectionNotFoundError
from .exceptions import KatabasisError

logger = logging.getLogger(__name__)


class JsonCollectionStore:
    """
    Collection store backed by a single JSON file (with injected path).

    The file is read on construction and rewritten atomically on every change.
    """

    VERSION = "1.0"

    def __init__(self, store_path: Path):
        """Initialize store with app-provided file path.

        Args:
            store_path: Path to the JSON file (app determines location)

        Raises:
            KatabasisError: If an existing store file cannot be parsed

        Example:
            >>> store = JsonCollectionStore(store_path=Path.home() / ".katabasis" / "collections.json")
        """
        self.store_path = store_path
        self._data: dict[str, dict] = {}
        self._load()

    def _load(self) -> None:
        """Load store file if it exists."""
        if not self.store_path.exists():
            self._data = {}
            return

        try:
            with open(self.store_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise KatabasisError(
                f"Failed to read collection store: {e}",
                context={"store_path": str(self.store_path)},
            ) from e

        if data.get("version") != self.VERSION:
            logger.warning(f"Collection store version mismatch: expected {self.VERSION}, got {data.get('version')}")

        self._data = dict(data.get("collections", {}))
        logger.debug(f"Loaded {len(self._data)} collections from store")

    def _save(self) -> None:
        """Write store file (temp file + replace)."""
        self.store_path.parent.mkdir(parents=True, exist_ok=True)

        data = {"version": self.VERSION, "collections": self._data}
        tmp_path = self.store_path.with_name(f"{self.store_path.name}.tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.store_path)

        logger.debug(f"Saved collection store with {len(self._data)} collections")

    def _parse(self, name: str, raw: dict) -> Collection:
        try:
            return Collection.model_validate(raw)
        except ValidationError as e:
            raise KatabasisError(
                f"Stored collection '{name}' is invalid: {e}",
                context={"collection": name, "store_path": str(self.store_path)},
            ) from e

    def save(self, collection: Collection) -> None:
        """Insert or replace a collection."""
        self._data[collection.name] = collection.model_dump(mode="json")
        self._save()
        logger.debug(f"Saved collection {collection.name}")

    def load(self, name: str) -> Collection:
        """
        Load a collection by name.

        Raises:
            CollectionNotFoundError: If no collection has that name
        """
        raw = self._data.get(name)
        if raw is None:
            raise CollectionNotFoundError(
                f"Collection '{name}' not found",
                context={"collection": name, "store_path": str(self.store_path)},
            )
        return self._parse(name, raw)

    def load_all(self) -> list[Collection]:
        """Load every stored collection."""
        return [self._parse(name, raw) for name, raw in self._data.items()]

    def remove(self, collection: Collection) -> None:
        """Remove a collection (no-op if it is not stored)."""
        if collection.name in self._data:
            del self._data[collection.name]
            self._save()
            logger.debug(f"Removed collection {collection.name}")

    def exists(self, name: str) -> bool:
        return name in self._data
