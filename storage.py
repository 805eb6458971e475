"""Save-game adapters. The desk treats saves as best effort."""
import json
import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class MemoryStorage:
    def __init__(self, blob: Optional[Dict] = None):
        self.blob = blob

    def load(self) -> Optional[Dict]:
        return json.loads(json.dumps(self.blob)) if self.blob is not None else None

    def save(self, blob: Dict) -> None:
        self.blob = json.loads(json.dumps(blob))

    def clear(self) -> None:
        self.blob = None


class JsonFileStorage:
    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[Dict]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                blob = json.load(f)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Unreadable save file {self.path}: {exc}") from exc
        if not isinstance(blob, dict):
            raise StorageError(f"Save file {self.path} does not hold an object")
        return blob

    def save(self, blob: Dict) -> None:
        folder = os.path.dirname(self.path)
        tmp = self.path + ".tmp"
        try:
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(blob, f)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StorageError(f"Could not write save file {self.path}: {exc}") from exc

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageError(f"Could not remove save file {self.path}: {exc}") from exc
