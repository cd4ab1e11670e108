"""
JSON file persistence.

Each collection is one JSON array on disk. Reads load the whole array,
writes replace the whole file through a temp file + os.replace so a crash
never leaves a truncated collection behind.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from errors import IOFailure, ParseFailure
from logger import build_logger

logger = build_logger(__name__)

M = TypeVar("M", bound=BaseModel)

COLLECTION_FILE_MODE = 0o644

_locks: Dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    # one lock per file so two collections on the same path still serialize
    with _locks_guard:
        if path not in _locks:
            _locks[path] = threading.RLock()
        return _locks[path]


class JsonCollection:
    def __init__(self, file_path: Path):
        self.file_path = Path(file_path).resolve()
        self.name = self.file_path.stem
        self.lock = _lock_for(self.file_path)

    def exists(self) -> bool:
        return self.file_path.is_file()

    def read(self) -> List[Dict[str, Any]]:
        with self.lock:
            if not self.file_path.exists():
                logger.info(f"Collection file {self.file_path} missing, creating empty collection")
                self.write([])
                return []
            try:
                with open(self.file_path, encoding="utf-8") as f:
                    text = f.read().strip()
            except UnicodeDecodeError as e:
                logger.error(f"Undecodable bytes in {self.file_path}: {e}")
                raise ParseFailure(f"Stored {self.name} collection is not valid UTF-8") from e
            except OSError as e:
                logger.error(f"Failed to read {self.file_path}: {e}")
                raise IOFailure(f"Cannot read {self.name} collection") from e

            if text == "":
                return []
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                logger.error(f"Corrupt JSON in {self.file_path}: {e}")
                raise ParseFailure(f"Stored {self.name} collection is not valid JSON") from e
            if not isinstance(data, list):
                raise ParseFailure(f"Stored {self.name} collection is not a JSON array")
            return data

    def write(self, records: List[Dict[str, Any]]) -> None:
        with self.lock:
            tmp_path = None
            try:
                self.file_path.parent.mkdir(parents=True, exist_ok=True)
                # temp file in the same directory so the rename stays on one filesystem
                with tempfile.NamedTemporaryFile(
                    "w", dir=self.file_path.parent, suffix=".tmp", delete=False, encoding="utf-8"
                ) as tmp:
                    tmp_path = tmp.name
                    json.dump(records, tmp, indent=2, ensure_ascii=False)
                # NamedTemporaryFile is owner-only; collection files are world-readable
                os.chmod(tmp_path, COLLECTION_FILE_MODE)
                os.replace(tmp_path, self.file_path)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to write {self.file_path}: {e}")
                if tmp_path and os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise IOFailure(f"Cannot write {self.name} collection") from e


def parse_records(model: Type[M], records: List[Dict[str, Any]], source: str) -> List[M]:
    """Turn raw stored dicts into models, treating a bad record as corrupt data."""
    out = []
    for index, record in enumerate(records):
        try:
            out.append(model.model_validate(record))
        except ValidationError as e:
            raise ParseFailure(f"Stored {source} record #{index} is malformed") from e
    return out
