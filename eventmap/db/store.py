"""Flat-file JSON document store.

The whole site state lives in one JSON object::

    {"addresses": [...], "rules": "...", "adminPassword": "$2b$..."}

It is read once at startup and rewritten in full on every mutation. Writes go
to a temporary file beside the target and are moved into place with
``os.replace`` so a crash or a serialisation error can never leave a
half-written document behind.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator

from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def default_document(admin_password: str = "") -> Document:
    return {"addresses": [], "rules": "", "adminPassword": admin_password}


class JsonDocumentStore:
    """Owner of the durable document, handed explicitly to each service."""

    def __init__(self, path: Path | str, defaults: Document | None = None) -> None:
        self.path = Path(path)
        self._defaults = defaults if defaults is not None else default_document()
        self._document: Document = copy.deepcopy(self._defaults)
        # Re-entrant so ``write_all`` can run inside ``transaction``.
        self._lock = threading.RLock()

    def load(self) -> Document:
        """Read the file from disk, creating it from the defaults if needed."""

        with self._lock:
            created = False
            if self.path.exists():
                try:
                    raw = json.loads(self.path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as exc:
                    raise PersistenceError(f"Cannot read data file {self.path}: {exc}") from exc
                if not isinstance(raw, dict):
                    raise PersistenceError(f"Data file {self.path} does not hold a JSON object")
            else:
                raw = {}
                created = True

            document = copy.deepcopy(self._defaults)
            document.update(raw)
            missing = set(self._defaults) - set(raw)
            self._document = document
            if created or missing:
                logger.info("Initialising data file %s", self.path)
                self.write_all(document)
            return self.read()

    def read(self) -> Document:
        with self._lock:
            return copy.deepcopy(self._document)

    def write_all(self, document: Document) -> None:
        """Replace the stored document wholesale.

        Nothing changes, on disk or in memory, unless the new document was
        written completely.
        """

        with self._lock:
            try:
                payload = json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False)
                data = payload.encode("utf-8")
            except (TypeError, ValueError) as exc:
                # ValueError covers NaN/Infinity and UnicodeEncodeError for lone surrogates
                raise PersistenceError(f"Document is not serialisable: {exc}") from exc

            directory = self.path.parent if str(self.path.parent) else Path(".")
            tmp_name = None
            try:
                directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self.path)
            except OSError as exc:
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                logger.error("Failed to write %s: %s", self.path, exc)
                raise PersistenceError(f"Failed to write data file: {exc}") from exc

            self._document = json.loads(payload)

    @contextmanager
    def transaction(self) -> Iterator[Document]:
        """Read, mutate in memory, write: one writer at a time.

        Mutations made inside the block are discarded if it raises.
        """

        with self._lock:
            document = self.read()
            yield document
            self.write_all(document)

