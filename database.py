"""
File-backed document store for the catalog.

The catalog lives in a single JSON file that is always read and written as a
whole. Configure its location with the DATABASE_PATH environment variable.
"""

import json
import logging
import os
import stat
import tempfile
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from bson import ObjectId
from filelock import FileLock
from pydantic import ValidationError

from schemas import Catalog, Product

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("DATABASE_PATH", "data.json")

SAMPLE_PRODUCTS: List[Dict[str, Any]] = [
    {"name": "Classic White Shirt", "price": 1499, "stock": 20, "imageUrl": ""},
    {"name": "Silk Scarf", "price": 799, "stock": 15, "imageUrl": ""},
]


class StorageError(Exception):
    """The catalog file exists but does not hold a readable catalog."""


def new_id() -> str:
    return str(ObjectId())


class JSONDocumentStore:
    def __init__(self, path: str, seed: Optional[Sequence[Dict[str, Any]]] = None):
        self.path = os.path.abspath(path)
        self.seed = list(SAMPLE_PRODUCTS if seed is None else seed)
        self._lock = threading.RLock()
        self._file_lock = FileLock(self.path + ".lock")

    # ---------- whole-document I/O ----------

    def load(self) -> Catalog:
        raw = self._read()
        if raw is None:
            with self._exclusive():
                raw = self._read()
                if raw is None:
                    return self._write_seed()
        try:
            return Catalog.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Corrupt catalog file {self.path}: {e}") from e

    def flush(self, catalog: Catalog) -> None:
        data = json.dumps(catalog.model_dump(by_alias=True), indent=2)
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".catalog-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Flushed %d products to %s", len(catalog.products), self.path)

    # ---------- lifecycle ----------

    def initialize(self) -> Catalog:
        """Seed the sample products when the catalog holds none."""
        with self._exclusive():
            catalog = self.load()
            if not catalog.products and self.seed:
                catalog = self._write_seed()
            logger.info("Catalog ready at %s with %d products", self.path, len(catalog.products))
            return catalog

    @contextmanager
    def transaction(self) -> Iterator[Catalog]:
        """Load, hand the document to the caller, flush if the block succeeds.

        Transactions are serialized by a thread lock plus a lock file next to
        the catalog, so writers in other stores or processes sharing the path
        never work from the same stale copy.
        """
        with self._exclusive():
            catalog = self.load()
            yield catalog
            self.flush(catalog)

    def describe(self) -> Dict[str, Any]:
        exists = os.path.exists(self.path)
        info: Dict[str, Any] = {
            "path": self.path,
            "exists": exists,
            "size_bytes": os.path.getsize(self.path) if exists else 0,
            "products": None,
        }
        if exists:
            info["products"] = len(self.load().products)
        return info

    # ---------- helpers ----------

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with self._lock, self._file_lock:
            yield

    def _file_mode(self) -> int:
        # keep the permissions of the file being replaced
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            return 0o644

    def _read(self) -> Optional[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        return raw if raw.strip() else None

    def _write_seed(self) -> Catalog:
        catalog = Catalog(products=[Product(id=new_id(), reviews=[], **p) for p in self.seed])
        self.flush(catalog)
        logger.info("Seeded %s with %d sample products", self.path, len(catalog.products))
        return catalog


db = JSONDocumentStore(DATABASE_PATH)
