"""JSON-file backed document collection."""
import copy
import datetime
import json
import os
import tempfile
import threading
import uuid
from typing import Any, Dict, List, Optional, Sequence

from .base import DocumentCollection, Sort, utcnow


def _encode(obj: Any) -> Any:
    if isinstance(obj, datetime.datetime):
        return {'$date': obj.isoformat()}
    raise TypeError(f'Object of type {type(obj).__name__} is not JSON serializable')


def _decode(obj: Dict) -> Any:
    if len(obj) == 1 and '$date' in obj:
        return datetime.datetime.fromisoformat(obj['$date'])
    return obj


def _matches(document: Dict, filter: Optional[Dict[str, Any]]) -> bool:
    for field, expected in (filter or {}).items():
        value = document.get(field)
        if isinstance(expected, dict) and '$in' in expected:
            if value not in expected['$in']:
                return False
        elif value != expected:
            return False
    return True


def _project(document: Dict, projection: Optional[Sequence[str]]) -> Dict:
    if projection is None:
        return copy.deepcopy(document)
    fields = set(projection) | {'id'}
    return {k: copy.deepcopy(v) for k, v in document.items() if k in fields}


class JsonCollection(DocumentCollection):
    """Keeps a collection in memory and persists it to one JSON file.

    File layout is a JSON array of documents in insertion order.  Datetimes
    are written as ``{"$date": "<ISO-8601>"}`` and read back as
    :class:`datetime.datetime`.

    Every mutation rewrites the file with a write-then-rename so it is never
    left partially written.  A lock serialises reads and mutations within
    the process.
    """

    def __init__(self, name: str, file_path: str) -> None:
        super().__init__(name)
        self._path = file_path
        self._lock = threading.Lock()
        self.data: Dict[str, Dict] = {}
        for document in self._load([]):
            if isinstance(document, dict) and document.get('id'):
                self.data[str(document['id'])] = document

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self, default: Any) -> Any:
        """Load JSON from *self._path*, returning *default* on missing/corrupt file."""
        if os.path.exists(self._path):
            try:
                with open(self._path, 'r') as fh:
                    loaded = json.load(fh, object_hook=_decode)
                if isinstance(loaded, list):
                    return loaded
                self._log.warning("Ignoring %s: expected a list of documents", self._path)
            except (json.JSONDecodeError, ValueError, IOError) as exc:
                self._log.warning("Could not load %s: %s", self._path, exc)
        return default

    def _save(self) -> None:
        """Atomically write the collection to *self._path*."""
        dir_name = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(dir_name, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as fh:
                json.dump(list(self.data.values()), fh, indent=2, default=_encode)
            os.replace(tmp_path, self._path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find(self, filter: Optional[Dict[str, Any]] = None,
             projection: Optional[Sequence[str]] = None,
             sort: Optional[Sort] = None,
             limit: Optional[int] = None) -> List[Dict]:
        with self._lock:
            documents = [d for d in self.data.values() if _matches(d, filter)]
            if sort is not None:
                field, direction = sort
                # Stable in both directions, so ties keep insertion order.
                documents.sort(
                    key=lambda d: (d.get(field) is not None, d.get(field)),
                    reverse=direction < 0,
                )
            if limit is not None:
                documents = documents[:limit]
            return [_project(d, projection) for d in documents]

    def find_by_id(self, doc_id: str) -> Optional[Dict]:
        with self._lock:
            document = self.data.get(str(doc_id))
            return copy.deepcopy(document) if document is not None else None

    def count_by(self, field: str,
                 filter: Optional[Dict[str, Any]] = None) -> Dict[Any, int]:
        counts: Dict[Any, int] = {}
        with self._lock:
            for document in self.data.values():
                if _matches(document, filter):
                    key = document.get(field)
                    counts[key] = counts.get(key, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, document: Dict) -> Dict:
        stored = copy.deepcopy(document)
        stored.pop('id', None)
        now = utcnow()
        stored.setdefault('createdAt', now)
        stored.setdefault('updatedAt', now)
        with self._lock:
            doc_id = uuid.uuid4().hex
            self.data[doc_id] = {'id': doc_id, **stored}
            self._save()
            return copy.deepcopy(self.data[doc_id])

    def update_by_id(self, doc_id: str, changes: Dict) -> Optional[Dict]:
        changes = {k: copy.deepcopy(v) for k, v in changes.items() if k != 'id'}
        changes.setdefault('updatedAt', utcnow())
        with self._lock:
            document = self.data.get(str(doc_id))
            if document is None:
                return None
            document.update(changes)
            self._save()
            return copy.deepcopy(document)

    def delete_by_id(self, doc_id: str) -> Optional[Dict]:
        with self._lock:
            document = self.data.pop(str(doc_id), None)
            if document is None:
                return None
            self._save()
            return document
