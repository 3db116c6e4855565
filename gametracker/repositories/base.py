"""Collection interface shared by every repository backend."""
import datetime
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

ASCENDING = 1
DESCENDING = -1

Sort = Tuple[str, int]


def utcnow() -> datetime.datetime:
    """Timestamp used for ``createdAt``/``updatedAt``."""
    return datetime.datetime.now(datetime.timezone.utc)


class DocumentCollection(ABC):
    """One collection of schemaless documents.

    Documents go in and come out as plain dicts.  Every document that leaves
    a collection carries a string ``id``; backends translate to and from their
    native key.  Filters are equality mappings where a value of the form
    ``{'$in': [...]}`` matches membership.

    Inserts stamp ``createdAt`` and ``updatedAt`` when the caller did not;
    updates stamp ``updatedAt`` the same way.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._log = logging.getLogger(f'gametracker.collection.{type(self).__name__}')

    @abstractmethod
    def find(self, filter: Optional[Dict[str, Any]] = None,
             projection: Optional[Sequence[str]] = None,
             sort: Optional[Sort] = None,
             limit: Optional[int] = None) -> List[Dict]:
        """Return matching documents.

        Args:
            filter:     Equality filter; ``None`` or ``{}`` matches everything.
            projection: Field names to return.  ``id`` is always returned.
            sort:       ``(field, direction)`` with ``1`` ascending or ``-1``
                        descending.  Missing values sort lowest; ties keep
                        store order.
            limit:      Maximum number of documents.
        """

    @abstractmethod
    def find_by_id(self, doc_id: str) -> Optional[Dict]:
        """Return the document with *doc_id*, or ``None``."""

    @abstractmethod
    def insert(self, document: Dict) -> Dict:
        """Store *document* and return it with its assigned ``id``."""

    @abstractmethod
    def update_by_id(self, doc_id: str, changes: Dict) -> Optional[Dict]:
        """Merge *changes* into a document; return the new state or ``None``."""

    @abstractmethod
    def delete_by_id(self, doc_id: str) -> Optional[Dict]:
        """Delete a document; return its prior state or ``None``."""

    @abstractmethod
    def count_by(self, field: str,
                 filter: Optional[Dict[str, Any]] = None) -> Dict[Any, int]:
        """Return ``{value: count}`` of *field* over matching documents."""

    def close(self) -> None:
        """Release backend resources.  Most backends hold none."""
