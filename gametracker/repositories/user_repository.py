"""Repository for user records (the ``users`` collection), read-only here."""
from typing import Dict, Iterable, List, Sequence

from ..models import USER_SUMMARY_FIELDS
from .base import DocumentCollection


class UserRepository:
    """Binds the User schema to a :class:`DocumentCollection`.

    Only the fields needed to summarise a game's owner (``id``, ``nome``,
    ``picture``) are read.  Users are managed elsewhere.
    """

    def __init__(self, collection: DocumentCollection) -> None:
        self._collection = collection

    def find_by_ids(self, user_ids: Iterable[str],
                    projection: Sequence[str] = USER_SUMMARY_FIELDS) -> List[Dict]:
        """Return the users whose id is in *user_ids* (order unspecified)."""
        ids = sorted({str(u) for u in user_ids if u})
        if not ids:
            return []
        return self._collection.find({'id': {'$in': ids}}, projection=projection)
