"""Repository for game records (the ``games`` collection)."""
from typing import Dict, List, Optional, Sequence

from ..models import GAME_DEFAULTS, GAME_FIELDS, GameQuery
from .base import DocumentCollection, Sort


class GameRepository:
    """Binds the Game schema to a :class:`DocumentCollection`.

    Schema::

        {
            "id":          <str, store assigned>,
            "nome":        <str>,
            "description": <str>,
            "image":       <str>,
            "userId":      <str>,
            "status":      "Pendente" | "Progresso" | "Pausado" | "Completo",
            "updatedBy":   <any>,
            "createdAt":   <datetime>,
            "updatedAt":   <datetime>
        }

    Fields outside the schema are dropped on the way in.  ``status`` defaults
    to ``Pendente``.  No validation happens here; that is the service's job.
    """

    def __init__(self, collection: DocumentCollection) -> None:
        self._collection = collection

    @staticmethod
    def _clean(data: Dict) -> Dict:
        return {k: v for k, v in data.items() if k in GAME_FIELDS}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(self, query: GameQuery,
             projection: Optional[Sequence[str]] = None,
             sort: Optional[Sort] = None,
             limit: Optional[int] = None) -> List[Dict]:
        return self._collection.find(query.to_filter(), projection=projection,
                                     sort=sort, limit=limit)

    def find_by_id(self, game_id: str) -> Optional[Dict]:
        return self._collection.find_by_id(game_id)

    def count_by_status(self, user_id: str) -> Dict[str, int]:
        """Return ``{status: count}`` over the games of *user_id*."""
        return self._collection.count_by('status', GameQuery.for_user(user_id).to_filter())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, data: Dict) -> Dict:
        document = dict(GAME_DEFAULTS)
        document.update({k: v for k, v in self._clean(data).items() if v is not None})
        return self._collection.insert(document)

    def update_by_id(self, game_id: str, changes: Dict) -> Optional[Dict]:
        return self._collection.update_by_id(game_id, self._clean(changes))

    def delete_by_id(self, game_id: str) -> Optional[Dict]:
        return self._collection.delete_by_id(game_id)
