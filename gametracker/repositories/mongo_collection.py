"""MongoDB backed document collection (pymongo)."""
from typing import Any, Dict, List, Optional, Sequence

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from .base import DocumentCollection, Sort, utcnow


def _object_id(value: Any) -> Optional[ObjectId]:
    """Return *value* as an ObjectId, or ``None`` when it is not one."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def _from_mongo(document: Optional[Dict]) -> Optional[Dict]:
    if document is None:
        return None
    result = {k: v for k, v in document.items() if k not in ('_id', '__v')}
    if '_id' in document:
        result = {'id': str(document['_id']), **result}
    return result


class MongoCollection(DocumentCollection):
    """Adapts a :class:`pymongo.collection.Collection` to
    :class:`~gametracker.repositories.base.DocumentCollection`.

    ``id`` is stored as ``_id``.  Ids that do not parse as an ``ObjectId``
    cannot exist in the collection, so lookups with them return ``None``
    without a round-trip.  The collection does not own the client; whoever
    created the ``MongoClient`` closes it.
    """

    def __init__(self, collection) -> None:
        super().__init__(collection.name)
        self._collection = collection

    def _to_mongo_filter(self, filter: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for field, expected in (filter or {}).items():
            if field == 'id':
                field = '_id'
                if isinstance(expected, dict) and '$in' in expected:
                    ids = [_object_id(v) for v in expected['$in']]
                    expected = {'$in': [i for i in ids if i is not None]}
                else:
                    expected = _object_id(expected)
            result[field] = expected
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find(self, filter: Optional[Dict[str, Any]] = None,
             projection: Optional[Sequence[str]] = None,
             sort: Optional[Sort] = None,
             limit: Optional[int] = None) -> List[Dict]:
        mongo_projection = None
        if projection is not None:
            mongo_projection = {('_id' if f == 'id' else f): 1 for f in projection}
            mongo_projection['_id'] = 1
        cursor = self._collection.find(self._to_mongo_filter(filter), mongo_projection)
        if sort is not None:
            field, direction = sort
            cursor = cursor.sort('_id' if field == 'id' else field, direction)
        if limit is not None:
            cursor = cursor.limit(limit)
        return [_from_mongo(d) for d in cursor]

    def find_by_id(self, doc_id: str) -> Optional[Dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        return _from_mongo(self._collection.find_one({'_id': oid}))

    def count_by(self, field: str,
                 filter: Optional[Dict[str, Any]] = None) -> Dict[Any, int]:
        pipeline = [
            {'$match': self._to_mongo_filter(filter)},
            {'$group': {'_id': f'${field}', 'count': {'$sum': 1}}},
        ]
        return {row['_id']: row['count'] for row in self._collection.aggregate(pipeline)}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, document: Dict) -> Dict:
        stored = {k: v for k, v in document.items() if k != 'id'}
        now = utcnow()
        stored.setdefault('createdAt', now)
        stored.setdefault('updatedAt', now)
        result = self._collection.insert_one(stored)
        stored['_id'] = result.inserted_id
        return _from_mongo(stored)

    def update_by_id(self, doc_id: str, changes: Dict) -> Optional[Dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        changes = {k: v for k, v in changes.items() if k != 'id'}
        changes.setdefault('updatedAt', utcnow())
        return _from_mongo(self._collection.find_one_and_update(
            {'_id': oid}, {'$set': changes},
            return_document=ReturnDocument.AFTER,
        ))

    def delete_by_id(self, doc_id: str) -> Optional[Dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        return _from_mongo(self._collection.find_one_and_delete({'_id': oid}))
