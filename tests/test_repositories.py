#!/usr/bin/env python3
"""
Unit tests for the gametracker/repositories layer.

Run with:
    python -m pytest tests/test_repositories.py
"""
import datetime
import json
import os
import shutil
import sys
import tempfile
import threading
import unittest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bson import ObjectId
from pymongo import ReturnDocument

from gametracker.models import GameQuery
from gametracker.repositories import (
    DESCENDING, GameRepository, JsonCollection, MongoCollection, UserRepository,
)


def ts(minute: int) -> datetime.datetime:
    return datetime.datetime(2024, 1, 1, 12, minute, tzinfo=datetime.timezone.utc)


class TmpDirMixin(unittest.TestCase):
    """Creates a fresh temp directory for each test."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.tmp, name)


# ===========================================================================
# JsonCollection
# ===========================================================================

class TestJsonCollection(TmpDirMixin):

    def _make(self):
        return JsonCollection('games', self._path('games.json'))

    def test_starts_empty(self):
        self.assertEqual(self._make().find(), [])

    def test_insert_assigns_id_and_timestamps(self):
        doc = self._make().insert({'nome': 'Celeste'})
        self.assertTrue(doc['id'])
        self.assertIsInstance(doc['createdAt'], datetime.datetime)
        self.assertEqual(doc['createdAt'], doc['updatedAt'])

    def test_insert_keeps_supplied_timestamp(self):
        doc = self._make().insert({'nome': 'Celeste', 'updatedAt': ts(5)})
        self.assertEqual(doc['updatedAt'], ts(5))

    def test_insert_ignores_caller_id(self):
        doc = self._make().insert({'id': 'mine', 'nome': 'Celeste'})
        self.assertNotEqual(doc['id'], 'mine')

    def test_find_by_id(self):
        coll = self._make()
        doc = coll.insert({'nome': 'Celeste'})
        self.assertEqual(coll.find_by_id(doc['id'])['nome'], 'Celeste')
        self.assertIsNone(coll.find_by_id('missing'))

    def test_returned_documents_are_copies(self):
        coll = self._make()
        doc = coll.insert({'nome': 'Celeste'})
        coll.find_by_id(doc['id'])['nome'] = 'changed'
        self.assertEqual(coll.find_by_id(doc['id'])['nome'], 'Celeste')

    def test_find_equality_filter(self):
        coll = self._make()
        coll.insert({'userId': 'u1', 'status': 'Pendente'})
        coll.insert({'userId': 'u1', 'status': 'Completo'})
        coll.insert({'userId': 'u2', 'status': 'Pendente'})
        self.assertEqual(len(coll.find({'userId': 'u1'})), 2)
        self.assertEqual(len(coll.find({'userId': 'u1', 'status': 'Completo'})), 1)

    def test_find_in_filter(self):
        coll = self._make()
        a = coll.insert({'nome': 'a'})
        coll.insert({'nome': 'b'})
        c = coll.insert({'nome': 'c'})
        found = coll.find({'id': {'$in': [a['id'], c['id'], 'nope']}})
        self.assertEqual(sorted(d['nome'] for d in found), ['a', 'c'])

    def test_projection_always_includes_id(self):
        coll = self._make()
        coll.insert({'nome': 'Celeste', 'description': 'climb'})
        doc = coll.find(projection=['nome'])[0]
        self.assertEqual(set(doc), {'id', 'nome'})

    def test_sort_descending_and_limit(self):
        coll = self._make()
        for minute in (3, 1, 4, 2):
            coll.insert({'nome': str(minute), 'updatedAt': ts(minute)})
        docs = coll.find(sort=('updatedAt', DESCENDING), limit=3)
        self.assertEqual([d['nome'] for d in docs], ['4', '3', '2'])

    def test_sort_ties_keep_insertion_order(self):
        coll = self._make()
        for name in ('first', 'second', 'third'):
            coll.insert({'nome': name, 'updatedAt': ts(0)})
        docs = coll.find(sort=('updatedAt', DESCENDING))
        self.assertEqual([d['nome'] for d in docs], ['first', 'second', 'third'])

    def test_sort_missing_values_last_when_descending(self):
        coll = self._make()
        coll.insert({'nome': 'dated', 'rank': 1})
        coll.insert({'nome': 'undated'})
        docs = coll.find(sort=('rank', DESCENDING))
        self.assertEqual(docs[-1]['nome'], 'undated')

    def test_update_merges_and_stamps(self):
        coll = self._make()
        doc = coll.insert({'nome': 'Celeste', 'updatedAt': ts(0)})
        updated = coll.update_by_id(doc['id'], {'status': 'Completo'})
        self.assertEqual(updated['nome'], 'Celeste')
        self.assertEqual(updated['status'], 'Completo')
        self.assertGreater(updated['updatedAt'], ts(0))

    def test_update_cannot_change_id(self):
        coll = self._make()
        doc = coll.insert({'nome': 'Celeste'})
        updated = coll.update_by_id(doc['id'], {'id': 'other'})
        self.assertEqual(updated['id'], doc['id'])

    def test_update_missing_returns_none(self):
        self.assertIsNone(self._make().update_by_id('missing', {'nome': 'x'}))

    def test_delete_returns_prior_state(self):
        coll = self._make()
        doc = coll.insert({'nome': 'Celeste'})
        removed = coll.delete_by_id(doc['id'])
        self.assertEqual(removed['nome'], 'Celeste')
        self.assertIsNone(coll.find_by_id(doc['id']))

    def test_delete_missing_returns_none(self):
        self.assertIsNone(self._make().delete_by_id('missing'))

    def test_count_by(self):
        coll = self._make()
        for status in ('Pendente', 'Pendente', 'Completo'):
            coll.insert({'userId': 'u1', 'status': status})
        coll.insert({'userId': 'u2', 'status': 'Pausado'})
        self.assertEqual(coll.count_by('status', {'userId': 'u1'}),
                         {'Pendente': 2, 'Completo': 1})

    def test_persisted_across_instances(self):
        doc = self._make().insert({'nome': 'Celeste', 'updatedAt': ts(7)})
        reloaded = self._make().find_by_id(doc['id'])
        self.assertEqual(reloaded['nome'], 'Celeste')
        self.assertEqual(reloaded['updatedAt'], ts(7))

    def test_file_is_a_list_of_documents(self):
        self._make().insert({'nome': 'Celeste'})
        with open(self._path('games.json')) as f:
            saved = json.load(f)
        self.assertEqual(saved[0]['nome'], 'Celeste')
        self.assertIn('$date', saved[0]['updatedAt'])

    def test_corrupt_file_returns_empty(self):
        with open(self._path('games.json'), 'w') as f:
            f.write('NOT JSON')
        self.assertEqual(self._make().find(), [])

    def test_non_list_file_returns_empty(self):
        with open(self._path('games.json'), 'w') as f:
            json.dump({'id': 'x'}, f)
        self.assertEqual(self._make().find(), [])

    def test_creates_missing_directory_on_write(self):
        coll = JsonCollection('games', os.path.join(self.tmp, 'nested', 'games.json'))
        coll.insert({'nome': 'Celeste'})
        self.assertTrue(os.path.exists(os.path.join(self.tmp, 'nested', 'games.json')))

    def test_reads_during_concurrent_writes(self):
        coll = self._make()
        errors = []
        done = threading.Event()

        def reader():
            try:
                while not done.is_set():
                    coll.find({'userId': 'u1'}, sort=('updatedAt', DESCENDING), limit=5)
                    coll.count_by('status')
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        try:
            for i in range(200):
                doc = coll.insert({'userId': 'u1', 'status': 'Pendente'})
                if i % 3 == 0:
                    coll.delete_by_id(doc['id'])
        finally:
            done.set()
            for t in threads:
                t.join()
        self.assertEqual(errors, [])
        self.assertEqual(len(coll.find()), 133)


# ===========================================================================
# MongoCollection
# ===========================================================================

def make_cursor(documents):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.__iter__.return_value = iter(documents)
    return cursor


class TestMongoCollection(unittest.TestCase):

    def setUp(self):
        self.raw = MagicMock()
        self.raw.name = 'games'
        self.coll = MongoCollection(self.raw)
        self.oid = ObjectId()

    def test_name_comes_from_collection(self):
        self.assertEqual(self.coll.name, 'games')

    def test_find_maps_id(self):
        self.raw.find.return_value = make_cursor([{'_id': self.oid, 'nome': 'Celeste', '__v': 0}])
        docs = self.coll.find({'userId': 'u1'})
        self.raw.find.assert_called_once_with({'userId': 'u1'}, None)
        self.assertEqual(docs, [{'id': str(self.oid), 'nome': 'Celeste'}])

    def test_find_with_projection_sort_limit(self):
        cursor = make_cursor([])
        self.raw.find.return_value = cursor
        self.coll.find({}, projection=['id', 'nome'], sort=('updatedAt', -1), limit=5)
        self.raw.find.assert_called_once_with({}, {'_id': 1, 'nome': 1})
        cursor.sort.assert_called_once_with('updatedAt', -1)
        cursor.limit.assert_called_once_with(5)

    def test_find_in_ids_converts_and_drops_invalid(self):
        self.raw.find.return_value = make_cursor([])
        self.coll.find({'id': {'$in': [str(self.oid), 'not-an-id']}})
        self.raw.find.assert_called_once_with({'_id': {'$in': [self.oid]}}, None)

    def test_find_by_id(self):
        self.raw.find_one.return_value = {'_id': self.oid, 'nome': 'Celeste'}
        doc = self.coll.find_by_id(str(self.oid))
        self.raw.find_one.assert_called_once_with({'_id': self.oid})
        self.assertEqual(doc['id'], str(self.oid))

    def test_find_by_malformed_id_skips_query(self):
        self.assertIsNone(self.coll.find_by_id('not-an-id'))
        self.raw.find_one.assert_not_called()

    def test_find_by_id_missing(self):
        self.raw.find_one.return_value = None
        self.assertIsNone(self.coll.find_by_id(str(self.oid)))

    def test_insert_stamps_and_returns_id(self):
        self.raw.insert_one.return_value.inserted_id = self.oid
        doc = self.coll.insert({'nome': 'Celeste'})
        stored = self.raw.insert_one.call_args[0][0]
        self.assertIn('createdAt', stored)
        self.assertIn('updatedAt', stored)
        self.assertEqual(doc['id'], str(self.oid))
        self.assertEqual(doc['nome'], 'Celeste')

    def test_update_uses_set_and_after(self):
        self.raw.find_one_and_update.return_value = {'_id': self.oid, 'status': 'Completo'}
        doc = self.coll.update_by_id(str(self.oid), {'status': 'Completo', 'updatedAt': ts(1)})
        self.raw.find_one_and_update.assert_called_once_with(
            {'_id': self.oid},
            {'$set': {'status': 'Completo', 'updatedAt': ts(1)}},
            return_document=ReturnDocument.AFTER,
        )
        self.assertEqual(doc, {'id': str(self.oid), 'status': 'Completo'})

    def test_update_malformed_id_returns_none(self):
        self.assertIsNone(self.coll.update_by_id('bad', {'nome': 'x'}))
        self.raw.find_one_and_update.assert_not_called()

    def test_delete_returns_prior_state(self):
        self.raw.find_one_and_delete.return_value = {'_id': self.oid, 'nome': 'Celeste'}
        doc = self.coll.delete_by_id(str(self.oid))
        self.raw.find_one_and_delete.assert_called_once_with({'_id': self.oid})
        self.assertEqual(doc['nome'], 'Celeste')

    def test_delete_missing_returns_none(self):
        self.raw.find_one_and_delete.return_value = None
        self.assertIsNone(self.coll.delete_by_id(str(self.oid)))

    def test_count_by_uses_group_pipeline(self):
        self.raw.aggregate.return_value = [
            {'_id': 'Pendente', 'count': 2},
            {'_id': 'Completo', 'count': 1},
        ]
        counts = self.coll.count_by('status', {'userId': 'u1'})
        self.raw.aggregate.assert_called_once_with([
            {'$match': {'userId': 'u1'}},
            {'$group': {'_id': '$status', 'count': {'$sum': 1}}},
        ])
        self.assertEqual(counts, {'Pendente': 2, 'Completo': 1})


# ===========================================================================
# GameRepository / UserRepository
# ===========================================================================

class TestGameRepository(TmpDirMixin):

    def _make(self):
        return GameRepository(JsonCollection('games', self._path('games.json')))

    def test_insert_applies_default_status(self):
        game = self._make().insert({'nome': 'Celeste', 'userId': 'u1'})
        self.assertEqual(game['status'], 'Pendente')

    def test_insert_keeps_supplied_status(self):
        game = self._make().insert({'nome': 'Celeste', 'status': 'Pausado'})
        self.assertEqual(game['status'], 'Pausado')

    def test_unknown_fields_dropped(self):
        repo = self._make()
        game = repo.insert({'nome': 'Celeste', 'hacked': True})
        self.assertNotIn('hacked', game)
        updated = repo.update_by_id(game['id'], {'nome': 'Celeste 2', 'hacked': True})
        self.assertNotIn('hacked', updated)
        self.assertEqual(updated['nome'], 'Celeste 2')

    def test_find_with_query(self):
        repo = self._make()
        repo.insert({'nome': 'a', 'userId': 'u1', 'status': 'Progresso'})
        repo.insert({'nome': 'b', 'userId': 'u1'})
        repo.insert({'nome': 'c', 'userId': 'u2'})
        self.assertEqual(len(repo.find(GameQuery.all())), 3)
        self.assertEqual(len(repo.find(GameQuery.for_user('u1'))), 2)
        found = repo.find(GameQuery.for_user('u1', 'Progresso'))
        self.assertEqual([g['nome'] for g in found], ['a'])

    def test_count_by_status(self):
        repo = self._make()
        repo.insert({'userId': 'u1'})
        repo.insert({'userId': 'u1', 'status': 'Completo'})
        self.assertEqual(repo.count_by_status('u1'), {'Pendente': 1, 'Completo': 1})


class TestUserRepository(TmpDirMixin):

    def test_find_by_ids(self):
        coll = JsonCollection('users', self._path('users.json'))
        ana = coll.insert({'nome': 'Ana', 'picture': 'ana.png', 'email': 'a@x'})
        coll.insert({'nome': 'Bia', 'picture': 'bia.png'})
        users = UserRepository(coll).find_by_ids([ana['id'], ana['id']])
        self.assertEqual(users, [{'id': ana['id'], 'nome': 'Ana', 'picture': 'ana.png'}])

    def test_empty_ids_skip_query(self):
        coll = MagicMock()
        self.assertEqual(UserRepository(coll).find_by_ids([None, '']), [])
        coll.find.assert_not_called()


class TestGameQuery(unittest.TestCase):

    def test_kinds(self):
        self.assertEqual(GameQuery.all().kind, GameQuery.NONE)
        self.assertEqual(GameQuery.for_user('u1').kind, GameQuery.BY_USER)
        self.assertEqual(GameQuery.for_user('u1', '').kind, GameQuery.BY_USER)
        self.assertEqual(GameQuery.for_user('u1', 'Completo').kind,
                         GameQuery.BY_USER_AND_STATUS)

    def test_to_filter(self):
        self.assertEqual(GameQuery.all().to_filter(), {})
        self.assertEqual(GameQuery.for_user('u1').to_filter(), {'userId': 'u1'})
        self.assertEqual(GameQuery.for_user('u1', 'Completo').to_filter(),
                         {'userId': 'u1', 'status': 'Completo'})

    def test_user_queries_need_user(self):
        with self.assertRaises(ValueError):
            GameQuery(GameQuery.BY_USER)
        with self.assertRaises(ValueError):
            GameQuery('sideways')


if __name__ == '__main__':
    unittest.main()
