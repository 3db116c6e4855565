"""Opens and closes the long-lived collection handles."""
import logging
import os
from typing import Dict, List

from pymongo import MongoClient

from .models import GAMES_COLLECTION, USERS_COLLECTION
from .repositories.base import DocumentCollection
from .repositories.game_repository import GameRepository
from .repositories.json_collection import JsonCollection
from .repositories.mongo_collection import MongoCollection
from .repositories.user_repository import UserRepository
from .services.game_service import GameService

logger = logging.getLogger('gametracker.stores')


class StoreHandles:
    """Owns the collections (and client, if any) created at start-up.

    ``games`` and ``users`` are handed to services as borrowed references;
    only :meth:`close` releases what backs them.
    """

    def __init__(self, games: GameRepository, users: UserRepository,
                 collections: List[DocumentCollection], client=None) -> None:
        self.games = games
        self.users = users
        self._collections = collections
        self._client = client

    def close(self) -> None:
        for collection in self._collections:
            collection.close()
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Closed MongoDB client")

    def __enter__(self) -> 'StoreHandles':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _open_json(config: Dict) -> StoreHandles:
    data_dir = config['data_dir']
    games_name = config.get('games_collection', GAMES_COLLECTION)
    users_name = config.get('users_collection', USERS_COLLECTION)
    games = JsonCollection(games_name, os.path.join(data_dir, f'{games_name}.json'))
    users = JsonCollection(users_name, os.path.join(data_dir, f'{users_name}.json'))
    logger.info("Using JSON collections in %s", data_dir)
    return StoreHandles(GameRepository(games), UserRepository(users), [games, users])


def _open_mongo(config: Dict) -> StoreHandles:
    client = MongoClient(config['mongo_uri'], tz_aware=True)
    db = client[config['database']]
    games = MongoCollection(db[config.get('games_collection', GAMES_COLLECTION)])
    users = MongoCollection(db[config.get('users_collection', USERS_COLLECTION)])
    logger.info("Using MongoDB database %s", config['database'])
    return StoreHandles(GameRepository(games), UserRepository(users),
                        [games, users], client=client)


def open_stores(config: Dict) -> StoreHandles:
    """Create the store handles described by *config* (see :mod:`gametracker.config`)."""
    if config.get('backend') == 'mongo':
        return _open_mongo(config)
    return _open_json(config)


def build_game_service(handles: StoreHandles) -> GameService:
    return GameService(handles.games, handles.users)
