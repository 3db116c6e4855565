"""Repository package — expose the collections and repositories from one import."""
from .base import ASCENDING, DESCENDING, DocumentCollection
from .json_collection import JsonCollection
from .mongo_collection import MongoCollection
from .game_repository import GameRepository
from .user_repository import UserRepository

__all__ = [
    'ASCENDING',
    'DESCENDING',
    'DocumentCollection',
    'JsonCollection',
    'MongoCollection',
    'GameRepository',
    'UserRepository',
]
