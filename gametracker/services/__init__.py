"""Services package — expose all concrete services from one import."""
from .game_service import GameService

__all__ = [
    'GameService',
]
