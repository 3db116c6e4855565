"""Business logic for game records owned by users."""
import logging
from typing import Dict, List, Optional, Sequence

from ..errors import InvalidInputError, NotFoundError, UnavailableError
from ..models import (
    RECENT_GAME_FIELDS, RECENT_LIMIT, RECENT_USER_GAME_FIELDS,
    REQUIRED_GAME_FIELDS, UNKNOWN_USER, VALID_STATUSES, GameQuery, user_summary,
)
from ..repositories.base import DESCENDING, utcnow
from ..repositories.game_repository import GameRepository
from ..repositories.user_repository import UserRepository

UNAVAILABLE_MESSAGE = 'Error fetching games. Please try again later.'


class GameService:
    """Lists, validates, creates, updates and removes games, and builds the
    two reports over them, delegating persistence to
    :class:`~gametracker.repositories.game_repository.GameRepository`.

    Rules
    -----
    * ``nome``, ``description``, ``image`` and ``userId`` are required on
      create (any falsy value counts as missing).
    * ``status``, whenever the key is present, must be one of ``Pendente``,
      ``Progresso``, ``Pausado`` or ``Completo``; ``None`` and ``""`` are
      rejected rather than treated as absent.
    * Every update stamps a fresh ``updatedAt``.

    The users collection is only read, to attach an owner summary to the
    "recently updated" reports.  Both repositories are borrowed; the service
    never closes them.
    """

    def __init__(self, games: GameRepository, users: UserRepository) -> None:
        self._games = games
        self._users = users
        self._log = logging.getLogger(f'gametracker.service.{type(self).__name__}')

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_status(self, data: Dict) -> None:
        if 'status' not in data:
            return
        status = data['status']
        if status not in VALID_STATUSES:
            self._log.error("Invalid status: %s", status)
            raise InvalidInputError(f'Invalid status: {status}', field='status')

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_all(self) -> List[Dict]:
        """Return every game."""
        self._log.info("Fetching all games")
        games = self._games.find(GameQuery.all())
        self._log.info("Found %d games", len(games))
        return games

    def list_by_user(self, user_id: str, status: Optional[str] = None) -> List[Dict]:
        """Return the games of *user_id*, optionally only those with *status*."""
        self._log.info("Fetching games for user: %s", user_id)
        games = self._games.find(GameQuery.for_user(user_id, status))
        self._log.info("Found %d games for user: %s", len(games), user_id)
        return games

    def get_by_id(self, game_id: str) -> Dict:
        """Return the game with *game_id*.

        Raises:
            NotFoundError: no game has that id.
        """
        self._log.info("Fetching game with id: %s", game_id)
        game = self._games.find_by_id(game_id)
        if game is None:
            self._log.error("Game with id: %s not found", game_id)
            raise NotFoundError(f'Game with id: {game_id} not found')
        self._log.info("Found game with id: %s", game['id'])
        return game

    def get_recently_updated(self) -> List[Dict]:
        """Return the five most recently updated games with their owners.

        Each game carries ``user``: ``{'id', 'name', 'picture'}`` of its owner,
        or ``'Unknown'`` when no such user exists.

        Raises:
            UnavailableError: the store failed; details are logged only.
        """
        self._log.info("Fetching last games updated")
        try:
            games = self._recent(GameQuery.all(), RECENT_GAME_FIELDS)
        except Exception as exc:
            self._log.error("Error fetching games: %s", exc, exc_info=True)
            raise UnavailableError(UNAVAILABLE_MESSAGE) from exc
        self._log.info("Found %d games", len(games))
        return games

    def get_recently_updated_by_user(self, user_id: str) -> List[Dict]:
        """Return the five most recently updated games of *user_id*.

        Same shape and failure policy as :meth:`get_recently_updated`, except
        ``userId`` is left out of each game since the caller supplied it.
        """
        self._log.info("Fetching last games updated for user: %s", user_id)
        try:
            games = self._recent(GameQuery.for_user(user_id),
                                 RECENT_USER_GAME_FIELDS, owner_id=user_id)
        except Exception as exc:
            self._log.error("Error fetching games for user %s: %s", user_id, exc,
                            exc_info=True)
            raise UnavailableError(UNAVAILABLE_MESSAGE) from exc
        self._log.info("Found %d games for user: %s", len(games), user_id)
        return games

    def _recent(self, query: GameQuery, projection: Sequence[str],
                owner_id: Optional[str] = None) -> List[Dict]:
        games = self._games.find(query, projection=projection,
                                 sort=('updatedAt', DESCENDING), limit=RECENT_LIMIT)
        if not games:
            self._log.warning("No games found")
            return []

        def owner_of(game: Dict) -> Optional[str]:
            return owner_id if owner_id is not None else game.get('userId')

        users = self._users.find_by_ids(owner_of(g) for g in games)
        by_id = {str(u['id']): u for u in users}

        result = []
        for game in games:
            user = by_id.get(str(owner_of(game)))
            entry = dict(game)
            entry['user'] = user_summary(user) if user is not None else UNKNOWN_USER
            result.append(entry)
        return result

    def get_status_distribution(self, user_id: str) -> Dict[str, int]:
        """Return ``{status: count}`` for *user_id*; unused statuses are absent."""
        self._log.info("Fetching game distribution for user: %s", user_id)
        distribution = self._games.count_by_status(user_id)
        self._log.info("Found game distribution for user: %s", user_id)
        return distribution

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: Dict) -> Dict:
        """Validate *data* and store it as a new game.

        Raises:
            InvalidInputError: a required field is missing or ``status`` is
                not a valid value.
        """
        self._log.info("Creating a new game")
        for field in REQUIRED_GAME_FIELDS:
            if not data.get(field):
                self._log.error("Missing required field: %s", field)
                raise InvalidInputError(f'Missing required field: {field}', field=field)
        self._check_status(data)

        game = self._games.insert(data)
        self._log.info("Created game with id: %s", game['id'])
        return game

    def update(self, game_id: str, changes: Dict) -> Dict:
        """Merge *changes* into the game with *game_id* and re-stamp ``updatedAt``.

        Raises:
            InvalidInputError: ``status`` is not a valid value.
            NotFoundError: no game has that id.
        """
        self._log.info("Updating game with id: %s", game_id)
        self._check_status(changes)

        game = self._games.update_by_id(game_id, {**changes, 'updatedAt': utcnow()})
        if game is None:
            self._log.error("Game with id: %s not found", game_id)
            raise NotFoundError(f'Game with id: {game_id} not found')
        self._log.info("Updated game with id: %s", game['id'])
        return game

    def remove(self, game_id: str) -> Optional[Dict]:
        """Delete the game with *game_id*.

        Returns:
            The game as it was before deletion, or ``None`` if it did not exist.
        """
        self._log.info("Removing game with id: %s", game_id)
        game = self._games.delete_by_id(game_id)
        if game is None:
            self._log.warning("Game with id: %s not found, nothing removed", game_id)
            return None
        self._log.info("Removed game with id: %s", game['id'])
        return game
