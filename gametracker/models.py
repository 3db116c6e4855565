"""Schemas of the two collections and the explicit game query type."""
from typing import Dict, Optional

# ---------------------------------------------------------------------------
# Game schema
# ---------------------------------------------------------------------------

GAMES_COLLECTION = 'games'

VALID_STATUSES = ('Pendente', 'Progresso', 'Pausado', 'Completo')
DEFAULT_STATUS = 'Pendente'

REQUIRED_GAME_FIELDS = ('nome', 'description', 'image', 'userId')

GAME_FIELDS = (
    'nome', 'description', 'image', 'userId', 'status',
    'updatedBy', 'updatedAt', 'createdAt',
)

GAME_DEFAULTS = {'status': DEFAULT_STATUS}

# Fields returned by the "recently updated" reports, before enrichment.
RECENT_GAME_FIELDS = ('id', 'nome', 'updatedAt', 'updatedBy', 'userId', 'image')
RECENT_USER_GAME_FIELDS = ('id', 'nome', 'updatedAt', 'updatedBy', 'image')
RECENT_LIMIT = 5

# ---------------------------------------------------------------------------
# User schema (read-only here)
# ---------------------------------------------------------------------------

USERS_COLLECTION = 'users'

USER_SUMMARY_FIELDS = ('id', 'nome', 'picture')

UNKNOWN_USER = 'Unknown'


def user_summary(user: Dict) -> Dict:
    """Return the ``{id, name, picture}`` summary attached to enriched games."""
    return {
        'id': user.get('id'),
        'name': user.get('nome'),
        'picture': user.get('picture'),
    }


class GameQuery:
    """Filter over the games collection.

    One of three kinds:

    * ``none``               — every game.
    * ``by_user``            — games owned by ``user_id``.
    * ``by_user_and_status`` — games owned by ``user_id`` with exactly ``status``.
    """

    NONE = 'none'
    BY_USER = 'by_user'
    BY_USER_AND_STATUS = 'by_user_and_status'

    __slots__ = ('kind', 'user_id', 'status')

    def __init__(self, kind: str, user_id: Optional[str] = None,
                 status: Optional[str] = None) -> None:
        if kind not in (self.NONE, self.BY_USER, self.BY_USER_AND_STATUS):
            raise ValueError(f'Unknown query kind: {kind}')
        if kind != self.NONE and not user_id:
            raise ValueError(f'{kind} query needs a user_id')
        if kind == self.BY_USER_AND_STATUS and not status:
            raise ValueError(f'{kind} query needs a status')
        self.kind = kind
        self.user_id = user_id
        self.status = status

    @classmethod
    def all(cls) -> 'GameQuery':
        return cls(cls.NONE)

    @classmethod
    def for_user(cls, user_id: str, status: Optional[str] = None) -> 'GameQuery':
        """Games of *user_id*, narrowed to *status* when one is given."""
        if status:
            return cls(cls.BY_USER_AND_STATUS, user_id, status)
        return cls(cls.BY_USER, user_id)

    def to_filter(self) -> Dict[str, str]:
        """Render the query as an equality filter for a collection."""
        if self.kind == self.NONE:
            return {}
        if self.kind == self.BY_USER:
            return {'userId': self.user_id}
        return {'userId': self.user_id, 'status': self.status}

    def __eq__(self, other) -> bool:
        if not isinstance(other, GameQuery):
            return NotImplemented
        return (self.kind, self.user_id, self.status) == \
            (other.kind, other.user_id, other.status)

    def __repr__(self) -> str:
        return (f'GameQuery(kind={self.kind!r}, user_id={self.user_id!r}, '
                f'status={self.status!r})')
