"""Exceptions raised by the gametracker services and wiring."""


class GameRecordError(Exception):
    """Base class for every error a gametracker service raises."""


class NotFoundError(GameRecordError):
    """Raised when no game matches the requested id."""


class InvalidInputError(GameRecordError):
    """Raised when a required field is missing or a value is not allowed."""

    def __init__(self, message: str, field: str = '') -> None:
        super().__init__(message)
        self.field = field


class UnavailableError(GameRecordError):
    """Raised when the store fails underneath a reporting query."""


class ConfigError(Exception):
    """Raised when the configuration file or values cannot be used."""
