"""
gametracker application package.

Layered the same way throughout:

  gametracker/repositories/  — pure I/O: one document collection per repository,
                               backed by a JSON file or a MongoDB collection.
  gametracker/services/      — business logic: validation, enrichment, reporting.

:func:`gametracker.stores.open_stores` creates the long-lived collection
handles at start-up and :func:`gametracker.stores.build_game_service` hands
them to :class:`~gametracker.services.game_service.GameService`.  The command
line in ``gametracker/cli.py`` is one caller; an HTTP layer would be another.
"""
