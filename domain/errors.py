# domain/errors.py
from __future__ import annotations


class TournamentError(Exception):
    pass


# -------------------------
# Validation (bad input, nothing touched)
# -------------------------

class ValidationError(TournamentError):
    pass


class MissingScoresError(ValidationError):
    pass


# -------------------------
# Not found
# -------------------------

class NotFoundError(TournamentError):
    pass


class TournamentNotFoundError(NotFoundError):
    pass


class MatchNotFoundError(NotFoundError):
    pass


class ParticipantNotFoundError(NotFoundError):
    pass


# -------------------------
# Conflicts with current state
# -------------------------

class ConflictError(TournamentError):
    pass


class AlreadyRegisteredError(ConflictError):
    pass


class TournamentFullError(ConflictError):
    pass


class TournamentFinishedError(ConflictError):
    pass


class TournamentStateError(ConflictError):
    pass


class MatchNotPendingError(ConflictError):
    pass


# -------------------------
# Storage
# -------------------------

class StorageError(TournamentError):
    """
    The store failed underneath us. Whatever transaction was open has been rolled back.
    """
