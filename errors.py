"""
Error taxonomy for the chess bot.

Business errors derive from ChessBotError and carry a message that can be
shown to the user as-is. InfrastructureError covers persistence and rendering
failures; those are logged and reported as a generic failure.
"""


class ChessBotError(Exception):
    """Base class for expected, user-displayable failures."""


class ValidationError(ChessBotError):
    """Input was rejected; nothing changed."""


class IllegalMoveError(ValidationError):
    pass


class NotYourTurnError(ValidationError):
    pass


class InvalidTimestampError(ValidationError):
    pass


class InvalidRoundsError(ValidationError):
    pass


class AuthorizationError(ChessBotError):
    """The caller is not allowed to perform this action."""


class ForbiddenError(AuthorizationError):
    pass


class NotParticipantError(AuthorizationError):
    pass


class SelfAcceptDrawError(AuthorizationError):
    pass


class NotFoundError(ChessBotError):
    """Unknown tournament, match or game."""


class TournamentNotFoundError(NotFoundError):
    pass


class MatchNotFoundError(NotFoundError):
    pass


class NoActiveGameError(NotFoundError):
    pass


class StateConflictError(ChessBotError):
    """The action does not fit the current state of the game or tournament."""


class GameOverError(StateConflictError):
    pass


class MatchConcludedError(StateConflictError):
    pass


class AlreadyJoinedError(StateConflictError):
    pass


class RegistrationClosedError(StateConflictError):
    pass


class TournamentNotOpenError(StateConflictError):
    pass


class InsufficientParticipantsError(StateConflictError):
    pass


class PlayerBusyError(StateConflictError):
    pass


class NoDrawOfferError(StateConflictError):
    pass


class InfrastructureError(Exception):
    """Persistence or rendering failure."""


class PersistenceError(InfrastructureError):
    pass


class RenderError(InfrastructureError):
    pass
