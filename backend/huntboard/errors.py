"""Caller-facing failures raised by the game services.

None of these are fatal; HTTP and socket handlers turn them into
``{'error': ..., 'code': ...}`` payloads and the UI decides the wording.
"""


class GameError(Exception):
    code = 'game_error'
    status_code = 400
    default_message = 'Request could not be processed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class NotFound(GameError):
    code = 'not_found'
    status_code = 404
    default_message = 'Not found'


class EventNotStarted(GameError):
    code = 'event_not_started'
    status_code = 403
    default_message = 'Event has not started yet'


class AlreadyAnswered(GameError):
    code = 'already_answered'
    default_message = 'Question already answered correctly'


class MaxAttemptsReached(GameError):
    code = 'max_attempts_reached'
    default_message = 'Maximum attempts reached'


class InvalidTipNumber(GameError):
    code = 'invalid_tip_number'
    default_message = 'Tip number must be 1, 2 or 3'


class AlreadyCompleted(GameError):
    code = 'already_completed'
    default_message = 'Question is already completed'


class InvalidCompletionReason(GameError):
    code = 'invalid_completion_reason'
    default_message = 'Reason must be one of: timeout, max_attempts, solution'


class QuestionTimedOut(AlreadyCompleted):
    """The server-side deadline closed the question during this call.

    The row was committed as timed out before raising, so the scoreboard
    of ``event_id`` changed.
    """

    default_message = 'Time limit exceeded'

    def __init__(self, event_id=None, message=None):
        super().__init__(message)
        self.event_id = event_id
