"""Domain errors raised by the services and mapped to HTTP codes in main."""


class ScorecardError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ScorecardError):
    """Caller-correctable input (bad month key, negative target, ...)."""
    status_code = 400


class NotFound(ScorecardError):
    status_code = 404


class Conflict(ScorecardError):
    status_code = 409
