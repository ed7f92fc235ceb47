"""Exceptions raised by the screening engine.

Unknown ids are not errors: lookups return None and the HTTP layer maps
that to 404.
"""


class ScreeningError(Exception):
    """Base class for screening engine errors."""


class ScreeningValidationError(ScreeningError):
    """A submission cannot be screened as given (e.g. no usable provider)."""


class InvalidStatusTransition(ScreeningError):
    """A request was moved along an edge the lifecycle does not allow."""

    def __init__(self, request_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Request {request_id} cannot move from '{current}' to '{target}'"
        )
        self.request_id = request_id
        self.current = current
        self.target = target


class DispositionAlreadyRecorded(ScreeningError):
    """A match already carries a reviewer disposition."""

    def __init__(self, match_id: str) -> None:
        super().__init__(f"Match {match_id} has already been reviewed")
        self.match_id = match_id


class ProviderError(ScreeningError):
    """A watchlist provider could not be queried."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider
