"""Request admission exceptions for error handling."""

from typing import Optional


class RequestError(Exception):
    """Base exception for rejected listener requests."""

    default_message = "The request could not be accepted."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class AutomatedTrafficRejected(RequestError):
    """Raised when the submitter looks like a crawler or script."""

    default_message = "Search engine crawlers are not permitted to use this feature."


class RequestsDisabled(RequestError):
    """Raised when the station is not accepting requests."""

    default_message = "This station does not accept requests currently."


class TrackNotFound(RequestError):
    """Raised when the track id is unknown to the station catalog."""

    default_message = "The song ID you specified could not be found in the station."


class TrackNotRequestable(RequestError):
    """Raised when the track exists but is excluded from requests."""

    default_message = "The song ID you specified cannot be requested for this station."


class DuplicateOutstandingRequest(RequestError):
    """Raised when the track is already waiting in the request queue."""

    default_message = (
        "Duplicate request: this song was already requested and will play soon."
    )


class DuplicateRecentPlay(RequestError):
    """Raised when the song or artist went to air too recently."""

    default_message = (
        "This song or artist has been played too recently. "
        "Wait a while before requesting it again."
    )


class RateLimited(RequestError):
    """Raised when the same IP submitted another request too recently."""

    default_message = (
        "You have submitted a request too recently! "
        "Please wait before submitting another one."
    )
