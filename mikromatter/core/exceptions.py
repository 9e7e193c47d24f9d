"""Domain errors raised by services and translated to HTTP responses by the API layer."""


class MikromatterError(Exception):
    """Base class for domain errors."""


class NotFoundError(MikromatterError):
    pass


class ForbiddenError(MikromatterError):
    pass


class SelfFollowError(MikromatterError):
    """A user tried to follow themselves."""


class CreatorCannotLeaveError(ForbiddenError):
    """The creator of a bookclub tried to leave it. Creators delete the bookclub instead."""


class ObjectNotFoundError(NotFoundError):
    pass


class TextGenerationError(MikromatterError):
    """The text-generation service failed or returned something unusable."""
