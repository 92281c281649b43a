"""Exceptions raised by natstop."""


class NatsTopError(Exception):
    """Base exception for natstop."""


class MalformedResponse(NatsTopError):
    """Monitoring endpoint returned a body that could not be decoded."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class UnreachableServer(NatsTopError):
    """Monitoring endpoint could not be reached within the retry budget."""

    def __init__(self, url: str, attempts: int, cause: BaseException | None = None) -> None:
        super().__init__(f"could not get stats from {url} after {attempts} attempts: {cause}")
        self.url = url
        self.attempts = attempts
        self.cause = cause


class InvalidConfiguration(NatsTopError):
    """Startup options are invalid."""


class InvalidSortKeyInput(NatsTopError):
    """Interactively entered sort key is not recognised."""

    def __init__(self, text: str) -> None:
        super().__init__(f"invalid order: {text}")
        self.text = text
