"""Exception types raised while searching for and resolving bulletins."""

from __future__ import annotations


class MsuFinderError(Exception):
    """Base class for every error raised by msufinder."""


class NetworkFatal(MsuFinderError):
    """A fetch failed for good: retries ran out or the error was not transient."""

    def __init__(self, last_error: BaseException, attempts: int = 1):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"Unable to make a request after {attempts} attempt(s): "
            f"{type(last_error).__name__} {last_error}"
        )


class InvalidIdentifier(MsuFinderError, ValueError):
    """A string that is not a bulletin number in msXX-XXX form."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(
            f"Not a valid bulletin number: {raw!r} (example of a correct one: ms15-100)"
        )


class AdvisoryNotFound(MsuFinderError):
    """The advisory page exists only as the site's 'not found' page."""


class NoLinksFound(MsuFinderError):
    """No product family links could be extracted from an advisory."""


class NoConfirmationLink(MsuFinderError):
    """A family download page carried no confirmation link."""


class UpstreamApiError(MsuFinderError):
    """The web search API answered with an error object."""

    def __init__(self, message: str, reason: str):
        self.message = message
        self.reason = reason
        super().__init__(f"Google Search failed. {message} ({reason})")


class MalformedResponse(MsuFinderError):
    """A response body or link that could not be parsed."""
