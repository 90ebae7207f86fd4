"""Error types raised by the coaching engine and its collaborators."""


class CoachError(Exception):
    """Base class for run-ai-coach errors."""


class ConfigurationError(CoachError):
    """Raised when a required setting is missing or invalid."""


class FeedbackGenerationError(CoachError):
    """Raised when the feedback text generator cannot produce text.

    Attributes:
        status_code: HTTP status returned by the upstream API, if any
        response_body: Raw upstream response body, if any
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
