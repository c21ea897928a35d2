"""Error taxonomy shared by the submission handler and its startup path."""

MISSING_FIELD_MESSAGE = "Image and prompt are required"
UPSTREAM_FAILURE_MESSAGE = "Failed to process the request"


class ImageChatError(Exception):
    """Base class for errors raised by the image chat service."""

    status_code = 500
    public_message = UPSTREAM_FAILURE_MESSAGE


class MissingField(ImageChatError):
    """The prompt or the image was absent from the submitted form."""

    status_code = 400
    public_message = MISSING_FIELD_MESSAGE

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing form field: {field}")
        self.field = field


class UpstreamFailure(ImageChatError):
    """The model call failed; the cause is kept for logs only."""

    status_code = 500
    public_message = UPSTREAM_FAILURE_MESSAGE


class StartupConfigurationError(ImageChatError, RuntimeError):
    """Required process configuration is missing at startup."""
