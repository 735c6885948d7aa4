"""Error taxonomy for Frigate API access.

Every error carries a short user-displayable ``message``; manual refresh shows
it to the user, background polls only log it.
"""


class FrigateAPIError(Exception):
    """Base class for errors raised while talking to Frigate."""

    default_message = "Frigate API error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidURLError(FrigateAPIError):
    """Base URL (or a URL built from it) is malformed. Not retried."""

    default_message = "The URL for the Frigate API is invalid."


class NetworkError(FrigateAPIError):
    """Transport failure or non-200 response."""

    default_message = "Network error while contacting Frigate."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class DecodingError(FrigateAPIError):
    """No parsing strategy matched the response body."""

    default_message = "Failed to decode Frigate events."

    def __init__(self, message: str | None = None, byte_length: int | None = None):
        self.byte_length = byte_length
        if message is None and byte_length is not None:
            message = (
                "Could not parse events data with any known format. "
                f"Data length: {byte_length} bytes"
            )
        super().__init__(message)


class InvalidResponseError(FrigateAPIError):
    """Response is missing expected structure."""

    default_message = "Invalid response from the Frigate API."


class UnsupportedVersionError(FrigateAPIError):
    """Resolved Frigate version is outside the supported range.

    Reserved: version negotiation always degrades to the default version
    instead of raising this.
    """

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Unsupported Frigate version: {version}. "
            "Please upgrade to a supported version."
        )
