class RelayError(Exception):
    """Base class for errors raised while relaying a request upstream."""

    default_message = "Relay request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(RelayError):
    default_message = "Server is not configured."


class InvalidImageError(RelayError):
    default_message = "base64Image is not valid base64 data."


class AnalysisError(RelayError):
    default_message = "Failed to analyze image."


class PlacesSearchError(RelayError):
    default_message = "Failed to search dermatologists."
