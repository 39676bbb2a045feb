"""Exception types for the messaging API client."""


class ClientError(Exception):
    """Base exception for all messaging API client errors."""
    pass


class TransportError(ClientError):
    """Network communication error."""
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(TransportError):
    """The API rejected the credentials and no refresh was possible."""
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=401)


class MediaError(ClientError):
    """Attached media could not be read."""
    def __init__(self, message: str, media_uri: str) -> None:
        super().__init__(message)
        self.media_uri = media_uri
