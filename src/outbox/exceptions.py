"""Exception types for the offline outbox."""


class OutboxError(Exception):
    """Base exception for all outbox errors."""
    pass


class SendCallbackNotSetError(OutboxError):
    """A send was attempted before a send callback was configured."""
    def __init__(self, message: str = "send callback not implemented") -> None:
        super().__init__(message)


class SendTimeoutError(OutboxError):
    """The send callback did not finish within the configured timeout."""
    def __init__(self, message_id: str, timeout: float) -> None:
        super().__init__(f"Send of message {message_id} timed out after {timeout}s")
        self.message_id = message_id
        self.timeout = timeout


class ConfigError(OutboxError):
    """Configuration file error."""
    pass
