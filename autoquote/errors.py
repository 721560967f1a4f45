"""Error taxonomy for the orchestration layer."""


class RemoteError(Exception):
    """A third-party API call failed (transport, non-2xx or malformed payload)."""

    def __init__(self, service: str, message: str, status_code: int | None = None):
        """Initialize remote error.

        Args:
            service: Name of the remote service (research, voice, ...)
            message: Human readable failure description
            status_code: HTTP status returned by the service, if any
        """
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class PollTimeoutError(TimeoutError):
    """A poll loop exceeded its maximum wait without a terminal status."""

    def __init__(self, label: str, max_wait: float):
        self.label = label
        self.max_wait = max_wait
        super().__init__(f"{label} did not reach a terminal state within {max_wait:g} seconds")


class PersistenceError(Exception):
    """Writing to durable storage failed."""
