"""Custom exceptions."""


class IronicReadinessError(Exception):
    """Base class for all custom exceptions.

    Useful to catch all of them.
    """


class ConfigurationError(IronicReadinessError):
    """A required endpoint is missing from the configuration."""

    def __init__(self, missing: list[str]):
        """Raise the ConfigurationError.

        Args:
            missing (list[str]): Names of the missing settings / env vars.
        """
        self.missing = list(missing)
        msg = f"Missing {' or '.join(self.missing)} env vars"
        super().__init__(msg)


class DeadlineExceeded(IronicReadinessError):
    """The shared deadline elapsed while a wait was still polling."""

    def __init__(self, service: str, timeout_s: float, detail: str | None = None):
        self.service = service
        self.timeout_s = timeout_s
        msg = f"Timeout after {timeout_s:g}s waiting for {service}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class PaginationFailure(IronicReadinessError):
    """Listing capability records failed part-way through the page walk."""


class InvalidStateTransition(IronicReadinessError):
    """A wait tried to move between states its lifecycle does not allow."""
