"""Exception types raised outside the adapter result channel."""

from __future__ import annotations


class FaukeError(Exception):
    """Base class for errors surfaced to the HTTP layer."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class IntegrationNotFoundError(FaukeError):
    def __init__(self, integration_id: str) -> None:
        super().__init__(f"Integration not found: {integration_id}")
        self.integration_id = integration_id


class PreconditionError(FaukeError):
    """A sync cannot start: detected before any adapter is invoked."""


class UnknownProviderError(LookupError):
    """An integration references a provider key with no registered adapter."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unknown integration provider: {provider}")
        self.provider = provider
