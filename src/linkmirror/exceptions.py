# SPDX-License-Identifier: MIT
"""Standard exceptions for the sync engine."""


class SyncError(Exception):
    """Base class for all sync-related exceptions."""


class ConfigurationError(SyncError):
    """Raised when required remote credentials or table settings are absent."""


class RemoteError(SyncError):
    """Raised on a non-success response code or a transport failure."""

    def __init__(self, message: str, code: int | None = None) -> None:
        self.code = code
        super().__init__(message)


class AuthError(RemoteError):
    """Raised when the remote source reports the credential as expired."""

    def __init__(
        self, message: str = "Access credential expired", code: int | None = None
    ) -> None:
        super().__init__(message, code)


class StoreError(SyncError):
    """Raised when the persisted key-value store fails."""

    pass
