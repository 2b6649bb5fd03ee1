"""
Error taxonomy for calls into Autodesk Platform Services.

Every failure raised by the token cache or the gateways derives from ``ApsError``
and carries the detail the platform returned, so the HTTP layer can surface it
without knowing which remote call failed.
"""

from __future__ import annotations

from typing import Optional


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing or invalid."""


class ApsError(Exception):
    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.detail
        return f"{self.detail} (upstream status {self.status_code})"


class AuthFailure(ApsError):
    """Credential issuance was rejected or the identity endpoint was unreachable."""


class ContainerFailure(ApsError):
    """The bucket could not be inspected or created."""


class UploadFailure(ApsError):
    """The platform reported an error while receiving an object."""


class StorageFailure(ApsError):
    """A page of the bucket listing could not be fetched."""


class TranslationFailure(ApsError):
    """The conversion job was not accepted."""


class StatusFetchFailure(ApsError):
    """The manifest fetch failed with something other than not-found."""
