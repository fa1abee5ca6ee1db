# =============================================================================
# core/errors.py - Exception hierarchy for the onboarding job
# =============================================================================

from typing import Optional


class ProvisioningError(Exception):
    """Base class for every error raised by the onboarding job"""


class DataSourceError(ProvisioningError):
    """HR database query failed - always fatal to the run"""


class IdentityDerivationError(ProvisioningError):
    """Derived identity attributes could not be computed for a person"""


class CredentialError(ProvisioningError):
    """Service account credential could not be read"""


class DirectoryError(ProvisioningError):
    """An Active Directory operation was rejected or could not be performed"""

    def __init__(self, message: str, result: Optional[dict] = None):
        super().__init__(message)
        self.result = result or {}
