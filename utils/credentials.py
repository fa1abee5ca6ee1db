# =============================================================================
# utils/credentials.py - Encrypted service account credential file
# =============================================================================

import logging
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from core.errors import CredentialError
from utils.config import Config

logger = logging.getLogger(__name__)


def read_credential_file(path: str, key: str) -> str:
    """Decrypt the service account password stored at path"""
    try:
        token = Path(path).read_bytes().strip()
        return Fernet(key.encode()).decrypt(token).decode("utf-8")
    except FileNotFoundError:
        raise CredentialError(f"Credential file {path} not found")
    except (InvalidToken, ValueError) as e:
        raise CredentialError(f"Credential file {path} could not be decrypted: {e!r}")


def write_credential_file(path: str, key: str, password: str) -> None:
    """Encrypt password with key and store it at path"""
    token = Fernet(key.encode()).encrypt(password.encode("utf-8"))
    Path(path).write_bytes(token)
    logger.info(f"Wrote encrypted credential to {path}")


def resolve_service_password(config: Config) -> str:
    """Service account password - encrypted file first, then AD_PASSWORD"""
    if config.ad_credential_file:
        if not config.ad_credential_key:
            raise CredentialError("AD_CREDENTIAL_FILE is set but AD_CREDENTIAL_KEY is missing")
        logger.debug(f"Reading service credential from {config.ad_credential_file}")
        return read_credential_file(config.ad_credential_file, config.ad_credential_key)

    if config.ad_password:
        return config.ad_password

    raise CredentialError("No service account credential configured")
