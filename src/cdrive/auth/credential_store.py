"""
Credential Store for cdrive.

This module provides a standardized interface for credential storage and retrieval,
using local JSON files for persistence. Two records are kept in the config
directory: the OAuth client identity (client_id.json) and the TokenSet
(token.json). The directory is owner-only and token.json is replaced wholesale
on every write.
"""

import os
import json
import logging
import stat
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .models import ClientCredentials, TokenSet
from .oauth_config import get_oauth_config, TOKEN_FILE, CLIENT_ID_FILE
from ..utils.errors import ClientCredentialsError

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Abstract base class for credential storage."""

    @abstractmethod
    def load_client_credentials(self) -> Optional[ClientCredentials]:
        """Load the OAuth client identity, or None if none is configured."""
        pass

    @abstractmethod
    def save_client_credentials(self, credentials: ClientCredentials) -> bool:
        """Persist the OAuth client identity."""
        pass

    @abstractmethod
    def load_tokens(self) -> Optional[TokenSet]:
        """Load the stored token set, or None if not logged in."""
        pass

    @abstractmethod
    def save_tokens(self, tokens: TokenSet) -> bool:
        """Replace the stored token set."""
        pass

    @abstractmethod
    def delete_tokens(self) -> bool:
        """Forget the stored token set."""
        pass


def parse_client_config(data: Dict[str, Any]) -> ClientCredentials:
    """
    Read client credentials from a client_id.json payload.

    Accepts the flat {"client_id", "client_secret"} form as well as the file
    downloaded from Google Cloud Console ({"installed": {...}} or {"web": {...}}).

    Raises:
        ClientCredentialsError: If neither form is present.
    """
    for section in ("installed", "web"):
        if isinstance(data.get(section), dict):
            data = data[section]
            break

    client_id = data.get("client_id")
    client_secret = data.get("client_secret")
    if not client_id or not client_secret:
        raise ClientCredentialsError("Invalid client credentials format")
    return ClientCredentials(client_id=str(client_id), client_secret=str(client_secret))


class LocalDirectoryCredentialStore(CredentialStore):
    """Credential store that uses local JSON files for storage."""

    def __init__(self, base_dir: Optional[str] = None) -> None:
        """
        Initialize the local credential store.

        Args:
            base_dir: Directory for credential files. If None, uses the
                     configured directory (~/.cdrive by default).
        """
        if base_dir is None:
            base_dir = get_oauth_config().config_dir

        self.base_dir = base_dir
        self.token_path = os.path.join(base_dir, TOKEN_FILE)
        self.client_secrets_path = os.path.join(base_dir, CLIENT_ID_FILE)
        logger.debug(f"LocalDirectoryCredentialStore initialized: {base_dir}")

    def _ensure_dir_exists(self) -> None:
        """Ensure the config directory exists with owner-only permissions."""
        if not os.path.exists(self.base_dir):
            os.makedirs(self.base_dir, mode=0o700, exist_ok=True)
            if os.name == "posix":
                os.chmod(self.base_dir, stat.S_IRWXU)
            logger.info(f"Created config directory: {self.base_dir}")

    def _write_json(self, path: str, data: Dict[str, Any]) -> None:
        """Write a JSON file atomically, readable by the owner only."""
        self._ensure_dir_exists()
        fd, temp_path = tempfile.mkstemp(dir=self.base_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.chmod(temp_path, stat.S_IRUSR | stat.S_IWUSR)
            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def load_client_credentials(self) -> Optional[ClientCredentials]:
        """Get client credentials from the environment, then client_id.json."""
        config = get_oauth_config()
        if config.client_id and config.client_secret:
            logger.debug("Loaded OAuth client credentials from environment variables")
            return ClientCredentials(config.client_id, config.client_secret)

        if not os.path.exists(self.client_secrets_path):
            logger.debug(f"No client credentials file at {self.client_secrets_path}")
            return None

        try:
            with open(self.client_secrets_path, "r") as f:
                data = json.load(f)
        except (IOError, json.JSONDecodeError) as e:
            logger.error(f"Error loading client credentials from {self.client_secrets_path}: {e}")
            raise ClientCredentialsError(
                f"Error parsing client credentials file {self.client_secrets_path}"
            ) from e

        if not isinstance(data, dict):
            raise ClientCredentialsError("Invalid client credentials format")

        credentials = parse_client_config(data)
        logger.debug(f"Loaded OAuth client credentials from {self.client_secrets_path}")
        return credentials

    def save_client_credentials(self, credentials: ClientCredentials) -> bool:
        """Store client credentials to client_id.json."""
        try:
            self._write_json(
                self.client_secrets_path,
                {
                    "client_id": credentials.client_id,
                    "client_secret": credentials.client_secret,
                },
            )
            logger.info(f"Stored client credentials in {self.client_secrets_path}")
            return True
        except OSError as e:
            logger.error(f"Error storing client credentials: {e}")
            return False

    def load_tokens(self) -> Optional[TokenSet]:
        """Get the token set from token.json."""
        if not os.path.exists(self.token_path):
            logger.debug("No token file found")
            return None

        try:
            with open(self.token_path, "r") as f:
                data = json.load(f)
        except (IOError, json.JSONDecodeError) as e:
            logger.error(f"Error loading tokens from {self.token_path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed token file {self.token_path}")
            return None

        tokens = TokenSet.from_dict(data)
        if not tokens.access_token:
            logger.warning(f"Token file {self.token_path} has no access token")
            return None
        return tokens

    def save_tokens(self, tokens: TokenSet) -> bool:
        """Replace token.json with the given token set."""
        try:
            self._write_json(self.token_path, tokens.to_dict())
            logger.info(f"Stored tokens in {self.token_path}")
            return True
        except OSError as e:
            logger.error(f"Error storing tokens: {e}")
            return False

    def delete_tokens(self) -> bool:
        """Delete token.json."""
        try:
            if os.path.exists(self.token_path):
                os.remove(self.token_path)
                logger.info(f"Deleted tokens at {self.token_path}")
            return True
        except OSError as e:
            logger.error(f"Error deleting tokens: {e}")
            return False


# Global credential store instance
_credential_store: Optional[CredentialStore] = None


def get_credential_store() -> CredentialStore:
    """Get the global credential store instance."""
    global _credential_store

    if _credential_store is None:
        _credential_store = LocalDirectoryCredentialStore()
        logger.debug(f"Initialized credential store: {type(_credential_store).__name__}")

    return _credential_store


def set_credential_store(store: Optional[CredentialStore]) -> None:
    """Set (or with None, reset) the global credential store instance."""
    global _credential_store
    _credential_store = store
    if store is not None:
        logger.debug(f"Set credential store: {type(store).__name__}")
