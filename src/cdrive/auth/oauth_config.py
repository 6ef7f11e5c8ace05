"""
OAuth Configuration Management for cdrive.

This module centralizes OAuth-related configuration to eliminate hardcoded values.
The redirect port is an operator-level setting: it must match the redirect URI
registered with Google, so it is read from the environment once and never
changed per run.
"""

import logging
import os
from typing import Optional

from .scopes import get_scope_string
from ..utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

DEFAULT_REDIRECT_PORT = 8080
REDIRECT_PATH = "/callback"

TOKEN_FILE = "token.json"
CLIENT_ID_FILE = "client_id.json"


class OAuthConfig:
    """
    Centralized OAuth configuration management.

    Provides a single source of truth for all OAuth-related configuration values.
    """

    def __init__(self) -> None:
        # Local redirect endpoint
        self.redirect_host = "127.0.0.1"
        self.port = self._get_redirect_port()
        self.redirect_uri = f"http://localhost:{self.port}{REDIRECT_PATH}"

        # Provider endpoints
        self.auth_uri = GOOGLE_AUTH_URI
        self.token_uri = GOOGLE_TOKEN_URI
        self.scope = get_scope_string()

        # Config directory holding client_id.json and token.json
        self.config_dir = os.path.expanduser(
            os.getenv("CDRIVE_CONFIG_DIR", os.path.join("~", ".cdrive"))
        )
        self.token_path = os.path.join(self.config_dir, TOKEN_FILE)
        self.client_secrets_path = os.path.join(self.config_dir, CLIENT_ID_FILE)

        # OAuth client configuration (environment wins over client_id.json)
        self.client_id = os.getenv("GOOGLE_OAUTH_CLIENT_ID")
        self.client_secret = os.getenv("GOOGLE_OAUTH_CLIENT_SECRET")

        # Optional upper bound on the callback wait; unbounded when unset
        self.login_timeout = self._get_login_timeout()

    @staticmethod
    def _get_redirect_port() -> int:
        raw = os.getenv("CDRIVE_REDIRECT_PORT")
        if not raw:
            return DEFAULT_REDIRECT_PORT
        try:
            port = int(raw)
        except ValueError:
            port = 0
        if not 0 < port < 65536:
            raise ConfigurationError(
                f"CDRIVE_REDIRECT_PORT must be a port number between 1 and 65535, got {raw!r}"
            )
        return port

    @staticmethod
    def _get_login_timeout() -> Optional[float]:
        raw = os.getenv("CDRIVE_LOGIN_TIMEOUT")
        if not raw:
            return None
        try:
            timeout = float(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid CDRIVE_LOGIN_TIMEOUT value: {raw!r}")
            return None
        return timeout if timeout > 0 else None

    def is_configured(self) -> bool:
        """Check if OAuth client credentials are available."""
        if self.client_id and self.client_secret:
            return True
        return os.path.exists(self.client_secrets_path)

    def ssh_forwarding_command(self) -> str:
        """The ssh invocation that forwards the redirect port from a workstation."""
        return f"ssh -L {self.port}:localhost:{self.port} user@your_server_ip"


# Global configuration instance
_oauth_config: Optional[OAuthConfig] = None


def get_oauth_config() -> OAuthConfig:
    """Get the global OAuth configuration instance."""
    global _oauth_config
    if _oauth_config is None:
        _oauth_config = OAuthConfig()
    return _oauth_config


def reload_oauth_config() -> OAuthConfig:
    """Reload the OAuth configuration from environment variables."""
    global _oauth_config
    _oauth_config = OAuthConfig()
    return _oauth_config


def is_ssh_session() -> bool:
    """Whether the process runs inside a remote shell session."""
    return bool(os.getenv("SSH_CLIENT") or os.getenv("SSH_CONNECTION"))
