"""
OAuth 2.0 Authentication Package for cdrive.

This package implements the installed-app login used by `cdrive auth login`:
- Loopback redirect listener that captures exactly one authorization code
- Headless mode that reads the redirected URL from the terminal
- Token exchange and owner-only local storage of the resulting tokens
"""

from .scopes import SCOPES, DRIVE_SCOPES, get_scopes
from .models import ClientCredentials, TokenSet
from .credential_store import get_credential_store, set_credential_store, CredentialStore
from .oauth_config import get_oauth_config, reload_oauth_config, OAuthConfig
from .login import LoginOrchestrator, LoginState, build_authorization_url, login
from .google_auth import get_credentials, save_refreshed_tokens

__all__ = [
    # Scopes
    "SCOPES",
    "DRIVE_SCOPES",
    "get_scopes",
    # Models
    "ClientCredentials",
    "TokenSet",
    # Credential Store
    "get_credential_store",
    "set_credential_store",
    "CredentialStore",
    # Configuration
    "get_oauth_config",
    "reload_oauth_config",
    "OAuthConfig",
    # Login
    "LoginOrchestrator",
    "LoginState",
    "build_authorization_url",
    "login",
    # Drive credentials
    "get_credentials",
    "save_refreshed_tokens",
]
