"""
Google credentials for cdrive's Drive commands.

Builds google-auth Credentials from the stored TokenSet and client identity.
No expiry is recorded, so the library refreshes only when Drive answers 401;
if that happens the new access token replaces the stored TokenSet.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from google.oauth2.credentials import Credentials

from .credential_store import CredentialStore, get_credential_store
from .models import ClientCredentials, TokenSet
from .oauth_config import get_oauth_config
from .scopes import get_scopes
from ..utils.errors import NotAuthenticatedError

logger = logging.getLogger(__name__)


def build_credentials(
    tokens: TokenSet, client: Optional[ClientCredentials] = None
) -> Credentials:
    """Wrap a TokenSet in google-auth Credentials."""
    return Credentials(
        token=tokens.access_token,
        refresh_token=tokens.refresh_token or None,
        token_uri=get_oauth_config().token_uri,
        client_id=client.client_id if client else None,
        client_secret=client.client_secret if client else None,
        scopes=get_scopes(),
    )


def get_credentials(store: Optional[CredentialStore] = None) -> Credentials:
    """
    Get Credentials for the stored login.

    Raises:
        NotAuthenticatedError: If no TokenSet is stored.
    """
    store = store or get_credential_store()
    tokens = store.load_tokens()
    if tokens is None:
        logger.info("No stored tokens found")
        raise NotAuthenticatedError()

    client = store.load_client_credentials()
    if client is None:
        logger.warning("No client credentials configured; access token cannot be refreshed")
    return build_credentials(tokens, client)


def save_refreshed_tokens(
    credentials: Credentials,
    previous: TokenSet,
    store: Optional[CredentialStore] = None,
) -> bool:
    """
    Store the access token if google-auth refreshed it.

    Returns:
        True if a new TokenSet was written.
    """
    if not credentials.token or credentials.token == previous.access_token:
        return False

    expires_in = 0
    if credentials.expiry is not None:
        # google-auth keeps expiry as a naive UTC datetime
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        expires_in = max(0, int((credentials.expiry - now).total_seconds()))

    tokens = TokenSet(
        access_token=credentials.token,
        refresh_token=credentials.refresh_token or previous.refresh_token,
        token_type=previous.token_type,
        expires_in=expires_in,
    )
    store = store or get_credential_store()
    saved = store.save_tokens(tokens)
    if saved:
        logger.info("Stored refreshed access token")
    return saved
