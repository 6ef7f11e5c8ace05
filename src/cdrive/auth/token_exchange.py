"""
Token exchange for cdrive.

Trades an authorization code for a TokenSet at Google's token endpoint. A code
is single-use, so nothing here retries: any failure ends the login attempt.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .models import ClientCredentials, TokenSet
from .oauth_config import get_oauth_config
from ..utils.errors import TokenExchangeError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class TokenExchanger:
    """Performs the authorization-code grant against a token endpoint."""

    def __init__(
        self,
        token_uri: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.token_uri = token_uri or get_oauth_config().token_uri
        self.session = session or requests.Session()
        self.timeout = timeout

    def exchange(
        self, code: str, redirect_uri: str, client: ClientCredentials
    ) -> TokenSet:
        """
        Exchange an authorization code for tokens.

        Args:
            code: Authorization code captured from the redirect.
            redirect_uri: The redirect URI used in the authorization request.
            client: OAuth client identity.

        Returns:
            The issued TokenSet.

        Raises:
            TokenExchangeError: On transport errors, a non-200 status, an
                unparseable body or an empty access token.
        """
        data = {
            "code": code,
            "client_id": client.client_id,
            "client_secret": client.client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }

        logger.info("Exchanging authorization code for tokens")
        try:
            response = self.session.post(self.token_uri, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Token exchange request failed: {e}")
            raise TokenExchangeError(f"Error exchanging code: {e}") from e

        if response.status_code != 200:
            detail = _error_detail(response)
            logger.error(f"Token endpoint returned HTTP {response.status_code}: {detail}")
            raise TokenExchangeError(
                f"HTTP error during token exchange (HTTP {response.status_code}: {detail})",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Token endpoint returned a non-JSON body")
            raise TokenExchangeError("Error parsing token response", status_code=200) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise TokenExchangeError(
                "Token response did not contain an access token", status_code=200
            )

        tokens = _token_set_from_payload(payload)
        logger.info(f"Obtained {tokens.token_type} token (expires in {tokens.expires_in}s)")
        return tokens


def _token_set_from_payload(payload: Dict[str, Any]) -> TokenSet:
    try:
        expires_in = int(payload.get("expires_in") or 0)
    except (TypeError, ValueError):
        expires_in = 0
    return TokenSet(
        access_token=str(payload["access_token"]),
        refresh_token=str(payload.get("refresh_token") or ""),
        token_type=str(payload.get("token_type") or "Bearer"),
        expires_in=expires_in,
    )


def _error_detail(response: requests.Response) -> str:
    """Best-effort short description of an OAuth error response."""
    try:
        body = response.json()
    except ValueError:
        return response.reason or "unknown error"
    if isinstance(body, dict):
        error = body.get("error")
        description = body.get("error_description")
        if error and description:
            return f"{error}: {description}"
        if error:
            return str(error)
    return response.reason or "unknown error"
