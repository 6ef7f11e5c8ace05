"""Base client with Google Drive API service initialization."""
import logging
from typing import Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..auth.credential_store import CredentialStore, get_credential_store
from ..auth.google_auth import get_credentials, save_refreshed_tokens

logger = logging.getLogger(__name__)


class DriveClientBase:
    """Base class with the Drive v3 service."""

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        store: Optional[CredentialStore] = None,
    ) -> None:
        """Initialize the client from the stored login.

        Args:
            credentials: Ready-made credentials; loaded from the store when omitted.
            store: Credential store holding the TokenSet.

        Raises:
            NotAuthenticatedError: If nobody has logged in yet.
        """
        self.store = store or get_credential_store()
        self.tokens = self.store.load_tokens()
        if credentials is None:
            credentials = get_credentials(self.store)
        self.creds = credentials
        self.drive_service = build('drive', 'v3', credentials=self.creds, cache_discovery=False)
        logger.debug("Drive v3 service initialized")

    def persist_refreshed_token(self) -> bool:
        """Write back the access token if the library refreshed it during this run."""
        if self.tokens is None:
            return False
        return save_refreshed_tokens(self.creds, self.tokens, self.store)

    def get_file_name(self, file_id: str) -> str:
        """Get a file's name."""
        file_meta = self.drive_service.files().get(
            fileId=file_id, fields='name'
        ).execute()
        return file_meta.get('name', file_id)

    def get_user_name(self) -> Optional[str]:
        """Get the display name of the signed-in Drive user.

        Returns:
            The display name, or None if it could not be fetched.
        """
        try:
            about = self.drive_service.about().get(fields='user').execute()
            name = about['user']['displayName']
            logger.info(f"Fetched Drive user: {name}")
            return name
        except HttpError as e:
            logger.error(f"HttpError fetching user info: {e.status_code}")
            return None
        except Exception as e:
            logger.error(f"Error fetching user info: {e}")
            return None
