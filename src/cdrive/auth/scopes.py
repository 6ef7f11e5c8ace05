"""
Google OAuth Scopes for cdrive.

This module defines the OAuth scopes requested during `cdrive auth login`.
"""

import logging
from typing import List

logger = logging.getLogger(__name__)

# Google Drive scopes
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"

DRIVE_SCOPES = [DRIVE_SCOPE, DRIVE_READONLY_SCOPE, DRIVE_FILE_SCOPE]

# cdrive only needs access to the files it creates or opens
SCOPES = [DRIVE_FILE_SCOPE]


def get_scopes() -> List[str]:
    """
    Get the list of OAuth scopes requested by cdrive.

    Returns:
        List of unique OAuth scopes, in a stable order.
    """
    return list(dict.fromkeys(SCOPES))


def get_scope_string() -> str:
    """Get the scopes as the space separated string used in the authorization URL."""
    return " ".join(get_scopes())
