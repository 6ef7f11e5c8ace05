"""Google Drive Client - modular implementation.

This module provides a facade that combines the client mixins into
a single DriveClient class.
"""
from .base import DriveClientBase
from .files import FilesMixin, get_mime_type, download_link


class DriveClient(DriveClientBase, FilesMixin):
    """Google Drive client for the cdrive commands.

    Lists folders, creates folders, uploads and downloads files
    through a single interface.
    """
    pass


__all__ = ['DriveClient', 'get_mime_type', 'download_link']
