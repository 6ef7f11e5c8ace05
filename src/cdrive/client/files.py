"""File management mixin for DriveClient."""
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload
from typing import Callable, Optional, Any
import logging
import mimetypes
import os

from ..utils.constants import (
    FOLDER_MIME_TYPE,
    DEFAULT_MIME_TYPE,
    UPLOAD_MIME_TYPES,
    ROOT_FOLDER_ID,
    DEFAULT_PAGE_SIZE,
    UPLOAD_CHUNK_SIZE,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_LINK_TEMPLATE,
)
from ..utils.errors import LocalFileNotFoundError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

LIST_FIELDS = 'nextPageToken, files(id, name, mimeType, size)'


def get_mime_type(path: str) -> str:
    """Guess the upload MIME type for a local file.

    Known extensions come from UPLOAD_MIME_TYPES, anything else from
    mimetypes, and application/octet-stream when both draw a blank.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext in UPLOAD_MIME_TYPES:
        return UPLOAD_MIME_TYPES[ext]
    guessed, _ = mimetypes.guess_type(path)
    return guessed or DEFAULT_MIME_TYPE


def download_link(file_id: str) -> str:
    """Direct download link for an uploaded file."""
    return DOWNLOAD_LINK_TEMPLATE.format(file_id=file_id)


def is_folder(item: dict[str, Any]) -> bool:
    return item.get('mimeType') == FOLDER_MIME_TYPE


class FilesMixin:
    """Mixin providing file management operations."""

    def list_files(self, folder_id: str = ROOT_FOLDER_ID) -> list[dict[str, Any]]:
        """List the non-trashed children of a folder, folders first.

        Args:
            folder_id: The folder ID ('root' for My Drive).

        Returns:
            List of file metadata dictionaries.
        """
        query = f"'{folder_id}' in parents and trashed=false"
        files: list[dict[str, Any]] = []
        page_token = None

        while True:
            response = self.drive_service.files().list(
                q=query,
                pageSize=DEFAULT_PAGE_SIZE,
                orderBy='folder,name',
                fields=LIST_FIELDS,
                pageToken=page_token
            ).execute()
            files.extend(response.get('files', []))
            page_token = response.get('nextPageToken')
            if not page_token:
                break

        logger.debug(f"Listed {len(files)} items in folder {folder_id}")
        return files

    def create_folder(self, name: str, parent_id: str = ROOT_FOLDER_ID) -> dict[str, Any]:
        """Create a folder.

        Args:
            name: Folder name.
            parent_id: Parent folder ID.

        Returns:
            Folder metadata with id and name.
        """
        body = {
            'name': name,
            'mimeType': FOLDER_MIME_TYPE,
            'parents': [parent_id],
        }
        folder = self.drive_service.files().create(
            body=body,
            fields='id, name'
        ).execute()
        logger.info(f"Created folder '{name}' ({folder.get('id')})")
        return folder

    def upload_file(
        self,
        local_path: str,
        parent_id: str = ROOT_FOLDER_ID,
        progress: Optional[ProgressCallback] = None,
    ) -> dict[str, Any]:
        """Upload a local file to Drive with a resumable upload.

        Args:
            local_path: Path to local file.
            parent_id: Parent folder ID.
            progress: Called with (bytes_sent, total_bytes) after each chunk.

        Returns:
            File metadata dictionary.

        Raises:
            LocalFileNotFoundError: If local_path is not a regular file.
        """
        if not os.path.isfile(local_path):
            raise LocalFileNotFoundError(local_path)

        name = os.path.basename(local_path)
        total = os.path.getsize(local_path)
        file_metadata = {'name': name, 'parents': [parent_id]}

        media = MediaFileUpload(
            local_path,
            mimetype=get_mime_type(local_path),
            chunksize=UPLOAD_CHUNK_SIZE,
            resumable=True
        )
        request = self.drive_service.files().create(
            body=file_metadata,
            media_body=media,
            fields='id, name, size'
        )

        response = None
        while response is None:
            status, response = request.next_chunk()
            if status and progress:
                progress(status.resumable_progress, status.total_size or total)

        if progress:
            progress(total, total)
        logger.info(f"Uploaded {local_path} as {response.get('id')}")
        return response

    def download_file(
        self,
        file_id: str,
        output_path: str,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Download a file's content to a local path.

        A partially written file is removed if the download fails.

        Args:
            file_id: The file ID.
            output_path: Local destination path.
            progress: Called with (bytes_received, total_bytes) after each chunk.

        Returns:
            The output path.
        """
        request = self.drive_service.files().get_media(fileId=file_id)

        fh = open(output_path, 'wb')
        try:
            with fh:
                downloader = MediaIoBaseDownload(fh, request, chunksize=DOWNLOAD_CHUNK_SIZE)
                done = False
                while not done:
                    status, done = downloader.next_chunk()
                    if status and progress:
                        progress(status.resumable_progress, status.total_size or 0)
        except (Exception, KeyboardInterrupt):
            if os.path.exists(output_path):
                os.remove(output_path)
                logger.debug(f"Removed partial download {output_path}")
            raise

        logger.info(f"Downloaded {file_id} to {output_path}")
        return output_path
