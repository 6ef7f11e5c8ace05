"""Centralized constants for cdrive."""

FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'
DEFAULT_MIME_TYPE = 'application/octet-stream'

# Upload MIME types by lowercase extension; anything else falls back to mimetypes
UPLOAD_MIME_TYPES = {
    '.txt': 'text/plain',
    '.pdf': 'application/pdf',
    '.doc': 'application/msword',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.mp4': 'video/mp4',
    '.mp3': 'audio/mpeg',
    '.zip': 'application/zip',
    '.json': 'application/json',
    '.xml': 'application/xml',
    '.html': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.py': 'text/x-python',
    '.c': 'text/x-c',
    '.h': 'text/x-c',
    '.cpp': 'text/x-c++',
    '.cc': 'text/x-c++',
}

# Drive folder aliases
ROOT_FOLDER_ID = 'root'
ROOT_FOLDER_NAME = 'My Drive'

# Default Values
DEFAULT_PAGE_SIZE = 100
UPLOAD_CHUNK_SIZE = 5 * 1024 * 1024
DOWNLOAD_CHUNK_SIZE = 5 * 1024 * 1024
TOKEN_PREVIEW_LENGTH = 20

DOWNLOAD_LINK_TEMPLATE = 'https://drive.google.com/uc?export=download&id={file_id}'
