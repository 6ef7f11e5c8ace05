"""Custom exceptions for cdrive.

This module provides structured error handling with specific exception types
for different failure scenarios. All exceptions inherit from CDriveError.
Login failures carry a `hint` with the one action the user should take next.
"""
from typing import Optional, Any


class CDriveError(Exception):
    """Base exception for all cdrive errors.

    Attributes:
        message: Human-readable error description.
        file_id: Optional file ID related to the error.
    """

    def __init__(self, message: str, file_id: Optional[str] = None) -> None:
        self.message = message
        self.file_id = file_id
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the error message, optionally including file ID."""
        if self.file_id:
            return f"{self.message} (file: {self.file_id})"
        return self.message


class AuthenticationError(CDriveError):
    """Raised when authentication fails or token is expired."""
    pass


class NotAuthenticatedError(AuthenticationError):
    """Raised when no stored token exists yet."""

    def __init__(self) -> None:
        super().__init__("Not authenticated. Run 'cdrive auth login' first.")


class ConfigurationError(CDriveError):
    """Raised when an environment setting has an unusable value."""
    pass


class ClientCredentialsError(CDriveError):
    """Raised when client_id.json is missing, unreadable or malformed."""
    pass


class FileNotFoundError(CDriveError):
    """Raised when a requested file doesn't exist or was deleted."""
    pass


class PermissionDeniedError(CDriveError):
    """Raised when access to a file is denied."""
    pass


class QuotaExceededError(CDriveError):
    """Raised when API rate limit or quota is exceeded."""
    pass


class LocalFileNotFoundError(CDriveError):
    """Raised when a local file doesn't exist or is not a regular file."""

    def __init__(self, local_path: str) -> None:
        self.local_path = local_path
        super().__init__(f"Local file not found or not a regular file: {local_path}")


class LoginError(CDriveError):
    """Terminal failure of one `auth login` attempt.

    Attributes:
        hint: What the user should do before trying again.
    """

    hint = "Run 'cdrive auth login' again."

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        if hint is not None:
            self.hint = hint
        super().__init__(message)


class PortUnavailableError(LoginError):
    """The fixed redirect port could not be bound."""

    def __init__(self, port: int, reason: str = "") -> None:
        self.port = port
        message = f"Port {port} is already in use"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message,
            hint=(
                f"Stop the process listening on port {port} (or finish the other "
                "login in progress), then run 'cdrive auth login' again."
            ),
        )


class AcceptFailedError(LoginError):
    """The redirect listener failed while waiting for the callback."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Failed to receive authorization callback: {reason}",
            hint=(
                "If you are connected over SSH, check that the redirect port is "
                "forwarded, then run 'cdrive auth login' again."
            ),
        )


class NoCodeInCallbackError(LoginError):
    """The callback (or pasted URL) carried no authorization code."""

    def __init__(self, headless: bool = False) -> None:
        if headless:
            hint = (
                "Paste the full redirected URL, including the '?code=...' part, "
                "from your browser's address bar."
            )
        else:
            hint = "Run 'cdrive auth login' again and approve access in the browser."
        super().__init__("Authorization code is empty", hint=hint)


class CallbackTimeoutError(LoginError):
    """No callback arrived within CDRIVE_LOGIN_TIMEOUT."""

    def __init__(self, seconds: Optional[float]) -> None:
        super().__init__(
            f"No authorization callback received within {seconds:g} seconds"
            if seconds
            else "No authorization callback received",
            hint="Run 'cdrive auth login' again and finish the consent step sooner.",
        )


class TokenExchangeError(LoginError):
    """The token endpoint refused the code or returned no access token."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(
            message,
            hint=(
                "Authorization codes are single-use. Run 'cdrive auth login' again "
                "and check your client id and secret."
            ),
        )


class LoginCancelledError(LoginError):
    """The operator declined or interrupted the login."""

    def __init__(self, message: str = "Authentication cancelled.", hint: Optional[str] = None) -> None:
        super().__init__(message, hint=hint or "Run 'cdrive auth login' when you are ready.")


def handle_http_error(error: Any, file_id: Optional[str] = None) -> CDriveError:
    """Convert googleapiclient HttpError to a specific exception.

    Args:
        error: The HttpError from googleapiclient.
        file_id: Optional file ID for context.

    Returns:
        An appropriate CDriveError subclass.
    """
    try:
        status = error.resp.status
    except AttributeError:
        return CDriveError(f"API error: {str(error)}", file_id)

    if status == 401:
        return AuthenticationError(
            "Authentication failed. Please run 'cdrive auth login' again.",
            file_id
        )
    elif status == 403:
        return PermissionDeniedError(
            "Access denied. cdrive can only see files it created or opened; check sharing settings.",
            file_id
        )
    elif status == 404:
        return FileNotFoundError(
            "File not found. It may have been deleted or moved.",
            file_id
        )
    elif status == 429:
        return QuotaExceededError(
            "API quota exceeded. Please wait a moment and try again.",
            file_id
        )
    else:
        return CDriveError(f"API error (HTTP {status}): {str(error)}", file_id)


def format_error(action: str, error: Exception) -> str:
    """Format an error message consistently.

    Args:
        action: The action that failed (e.g., "Upload", "List").
        error: The exception that occurred.

    Returns:
        Formatted error string.
    """
    if isinstance(error, CDriveError):
        return f"{action} failed: {error.format_message()}"
    return f"{action} failed: {str(error)}"
