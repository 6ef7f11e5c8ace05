"""
Command-line interface for cdrive.

Commands:
- auth login / auth status / auth logout (login is also available top-level)
- list, mkdir, upload, pull

The CLI uses Click for command handling and Rich for terminal output.
"""

import functools
import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import click
from dotenv import load_dotenv
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from . import __version__
from .auth.credential_store import get_credential_store
from .auth.login import LoginOrchestrator
from .auth.oauth_config import get_oauth_config, reload_oauth_config
from .client import DriveClient, download_link
from .client.files import is_folder
from .console import (
    ConsolePrompter,
    console,
    print_error,
    print_header,
    print_info,
    print_step,
    print_success,
    print_warning,
)
from .utils.constants import ROOT_FOLDER_ID, ROOT_FOLDER_NAME, TOKEN_PREVIEW_LENGTH
from .utils.errors import (
    AuthenticationError,
    CDriveError,
    ConfigurationError,
    LoginError,
    format_error,
    handle_http_error,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def handle_errors(action: str) -> Callable:
    """Print cdrive and Drive API failures and exit with status 1."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            file_id = kwargs.get("file_id")
            try:
                return func(*args, **kwargs)
            except LoginError as e:
                print_error(e.message)
                print_info(e.hint)
            except CDriveError as e:
                print_error(format_error(action, e))
            except HttpError as e:
                logger.debug(f"Drive API error: {e}")
                print_error(format_error(action, handle_http_error(e, file_id)))
            except RefreshError as e:
                logger.debug(f"Token refresh failed: {e}")
                print_error(
                    format_error(
                        action,
                        AuthenticationError(
                            "Token refresh failed. Please run 'cdrive auth login' again."
                        ),
                    )
                )
            except TransportError as e:
                logger.debug(f"Transport error: {e}")
                print_error(format_error(action, CDriveError(f"Network error: {e}")))
            except OSError as e:
                print_error(format_error(action, e))
            sys.exit(1)

        return wrapper

    return decorator


@contextmanager
def transfer_progress(description: str, total: int = 0) -> Iterator[Callable[[int, int], None]]:
    """Rich progress bar; yields a (done, total) callback."""
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        "[progress.percentage]{task.percentage:>3.0f}%",
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task(escape(description), total=total or None)

        def update(done: int, size: int) -> None:
            progress.update(task_id, completed=done, total=size or None)

        yield update


@click.group()
@click.version_option(__version__, prog_name="cdrive")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """
    cdrive - Google Drive from the command line.

    Examples:
        Log in (opens your browser):
        $ cdrive auth login

        Log in on a machine without a browser:
        $ cdrive auth login --no-browser

        Upload a file to My Drive:
        $ cdrive upload report.pdf
    """
    load_dotenv()
    setup_logging(verbose)
    try:
        reload_oauth_config()
    except ConfigurationError as e:
        raise click.ClickException(e.message) from None


def _run_login(no_browser: bool) -> None:
    print_header("Google Drive Authentication")
    orchestrator = LoginOrchestrator(prompter=ConsolePrompter())
    orchestrator.run(headless=no_browser)
    print_success(
        f"Authentication successful! Tokens saved to {get_oauth_config().token_path}"
    )

    try:
        name = DriveClient().get_user_name()
    except (CDriveError, TransportError, OSError) as e:
        logger.debug(f"Could not resolve Drive user: {e}")
        name = None
    if name:
        print_success(f"Logged in as {name} on Google Drive.")
    else:
        print_success("Logged in to Google Drive")


@cli.group()
def auth() -> None:
    """Manage the stored Google login."""
    pass


@auth.command("login")
@click.option(
    "--no-browser",
    is_flag=True,
    help="Do not open a browser; paste the redirected URL instead.",
)
@handle_errors("Login")
def auth_login(no_browser: bool) -> None:
    """Log in to Google Drive with OAuth2."""
    _run_login(no_browser)


@cli.command("login")
@click.option(
    "--no-browser",
    is_flag=True,
    help="Do not open a browser; paste the redirected URL instead.",
)
@handle_errors("Login")
def login_alias(no_browser: bool) -> None:
    """Shortcut for 'cdrive auth login'."""
    _run_login(no_browser)


@auth.command("status")
@handle_errors("Status")
def auth_status() -> None:
    """Show whether a login is stored."""
    config = get_oauth_config()
    tokens = get_credential_store().load_tokens()
    if tokens is None:
        print_warning("Not authenticated. Run 'cdrive auth login' first.")
        return

    preview = tokens.access_token[:TOKEN_PREVIEW_LENGTH]
    if len(tokens.access_token) > TOKEN_PREVIEW_LENGTH:
        preview += "..."
    print_success("Authenticated and ready to use Google Drive")
    print_info(f"Access token: {preview}")
    print_info(f"Refresh token: {'present' if tokens.refresh_token else 'missing'}")
    print_info(f"Client credentials: {'configured' if config.is_configured() else 'missing'}")
    print_info(f"Config directory: {config.config_dir}")


@auth.command("logout")
@handle_errors("Logout")
def auth_logout() -> None:
    """Forget the stored tokens."""
    if not get_credential_store().delete_tokens():
        raise CDriveError(f"Could not delete {get_oauth_config().token_path}")
    print_success("Logged out")


@cli.command("list")
@click.argument("folder_id", default=ROOT_FOLDER_ID)
@handle_errors("List")
def list_command(folder_id: str) -> None:
    """List the contents of a Drive folder (default: My Drive)."""
    client = DriveClient()
    files = client.list_files(folder_id)
    client.persist_refreshed_token()

    if not files:
        print_info("This folder is empty.")
        return

    table = Table(title=ROOT_FOLDER_NAME if folder_id == ROOT_FOLDER_ID else folder_id)
    table.add_column("Type")
    table.add_column("Name")
    table.add_column("ID")
    for item in files:
        table.add_row("DIR" if is_folder(item) else "FILE", escape(item.get("name", "")), item["id"])
    console.print(table)


@cli.command()
@click.argument("name")
@click.argument("parent_id", default=ROOT_FOLDER_ID)
@handle_errors("Create folder")
def mkdir(name: str, parent_id: str) -> None:
    """Create a folder NAME inside PARENT_ID (default: My Drive)."""
    client = DriveClient()
    folder = client.create_folder(name, parent_id)
    client.persist_refreshed_token()
    print_success(f"Folder created: {folder.get('name', name)}")
    print_info(f"Folder ID: {folder['id']}")


@cli.command()
@click.argument("source", type=click.Path(dir_okay=False))
@click.argument("target_folder", default=ROOT_FOLDER_ID)
@handle_errors("Upload")
def upload(source: str, target_folder: str) -> None:
    """Upload the file SOURCE to TARGET_FOLDER (default: My Drive)."""
    client = DriveClient()
    print_step(f"Uploading {source}...")
    with transfer_progress(os.path.basename(source)) as update:
        result = client.upload_file(source, target_folder, progress=update)
    client.persist_refreshed_token()

    print_success(f"Upload complete: {result.get('name', os.path.basename(source))}")
    print_info(f"File ID: {result['id']}")
    print_info(f"Download link: {download_link(result['id'])}")


def browse_drive(client: DriveClient, prompter: ConsolePrompter) -> Optional[dict[str, Any]]:
    """Walk folders interactively. Returns the chosen file, or None if the user quit."""
    parents: list[tuple[str, str]] = []
    folder_id, folder_name = ROOT_FOLDER_ID, ROOT_FOLDER_NAME

    while True:
        items = client.list_files(folder_id)
        print_header(folder_name)
        if not items:
            print_info("This folder is empty.")

        options = [
            f"[DIR] {item.get('name', '')}" if is_folder(item) else item.get("name", "")
            for item in items
        ]
        if parents:
            options.append(".. (back)")
        if not options:
            return None

        choice = prompter.choose("Select a file to download or a folder to open", options)
        if choice is None:
            return None

        if choice == len(items):
            folder_id, folder_name = parents.pop()
            continue

        item = items[choice]
        if is_folder(item):
            parents.append((folder_id, folder_name))
            folder_id, folder_name = item["id"], item.get("name", item["id"])
            continue
        return item


@cli.command()
@click.argument("file_id", required=False)
@click.argument("output", required=False)
@handle_errors("Download")
def pull(file_id: Optional[str], output: Optional[str]) -> None:
    """
    Download FILE_ID to OUTPUT.

    Without FILE_ID, browse My Drive and pick a file interactively.
    OUTPUT defaults to the file's name in the current directory.
    """
    client = DriveClient()

    if file_id is None:
        item = browse_drive(client, ConsolePrompter())
        if item is None:
            print_info("Nothing downloaded.")
            return
        file_id = item["id"]
        output = output or item.get("name") or file_id
    elif output is None:
        output = client.get_file_name(file_id)

    print_step(f"Downloading {output}...")
    with transfer_progress(os.path.basename(output)) as update:
        client.download_file(file_id, output, progress=update)
    client.persist_refreshed_token()
    print_success(f"Downloaded to {output}")


def main() -> None:
    """Entry point for the cdrive CLI."""
    cli(prog_name="cdrive")


if __name__ == "__main__":
    main()
