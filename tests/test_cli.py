"""Unit tests for the cdrive command line."""

import os
import shutil
import sys
import tempfile
from unittest.mock import ANY, Mock, patch

from click.testing import CliRunner
from google.auth.exceptions import TransportError
from googleapiclient.errors import HttpError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../src"))

from cdrive import __version__
from cdrive.auth.credential_store import LocalDirectoryCredentialStore, set_credential_store
from cdrive.auth.models import TokenSet
from cdrive.auth.oauth_config import reload_oauth_config
from cdrive.cli import browse_drive, cli
from cdrive.utils.constants import FOLDER_MIME_TYPE
from cdrive.utils.errors import (
    LoginCancelledError,
    NotAuthenticatedError,
    PortUnavailableError,
)


class CliTestBase:
    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.env = patch.dict(os.environ, {"CDRIVE_CONFIG_DIR": self.temp_dir})
        self.env.start()
        reload_oauth_config()
        set_credential_store(None)
        self.runner = CliRunner()
        self.store = LocalDirectoryCredentialStore(self.temp_dir)

    def teardown_method(self):
        self.env.stop()
        reload_oauth_config()
        set_credential_store(None)
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)


class TestAuthCommands(CliTestBase):
    """Tests for the auth command group."""

    def test_version(self):
        result = self.runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_status_not_authenticated(self):
        result = self.runner.invoke(cli, ["auth", "status"])
        assert result.exit_code == 0
        assert "Not authenticated" in result.output

    def test_status_shows_token_prefix(self):
        token = "ya29.a0AfH6SMBx1234567890abcdefghijklmnop"
        self.store.save_tokens(TokenSet(token, "refresh"))

        result = self.runner.invoke(cli, ["auth", "status"])

        assert result.exit_code == 0
        assert "Authenticated" in result.output
        assert f"{token[:20]}..." in result.output
        assert token not in result.output

    def test_logout(self):
        self.store.save_tokens(TokenSet("access"))

        result = self.runner.invoke(cli, ["auth", "logout"])

        assert result.exit_code == 0
        assert not os.path.exists(self.store.token_path)

    def test_login_success(self):
        with patch("cdrive.cli.LoginOrchestrator") as orchestrator, \
                patch("cdrive.cli.DriveClient") as client_cls:
            orchestrator.return_value.run.return_value = TokenSet("a", "r", "Bearer", 3600)
            client_cls.return_value.get_user_name.return_value = "Ada Lovelace"
            result = self.runner.invoke(cli, ["auth", "login"])

        assert result.exit_code == 0
        assert "Authentication successful" in result.output
        assert "Logged in as Ada Lovelace on Google Drive." in result.output
        orchestrator.return_value.run.assert_called_once_with(headless=False)

    def test_login_alias_no_browser(self):
        with patch("cdrive.cli.LoginOrchestrator") as orchestrator, \
                patch("cdrive.cli.DriveClient"):
            orchestrator.return_value.run.return_value = TokenSet("a")
            result = self.runner.invoke(cli, ["login", "--no-browser"])

        assert result.exit_code == 0
        orchestrator.return_value.run.assert_called_once_with(headless=True)

    def test_login_without_user_name(self):
        with patch("cdrive.cli.LoginOrchestrator") as orchestrator, \
                patch("cdrive.cli.DriveClient") as client_cls:
            orchestrator.return_value.run.return_value = TokenSet("a")
            client_cls.return_value.get_user_name.return_value = None
            result = self.runner.invoke(cli, ["auth", "login"])

        assert result.exit_code == 0
        assert "Logged in to Google Drive" in result.output
        assert "Logged in as" not in result.output

    def test_login_when_drive_client_fails(self):
        with patch("cdrive.cli.LoginOrchestrator") as orchestrator, \
                patch("cdrive.cli.DriveClient", side_effect=NotAuthenticatedError()):
            orchestrator.return_value.run.return_value = TokenSet("a")
            result = self.runner.invoke(cli, ["login"])

        assert result.exit_code == 0
        assert "Logged in to Google Drive" in result.output

    def test_invalid_redirect_port(self):
        with patch.dict(os.environ, {"CDRIVE_REDIRECT_PORT": "abc"}):
            result = self.runner.invoke(cli, ["auth", "status"])

        assert result.exit_code == 1
        assert "CDRIVE_REDIRECT_PORT" in result.output
        assert "'abc'" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_login_port_in_use(self):
        with patch("cdrive.cli.LoginOrchestrator") as orchestrator:
            orchestrator.return_value.run.side_effect = PortUnavailableError(8080)
            result = self.runner.invoke(cli, ["auth", "login"])

        assert result.exit_code == 1
        assert "Port 8080 is already in use" in result.output
        assert "Stop the process" in result.output

    def test_login_cancelled(self):
        with patch("cdrive.cli.LoginOrchestrator") as orchestrator:
            orchestrator.return_value.run.side_effect = LoginCancelledError()
            result = self.runner.invoke(cli, ["auth", "login"])

        assert result.exit_code == 1
        assert "Authentication cancelled." in result.output


class TestDriveCommands(CliTestBase):
    """Tests for list, mkdir, upload and pull."""

    def test_list(self):
        with patch("cdrive.cli.DriveClient") as client_cls:
            client_cls.return_value.list_files.return_value = [
                {"id": "fold1", "name": "Docs", "mimeType": FOLDER_MIME_TYPE},
                {"id": "file1", "name": "a.txt", "mimeType": "text/plain"},
            ]
            result = self.runner.invoke(cli, ["list"])

        assert result.exit_code == 0
        assert "Docs" in result.output
        assert "a.txt" in result.output
        client_cls.return_value.list_files.assert_called_once_with("root")

    def test_list_empty(self):
        with patch("cdrive.cli.DriveClient") as client_cls:
            client_cls.return_value.list_files.return_value = []
            result = self.runner.invoke(cli, ["list", "folder9"])

        assert result.exit_code == 0
        assert "This folder is empty." in result.output

    def test_list_not_logged_in(self):
        result = self.runner.invoke(cli, ["list"])

        assert result.exit_code == 1
        assert "cdrive auth login" in result.output

    def test_list_missing_folder(self):
        error = HttpError(Mock(status=404, reason="Not Found"), b"")
        with patch("cdrive.cli.DriveClient") as client_cls:
            client_cls.return_value.list_files.side_effect = error
            result = self.runner.invoke(cli, ["list", "gone"])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_mkdir(self):
        with patch("cdrive.cli.DriveClient") as client_cls:
            client_cls.return_value.create_folder.return_value = {"id": "new1", "name": "Reports"}
            result = self.runner.invoke(cli, ["mkdir", "Reports"])

        assert result.exit_code == 0
        assert "new1" in result.output
        client_cls.return_value.create_folder.assert_called_once_with("Reports", "root")

    def test_upload_prints_download_link(self):
        with self.runner.isolated_filesystem():
            with open("a.txt", "w") as f:
                f.write("hello")
            with patch("cdrive.cli.DriveClient") as client_cls:
                client_cls.return_value.upload_file.return_value = {"id": "up1", "name": "a.txt"}
                result = self.runner.invoke(cli, ["upload", "a.txt", "folder1"])

        assert result.exit_code == 0
        assert "https://drive.google.com/uc?export=download&id=up1" in result.output
        client_cls.return_value.upload_file.assert_called_once_with(
            "a.txt", "folder1", progress=ANY
        )

    def test_pull_by_id_uses_drive_name(self):
        with self.runner.isolated_filesystem():
            with patch("cdrive.cli.DriveClient") as client_cls:
                client_cls.return_value.get_file_name.return_value = "doc.txt"
                result = self.runner.invoke(cli, ["pull", "abc"])

        assert result.exit_code == 0
        client_cls.return_value.download_file.assert_called_once_with(
            "abc", "doc.txt", progress=ANY
        )

    def test_pull_into_missing_directory(self):
        self.store.save_tokens(TokenSet("access", "refresh"))
        with patch("cdrive.client.base.build"):
            result = self.runner.invoke(cli, ["pull", "abc", "/nonexistent/dir/out"])

        assert result.exit_code == 1
        assert "Download failed" in result.output
        assert "/nonexistent/dir/out" in result.output
        assert isinstance(result.exception, SystemExit)
        assert "Traceback" not in result.output

    def test_network_error(self):
        with patch("cdrive.cli.DriveClient") as client_cls:
            client_cls.return_value.list_files.side_effect = TransportError("unreachable")
            result = self.runner.invoke(cli, ["list"])

        assert result.exit_code == 1
        assert "List failed: Network error: unreachable" in result.output
        assert isinstance(result.exception, SystemExit)

class TestBrowseDrive:
    """Tests for the interactive pull browser."""

    def test_enter_folder_go_back_and_pick(self):
        folder = {"id": "f1", "name": "Docs", "mimeType": FOLDER_MIME_TYPE}
        root_file = {"id": "r1", "name": "root.txt", "mimeType": "text/plain"}
        inner_file = {"id": "i1", "name": "inner.txt", "mimeType": "text/plain"}
        client = Mock()
        client.list_files.side_effect = lambda folder_id: {
            "root": [folder, root_file],
            "f1": [inner_file],
        }[folder_id]
        prompter = Mock()
        # open Docs, choose ".. (back)", then pick root.txt
        prompter.choose.side_effect = [0, 1, 1]

        assert browse_drive(client, prompter) == root_file
        assert [c.args[0] for c in client.list_files.call_args_list] == ["root", "f1", "root"]

    def test_quit(self):
        client = Mock()
        client.list_files.return_value = [{"id": "r1", "name": "a", "mimeType": "text/plain"}]
        prompter = Mock()
        prompter.choose.return_value = None

        assert browse_drive(client, prompter) is None

    def test_empty_root(self):
        client = Mock()
        client.list_files.return_value = []
        prompter = Mock()

        assert browse_drive(client, prompter) is None
        prompter.choose.assert_not_called()
