"""
Interactive OAuth login for cdrive.

This module runs the authorization-code flow behind `cdrive auth login`:

- build the authorization URL,
- either serve the loopback redirect while the browser handles consent, or
  (headless) read the redirected URL pasted by the user,
- exchange the single captured code for tokens and store them.

LoginOrchestrator is a small state machine. It keeps one RedirectListener per
attempt, starts it only after the user is ready, opens the browser only after
the socket is listening, and always closes the listener before it leaves.
"""

import logging
import webbrowser
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import urlencode, quote

from .credential_store import CredentialStore, get_credential_store
from .models import (
    AuthorizationRequest,
    BindFailed,
    Cancelled,
    CapturedCode,
    ClientCredentials,
    CodeCaptured,
    ListenerOutcome,
    NoCodeInCallback,
    Timeout,
    TokenSet,
)
from .oauth_callback_server import RedirectListener, extract_code
from .oauth_config import OAuthConfig, get_oauth_config, is_ssh_session
from .token_exchange import TokenExchanger
from ..console import (
    ConsolePrompter,
    console,
    print_info,
    print_step,
    print_success,
    print_warning,
)
from ..utils.errors import (
    AcceptFailedError,
    CallbackTimeoutError,
    CDriveError,
    ClientCredentialsError,
    LoginCancelledError,
    LoginError,
    NoCodeInCallbackError,
    PortUnavailableError,
)

logger = logging.getLogger(__name__)

CREDENTIAL_OPTIONS: List[str] = [
    "I have OAuth2 credentials (client_id and client_secret)",
    "I need help setting up OAuth2 credentials",
    "Exit",
]

CREDENTIAL_HELP = [
    "1. Go to: https://console.cloud.google.com/",
    "2. Create a new project or select an existing one",
    "3. Enable the Google Drive API:",
    "   - Navigate to APIs & Services > Library",
    "   - Search for 'Google Drive API' and enable it",
    "4. Create OAuth2 credentials:",
    "   - Go to APIs & Services > Credentials",
    "   - Click 'Create Credentials' > 'OAuth 2.0 Client IDs'",
    "   - Choose 'Desktop application'",
    "   - Add redirect URI: {redirect_uri}",
    "5. Download the credentials JSON file",
    "",
    "Tip: Look for 'client_id' and 'client_secret' in the downloaded JSON,",
    "or save the whole file as {client_secrets_path}",
]


class LoginState(Enum):
    IDLE = "idle"
    AWAITING_USER_ACKNOWLEDGEMENT = "awaiting_user_acknowledgement"
    SERVER_STARTING = "server_starting"
    WAITING_FOR_CALLBACK = "waiting_for_callback"
    CODE_RECEIVED = "code_received"
    EXCHANGING_TOKEN = "exchanging_token"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


def build_authorization_url(
    auth_uri: str, client_id: str, redirect_uri: str, scope: str
) -> str:
    """
    Build the consent URL for the authorization-code flow.

    Every value is percent-encoded exactly once (spaces as %20, '/' and ':'
    escaped), and the parameter order is fixed so equal inputs give equal URLs.
    """
    params = [
        ("client_id", client_id),
        ("redirect_uri", redirect_uri),
        ("scope", scope),
        ("response_type", "code"),
        ("access_type", "offline"),
        ("prompt", "consent"),
    ]
    return f"{auth_uri}?{urlencode(params, quote_via=quote, safe='')}"


def open_browser(url: str) -> bool:
    """Best-effort launch of the default browser. Never raises."""
    try:
        opened = webbrowser.open(url, new=2)
    except webbrowser.Error as e:
        logger.warning(f"Browser launch failed: {e}")
        return False
    if not opened:
        logger.warning("No runnable browser found")
    return opened


class LoginOrchestrator:
    """
    Runs one `cdrive auth login` attempt.

    Collaborators are injectable so the flow can run without a terminal,
    a browser or Google.
    """

    def __init__(
        self,
        config: Optional[OAuthConfig] = None,
        store: Optional[CredentialStore] = None,
        exchanger: Optional[TokenExchanger] = None,
        prompter: Optional[ConsolePrompter] = None,
        browser_opener: Callable[[str], bool] = open_browser,
        listener_factory: Callable[..., RedirectListener] = RedirectListener,
    ) -> None:
        self.config = config or get_oauth_config()
        self.store = store or get_credential_store()
        self.exchanger = exchanger or TokenExchanger(self.config.token_uri)
        self.prompter = prompter or ConsolePrompter()
        self.browser_opener = browser_opener
        self.listener_factory = listener_factory

        self.state = LoginState.IDLE
        self.failure_reason: Optional[str] = None
        self.authorization_request: Optional[AuthorizationRequest] = None

    def _transition(self, state: LoginState) -> None:
        logger.debug(f"Login state: {self.state.name} -> {state.name}")
        self.state = state

    def run(self, headless: bool = False) -> TokenSet:
        """
        Execute the login and return the stored TokenSet.

        Args:
            headless: Skip the browser and the local listener; read the
                redirected URL from the terminal instead.

        Raises:
            LoginCancelledError: The operator declined or pressed Ctrl-C.
            CDriveError: Any other terminal failure (see utils.errors).
        """
        if self.state is not LoginState.IDLE:
            raise RuntimeError("A LoginOrchestrator runs a single login attempt")

        try:
            client = self._load_client_credentials()
            request = self.build_authorization_request(client)
            self._transition(LoginState.AWAITING_USER_ACKNOWLEDGEMENT)

            if headless:
                code = self._capture_code_headless(request)
            else:
                code = self._capture_code_with_listener(request)

            self._transition(LoginState.CODE_RECEIVED)
            print_success("Authorization code received")

            self._transition(LoginState.EXCHANGING_TOKEN)
            print_step("Exchanging authorization code for access tokens...")
            tokens = self.exchanger.exchange(code.value, self.config.redirect_uri, client)

            if not self.store.save_tokens(tokens):
                raise LoginError(
                    "Failed to save tokens",
                    hint=f"Check that {self.config.config_dir} is writable, then log in again.",
                )
            self._transition(LoginState.DONE)
            logger.info("Login complete")
            return tokens

        except LoginCancelledError as e:
            self.failure_reason = e.message
            self._transition(LoginState.CANCELLED)
            raise
        except KeyboardInterrupt:
            self.failure_reason = "interrupted"
            self._transition(LoginState.CANCELLED)
            raise LoginCancelledError() from None
        except CDriveError as e:
            self.failure_reason = e.message
            self._transition(LoginState.FAILED)
            raise

    def build_authorization_request(self, client: ClientCredentials) -> AuthorizationRequest:
        """Build this attempt's AuthorizationRequest."""
        url = build_authorization_url(
            self.config.auth_uri,
            client.client_id,
            self.config.redirect_uri,
            self.config.scope,
        )
        self.authorization_request = AuthorizationRequest(
            authorization_url=url,
            expected_redirect_port=self.config.port,
            scope=self.config.scope,
            client_id=client.client_id,
        )
        return self.authorization_request

    def _load_client_credentials(self) -> ClientCredentials:
        client = self.store.load_client_credentials()
        if client is None:
            client = self._interactive_credential_setup()

        if not client.is_plausible():
            raise ClientCredentialsError(
                "Invalid or missing client_id/client_secret. Please check your credentials."
            )
        print_success("Client credentials loaded successfully")
        return client

    def _interactive_credential_setup(self) -> ClientCredentials:
        """Ask for client credentials when none are configured."""
        choice = self.prompter.choose(
            "How would you like to authenticate Google Drive?", CREDENTIAL_OPTIONS
        )
        if choice is None or choice == 2:
            raise LoginCancelledError()

        if choice == 1:
            console.print()
            print_info("Setting up Google Drive OAuth2 credentials:")
            console.print()
            for line in CREDENTIAL_HELP:
                console.print(
                    line.format(
                        redirect_uri=self.config.redirect_uri,
                        client_secrets_path=self.config.client_secrets_path,
                    ),
                    markup=False,
                )
            raise LoginCancelledError(
                "OAuth2 credentials are not set up yet.",
                hint="After setup, run 'cdrive auth login' again.",
            )

        client_id = self.prompter.ask("? Client ID: ")
        if client_id is None:
            raise LoginCancelledError()
        client_secret = self.prompter.ask("? Client Secret: ", password=True)
        if client_secret is None:
            raise LoginCancelledError()

        client = ClientCredentials(client_id=client_id, client_secret=client_secret)
        if not client.is_plausible():
            raise ClientCredentialsError("Invalid credentials. Please check your input.")
        if not self.store.save_client_credentials(client):
            raise ClientCredentialsError("Error creating credentials file")
        print_success("Credentials saved successfully!")
        return client

    def _capture_code_headless(self, request: AuthorizationRequest) -> CapturedCode:
        """Print the URL and read the redirected URL back from the user."""
        print_warning("Running in headless mode. Please follow the instructions below.")
        console.print()
        print_info("1. Open the following URL in your browser:")
        console.print(request.authorization_url, markup=False, soft_wrap=True)
        console.print()
        print_info(
            "2. After authenticating, you will be redirected to a URL that looks like "
            f"'{self.config.redirect_uri}?code=...'."
        )
        print_info(
            "3. Copy the entire redirected URL from your browser's address bar and paste it below."
        )
        console.print()

        pasted = self.prompter.ask("? Enter the redirected URL: ")
        if pasted is None:
            raise LoginCancelledError()

        code = extract_code(pasted)
        if not code:
            raise NoCodeInCallbackError(headless=True)
        return CapturedCode(code)

    def _capture_code_with_listener(self, request: AuthorizationRequest) -> CapturedCode:
        """Serve the redirect endpoint while the user consents in the browser."""
        self._print_ssh_hint()

        print_warning("First, authenticate in your web browser")
        if not self.prompter.acknowledge(
            "Press Enter to open Google's authorization page in your browser..."
        ):
            raise LoginCancelledError()

        self._transition(LoginState.SERVER_STARTING)
        print_step(f"Starting local server on port {self.config.port}...")
        listener = self.listener_factory(self.config.port, self.config.redirect_host)
        listener.start()

        try:
            self._transition(LoginState.WAITING_FOR_CALLBACK)
            self._launch_browser(request.authorization_url)
            with console.status("Waiting for authentication callback..."):
                outcome = listener.await_callback(timeout=self.config.login_timeout)
        finally:
            listener.close()

        return self._code_from_outcome(outcome)

    def _launch_browser(self, url: str) -> None:
        print_success("Opening browser...")
        if not self.browser_opener(url):
            print_warning(
                "Could not automatically open browser. "
                "Please copy the URL below and paste it into your browser manually."
            )
        else:
            print_info("If the browser did not open, visit this URL:")
        console.print(url, markup=False, soft_wrap=True)

    def _print_ssh_hint(self) -> None:
        if not is_ssh_session():
            return
        port = self.config.port
        console.print()
        print_warning("It looks like you're running in an SSH session.")
        print_info(
            f"For browser authentication to work, you must forward port {port} from your "
            "local machine to this server when you connect via SSH:"
        )
        console.print(f"  $ {self.config.ssh_forwarding_command()}", markup=False)
        print_info("If you have already done this, you can proceed.")
        print_info("Otherwise exit (Ctrl+C), reconnect with the command above, or use --no-browser.")
        console.print()

    def _code_from_outcome(self, outcome: ListenerOutcome) -> CapturedCode:
        if isinstance(outcome, CodeCaptured):
            return outcome.code
        if isinstance(outcome, NoCodeInCallback):
            raise NoCodeInCallbackError()
        if isinstance(outcome, Timeout):
            raise CallbackTimeoutError(outcome.seconds)
        if isinstance(outcome, Cancelled):
            raise LoginCancelledError()
        if isinstance(outcome, BindFailed):
            raise PortUnavailableError(self.config.port, outcome.reason)
        raise AcceptFailedError(outcome.reason)


def login(headless: bool = False) -> TokenSet:
    """Run `cdrive auth login` with the default collaborators."""
    return LoginOrchestrator().run(headless=headless)
