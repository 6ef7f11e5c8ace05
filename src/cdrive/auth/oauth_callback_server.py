"""
OAuth Callback Server for cdrive.

Serves the loopback redirect endpoint used by `cdrive auth login`. Each login
attempt gets one RedirectListener: the socket is bound and listening before
`start()` returns, a uvicorn server answers requests from a single background
thread, and the first request resolves a one-shot outcome. The server shuts
down as soon as that outcome is known, so a stale tab or a replayed redirect
can never deliver a second code.
"""

import asyncio
import concurrent.futures
import logging
import os
import socket
import threading
from typing import Optional
from urllib.parse import unquote

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from .models import (
    AcceptFailed,
    BindFailed,
    Cancelled,
    CapturedCode,
    CodeCaptured,
    ListenerOutcome,
    NoCodeInCallback,
    Timeout,
)
from ..utils.errors import PortUnavailableError

logger = logging.getLogger(__name__)

CODE_MARKER = "code="
_CODE_TERMINATORS = ("&", " ")
_PARAM_BOUNDARIES = "?&/#;"

_HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
_LISTEN_BACKLOG = 3
_SHUTDOWN_JOIN_TIMEOUT = 5.0


SUCCESS_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>cdrive Authentication</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
            text-align: center;
            margin-top: 50px;
            background: #f5f5f5;
        }
        .container {
            background: #d4edda;
            border: 1px solid #c3e6cb;
            border-radius: 5px;
            padding: 20px;
            margin: 20px auto;
            max-width: 500px;
        }
        h1 { color: #4285f4; font-size: 2em; }
        p { color: #666; font-size: 1.1em; margin: 20px; }
    </style>
</head>
<body>
    <div class="container">
        <h1>&#10004; Authentication Successful!</h1>
        <p>You can now close this window and return to your terminal.</p>
        <p>The cdrive CLI will finish signing you in.</p>
    </div>
</body>
</html>
"""

FAILURE_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>cdrive Authentication</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
            text-align: center;
            margin-top: 50px;
            background: #f5f5f5;
        }
        .container {
            background: #fff5f5;
            border: 1px solid #ee5a5a;
            border-radius: 5px;
            padding: 20px;
            margin: 20px auto;
            max-width: 500px;
        }
        h1 { color: #ee5a5a; font-size: 2em; }
        p { color: #666; font-size: 1.1em; margin: 20px; }
    </style>
</head>
<body>
    <div class="container">
        <h1>&#10060; Authentication Failed</h1>
        <p>No authorization code was received.</p>
        <p>Return to your terminal and run 'cdrive auth login' again.</p>
    </div>
</body>
</html>
"""


def extract_code(text: str) -> str:
    """
    Pull the authorization code out of a request line or a redirected URL.

    The parse is permissive: the first `code=` that starts a
    parameter (after `?`, `&`, `/`, `#`, `;` or whitespace) is taken up to the next
    `&`, space or the end of the string, so it works on
    `GET /?code=...&state=... HTTP/1.1`, on a pasted URL with the code in the
    query or the fragment, and on `code=...` alone.

    Returns:
        The percent-decoded code, or "" if there is none.
    """
    text = text.strip()
    start = text.find(CODE_MARKER)
    while start != -1:
        before = text[start - 1] if start else ""
        if not before or before in _PARAM_BOUNDARIES or before.isspace():
            break
        start = text.find(CODE_MARKER, start + 1)
    if start == -1:
        return ""

    value = text[start + len(CODE_MARKER):]
    for terminator in _CODE_TERMINATORS:
        end = value.find(terminator)
        if end != -1:
            value = value[:end]
    return unquote(value)


def _request_line(request: Request) -> str:
    """Rebuild the HTTP request line as it arrived on the wire."""
    target = request.scope.get("raw_path") or request.url.path.encode("latin-1")
    query = request.scope.get("query_string") or b""
    if query:
        target = target + b"?" + query
    version = request.scope.get("http_version", "1.1")
    return f"{request.method} {target.decode('latin-1')} HTTP/{version}"


def _page(html: str) -> HTMLResponse:
    return HTMLResponse(content=html, status_code=200, headers={"Connection": "close"})


class RedirectListener:
    """
    Single-use loopback HTTP endpoint for the OAuth redirect.

    Usage:
        listener = RedirectListener(port)
        listener.start()                # binds or raises PortUnavailableError
        outcome = listener.await_callback()
        # listener is closed once await_callback() returns
    """

    def __init__(self, port: int, host: str = "127.0.0.1") -> None:
        self.host = host
        self.port = port
        self.app = FastAPI()
        self.server: Optional[uvicorn.Server] = None
        self.server_thread: Optional[threading.Thread] = None
        self._socket: Optional[socket.socket] = None
        self._outcome: "concurrent.futures.Future[ListenerOutcome]" = concurrent.futures.Future()

        self._setup_callback_route()

    def _setup_callback_route(self) -> None:
        """Route every method and path to the callback handler."""

        @self.app.api_route("/{path:path}", methods=_HTTP_METHODS)
        async def oauth_callback(request: Request) -> HTMLResponse:
            """Handle the OAuth redirect from Google."""
            if self._outcome.done():
                logger.warning(
                    f"Ignoring extra request to {request.url.path}; callback already handled"
                )
                return _page(self._page_for(self._outcome.result()))

            request_line = _request_line(request)
            code = extract_code(request_line)
            if code:
                outcome: ListenerOutcome = CodeCaptured(CapturedCode(code))
                logger.info(f"OAuth callback: received code on {request.url.path}")
            else:
                outcome = NoCodeInCallback(request_line=f"{request.method} {request.url.path}")
                logger.error(f"OAuth callback: no authorization code in request to {request.url.path}")

            self._resolve(outcome)
            self._request_shutdown()
            return _page(self._page_for(self._outcome.result()))

    @staticmethod
    def _page_for(outcome: ListenerOutcome) -> str:
        return SUCCESS_HTML if isinstance(outcome, CodeCaptured) else FAILURE_HTML

    @property
    def is_running(self) -> bool:
        return self.server_thread is not None and self.server_thread.is_alive()

    def _resolve(self, outcome: ListenerOutcome) -> bool:
        """Set the outcome unless one is already set. Returns True if this call set it."""
        try:
            self._outcome.set_result(outcome)
        except concurrent.futures.InvalidStateError:
            return False
        logger.debug(f"Redirect listener outcome: {type(outcome).__name__}")
        return True

    def _request_shutdown(self) -> None:
        if self.server is not None:
            self.server.should_exit = True

    def start(self) -> None:
        """
        Bind the redirect port and start serving in a background thread.

        The socket is listening when this returns, so a browser opened right
        afterwards cannot hit "connection refused".

        Raises:
            PortUnavailableError: If the port cannot be bound.
            RuntimeError: If the listener was already started.
        """
        if self.server_thread is not None:
            raise RuntimeError("RedirectListener can only be started once")

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if os.name == "posix":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(_LISTEN_BACKLOG)
        except OSError as e:
            sock.close()
            logger.error(f"Cannot bind redirect listener on {self.host}:{self.port}: {e}")
            raise PortUnavailableError(self.port, e.strerror or str(e)) from e

        self._socket = sock
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            log_level="warning",
            access_log=False,
            lifespan="off",
        )
        self.server = uvicorn.Server(config)
        self.server_thread = threading.Thread(
            target=self._run_server, name="cdrive-redirect-listener", daemon=True
        )
        self.server_thread.start()
        logger.info(f"Redirect listener started on {self.host}:{self.port}")

    def _run_server(self) -> None:
        """Run the server in the listener thread."""
        assert self.server is not None and self._socket is not None
        try:
            asyncio.run(self.server.serve(sockets=[self._socket]))
        except (Exception, SystemExit) as e:
            reason = str(e) or type(e).__name__
            if self.server.started:
                logger.error(f"Redirect listener error: {reason}", exc_info=True)
                self._resolve(AcceptFailed(reason))
            else:
                logger.error(f"Redirect listener failed to start: {reason}")
                self._resolve(BindFailed(reason))
        finally:
            self._resolve(AcceptFailed("callback server stopped before a request arrived"))

    def await_callback(self, timeout: Optional[float] = None) -> ListenerOutcome:
        """
        Block until the first callback, a server failure, cancellation or timeout.

        The listener is closed (thread joined, socket released) before this
        returns, on every path including KeyboardInterrupt.

        Args:
            timeout: Maximum wait in seconds; None waits indefinitely.
        """
        if self.server_thread is None:
            raise RuntimeError("start() must be called before await_callback()")

        try:
            try:
                outcome = self._outcome.result(timeout=timeout)
            except concurrent.futures.TimeoutError:
                self._resolve(Timeout(timeout))
                outcome = self._outcome.result()
        finally:
            self.close()
        return outcome

    def cancel(self, reason: str = "cancelled") -> bool:
        """Resolve the wait as Cancelled, unless a callback already arrived."""
        cancelled = self._resolve(Cancelled(reason))
        self._request_shutdown()
        return cancelled

    def close(self) -> None:
        """Stop the server, join its thread and release the socket. Idempotent."""
        self.cancel("listener closed before a callback arrived")

        if self.server_thread is not None and self.server_thread.is_alive():
            self.server_thread.join(timeout=_SHUTDOWN_JOIN_TIMEOUT)
            if self.server_thread.is_alive():
                logger.warning("Redirect listener thread did not stop in time")

        if self._socket is not None:
            self._socket.close()
            logger.debug(f"Redirect listener on port {self.port} closed")

    def __enter__(self) -> "RedirectListener":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
