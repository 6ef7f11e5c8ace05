"""Unit tests for the loopback redirect listener."""

import os
import socket
import sys
import threading
import time

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../src"))

from cdrive.auth.models import (
    Cancelled,
    CodeCaptured,
    NoCodeInCallback,
    Timeout,
)
from cdrive.auth.oauth_callback_server import RedirectListener, extract_code
from cdrive.utils.errors import PortUnavailableError


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def assert_port_released(port: int) -> None:
    """Nothing accepts on the port any more, and it can be bound again."""
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=1).close()
    again = RedirectListener(port)
    again.start()
    again.close()


class TestExtractCode:
    """Tests for the request-line / URL code parser."""

    def test_request_line_with_more_params(self):
        assert extract_code("GET /callback?code=abc123&scope=drive HTTP/1.1") == "abc123"

    def test_request_line_code_last(self):
        assert extract_code("GET /callback?code=abc123 HTTP/1.1") == "abc123"

    def test_code_runs_to_end_of_string(self):
        assert extract_code("http://localhost:8080/callback?code=abc123") == "abc123"

    def test_bare_code_parameter(self):
        assert extract_code("code=xyz") == "xyz"

    def test_missing_code(self):
        assert extract_code("GET /callback?error=access_denied HTTP/1.1") == ""
        assert extract_code("") == ""

    def test_empty_code(self):
        assert extract_code("GET /callback?code=&scope=x HTTP/1.1") == ""

    def test_code_after_other_params(self):
        assert extract_code("GET /callback?state=s1&code=zz HTTP/1.1") == "zz"

    def test_ignores_code_inside_other_param_names(self):
        assert extract_code("GET /callback?mycode=no&code=yes HTTP/1.1") == "yes"
        assert extract_code("GET /callback?mycode=no HTTP/1.1") == ""

    def test_code_in_fragment(self):
        assert extract_code("http://localhost:8080/callback#code=XYZ&state=1") == "XYZ"

    def test_code_after_semicolon(self):
        assert extract_code("GET /callback?x=1;code=XYZ HTTP/1.1") == "XYZ"

    def test_code_after_tab(self):
        assert extract_code("Location:\tcode=XYZ") == "XYZ"

    def test_percent_decodes_value(self):
        url = "http://localhost:8080/callback?code=4%2F0AbCd&scope=x"
        assert extract_code(url) == "4/0AbCd"

    def test_strips_pasted_whitespace(self):
        assert extract_code("  http://localhost:8080/?code=abc&x=1 \n") == "abc"


class TestRedirectListener:
    """Tests for RedirectListener against a real socket."""

    def setup_method(self):
        self.port = free_port()
        self.base = f"http://127.0.0.1:{self.port}"
        self.listener = RedirectListener(self.port)

    def teardown_method(self):
        self.listener.close()

    def test_start_listens_before_returning(self):
        self.listener.start()
        socket.create_connection(("127.0.0.1", self.port), timeout=1).close()

    def test_captures_code(self):
        self.listener.start()
        response = requests.get(f"{self.base}/callback?code=ABCDEF&scope=drive", timeout=5)

        outcome = self.listener.await_callback(timeout=5)

        assert isinstance(outcome, CodeCaptured)
        assert outcome.value == "ABCDEF"
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert response.headers["connection"] == "close"
        assert "Authentication Successful" in response.text

    def test_first_code_wins(self):
        self.listener.start()
        requests.get(f"{self.base}/callback?code=FIRST", timeout=5)
        try:
            requests.get(f"{self.base}/callback?code=SECOND", timeout=5)
        except requests.ConnectionError:
            pass

        outcome = self.listener.await_callback(timeout=5)

        assert isinstance(outcome, CodeCaptured)
        assert outcome.value == "FIRST"
        assert_port_released(self.port)

    def test_accepts_any_method_and_path(self):
        self.listener.start()
        requests.post(f"{self.base}/somewhere/else?code=POSTED", timeout=5)

        outcome = self.listener.await_callback(timeout=5)

        assert isinstance(outcome, CodeCaptured)
        assert outcome.value == "POSTED"

    def test_request_without_code(self):
        self.listener.start()
        response = requests.get(f"{self.base}/callback?error=access_denied", timeout=5)

        outcome = self.listener.await_callback(timeout=5)

        assert isinstance(outcome, NoCodeInCallback)
        assert response.status_code == 200
        assert "Authentication Failed" in response.text

    def test_page_does_not_reflect_request(self):
        self.listener.start()
        payload = "<script>alert(1)</script>"
        response = requests.get(
            f"{self.base}/callback", params={"code": payload}, timeout=5
        )

        outcome = self.listener.await_callback(timeout=5)

        assert outcome.value == payload
        assert payload not in response.text
        assert "alert(1)" not in response.text

    def test_port_in_use(self):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            blocker.bind(("127.0.0.1", self.port))
            blocker.listen(1)

            with pytest.raises(PortUnavailableError) as exc_info:
                self.listener.start()

            assert exc_info.value.port == self.port
            assert str(self.port) in exc_info.value.message
            assert not self.listener.is_running
        finally:
            blocker.close()

    def test_start_twice_is_an_error(self):
        self.listener.start()
        with pytest.raises(RuntimeError):
            self.listener.start()

    def test_timeout_releases_port(self):
        self.listener.start()

        outcome = self.listener.await_callback(timeout=0.2)

        assert isinstance(outcome, Timeout)
        assert outcome.seconds == 0.2
        assert not self.listener.is_running
        assert_port_released(self.port)

    def test_cancel_while_waiting(self):
        self.listener.start()

        def cancel_soon():
            time.sleep(0.2)
            self.listener.cancel("test")

        threading.Thread(target=cancel_soon, daemon=True).start()
        outcome = self.listener.await_callback(timeout=5)

        assert isinstance(outcome, Cancelled)
        assert outcome.reason == "test"
        assert_port_released(self.port)

    def test_cancel_after_capture_keeps_code(self):
        self.listener.start()
        requests.get(f"{self.base}/callback?code=KEEP", timeout=5)
        time.sleep(0.1)

        self.listener.cancel()
        outcome = self.listener.await_callback(timeout=5)

        assert isinstance(outcome, CodeCaptured)
        assert outcome.value == "KEEP"

    def test_close_is_idempotent(self):
        self.listener.start()
        self.listener.close()
        self.listener.close()
        assert not self.listener.is_running

    def test_context_manager_releases_port(self):
        with RedirectListener(free_port()) as listener:
            port = listener.port
            assert listener.is_running
        assert not listener.is_running
        assert_port_released(port)

    def test_ephemeral_port_is_reported(self):
        listener = RedirectListener(0)
        try:
            listener.start()
            assert listener.port != 0
        finally:
            listener.close()
