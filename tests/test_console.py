"""Unit tests for terminal prompts."""

import io
import os
import sys
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../src"))

from rich.console import Console

from cdrive.console import ConsolePrompter


class TestConsolePrompter:
    """EOF and Ctrl-C mean the operator backed out."""

    def setup_method(self):
        self.output = io.StringIO()
        self.prompter = ConsolePrompter(Console(file=self.output))

    def test_acknowledge(self):
        with patch("builtins.input", return_value=""):
            assert self.prompter.acknowledge("Press Enter...") is True

    def test_acknowledge_eof(self):
        with patch("builtins.input", side_effect=EOFError):
            assert self.prompter.acknowledge("Press Enter...") is False

    def test_acknowledge_interrupt(self):
        with patch("builtins.input", side_effect=KeyboardInterrupt):
            assert self.prompter.acknowledge("Press Enter...") is False

    def test_ask_strips(self):
        with patch("builtins.input", return_value="  http://localhost:8080/?code=x \n"):
            assert self.prompter.ask("? URL: ") == "http://localhost:8080/?code=x"

    def test_ask_eof(self):
        with patch("builtins.input", side_effect=EOFError):
            assert self.prompter.ask("? URL: ") is None

    def test_choose(self):
        with patch("builtins.input", return_value="2"):
            assert self.prompter.choose("Pick", ["one", "two", "three"]) == 1
        assert "2. two" in self.output.getvalue()

    def test_choose_quit(self):
        with patch("builtins.input", return_value="q"):
            assert self.prompter.choose("Pick", ["one"]) is None
