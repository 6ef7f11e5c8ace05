"""Terminal output and operator input for cdrive, built on rich."""

from typing import List, Optional

from rich.console import Console
from rich.prompt import Prompt
from rich.text import Text

console = Console(highlight=False)


def _tagged(tag: str, style: str, message: str) -> Text:
    return Text.assemble((tag, style), " ", message)


def print_success(message: str) -> None:
    console.print(_tagged("[+]", "green", message))


def print_error(message: str) -> None:
    console.print(_tagged("[!]", "red", message))


def print_warning(message: str) -> None:
    console.print(_tagged("[!]", "yellow", message))


def print_info(message: str) -> None:
    console.print(_tagged("[i]", "blue", message))


def print_step(message: str) -> None:
    console.print(_tagged("[*]", "cyan", message))


def print_header(title: str) -> None:
    console.print()
    console.print(Text(title, style="bold"))


class ConsolePrompter:
    """
    Reads operator input for interactive commands.

    Every method treats EOF and Ctrl-C as the operator backing out and
    returns a falsy value instead of raising.
    """

    def __init__(self, output: Optional[Console] = None) -> None:
        self.console = output or console

    def acknowledge(self, message: str) -> bool:
        """Wait for Enter. False if the operator aborted."""
        try:
            self.console.input(message)
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return False
        return True

    def ask(self, message: str, password: bool = False) -> Optional[str]:
        """Read one line, stripped. None if the operator aborted."""
        try:
            return self.console.input(message, password=password).strip()
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None

    def choose(self, question: str, options: List[str]) -> Optional[int]:
        """Numbered menu. Returns the zero-based choice, or None for quit."""
        self.console.print(Text.assemble(("? ", "cyan"), (question, "bold")))
        for number, option in enumerate(options, start=1):
            self.console.print(f"  {number}. {option}", markup=False)
        choices = [str(number) for number in range(1, len(options) + 1)] + ["q"]
        try:
            answer = Prompt.ask(
                "Select an option (q to quit)",
                choices=choices,
                default="1",
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None
        if answer == "q":
            return None
        return int(answer) - 1
