"""
Terminal output and prompts for dopplervars.

Everything here writes to stderr: stdout carries secret values for
``dopplervars get`` / ``export`` and must stay clean. Honors NO_COLOR and
FORCE_COLOR.
"""

from __future__ import annotations

import os
import sys
from typing import Sequence

import questionary
from questionary import Style as QStyle
from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from dopplervars.resolver.engine import Choice

CI_ENV_VARS = ("CI", "GITHUB_ACTIONS", "JENKINS_URL", "GITLAB_CI", "CIRCLECI", "TRAVIS")

# Nord palette
THEME = Theme(
    {
        "info": "#88C0D0",
        "error": "#BF616A bold",
        "key": "#81A1C1",
        "muted": "#D8DEE9",
    }
)

console = Console(
    theme=THEME,
    stderr=True,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)

PROMPT_STYLE = QStyle(
    [
        ("qmark", "fg:#88C0D0 bold"),
        ("question", "bold"),
        ("pointer", "fg:#88C0D0 bold"),
        ("highlighted", "fg:#81A1C1 bold"),
        ("answer", "fg:#A3BE8C"),
    ]
)


def is_interactive() -> bool:
    """True when a project/config prompt can be answered: a TTY outside CI."""
    if any(os.environ.get(var) for var in CI_ENV_VARS):
        return False
    return sys.stdin is not None and sys.stdin.isatty()


def error(message: str) -> None:
    console.print(f"[error]✗ {message}[/error]", highlight=False)


def info(message: str) -> None:
    console.print(f"[info]ℹ {message}[/info]", highlight=False)


def print_key_value(items: dict[str, str], title: str | None = None) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="key")
    table.add_column()
    for key, value in items.items():
        table.add_row(f"{key}:", value)

    if title:
        console.print(f"[bold]{title}[/bold]")
    console.print(table)


async def select_choice(
    message: str,
    choices: Sequence[Choice],
    initial: int | None = None,
) -> str | None:
    """
    Arrow-key selection over ``choices``, with ``choices[initial]`` highlighted.

    Returns:
        The chosen value, or None when the prompt was aborted (Ctrl-C / Esc)
    """
    q_choices = [questionary.Choice(title=c.title, value=c.value) for c in choices]
    default = q_choices[initial] if initial is not None else None
    return await questionary.select(
        message,
        choices=q_choices,
        default=default,
        style=PROMPT_STYLE,
    ).ask_async()
