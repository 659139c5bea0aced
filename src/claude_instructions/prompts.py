"""Interactive prompts built on typer/click and rendered with rich.

Every prompt raises ``UserCancelled`` when the user aborts it (Ctrl-C or
end of input), so callers can stop before touching the filesystem.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

import click
import typer
from rich.console import Console

from .exceptions import UserCancelled

T = TypeVar("T")

console = Console()


@dataclass(frozen=True)
class Choice:
    """One selectable option."""

    value: str
    label: str
    hint: str | None = None


def _ask(prompt: Callable[[], T]) -> T:
    try:
        return prompt()
    except (typer.Abort, click.exceptions.Abort, EOFError) as e:
        raise UserCancelled("Cancelled by user") from e


def _describe(choice: Choice) -> str:
    return f"{choice.label} [dim]({choice.hint})[/dim]" if choice.hint else choice.label


def select(message: str, choices: Sequence[Choice], default: str | None = None) -> str:
    """Pick exactly one option by number."""
    console.print(f"[bold]{message}[/bold]")
    for index, choice in enumerate(choices, start=1):
        console.print(f"  {index}. {_describe(choice)}")

    values = [c.value for c in choices]
    default_index = values.index(default) + 1 if default in values else 1
    picked = _ask(
        lambda: typer.prompt(
            "Choice",
            default=default_index,
            type=click.IntRange(1, len(choices)),
        ),
    )
    return choices[picked - 1].value


def text(message: str, default: str = "", placeholder: str | None = None) -> str:
    """Free-text input; empty input returns ``default``."""
    label = f"{message} [{placeholder}]" if placeholder else message
    return _ask(lambda: typer.prompt(label, default=default, show_default=bool(default)))


def confirm(message: str, default: bool = True) -> bool:
    return _ask(lambda: typer.confirm(message, default=default))


def parse_selection(raw: str, count: int, initial: Sequence[int]) -> list[int] | None:
    """Parse ``1,3,5``/``all``/``none``/empty into zero-based indexes.

    Returns None when the input is not valid.
    """
    raw = raw.strip().lower()
    if raw == "":
        return list(initial)
    if raw == "all":
        return list(range(count))
    if raw == "none":
        return []

    picked: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part.isdigit() or not 1 <= int(part) <= count:
            return None
        if int(part) - 1 not in picked:
            picked.append(int(part) - 1)
    return sorted(picked)


def multiselect(
    message: str,
    groups: Mapping[str, Sequence[Choice]],
    initial: Sequence[str] = (),
    required: bool = False,
) -> list[str]:
    """Pick any number of options from grouped lists.

    Options are numbered across groups. Enter keeps the pre-checked set.
    """
    flat: list[Choice] = [choice for group in groups.values() for choice in group]
    initial_indexes = [i for i, choice in enumerate(flat) if choice.value in initial]

    console.print(f"[bold]{message}[/bold]")
    number = 1
    for group, choices in groups.items():
        console.print(f"  [cyan]{group}[/cyan]")
        for choice in choices:
            mark = "x" if choice.value in initial else " "
            console.print(f"    \\[{mark}] {number}. {_describe(choice)}")
            number += 1

    while True:
        raw = _ask(
            lambda: typer.prompt(
                "Numbers (comma-separated, 'all', 'none', Enter for checked)",
                default="",
                show_default=False,
            ),
        )
        picked = parse_selection(raw, len(flat), initial_indexes)
        if picked is None:
            console.print("[yellow]Enter numbers from the list, separated by commas.[/yellow]")
            continue
        if required and not picked:
            console.print("[yellow]Select at least one option.[/yellow]")
            continue
        return [flat[i].value for i in picked]
