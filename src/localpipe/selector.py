# selector.py
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import click


@dataclass(frozen=True)
class Choice:
    label: str
    value: Any


# given a prompt and >1 candidates, return exactly one or None ("none selected")
Selector = Callable[[str, Sequence[Choice]], Optional[Choice]]


def prompt_selector(prompt: str, choices: Sequence[Choice]) -> Optional[Choice]:
    """Numbered terminal menu. 0, Ctrl-C or Ctrl-D selects nothing."""
    click.echo(prompt)
    for i, choice in enumerate(choices, start=1):
        click.echo(f"  {i}) {choice.label}")
    click.echo("  0) cancel")
    try:
        index = click.prompt(
            "Selection",
            type=click.IntRange(0, len(choices)),
            default=1,
            show_default=True,
        )
    except click.Abort:
        return None
    return choices[index - 1] if index else None


def first_selector(prompt: str, choices: Sequence[Choice]) -> Optional[Choice]:
    return choices[0] if choices else None


def no_selector(prompt: str, choices: Sequence[Choice]) -> Optional[Choice]:
    return None


def default_selector() -> Selector:
    """Interactive menu on a terminal, otherwise select nothing."""
    return prompt_selector if sys.stdin.isatty() else no_selector
