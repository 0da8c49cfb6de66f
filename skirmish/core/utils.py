"""
Shared helpers: the console every module prints through, ability-score
arithmetic and the small pieces of markup used by the sheets.
"""

from typing import Any

from rich.console import Console
from rich.rule import Rule

_console = Console(markup=True, width=120, force_terminal=True, force_jupyter=False)


def cprint(*args: Any, **kwargs: Any) -> None:
    """Prints rich markup on the shared console."""
    _console.print(*args, **kwargs)


def crule(*args: Any, **kwargs: Any) -> None:
    """Prints a horizontal rule; arguments go to `rich.rule.Rule`."""
    _console.print(Rule(*args, **kwargs))


def ccapture(content: Any) -> str:
    """
    Renders `content` on the shared console and returns the text instead
    of printing it. Markup is interpreted, so the result holds ANSI codes
    whenever the console is a terminal.
    """
    with _console.capture() as capture:
        _console.print(content, markup=True, end="")
    return capture.get()


def get_stat_modifier(score: int) -> int:
    """
    Converts an ability score into its modifier.

    Args:
        score (int): The ability score, 10 being average.

    Returns:
        int: floor((score - 10) / 2), so 9 gives -1 and 16 gives +3.

    """
    return (score - 10) // 2


def get_proficiency_bonus(level: int) -> int:
    """+2 for levels 1-4, growing by one every four levels after that."""
    return (max(1, level) - 1) // 4 + 2


def format_modifier(value: int) -> str:
    return f"+{value}" if value >= 0 else str(value)


def hp_color(current: int, maximum: int) -> str:
    """Green above half health, yellow above a quarter, red below."""
    ratio = current / maximum if maximum > 0 else 0.0
    if ratio > 0.5:
        return "green"
    if ratio > 0.25:
        return "yellow"
    return "red"


def make_bar(current: int, maximum: int, length: int = 10, color: str = "white") -> str:
    """
    Draws a gauge such as a health bar in rich markup.

    Args:
        current (int): Filled amount, clamped into [0, maximum].
        maximum (int): Full amount; a non-positive maximum draws an empty bar.
        length (int): Number of cells. Defaults to 10.
        color (str): Style of the filled cells. Defaults to "white".

    Returns:
        str: The markup for the bar.

    """
    filled = 0
    if maximum > 0:
        filled = int(min(max(current, 0), maximum) / maximum * length)
    bar = f"[{color}]{'▮' * filled}[/]"
    if filled < length:
        bar += f"[dim white]{'▯' * (length - filled)}[/]"
    return bar
