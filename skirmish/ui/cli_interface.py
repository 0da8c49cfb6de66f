"""
User interface module for the combat engine.

Provides console-based menus for choosing combat actions, targets, spells
and free-text action descriptions during an interactive session.
"""

from typing import Any, Optional

from prompt_toolkit import ANSI, PromptSession
from rich.table import Table

from ..character.combatant import Combatant
from ..core.constants import ActionType
from ..core.utils import ccapture

# One session keeps the history; created on first use.
_session: Optional[PromptSession] = None


def _get_session() -> PromptSession:
    global _session
    if _session is None:
        _session = PromptSession(erase_when_done=True)
    return _session


class PlayerInterface:
    """
    Command-line interface for party members controlled by a person.

    Shows Rich table menus and reads the answer with prompt_toolkit, using
    numeric shortcuts for entries and 'q' to go back.
    """

    def choose_action(
        self,
        actor: Combatant,
        actions: list[ActionType],
        exit_entry: str | None = "Pass",
    ) -> ActionType | str | None:
        """Choose an action from the actions available to a combatant.

        Args:
            actor (Combatant): The acting combatant, for the cooldown column.
            actions (list[ActionType]): The available actions.
            exit_entry (str | None): Text for the exit option.

        Returns:
            ActionType | str | None: The selected action, "q" for exit, or
            None when nothing can be chosen.

        """
        if not actions:
            return None
        table = Table(title=f"{actor.name}'s actions", pad_edge=False)
        table.add_column("#", style="cyan")
        table.add_column("Action", style="bold")
        table.add_column("Cooldown", justify="right")
        for i, action in enumerate(actions, 1):
            remaining = actor.cooldown_remaining(action)
            table.add_row(
                str(i),
                f"{action.emoji} {action.display_name}",
                f"[red]{remaining}[/]" if remaining else "[green]ready[/]",
            )
        if exit_entry:
            table.add_row()
            table.add_row("q", exit_entry, "")
        return self._ask(ccapture(table), "Action > ", actions)

    def choose_target(
        self,
        targets: list[Combatant],
        exit_entry: str | None = "Back",
    ) -> Combatant | str | None:
        """Choose a target from a list of combatants.

        Args:
            targets (list[Combatant]): The possible targets.
            exit_entry (str | None): Text for the exit option.

        Returns:
            Combatant | str | None: The selected target, "q" for exit, or
            None when there are no targets.

        """
        if not targets:
            return None
        sorted_targets = sorted(targets, key=lambda t: t.name.lower())
        table = Table(title="Targets", pad_edge=False)
        table.add_column("#", style="cyan", no_wrap=True)
        table.add_column("Name", style="bold")
        table.add_column("HP", justify="right")
        table.add_column("AC", justify="right")
        table.add_column("Status")
        for i, target in enumerate(sorted_targets, 1):
            table.add_row(
                str(i),
                target.name,
                f"{target.hp:>3}/{target.max_hp:<3}",
                str(target.effective_armor_class),
                " ".join(str(effect) for effect in target.status_effects),
            )
        if exit_entry:
            table.add_row()
            table.add_row("q", exit_entry, "", "", "")
        return self._ask(ccapture(table), "Target > ", sorted_targets)

    def choose_spell(self, spell_types: list[str]) -> str | None:
        """Choose the kind of spell to cast."""
        if not spell_types:
            return None
        table = Table(title="Spells", pad_edge=False)
        table.add_column("#", style="cyan")
        table.add_column("Spell", style="bold magenta")
        for i, spell in enumerate(spell_types, 1):
            table.add_row(str(i), spell.capitalize())
        table.add_row()
        table.add_row("q", "Back")
        answer = self._ask(ccapture(table), "Spell > ", spell_types)
        return None if answer == "q" else answer

    def describe_action(self, actor: Combatant) -> str:
        """Reads a free-text description of what a combatant attempts."""
        return _get_session().prompt(
            ANSI(f"\nWhat does {actor.name} attempt? (empty to skip)\nDescribe > ")
        ).strip()

    def _ask(self, table: str, question: str, entries: list[Any]) -> Any:
        prompt = "\n" + table + "\n" + question
        while True:
            answer = _get_session().prompt(ANSI(prompt))
            # Keep asking until the user provides a valid input.
            if not answer:
                continue
            index = self.get_digit_choice(answer) - 1
            if 0 <= index < len(entries):
                return entries[index]
            if answer.lower() == "q":
                return "q"

    @staticmethod
    def get_digit_choice(answer: str) -> int:
        """
        Convert a numeric string input to its integer value.

        Args:
            answer (str): User input string to parse.

        Returns:
            int: The integer value, or -1 if invalid input.

        """
        answer = answer.strip() if isinstance(answer, str) else ""
        if answer.isdigit():
            return int(answer)
        return -1
