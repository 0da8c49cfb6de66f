"""
Module for printing combatants, outcomes and checks in a formatted way.
"""

from rich.padding import Padding
from rich.table import Table

from ..character.combatant import Combatant
from ..checks.action_validator import ValidationResult
from ..checks.skill_check import SKILL_ACTIONS, SkillCheckResult
from ..combat.combat_session import ActionOutcome, CombatSession
from ..combat.narrative import summarize_combat
from .constants import ACTION_COOLDOWNS, Ability, DifficultyClass, ValidationType, describe_difficulty
from .utils import cprint, crule, format_modifier


def print_combatant_sheet(combatant: Combatant, padding: int = 0) -> None:
    """
    Prints the details of a combatant in a formatted way.

    Args:
        combatant (Combatant): The combatant to display.
        padding (int): Left padding of the sheet.

    """
    lines = [
        f"{combatant.side.emoji} [{combatant.side.color}]{combatant.name}[/] "
        f"[dim]({combatant.id})[/], [green]{combatant.archetype.display_name} {combatant.level}[/]",
        f"  HP: [green]{combatant.hp}/{combatant.max_hp}[/], "
        f"AC: [yellow]{combatant.effective_armor_class}[/], "
        f"Initiative: [cyan]{combatant.initiative}[/]",
        "  "
        + ", ".join(
            f"{ability.short}: {combatant.abilities.get(ability)} "
            f"({format_modifier(combatant.modifier(ability))})"
            for ability in Ability
        ),
        f"  Damage: [red]{combatant.damage_dice}[/], Spell: [magenta]{combatant.spell_dice}[/]",
    ]
    capabilities = combatant.capabilities
    if capabilities.can_cast:
        lines.append(f"  Spells: [magenta]{', '.join(capabilities.spell_types)}[/]")
    if capabilities.special_attack:
        lines.append(f"  Special: [yellow]{capabilities.special_attack}[/]")
    if combatant.proficiencies:
        lines.append(f"  Proficiencies: {', '.join(sorted(combatant.proficiencies))}")
    if combatant.items:
        lines.append(f"  Items: {', '.join(combatant.items)}")
    if combatant.status_effects:
        lines.append(f"  Status: {' '.join(str(e) for e in combatant.status_effects)}")
    cooldowns = {k: v for k, v in combatant.cooldowns.items() if v > 0}
    if cooldowns:
        lines.append(
            "  Cooldowns: " + ", ".join(f"{k.display_name} ({v})" for k, v in cooldowns.items())
        )
    cprint(Padding("\n".join(lines), (0, 0, 0, padding)))


def print_turn_order(session: CombatSession) -> None:
    """Prints the initiative order, marking the acting combatant."""
    crule(f"Round {session.round}", style="bold yellow")
    current = session.current_combatant
    for combatant in session.combatants:
        marker = "[bold yellow]>[/]" if current is not None and combatant.id == current.id else " "
        cprint(f" {marker} 🎲 {combatant.initiative:3}  {combatant.status_line()}")


def print_action_outcome(outcome: ActionOutcome) -> None:
    """Prints the narrative and the numbers of an executed action."""
    if not outcome.success:
        cprint(f"[bold red]✗[/] {outcome.message}")
        return
    emoji = outcome.action_type.emoji if outcome.action_type else ""
    cprint(f"{emoji} {outcome.message}")
    if outcome.calculation is not None and outcome.calculation.breakdown:
        cprint(f"    [dim]{outcome.calculation.describe()}[/]")
    for effect in outcome.applied_effects:
        cprint(f"    [magenta]+ {effect}[/]")
    for kind in outcome.removed_effects:
        cprint(f"    [green]- {kind.display_name}[/]")


def print_skill_check(result: SkillCheckResult) -> None:
    """Prints a skill check with its degree of success."""
    cprint(f"🎲 {result.degree.colorize(result.describe())}")
    if result.circumstances:
        cprint(f"    [dim]Circumstances: {', '.join(result.circumstances)}[/]")


def print_validation_result(result: ValidationResult) -> None:
    """
    Prints the classification of a described action and, for valid ones,
    every skill check that was rolled.
    """
    color = {
        ValidationType.IMPOSSIBLE: "bold red",
        ValidationType.REDIRECT: "bold yellow",
        ValidationType.EXPAND: "bold cyan",
        ValidationType.VALID: "bold green",
    }[result.classification]
    cprint(f"[{color}]{result.classification.display_name}[/]: {result.response}")
    if result.suggestion:
        cprint(f"  [italic]{result.suggestion}[/]")
    for alternative in result.alternatives:
        cprint(
            f"  • [cyan]{alternative.action}[/] ({alternative.difficulty}): "
            f"{alternative.description}"
        )
    if result.dice_result is not None:
        for check in result.dice_result.checks:
            cprint("  ", end="")
            print_skill_check(check.check)
        outcome = "[green]success[/]" if result.dice_result.overall_success else "[red]failure[/]"
        cprint(f"  Overall: {outcome}")
    if result.encouragement:
        cprint(f"  [green]{result.encouragement}[/]")


def print_combat_summary(session: CombatSession) -> None:
    """Prints the final report of a session."""
    summary = summarize_combat(session)
    crule("Battle Report", style="bold blue")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Combatant")
    table.add_column("Side")
    table.add_column("HP", justify="right")
    table.add_column("Turns", justify="right")
    for combatant in session.combatants:
        table.add_row(
            combatant.name,
            combatant.side.colorize(combatant.side.display_name),
            f"{combatant.hp}/{combatant.max_hp}",
            str(summary.turns_taken.get(combatant.name, 0)),
        )
    cprint(table)
    cprint(
        f"Outcome: [bold]{summary.outcome.display_name}[/] after {summary.rounds} round(s), "
        f"{summary.party_casualties} party and {summary.adversary_casualties} adversary casualties."
    )


def print_skill_actions_reference() -> None:
    """Prints every skill action with its abilities and base difficulty."""
    table = Table(title="Skill Actions", header_style="bold")
    table.add_column("Action")
    table.add_column("Abilities")
    table.add_column("DC", justify="right")
    table.add_column("Difficulty")
    for action, info in SKILL_ACTIONS.items():
        abilities = f"{info.primary.short} / {info.secondary.short}"
        table.add_row(
            action.display_name, abilities, str(info.base_dc), describe_difficulty(info.base_dc)
        )
    cprint(table)


def print_difficulty_reference() -> None:
    cprint("[bold]Difficulty classes[/]:")
    for level in DifficultyClass:
        cprint(f"  {level.value:>2}  {describe_difficulty(level.value)}")


def print_action_types_reference() -> None:
    cprint("[bold]Combat actions[/]:")
    for action_type, cooldown in ACTION_COOLDOWNS.items():
        cprint(f"  {action_type.emoji} {action_type.display_name:<14} cooldown {cooldown}")
