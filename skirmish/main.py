"""
Main entry point for the skirmish combat engine.

Loads the party and adversary records from the data directory, then runs an
encounter turn by turn with rich output. Party members are driven by the
same decision rules as the adversaries unless `--interactive` is given.

With `--describe`, the first party member's free-text action is classified
by the action validator and its skill checks are printed before the fight.
"""

import argparse
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from .character.combatant import Combatant
from .checks.action_validator import validate_action
from .combat.calculations import DEFAULT_ITEM, resolve_item
from .combat.combat_manager import CombatEngine
from .combat.combat_session import ActionOutcome, CombatSession, EngineConfig
from .combat.npc_ai import choose_action, get_available_actions
from .core.constants import ActionType, Side
from .core.content import ContentRepository
from .core.dice_parser import DiceRoller
from .core.logging import get_logger, setup_logging
from .core.sheets import (
    print_action_outcome,
    print_combat_summary,
    print_combatant_sheet,
    print_turn_order,
    print_validation_result,
)
from .core.utils import cprint, crule

if TYPE_CHECKING:
    from .ui.cli_interface import PlayerInterface

# Get the path to the data folder.
DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# Safety net for encounters without a round limit.
DEFAULT_TURN_LIMIT = 500


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skirmish",
        description="Run a tabletop combat encounter.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help="directory holding party.json, adversaries.json and scenes.json",
    )
    parser.add_argument("--scene", default=None, help="name of the scene to fight in")
    parser.add_argument("--seed", type=int, default=None, help="seed for reproducible dice")
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="choose the actions of the party members",
    )
    parser.add_argument(
        "--max-rounds",
        type=int,
        default=None,
        help="end the encounter as a draw after this many rounds",
    )
    parser.add_argument(
        "--describe",
        default=None,
        metavar="TEXT",
        help="validate a free-text action of the first party member",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def _party_actions(member: Combatant, session: CombatSession) -> list[ActionType]:
    actions = get_available_actions(member, session)
    if member.items and ActionType.ITEM not in actions:
        actions.insert(-1, ActionType.ITEM)
    allies = [c for c in session.living(member.side) if c.id != member.id]
    if allies and not member.is_on_cooldown(ActionType.TEAM_UP):
        actions.insert(-1, ActionType.TEAM_UP)
    return actions


def _needs_target_choice(action: ActionType, extra: dict[str, str]) -> bool:
    if action == ActionType.ITEM:
        return resolve_item(extra.get("item"))[1].damages
    if action == ActionType.SPELL:
        return extra.get("spell_type") != "healing"
    return action.needs_target


def _ask_party_action(
    engine: CombatEngine,
    session: CombatSession,
    member: Combatant,
    ui: "PlayerInterface",
) -> ActionOutcome:
    """Asks the player for an action until one is executed."""
    while True:
        action = ui.choose_action(member, _party_actions(member, session))
        if action is None or action == "q":
            return engine.execute_action(session, member.id, ActionType.DEFEND)
        assert isinstance(action, ActionType)
        extra: dict[str, str] = {}
        if action == ActionType.SPELL:
            spell = ui.choose_spell(list(member.capabilities.spell_types))
            if spell is None:
                continue
            extra["spell_type"] = spell
        if action == ActionType.ITEM:
            extra["item"] = member.find_healing_item() or (member.items[0] if member.items else DEFAULT_ITEM)
        target_id: Optional[str] = None
        if _needs_target_choice(action, extra):
            target = ui.choose_target(session.living(member.side.opposite))
            if not isinstance(target, Combatant):
                continue
            target_id = target.id
        outcome = engine.execute_action(session, member.id, action, target_id, extra)
        if outcome.success:
            return outcome
        print_action_outcome(outcome)


def run_encounter(
    engine: CombatEngine,
    session: CombatSession,
    interactive: bool = False,
) -> CombatSession:
    """
    Plays a session until it reaches a terminal state.

    Args:
        engine (CombatEngine): The engine driving the session.
        session (CombatSession): The active session.
        interactive (bool): Ask the player for the party's actions.

    Returns:
        CombatSession: The finished session.

    """
    ui = None
    if interactive:
        from .ui.cli_interface import PlayerInterface

        ui = PlayerInterface()

    last_round = 0
    for _ in range(DEFAULT_TURN_LIMIT):
        if not session.is_active:
            break
        if session.round != last_round:
            last_round = session.round
            print_turn_order(session)
        start = engine.begin_turn(session)
        for message in start.messages:
            cprint(f"    [dim]{message}[/]")
        if start.skipped or not session.is_active:
            continue
        actor = session.current_combatant
        assert actor is not None
        if actor.side == Side.ADVERSARY:
            outcome = engine.run_adversary_turn(session)
        elif ui is not None:
            outcome = _ask_party_action(engine, session, actor, ui)
        else:
            outcome = engine.execute_request(session, choose_action(actor, session, engine.dice))
        print_action_outcome(outcome)
    else:
        get_logger(__name__).warning(
            "Encounter stopped after %d turns without a winner", DEFAULT_TURN_LIMIT
        )
    return session


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    crule("Skirmish", style="bold green")

    try:
        repo = ContentRepository(args.data_dir)
    except ValueError as e:
        cprint(f"[bold red]Cannot load data:[/] {e}")
        return 1
    encounter = repo.build_encounter(scene=args.scene)

    engine = CombatEngine(
        dice=DiceRoller(seed=args.seed),
        config=EngineConfig(max_rounds=args.max_rounds),
    )
    session = engine.initialize_combat(
        encounter.party,
        encounter.adversaries,
        story_context=encounter.story_context,
    )

    crule("Combatants", style="bold green")
    for combatant in session.combatants:
        print_combatant_sheet(combatant)
    if session.environmental_features:
        cprint(
            "Terrain: "
            + ", ".join(f"[green]{f.name}[/] ({f.effect})" for f in session.environmental_features)
        )
    if session.team_up_opportunities:
        cprint(
            "Team-ups: "
            + ", ".join(f"[cyan]{t.name}[/] ({t.bonus_text})" for t in session.team_up_opportunities)
        )

    party = session.get_side(Side.PARTY)
    if args.describe and party:
        crule("Action Check", style="bold cyan")
        result = validate_action(args.describe, party[0], dice=engine.dice)
        print_validation_result(result)

    crule("Combat", style="bold red")
    run_encounter(engine, session, interactive=args.interactive)
    print_combat_summary(session)
    cprint(session.log[-1] if session.log else "")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
