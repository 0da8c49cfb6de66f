"""
Smoke tests for the command line entry point.
"""

from skirmish.combat.combat_manager import CombatEngine
from skirmish.core.constants import SessionState
from skirmish.main import main, run_encounter


def test_main_runs_an_encounter():
    assert main(["--seed", "3", "--max-rounds", "3"]) == 0


def test_main_with_scene_and_description():
    assert main(["--seed", "7", "--scene", "forest_ambush", "--describe", "I leap over the table"]) == 0


def test_main_reports_missing_data(tmp_path):
    assert main(["--data-dir", str(tmp_path)]) == 1


def test_run_encounter_finishes(fighter, goblin, dice):
    engine = CombatEngine(dice=dice)
    dice.push(19, 1)
    session = engine.initialize_combat([fighter], [goblin])
    run_encounter(engine, session)
    assert session.state in (SessionState.VICTORY, SessionState.DEFEAT, SessionState.DRAW)
