"""
Tests for the adversary decision rules.
"""

import pytest

from skirmish.character.archetype import Archetype
from skirmish.combat.combat_manager import CombatEngine
from skirmish.combat.combat_session import CombatSession
from skirmish.combat.narrative import extract_environmental_features
from skirmish.combat.npc_ai import choose_action, get_available_actions
from skirmish.core.constants import ActionType, SessionState


@pytest.fixture
def session_with(fighter):
    """Builds an active session of the fighter against the given adversaries."""

    def build(*adversaries, story=""):
        return CombatSession(
            combatants=[fighter, *adversaries],
            state=SessionState.ACTIVE,
            environmental_features=extract_environmental_features(story),
        )

    return build


def test_available_actions(session_with, make):
    boss = make("enemy_boss", archetype=Archetype.BOSS, items=["healing potion"])
    session = session_with(boss, story="in the forest")
    assert get_available_actions(boss, session) == [
        ActionType.ATTACK,
        ActionType.SPECIAL,
        ActionType.ITEM,
        ActionType.ENVIRONMENTAL,
        ActionType.DEFEND,
    ]
    boss.cooldowns[ActionType.SPECIAL] = 1
    assert ActionType.SPECIAL not in get_available_actions(boss, session)


def test_wounded_adversary_drinks_potion(session_with, make, dice):
    """Below 30% HP an adversary with a healing item uses it on itself."""
    goblin = make("enemy_goblin", hp=2, max_hp=8, items=["rope", "healing potion"])
    request = choose_action(goblin, session_with(goblin), dice)
    assert request.action_type == ActionType.ITEM
    assert request.target_id == "enemy_goblin"
    assert request.extra == {"item": "healing potion"}


def test_wounded_adversary_without_items_defends(session_with, make, dice):
    goblin = make("enemy_goblin", hp=2, max_hp=8)
    request = choose_action(goblin, session_with(goblin), dice)
    assert request.action_type == ActionType.DEFEND


def test_wounded_healer_heals_itself(session_with, make, dice):
    shaman = make("enemy_shaman", archetype=Archetype.PRIEST, hp=3, max_hp=10)
    request = choose_action(shaman, session_with(shaman), dice)
    assert request.action_type == ActionType.SPELL
    assert request.target_id == "enemy_shaman"
    assert request.extra["spell_type"] == "healing"


def test_healer_on_cooldown_uses_item(session_with, make, dice):
    shaman = make(
        "enemy_shaman", archetype=Archetype.PRIEST, hp=3, max_hp=10, items=["elixir"]
    )
    shaman.cooldowns[ActionType.SPELL] = 1
    request = choose_action(shaman, session_with(shaman), dice)
    assert request.action_type == ActionType.ITEM
    assert request.extra["item"] == "elixir"


def test_healthy_healer_attacks_with_spells(session_with, make, dice):
    shaman = make("enemy_shaman", archetype=Archetype.PRIEST)
    request = choose_action(shaman, session_with(shaman), dice)
    assert request.action_type == ActionType.SPELL
    assert request.extra["spell_type"] == "divine"
    assert request.target_id == "player_1"


def test_caster_picks_an_offensive_spell(session_with, make, dice):
    mage = make("enemy_mage", archetype=Archetype.MAGE)
    dice.push(1, 0)
    request = choose_action(mage, session_with(mage), dice)
    assert request.action_type == ActionType.SPELL
    assert request.extra["spell_type"] == "lightning"
    assert request.target_id == "player_1"


def test_heavy_uses_special(session_with, make, dice):
    boss = make("enemy_boss", archetype=Archetype.BOSS)
    request = choose_action(boss, session_with(boss), dice)
    assert request.action_type == ActionType.SPECIAL
    assert request.target_id == "player_1"


def test_heavy_on_cooldown_attacks(session_with, make, dice):
    boss = make("enemy_boss", archetype=Archetype.BOSS)
    boss.cooldowns[ActionType.SPECIAL] = 2
    assert choose_action(boss, session_with(boss), dice).action_type == ActionType.ATTACK


def test_area_spell_when_allies_are_wounded(session_with, make, dice):
    skeleton = make("enemy_skeleton", archetype=Archetype.SKELETON)
    hurt_a = make("enemy_a", hp=4, max_hp=10)
    hurt_b = make("enemy_b", hp=3, max_hp=10)
    request = choose_action(skeleton, session_with(skeleton, hurt_a, hurt_b), dice)
    assert request.action_type == ActionType.SPELL
    assert request.extra == {"spell_type": "necrotic", "area": True}


def test_single_wounded_ally_is_no_reason_for_area_spell(session_with, make, dice):
    skeleton = make("enemy_skeleton", archetype=Archetype.SKELETON)
    hurt = make("enemy_a", hp=4, max_hp=10)
    request = choose_action(skeleton, session_with(skeleton, hurt), dice)
    assert request.action_type == ActionType.ATTACK


def test_default_attack_picks_random_target(session_with, make, wizard, dice):
    goblin = make("enemy_goblin")
    session = session_with(goblin)
    session.combatants.append(wizard)
    dice.push(1)
    request = choose_action(goblin, session, dice)
    assert request.action_type == ActionType.ATTACK
    assert request.target_id == "player_2"


def test_fallback_to_other_actions(session_with, make, dice):
    goblin = make("enemy_goblin")
    goblin.cooldowns[ActionType.ATTACK] = 1
    request = choose_action(goblin, session_with(goblin, story="a dark cave"), dice)
    assert request.action_type == ActionType.ENVIRONMENTAL
    assert request.target_id == "player_1"


def test_no_targets_means_defend(make, dice):
    goblin = make("enemy_goblin")
    session = CombatSession(combatants=[goblin], state=SessionState.ACTIVE)
    assert choose_action(goblin, session, dice).action_type == ActionType.DEFEND


def test_adversary_turn_heals_with_potion(dice, fighter, make):
    """End to end: a badly hurt adversary spends its turn drinking a potion."""
    engine = CombatEngine(dice=dice)
    goblin = make("enemy_goblin", "Goblin", hp=2, max_hp=10, items=["healing potion"])
    dice.push(1, 20)
    session = engine.initialize_combat([fighter], [goblin])
    dice.push(6)
    outcome = engine.run_adversary_turn(session)
    assert outcome.action_type == ActionType.ITEM
    assert outcome.healing == 8
    assert session.get_combatant("enemy_goblin").hp == 10
