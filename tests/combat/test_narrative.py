"""
Tests for story context extraction and combat narration.
"""

from skirmish.character.archetype import Archetype
from skirmish.combat.calculations import CalculationResult
from skirmish.combat.combat_session import CombatSession
from skirmish.combat.narrative import (
    extract_environmental_features,
    extract_narrative_elements,
    identify_team_up_opportunities,
    narrate_action,
    narrate_combat_end,
    summarize_combat,
)
from skirmish.core.constants import ActionType, DamageType, SessionState, StatusEffectType
from skirmish.effects.status_effect import StatusEffect


def test_features_from_keywords():
    features = extract_environmental_features("We crossed the river into a dark cavern")
    assert [f.name for f in features] == ["Dark Cave", "Water Hazard"]


def test_no_context_means_no_features():
    assert extract_environmental_features("") == []
    assert extract_environmental_features(None) == []


def test_burning_feature_inflicts_burns():
    (feature,) = extract_environmental_features("Lava flows everywhere")
    assert feature.name == "Burning Environment"
    assert feature.status_effect == StatusEffectType.BURNED
    assert feature.bonus == 2


def test_team_ups_need_both_archetypes(make):
    party = [
        make("player_1", archetype=Archetype.FIGHTER),
        make("player_2", archetype=Archetype.CLERIC),
        make("player_3", archetype=Archetype.ROGUE),
    ]
    names = [t.name for t in identify_team_up_opportunities(party)]
    assert names == ["Divine Stealth", "Holy Warrior"]
    assert identify_team_up_opportunities(party[:1]) == []


def test_narrative_elements():
    elements = extract_narrative_elements(
        "A desperate last stand to save the village from Lord Varek and his toxic fire"
    )
    assert elements.mood == "desperate"
    assert elements.stakes == "village-level"
    assert elements.hazards == ["poison", "fire"]
    assert "Lord Varek" in elements.npcs
    assert "A" not in elements.npcs


def test_default_narrative_elements():
    elements = extract_narrative_elements("")
    assert elements.mood == "standard"
    assert elements.stakes == "standard"


def test_narrate_attack(fighter, goblin):
    result = CalculationResult(action_type=ActionType.ATTACK, damage=9, critical=True)
    text = narrate_action(fighter, ActionType.ATTACK, goblin, result)
    assert text.startswith("Aria strikes with their weapon with disciplined martial prowess against Goblin!")
    assert "A critical hit!" in text
    assert "9 physical damage." in text


def test_narrate_spell_and_healing(wizard, make):
    fire = CalculationResult(
        action_type=ActionType.SPELL, damage=12, damage_type=DamageType.FIRE, label="fireball"
    )
    assert "channels arcane energy into fireball" in narrate_action(
        wizard, ActionType.SPELL, None, fire
    )
    cleric = make("player_4", "Cyra", archetype=Archetype.CLERIC)
    heal = CalculationResult(action_type=ActionType.SPELL, healing=6, label="healing")
    assert narrate_action(cleric, ActionType.SPELL, cleric, heal).endswith(
        "Restores 6 HP to themselves."
    )


def test_narrate_defend(fighter):
    assert narrate_action(fighter, ActionType.DEFEND) == "Aria takes a defensive stance!"


def test_summary_and_end_narrative(fighter, goblin, make):
    fallen = make("player_2", "Bram", hp=0, max_hp=10)
    goblin.hp = 0
    fighter.turn_count = 3
    session = CombatSession(
        combatants=[fighter, fallen, goblin], round=3, state=SessionState.VICTORY
    )
    summary = summarize_combat(session)
    assert summary.rounds == 3
    assert summary.party_casualties == 1
    assert summary.adversary_casualties == 1
    assert summary.surviving_party == ["Aria"]
    assert summary.surviving_adversaries == []
    assert summary.turns_taken["Aria"] == 3
    assert narrate_combat_end(session) == (
        "The battle raged for 3 rounds. The party emerged victorious, "
        "defeating 1 enemies at the cost of 1 fallen comrades."
    )


def test_defeat_narrative(fighter, goblin):
    fighter.hp = 0
    session = CombatSession(combatants=[fighter, goblin], state=SessionState.DEFEAT)
    assert narrate_combat_end(session) == (
        "The battle raged for 1 round. The party was defeated by their enemies."
    )


def test_status_effects_show_in_status_line(fighter):
    fighter.add_status_effect(StatusEffect.create(StatusEffectType.BLESSED))
    assert "Blessed (3)" in fighter.status_line()
