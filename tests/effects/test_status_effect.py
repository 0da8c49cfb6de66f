"""
Tests for timed status effects and their processing at turn start.
"""

import pytest

from skirmish.core.constants import StatusEffectType
from skirmish.effects.status_effect import (
    STATUS_EFFECT_TABLE,
    StatusEffect,
    merge_status_effect,
    tick_status_effects,
)


def test_create_uses_default_duration():
    assert StatusEffect.create(StatusEffectType.POISONED).duration == 3
    assert StatusEffect.create(StatusEffectType.FROZEN).duration == 1
    assert StatusEffect.create(StatusEffectType.BLESSED, duration=5).duration == 5


def test_description_defaults_from_table():
    effect = StatusEffect.create(StatusEffectType.BURNED)
    assert effect.description == STATUS_EFFECT_TABLE[StatusEffectType.BURNED].description


def test_negative_duration_rejected():
    with pytest.raises(ValueError):
        StatusEffect(kind=StatusEffectType.POISONED, duration=-1)


def test_every_kind_has_rules():
    for kind in StatusEffectType:
        assert STATUS_EFFECT_TABLE[kind].duration >= 1


def test_merge_refreshes_instead_of_stacking():
    effects: list[StatusEffect] = []
    assert merge_status_effect(effects, StatusEffect.create(StatusEffectType.BURNED, 1))
    assert not merge_status_effect(effects, StatusEffect.create(StatusEffectType.BURNED, 2))
    assert len(effects) == 1
    assert effects[0].duration == 2


def test_poison_damages_and_decrements(fighter, dice):
    """Poison deals 1 damage and loses one turn of duration."""
    fighter.add_status_effect(StatusEffect.create(StatusEffectType.POISONED))
    tick = tick_status_effects(fighter, dice)
    assert tick.damage == 1
    assert fighter.hp == 19
    assert not tick.skip_turn
    assert fighter.status_effects[0].duration == 2


def test_burn_expires_after_two_turns(fighter, dice):
    fighter.add_status_effect(StatusEffect.create(StatusEffectType.BURNED))
    tick_status_effects(fighter, dice)
    tick = tick_status_effects(fighter, dice)
    assert fighter.hp == 16
    assert tick.expired == [StatusEffectType.BURNED]
    assert not fighter.status_effects


def test_frozen_skips_and_is_removed(fighter, dice):
    """Frozen with duration 1 costs exactly one turn and then disappears."""
    fighter.add_status_effect(StatusEffect.create(StatusEffectType.FROZEN))
    tick = tick_status_effects(fighter, dice)
    assert tick.skip_turn
    assert tick.skip_reason == StatusEffectType.FROZEN
    assert not fighter.has_status(StatusEffectType.FROZEN)
    assert not tick_status_effects(fighter, dice).skip_turn


def test_paralysis_skip_is_chance_based(fighter, dice):
    """Paralysis skips the turn only when the d100 lands in the 50% band."""
    fighter.add_status_effect(StatusEffect.create(StatusEffectType.PARALYZED))
    dice.push(80)
    assert not tick_status_effects(fighter, dice).skip_turn
    dice.push(20)
    assert tick_status_effects(fighter, dice).skip_turn


def test_damage_stops_at_zero(make, dice):
    weak = make("player_1", hp=1, max_hp=10)
    weak.add_status_effect(StatusEffect.create(StatusEffectType.POISONED))
    weak.add_status_effect(StatusEffect.create(StatusEffectType.BURNED))
    tick = tick_status_effects(weak, dice)
    assert weak.hp == 0
    assert tick.damage == 1


def test_duration_zero_effect_expires_immediately(fighter, dice):
    fighter.status_effects.append(StatusEffect(kind=StatusEffectType.CONFUSED, duration=0))
    tick = tick_status_effects(fighter, dice)
    assert tick.expired == [StatusEffectType.CONFUSED]
    assert not fighter.status_effects


def test_str_shows_name_and_duration():
    assert "Poisoned (3)" in str(StatusEffect.create(StatusEffectType.POISONED))
