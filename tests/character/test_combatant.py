"""
Tests for the combatant model and the record normalization boundary.
"""

import pytest

from skirmish.character.archetype import Archetype
from skirmish.character.combatant import Combatant, normalize_combatant, normalize_tag
from skirmish.core.constants import ActionType, Side, SkillAction, StatusEffectType
from skirmish.effects.status_effect import StatusEffect


def test_normalize_full_record():
    """A well-formed record keeps all its values."""
    combatant = normalize_combatant(
        {
            "id": "aria",
            "name": "Aria",
            "class": "Fighter",
            "level": 3,
            "hp": 20,
            "max_hp": 28,
            "armor_class": 16,
            "abilities": {"strength": 16, "dexterity": 12},
            "damage": "1d10",
            "items": ["healing potion"],
        },
        Side.PARTY,
    )
    assert combatant.id == "aria"
    assert combatant.archetype == Archetype.FIGHTER
    assert combatant.level == 3
    assert (combatant.hp, combatant.max_hp) == (20, 28)
    assert combatant.armor_class == 16
    assert combatant.abilities.strength == 16
    assert combatant.abilities.constitution == 10
    assert combatant.damage_dice == "1d10"
    assert combatant.side == Side.PARTY


def test_normalize_camel_case_keys():
    """camelCase spellings are accepted alongside snake_case."""
    combatant = normalize_combatant(
        {
            "name": "Dax",
            "characterClass": "rogue",
            "maxHp": 21,
            "currentHp": 15,
            "armorClass": 14,
            "stats": {"DEX": 18},
            "spellDamage": "2d4",
            "proficiencies": ["pickLock", "Wall Run"],
        },
        Side.PARTY,
    )
    assert combatant.archetype == Archetype.ROGUE
    assert (combatant.hp, combatant.max_hp) == (15, 21)
    assert combatant.armor_class == 14
    assert combatant.abilities.dexterity == 18
    assert combatant.spell_dice == "2d4"
    assert combatant.proficiencies == {"pick_lock", "wall_run"}


def test_normalize_empty_record_uses_defaults():
    """Missing numeric fields take the defaults."""
    combatant = normalize_combatant({}, Side.PARTY, index=2)
    assert combatant.id == "player_2"
    assert combatant.name == "Adventurer 3"
    assert combatant.level == 1
    assert (combatant.hp, combatant.max_hp) == (10, 10)
    assert combatant.armor_class == 10
    assert combatant.abilities.strength == 10
    assert combatant.archetype == Archetype.GENERIC


def test_normalize_garbage_numbers():
    """Non-numeric values never reach the model."""
    combatant = normalize_combatant(
        {"name": "Bad", "hp": "lots", "level": None, "abilities": {"strength": "huge"}},
        Side.PARTY,
    )
    assert combatant.hp == 10
    assert combatant.level == 1
    assert combatant.abilities.strength == 10


def test_normalize_clamps_hp_to_maximum():
    combatant = normalize_combatant({"name": "Over", "hp": 50, "max_hp": 20}, Side.PARTY)
    assert combatant.hp == 20
    assert combatant.max_hp == 20


def test_normalize_hp_without_maximum():
    """A current HP without a maximum stands in for it."""
    combatant = normalize_combatant({"name": "Solo", "hp": 17}, Side.PARTY)
    assert (combatant.hp, combatant.max_hp) == (17, 17)


def test_normalize_invalid_dice_falls_back():
    combatant = normalize_combatant({"name": "Odd", "damage": "sword"}, Side.PARTY)
    assert combatant.damage_dice == "1d8"


def test_adversary_ids_get_prefix():
    """Adversaries always carry the adversary prefix."""
    named = normalize_combatant({"id": "goblin", "name": "Goblin"}, Side.ADVERSARY)
    unnamed = normalize_combatant({"name": "Rat"}, Side.ADVERSARY, index=4)
    kept = normalize_combatant({"id": "enemy_orc", "name": "Orc"}, Side.ADVERSARY)
    assert named.id == "enemy_goblin"
    assert unnamed.id == "enemy_4"
    assert kept.id == "enemy_orc"
    assert named.side == Side.ADVERSARY


def test_party_id_with_adversary_prefix_is_renamed():
    combatant = normalize_combatant({"id": "enemy_spy", "name": "Spy"}, Side.PARTY)
    assert combatant.id == "player_enemy_spy"
    assert combatant.side == Side.PARTY


def test_normalize_combatant_copies_models(fighter):
    """A Combatant input is copied, never shared."""
    copy = normalize_combatant(fighter, Side.PARTY)
    copy.take_damage(5)
    assert fighter.hp == 20
    assert copy.hp == 15


def test_normalize_status_effects():
    combatant = normalize_combatant(
        {"name": "Sick", "status_effects": ["poisoned", {"type": "burned", "duration": 4}, "itchy"]},
        Side.PARTY,
    )
    kinds = [effect.kind for effect in combatant.status_effects]
    assert kinds == [StatusEffectType.POISONED, StatusEffectType.BURNED]
    assert combatant.status_effects[0].duration == 3
    assert combatant.status_effects[1].duration == 4


@pytest.mark.parametrize(
    "tag, expected",
    [("pickLock", "pick_lock"), ("Pick Lock", "pick_lock"), ("pick-lock", "pick_lock"), ("dodge", "dodge")],
)
def test_normalize_tag(tag, expected):
    assert normalize_tag(tag) == expected


def test_model_rejects_invalid_values():
    with pytest.raises(ValueError):
        Combatant(id="x", name="X", hp=12, max_hp=10)
    with pytest.raises(ValueError):
        Combatant(id="", name="X")
    with pytest.raises(ValueError):
        Combatant(id="x", name="X", level=0)


def test_damage_and_healing_are_clamped(fighter):
    """HP never leaves [0, max_hp]."""
    assert fighter.take_damage(25) == 20
    assert fighter.hp == 0
    assert not fighter.is_alive()
    assert fighter.heal(50) == 20
    assert fighter.hp == 20
    assert fighter.heal(5) == 0
    assert fighter.take_damage(-3) == 0


def test_proficiency_by_tag_or_archetype(make):
    """Proficiency comes from explicit tags or the archetype."""
    fighter = make("player_1", archetype=Archetype.FIGHTER)
    tagged = make("player_2", proficiencies={"climb"})
    assert fighter.is_proficient(SkillAction.ATTACK)
    assert not fighter.is_proficient(SkillAction.CLIMB)
    assert tagged.is_proficient(SkillAction.CLIMB)
    assert not tagged.is_proficient(SkillAction.ATTACK)


def test_status_effect_refresh_keeps_longest(fighter):
    assert fighter.add_status_effect(StatusEffect.create(StatusEffectType.POISONED, 2))
    assert not fighter.add_status_effect(StatusEffect.create(StatusEffectType.POISONED, 1))
    assert len(fighter.status_effects) == 1
    assert fighter.status_effects[0].duration == 2
    fighter.add_status_effect(StatusEffect.create(StatusEffectType.POISONED, 5))
    assert fighter.status_effects[0].duration == 5
    assert fighter.remove_status_effect(StatusEffectType.POISONED)
    assert not fighter.remove_status_effect(StatusEffectType.POISONED)


def test_defensive_raises_armor_class(fighter):
    fighter.add_status_effect(StatusEffect.create(StatusEffectType.DEFENSIVE))
    assert fighter.effective_armor_class == 18


def test_items_and_cooldowns(make):
    combatant = make("player_1", items=["rope", "Healing Potion"])
    assert combatant.find_healing_item() == "Healing Potion"
    assert combatant.has_healing_item()
    assert make("player_2", items=["rope"]).find_healing_item() is None
    combatant.cooldowns[ActionType.SPECIAL] = 2
    assert combatant.is_on_cooldown(ActionType.SPECIAL)
    assert combatant.cooldown_remaining(ActionType.SPELL) == 0
