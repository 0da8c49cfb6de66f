"""
Combat calculation module.

Pure functions computing the magnitude of every combat action. Each one
follows the same shape: a base roll, plus the relevant ability modifier,
plus level and equipment bonuses. Damage is floored at 1.

Adversaries scale with level (+30% per level above 1 for physical damage,
+40% for spells) while party members do not. Nothing here mutates a
combatant; the engine applies the returned `CalculationResult`.
"""

import math
from typing import Any, Optional

from catchery import log_warning
from pydantic import BaseModel, Field

from ..character.archetype import AIRole
from ..character.combatant import Combatant
from ..core.constants import Ability, ActionType, DamageType, StatusEffectType
from ..core.dice_parser import DiceRoller, get_default_roller
from ..core.error_handling import ensure_int_in_range
from ..effects.status_effect import StatusEffect

PHYSICAL_SCALING_PER_LEVEL = 0.3
SPELL_SCALING_PER_LEVEL = 0.4
ATTACK_CRITICAL_ROLL = 20
ATTACK_CRITICAL_MULTIPLIER = 2
SPELL_CRITICAL_ROLL = 19
SPELL_CRITICAL_MULTIPLIER = 1.5
BOSS_ATTACK_BONUS = 5
TEAM_UP_ALLY_BONUS = 2
HEAVY_HIT_THRESHOLD = 10
SPECIAL_DICE = "2d6"
TEAM_UP_DICE = "3d6"
ENVIRONMENTAL_DICE = "1d6"


class SpellInfo(BaseModel):
    """Rules of a spell sub-type."""

    bonus: int = 0
    damage_type: DamageType = DamageType.ARCANE
    status_effect: Optional[StatusEffectType] = None
    heals: bool = False


SPELL_TYPES: dict[str, SpellInfo] = {
    "fireball": SpellInfo(bonus=2, damage_type=DamageType.FIRE, status_effect=StatusEffectType.BURNED),
    "fire": SpellInfo(bonus=2, damage_type=DamageType.FIRE, status_effect=StatusEffectType.BURNED),
    "lightning": SpellInfo(bonus=3, damage_type=DamageType.LIGHTNING),
    "ice": SpellInfo(bonus=1, damage_type=DamageType.COLD, status_effect=StatusEffectType.FROZEN),
    "arcane": SpellInfo(bonus=1, damage_type=DamageType.ARCANE),
    "divine": SpellInfo(bonus=2, damage_type=DamageType.RADIANT),
    "necrotic": SpellInfo(bonus=2, damage_type=DamageType.NECROTIC),
    "healing": SpellInfo(damage_type=DamageType.RADIANT, heals=True),
}

DEFAULT_SPELL_TYPE = "arcane"


class ItemInfo(BaseModel):
    """Rules of a consumable item family."""

    keywords: tuple[str, ...]
    dice: Optional[str] = None
    heals: bool = False
    damages: bool = False
    cleanses: tuple[StatusEffectType, ...] = ()
    status_effect: Optional[StatusEffectType] = None


# Checked in order; the first family whose keyword appears in the item name wins.
ITEM_TYPES: dict[str, ItemInfo] = {
    "antidote": ItemInfo(
        keywords=("antidote", "cleans", "remedy", "salve"),
        cleanses=(
            StatusEffectType.POISONED,
            StatusEffectType.BURNED,
            StatusEffectType.BLEEDING,
        ),
    ),
    "blessing": ItemInfo(
        keywords=("bless", "holy water", "charm"),
        status_effect=StatusEffectType.BLESSED,
    ),
    "bomb": ItemInfo(keywords=("bomb", "acid", "fire flask", "grenade"), dice="1d6", damages=True),
    "healing": ItemInfo(keywords=("heal", "potion", "elixir", "tonic"), dice="1d8+2", heals=True),
}

UNKNOWN_ITEM = ItemInfo(keywords=(), dice="1d4", heals=True)
DEFAULT_ITEM = "healing potion"


class CalculationResult(BaseModel):
    """The magnitude and side effects of one combat action."""

    action_type: ActionType
    damage: int = Field(default=0, description="Damage dealt to the target")
    healing: int = Field(default=0, description="HP restored to the target")
    damage_type: DamageType = Field(default=DamageType.PHYSICAL)
    critical: bool = False
    rolls: list[int] = Field(default_factory=list, description="Raw dice rolled")
    breakdown: dict[str, float] = Field(
        default_factory=dict,
        description="Named components summed (and scaled) into the result",
    )
    target_effects: list[StatusEffect] = Field(default_factory=list)
    self_effects: list[StatusEffect] = Field(default_factory=list)
    cleanses: list[StatusEffectType] = Field(default_factory=list)
    label: str = Field(default="", description="Spell, item or ability name")

    def describe(self) -> str:
        """Formats the breakdown, e.g. "base 5 + strength 3 + level 0 = 8"."""
        parts = []
        for name, value in self.breakdown.items():
            if name.endswith("multiplier"):
                parts.append(f"x{value:g} {name.removesuffix(' multiplier')}")
            elif value:
                parts.append(f"{'+' if value > 0 else '-'} {abs(value):g} {name}")
        text = " ".join(parts).lstrip("+ ")
        amount = self.damage or self.healing
        return f"{text} = {amount}" if text else str(amount)


def level_scaling(level: int, per_level: float) -> float:
    """
    Returns the adversary multiplier for a level.

    Args:
        level (int): The adversary level.
        per_level (float): Increase per level above 1.

    Returns:
        float: 1.0 at level 1, growing linearly.

    """
    return 1 + (max(1, level) - 1) * per_level


def adversary_item_bonus(combatant: Combatant) -> int:
    """Equipment bonus of an adversary, growing past level 3."""
    bonus = combatant.equipment.focus_bonus
    if combatant.level > 3:
        bonus += (combatant.level - 3) // 2
    return bonus


def _status_attack_bonus(combatant: Combatant) -> int:
    return sum(effect.info.attack_bonus for effect in combatant.status_effects)


def _finish(total: float, minimum: int = 1) -> int:
    return max(minimum, math.floor(total))


def resolve_spell_type(caster: Combatant, spell_type: Optional[str]) -> str:
    """
    Picks the spell sub-type to cast.

    Without an explicit type, the caster's first offensive spell is used.
    Unknown types fall back to arcane with a warning.
    """
    if spell_type is None:
        offensive = caster.capabilities.offensive_spells
        return offensive[0] if offensive else DEFAULT_SPELL_TYPE
    key = str(spell_type).strip().lower()
    if key not in SPELL_TYPES:
        log_warning(
            f"Unknown spell type '{spell_type}', casting {DEFAULT_SPELL_TYPE}",
            {"caster": caster.id, "spell_type": spell_type},
        )
        return DEFAULT_SPELL_TYPE
    return key


def resolve_item(item: Optional[str]) -> tuple[str, ItemInfo]:
    """Returns the item name and the rules of its family."""
    name = (item or DEFAULT_ITEM).strip()
    lowered = name.lower()
    for info in ITEM_TYPES.values():
        if any(keyword in lowered for keyword in info.keywords):
            return name, info
    return name, UNKNOWN_ITEM


def calculate_attack_damage(
    attacker: Combatant,
    extra: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> CalculationResult:
    """
    Computes the damage of a weapon attack.

    Party members add strength, dexterity for finesse archetypes, the
    weapon bonus, the archetype bonus and half their level above 1.
    Adversaries add strength, the weapon and item bonuses and an optional
    special-attack bonus, then scale with level. A natural 20, rolled
    independently of the damage, doubles the total.

    Rolls, in order: the damage dice, the special-attack bonus (if any),
    the critical d20.

    Args:
        attacker (Combatant): The attacking combatant.
        extra (Optional[dict[str, Any]]): May hold "situational_bonus",
            "special_attack" and "boss_attack".
        dice (Optional[DiceRoller]): The roller.

    Returns:
        CalculationResult: The damage and its breakdown.

    Raises:
        DiceNotationError: If the attacker's damage dice are malformed.

    """
    extra = extra or {}
    dice = dice or get_default_roller()
    base = dice.roll_notation(attacker.damage_dice)
    breakdown: dict[str, float] = {
        "base": base.value,
        "strength": attacker.modifier(Ability.STRENGTH),
        "weapon": attacker.equipment.weapon_bonus,
        "blessing": _status_attack_bonus(attacker),
        "situational": ensure_int_in_range(
            extra.get("situational_bonus"), "situational_bonus", -20, 20, 0
        ),
    }
    if attacker.is_adversary:
        breakdown["item"] = adversary_item_bonus(attacker)
        special = extra.get("special_attack")
        if special and special != "Standard Attack":
            breakdown["special"] = dice.randint(2, 5)
        if extra.get("boss_attack"):
            breakdown["boss"] = BOSS_ATTACK_BONUS
    else:
        if attacker.capabilities.finesse:
            breakdown["dexterity"] = attacker.modifier(Ability.DEXTERITY)
        breakdown["class"] = attacker.capabilities.attack_bonus
        breakdown["level"] = (attacker.level - 1) // 2

    total: float = sum(breakdown.values())
    if attacker.is_adversary:
        scaling = level_scaling(attacker.level, PHYSICAL_SCALING_PER_LEVEL)
        breakdown["level multiplier"] = scaling
        total *= scaling

    critical = dice.roll_d20() == ATTACK_CRITICAL_ROLL
    if critical:
        breakdown["critical multiplier"] = ATTACK_CRITICAL_MULTIPLIER
        total *= ATTACK_CRITICAL_MULTIPLIER

    return CalculationResult(
        action_type=ActionType.ATTACK,
        damage=_finish(total),
        damage_type=DamageType.PHYSICAL,
        critical=critical,
        rolls=base.rolls,
        breakdown=breakdown,
        label=attacker.equipment.weapon.name if attacker.equipment.weapon else "",
    )


def calculate_spell_effect(
    caster: Combatant,
    extra: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> CalculationResult:
    """
    Computes the damage, or healing, of a spell.

    The base roll adds the casting ability modifier, the spell level and
    the spell type bonus. Party casters add their archetype bonus;
    adversaries add their item bonus and scale with level. An accompanying
    d20 of 19 or 20 multiplies the result by 1.5.

    Rolls, in order: the spell dice, the accompanying d20.

    Args:
        caster (Combatant): The casting combatant.
        extra (Optional[dict[str, Any]]): May hold "spell_type" and "spell_level".
        dice (Optional[DiceRoller]): The roller.

    Returns:
        CalculationResult: Damage, or healing for healing spells.

    Raises:
        DiceNotationError: If the caster's spell dice are malformed.

    """
    extra = extra or {}
    dice = dice or get_default_roller()
    spell_type = resolve_spell_type(caster, extra.get("spell_type"))
    spell = SPELL_TYPES[spell_type]
    base = dice.roll_notation(caster.spell_dice)

    casting = caster.capabilities.casting_ability
    breakdown: dict[str, float] = {
        "base": base.value,
        casting.value: caster.modifier(casting),
        "spell level": ensure_int_in_range(extra.get("spell_level"), "spell_level", 0, 9, 1),
        spell_type: spell.bonus,
    }
    if caster.is_adversary:
        breakdown["item"] = adversary_item_bonus(caster)
    else:
        breakdown["class"] = caster.capabilities.spell_bonus
        breakdown["focus"] = caster.equipment.focus_bonus

    total: float = sum(breakdown.values())
    if caster.is_adversary and not spell.heals:
        scaling = level_scaling(caster.level, SPELL_SCALING_PER_LEVEL)
        breakdown["level multiplier"] = scaling
        total *= scaling

    critical = dice.roll_d20() >= SPELL_CRITICAL_ROLL
    if critical:
        breakdown["critical multiplier"] = SPELL_CRITICAL_MULTIPLIER
        total *= SPELL_CRITICAL_MULTIPLIER

    result = CalculationResult(
        action_type=ActionType.SPELL,
        damage_type=spell.damage_type,
        critical=critical,
        rolls=base.rolls,
        breakdown=breakdown,
        label=spell_type,
    )
    if spell.heals:
        result.healing = _finish(total)
    else:
        result.damage = _finish(total)
        if spell.status_effect is not None:
            result.target_effects.append(StatusEffect.create(spell.status_effect, source=caster.id))
    return result


def calculate_special_damage(
    actor: Combatant,
    extra: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> CalculationResult:
    """
    Computes the damage of an archetype's special ability.

    2d6 plus the primary ability modifier, half the level and the archetype
    bonus. Heavy adversaries add a flat bonus, and all adversaries scale with
    level like any physical damage.

    Args:
        actor (Combatant): The acting combatant.
        extra (Optional[dict[str, Any]]): Unused, accepted for symmetry.
        dice (Optional[DiceRoller]): The roller.

    Returns:
        CalculationResult: The damage and its breakdown.

    """
    dice = dice or get_default_roller()
    capabilities = actor.capabilities
    base = dice.roll_notation(SPECIAL_DICE)
    primary = capabilities.primary_ability
    breakdown: dict[str, float] = {
        "base": base.value,
        primary.value: actor.modifier(primary),
        "level": actor.level // 2,
        "class": capabilities.special_bonus,
    }
    if actor.is_adversary:
        breakdown["item"] = adversary_item_bonus(actor)
        if capabilities.ai_role == AIRole.HEAVY:
            breakdown["boss"] = BOSS_ATTACK_BONUS

    total: float = sum(breakdown.values())
    if actor.is_adversary:
        scaling = level_scaling(actor.level, PHYSICAL_SCALING_PER_LEVEL)
        breakdown["level multiplier"] = scaling
        total *= scaling

    return CalculationResult(
        action_type=ActionType.SPECIAL,
        damage=_finish(total),
        rolls=base.rolls,
        breakdown=breakdown,
        label=capabilities.special_attack or "Special Attack",
    )


def calculate_item_effect(
    user: Combatant,
    extra: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> CalculationResult:
    """
    Computes the effect of using a consumable item.

    Healing potions restore 1d8+2, antidotes cleanse damaging conditions,
    blessings grant the blessed condition, bombs deal 1d6. Unknown items
    restore 1d4. No level scaling applies.

    Args:
        user (Combatant): The combatant using the item.
        extra (Optional[dict[str, Any]]): May hold "item", the item name.
        dice (Optional[DiceRoller]): The roller.

    Returns:
        CalculationResult: Healing, damage, cleansing or a status effect.

    """
    extra = extra or {}
    dice = dice or get_default_roller()
    name, info = resolve_item(extra.get("item") or extra.get("item_type"))
    result = CalculationResult(action_type=ActionType.ITEM, label=name)
    if info.dice:
        roll = dice.roll_notation(info.dice)
        result.rolls = roll.rolls
        result.breakdown["base"] = roll.value
        if info.heals:
            result.healing = _finish(roll.value)
        elif info.damages:
            result.damage = _finish(roll.value)
    result.cleanses = list(info.cleanses)
    if info.status_effect is not None:
        result.target_effects.append(StatusEffect.create(info.status_effect, source=user.id))
    return result


def calculate_team_up_damage(
    actor: Combatant,
    extra: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> CalculationResult:
    """
    Computes the damage of a coordinated attack with an ally.

    3d6 plus strength, a flat ally bonus and the synergy bonus of the
    team-up opportunity, if any. No level scaling applies.

    Args:
        actor (Combatant): The combatant leading the team-up.
        extra (Optional[dict[str, Any]]): May hold "ally_bonus" and "synergy_bonus".
        dice (Optional[DiceRoller]): The roller.

    Returns:
        CalculationResult: The damage and its breakdown.

    """
    extra = extra or {}
    dice = dice or get_default_roller()
    base = dice.roll_notation(TEAM_UP_DICE)
    breakdown: dict[str, float] = {
        "base": base.value,
        "strength": actor.modifier(Ability.STRENGTH),
        "ally": ensure_int_in_range(extra.get("ally_bonus"), "ally_bonus", 0, 10, TEAM_UP_ALLY_BONUS),
        "synergy": ensure_int_in_range(extra.get("synergy_bonus"), "synergy_bonus", 0, 10, 0),
    }
    return CalculationResult(
        action_type=ActionType.TEAM_UP,
        damage=_finish(sum(breakdown.values())),
        rolls=base.rolls,
        breakdown=breakdown,
        label=str(extra.get("team_up") or "Team-up"),
    )


def calculate_environmental_damage(
    actor: Combatant,
    extra: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> CalculationResult:
    """
    Computes the damage of turning the terrain against a target.

    1d6 plus the better of dexterity and wisdom, plus the feature bonus.
    A hazardous feature also applies its condition to the target.

    Args:
        actor (Combatant): The acting combatant.
        extra (Optional[dict[str, Any]]): May hold "feature", "feature_bonus"
            and "feature_effect" (a status effect kind).
        dice (Optional[DiceRoller]): The roller.

    Returns:
        CalculationResult: The damage and its breakdown.

    """
    extra = extra or {}
    dice = dice or get_default_roller()
    base = dice.roll_notation(ENVIRONMENTAL_DICE)
    breakdown: dict[str, float] = {
        "base": base.value,
        "cunning": max(actor.modifier(Ability.DEXTERITY), actor.modifier(Ability.WISDOM)),
        "terrain": ensure_int_in_range(extra.get("feature_bonus"), "feature_bonus", -5, 5, 0),
    }
    result = CalculationResult(
        action_type=ActionType.ENVIRONMENTAL,
        damage=_finish(sum(breakdown.values())),
        rolls=base.rolls,
        breakdown=breakdown,
        label=str(extra.get("feature") or "Environment"),
    )
    effect = extra.get("feature_effect")
    if effect is not None:
        result.target_effects.append(
            StatusEffect.create(StatusEffectType(effect), source=actor.id)
        )
    return result


def calculate_defend(actor: Combatant) -> CalculationResult:
    """Taking a defensive stance grants the defensive condition to the actor."""
    return CalculationResult(
        action_type=ActionType.DEFEND,
        self_effects=[StatusEffect.create(StatusEffectType.DEFENSIVE, source=actor.id)],
        label="Defensive Stance",
    )


def roll_follow_up_effect(
    damage: int,
    source: str,
    dice: Optional[DiceRoller] = None,
) -> Optional[StatusEffect]:
    """
    A single heavy hit may leave the target stunned or bleeding.

    Args:
        damage (int): The damage dealt by the hit.
        source (str): Id of the attacker.
        dice (Optional[DiceRoller]): The roller choosing the condition.

    Returns:
        Optional[StatusEffect]: The condition, or None for light hits.

    """
    if damage <= HEAVY_HIT_THRESHOLD:
        return None
    dice = dice or get_default_roller()
    kind = dice.choice([StatusEffectType.STUNNED, StatusEffectType.BLEEDING])
    return StatusEffect.create(kind, source=source)


def calculate_action(
    action_type: ActionType,
    actor: Combatant,
    extra: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> CalculationResult:
    """
    Dispatches to the calculation of an action type.

    Raises:
        DiceNotationError: If the actor's dice notation is malformed.

    """
    if action_type == ActionType.ATTACK:
        return calculate_attack_damage(actor, extra, dice)
    if action_type == ActionType.SPELL:
        return calculate_spell_effect(actor, extra, dice)
    if action_type == ActionType.SPECIAL:
        return calculate_special_damage(actor, extra, dice)
    if action_type == ActionType.ITEM:
        return calculate_item_effect(actor, extra, dice)
    if action_type == ActionType.TEAM_UP:
        return calculate_team_up_damage(actor, extra, dice)
    if action_type == ActionType.ENVIRONMENTAL:
        return calculate_environmental_damage(actor, extra, dice)
    return calculate_defend(actor)
