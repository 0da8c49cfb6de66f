"""
Combatant model and the boundary that builds it from external records.

External character records are loose dictionaries: fields may be missing,
misspelled in camelCase, or hold garbage. `normalize_combatant` is the one
place where such records are coerced into a validated `Combatant`; nothing
downstream ever sees a raw record.
"""

import re
from typing import Any, Mapping, Optional

from catchery import log_warning
from pydantic import BaseModel, Field

from ..core.constants import (
    ADVERSARY_ID_PREFIX,
    PARTY_ID_PREFIX,
    Ability,
    ActionType,
    Side,
    SkillAction,
    StatusEffectType,
    is_adversary_id,
)
from ..core.dice_parser import DiceNotationError, parse_dice_notation
from ..core.error_handling import (
    ensure_int_in_range,
    ensure_list_of_strings,
    ensure_mapping,
    ensure_string,
)
from ..core.utils import get_proficiency_bonus, get_stat_modifier, hp_color, make_bar
from ..effects.status_effect import StatusEffect, merge_status_effect
from .archetype import Archetype, ArchetypeCapabilities

DEFAULT_ABILITY_SCORE = 10
DEFAULT_HP = 10
DEFAULT_ARMOR_CLASS = 10
DEFAULT_LEVEL = 1
DEFAULT_DAMAGE_DICE = "1d8"
DEFAULT_SPELL_DICE = "1d6"
HEALING_ITEM_KEYWORDS = ("heal", "potion", "elixir")


class AbilityScores(BaseModel):
    """The six ability scores of a combatant."""

    strength: int = DEFAULT_ABILITY_SCORE
    dexterity: int = DEFAULT_ABILITY_SCORE
    constitution: int = DEFAULT_ABILITY_SCORE
    intelligence: int = DEFAULT_ABILITY_SCORE
    wisdom: int = DEFAULT_ABILITY_SCORE
    charisma: int = DEFAULT_ABILITY_SCORE

    def get(self, ability: Ability) -> int:
        return getattr(self, ability.value)

    def modifier(self, ability: Ability) -> int:
        return get_stat_modifier(self.get(ability))


class EquipmentSlot(BaseModel):
    """A piece of equipment with a flat numeric bonus."""

    name: str = Field(description="Name of the item")
    bonus: int = Field(default=0, description="Flat bonus granted by the item")


class Equipment(BaseModel):
    """The weapon, armor and focus slots of a combatant."""

    weapon: Optional[EquipmentSlot] = None
    armor: Optional[EquipmentSlot] = None
    focus: Optional[EquipmentSlot] = None

    @property
    def weapon_bonus(self) -> int:
        return self.weapon.bonus if self.weapon else 0

    @property
    def armor_bonus(self) -> int:
        return self.armor.bonus if self.armor else 0

    @property
    def focus_bonus(self) -> int:
        return self.focus.bonus if self.focus else 0


class Combatant(BaseModel):
    """
    A participant in a combat session.

    The side a combatant fights on is derived from its identifier:
    adversaries carry the "enemy_" prefix.
    """

    id: str = Field(description="Unique identifier within the session")
    name: str = Field(description="Display name")
    abilities: AbilityScores = Field(default_factory=AbilityScores)
    level: int = Field(default=DEFAULT_LEVEL)
    hp: int = Field(default=DEFAULT_HP)
    max_hp: int = Field(default=DEFAULT_HP)
    armor_class: int = Field(default=DEFAULT_ARMOR_CLASS)
    archetype: Archetype = Field(default=Archetype.GENERIC)
    proficiencies: set[str] = Field(
        default_factory=set,
        description="Explicit proficiency tags, in snake_case",
    )
    equipment: Equipment = Field(default_factory=Equipment)
    damage_dice: str = Field(default=DEFAULT_DAMAGE_DICE)
    spell_dice: str = Field(default=DEFAULT_SPELL_DICE)
    items: list[str] = Field(default_factory=list)
    status_effects: list[StatusEffect] = Field(default_factory=list)
    cooldowns: dict[ActionType, int] = Field(default_factory=dict)
    initiative: int = Field(default=0)
    turn_count: int = Field(default=0)
    last_action: Optional[ActionType] = Field(default=None)

    def model_post_init(self, _: Any) -> None:
        if not self.id:
            raise ValueError("Combatant id must be a non-empty string")
        if self.level < 1:
            raise ValueError(f"Combatant level must be at least 1, got {self.level}")
        if self.max_hp < 1:
            raise ValueError(f"Combatant max_hp must be at least 1, got {self.max_hp}")
        if not 0 <= self.hp <= self.max_hp:
            raise ValueError(f"Combatant hp must be within [0, {self.max_hp}], got {self.hp}")

    # ============================================================================
    # IDENTITY
    # ============================================================================

    @property
    def side(self) -> Side:
        return Side.ADVERSARY if is_adversary_id(self.id) else Side.PARTY

    @property
    def is_adversary(self) -> bool:
        return is_adversary_id(self.id)

    @property
    def capabilities(self) -> ArchetypeCapabilities:
        return self.archetype.capabilities

    # ============================================================================
    # STATS
    # ============================================================================

    def modifier(self, ability: Ability) -> int:
        """Returns the modifier of one of the six abilities."""
        return self.abilities.modifier(ability)

    @property
    def proficiency_bonus(self) -> int:
        return get_proficiency_bonus(self.level)

    def is_proficient(self, action: SkillAction) -> bool:
        """
        Checks proficiency by explicit tag or by archetype.

        Args:
            action (SkillAction): The skill action to check.

        Returns:
            bool: True if the combatant is proficient in the action.

        """
        return (
            action.value in self.proficiencies
            or action in self.capabilities.proficiencies
        )

    @property
    def effective_armor_class(self) -> int:
        bonus = sum(effect.info.armor_bonus for effect in self.status_effects)
        return self.armor_class + self.equipment.armor_bonus + bonus

    # ============================================================================
    # HIT POINTS
    # ============================================================================

    def is_alive(self) -> bool:
        return self.hp > 0

    @property
    def hp_ratio(self) -> float:
        return self.hp / self.max_hp if self.max_hp > 0 else 0.0

    def take_damage(self, amount: int) -> int:
        """
        Reduces HP, never below zero.

        Args:
            amount (int): The damage to apply.

        Returns:
            int: The HP actually lost.

        """
        lost = min(self.hp, max(0, amount))
        self.hp -= lost
        return lost

    def heal(self, amount: int) -> int:
        """
        Restores HP, never above the maximum.

        Args:
            amount (int): The healing to apply.

        Returns:
            int: The HP actually restored.

        """
        restored = min(self.max_hp - self.hp, max(0, amount))
        self.hp += restored
        return restored

    # ============================================================================
    # STATUS EFFECTS
    # ============================================================================

    def has_status(self, kind: StatusEffectType) -> bool:
        return any(effect.kind == kind for effect in self.status_effects)

    def add_status_effect(self, effect: StatusEffect) -> bool:
        """Applies an effect, refreshing it if already present."""
        return merge_status_effect(self.status_effects, effect)

    def remove_status_effect(self, kind: StatusEffectType) -> bool:
        for effect in self.status_effects:
            if effect.kind == kind:
                self.status_effects.remove(effect)
                return True
        return False

    # ============================================================================
    # COOLDOWNS AND ITEMS
    # ============================================================================

    def cooldown_remaining(self, action_type: ActionType) -> int:
        return self.cooldowns.get(action_type, 0)

    def is_on_cooldown(self, action_type: ActionType) -> bool:
        return self.cooldown_remaining(action_type) > 0

    def find_item(self, keyword: str) -> Optional[str]:
        """Returns the first inventory item whose name contains the keyword."""
        keyword = keyword.lower()
        for item in self.items:
            if keyword in item.lower():
                return item
        return None

    def find_healing_item(self) -> Optional[str]:
        """Returns the first item that restores hit points, if any."""
        for keyword in HEALING_ITEM_KEYWORDS:
            item = self.find_item(keyword)
            if item is not None:
                return item
        return None

    def has_healing_item(self) -> bool:
        return self.find_healing_item() is not None

    # ============================================================================
    # DISPLAY
    # ============================================================================

    def status_line(self, show_numbers: bool = True, show_bars: bool = True) -> str:
        """
        Returns a one-line rich-markup summary of the combatant.

        Args:
            show_numbers (bool): Show the HP numbers.
            show_bars (bool): Show the HP bar.

        """
        line = f"{self.side.emoji} {self.side.colorize(self.name):<20}"
        if show_numbers:
            line += f" HP {self.hp:>3}/{self.max_hp:<3}"
        if show_bars:
            line += " " + make_bar(self.hp, self.max_hp, color=hp_color(self.hp, self.max_hp))
        if self.status_effects:
            line += " " + " ".join(str(effect) for effect in self.status_effects)
        return line


# ============================================================================
# NORMALIZATION BOUNDARY
# ============================================================================


def normalize_tag(tag: str) -> str:
    """
    Converts a proficiency tag to snake_case.

    "pickLock", "Pick Lock" and "pick-lock" all become "pick_lock".
    """
    tag = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", tag.strip())
    return re.sub(r"[\s\-]+", "_", tag).lower()


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def _normalize_id(raw_id: Any, side: Side, index: int, context: dict[str, Any]) -> str:
    base = ensure_string(raw_id, "id", default="", context=context).strip()
    if side == Side.ADVERSARY:
        if not base:
            return f"{ADVERSARY_ID_PREFIX}{index}"
        return base if is_adversary_id(base) else f"{ADVERSARY_ID_PREFIX}{base}"
    if not base:
        return f"{PARTY_ID_PREFIX}{index}"
    if is_adversary_id(base):
        log_warning(
            f"Party member id '{base}' uses the adversary prefix, renaming",
            context,
        )
        return f"{PARTY_ID_PREFIX}{base}"
    return base


def _normalize_abilities(record: Mapping[str, Any], context: dict[str, Any]) -> AbilityScores:
    source = ensure_mapping(
        _first_present(record, "abilities", "stats", "ability_scores", "abilityScores"),
        "abilities",
        context,
    ) or dict(record)
    # Accept both full names and abbreviations, in any case.
    lowered = {str(key).lower(): value for key, value in source.items()}
    scores: dict[str, int] = {}
    for ability in Ability:
        raw = _first_present(lowered, ability.value, ability.value[:3])
        scores[ability.value] = ensure_int_in_range(
            raw, ability.value, 1, 30, DEFAULT_ABILITY_SCORE, context
        )
    return AbilityScores(**scores)


def _normalize_slot(raw: Any, slot: str, context: dict[str, Any]) -> Optional[EquipmentSlot]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return EquipmentSlot(name=raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return EquipmentSlot(
            name=slot,
            bonus=ensure_int_in_range(raw, f"{slot} bonus", -10, 10, 0, context),
        )
    data = ensure_mapping(raw, slot, context)
    if not data:
        return None
    bonus = _first_present(
        data, "bonus", "damage_bonus", "damageBonus", "defense_bonus", "defenseBonus"
    )
    return EquipmentSlot(
        name=ensure_string(data.get("name"), f"{slot} name", default=slot, context=context),
        bonus=ensure_int_in_range(bonus, f"{slot} bonus", -10, 10, 0, context),
    )


def _normalize_equipment(record: Mapping[str, Any], context: dict[str, Any]) -> Equipment:
    data = ensure_mapping(record.get("equipment"), "equipment", context)
    weapon = _normalize_slot(
        _first_present(data, "weapon", "mainHand", "main_hand") or record.get("weapon"),
        "weapon",
        context,
    )
    bonus = _first_present(record, "weapon_bonus", "weaponBonus")
    if bonus is not None:
        weapon = weapon or EquipmentSlot(name="weapon")
        weapon.bonus = ensure_int_in_range(bonus, "weapon bonus", -10, 10, 0, context)
    return Equipment(
        weapon=weapon,
        armor=_normalize_slot(_first_present(data, "armor", "chest"), "armor", context),
        focus=_normalize_slot(
            _first_present(data, "focus", "accessory", "trinket"), "focus", context
        ),
    )


def _normalize_dice(raw: Any, param_name: str, default: str, context: dict[str, Any]) -> str:
    if raw is None:
        return default
    try:
        return str(parse_dice_notation(str(raw)))
    except DiceNotationError as e:
        log_warning(
            f"{param_name} has invalid dice notation '{raw}', correcting to {default}",
            {**context, "error": str(e)},
        )
        return default


def _normalize_status_effects(raw: Any, context: dict[str, Any]) -> list[StatusEffect]:
    effects: list[StatusEffect] = []
    if raw is None:
        return effects
    if not isinstance(raw, list):
        raw = [raw]
    for entry in raw:
        if isinstance(entry, str):
            kind_name, duration = entry, None
        elif isinstance(entry, dict):
            kind_name = _first_present(entry, "kind", "type", "name")
            duration = entry.get("duration")
        else:
            kind_name, duration = None, None
        try:
            kind = StatusEffectType(str(kind_name).strip().lower())
        except ValueError:
            log_warning(f"Unknown status effect '{kind_name}', skipping", context)
            continue
        effect = StatusEffect.create(kind)
        if duration is not None:
            effect.duration = ensure_int_in_range(
                duration, f"{kind.value} duration", 1, None, effect.duration, context
            )
        merge_status_effect(effects, effect)
    return effects


def normalize_combatant(
    record: Mapping[str, Any] | Combatant,
    side: Side,
    index: int = 0,
) -> Combatant:
    """
    Builds a validated combatant from an external record.

    Every missing numeric field takes its default (abilities 10, HP 10,
    armor class 10, level 1); non-numeric and non-finite values are logged
    and replaced, so that no invalid number ever reaches the damage math.
    The identifier is adjusted to the side's naming convention.

    Args:
        record (Mapping[str, Any] | Combatant): The external record.
        side (Side): The side the combatant fights on.
        index (int): Position in its group, used for generated ids and names.

    Returns:
        Combatant: The normalized combatant.

    """
    if isinstance(record, Combatant):
        combatant = record.model_copy(deep=True)
        combatant.id = _normalize_id(combatant.id, side, index, {"name": combatant.name})
        return combatant

    record = ensure_mapping(record, "combatant record", {"index": index})
    name = ensure_string(record.get("name"), "name", context={"index": index}).strip()
    if not name:
        name = f"{'Adversary' if side == Side.ADVERSARY else 'Adventurer'} {index + 1}"
    context: dict[str, Any] = {"combatant": name, "side": side.value}

    level = ensure_int_in_range(record.get("level"), "level", 1, None, DEFAULT_LEVEL, context)

    raw_max_hp = _first_present(record, "max_hp", "maxHp", "maxHP", "hit_points_max")
    raw_hp = _first_present(record, "hp", "current_hp", "currentHp", "hit_points")
    if raw_max_hp is None:
        # Without a maximum, a valid current HP stands in for it.
        max_hp = ensure_int_in_range(raw_hp, "hp", 1, None, DEFAULT_HP, context)
    else:
        max_hp = ensure_int_in_range(raw_max_hp, "max_hp", 1, None, DEFAULT_HP, context)
    hp = ensure_int_in_range(raw_hp, "hp", 0, max_hp, max_hp, context)

    proficiencies = {
        normalize_tag(tag)
        for tag in ensure_list_of_strings(record.get("proficiencies"), "proficiencies", context=context)
        if tag.strip()
    }

    return Combatant(
        id=_normalize_id(
            _first_present(record, "id", "userId", "user_id"), side, index, context
        ),
        name=name,
        abilities=_normalize_abilities(record, context),
        level=level,
        hp=hp,
        max_hp=max_hp,
        armor_class=ensure_int_in_range(
            _first_present(record, "armor_class", "armorClass", "ac"),
            "armor_class",
            0,
            None,
            DEFAULT_ARMOR_CLASS,
            context,
        ),
        archetype=Archetype.from_tag(
            _first_present(record, "archetype", "class", "characterClass", "character_class", "type")
        ),
        proficiencies=proficiencies,
        equipment=_normalize_equipment(record, context),
        damage_dice=_normalize_dice(
            _first_present(record, "damage", "damage_dice"), "damage", DEFAULT_DAMAGE_DICE, context
        ),
        spell_dice=_normalize_dice(
            _first_present(record, "spell_damage", "spellDamage", "spell_dice"),
            "spell_damage",
            DEFAULT_SPELL_DICE,
            context,
        ),
        items=ensure_list_of_strings(
            _first_present(record, "items", "inventory"), "items", context=context
        ),
        status_effects=_normalize_status_effects(
            _first_present(record, "status_effects", "statusEffects"), context
        ),
    )
