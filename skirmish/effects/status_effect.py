"""
Status effects attached to combatants.

A status effect is a timed condition. Its duration decrements by exactly one
each time its owner starts a turn, and it is removed as soon as the duration
reaches zero. Applying an effect the owner already has refreshes it instead
of stacking a second copy.
"""

from typing import TYPE_CHECKING, Any, Optional

from catchery import log_debug
from pydantic import BaseModel, Field

from ..core.constants import DamageType, StatusEffectType
from ..core.dice_parser import DiceRoller, get_default_roller

if TYPE_CHECKING:
    from ..character.combatant import Combatant


class StatusEffectInfo(BaseModel):
    """Static rules of one kind of status effect."""

    duration: int = Field(description="Default duration in turns")
    description: str = Field(description="What the effect does")
    damage_per_turn: int = Field(default=0, description="HP lost at turn start")
    damage_type: DamageType = Field(default=DamageType.PHYSICAL)
    skip_chance: float = Field(
        default=0.0,
        description="Probability of losing the turn, 1.0 means always",
    )
    initiative_modifier: int = Field(default=0)
    attack_bonus: int = Field(default=0, description="Bonus to attack damage")
    armor_bonus: int = Field(default=0)


STATUS_EFFECT_TABLE: dict[StatusEffectType, StatusEffectInfo] = {
    StatusEffectType.POISONED: StatusEffectInfo(
        duration=3,
        description="Lose 1 HP per turn",
        damage_per_turn=1,
        damage_type=DamageType.POISON,
    ),
    StatusEffectType.BURNED: StatusEffectInfo(
        duration=2,
        description="Lose 2 HP per turn",
        damage_per_turn=2,
        damage_type=DamageType.FIRE,
    ),
    StatusEffectType.FROZEN: StatusEffectInfo(
        duration=1,
        description="Skip next turn",
        skip_chance=1.0,
    ),
    StatusEffectType.PARALYZED: StatusEffectInfo(
        duration=2,
        description="50% chance to skip turn",
        skip_chance=0.5,
        initiative_modifier=-3,
    ),
    StatusEffectType.CONFUSED: StatusEffectInfo(
        duration=2,
        description="Acts erratically",
    ),
    StatusEffectType.BLESSED: StatusEffectInfo(
        duration=3,
        description="+2 to attack damage",
        attack_bonus=2,
    ),
    StatusEffectType.HASTED: StatusEffectInfo(
        duration=2,
        description="+5 to initiative",
        initiative_modifier=5,
    ),
    StatusEffectType.DEFENSIVE: StatusEffectInfo(
        duration=1,
        description="+2 armor class until the next turn",
        armor_bonus=2,
    ),
    StatusEffectType.STUNNED: StatusEffectInfo(
        duration=1,
        description="Skip next turn",
        skip_chance=1.0,
    ),
    StatusEffectType.BLEEDING: StatusEffectInfo(
        duration=2,
        description="Lose 1 HP per turn",
        damage_per_turn=1,
    ),
}


class StatusEffect(BaseModel):
    """An active status effect on a combatant."""

    kind: StatusEffectType = Field(description="The kind of effect")
    duration: int = Field(description="Remaining turns")
    description: str = Field(default="", description="Textual effect description")
    source: Optional[str] = Field(
        default=None,
        description="Id of the combatant that applied the effect",
    )

    def model_post_init(self, _: Any) -> None:
        if self.duration < 0:
            raise ValueError(f"Status effect duration cannot be negative: {self.duration}")
        if not self.description:
            self.description = self.info.description

    @property
    def info(self) -> StatusEffectInfo:
        return STATUS_EFFECT_TABLE[self.kind]

    @property
    def is_expired(self) -> bool:
        return self.duration <= 0

    def __str__(self) -> str:
        return f"{self.kind.emoji} {self.kind.display_name} ({self.duration})"

    @classmethod
    def create(
        cls,
        kind: StatusEffectType,
        duration: Optional[int] = None,
        source: Optional[str] = None,
    ) -> "StatusEffect":
        """
        Creates an effect with the default duration of its kind.

        Args:
            kind (StatusEffectType): The kind of effect.
            duration (Optional[int]): Overrides the default duration.
            source (Optional[str]): Id of the combatant applying it.

        Returns:
            StatusEffect: The new effect.

        """
        return cls(
            kind=kind,
            duration=STATUS_EFFECT_TABLE[kind].duration if duration is None else duration,
            source=source,
        )


def merge_status_effect(effects: list[StatusEffect], effect: StatusEffect) -> bool:
    """
    Adds an effect to a list, refreshing an existing effect of the same kind.

    A refresh keeps the larger of the remaining and the new duration.

    Args:
        effects (list[StatusEffect]): The active effects, modified in place.
        effect (StatusEffect): The effect to apply.

    Returns:
        bool: True if the effect was added, False if an existing one was refreshed.

    """
    for existing in effects:
        if existing.kind == effect.kind:
            existing.duration = max(existing.duration, effect.duration)
            existing.source = effect.source or existing.source
            return False
    effects.append(effect.model_copy())
    return True


class StatusTick(BaseModel):
    """Result of processing a combatant's status effects at turn start."""

    combatant_id: str
    damage: int = 0
    skip_turn: bool = False
    skip_reason: Optional[StatusEffectType] = None
    expired: list[StatusEffectType] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)


def tick_status_effects(
    combatant: "Combatant",
    dice: Optional[DiceRoller] = None,
) -> StatusTick:
    """
    Processes the status effects of a combatant at the start of its turn.

    Each effect first applies its periodic damage or its behavioural flag,
    then loses one turn of duration; effects reaching zero are removed.

    Args:
        combatant (Combatant): The combatant starting its turn.
        dice (Optional[DiceRoller]): The roller used for chance-based skips.

    Returns:
        StatusTick: The damage taken, whether the turn is lost, and messages.

    """
    dice = dice or get_default_roller()
    tick = StatusTick(combatant_id=combatant.id)

    for effect in list(combatant.status_effects):
        info = effect.info
        # Apply the periodic damage.
        if info.damage_per_turn > 0 and combatant.hp > 0:
            lost = combatant.take_damage(info.damage_per_turn)
            tick.damage += lost
            tick.messages.append(
                f"{combatant.name} suffers {lost} {info.damage_type.display_name.lower()} "
                f"damage ({effect.kind.display_name.lower()})."
            )
        # Apply the behavioural flag.
        if info.skip_chance > 0 and not tick.skip_turn:
            if info.skip_chance >= 1.0 or dice.chance(info.skip_chance):
                tick.skip_turn = True
                tick.skip_reason = effect.kind
                tick.messages.append(
                    f"{combatant.name} is {effect.kind.display_name.lower()} and loses the turn!"
                )
        # Decrement and expire.
        effect.duration = max(0, effect.duration - 1)
        if effect.is_expired:
            combatant.status_effects.remove(effect)
            tick.expired.append(effect.kind)
            tick.messages.append(
                f"{combatant.name} is no longer {effect.kind.display_name.lower()}."
            )

    if tick.damage or tick.skip_turn or tick.expired:
        log_debug(
            f"Processed status effects of {combatant.name}",
            {
                "combatant": combatant.id,
                "damage": tick.damage,
                "skip_turn": tick.skip_turn,
                "expired": [str(kind) for kind in tick.expired],
            },
        )
    return tick
