"""
Skill check resolution.

A skill check rolls one d20 and adds the primary ability modifier, the
proficiency bonus (when proficient), and the sum of the recognized
circumstance modifiers. The total is compared with a difficulty class
and the margin is classified into a degree of success.
"""

from collections.abc import Iterable, Sequence
from typing import Optional

from catchery import log_debug
from pydantic import BaseModel, ConfigDict, Field

from ..character.combatant import Combatant, normalize_tag
from ..core.constants import Ability, DegreeOfSuccess, SkillAction, describe_difficulty
from ..core.dice_parser import DiceRoller, get_default_roller
from ..core.utils import format_modifier


class SkillActionInfo(BaseModel):
    """Abilities and base difficulty of a skill action."""

    model_config = ConfigDict(frozen=True)

    primary: Ability
    secondary: Ability
    base_dc: int
    description: str


SKILL_ACTIONS: dict[SkillAction, SkillActionInfo] = {
    SkillAction.ATTACK: SkillActionInfo(
        primary=Ability.STRENGTH, secondary=Ability.DEXTERITY, base_dc=10,
        description="Make a physical attack",
    ),
    SkillAction.SPELL: SkillActionInfo(
        primary=Ability.INTELLIGENCE, secondary=Ability.WISDOM, base_dc=12,
        description="Cast a spell",
    ),
    SkillAction.DODGE: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.WISDOM, base_dc=15,
        description="Evade an attack",
    ),
    SkillAction.PARRY: SkillActionInfo(
        primary=Ability.STRENGTH, secondary=Ability.DEXTERITY, base_dc=18,
        description="Block an incoming attack",
    ),
    SkillAction.BACKFLIP: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.STRENGTH, base_dc=20,
        description="Perform a backflip",
    ),
    SkillAction.SOMERSAULT: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.STRENGTH, base_dc=18,
        description="Perform a somersault",
    ),
    SkillAction.CARTWHEEL: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.STRENGTH, base_dc=16,
        description="Perform a cartwheel",
    ),
    SkillAction.WALL_RUN: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.STRENGTH, base_dc=22,
        description="Run along a wall",
    ),
    SkillAction.JUMP: SkillActionInfo(
        primary=Ability.STRENGTH, secondary=Ability.DEXTERITY, base_dc=12,
        description="Jump over an obstacle",
    ),
    SkillAction.CLIMB: SkillActionInfo(
        primary=Ability.STRENGTH, secondary=Ability.DEXTERITY, base_dc=15,
        description="Climb a surface",
    ),
    SkillAction.SWIM: SkillActionInfo(
        primary=Ability.STRENGTH, secondary=Ability.CONSTITUTION, base_dc=14,
        description="Swim through water",
    ),
    SkillAction.FLY: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.INTELLIGENCE, base_dc=30,
        description="Fly through the air",
    ),
    SkillAction.PERSUADE: SkillActionInfo(
        primary=Ability.CHARISMA, secondary=Ability.INTELLIGENCE, base_dc=15,
        description="Convince someone",
    ),
    SkillAction.INTIMIDATE: SkillActionInfo(
        primary=Ability.CHARISMA, secondary=Ability.STRENGTH, base_dc=16,
        description="Threaten someone",
    ),
    SkillAction.DECEIVE: SkillActionInfo(
        primary=Ability.CHARISMA, secondary=Ability.INTELLIGENCE, base_dc=18,
        description="Lie convincingly",
    ),
    SkillAction.SPOT: SkillActionInfo(
        primary=Ability.WISDOM, secondary=Ability.INTELLIGENCE, base_dc=12,
        description="Notice something hidden",
    ),
    SkillAction.LISTEN: SkillActionInfo(
        primary=Ability.WISDOM, secondary=Ability.INTELLIGENCE, base_dc=10,
        description="Hear something quiet",
    ),
    SkillAction.SEARCH: SkillActionInfo(
        primary=Ability.INTELLIGENCE, secondary=Ability.WISDOM, base_dc=14,
        description="Search for something",
    ),
    SkillAction.PICK_LOCK: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.INTELLIGENCE, base_dc=20,
        description="Pick a lock",
    ),
    SkillAction.DISARM_TRAP: SkillActionInfo(
        primary=Ability.DEXTERITY, secondary=Ability.INTELLIGENCE, base_dc=22,
        description="Disarm a trap",
    ),
    SkillAction.HEAL: SkillActionInfo(
        primary=Ability.WISDOM, secondary=Ability.INTELLIGENCE, base_dc=16,
        description="Heal wounds",
    ),
    SkillAction.CRAFT: SkillActionInfo(
        primary=Ability.INTELLIGENCE, secondary=Ability.DEXTERITY, base_dc=18,
        description="Craft an item",
    ),
}

# Situational modifiers, grouped by what they describe.
CIRCUMSTANCE_CATEGORIES: dict[str, dict[str, int]] = {
    "environment": {
        "in darkness": -2,
        "in bright light": 1,
        "in difficult terrain": -2,
        "on slippery surface": -3,
        "in water": -2,
        "in tight space": -1,
        "with cover": 2,
        "with high ground": 1,
        "with low ground": -1,
    },
    "equipment": {
        "with proper tools": 2,
        "with improvised tools": -1,
        "without tools": -3,
        "with magical item": 1,
        "with masterwork item": 2,
    },
    "status": {
        "while injured": -2,
        "while exhausted": -3,
        "while hasted": 2,
        "while blessed": 1,
        "while cursed": -2,
        "while poisoned": -1,
    },
    "time": {
        "under time pressure": -2,
        "with preparation": 1,
        "with careful planning": 2,
        "in a hurry": -2,
    },
    "social": {
        "with authority": 1,
        "with evidence": 2,
        "with witnesses": -1,
        "in private": 1,
        "in public": -1,
    },
    "sequence": {
        "with momentum": 1,
        "while fatigued": -2,
    },
}

CIRCUMSTANCE_MODIFIERS: dict[str, int] = {
    phrase: value
    for category in CIRCUMSTANCE_CATEGORIES.values()
    for phrase, value in category.items()
}

MOMENTUM = "with momentum"
FATIGUE = "while fatigued"
SEQUENCE_SUCCESS_STEP = 1
SEQUENCE_FAILURE_STEP = -2

# Degree thresholds on the margin.
GREAT_MARGIN = 5
CRITICAL_MARGIN = 10


def parse_skill_action(action: SkillAction | str) -> SkillAction:
    """
    Resolves a skill action from an enum or a tag such as "pickLock".

    Raises:
        ValueError: If the tag names no skill action.

    """
    if isinstance(action, SkillAction):
        return action
    return SkillAction(normalize_tag(action))


def get_circumstance_modifier(circumstances: Iterable[str]) -> int:
    """
    Sums the modifiers of the recognized circumstances.

    Unknown circumstances contribute 0.

    Args:
        circumstances (Iterable[str]): Circumstance phrases.

    Returns:
        int: The total circumstance modifier.

    """
    return sum(CIRCUMSTANCE_MODIFIERS.get(c.strip().lower(), 0) for c in circumstances)


def determine_degree(success: bool, margin: int) -> DegreeOfSuccess:
    """
    Classifies a check from its success and margin.

    Args:
        success (bool): Whether the total met the DC.
        margin (int): Total minus DC.

    Returns:
        DegreeOfSuccess: The outcome tier.

    """
    if success:
        if margin >= CRITICAL_MARGIN:
            return DegreeOfSuccess.CRITICAL_SUCCESS
        if margin >= GREAT_MARGIN:
            return DegreeOfSuccess.GREAT_SUCCESS
        return DegreeOfSuccess.SUCCESS
    if margin <= -CRITICAL_MARGIN:
        return DegreeOfSuccess.CRITICAL_FAILURE
    if margin <= -GREAT_MARGIN:
        return DegreeOfSuccess.GREAT_FAILURE
    return DegreeOfSuccess.FAILURE


class SkillCheckResult(BaseModel):
    """Outcome of a single skill check."""

    model_config = ConfigDict(frozen=True)

    action: SkillAction = Field(description="The action attempted")
    roll: int = Field(description="The raw d20 roll")
    total: int = Field(description="Roll plus all modifiers")
    dc: int = Field(description="The difficulty class to meet")
    primary_ability: Ability
    secondary_ability: Ability
    primary_modifier: int
    secondary_modifier: int = Field(
        description="Reported for reference, never added to the total"
    )
    proficient: bool
    proficiency_modifier: int
    circumstance_modifier: int
    circumstances: tuple[str, ...] = Field(default=())
    success: bool
    margin: int
    degree: DegreeOfSuccess

    @property
    def difficulty(self) -> str:
        return describe_difficulty(self.dc)

    @property
    def is_critical_failure(self) -> bool:
        return self.degree == DegreeOfSuccess.CRITICAL_FAILURE

    def describe(self) -> str:
        """Returns a one-line summary, e.g. "Attack: 15 +3 +2 = 20 vs DC 10"."""
        parts = [str(self.roll), format_modifier(self.primary_modifier)]
        if self.proficiency_modifier:
            parts.append(format_modifier(self.proficiency_modifier))
        if self.circumstance_modifier:
            parts.append(format_modifier(self.circumstance_modifier))
        return (
            f"{self.action.display_name}: {' '.join(parts)} = {self.total} "
            f"vs DC {self.dc} ({self.difficulty}) -> {self.degree.display_name}"
        )


def perform_skill_check(
    combatant: Combatant,
    action: SkillAction | str,
    circumstances: Sequence[str] = (),
    target_dc: Optional[int] = None,
    roll: Optional[int] = None,
    dice: Optional[DiceRoller] = None,
) -> SkillCheckResult:
    """
    Resolves one action of a combatant against a difficulty class.

    Args:
        combatant (Combatant): The acting combatant.
        action (SkillAction | str): The action attempted.
        circumstances (Sequence[str]): Situational phrases, e.g. "in darkness".
        target_dc (Optional[int]): Overrides the action's base DC.
        roll (Optional[int]): Forces the d20 result instead of rolling.
        dice (Optional[DiceRoller]): The roller used when no roll is forced.

    Returns:
        SkillCheckResult: The full breakdown of the check.

    Raises:
        ValueError: If the action is unknown or the forced roll is not in [1, 20].

    """
    action = parse_skill_action(action)
    info = SKILL_ACTIONS[action]

    if roll is None:
        roll = (dice or get_default_roller()).roll_d20()
    elif not 1 <= roll <= 20:
        raise ValueError(f"A d20 roll must be between 1 and 20, got {roll}")

    # Gather the modifiers.
    primary_modifier = combatant.modifier(info.primary)
    proficient = combatant.is_proficient(action)
    proficiency_modifier = combatant.proficiency_bonus if proficient else 0
    circumstance_modifier = get_circumstance_modifier(circumstances)

    # Compare with the difficulty.
    total = roll + primary_modifier + proficiency_modifier + circumstance_modifier
    dc = info.base_dc if target_dc is None else target_dc
    success = total >= dc
    margin = total - dc

    result = SkillCheckResult(
        action=action,
        roll=roll,
        total=total,
        dc=dc,
        primary_ability=info.primary,
        secondary_ability=info.secondary,
        primary_modifier=primary_modifier,
        secondary_modifier=combatant.modifier(info.secondary),
        proficient=proficient,
        proficiency_modifier=proficiency_modifier,
        circumstance_modifier=circumstance_modifier,
        circumstances=tuple(circumstances),
        success=success,
        margin=margin,
        degree=determine_degree(success, margin),
    )
    log_debug(
        f"{combatant.name} skill check: {result.describe()}",
        {"combatant": combatant.id, "action": action.value, "total": total, "dc": dc},
    )
    return result


class SequenceResult(BaseModel):
    """Outcome of several actions attempted one after the other."""

    checks: list[SkillCheckResult] = Field(default_factory=list)
    overall_success: bool = True
    critical_failures: list[SkillAction] = Field(default_factory=list)
    cumulative_modifier: int = 0


def perform_action_sequence(
    combatant: Combatant,
    actions: Sequence[SkillAction | str],
    base_circumstances: Sequence[str] = (),
    target_dc: Optional[int] = None,
    dice: Optional[DiceRoller] = None,
) -> SequenceResult:
    """
    Resolves a chain of actions where each outcome affects the next.

    Every success adds 1 to a running modifier and every failure takes 2
    away. While the running modifier is positive the next check gains the
    momentum circumstance; while it is negative the fatigue circumstance.

    Args:
        combatant (Combatant): The acting combatant.
        actions (Sequence[SkillAction | str]): The actions, in order.
        base_circumstances (Sequence[str]): Circumstances shared by every check.
        target_dc (Optional[int]): Overrides every action's base DC.
        dice (Optional[DiceRoller]): The roller for the d20s.

    Returns:
        SequenceResult: Every check plus the aggregated outcome.

    """
    sequence = SequenceResult()
    for action in actions:
        circumstances = list(base_circumstances)
        if sequence.cumulative_modifier > 0:
            circumstances.append(MOMENTUM)
        elif sequence.cumulative_modifier < 0:
            circumstances.append(FATIGUE)
        result = perform_skill_check(
            combatant, action, circumstances, target_dc=target_dc, dice=dice
        )
        sequence.checks.append(result)
        if result.success:
            sequence.cumulative_modifier += SEQUENCE_SUCCESS_STEP
        else:
            sequence.overall_success = False
            sequence.cumulative_modifier += SEQUENCE_FAILURE_STEP
        if result.is_critical_failure:
            sequence.critical_failures.append(result.action)
    return sequence


# ============================================================================
# NARRATIVE
# ============================================================================

_DEGREE_PHRASES: dict[DegreeOfSuccess, str] = {
    DegreeOfSuccess.CRITICAL_SUCCESS: "flawlessly, beyond all expectation",
    DegreeOfSuccess.GREAT_SUCCESS: "with impressive skill",
    DegreeOfSuccess.SUCCESS: "successfully",
    DegreeOfSuccess.FAILURE: "but falls just short",
    DegreeOfSuccess.GREAT_FAILURE: "but it goes badly wrong",
    DegreeOfSuccess.CRITICAL_FAILURE: "and fails spectacularly",
}


def narrate_check(name: str, result: SkillCheckResult) -> str:
    """Returns a short sentence describing a check, e.g. "Aria attempts to climb successfully"."""
    verb = SKILL_ACTIONS[result.action].description.lower()
    return f"{name} attempts to {verb} {_DEGREE_PHRASES[result.degree]}."


def suggest_next_action(result: SkillCheckResult) -> str:
    """Suggests how to follow up on a check."""
    if result.degree == DegreeOfSuccess.CRITICAL_FAILURE:
        return "That went badly. Consider a safer approach or retreat."
    if not result.success:
        return "Try a different approach, or prepare better before trying again."
    if result.degree == DegreeOfSuccess.CRITICAL_SUCCESS:
        return "A perfect execution. Press the advantage!"
    return "Well done. Continue with your plan."
