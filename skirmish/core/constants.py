"""
Constants and enumerations for the combat engine.

Defines the enumerations for abilities, sides, skill actions, combat
action types, degrees of success, session states, status effects and
validation classifications, plus the fixed tables shared by the
checks and combat subpackages.
"""

from enum import Enum

# Prefix marking a combatant as belonging to the adversary side.
ADVERSARY_ID_PREFIX = "enemy_"

# Prefix given to party combatants whose record carries no identifier.
PARTY_ID_PREFIX = "player_"


class NiceEnum(Enum):
    """An enumeration that provides a nicer string representation."""

    def __str__(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").lower().capitalize()


class Ability(NiceEnum):
    """The six ability scores."""

    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"
    INTELLIGENCE = "intelligence"
    WISDOM = "wisdom"
    CHARISMA = "charisma"

    @property
    def short(self) -> str:
        """Returns the three letter abbreviation of the ability."""
        return self.name[:3]

    @staticmethod
    def from_string(value: str) -> "Ability":
        """
        Parses an ability from its name or abbreviation.

        Args:
            value (str): The ability name, e.g. "strength" or "STR".

        Returns:
            Ability: The matching ability.

        Raises:
            ValueError: If the value names no ability.

        """
        key = value.strip().lower()
        for ability in Ability:
            if key in (ability.value, ability.value[:3]):
                return ability
        raise ValueError(f"Unknown ability: {value}")


class Side(NiceEnum):
    """The two sides of an encounter."""

    PARTY = "party"
    ADVERSARY = "adversary"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this side."""
        return {
            Side.PARTY: "👤",
            Side.ADVERSARY: "👹",
        }.get(self, "❔")

    @property
    def color(self) -> str:
        """Returns the color string associated with this side."""
        return {
            Side.PARTY: "bold blue",
            Side.ADVERSARY: "bold red",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies the side color formatting to a message."""
        return f"[{self.color}]{message}[/]"

    @property
    def opposite(self) -> "Side":
        return Side.ADVERSARY if self == Side.PARTY else Side.PARTY


class SkillAction(NiceEnum):
    """Physical, social and skill actions resolved by a skill check."""

    ATTACK = "attack"
    SPELL = "spell"
    DODGE = "dodge"
    PARRY = "parry"
    BACKFLIP = "backflip"
    SOMERSAULT = "somersault"
    CARTWHEEL = "cartwheel"
    WALL_RUN = "wall_run"
    JUMP = "jump"
    CLIMB = "climb"
    SWIM = "swim"
    FLY = "fly"
    PERSUADE = "persuade"
    INTIMIDATE = "intimidate"
    DECEIVE = "deceive"
    SPOT = "spot"
    LISTEN = "listen"
    SEARCH = "search"
    PICK_LOCK = "pick_lock"
    DISARM_TRAP = "disarm_trap"
    HEAL = "heal"
    CRAFT = "craft"


class ActionType(NiceEnum):
    """The categories of action a combatant can take on its combat turn."""

    ATTACK = "attack"
    SPELL = "spell"
    SPECIAL = "special"
    ITEM = "item"
    DEFEND = "defend"
    ENVIRONMENTAL = "environmental"
    TEAM_UP = "team_up"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this action type."""
        return {
            ActionType.ATTACK: "⚔️",
            ActionType.SPELL: "✨",
            ActionType.SPECIAL: "💥",
            ActionType.ITEM: "🧪",
            ActionType.DEFEND: "🛡️",
            ActionType.ENVIRONMENTAL: "🌲",
            ActionType.TEAM_UP: "🤝",
        }.get(self, "❔")

    @property
    def cooldown(self) -> int:
        """Returns the number of turns before this action can be reused."""
        return ACTION_COOLDOWNS[self]

    @property
    def needs_target(self) -> bool:
        """Whether the action must name a target combatant."""
        return self not in (ActionType.DEFEND, ActionType.ITEM)

    @staticmethod
    def from_string(value: str) -> "ActionType":
        """
        Parses an action type, accepting both "team_up" and "teamUp".

        Raises:
            ValueError: If the value names no action type.

        """
        key = value.strip().replace("-", "_").lower()
        if key == "teamup":
            key = "team_up"
        return ActionType(key)


# Turns an actor must wait before reusing each action type.
ACTION_COOLDOWNS: dict[ActionType, int] = {
    ActionType.ATTACK: 0,
    ActionType.SPELL: 1,
    ActionType.SPECIAL: 2,
    ActionType.ITEM: 0,
    ActionType.DEFEND: 0,
    ActionType.ENVIRONMENTAL: 1,
    ActionType.TEAM_UP: 3,
}


class DegreeOfSuccess(NiceEnum):
    """Outcome tiers of a skill check."""

    CRITICAL_SUCCESS = "critical_success"
    GREAT_SUCCESS = "great_success"
    SUCCESS = "success"
    FAILURE = "failure"
    GREAT_FAILURE = "great_failure"
    CRITICAL_FAILURE = "critical_failure"

    @property
    def color(self) -> str:
        """Returns the color string associated with this tier."""
        return {
            DegreeOfSuccess.CRITICAL_SUCCESS: "bold green",
            DegreeOfSuccess.GREAT_SUCCESS: "green",
            DegreeOfSuccess.SUCCESS: "cyan",
            DegreeOfSuccess.FAILURE: "yellow",
            DegreeOfSuccess.GREAT_FAILURE: "red",
            DegreeOfSuccess.CRITICAL_FAILURE: "bold red",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies the tier color formatting to a message."""
        return f"[{self.color}]{message}[/]"

    @property
    def is_success(self) -> bool:
        return self in (
            DegreeOfSuccess.CRITICAL_SUCCESS,
            DegreeOfSuccess.GREAT_SUCCESS,
            DegreeOfSuccess.SUCCESS,
        )


class SessionState(NiceEnum):
    """Lifecycle states of a combat session."""

    PREPARATION = "preparation"
    ACTIVE = "active"
    VICTORY = "victory"
    DEFEAT = "defeat"
    DRAW = "draw"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.VICTORY, SessionState.DEFEAT, SessionState.DRAW)


class StatusEffectType(NiceEnum):
    """Timed conditions attached to a combatant."""

    POISONED = "poisoned"
    BURNED = "burned"
    FROZEN = "frozen"
    PARALYZED = "paralyzed"
    CONFUSED = "confused"
    BLESSED = "blessed"
    HASTED = "hasted"
    DEFENSIVE = "defensive"
    STUNNED = "stunned"
    BLEEDING = "bleeding"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this status effect."""
        return {
            StatusEffectType.POISONED: "🤢",
            StatusEffectType.BURNED: "🔥",
            StatusEffectType.FROZEN: "🧊",
            StatusEffectType.PARALYZED: "⚡",
            StatusEffectType.CONFUSED: "😵",
            StatusEffectType.BLESSED: "🙏",
            StatusEffectType.HASTED: "💨",
            StatusEffectType.DEFENSIVE: "🛡️",
            StatusEffectType.STUNNED: "💫",
            StatusEffectType.BLEEDING: "🩸",
        }.get(self, "❔")


class ValidationType(NiceEnum):
    """Classification tag produced by the action validator."""

    IMPOSSIBLE = "impossible"
    REDIRECT = "redirect"
    EXPAND = "expand"
    VALID = "valid"

    @property
    def color(self) -> str:
        """Returns the color string associated with this classification."""
        return {
            ValidationType.IMPOSSIBLE: "bold red",
            ValidationType.REDIRECT: "yellow",
            ValidationType.EXPAND: "cyan",
            ValidationType.VALID: "bold green",
        }.get(self, "dim white")


class DamageType(NiceEnum):
    """Damage types dealt by combat actions."""

    PHYSICAL = "physical"
    FIRE = "fire"
    LIGHTNING = "lightning"
    COLD = "cold"
    ARCANE = "arcane"
    RADIANT = "radiant"
    NECROTIC = "necrotic"
    POISON = "poison"

    @property
    def color(self) -> str:
        """Returns the color string associated with this damage type."""
        return {
            DamageType.PHYSICAL: "bold white",
            DamageType.FIRE: "bold red",
            DamageType.LIGHTNING: "bold yellow",
            DamageType.COLD: "bold cyan",
            DamageType.ARCANE: "bold magenta",
            DamageType.RADIANT: "bold bright_yellow",
            DamageType.NECROTIC: "bold purple",
            DamageType.POISON: "bold green",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies the damage type color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class DifficultyClass(NiceEnum):
    """Reference difficulty classes."""

    VERY_EASY = 5
    EASY = 10
    MEDIUM = 15
    HARD = 20
    VERY_HARD = 25
    NEARLY_IMPOSSIBLE = 30


def describe_difficulty(dc: int) -> str:
    """
    Returns a human readable label for a difficulty class.

    Args:
        dc (int): The difficulty class.

    Returns:
        str: The label, from "Very Easy" to "Nearly Impossible".

    """
    for level in DifficultyClass:
        if dc <= level.value and level != DifficultyClass.NEARLY_IMPOSSIBLE:
            return level.name.replace("_", " ").title()
    return "Nearly Impossible"


def is_adversary_id(combatant_id: str) -> bool:
    """Checks whether an identifier follows the adversary naming convention."""
    return combatant_id.startswith(ADVERSARY_ID_PREFIX)
