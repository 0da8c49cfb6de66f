"""
Dice parser module for the combat engine.

Provides the dice primitive used by every other component: uniform die
rolls, advantage and disadvantage rolls, and "NdM+K" notation parsing.
All randomness flows through a `DiceRoller`, so that callers (and tests)
can inject a seeded or scripted source.
"""

import random
import re
from collections import deque
from collections.abc import Sequence
from typing import TypeVar

from catchery import log_warning
from pydantic import BaseModel, Field

_T = TypeVar("_T")

DICE_PATTERN = re.compile(r"^(\d*)D(\d+)([+-]\d+)?$")

# Reasonable limits for a single notation.
MAX_DICE = 100
MAX_SIDES = 1000


class DiceNotationError(ValueError):
    """Raised when a dice notation string cannot be parsed."""


class DiceNotation(BaseModel):
    """A parsed "NdM+K" dice notation."""

    count: int = Field(description="Number of dice to roll")
    sides: int = Field(description="Number of sides of each die")
    modifier: int = Field(default=0, description="Flat modifier added to the sum")

    def __str__(self) -> str:
        text = f"{self.count}d{self.sides}"
        if self.modifier > 0:
            text += f"+{self.modifier}"
        elif self.modifier < 0:
            text += str(self.modifier)
        return text

    @property
    def minimum(self) -> int:
        return self.count + self.modifier

    @property
    def maximum(self) -> int:
        return self.count * self.sides + self.modifier


class RollBreakdown(BaseModel):
    """Class to hold roll breakdown information."""

    value: int = Field(
        description="Total roll result",
    )
    description: str = Field(
        description="Description of the roll",
    )
    rolls: list[int] = Field(
        description="List of individual dice rolls",
        default_factory=list,
    )

    def is_critical(self) -> bool:
        """
        Determines if the roll is a critical hit (natural 20).
        """
        return self.rolls[0] == 20 if self.rolls else False

    def is_fumble(self) -> bool:
        """
        Determines if the roll is a fumble (natural 1).
        """
        return self.rolls[0] == 1 if self.rolls else False


class AdvantageRoll(BaseModel):
    """Result of rolling two d20 and keeping one."""

    value: int = Field(description="The kept roll")
    rolls: list[int] = Field(description="Both raw d20 rolls")
    advantage: bool = Field(description="True if the higher roll was kept")


def parse_dice_notation(notation: str) -> DiceNotation:
    """
    Strictly parses a dice notation such as "2d6", "d20" or "1d8+2".

    Args:
        notation (str): The notation to parse.

    Returns:
        DiceNotation: The parsed notation.

    Raises:
        DiceNotationError: If the notation is malformed or out of limits.

    """
    if not isinstance(notation, str) or not notation.strip():
        raise DiceNotationError(f"Empty dice notation: {notation!r}")
    match = DICE_PATTERN.match(notation.strip().upper().replace(" ", ""))
    if not match:
        raise DiceNotationError(f"Invalid dice notation: {notation!r}")
    count_str, sides_str, modifier_str = match.groups()
    count = int(count_str) if count_str else 1
    sides = int(sides_str)
    if count <= 0 or count > MAX_DICE:
        raise DiceNotationError(
            f"Number of dice must be between 1 and {MAX_DICE}, got {count}"
        )
    if sides <= 0 or sides > MAX_SIDES:
        raise DiceNotationError(
            f"Number of sides must be between 1 and {MAX_SIDES}, got {sides}"
        )
    return DiceNotation(
        count=count,
        sides=sides,
        modifier=int(modifier_str) if modifier_str else 0,
    )


class DiceRoller:
    """
    Source of every die roll in the engine.

    Wraps a private `random.Random` so that an encounter can be replayed
    from a seed. Subclasses may override `randint` to script outcomes.
    """

    def __init__(self, seed: int | None = None, history_size: int = 100) -> None:
        self.seed = seed
        self._random = random.Random(seed)
        self.history: deque[RollBreakdown] = deque(maxlen=history_size)

    def randint(self, low: int, high: int) -> int:
        """Returns a uniform integer in [low, high]."""
        return self._random.randint(low, high)

    def roll_die(self, sides: int) -> int:
        """
        Rolls a single die.

        Args:
            sides (int): The number of sides, at least 1.

        Returns:
            int: A uniform integer in [1, sides].

        Raises:
            DiceNotationError: If sides is not a positive integer.

        """
        if not isinstance(sides, int) or sides < 1:
            raise DiceNotationError(f"A die needs at least one side, got {sides!r}")
        return self.randint(1, sides)

    def roll_d20(self) -> int:
        return self.roll_die(20)

    def roll_notation(self, notation: str | DiceNotation) -> RollBreakdown:
        """
        Rolls a dice notation, raising on malformed input.

        Args:
            notation (str | DiceNotation): The notation to roll.

        Returns:
            RollBreakdown: The total, the description and the single rolls.

        Raises:
            DiceNotationError: If the notation is malformed.

        """
        if not isinstance(notation, DiceNotation):
            notation = parse_dice_notation(notation)
        rolls = [self.roll_die(notation.sides) for _ in range(notation.count)]
        breakdown = RollBreakdown(
            value=sum(rolls) + notation.modifier,
            description=str(notation),
            rolls=rolls,
        )
        self.history.append(breakdown)
        return breakdown

    def roll_dice(self, notation: str) -> int:
        """
        Rolls a dice notation and returns the total.

        Malformed notation is logged and yields 0; use `roll_notation`
        where the failure must be reported to the caller.

        Args:
            notation (str): The notation to roll.

        Returns:
            int: The total, or 0 if the notation is malformed.

        """
        try:
            return self.roll_notation(notation).value
        except DiceNotationError as e:
            log_warning(
                f"Invalid dice notation '{notation}', rolling 0",
                {"notation": notation, "error": str(e)},
            )
            return 0

    def roll_with_advantage(self) -> AdvantageRoll:
        """Rolls two d20 and keeps the higher."""
        rolls = [self.roll_d20(), self.roll_d20()]
        return AdvantageRoll(value=max(rolls), rolls=rolls, advantage=True)

    def roll_with_disadvantage(self) -> AdvantageRoll:
        """Rolls two d20 and keeps the lower."""
        rolls = [self.roll_d20(), self.roll_d20()]
        return AdvantageRoll(value=min(rolls), rolls=rolls, advantage=False)

    def chance(self, probability: float) -> bool:
        """
        Returns True with the given probability, resolved on a d100.

        Args:
            probability (float): Probability in [0, 1].

        """
        threshold = round(max(0.0, min(1.0, probability)) * 100)
        return self.randint(1, 100) <= threshold

    def choice(self, items: Sequence[_T]) -> _T:
        """
        Picks one item uniformly at random.

        Raises:
            IndexError: If the sequence is empty.

        """
        if not items:
            raise IndexError("Cannot choose from an empty sequence")
        return items[self.randint(0, len(items) - 1)]


# The roller used when callers do not supply one.
_default_roller = DiceRoller()


def get_default_roller() -> DiceRoller:
    """Returns the module-wide default roller."""
    return _default_roller


def set_default_seed(seed: int | None) -> DiceRoller:
    """
    Replaces the module-wide default roller with a freshly seeded one.

    Args:
        seed (int | None): The seed, or None for system entropy.

    Returns:
        DiceRoller: The new default roller.

    """
    global _default_roller
    _default_roller = DiceRoller(seed)
    return _default_roller


def roll_die(sides: int) -> int:
    """Rolls a single die with the default roller."""
    return _default_roller.roll_die(sides)


def roll_dice(notation: str) -> int:
    """Rolls a notation with the default roller, returning 0 if malformed."""
    return _default_roller.roll_dice(notation)


def roll_with_advantage() -> AdvantageRoll:
    return _default_roller.roll_with_advantage()


def roll_with_disadvantage() -> AdvantageRoll:
    return _default_roller.roll_with_disadvantage()

