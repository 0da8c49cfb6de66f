"""
Shared fixtures for the skirmish tests.
"""

import pytest

from skirmish.character.archetype import Archetype
from skirmish.character.combatant import AbilityScores, Combatant
from skirmish.core.dice_parser import DiceRoller


class ScriptedDice(DiceRoller):
    """
    A roller returning queued values in order.

    Once the queue is empty every roll returns the lowest possible value,
    which is never a critical and always picks the first item of a choice.
    """

    def __init__(self, *values: int) -> None:
        super().__init__(seed=0)
        self.values = list(values)
        self.calls: list[tuple[int, int]] = []

    def push(self, *values: int) -> "ScriptedDice":
        self.values.extend(values)
        return self

    def randint(self, low: int, high: int) -> int:
        self.calls.append((low, high))
        if not self.values:
            return low
        value = self.values.pop(0)
        assert low <= value <= high, f"scripted {value} outside [{low}, {high}]"
        return value


def make_combatant(
    id: str,
    name: str | None = None,
    archetype: Archetype = Archetype.GENERIC,
    **kwargs,
) -> Combatant:
    abilities = kwargs.pop("abilities", None)
    return Combatant(
        id=id,
        name=name or id,
        archetype=archetype,
        abilities=AbilityScores(**(abilities or {})),
        **kwargs,
    )


@pytest.fixture
def dice():
    return ScriptedDice()


@pytest.fixture
def fighter():
    """A level 1 fighter with STR 16."""
    return make_combatant(
        "player_1",
        "Aria",
        Archetype.FIGHTER,
        abilities={"strength": 16, "dexterity": 12},
        hp=20,
        max_hp=20,
        armor_class=16,
    )


@pytest.fixture
def wizard():
    """A level 1 wizard with INT 16."""
    return make_combatant(
        "player_2",
        "Bram",
        Archetype.WIZARD,
        abilities={"intelligence": 16, "dexterity": 14},
        hp=12,
        max_hp=12,
        armor_class=12,
    )


@pytest.fixture
def goblin():
    """A plain level 1 adversary with default scores."""
    return make_combatant("enemy_goblin", "Goblin", hp=10, max_hp=10)


@pytest.fixture
def orc():
    return make_combatant(
        "enemy_orc",
        "Orc",
        abilities={"strength": 14},
        hp=15,
        max_hp=15,
    )


@pytest.fixture
def make():
    """Factory building a combatant from an id and keyword fields."""
    return make_combatant
