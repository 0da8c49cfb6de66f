"""
Skirmish: a turn-based tabletop combat engine with a dice-driven validator
for free-text action descriptions.

The most used entry points are re-exported here; the subpackages hold the
rest.
"""

from .checks.action_validator import ValidationResult, validate_action
from .checks.skill_check import perform_action_sequence, perform_skill_check
from .combat.combat_manager import CombatEngine, SessionRegistry
from .combat.combat_session import ActionOutcome, ActionRequest, CombatSession, EngineConfig
from .core.dice_parser import DiceRoller

__version__ = "0.1.0"

__all__ = [
    "ActionOutcome",
    "ActionRequest",
    "CombatEngine",
    "CombatSession",
    "DiceRoller",
    "EngineConfig",
    "SessionRegistry",
    "ValidationResult",
    "perform_action_sequence",
    "perform_skill_check",
    "validate_action",
]
