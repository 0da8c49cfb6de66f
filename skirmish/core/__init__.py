"""
Core system module for the skirmish engine.

This module contains the fundamental components the rest of the engine is
built on, including game constants, dice rolling mechanics, input coercion
helpers, logging setup and console utilities. Content loading and the
display sheets live in `core.content` and `core.sheets`.
"""

from .constants import (
    ACTION_COOLDOWNS,
    ADVERSARY_ID_PREFIX,
    PARTY_ID_PREFIX,
    Ability,
    ActionType,
    DamageType,
    DegreeOfSuccess,
    DifficultyClass,
    NiceEnum,
    SessionState,
    Side,
    SkillAction,
    StatusEffectType,
    ValidationType,
    describe_difficulty,
    is_adversary_id,
)
from .dice_parser import (
    AdvantageRoll,
    DiceNotation,
    DiceNotationError,
    DiceRoller,
    RollBreakdown,
    get_default_roller,
    parse_dice_notation,
    roll_dice,
    roll_die,
    roll_with_advantage,
    roll_with_disadvantage,
    set_default_seed,
)
from .error_handling import (
    ensure_int_in_range,
    ensure_list_of_strings,
    ensure_mapping,
    ensure_non_negative_int,
    ensure_string,
)
from .logging import get_logger, setup_logging
from .utils import (
    ccapture,
    cprint,
    crule,
    format_modifier,
    get_proficiency_bonus,
    get_stat_modifier,
    hp_color,
    make_bar,
)

__all__ = [
    # Import from constants.py
    "ACTION_COOLDOWNS",
    "ADVERSARY_ID_PREFIX",
    "PARTY_ID_PREFIX",
    "Ability",
    "ActionType",
    "DamageType",
    "DegreeOfSuccess",
    "DifficultyClass",
    "NiceEnum",
    "SessionState",
    "Side",
    "SkillAction",
    "StatusEffectType",
    "ValidationType",
    "describe_difficulty",
    "is_adversary_id",
    # Import from dice_parser.py
    "AdvantageRoll",
    "DiceNotation",
    "DiceNotationError",
    "DiceRoller",
    "RollBreakdown",
    "get_default_roller",
    "parse_dice_notation",
    "roll_dice",
    "roll_die",
    "roll_with_advantage",
    "roll_with_disadvantage",
    "set_default_seed",
    # Import from error_handling.py
    "ensure_int_in_range",
    "ensure_list_of_strings",
    "ensure_mapping",
    "ensure_non_negative_int",
    "ensure_string",
    # Import from logging.py
    "get_logger",
    "setup_logging",
    # Import from utils.py
    "ccapture",
    "cprint",
    "crule",
    "format_modifier",
    "get_proficiency_bonus",
    "get_stat_modifier",
    "hp_color",
    "make_bar",
]
