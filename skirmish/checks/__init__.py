"""
Checks module for the combat engine.

Contains the skill check resolver, the free-text action validator that
drives it, and the story coherence checks.
"""

from .action_validator import (
    ACTION_KEYWORDS,
    ENCOURAGE_RULES,
    EXPAND_RULES,
    IMPOSSIBLE_RULES,
    REDIRECT_RULES,
    ActionCheck,
    Alternative,
    DiceAssessment,
    ExtractedAction,
    PatternRule,
    ValidationResult,
    assess_actions,
    classify_complexity,
    extract_actions,
    extract_circumstances,
    provide_alternatives,
    validate_action,
)
from .skill_check import (
    CIRCUMSTANCE_MODIFIERS,
    SKILL_ACTIONS,
    SequenceResult,
    SkillActionInfo,
    SkillCheckResult,
    determine_degree,
    get_circumstance_modifier,
    narrate_check,
    perform_action_sequence,
    perform_skill_check,
    suggest_next_action,
)
from .story import CoherenceReport, StoryState, check_story_coherence

__all__ = [
    # Import from action_validator.py
    "ACTION_KEYWORDS",
    "ENCOURAGE_RULES",
    "EXPAND_RULES",
    "IMPOSSIBLE_RULES",
    "REDIRECT_RULES",
    "ActionCheck",
    "Alternative",
    "DiceAssessment",
    "ExtractedAction",
    "PatternRule",
    "ValidationResult",
    "assess_actions",
    "classify_complexity",
    "extract_actions",
    "extract_circumstances",
    "provide_alternatives",
    "validate_action",
    # Import from skill_check.py
    "CIRCUMSTANCE_MODIFIERS",
    "SKILL_ACTIONS",
    "SequenceResult",
    "SkillActionInfo",
    "SkillCheckResult",
    "determine_degree",
    "get_circumstance_modifier",
    "narrate_check",
    "perform_action_sequence",
    "perform_skill_check",
    "suggest_next_action",
    # Import from story.py
    "CoherenceReport",
    "StoryState",
    "check_story_coherence",
]
