"""
Combat system module for the skirmish engine.

This module handles all combat mechanics including damage calculation, session
management, adversary AI behavior, and turn-based combat resolution.
"""

from .calculations import (
    ITEM_TYPES,
    SPELL_TYPES,
    CalculationResult,
    calculate_action,
    calculate_attack_damage,
    calculate_defend,
    calculate_environmental_damage,
    calculate_item_effect,
    calculate_special_damage,
    calculate_spell_effect,
    calculate_team_up_damage,
    roll_follow_up_effect,
)
from .combat_manager import CombatEngine, SessionRegistry
from .combat_session import (
    ActionOutcome,
    ActionRequest,
    CombatSession,
    EngineConfig,
    TurnStart,
)
from .narrative import (
    ENVIRONMENTAL_FEATURES,
    TEAM_UP_OPPORTUNITIES,
    CombatSummary,
    EnvironmentalFeature,
    NarrativeElements,
    TeamUpOpportunity,
    extract_environmental_features,
    extract_narrative_elements,
    identify_team_up_opportunities,
    narrate_action,
    narrate_combat_end,
    summarize_combat,
)
from .npc_ai import choose_action, get_available_actions

__all__ = [
    # Import from calculations.py
    "ITEM_TYPES",
    "SPELL_TYPES",
    "CalculationResult",
    "calculate_action",
    "calculate_attack_damage",
    "calculate_defend",
    "calculate_environmental_damage",
    "calculate_item_effect",
    "calculate_special_damage",
    "calculate_spell_effect",
    "calculate_team_up_damage",
    "roll_follow_up_effect",
    # Import from combat_manager.py
    "CombatEngine",
    "SessionRegistry",
    # Import from combat_session.py
    "ActionOutcome",
    "ActionRequest",
    "CombatSession",
    "EngineConfig",
    "TurnStart",
    # Import from narrative.py
    "ENVIRONMENTAL_FEATURES",
    "TEAM_UP_OPPORTUNITIES",
    "CombatSummary",
    "EnvironmentalFeature",
    "NarrativeElements",
    "TeamUpOpportunity",
    "extract_environmental_features",
    "extract_narrative_elements",
    "identify_team_up_opportunities",
    "narrate_action",
    "narrate_combat_end",
    "summarize_combat",
    # Import from npc_ai.py
    "choose_action",
    "get_available_actions",
]
