"""
Character module for the combat engine.

Contains the combatant model, the normalization boundary for external
character records, and the class archetypes with their capabilities.
"""

from .archetype import (
    ARCHETYPE_CAPABILITIES,
    AIRole,
    Archetype,
    ArchetypeCapabilities,
)
from .combatant import (
    AbilityScores,
    Combatant,
    Equipment,
    EquipmentSlot,
    normalize_combatant,
    normalize_tag,
)

__all__ = [
    # Import from archetype.py
    "ARCHETYPE_CAPABILITIES",
    "AIRole",
    "Archetype",
    "ArchetypeCapabilities",
    # Import from combatant.py
    "AbilityScores",
    "Combatant",
    "Equipment",
    "EquipmentSlot",
    "normalize_combatant",
    "normalize_tag",
]
