"""
Effects module for the combat engine.

Contains timed status effects, their rules table, and the turn-start
processing that applies periodic damage and turn skips.
"""

from .status_effect import (
    STATUS_EFFECT_TABLE,
    StatusEffect,
    StatusEffectInfo,
    StatusTick,
    merge_status_effect,
    tick_status_effects,
)

__all__ = [
    # Import from status_effect.py
    "STATUS_EFFECT_TABLE",
    "StatusEffect",
    "StatusEffectInfo",
    "StatusTick",
    "merge_status_effect",
    "tick_status_effects",
]
