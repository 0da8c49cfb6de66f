"""
User interface module for the combat engine.

Provides the interactive prompts used when a person controls the party.
"""

from .cli_interface import PlayerInterface

__all__ = [
    # Import from cli_interface.py
    "PlayerInterface",
]
