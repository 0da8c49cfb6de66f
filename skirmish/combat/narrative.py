"""
Narrative support for combat sessions.

Extracts environmental features, team-up opportunities and mood from the
free-text story context, and renders action and end-of-combat narratives.
The strings are cosmetic; the numeric results come from the engine.
"""

import re
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, Field

from ..character.archetype import Archetype
from ..character.combatant import Combatant
from ..core.constants import ActionType, SessionState, Side, StatusEffectType

if TYPE_CHECKING:
    from .calculations import CalculationResult
    from .combat_session import CombatSession


class EnvironmentalFeature(BaseModel):
    """A terrain feature combatants can exploit."""

    name: str
    effect: str
    narrative: str
    keywords: tuple[str, ...] = ()
    bonus: int = Field(default=0, description="Bonus to environmental actions")
    status_effect: Optional[StatusEffectType] = Field(
        default=None,
        description="Condition inflicted by environmental actions using this feature",
    )


ENVIRONMENTAL_FEATURES: list[EnvironmentalFeature] = [
    EnvironmentalFeature(
        name="Dense Forest",
        effect="Provides cover (+1 AC)",
        narrative="The dense trees provide natural cover",
        keywords=("forest", "trees", "woods"),
        bonus=1,
    ),
    EnvironmentalFeature(
        name="Dark Cave",
        effect="Reduced visibility (-1 to attack)",
        narrative="The darkness makes it harder to aim",
        keywords=("cave", "underground", "cavern"),
        bonus=1,
    ),
    EnvironmentalFeature(
        name="Water Hazard",
        effect="Difficult terrain",
        narrative="The water makes movement difficult",
        keywords=("water", "river", "lake", "swamp"),
    ),
    EnvironmentalFeature(
        name="Burning Environment",
        effect="Fire damage to all combatants",
        narrative="The flames lick at all present",
        keywords=("fire", "flame", "burning", "lava"),
        bonus=2,
        status_effect=StatusEffectType.BURNED,
    ),
]


class TeamUpOpportunity(BaseModel):
    """A combination move available to a pair of party archetypes."""

    name: str
    description: str
    bonus_text: str
    members: tuple[Archetype, Archetype]
    damage_bonus: int = 0


TEAM_UP_OPPORTUNITIES: list[TeamUpOpportunity] = [
    TeamUpOpportunity(
        name="Tank and Spell",
        description="Fighter distracts while Wizard casts",
        bonus_text="+2 damage",
        members=(Archetype.FIGHTER, Archetype.WIZARD),
        damage_bonus=2,
    ),
    TeamUpOpportunity(
        name="Divine Stealth",
        description="Cleric blesses Rogue for enhanced stealth",
        bonus_text="+1d6 damage",
        members=(Archetype.ROGUE, Archetype.CLERIC),
        damage_bonus=3,
    ),
    TeamUpOpportunity(
        name="Holy Warrior",
        description="Cleric enhances Fighter with divine power",
        bonus_text="+1 to all rolls",
        members=(Archetype.FIGHTER, Archetype.CLERIC),
        damage_bonus=1,
    ),
]


class NarrativeElements(BaseModel):
    """Mood, stakes, hazards and named characters found in the story context."""

    mood: str = "standard"
    stakes: str = "standard"
    hazards: list[str] = Field(default_factory=list)
    npcs: list[str] = Field(default_factory=list)


def _mentions(text: str, *words: str) -> bool:
    return any(re.search(r"\b" + re.escape(word), text) for word in words)


def extract_environmental_features(story_context: Optional[str]) -> list[EnvironmentalFeature]:
    """
    Finds the terrain features mentioned in a story context.

    Args:
        story_context (Optional[str]): Free text describing the scene.

    Returns:
        list[EnvironmentalFeature]: The features, empty without context.

    """
    if not story_context:
        return []
    text = story_context.lower()
    return [
        feature.model_copy()
        for feature in ENVIRONMENTAL_FEATURES
        if _mentions(text, *feature.keywords)
    ]


def identify_team_up_opportunities(party: list[Combatant]) -> list[TeamUpOpportunity]:
    """
    Lists the combination moves enabled by the archetypes in a party.

    Args:
        party (list[Combatant]): The party members.

    Returns:
        list[TeamUpOpportunity]: The opportunities whose archetypes are all present.

    """
    archetypes = {member.archetype for member in party}
    return [
        opportunity.model_copy()
        for opportunity in TEAM_UP_OPPORTUNITIES
        if all(member in archetypes for member in opportunity.members)
    ]


_MOODS: list[tuple[str, tuple[str, ...]]] = [
    ("desperate", ("desperate", "last stand")),
    ("epic", ("epic", "legendary")),
    ("stealthy", ("stealth", "sneak")),
    ("chaotic", ("chaos", "confusion")),
]

_STAKES: list[tuple[str, tuple[str, ...]]] = [
    ("world-ending", ("save the world", "apocalypse")),
    ("kingdom-level", ("save the kingdom", "royal")),
    ("village-level", ("save the village", "town")),
    ("personal", ("personal", "revenge")),
]

_HAZARDS: list[tuple[str, tuple[str, ...]]] = [
    ("poison", ("poison", "toxic")),
    ("fire", ("fire", "flame")),
    ("cold", ("ice", "cold")),
    ("lightning", ("electricity", "lightning")),
]

_COMMON_WORDS = {
    "The", "A", "An", "And", "Or", "But", "In", "On", "At", "To", "For", "Of", "With", "By",
}


def extract_narrative_elements(story_context: Optional[str]) -> NarrativeElements:
    """
    Reads the mood, stakes, hazards and named characters of a scene.

    Named characters are capitalized words that are not common words.
    """
    if not story_context:
        return NarrativeElements()
    text = story_context.lower()
    elements = NarrativeElements()
    elements.mood = next((m for m, words in _MOODS if _mentions(text, *words)), "standard")
    elements.stakes = next((s for s, words in _STAKES if _mentions(text, *words)), "standard")
    elements.hazards = [h for h, words in _HAZARDS if _mentions(text, *words)]
    for name in re.findall(r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*", story_context):
        if name not in _COMMON_WORDS and name not in elements.npcs:
            elements.npcs.append(name)
    return elements


_TEMPLATES: dict[ActionType, str] = {
    ActionType.ATTACK: "{character} {verb} with {weapon}",
    ActionType.SPELL: "{character} channels arcane energy into {spell}",
    ActionType.SPECIAL: "{character} unleashes {ability}",
    ActionType.ITEM: "{character} uses {item}",
    ActionType.DEFEND: "{character} takes a defensive stance",
    ActionType.ENVIRONMENTAL: "{character} uses the {environment} to their advantage",
    ActionType.TEAM_UP: "{character} coordinates with {ally} for a powerful combination",
}


def narrate_action(
    actor: Combatant,
    action_type: ActionType,
    target: Optional[Combatant] = None,
    result: Optional["CalculationResult"] = None,
    extra: Optional[dict[str, Any]] = None,
) -> str:
    """
    Renders one executed action as a sentence.

    Args:
        actor (Combatant): The acting combatant.
        action_type (ActionType): The action executed.
        target (Optional[Combatant]): The target, if any.
        result (Optional[CalculationResult]): The computed result.
        extra (Optional[dict[str, Any]]): The action parameters.

    Returns:
        str: The narrative.

    """
    extra = extra or {}
    capabilities = actor.capabilities
    label = result.label if result and result.label else ""
    verbs = capabilities.verbs
    narrative = _TEMPLATES[action_type].format(
        character=actor.name,
        verb=verbs[actor.turn_count % len(verbs)],
        weapon=actor.equipment.weapon.name if actor.equipment.weapon else "their weapon",
        spell=label or "magic",
        ability=label or "a special ability",
        item=label or "an item",
        environment=(label or "surroundings").lower(),
        ally=extra.get("ally_name") or "an ally",
    )
    if capabilities.flavor and action_type in (ActionType.ATTACK, ActionType.SPECIAL):
        narrative += f" {capabilities.flavor}"
    if target is not None and target.id != actor.id:
        narrative += f" against {target.name}"
    narrative += "!"

    if result is not None:
        if result.critical:
            narrative += " A critical hit!"
        if result.damage:
            narrative += f" {result.damage} {result.damage_type.display_name.lower()} damage."
        if result.healing:
            who = "themselves" if target is None or target.id == actor.id else target.name
            narrative += f" Restores {result.healing} HP to {who}."
    return narrative


class CombatSummary(BaseModel):
    """Outcome of a finished (or ongoing) combat session."""

    rounds: int
    outcome: SessionState
    party_casualties: int
    adversary_casualties: int
    surviving_party: list[str] = Field(default_factory=list)
    surviving_adversaries: list[str] = Field(default_factory=list)
    turns_taken: dict[str, int] = Field(default_factory=dict)


def summarize_combat(session: "CombatSession") -> CombatSummary:
    """Counts the rounds, casualties and survivors of a session."""
    party = session.get_side(Side.PARTY)
    adversaries = session.get_side(Side.ADVERSARY)
    return CombatSummary(
        rounds=session.round,
        outcome=session.state,
        party_casualties=sum(1 for c in party if not c.is_alive()),
        adversary_casualties=sum(1 for c in adversaries if not c.is_alive()),
        surviving_party=[c.name for c in party if c.is_alive()],
        surviving_adversaries=[c.name for c in adversaries if c.is_alive()],
        turns_taken={c.name: c.turn_count for c in session.combatants},
    )


def narrate_combat_end(session: "CombatSession") -> str:
    """Renders the summary of a session as a short paragraph."""
    summary = summarize_combat(session)
    rounds = f"{summary.rounds} round{'s' if summary.rounds != 1 else ''}"
    narrative = f"The battle raged for {rounds}. "
    if summary.outcome == SessionState.VICTORY:
        narrative += f"The party emerged victorious, defeating {summary.adversary_casualties} enemies"
        if summary.party_casualties:
            narrative += f" at the cost of {summary.party_casualties} fallen comrades"
        narrative += "."
    elif summary.outcome == SessionState.DEFEAT:
        narrative += "The party was defeated by their enemies"
        if summary.adversary_casualties:
            narrative += f", though they managed to take {summary.adversary_casualties} enemies with them"
        narrative += "."
    elif summary.outcome == SessionState.DRAW:
        narrative += "Neither side could claim victory, and the combatants withdrew."
    else:
        narrative += "The fight is not over yet."
    return narrative
