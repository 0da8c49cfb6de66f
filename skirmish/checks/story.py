"""
Story coherence checks for free-text actions.

Flags actions that do not fit the current story phase, that contradict
established facts, that ignore the active plot point, or that go against
the character's alignment.
"""

from typing import Optional

from pydantic import BaseModel, Field

PHASE_INAPPROPRIATE_ACTIONS: dict[str, tuple[str, ...]] = {
    "introduction": ("attack", "kill", "destroy"),
    "exploration": ("end quest", "skip to boss"),
    "combat": ("negotiate peace", "run away"),
    "resolution": ("start new quest", "begin adventure"),
}

ALIGNMENT_INAPPROPRIATE_ACTIONS: dict[str, tuple[str, ...]] = {
    "lawful good": ("steal", "deceive", "harm innocent"),
    "neutral good": ("harm innocent", "betray allies"),
    "chaotic good": ("follow strict rules", "harm innocent"),
    "lawful neutral": ("break laws", "show mercy", "act chaotically"),
    "true neutral": ("take extreme actions", "show strong emotions"),
    "chaotic neutral": ("follow strict rules", "show strong loyalty"),
    "lawful evil": ("break laws", "show mercy", "help weak"),
    "neutral evil": ("help others", "follow laws", "show mercy"),
    "chaotic evil": ("help others", "follow rules", "show mercy"),
}


class StoryFact(BaseModel):
    """Something already established in the story."""

    description: str
    contradicts: list[str] = Field(
        default_factory=list,
        description="Phrases of actions that would contradict the fact",
    )


class PlotPoint(BaseModel):
    """A plot point; an active one expects actions mentioning its keywords."""

    name: str = ""
    active: bool = False
    keywords: list[str] = Field(default_factory=list)


class StoryState(BaseModel):
    """The parts of the story state relevant to coherence checks."""

    phase: str = "exploration"
    established_facts: list[StoryFact] = Field(default_factory=list)
    plot_points: list[PlotPoint] = Field(default_factory=list)


class CoherenceReport(BaseModel):
    """Issues found by the coherence checks."""

    coherent: bool = True
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


def _contains_any(text: str, phrases: tuple[str, ...] | list[str]) -> bool:
    return any(phrase.lower() in text for phrase in phrases)


def check_story_coherence(
    description: str,
    story: StoryState | dict,
    alignment: Optional[str] = None,
) -> CoherenceReport:
    """
    Checks an action description against the state of the story.

    Args:
        description (str): The free-text action.
        story (StoryState | dict): The story state, or a dictionary of it.
        alignment (Optional[str]): The character alignment, e.g. "Lawful Good".

    Returns:
        CoherenceReport: The issues found and a suggestion for each.

    """
    if not isinstance(story, StoryState):
        story = StoryState.model_validate(story)
    text = description.lower()
    report = CoherenceReport()

    phase = story.phase.lower()
    if _contains_any(text, PHASE_INAPPROPRIATE_ACTIONS.get(phase, ())):
        report.issues.append(f"This action doesn't fit the current story phase ({phase})")
        report.suggestions.append("Consider actions that fit the current phase of the story.")

    for fact in story.established_facts:
        if _contains_any(text, fact.contradicts):
            report.issues.append(
                f"This action contradicts established story facts: {fact.description}"
            )
            report.suggestions.append("Remember what has already been established in the story.")
            break

    active = next((point for point in story.plot_points if point.active), None)
    if active is not None and active.keywords and not _contains_any(text, active.keywords):
        report.issues.append("This action doesn't address the current plot point")
        report.suggestions.append("Focus on actions that advance the current plot.")

    if alignment:
        if _contains_any(text, ALIGNMENT_INAPPROPRIATE_ACTIONS.get(alignment.lower(), ())):
            report.issues.append(
                f"This action doesn't align with your character's alignment ({alignment})"
            )
            report.suggestions.append(
                "Consider actions that align with your character's moral compass."
            )

    report.coherent = not report.issues
    return report
