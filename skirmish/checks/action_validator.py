"""
Free-text action validation.

A description of what a character attempts is classified by a single pass
over data-driven pattern tables, in a fixed order: impossible feats first,
then actions to redirect, then under-specified actions to expand. The first
matching screen wins. Only descriptions that pass every screen are scanned
for action keywords, and each action found is resolved by a skill check.
"""

import re
from collections.abc import Sequence
from typing import Any, Optional

from catchery import log_debug
from pydantic import BaseModel, ConfigDict, Field

from ..character.combatant import Combatant
from ..core.constants import DegreeOfSuccess, SkillAction, ValidationType, describe_difficulty
from ..core.dice_parser import DiceRoller
from .skill_check import (
    CIRCUMSTANCE_MODIFIERS,
    SkillCheckResult,
    perform_action_sequence,
    perform_skill_check,
)


class PatternRule(BaseModel):
    """A (pattern, classification) pair with the message shown on a match."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pattern: re.Pattern
    classification: ValidationType
    response: str
    suggestion: str

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _rule(
    pattern: str,
    classification: ValidationType,
    response: str,
    suggestion: str,
) -> PatternRule:
    return PatternRule(
        pattern=re.compile(pattern, re.IGNORECASE),
        classification=classification,
        response=response,
        suggestion=suggestion,
    )


_IMPOSSIBLE_RESPONSE = "That action is beyond the realm of possibility in this world."
_IMPOSSIBLE_SUGGESTION = (
    "Try a more realistic approach that fits within the story and your character's abilities."
)

IMPOSSIBLE_RULES: list[PatternRule] = [
    _rule(pattern, ValidationType.IMPOSSIBLE, _IMPOSSIBLE_RESPONSE, _IMPOSSIBLE_SUGGESTION)
    for pattern in (
        # Superhuman feats.
        r"\b(?:do|perform|execute)\s+\d+\s+(?:backflips?|somersaults?|cartwheels?)\b",
        r"\b(?:fly|levitate|float)\s+(?:to|up|over|across)\b",
        r"\b(?:jump|leap)\s+(?:to|over|across)\s+(?:the\s+)?(?:moon|sky|clouds?)\b",
        r"\b(?:teleport|blink|phase)\s+(?:to|through)\b",
        r"\b(?:time\s+travel|rewind|fast\s+forward)\b",
        r"\b(?:summon|create)\s+(?:a\s+)?(?:dragon|god|demon)\b",
        r"\b(?:become|turn\s+into)\s+(?:invisible|invincible|immortal)\b",
        # Breaking the fourth wall.
        r"\b(?:kill|destroy|eliminate)\s+(?:the\s+)?(?:dm|dungeon\s+master|narrator)\b",
        r"\b(?:break|destroy)\s+(?:the\s+)?(?:fourth\s+wall|game|story)\b",
        r"\b(?:skip|ignore)\s+(?:the\s+)?(?:quest|mission|story)\b",
        r"\b(?:teleport|go)\s+(?:to\s+)?(?:the\s+)?(?:end|final\s+boss|treasure)\b",
        # Plot items without interaction.
        r"\b(?:grab|take|steal)\s+(?:the\s+)?(?:quest\s+item|treasure|artifact)\s+"
        r"(?:from\s+)?(?:nowhere|thin\s+air)\b",
        r"\b(?:open|unlock)\s+(?:the\s+)?(?:door|chest)\s+(?:without\s+)?(?:key|lockpick)\b",
        r"\b(?:find|locate)\s+(?:the\s+)?(?:hidden\s+)?(?:passage|door)\s+"
        r"(?:without\s+)?(?:searching)\b",
    )
]

REDIRECT_RULES: list[PatternRule] = [
    _rule(
        r"\b(?:show\s+off|strike\s+a\s+pose|(?:do|perform)\s+(?:some\s+|a\s+few\s+)?(?:tricks|stunts|flips))\b",
        ValidationType.REDIRECT,
        "While impressive acrobatics are possible, let's focus on actions that "
        "advance the story. What's your main goal here?",
        "Try describing a more focused action that helps with the current situation.",
    ),
    _rule(
        r"\b(?:try|attempt)\s+to\s+(?:fly|levitate|float)\b",
        ValidationType.REDIRECT,
        "Flight isn't currently possible in this situation. What are you trying to achieve?",
        "Consider climbing, jumping, or finding another way to reach your destination.",
    ),
    _rule(
        r"\b(?:grab|take|steal|pocket)\s+(?:the\s+)?(?:quest\s+item|treasure|artifact)\b",
        ValidationType.REDIRECT,
        "The quest item isn't just lying around. You'll need to find it through "
        "exploration and investigation.",
        "Try searching the area, asking NPCs, or following clues to locate the item.",
    ),
    _rule(
        r"\b(?:i\s+)?(?:attack|kill|destroy|fight)\s+(?:everyone|everybody|all|each|every)\b"
        r"(?:\s+(?:of\s+)?(?:the\s+)?(?:enem(?:y|ies)|people|persons?|creatures?|monsters?))?",
        ValidationType.REDIRECT,
        "While combat is possible, attacking everyone at once isn't practical. "
        "Let's focus on the immediate threat.",
        "Choose a specific target or describe a more strategic approach.",
    ),
]

# Expansion only applies to a bare verb with no object, e.g. "I search."
EXPAND_RULES: list[PatternRule] = [
    _rule(
        r"^\s*(?:i\s+)?(?:search|look|examine)(?:\s+around)?\s*[.!?]*\s*$",
        ValidationType.EXPAND,
        "What specifically are you searching for or looking at?",
        "Be more specific about what you're searching for or examining.",
    ),
    _rule(
        r"^\s*(?:i\s+)?(?:talk|speak|ask)\s*[.!?]*\s*$",
        ValidationType.EXPAND,
        "Who would you like to talk to, and what would you like to discuss?",
        "Specify the person and topic of conversation.",
    ),
    _rule(
        r"^\s*(?:i\s+)?(?:go|move|walk)\s*[.!?]*\s*$",
        ValidationType.EXPAND,
        "Where would you like to go?",
        "Specify your destination or direction.",
    ),
]

# Creative choices worth a word of encouragement.
ENCOURAGE_RULES: list[PatternRule] = [
    _rule(
        r"\b(?:investigate|explore|examine)\b",
        ValidationType.VALID,
        "Great! Investigation and exploration are key to advancing the story.",
        "What specific aspect would you like to investigate?",
    ),
    _rule(
        r"\b(?:help|assist|aid)\b",
        ValidationType.VALID,
        "Helping others is always a noble choice.",
        "Specify who needs help and how you can assist them.",
    ),
    _rule(
        r"\b(?:negotiate|diplomacy|peace)\b",
        ValidationType.VALID,
        "Diplomacy can often achieve more than violence. Good thinking!",
        "How would you like to approach the negotiation?",
    ),
]

# Keywords detecting each skill action, in order of preference.
ACTION_KEYWORDS: dict[SkillAction, tuple[str, ...]] = {
    SkillAction.ATTACK: ("attack", "strike", "hit", "swing", "slash", "thrust", "punch", "kick"),
    SkillAction.SPELL: ("cast", "spell", "magic", "enchant", "charm"),
    SkillAction.DODGE: ("dodge", "evade", "avoid", "sidestep"),
    SkillAction.PARRY: ("parry", "block", "deflect"),
    SkillAction.BACKFLIP: ("backflip", "back flip"),
    SkillAction.SOMERSAULT: ("somersault", "forward roll"),
    SkillAction.CARTWHEEL: ("cartwheel",),
    SkillAction.WALL_RUN: ("wall run", "run up wall", "run up the wall"),
    SkillAction.JUMP: ("jump", "leap", "hop"),
    SkillAction.CLIMB: ("climb", "scale"),
    SkillAction.SWIM: ("swim",),
    SkillAction.FLY: ("fly", "levitate", "float"),
    SkillAction.PERSUADE: ("persuade", "convince", "talk into"),
    SkillAction.INTIMIDATE: ("intimidate", "threaten", "scare"),
    SkillAction.DECEIVE: ("deceive", "lie", "trick"),
    SkillAction.SPOT: ("spot", "see", "notice", "observe"),
    SkillAction.LISTEN: ("listen", "hear"),
    SkillAction.SEARCH: ("search", "look for", "find"),
    SkillAction.PICK_LOCK: ("pick lock", "pick the lock", "lockpick"),
    SkillAction.DISARM_TRAP: ("disarm", "trap"),
    SkillAction.HEAL: ("heal", "cure", "treat"),
    SkillAction.CRAFT: ("craft", "make", "create", "build"),
}


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Word start only, so that "climbing" and "attacks" still match.
    return re.compile(r"\b" + re.escape(keyword).replace(r"\ ", r"\s+"), re.IGNORECASE)


_KEYWORD_PATTERNS: list[tuple[SkillAction, str, re.Pattern]] = [
    (action, keyword, _keyword_pattern(keyword))
    for action, keywords in ACTION_KEYWORDS.items()
    for keyword in keywords
]

_CIRCUMSTANCE_PATTERNS: list[tuple[str, re.Pattern]] = [
    (phrase, re.compile(r"\b" + re.escape(phrase).replace(r"\ ", r"\s+") + r"\b", re.IGNORECASE))
    for phrase in CIRCUMSTANCE_MODIFIERS
]


class ExtractedAction(BaseModel):
    """An action attempt found in a description."""

    action: SkillAction
    keyword: str
    circumstances: list[str] = Field(default_factory=list)


class ActionCheck(BaseModel):
    """An extracted action together with its resolved skill check."""

    action: SkillAction
    keyword: str
    circumstances: list[str] = Field(default_factory=list)
    check: SkillCheckResult
    difficulty: str


class DiceAssessment(BaseModel):
    """Aggregated skill checks of a valid description."""

    checks: list[ActionCheck] = Field(default_factory=list)
    overall_success: bool = True
    has_critical_failures: bool = False
    critical_failures: list[SkillAction] = Field(default_factory=list)
    sequence: bool = Field(default=False, description="Resolved as a chained sequence")
    suggestion: str = ""


class Alternative(BaseModel):
    """A grounded replacement for an unrealistic action."""

    action: str
    description: str
    difficulty: str


class ValidationResult(BaseModel):
    """
    Tagged result of validating a description.

    Only VALID results may carry a dice assessment; the other
    classifications are terminal and roll nothing.
    """

    classification: ValidationType
    response: str
    suggestion: str = ""
    dice_result: Optional[DiceAssessment] = None
    alternatives: list[Alternative] = Field(default_factory=list)
    encouragement: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.classification == ValidationType.VALID

    @property
    def dice_rolled(self) -> int:
        return len(self.dice_result.checks) if self.dice_result else 0


def match_rules(text: str, rules: Sequence[PatternRule]) -> Optional[PatternRule]:
    """Returns the first rule matching the text, if any."""
    for rule in rules:
        if rule.matches(text):
            return rule
    return None


def extract_circumstances(description: str) -> list[str]:
    """Returns the recognized circumstance phrases present in a description."""
    return [phrase for phrase, pattern in _CIRCUMSTANCE_PATTERNS if pattern.search(description)]


def extract_actions(description: str) -> list[ExtractedAction]:
    """
    Finds every distinct skill action mentioned in a description.

    Each action type is reported once, with the first keyword that
    matched it. All actions share the circumstances found in the text.

    Args:
        description (str): The free-text description.

    Returns:
        list[ExtractedAction]: The actions, in table order.

    """
    circumstances = extract_circumstances(description)
    found: dict[SkillAction, ExtractedAction] = {}
    for action, keyword, pattern in _KEYWORD_PATTERNS:
        if action in found:
            continue
        if pattern.search(description):
            found[action] = ExtractedAction(
                action=action,
                keyword=keyword,
                circumstances=list(circumstances),
            )
    return list(found.values())


def classify_complexity(description: str) -> str:
    """Returns "narrative", "single" or "sequence" depending on the actions found."""
    count = len(extract_actions(description))
    if count == 0:
        return "narrative"
    return "single" if count == 1 else "sequence"


def provide_alternatives(description: str) -> list[Alternative]:
    """
    Suggests realistic alternatives for common unrealistic actions.

    Args:
        description (str): The free-text description.

    Returns:
        list[Alternative]: Zero or more alternatives.

    """
    text = description.lower()
    alternatives: list[Alternative] = []
    if re.search(r"\b(?:backflip|somersault|cartwheel)", text):
        alternatives.append(
            Alternative(
                action=SkillAction.DODGE.value,
                description="Try dodging or evading instead of acrobatics",
                difficulty="easier",
            )
        )
    if re.search(r"\b(?:fly|levitate|float)", text):
        alternatives.append(
            Alternative(
                action=SkillAction.CLIMB.value,
                description="Try climbing or finding another way up",
                difficulty="realistic",
            )
        )
    if re.search(r"\b(?:teleport|blink|phase)", text):
        alternatives.append(
            Alternative(
                action=SkillAction.SEARCH.value,
                description="Look for a hidden path or shortcut instead",
                difficulty="realistic",
            )
        )
    if re.search(r"\battack\s+(?:everyone|all)\b", text):
        alternatives.append(
            Alternative(
                action="focus",
                description="Focus on one target at a time for better effectiveness",
                difficulty="strategic",
            )
        )
    if re.search(r"\b(?:quest\s+item|treasure|artifact)\b", text):
        alternatives.append(
            Alternative(
                action=SkillAction.SEARCH.value,
                description="Search the area thoroughly to find the item",
                difficulty="appropriate",
            )
        )
    return alternatives


def _suggest(checks: Sequence[ActionCheck]) -> str:
    failures = [check for check in checks if not check.check.success]
    if not failures:
        return "All actions are within your capabilities. Proceed with confidence!"
    suggestions = []
    for failure in failures:
        name = failure.action.display_name.lower()
        if failure.check.degree == DegreeOfSuccess.CRITICAL_FAILURE:
            suggestions.append(
                f"The {name} is extremely difficult for you. "
                "Consider an alternative approach or ask for help."
            )
        else:
            suggestions.append(
                f"The {name} is challenging. You might want to take your time or use better equipment."
            )
    return " ".join(suggestions)


def _respond(assessment: DiceAssessment) -> str:
    if assessment.overall_success:
        return "Your planned actions are within your capabilities. Proceed with confidence!"
    if assessment.has_critical_failures:
        return f"The actions you described are beyond your current capabilities. {assessment.suggestion}"
    return f"Some of those actions are challenging for you. {assessment.suggestion}"


def assess_actions(
    combatant: Combatant,
    actions: Sequence[ExtractedAction],
    context: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> DiceAssessment:
    """
    Resolves a skill check for each extracted action.

    With `context["as_sequence"]` set and several actions, the checks are
    chained so that momentum and fatigue carry from one to the next.

    Args:
        combatant (Combatant): The acting combatant.
        actions (Sequence[ExtractedAction]): The extracted actions.
        context (Optional[dict[str, Any]]): May hold "target_dc",
            "circumstances" and "as_sequence".
        dice (Optional[DiceRoller]): The roller for the d20s.

    Returns:
        DiceAssessment: The checks and their aggregate.

    """
    context = context or {}
    target_dc = context.get("target_dc")
    extra = [c for c in context.get("circumstances", []) if isinstance(c, str)]
    as_sequence = bool(context.get("as_sequence")) and len(actions) > 1

    if as_sequence:
        base = list(dict.fromkeys(actions[0].circumstances + extra))
        results = perform_action_sequence(
            combatant, [a.action for a in actions], base, target_dc=target_dc, dice=dice
        ).checks
    else:
        results = [
            perform_skill_check(
                combatant,
                a.action,
                list(dict.fromkeys(a.circumstances + extra)),
                target_dc=target_dc,
                dice=dice,
            )
            for a in actions
        ]

    checks = [
        ActionCheck(
            action=a.action,
            keyword=a.keyword,
            circumstances=list(result.circumstances),
            check=result,
            difficulty=describe_difficulty(result.dc),
        )
        for a, result in zip(actions, results)
    ]
    critical = [c.action for c in checks if c.check.is_critical_failure]
    return DiceAssessment(
        checks=checks,
        overall_success=all(c.check.success for c in checks),
        has_critical_failures=bool(critical),
        critical_failures=critical,
        sequence=as_sequence,
        suggestion=_suggest(checks),
    )


def validate_action(
    description: str,
    combatant: Combatant,
    context: Optional[dict[str, Any]] = None,
    dice: Optional[DiceRoller] = None,
) -> ValidationResult:
    """
    Classifies a free-text action and resolves the checks it implies.

    The screens run in a fixed order (impossible, redirect, expand) and the
    first match ends the validation without rolling any dice. Otherwise
    every action keyword found is resolved by a skill check; a description
    with no action keyword is a valid, purely narrative action.

    Args:
        description (str): What the character attempts.
        combatant (Combatant): The acting character.
        context (Optional[dict[str, Any]]): Optional "target_dc",
            "circumstances" and "as_sequence" entries.
        dice (Optional[DiceRoller]): The roller for the d20s.

    Returns:
        ValidationResult: The tagged classification.

    """
    text = (description or "").strip().lower()
    if not text:
        return ValidationResult(
            classification=ValidationType.EXPAND,
            response="What would you like to do?",
            suggestion="Describe the action your character attempts.",
        )

    # Screen, in order of precedence.
    for rules in (IMPOSSIBLE_RULES, REDIRECT_RULES, EXPAND_RULES):
        rule = match_rules(text, rules)
        if rule is not None:
            log_debug(
                f"Action classified as {rule.classification.value}",
                {"combatant": combatant.id, "description": description},
            )
            return ValidationResult(
                classification=rule.classification,
                response=rule.response,
                suggestion=rule.suggestion,
                alternatives=provide_alternatives(text),
            )

    encourage = match_rules(text, ENCOURAGE_RULES)
    encouragement = encourage.response if encourage else None

    # Extract and resolve.
    actions = extract_actions(text)
    if not actions:
        return ValidationResult(
            classification=ValidationType.VALID,
            response="Action appears to be narrative in nature.",
            suggestion="This will be handled through story progression.",
            encouragement=encouragement,
        )

    assessment = assess_actions(combatant, actions, context, dice)
    return ValidationResult(
        classification=ValidationType.VALID,
        response=_respond(assessment),
        suggestion=assessment.suggestion,
        dice_result=assessment,
        encouragement=encouragement,
    )
