"""
Combat session state and the records exchanged with the engine.
"""

from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from ..character.combatant import Combatant
from ..core.constants import ActionType, SessionState, Side, StatusEffectType
from ..effects.status_effect import StatusEffect, StatusTick
from .calculations import CalculationResult
from .narrative import EnvironmentalFeature, NarrativeElements, TeamUpOpportunity


class EngineConfig(BaseModel):
    """Tunable behaviour of the combat engine."""

    strict_turn_order: bool = Field(
        default=True,
        description="Reject actions from combatants whose turn it is not",
    )
    max_rounds: Optional[int] = Field(
        default=None,
        description="End the session as a draw once this round is exceeded",
    )
    enable_follow_up_effects: bool = Field(
        default=True,
        description="Heavy hits may stun or cause bleeding",
    )


class CombatSession(BaseModel):
    """
    A single encounter.

    Combatants are kept in initiative order; `current_turn` indexes the one
    acting. A session in a terminal state never becomes active again.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    combatants: list[Combatant] = Field(default_factory=list)
    current_turn: int = 0
    round: int = 1
    state: SessionState = SessionState.PREPARATION
    turn_started: bool = Field(
        default=False,
        description="Status effects of the current combatant were processed",
    )
    story_context: str = ""
    environmental_features: list[EnvironmentalFeature] = Field(default_factory=list)
    team_up_opportunities: list[TeamUpOpportunity] = Field(default_factory=list)
    narrative_elements: NarrativeElements = Field(default_factory=NarrativeElements)
    log: list[str] = Field(default_factory=list, description="Battle log")

    def get_combatant(self, combatant_id: Optional[str]) -> Optional[Combatant]:
        """Returns the combatant with the given id, if any."""
        if combatant_id is None:
            return None
        for combatant in self.combatants:
            if combatant.id == combatant_id:
                return combatant
        return None

    def get_side(self, side: Side) -> list[Combatant]:
        return [c for c in self.combatants if c.side == side]

    def living(self, side: Optional[Side] = None) -> list[Combatant]:
        """Returns the living combatants, optionally of one side only."""
        return [
            c for c in self.combatants if c.is_alive() and (side is None or c.side == side)
        ]

    @property
    def current_combatant(self) -> Optional[Combatant]:
        if not self.combatants:
            return None
        return self.combatants[self.current_turn % len(self.combatants)]

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def snapshot(self) -> dict[str, Any]:
        """Returns a JSON-compatible copy of the whole session."""
        return self.model_dump(mode="json")


class ActionRequest(BaseModel):
    """An action a combatant wants to execute."""

    action_type: ActionType
    actor_id: str
    target_id: Optional[str] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("action_type", mode="before")
    @classmethod
    def _parse_action_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ActionType.from_string(value)
        return value


class ActionOutcome(BaseModel):
    """
    Result of executing (or rejecting) an action.

    A rejected action carries `success=False` and a reason in `message`;
    the session was not modified, unless the actor lost its turn to a
    status effect while the turn was being started.
    """

    success: bool
    message: str
    action_type: Optional[ActionType] = None
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    damage: int = 0
    healing: int = 0
    critical: bool = False
    calculation: Optional[CalculationResult] = None
    applied_effects: list[StatusEffect] = Field(default_factory=list)
    removed_effects: list[StatusEffectType] = Field(default_factory=list)
    cooldowns: dict[ActionType, int] = Field(default_factory=dict)
    state: SessionState = SessionState.ACTIVE
    session: Optional[CombatSession] = Field(default=None, exclude=True, repr=False)


class TurnStart(BaseModel):
    """Result of starting the turn of the current combatant."""

    combatant_id: Optional[str] = None
    tick: Optional[StatusTick] = None
    skipped: bool = False
    state: SessionState = SessionState.ACTIVE
    messages: list[str] = Field(default_factory=list)
